"""
Evidence Analysis Prompts

Per-type prompts used when processing a single evidence item.
"""

# =============================================================================
# SYSTEM PROMPTS
# =============================================================================

WEBSITE_ANALYSIS_SYSTEM = "You are a brand analysis expert. Analyze websites for brand insights."

DOCUMENT_ANALYSIS_SYSTEM = "You are a document analysis expert. Extract brand insights from documents."

SOCIAL_ANALYSIS_SYSTEM = "You are a social media analysis expert. Extract brand insights from social content."

MANUAL_ANALYSIS_SYSTEM = "You are a brand strategy expert. Structure brand information into actionable insights."

DOCUMENT_PROMPT_CHARS = 3000

# =============================================================================
# PROMPT BUILDERS
# =============================================================================


def build_website_prompt(url: str, crawl_report: str = "") -> str:
    """Website analysis prompt; falls back to URL-only analysis without a crawl report."""
    if not crawl_report:
        return f"""Analyze this website for brand insights: {url}

The page could not be crawled, so work from the domain and URL structure.

Provide analysis covering:
1. Brand positioning based on domain and URL structure
2. Likely industry and target market
3. Key value propositions inferred
4. Professional tone indicators

If this is a known platform (like LinkedIn, Instagram, etc.), note the platform characteristics."""

    return f"""Analyze this website for brand insights: {url}

<crawl_report>
{crawl_report}
</crawl_report>

Using the crawled content above, provide analysis covering:
1. Brand positioning and core message
2. Industry and target market
3. Key value propositions and offers
4. Tone of voice, with short quotes from the page as evidence
5. Calls to action and conversion patterns

If this is a known platform (like LinkedIn, Instagram, etc.), note the platform characteristics.
Start with a one-paragraph overview, then the numbered sections."""


def build_document_prompt(content: str) -> str:
    excerpt = content[:DOCUMENT_PROMPT_CHARS]
    if len(content) > DOCUMENT_PROMPT_CHARS:
        excerpt += "..."
    return f"""Analyze this document content for brand insights:

{excerpt}

Extract:
- Brand mission and values
- Target market information
- Competitive positioning
- Strategic goals
- Key messaging points
- Tone and style indicators"""


def build_social_prompt(content: str) -> str:
    return f"""Analyze this social media content for brand insights:

{content}

Identify:
- Engagement style and conversational tone
- Audience interaction patterns
- Content themes and topics
- Brand personality indicators
- Potential audience demographics
- Call-to-action patterns"""


def build_manual_prompt(content: str) -> str:
    return f"""Summarize and structure this brand information:

{content}

Organize into clear, actionable insights about the brand.
Focus on: brand identity, target audience, value proposition, and key messaging."""
