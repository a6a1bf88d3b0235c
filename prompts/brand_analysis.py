"""
Brand Analysis Prompts

Prompts for the multi-stage brand research pipeline: web research,
page extraction, insight extraction and the final Brand Brain synthesis.
"""

from typing import Any, Dict, List

# =============================================================================
# STAGE 1: WEB RESEARCH
# =============================================================================

SEARCH_SYSTEM = (
    "You have web search capabilities. Perform thorough internet research and provide detailed, "
    "structured findings with specific URLs and sources."
)


def _format_provider_results(provider_results: List[Dict[str, Any]]) -> str:
    lines = []
    for i, result in enumerate(provider_results, 1):
        lines.append(f"{i}. {result.get('title', '')} ({result.get('source', 'web')})")
        if result.get('url'):
            lines.append(f"   URL: {result['url']}")
        if result.get('snippet'):
            lines.append(f"   {result['snippet'][:600]}")
    return "\n".join(lines)


def build_search_prompt(brand_name: str, provider_results: List[Dict[str, Any]] = None) -> str:
    grounding = ""
    if provider_results:
        grounding = f"""
VERIFIED SEARCH RESULTS (start from these):
{_format_provider_results(provider_results)}
"""

    return f"""You are a professional brand researcher with web search capabilities.

Search the internet comprehensively for information about: "{brand_name}"
{grounding}
SEARCH STRATEGY:
1. Look for official company website and About page
2. Find news articles, press releases, and media coverage
3. Identify social media profiles (LinkedIn, Twitter/X, Instagram, Facebook)
4. Look for industry reports, market analysis, and competitor information
5. Find customer reviews and testimonials
6. Identify company leadership and team information
7. Gather information about products/services, pricing, and features
8. Find mission/vision/values statements
9. Look for company history, funding, and milestones
10. Search for partnerships, collaborations, and industry recognition

SEARCH CRITERIA:
- Prioritize recent information (last 2 years)
- Focus on credible sources
- Cite specific URLs as markdown links: [Title](https://...)
- Look for both positive and negative information

Return a structured report with:
1. Search summary and methodology
2. Key findings with URLs
3. Source credibility assessment
4. Information gaps identified
5. Recommended next steps for deeper research"""


# =============================================================================
# STAGE 2: PAGE EXTRACTION
# =============================================================================

CRAWL_SYSTEM = (
    "You have web browsing capabilities. Visit websites, extract structured content, "
    "and analyze brand elements."
)

CRAWL_CONTEXT_CHARS = 3000


def build_crawl_prompt(brand_name: str, search_report: str) -> str:
    return f"""Based on your search results for "{brand_name}", browse and extract content from the most important websites.

CRITICAL PAGES TO CRAWL:
1. Official website homepage
2. About Us / Company page
3. Products/Services pages (main offerings)
4. Blog or News section (latest 3-5 articles)
5. Careers/Team page (if available)
6. Contact/Support page

EXTRACTION REQUIREMENTS FOR EACH PAGE:
- Page title and meta description
- Main content text (paragraphs, headings, key messages)
- Brand voice and tone indicators
- Target audience cues and language
- Value propositions and unique selling points
- Call-to-action patterns
- Social proof elements (testimonials, case studies)

ANALYSIS FOCUS:
- How does the brand present itself?
- What problems do they solve for customers?
- Who is their ideal customer?
- What is their competitive advantage?

Format each page as its own section starting with a markdown heading
("### Page title") followed by a "URL: ..." line, then the extracted content.

Search results to guide crawling:
{search_report[:CRAWL_CONTEXT_CHARS]}"""


# =============================================================================
# STAGE 3: INSIGHT EXTRACTION
# =============================================================================

INSIGHTS_SYSTEM = (
    "You are a senior brand intelligence analyst skilled at extracting strategic insights from web data."
)

INSIGHTS_CONTEXT_CHARS = 2000


def build_insights_prompt(brand_name: str, search_report: str, crawl_report: str) -> str:
    return f"""You are a brand intelligence analyst. Analyze these search and crawl results for "{brand_name}":

SEARCH RESULTS SUMMARY:
{search_report[:INSIGHTS_CONTEXT_CHARS]}

WEBSITE CRAWL DATA:
{crawl_report[:INSIGHTS_CONTEXT_CHARS]}

EXTRACT STRUCTURED INSIGHTS:

1. COMPANY INFORMATION: mission, values, sector, size indicators, history
2. PUBLIC PRESENCE: visibility, social platforms, media coverage, review sentiment
3. COMPETITORS: 3-5 main competitors with a short description each
4. INDUSTRY: the primary industry or market sector
5. TARGET AUDIENCE: primary customers, needs and pain points
6. BRAND IDENTITY: personality adjectives, communication style, emotional tone
7. MARKET POSITIONING: how the brand positions itself against its market
8. KEY MESSAGES: recurring claims and value propositions

Return a JSON object with these keys:
{{
  "companyInfo": "string",
  "publicPresence": "string",
  "competitors": ["string"],
  "industry": "string",
  "audienceSignals": ["string"],
  "toneSignals": ["string"],
  "marketPosition": "string",
  "keyMessages": ["string"]
}}"""


# =============================================================================
# STAGE 4: BRAND BRAIN SYNTHESIS
# =============================================================================

BRAINIARK_ANALYSIS_SYSTEM = """You are Brainiark AI, a senior brand strategist with expertise in comprehensive brand analysis.

CRITICAL INSTRUCTIONS:
1. You MUST analyze ALL provided evidence thoroughly
2. Base ALL insights DIRECTLY on the evidence provided
3. Use BOTH user evidence and internet search results
4. Return a COMPLETE JSON object with ALL required fields
5. Do NOT return empty arrays or strings
6. Be SPECIFIC and ACTIONABLE
7. Reference specific evidence sources when possible
8. Include measurable outcomes and success metrics
9. Connect insights between different evidence pieces
10. Think strategically about market context and trends

Return ONLY the JSON object. Do not include any explanatory text before or after."""

EVIDENCE_ITEM_CHARS = 500


def _bullets(items, empty: str, numbered: bool = False) -> str:
    if not items:
        return empty
    if numbered:
        return "\n".join(f"{i}. {item}" for i, item in enumerate(items, 1))
    return "\n".join(f"• {item}" for item in items)


def build_analysis_prompt(brand_name: str, user_evidence: List[str], search_data) -> str:
    """Brand Brain synthesis prompt.

    Args:
        brand_name: Workspace brand name
        user_evidence: Analyzed evidence texts; each is capped at 500 chars
        search_data: ``WebSearchResult`` from the web research stage
    """
    if user_evidence:
        items = []
        for i, ev in enumerate(user_evidence, 1):
            excerpt = ev[:EVIDENCE_ITEM_CHARS] + ("..." if len(ev) > EVIDENCE_ITEM_CHARS else "")
            items.append(f"[{i}] {excerpt}")
        evidence_text = f"USER-PROVIDED EVIDENCE ({len(user_evidence)} items):\n" + "\n\n".join(items) + "\n\n"
    else:
        evidence_text = "USER-PROVIDED EVIDENCE: None (analysis based solely on GPT-powered internet research)\n\n"

    if search_data is not None and search_data.success:
        insights = search_data.insights
        highlights = "\n".join(
            f"[{page.page_type}] {page.title}: {page.content[:150]}..."
            for page in search_data.crawled_pages[:3]
        )
        search_summary = f"""GPT-POWERED INTERNET RESEARCH RESULTS:
• Search Results: {search_data.total_results} sources analyzed
• Crawled Pages: {search_data.crawled_count} key pages extracted
• Sources Used: {', '.join(search_data.sources)}
• Industry: {insights.industry or 'Multiple sectors identified'}
• Market Position: {insights.market_position or 'Establishing presence'}
• Public Presence: {insights.public_presence or 'Developing online footprint'}

KEY INSIGHTS FROM WEB RESEARCH:
{insights.company_info or 'Company information gathered from multiple sources'}

COMPETITIVE LANDSCAPE:
{_bullets(insights.competitors, 'Competitive analysis in progress', numbered=True)}

AUDIENCE SIGNALS:
{_bullets(insights.audience_signals, 'Audience analysis based on market positioning')}

BRAND TONE INDICATORS:
{_bullets(insights.tone_signals, 'Professional brand communication')}

CRAWLED CONTENT HIGHLIGHTS:
{highlights}
"""
    else:
        search_summary = "INTERNET RESEARCH: Limited data available\n"

    return f"""Brand: {brand_name}
Analysis Context: GPT-powered deep brand analysis combining user evidence with comprehensive internet research.

{evidence_text}
{search_summary}

CREATE A DEEP BRAND BRAIN JSON WITH THE FOLLOWING KEYS:

1. "summary" (string, 3-4 paragraphs): mission, values, history, market position,
   differentiators, challenges and opportunities. Reference specific evidence.

2. "audience" (string): primary persona, 2-3 secondary segments, pain points and
   aspirations, buying journey, communication preferences.

3. "tone" (string): 5-7 personality adjectives with examples, formal/casual balance,
   do's and don'ts, example phrases, brand archetype with justification.

4. "pillars" (array of 4-6 strings): strategic content pillars. Each string is
   "Pillar name: theme, sub-themes and priority".

5. "recommendations" (array of 5-7 strings): actionable strategies with timeline
   (Immediate/Short-term/Long-term) and expected outcome.

6. "offers" (string): core products/services, pricing strategy, 3-5 unique selling
   propositions, customer outcomes.

7. "competitors" (array of 5-8 strings): "Competitor: position and how to differentiate".

8. "channels" (array of strings): "Channel: rationale, tactics and posting frequency".

IMPORTANT: All insights must be evidence-based, specific, measurable, and actionable.
Reference the provided research where applicable."""
