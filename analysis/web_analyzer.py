"""
GPT-powered brand research.

Runs the multi-stage research pipeline for a brand name: a grounded web
research report, a page extraction report, structured insight extraction
and finally the deep Brand Brain synthesis. Every stage degrades to
templated content rather than failing the caller.
"""

import json
import logging
import re
import time
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from analysis.brand_analysis import (
    coerce_analysis,
    create_fallback_analysis,
    enhance_analysis_with_fallbacks,
    flatten_list_section,
    missing_fields,
    stringify_value,
)
from analysis.llm_client import ChatClient, get_client
from config.settings import SETTINGS
from data.models import (
    BrandAnalysisResult,
    BrandInsights,
    CrawledPage,
    SearchResult,
    WebSearchResult,
)
from ingestion.brand_search import search_brand
from prompts.brand_analysis import (
    BRAINIARK_ANALYSIS_SYSTEM,
    CRAWL_CONTEXT_CHARS,
    CRAWL_SYSTEM,
    INSIGHTS_SYSTEM,
    SEARCH_SYSTEM,
    build_analysis_prompt,
    build_crawl_prompt,
    build_insights_prompt,
    build_search_prompt,
)

logger = logging.getLogger(__name__)

RESEARCH_SOURCES = ['web_search', 'website_crawling', 'social_media_analysis', 'news_aggregation']

MAX_CRAWLED_PAGES = 6
MAX_LIST_ITEMS = 10
RELEVANCE_START = 0.95
RELEVANCE_STEP = 0.05
RELEVANCE_FLOOR = 0.5

MARKDOWN_LINK_RE = re.compile(r'\[([^\]]+)\]\((https?://[^\s)]+)\)')
BARE_URL_RE = re.compile(r'https?://[^\s)\]>"\'<]+')
HEADING_RE = re.compile(r'^\s*#{1,6}\s+(.+?)\s*$', re.M)
NUMBERED_TITLE_RE = re.compile(r'^\s*\**\s*\d+[.)]\s+(.+?)\s*$', re.M)

SOURCE_HOSTS = [
    ('linkedin', ('linkedin.com',)),
    ('reviews', ('trustpilot', 'g2.com', 'capterra', 'yelp', 'glassdoor', 'review')),
    ('business_intel', ('crunchbase', 'pitchbook', 'owler', 'zoominfo', 'dnb.com', 'bloomberg.com/profile')),
    ('news', ('news', 'press', 'reuters', 'techcrunch', 'forbes', 'bloomberg', 'wsj.com', 'nytimes')),
]

PAGE_TYPE_KEYWORDS = [
    ('about', ('about', 'company', 'team', 'mission', 'story', 'careers')),
    ('contact', ('contact', 'support')),
    ('blog', ('blog', 'news', 'article', 'press', 'insights')),
    ('product', ('product', 'service', 'pricing', 'feature', 'solution', 'shop')),
    ('homepage', ('homepage', 'home page', 'home')),
]

# Insight JSON keys, normalized to lowercase alphanumerics
INSIGHT_KEY_MAP = {
    'companyinfo': 'company_info',
    'companyinformation': 'company_info',
    'publicpresence': 'public_presence',
    'competitors': 'competitors',
    'competitivelandscape': 'competitors',
    'industry': 'industry',
    'audiencesignals': 'audience_signals',
    'targetaudience': 'audience_signals',
    'tonesignals': 'tone_signals',
    'brandidentity': 'tone_signals',
    'marketposition': 'market_position',
    'marketpositioning': 'market_position',
    'keymessages': 'key_messages',
}
INSIGHT_LIST_FIELDS = ('competitors', 'audience_signals', 'tone_signals', 'key_messages')


def _complete(client: ChatClient, system_prompt: str, user_prompt: str, max_tokens: int,
              temperature: float, usage: Optional[List[int]] = None) -> str:
    result = client.chat(
        [{'role': 'system', 'content': system_prompt}, {'role': 'user', 'content': user_prompt}],
        max_tokens=max_tokens,
        temperature=temperature,
        operation='brand_research',
    )
    if usage is not None:
        usage.append((result.get('usage') or {}).get('total_tokens', 0))
    return result.get('content') or ''


# ---------------------------------------------------------------------------
# Text extraction helpers
# ---------------------------------------------------------------------------

def extract_section(text: str, section: str) -> str:
    """Text from a section heading up to the next blank line, heading removed."""
    match = re.search(f'{re.escape(section)}[\\s\\S]*?\\n\\n', text, re.I)
    if not match:
        return ''
    return re.sub(f'^{re.escape(section)}\\s*', '', match.group(0), flags=re.I).strip()


def extract_list(text: str, section: str) -> List[str]:
    content = extract_section(text, section)
    if not content:
        return []
    items = [re.sub(r'^[•\-*\d.]+\s*', '', line).strip() for line in content.split('\n')]
    return [item for item in items if item and ':' not in item][:MAX_LIST_ITEMS]


def extract_value(text: str, key: str) -> str:
    match = re.search(f'{re.escape(key)}[\\s:]+([^\\n]+)', text, re.I)
    return match.group(1).strip() if match else ''


def _insights_from_json(data: Dict[str, Any]) -> BrandInsights:
    insights = BrandInsights()
    for key, value in data.items():
        field_name = INSIGHT_KEY_MAP.get(re.sub(r'[^a-z0-9]', '', str(key).lower()))
        if not field_name:
            continue
        if field_name in INSIGHT_LIST_FIELDS:
            setattr(insights, field_name, flatten_list_section(value))
        else:
            setattr(insights, field_name, stringify_value(value))
    return insights


def extract_brand_insights(search_report: str, crawl_report: str, brand_name: str,
                           client: Optional[ChatClient] = None,
                           usage: Optional[List[int]] = None) -> BrandInsights:
    client = client or get_client()
    try:
        response = _complete(
            client,
            INSIGHTS_SYSTEM,
            build_insights_prompt(brand_name, search_report, crawl_report),
            max_tokens=SETTINGS.get('analysis_max_tokens', 2000),
            temperature=SETTINGS.get('analysis_temperature', 0.3),
            usage=usage,
        )
    except Exception as e:
        logger.error(f"[GPT-WEB] Insights extraction failed: {e}")
        return BrandInsights(
            company_info=search_report[:300],
            public_presence='Based on search results',
            competitors=['Industry peers and market leaders'],
            industry='Multiple sectors possible based on web presence',
            audience_signals=['Broad target audience'],
            tone_signals=['Professional communication style'],
            market_position='Market position not clearly defined',
            key_messages=['Value proposition based on web content'],
        )

    json_match = re.search(r'\{[\s\S]*\}', response)
    if json_match:
        try:
            data = json.loads(json_match.group(0))
            if isinstance(data, dict):
                return _insights_from_json(data)
        except json.JSONDecodeError:
            logger.warning('[GPT-WEB] Failed to parse insights as JSON, using text extraction')

    return BrandInsights(
        company_info=extract_section(response, 'COMPANY INFORMATION') or search_report[:500],
        public_presence=extract_section(response, 'PUBLIC PRESENCE') or 'Moderate online presence based on available data',
        competitors=extract_list(response, 'COMPETITORS') or ['Industry competitors identified'],
        industry=extract_value(response, 'industry') or 'Technology/Services',
        audience_signals=extract_list(response, 'TARGET AUDIENCE') or ['General consumer/business audience'],
        tone_signals=extract_list(response, 'BRAND IDENTITY') or ['Professional', 'Modern'],
        market_position=extract_section(response, 'MARKET POSITIONING') or 'Established player in their sector',
        key_messages=extract_list(response, 'KEY MESSAGES') or ['Quality', 'Innovation', 'Customer focus'],
    )


# ---------------------------------------------------------------------------
# Report parsing
# ---------------------------------------------------------------------------

def classify_source(url: str) -> str:
    lowered = url.lower()
    for source, needles in SOURCE_HOSTS:
        if any(n in lowered for n in needles):
            return source
    return 'web_search'


def _host_title(url: str) -> str:
    host = urlparse(url).netloc
    return host[4:] if host.startswith('www.') else host


def _line_containing(report: str, needle: str) -> str:
    for line in report.splitlines():
        if needle in line:
            text = MARKDOWN_LINK_RE.sub(r'\1', line)
            text = re.sub(r'^[\s#>*\-•\d.)]+', '', text)
            return re.sub(r'\s+', ' ', text).strip()[:300]
    return ''


def parse_search_results(report: str, brand_name: str,
                         provider_results: Optional[List[Dict[str, Any]]] = None) -> List[SearchResult]:
    """Search results from provider hits plus every URL cited in the report."""
    results: List[SearchResult] = []
    seen = set()

    for hit in provider_results or []:
        url = hit.get('url') or ''
        if url and url in seen:
            continue
        seen.add(url)
        results.append(SearchResult(
            title=hit.get('title') or brand_name,
            url=url,
            snippet=hit.get('snippet') or '',
            source=hit.get('source') or classify_source(url),
        ))

    cited = [(title.strip(), url) for title, url in MARKDOWN_LINK_RE.findall(report)]
    cited.extend(('', url) for url in BARE_URL_RE.findall(report))

    for title, url in cited:
        url = url.rstrip('.,;:')
        if url in seen:
            continue
        seen.add(url)
        results.append(SearchResult(
            title=title or _host_title(url),
            url=url,
            snippet=_line_containing(report, url),
            source=classify_source(url),
        ))

    for index, result in enumerate(results):
        result.relevance = round(max(RELEVANCE_FLOOR, RELEVANCE_START - RELEVANCE_STEP * index), 2)
    return results


def classify_page_type(title: str, url: str) -> str:
    path = urlparse(url).path if url else ''
    haystack = f'{title} {path}'.lower()
    for page_type, keywords in PAGE_TYPE_KEYWORDS:
        if any(k in haystack for k in keywords):
            return page_type
    if url and path.strip('/') == '':
        return 'homepage'
    return 'other'


def _split_sections(report: str):
    pattern = HEADING_RE if HEADING_RE.search(report) else NUMBERED_TITLE_RE
    matches = list(pattern.finditer(report))
    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(report)
        yield match.group(1), report[match.end():end]


def parse_crawled_pages(report: str) -> List[CrawledPage]:
    """Split the page extraction report into at most six crawled pages."""
    pages = []
    for raw_title, body in _split_sections(report):
        title = raw_title.strip('*_ ').rstrip(':').strip()
        urls = BARE_URL_RE.findall(body) or BARE_URL_RE.findall(raw_title)
        url = urls[0].rstrip('.,;:') if urls else ''
        lines = [line for line in body.splitlines() if not re.match(r'^\s*[\-*]?\s*\**URL\**\s*:', line, re.I)]
        content = re.sub(r'\s+', ' ', '\n'.join(lines)).strip()
        if not url and not content:
            continue
        pages.append(CrawledPage(
            url=url,
            title=MARKDOWN_LINK_RE.sub(r'\1', title),
            content=content,
            page_type=classify_page_type(title, url),
            crawled_at=datetime.utcnow(),
        ))
        if len(pages) >= MAX_CRAWLED_PAGES:
            break
    return pages


# ---------------------------------------------------------------------------
# Research pipeline
# ---------------------------------------------------------------------------

def perform_gpt_web_search(brand_name: str, client: Optional[ChatClient] = None,
                           providers=None, usage: Optional[List[int]] = None) -> WebSearchResult:
    """Run the search, page extraction and insight stages for a brand.

    Never raises; failures return ``success=False`` with placeholder insights.
    """
    logger.info(f'[GPT-WEB] Starting GPT web search for: "{brand_name}"')
    start = time.monotonic()
    model = SETTINGS.get('openai_model', 'gpt-4o')

    try:
        client = client or get_client()
        model = client.default_model

        grounding = search_brand(brand_name, providers)
        provider_results = grounding['rawResults']

        search_report = _complete(
            client, SEARCH_SYSTEM, build_search_prompt(brand_name, provider_results),
            max_tokens=4000, temperature=0.2, usage=usage,
        )
        logger.info(f'[GPT-WEB] Search completed: {len(search_report)} chars')

        crawl_report = _complete(
            client, CRAWL_SYSTEM, build_crawl_prompt(brand_name, search_report[:CRAWL_CONTEXT_CHARS]),
            max_tokens=5000, temperature=0.3, usage=usage,
        )
        logger.info(f'[GPT-WEB] Website crawling completed: {len(crawl_report)} chars')

        insights = extract_brand_insights(search_report, crawl_report, brand_name, client=client, usage=usage)
        search_results = parse_search_results(search_report, brand_name, provider_results)
        crawled_pages = parse_crawled_pages(crawl_report)

        return WebSearchResult(
            success=True,
            brand_name=brand_name,
            search_results=search_results,
            crawled_pages=crawled_pages,
            insights=insights,
            search_performed_at=datetime.utcnow(),
            sources=list(RESEARCH_SOURCES),
            analysis_duration_ms=int((time.monotonic() - start) * 1000),
            gpt_model=model,
        )
    except Exception as e:
        logger.error(f'[GPT-WEB] GPT web search failed: {e}')
        return WebSearchResult(
            success=False,
            brand_name=brand_name,
            insights=BrandInsights(
                company_info=f'GPT web search failed. Error: {e}',
                public_presence='Unable to gather public presence data',
                industry='Unknown',
                market_position='Unable to determine',
            ),
            search_performed_at=datetime.utcnow(),
            analysis_duration_ms=int((time.monotonic() - start) * 1000),
            gpt_model=model,
        )


def _strip_code_fences(text: str) -> str:
    text = re.sub(r'```json\s*', '', text.strip())
    return re.sub(r'```\s*', '', text).strip()


def generate_deep_brand_analysis(brand_name: str, user_evidence: List[str], search_data: WebSearchResult,
                                 client: Optional[ChatClient] = None,
                                 usage: Optional[List[int]] = None) -> Dict[str, Any]:
    client = client or get_client()
    response = ''
    try:
        response = _complete(
            client,
            BRAINIARK_ANALYSIS_SYSTEM,
            build_analysis_prompt(brand_name, user_evidence, search_data),
            max_tokens=SETTINGS.get('analysis_max_tokens', 2000),
            temperature=SETTINGS.get('analysis_temperature', 0.3),
            usage=usage,
        )
        parsed = json.loads(_strip_code_fences(response))
        if not isinstance(parsed, dict):
            raise ValueError('Analysis response is not a JSON object')
    except Exception as e:
        logger.error(f'[GPT-ANALYSIS] Failed to parse analysis response: {e}. Preview: {response[:500]!r}')
        return coerce_analysis(create_fallback_analysis(brand_name, search_data))

    missing = missing_fields(parsed)
    if missing:
        logger.warning(f"[GPT-ANALYSIS] Missing required fields: {', '.join(missing)}")
        parsed = enhance_analysis_with_fallbacks(parsed, brand_name, search_data)
    return coerce_analysis(parsed)


def perform_gpt_brand_analysis(brand_name: str, user_evidence: Optional[List[str]] = None,
                               client: Optional[ChatClient] = None, providers=None) -> BrandAnalysisResult:
    """Web research plus Brand Brain synthesis for a brand.

    Args:
        brand_name: Brand to research
        user_evidence: Analyzed evidence texts to combine with the research
        client: Optional ChatClient; the process-wide client is used otherwise
        providers: Optional search providers used to ground the research

    Returns:
        BrandAnalysisResult; ``success`` is False and ``analysis`` None when
        the research stage failed
    """
    user_evidence = list(user_evidence or [])
    logger.info(f'[GPT-ANALYSIS] Starting comprehensive analysis for: "{brand_name}"')
    start = time.monotonic()
    usage: List[int] = []

    try:
        search_data = perform_gpt_web_search(brand_name, client=client, providers=providers, usage=usage)
        if not search_data.success:
            raise RuntimeError('GPT web search failed to gather sufficient data')

        logger.info(
            f'[GPT-ANALYSIS] Web research completed: {search_data.total_results} results, '
            f'{search_data.crawled_count} pages'
        )
        analysis = generate_deep_brand_analysis(brand_name, user_evidence, search_data, client=client, usage=usage)
        duration = int((time.monotonic() - start) * 1000)
        logger.info(f'[GPT-ANALYSIS] Comprehensive analysis completed in {duration}ms')

        return BrandAnalysisResult(
            success=True,
            analysis=analysis,
            search_data=search_data,
            raw_data={
                'searchReport': f'Search completed with {search_data.total_results} results',
                'crawlReport': f'Crawled {search_data.crawled_count} key pages',
                'analysisPrompt': 'Deep brand analysis prompt used',
            },
            analysis_duration_ms=duration,
            total_tokens=sum(usage),
            user_evidence_count=len(user_evidence),
        )
    except Exception as e:
        logger.error(f'[GPT-ANALYSIS] Comprehensive analysis failed: {e}')
        duration = int((time.monotonic() - start) * 1000)
        return BrandAnalysisResult(
            success=False,
            analysis=None,
            search_data=WebSearchResult(
                success=False,
                brand_name=brand_name,
                insights=BrandInsights(company_info=f'Analysis failed: {e}'),
                analysis_duration_ms=duration,
                gpt_model=SETTINGS.get('openai_model', 'gpt-4o'),
            ),
            raw_data={'searchReport': '', 'crawlReport': '', 'analysisPrompt': ''},
            analysis_duration_ms=duration,
            total_tokens=sum(usage),
            user_evidence_count=len(user_evidence),
        )
