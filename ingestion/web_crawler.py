"""Website crawler for brand evidence.

Fetches a brand website with a chain of increasingly forgiving strategies
(browser headers, Googlebot, JS rendering) and extracts the content the
brand analysis prompts need: metadata, headings, readable body text, links,
social meta tags and JSON-LD.

``crawl_website`` never raises. Failures come back as a ``WebsiteData`` with
``status_code`` 500 and ``error`` set so callers can still build a report.
"""
from __future__ import annotations

import json
import logging
import re
import time
from typing import List, Optional
from urllib.parse import urljoin, urlparse, urlunparse

import requests
from bs4 import BeautifulSoup

from config.settings import SETTINGS
from data.models import WebsiteData
from ingestion.playwright_manager import get_browser_manager, playwright_available
from ingestion.rate_limiter import get_rate_limiter

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)
GOOGLEBOT_USER_AGENT = 'Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)'

STANDARD_HEADERS = {
    'User-Agent': BROWSER_USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
    'Cache-Control': 'max-age=0',
}

GOOGLEBOT_HEADERS = {
    'User-Agent': GOOGLEBOT_USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8',
}

RENDER_HEADERS = {
    'User-Agent': BROWSER_USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Sec-Fetch-Dest': 'document',
    'Sec-Fetch-Mode': 'navigate',
    'Sec-Fetch-Site': 'none',
    'Sec-Fetch-User': '?1',
    'Upgrade-Insecure-Requests': '1',
    'Cache-Control': 'max-age=0',
}

MAX_REDIRECTS = 5
MAX_MAIN_CONTENT = 15000
MAX_LINKS = 50
MAX_IMAGES = 20

CONTENT_SELECTORS = [
    'main', 'article', '#content', '.content', '#main', '.main',
    '[role="main"]', '.post-content', '.article-content', '.entry-content',
]
CONTAINER_SELECTORS = ['div.container', 'div.wrapper', 'section', 'div#page', 'div.page']
NON_CONTENT_TAGS = [
    'script', 'style', 'nav', 'footer', 'header', 'aside', 'iframe', 'noscript',
    'svg', 'form', 'button', 'input', 'select', 'textarea',
]

JS_SITE_NOTICE = 'JavaScript-rendered website detected. Content extraction limited.'
CRAWL_REPORT_MARKER = 'WEBSITE CRAWL RESULTS'

_DISALLOWED_CHARS = re.compile(r"[^\w\s.,!?@#%&*()\-+:;'\"/\\|<>\[\]{}=$£€¥₹¢~`]")
_SUFFIX_RE = re.compile(r'(?:[^laeiouy]es|ed|[^laeiouy]e)$')
_VOWEL_GROUP_RE = re.compile(r'[aeiouy]{1,2}')


class FetchError(Exception):
    """Raised when every fetch strategy failed for a URL."""


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------

def clean_text(text: Optional[str]) -> str:
    """Collapse whitespace and replace unusual symbols with spaces."""
    if not text:
        return ''
    text = re.sub(r'\s+', ' ', text)
    text = _DISALLOWED_CHARS.sub(' ', text)
    return re.sub(r'\s{2,}', ' ', text).strip()


def count_words(text: Optional[str]) -> int:
    return len([w for w in re.split(r'\s+', text or '') if w])


def count_syllables(text: str) -> int:
    total = 0
    for word in re.split(r'\s+', (text or '').lower()):
        if len(word) <= 3:
            total += 1
            continue
        cleaned = _SUFFIX_RE.sub('', word)
        cleaned = re.sub(r'^y', '', cleaned)
        groups = _VOWEL_GROUP_RE.findall(cleaned)
        total += len(groups) if groups else 1
    return total


def calculate_reading_level(text: str) -> str:
    """Flesch-Kincaid grade bucketed into a human readable label."""
    words = count_words(text)
    sentences = len(re.split(r'[.!?]+', text or ''))
    if words == 0 or sentences == 0:
        return 'Unknown'

    syllables = count_syllables(text)
    grade = 0.39 * (words / sentences) + 11.8 * (syllables / words) - 15.59

    if grade <= 6:
        return 'Easy (Elementary)'
    if grade <= 8:
        return 'Moderate (Middle School)'
    if grade <= 10:
        return 'Standard (High School)'
    if grade <= 12:
        return 'Advanced (College)'
    return 'Expert (Professional)'


def validate_url(url: str) -> str:
    """Normalize a user-supplied URL for crawling.

    Drops the query string and defaults the scheme to https.

    Raises:
        ValueError: if no hostname can be parsed
    """
    validated = (url or '').strip().split('?')[0]
    if not validated.startswith(('http://', 'https://')):
        validated = 'https://' + validated

    parsed = urlparse(validated)
    if not parsed.hostname or ' ' in parsed.netloc:
        raise ValueError(f'Invalid URL: {url}')
    return urlunparse((parsed.scheme, parsed.netloc, parsed.path or '/', '', '', parsed.fragment))


def extract_readable_text(element) -> str:
    """Text of ``element`` without navigation, forms and scripts."""
    if element is None:
        return ''
    # Re-parse so decompose() does not mutate the caller's tree
    clone = BeautifulSoup(str(element), 'lxml')
    for tag in clone.find_all(NON_CONTENT_TAGS):
        tag.decompose()
    return clean_text(clone.get_text(' '))


def check_if_javascript_site(soup: BeautifulSoup, html: str) -> bool:
    body = soup.body
    body_text = body.get_text().strip() if body else ''
    indicators = [
        'react' in html or 'React' in html,
        '__NEXT_DATA__' in html,
        soup.select_one('div#__next') is not None,
        'vue' in html or 'Vue' in html,
        soup.select_one('div#app') is not None,
        'ng-' in html or 'data-ng-' in html,
        len(body_text) < 100,
        len(soup.select('script[src*=".js"]')) > 5,
        'single page application' in html or 'SPA' in html,
        soup.select_one('div#root') is not None,
        'webpack' in html,
        'chunk' in html,
    ]
    return any(indicators)


# ---------------------------------------------------------------------------
# Fetch chain
# ---------------------------------------------------------------------------

def _get(url: str, headers: dict, timeout: float) -> requests.Response:
    get_rate_limiter().wait(url)
    with requests.Session() as session:
        session.max_redirects = MAX_REDIRECTS
        return session.get(url, headers=headers, timeout=timeout, allow_redirects=True)


def _fetch_standard(url: str):
    resp = _get(url, STANDARD_HEADERS, timeout=10)
    if not 200 <= resp.status_code < 400:
        raise FetchError(f'Request failed with status code {resp.status_code}')
    return resp.text, resp.status_code


def _fetch_googlebot(url: str):
    resp = _get(url, GOOGLEBOT_HEADERS, timeout=15)
    resp.raise_for_status()
    return resp.text, resp.status_code


def attempt_javascript_rendering(url: str) -> str:
    """Last-resort fetch for sites that block plain clients or render client side.

    Uses the shared Playwright browser when it is enabled, otherwise a
    full-browser-header request. JS-rendered pages are reduced to a minimal
    HTML document carrying the metadata and any partial text. Returns ''
    on failure.
    """
    logger.info('[CRAWLER] Attempting JavaScript rendering for %s', url)

    if SETTINGS.get('playwright_enabled') and playwright_available():
        get_rate_limiter().wait(url)
        rendered = get_browser_manager().render(url, user_agent=BROWSER_USER_AGENT, timeout=20.0)
        if rendered.get('html') and not rendered.get('error'):
            logger.info('[CRAWLER] Rendered %s with Playwright', url)
            return rendered['html']
        logger.warning('[CRAWLER] Playwright render failed for %s: %s', url, rendered.get('error'))

    try:
        resp = _get(url, RENDER_HEADERS, timeout=20)
        resp.raise_for_status()
    except requests.RequestException as e:
        logger.error('[CRAWLER] JavaScript rendering attempt failed: %s', e)
        return ''

    html = resp.text
    soup = BeautifulSoup(html, 'lxml')
    body_text = soup.body.get_text() if soup.body else ''

    is_js_site = any([
        'react' in html or 'React' in html or '__NEXT_DATA__' in html,
        'vue' in html or 'Vue' in html,
        'ng-' in html or 'data-ng-' in html,
        bool(soup.select('div#app, div#root, div#__next')),
        len(body_text.strip()) < 100,
    ])
    if not is_js_site:
        return html

    logger.info('[CRAWLER] %s appears to be a JavaScript-rendered site', url)
    og_title = soup.select_one('meta[property="og:title"]')
    title = (soup.title.get_text() if soup.title else '') or (og_title.get('content', '') if og_title else '')
    desc_tag = soup.select_one('meta[name="description"]') or soup.select_one('meta[property="og:description"]')
    description = desc_tag.get('content', '') if desc_tag else ''

    minimal = BeautifulSoup('<html><head><title></title></head><body></body></html>', 'lxml')
    minimal.title.string = title
    if description:
        meta = minimal.new_tag('meta', attrs={'name': 'description', 'content': description})
        minimal.head.append(meta)
    notice = minimal.new_tag('p')
    notice.string = JS_SITE_NOTICE
    minimal.body.append(notice)

    partial = body_text[:1000]
    if len(partial.strip()) > 50:
        extra = minimal.new_tag('p')
        extra.string = f'Partial content: {clean_text(partial)}'
        minimal.body.append(extra)
    return str(minimal)


def _fetch_html(url: str):
    """Run the fetch chain and return ``(html, status_code)``."""
    try:
        logger.info('[CRAWLER] Attempting standard fetch...')
        html, status = _fetch_standard(url)
        logger.info('[CRAWLER] Standard fetch successful: %s', status)
        return html, status
    except (requests.RequestException, FetchError) as e:
        logger.warning('[CRAWLER] Standard fetch failed: %s', e)

    try:
        logger.info('[CRAWLER] Trying with Googlebot user agent...')
        html, status = _fetch_googlebot(url)
        logger.info('[CRAWLER] Googlebot fetch successful')
        return html, status
    except requests.RequestException as e:
        logger.warning('[CRAWLER] Googlebot fetch also failed: %s', e)

    html = attempt_javascript_rendering(url)
    if not html:
        raise FetchError('All fetch attempts failed')
    return html, 200


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def _meta_content(soup: BeautifulSoup, selector: str) -> Optional[str]:
    tag = soup.select_one(selector)
    return tag.get('content') if tag else None


def _extract_main_content(soup: BeautifulSoup) -> str:
    main_content = ''
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            main_content = extract_readable_text(element)
            if len(main_content) > 200:
                logger.debug('[CRAWLER] Found content with selector: %s', selector)
                break

    if len(main_content) < 200:
        main_content = extract_readable_text(soup.body)

    if len(main_content) < 100:
        for selector in CONTAINER_SELECTORS:
            element = soup.select_one(selector)
            if element is not None:
                text = extract_readable_text(element)
                if len(text) > len(main_content):
                    main_content = text

    if not (count_words(main_content) > 50 or len(main_content) > 200):
        logger.warning('[CRAWLER] Minimal content extracted: %s words, %s chars',
                       count_words(main_content), len(main_content))
        texts = [clean_text(el.get_text()) for el in soup.select('p, h1, h2, h3, h4, li')]
        container_text = ' '.join(t for t in texts if len(t) > 10)
        if len(container_text) > len(main_content):
            main_content = container_text

    return main_content


def _extract_links(soup: BeautifulSoup, base_url: str) -> List[dict]:
    hostname = urlparse(base_url).hostname or ''
    links = []
    for anchor in soup.select('a[href]'):
        href = anchor.get('href') or ''
        if not href or href.startswith('javascript:') or href.startswith('#'):
            continue
        text = clean_text(anchor.get_text())
        if not text:
            continue
        try:
            absolute = urljoin(base_url, href)
        except ValueError:
            continue
        links.append({'text': text, 'url': absolute, 'internal': hostname in absolute})
        if len(links) >= MAX_LINKS:
            break
    return links


def _extract_structured_data(soup: BeautifulSoup) -> list:
    items = []
    for script in soup.select('script[type="application/ld+json"]'):
        try:
            items.append(json.loads(script.string or script.get_text() or ''))
        except (ValueError, TypeError):
            continue
    return items


def parse_website_html(url: str, html: str, status_code: int = 200, load_time: int = 0) -> WebsiteData:
    soup = BeautifulSoup(html, 'lxml')
    is_js_site = check_if_javascript_site(soup, html)
    if is_js_site:
        logger.info('[CRAWLER] Detected JavaScript-rendered site, content may be limited')

    keywords = _meta_content(soup, 'meta[name="keywords"]') or ''
    main_content = _extract_main_content(soup)

    images = []
    for img in soup.select('img[src]'):
        src = img.get('src') or ''
        if src:
            images.append({'src': src, 'alt': clean_text(img.get('alt') or '')})
        if len(images) >= MAX_IMAGES:
            break

    return WebsiteData(
        url=url,
        title=soup.title.get_text().strip() if soup.title else '',
        meta_description=_meta_content(soup, 'meta[name="description"]') or '',
        meta_keywords=[k.strip() for k in keywords.split(',') if k.strip()],
        headings={
            level: [clean_text(h.get_text()) for h in soup.find_all(level)]
            for level in ('h1', 'h2', 'h3')
        },
        body_content=clean_text(soup.body.get_text(' ')) if soup.body else '',
        main_content=main_content[:MAX_MAIN_CONTENT],
        links=_extract_links(soup, url),
        images=images,
        scripts=[s.get('src') or '' for s in soup.select('script[src]')],
        styles=[l.get('href') or '' for l in soup.select('link[rel="stylesheet"]')],
        social_meta={
            'og_title': _meta_content(soup, 'meta[property="og:title"]'),
            'og_description': _meta_content(soup, 'meta[property="og:description"]'),
            'og_image': _meta_content(soup, 'meta[property="og:image"]'),
            'twitter_card': _meta_content(soup, 'meta[name="twitter:card"]'),
            'twitter_site': _meta_content(soup, 'meta[name="twitter:site"]'),
        },
        structured_data=_extract_structured_data(soup),
        load_time=load_time,
        status_code=status_code,
        word_count=count_words(main_content),
        reading_level=calculate_reading_level(main_content),
        is_javascript_site=is_js_site,
    )


def crawl_website(url: str) -> WebsiteData:
    """Crawl ``url`` and extract brand-relevant content. Never raises."""
    start = time.monotonic()
    try:
        validated = validate_url(url)
        logger.info('[CRAWLER] Starting crawl for: %s', validated)

        html, status_code = _fetch_html(validated)
        load_time = int((time.monotonic() - start) * 1000)
        data = parse_website_html(validated, html, status_code=status_code, load_time=load_time)

        logger.info('[CRAWLER] Crawl complete: %s (title=%r, words=%s, status=%s, %sms, js=%s)',
                    validated, data.title[:50], data.word_count, status_code, load_time,
                    data.is_javascript_site)
        return data
    except Exception as e:
        logger.error('[CRAWLER] Crawl failed for %s: %s', url, e)
        return WebsiteData(
            url=url,
            body_content=(
                f'Crawl failed: {e}. This site may require JavaScript or be blocked by security measures.'
            ),
            load_time=int((time.monotonic() - start) * 1000),
            status_code=500,
            reading_level='Unknown',
            error=str(e),
            is_javascript_site=True,
        )


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

def format_crawl_report(data: WebsiteData, js_text: Optional[str] = None, max_content: int = 4000) -> str:
    """Render crawl output as the plain-text block stored on website evidence."""
    lines = [CRAWL_REPORT_MARKER, '=' * len(CRAWL_REPORT_MARKER), f'URL: {data.url}']

    if data.error:
        lines.append(f'Status: FAILED ({data.status_code}, {data.load_time}ms)')
        lines.append(data.body_content)
    else:
        lines.append(f'Status: {data.status_code} ({data.load_time}ms)')

    if data.title:
        lines.append(f'Title: {data.title}')
    if data.meta_description:
        lines.append(f'Description: {data.meta_description}')
    if data.meta_keywords:
        lines.append(f"Keywords: {', '.join(data.meta_keywords)}")
    lines.append(f'Word count: {data.word_count}')
    lines.append(f'Reading level: {data.reading_level}')
    lines.append(f"JavaScript site: {'yes' if data.is_javascript_site else 'no'}")

    heading_lines = [
        f"{level.upper()}: {' | '.join(items[:8])}"
        for level, items in data.headings.items() if items
    ]
    if heading_lines:
        lines.extend(['', 'HEADINGS'] + heading_lines)

    social = {k: v for k, v in (data.social_meta or {}).items() if v}
    if social:
        lines.extend(['', 'SOCIAL META'] + [f'{k}: {v}' for k, v in social.items()])

    content = data.main_content or ''
    if js_text and len(js_text) > len(content):
        content = js_text
    if content:
        truncated = content[:max_content] + ('...' if len(content) > max_content else '')
        lines.extend(['', 'CONTENT', truncated])

    internal = [l for l in data.links if l.get('internal')][:10]
    if internal:
        lines.extend(['', 'KEY PAGES'] + [f"- {l['text']}: {l['url']}" for l in internal])

    return '\n'.join(lines)
