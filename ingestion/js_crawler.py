"""Secondary crawler for client-side rendered brand sites.

Plain HTML extraction on React/Vue/Angular sites often returns little more
than an empty root div. This crawler casts a wider net over content
containers and JSON-LD so the evidence processor has something to analyze.
"""
import json
import logging
import re
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from data.models import JSCrawlResult
from ingestion.rate_limiter import get_rate_limiter
from ingestion.web_crawler import BROWSER_USER_AGENT

logger = logging.getLogger(__name__)

JS_HEADERS = {
    'User-Agent': BROWSER_USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
    'Accept-Encoding': 'gzip, deflate',
    'Connection': 'keep-alive',
    'Upgrade-Insecure-Requests': '1',
    'Cache-Control': 'max-age=0',
}

SIMPLE_HEADERS = {'User-Agent': 'Mozilla/5.0', 'Accept': 'text/html'}

JS_CONTENT_SELECTORS = [
    'div[data-testid]',
    'div[class*="content"]',
    'div[class*="article"]',
    'div[class*="post"]',
    'div[class*="blog"]',
    'main', 'article', 'section',
    'div[role="main"]',
    'div#app', 'div#root', 'div#__next',
]

DEFAULT_TITLE = 'JavaScript-rendered site'
DEFAULT_TEXT = 'JavaScript site detected. Content extraction limited due to client-side rendering.'
MAX_TEXT = 3000
MAX_LINKS = 10


def detect_framework(html: str) -> str:
    if 'react' in html or 'React' in html or '__NEXT_DATA__' in html:
        return 'React'
    if 'vue' in html or 'Vue' in html:
        return 'Vue'
    if 'ng-' in html or 'data-ng-' in html:
        return 'Angular'
    if '__NEXT_DATA__' in html:
        return 'Next.js'
    return 'Unknown'


def _extract_text(soup: BeautifulSoup) -> str:
    extracted = ''
    for selector in JS_CONTENT_SELECTORS:
        elements = soup.select(selector)
        if elements:
            text = ' '.join(el.get_text() for el in elements)
            if len(text) > len(extracted):
                extracted = text

    if len(extracted) < 200:
        extracted = ' '.join(p.get_text() for p in soup.find_all('p'))

    if len(extracted) < 100 and soup.body is not None:
        body = re.sub(r'\s+', ' ', soup.body.get_text())
        body = re.sub(r'[^\w\s.,!?\-]', ' ', body)
        extracted = re.sub(r'\s{2,}', ' ', body).strip()

    return extracted


def _last_structured_data(soup: BeautifulSoup):
    found = None
    for script in soup.select('script[type="application/ld+json"]'):
        try:
            found = json.loads(script.string or script.get_text() or '')
        except (ValueError, TypeError):
            continue
    return found


def crawl_javascript_site(url: str) -> JSCrawlResult:
    logger.info('[JS-CRAWLER] Attempting to crawl JavaScript site: %s', url)
    limiter = get_rate_limiter()

    try:
        limiter.wait(url)
        resp = requests.get(url, headers=JS_HEADERS, timeout=15, allow_redirects=True)
        resp.raise_for_status()
        html = resp.text
        soup = BeautifulSoup(html, 'lxml')

        title = soup.title.get_text().strip() if soup.title else ''
        desc_tag = soup.select_one('meta[name="description"]') or soup.select_one('meta[property="og:description"]')
        description = desc_tag.get('content', '') if desc_tag else ''
        keywords_tag = soup.select_one('meta[name="keywords"]')
        keywords = [k.strip() for k in (keywords_tag.get('content', '') if keywords_tag else '').split(',') if k.strip()]
        headings = {level: [h.get_text().strip() for h in soup.find_all(level)] for level in ('h1', 'h2', 'h3')}

        links = []
        for anchor in soup.select('a[href]'):
            href = anchor.get('href') or ''
            if href and not href.startswith('#') and not href.startswith('javascript:'):
                try:
                    links.append(urljoin(url, href))
                except ValueError:
                    continue

        text = _extract_text(soup)

        structured = _last_structured_data(soup)
        if isinstance(structured, dict):
            logger.info('[JS-CRAWLER] Found structured data for %s', url)
            if structured.get('name') and not title:
                text += f"\n\nBrand: {structured['name']}"
            if structured.get('description'):
                text += f"\n\nDescription: {structured['description']}"
            if structured.get('keywords'):
                text += f"\n\nKeywords: {structured['keywords']}"

        framework = detect_framework(html)
        clean = re.sub(r'\s+', ' ', text[:MAX_TEXT]).strip()

        result = JSCrawlResult(
            success=True,
            url=url,
            title=title or DEFAULT_TITLE,
            description=description,
            text=clean or DEFAULT_TEXT,
            keywords=keywords,
            headings=headings,
            links=links[:MAX_LINKS],
        )
        logger.info('[JS-CRAWLER] Extracted %s chars from %s (framework=%s, structured_data=%s)',
                    len(result.text), url, framework, structured is not None)
        return result

    except Exception as e:
        logger.error('[JS-CRAWLER] Failed to crawl %s: %s', url, e)
        try:
            logger.info('[JS-CRAWLER] Retrying with simpler request...')
            limiter.wait(url)
            resp = requests.get(url, headers=SIMPLE_HEADERS, timeout=10)
            resp.raise_for_status()
            soup = BeautifulSoup(resp.text, 'lxml')
            title = soup.title.get_text().strip() if soup.title else ''
            return JSCrawlResult(
                success=True,
                url=url,
                title=title,
                text=f'JavaScript-rendered website. Minimal content extracted. Title: {title}',
            )
        except Exception:
            return JSCrawlResult(success=False, url=url, error=f'Failed to crawl JavaScript site: {e}')


def detect_javascript_site(html: str) -> bool:
    """Regex heuristic for client-side rendered pages."""
    body_match = re.search(r'<body[^>]*>([\s\S]*?)</body>', html, re.IGNORECASE)
    body_text = re.sub(r'<[^>]+>', '', body_match.group(1)).strip() if body_match else ''

    indicators = [
        re.search(r'react', html, re.IGNORECASE),
        '__NEXT_DATA__' in html,
        re.search(r'webpack', html, re.IGNORECASE),
        re.search(r'vue', html, re.IGNORECASE),
        re.search(r'v-[\w-]+', html, re.IGNORECASE),
        re.search(r'ng-[\w-]+', html, re.IGNORECASE),
        re.search(r'data-ng', html, re.IGNORECASE),
        re.search(r'single[\s-]*page[\s-]*application', html, re.IGNORECASE),
        re.search(r'spa', html, re.IGNORECASE) and html.find('spa') < 1000,
        len(body_text) < 200,
        re.search(r'<div[^>]*id=["\'](app|root|__next)["\']', html, re.IGNORECASE),
        re.search(r'<div[^>]*data-reactroot', html, re.IGNORECASE),
    ]
    return any(bool(i) for i in indicators)
