"""Brand search providers.

Lightweight public lookups (DuckDuckGo instant answers, Wikipedia summaries)
used to ground the LLM brand research in real search results.
"""
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ingestion.rate_limiter import get_rate_limiter

logger = logging.getLogger(__name__)

SEARCH_USER_AGENT = 'BrainiarkOS-Brand-Search/1.0'

INDUSTRY_KEYWORDS = [
    'Technology', 'Software', 'SaaS', 'AI', 'Machine Learning',
    'Marketing', 'Advertising', 'Consulting', 'Agency',
    'E-commerce', 'Retail', 'Fashion', 'Apparel',
    'Finance', 'Banking', 'Fintech', 'Investment',
    'Healthcare', 'Medical', 'Wellness', 'Fitness',
    'Education', 'E-learning', 'Edtech', 'Training',
    'Food', 'Beverage', 'Restaurant', 'Hospitality',
    'Real Estate', 'Property', 'Construction',
    'Entertainment', 'Media', 'Gaming', 'Streaming',
    'Automotive', 'Transportation', 'Logistics',
]

AUDIENCE_RULES = [
    (('b2b', 'business to business'), 'B2B/Enterprise customers'),
    (('b2c', 'consumers'), 'B2C/General consumers'),
    (('startup', 'small business'), 'Startups/Small businesses'),
    (('enterprise', 'corporation'), 'Large enterprises'),
    (('developer', 'technical'), 'Developers/Technical users'),
    (('creative', 'designer'), 'Creative professionals'),
]

TONE_RULES = [
    ('professional', 'Professional/Formal'),
    ('friendly', 'Friendly/Casual'),
    ('innovative', 'Innovative/Forward-thinking'),
    ('luxury', 'Luxury/Premium'),
    ('affordable', 'Affordable/Accessible'),
    ('sustainable', 'Sustainable/Eco-friendly'),
    ('cutting-edge', 'Cutting-edge/Technical'),
    ('simple', 'Simple/Minimalist'),
]


class SearchProvider(ABC):
    """Abstract interface for brand search providers.

    Implementations return standardized results with url, title, snippet,
    source and relevance fields.
    """

    @abstractmethod
    def search(self, query: str, size: int = 1) -> List[Dict[str, Any]]:
        """Execute search and return results.

        Raises:
            requests.RequestException: if the provider is unreachable
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging (e.g., 'DUCKDUCKGO')."""


class DuckDuckGoProvider(SearchProvider):
    """DuckDuckGo instant-answer API."""

    endpoint = 'https://api.duckduckgo.com/'

    def search(self, query: str, size: int = 1) -> List[Dict[str, Any]]:
        params = {'q': f'{query} about company', 'format': 'json', 'no_html': 1, 'skip_disambig': 1}
        get_rate_limiter().wait(self.endpoint)
        resp = requests.get(self.endpoint, params=params, timeout=10, headers={'User-Agent': SEARCH_USER_AGENT})
        resp.raise_for_status()
        data = resp.json()
        if not data.get('Abstract'):
            return []
        return [{
            'title': data.get('Heading') or query,
            'url': data.get('AbstractURL') or '',
            'snippet': data['Abstract'],
            'source': 'duckduckgo',
            'relevance': 0.9,
        }][:size]

    @property
    def name(self) -> str:
        return 'DUCKDUCKGO'


class WikipediaProvider(SearchProvider):
    """Wikipedia REST page summary."""

    endpoint = 'https://en.wikipedia.org/api/rest_v1/page/summary/'

    def search(self, query: str, size: int = 1) -> List[Dict[str, Any]]:
        url = self.endpoint + quote(query)
        get_rate_limiter().wait(url)
        resp = requests.get(url, timeout=8, headers={'User-Agent': SEARCH_USER_AGENT})
        resp.raise_for_status()
        data = resp.json()
        if not data.get('extract'):
            return []
        page_url = ((data.get('content_urls') or {}).get('desktop') or {}).get('page') or ''
        return [{
            'title': data.get('title') or query,
            'url': page_url,
            'snippet': data['extract'],
            'source': 'wikipedia',
            'relevance': 0.95,
        }][:size]

    @property
    def name(self) -> str:
        return 'WIKIPEDIA'


def get_default_providers() -> List[SearchProvider]:
    return [DuckDuckGoProvider(), WikipediaProvider()]


def extract_industry_keywords(text: str) -> List[str]:
    lowered = text.lower()
    return [industry for industry in INDUSTRY_KEYWORDS if industry.lower() in lowered]


def extract_audience_signals(text: str) -> List[str]:
    lowered = text.lower()
    signals = [label for keys, label in AUDIENCE_RULES if any(k in lowered for k in keys)]
    return signals or ['General audience']


def extract_tone_signals(text: str) -> List[str]:
    lowered = text.lower()
    signals = [label for keyword, label in TONE_RULES if keyword in lowered]
    return signals or ['Professional brand communication']


def build_social_profiles(brand_name: str) -> List[Dict[str, str]]:
    """Likely social profile URLs for a brand name (not verified)."""
    compact = re.sub(r'\s+', '', brand_name)
    dashed = re.sub(r'\s+', '-', brand_name.lower())
    platforms = [
        ('twitter', f'https://twitter.com/{compact}'),
        ('linkedin', f'https://linkedin.com/company/{dashed}'),
        ('facebook', f'https://facebook.com/{compact}'),
        ('instagram', f'https://instagram.com/{compact.lower()}'),
    ]
    return [
        {'platform': platform, 'url': url, 'handle': compact, 'description': f'{brand_name} on {platform}'}
        for platform, url in platforms
    ][:3]


def search_brand(brand_name: str, providers: Optional[List[SearchProvider]] = None) -> Dict[str, Any]:
    """Aggregate provider results into a brand search context.

    Provider failures are logged and skipped; the context is always returned.
    """
    logger.info('[SEARCH] Searching for brand: "%s"', brand_name)
    results: List[Dict[str, Any]] = []
    for provider in providers if providers is not None else get_default_providers():
        try:
            results.extend(provider.search(brand_name))
        except (requests.RequestException, ValueError) as e:
            logger.warning('[SEARCH] %s search failed: %s', provider.name, e)

    all_text = '\n\n'.join(f"{r.get('title', '')}. {r.get('snippet', '')}" for r in results)
    logger.info('[SEARCH] Collected %s results for "%s"', len(results), brand_name)

    return {
        'brandName': brand_name,
        'descriptionCandidates': [r['snippet'] for r in results[:3] if r.get('snippet')],
        'industryCandidates': extract_industry_keywords(all_text),
        'audienceSignals': extract_audience_signals(all_text),
        'toneSignals': extract_tone_signals(all_text),
        'rawResults': results,
        'socialProfiles': build_social_profiles(brand_name),
        'foundAt': datetime.utcnow().isoformat(),
    }
