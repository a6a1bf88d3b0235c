"""
Tests for the GPT brand research pipeline.

The chat client is a MagicMock whose ``chat`` returns canned responses in
call order: search report, page extraction report, insights, Brand Brain.
"""

import json

import pytest
from unittest.mock import MagicMock

from analysis.llm_client import LLMServiceError
from analysis.web_analyzer import (
    classify_page_type,
    classify_source,
    extract_brand_insights,
    generate_deep_brand_analysis,
    parse_crawled_pages,
    parse_search_results,
    perform_gpt_brand_analysis,
    perform_gpt_web_search,
)
from data.models import BrandInsights, WebSearchResult

SEARCH_REPORT = (
    "Acme Rockets is a launch provider.\n"
    "- Official site: [Acme Rockets](https://acme.com/)\n"
    "- Company page on [LinkedIn](https://linkedin.com/company/acme)\n"
    "- Reviewed at https://www.trustpilot.com/review/acme.com.\n"
)

CRAWL_REPORT = """## Homepage
URL: https://acme.com/
Acme builds reusable rockets for small satellites.

## About Us
URL: https://acme.com/about
Founded in 2010 by propulsion engineers.

## Pricing
URL: https://acme.com/pricing
Rideshare seats start at one million dollars.
"""

INSIGHTS_JSON = json.dumps({
    "companyInfo": "Acme builds reusable rockets.",
    "publicPresence": "Strong on LinkedIn",
    "competitors": ["Globex", {"name": "Initech", "strength": "Price"}],
    "industry": "Aerospace",
    "targetAudience": "Satellite operators",
    "toneSignals": ["Confident", "Technical"],
    "marketPosition": "Challenger",
    "keyMessages": ["Reliability"],
})

ANALYSIS = {
    "summary": "Acme Rockets is a challenger launch provider focused on reusable vehicles. " * 3,
    "audience": "Small satellite operators and research institutions needing affordable launch slots.",
    "tone": "Confident, technical, precise",
    "pillars": ["Reliability", "Reusability", "Customer missions", "Engineering culture"],
    "offers": "Dedicated and rideshare launches",
    "competitors": ["Globex", "Initech"],
    "channels": ["LinkedIn", "Trade shows"],
    "recommendations": ["Publish mission recaps", "Launch a customer newsletter"],
}


def _reply(content, tokens=100):
    return {"content": content, "usage": {"total_tokens": tokens}}


def _client(*responses):
    client = MagicMock()
    client.default_model = "gpt-4o-mini"
    client.chat.side_effect = list(responses)
    return client


class TestReportParsing:
    def test_classify_source(self):
        assert classify_source("https://www.linkedin.com/company/acme") == "linkedin"
        assert classify_source("https://www.g2.com/products/acme") == "reviews"
        assert classify_source("https://www.crunchbase.com/organization/acme") == "business_intel"
        assert classify_source("https://techcrunch.com/2024/acme") == "news"
        assert classify_source("https://acme.com/") == "web_search"

    def test_classify_page_type(self):
        assert classify_page_type("About Us", "https://acme.com/about") == "about"
        assert classify_page_type("Pricing", "https://acme.com/pricing") == "product"
        assert classify_page_type("Welcome", "https://acme.com/") == "homepage"
        assert classify_page_type("Random", "https://acme.com/xyz") == "other"

    def test_parse_search_results(self):
        provider_results = [{"title": "Acme", "url": "https://acme.com/", "snippet": "Rockets", "source": "duckduckgo"}]
        results = parse_search_results(SEARCH_REPORT, "Acme Rockets", provider_results)

        urls = [r.url for r in results]
        assert urls == [
            "https://acme.com/",
            "https://linkedin.com/company/acme",
            "https://www.trustpilot.com/review/acme.com",
        ]
        assert results[0].source == "duckduckgo"
        assert results[1].title == "LinkedIn"
        assert results[1].source == "linkedin"
        assert results[2].title == "trustpilot.com"
        assert results[2].source == "reviews"
        assert "Reviewed at" in results[2].snippet
        assert [r.relevance for r in results] == [0.95, 0.9, 0.85]

    def test_parse_search_results_empty_report(self):
        assert parse_search_results("No links found.", "Acme") == []

    def test_parse_crawled_pages(self):
        pages = parse_crawled_pages(CRAWL_REPORT)

        assert [p.title for p in pages] == ["Homepage", "About Us", "Pricing"]
        assert [p.page_type for p in pages] == ["homepage", "about", "product"]
        assert pages[1].url == "https://acme.com/about"
        assert pages[1].content == "Founded in 2010 by propulsion engineers."

    def test_parse_crawled_pages_numbered_titles(self):
        report = "1. Blog\nhttps://acme.com/blog\nLatest launch news.\n2. Contact\nhttps://acme.com/contact\nEmail us.\n"
        pages = parse_crawled_pages(report)

        assert [p.page_type for p in pages] == ["blog", "contact"]

    def test_parse_crawled_pages_caps_at_six(self):
        report = "\n".join(f"## Page {i}\nhttps://acme.com/p{i}\nText {i}\n" for i in range(10))
        assert len(parse_crawled_pages(report)) == 6


class TestExtractBrandInsights:
    def test_json_response(self):
        client = _client(_reply(f"```json\n{INSIGHTS_JSON}\n```"))
        insights = extract_brand_insights(SEARCH_REPORT, CRAWL_REPORT, "Acme", client=client)

        assert insights.company_info == "Acme builds reusable rockets."
        assert insights.competitors == ["Globex", "Initech: Price"]
        assert insights.industry == "Aerospace"
        assert insights.audience_signals == ["Satellite operators"]
        assert insights.tone_signals == ["Confident", "Technical"]
        assert insights.key_messages == ["Reliability"]

    def test_text_response(self):
        response = (
            "COMPANY INFORMATION\nAcme builds rockets.\n\n"
            "COMPETITORS\n- Globex\n- Initech\n\n"
            "Industry: Aerospace\n"
        )
        insights = extract_brand_insights(SEARCH_REPORT, CRAWL_REPORT, "Acme", client=_client(_reply(response)))

        assert insights.company_info == "Acme builds rockets."
        assert insights.competitors == ["Globex", "Initech"]
        assert insights.industry == "Aerospace"
        assert insights.tone_signals == ["Professional", "Modern"]

    def test_model_failure_returns_placeholders(self):
        client = _client(LLMServiceError("Failed to perform brand analysis"))
        insights = extract_brand_insights(SEARCH_REPORT, CRAWL_REPORT, "Acme", client=client)

        assert insights.company_info == SEARCH_REPORT[:300]
        assert insights.competitors == ["Industry peers and market leaders"]


class TestPerformGptWebSearch:
    def test_success(self):
        client = _client(_reply(SEARCH_REPORT), _reply(CRAWL_REPORT), _reply(INSIGHTS_JSON))
        usage = []

        result = perform_gpt_web_search("Acme Rockets", client=client, providers=[], usage=usage)

        assert result.success is True
        assert result.total_results == 3
        assert result.crawled_count == 3
        assert result.insights.industry == "Aerospace"
        assert result.gpt_model == "gpt-4o-mini"
        assert result.sources == ['web_search', 'website_crawling', 'social_media_analysis', 'news_aggregation']
        assert usage == [100, 100, 100]

    def test_failure_never_raises(self):
        client = _client(LLMServiceError("Rate limit exceeded. Please try again later.", 429))

        result = perform_gpt_web_search("Acme Rockets", client=client, providers=[])

        assert result.success is False
        assert result.insights.company_info.startswith("GPT web search failed.")
        assert result.insights.industry == "Unknown"


class TestDeepBrandAnalysis:
    def _search_data(self):
        return WebSearchResult(
            success=True,
            brand_name="Acme",
            insights=BrandInsights(company_info="Acme builds rockets.", competitors=["Globex"]),
        )

    def test_valid_json(self):
        client = _client(_reply(f"```json\n{json.dumps(ANALYSIS)}\n```"))
        analysis = generate_deep_brand_analysis("Acme", ["Evidence"], self._search_data(), client=client)

        assert analysis["pillars"] == ANALYSIS["pillars"]
        assert analysis["tone"] == ANALYSIS["tone"]

    def test_missing_fields_are_patched(self):
        client = _client(_reply(json.dumps({"summary": "Too short", "tone": "Bold"})))
        analysis = generate_deep_brand_analysis("Acme", [], self._search_data(), client=client)

        assert analysis["summary"].startswith("Comprehensive analysis of Acme")
        assert len(analysis["pillars"]) == 4
        assert analysis["tone"] == "Bold"

    def test_invalid_json_uses_fallback(self):
        client = _client(_reply("Sorry, I cannot produce JSON today."))
        analysis = generate_deep_brand_analysis("Acme", [], self._search_data(), client=client)

        assert analysis["summary"].startswith("Strategic analysis of Acme")
        assert analysis["competitors"] == ["Globex"]
        assert all(isinstance(p, str) for p in analysis["pillars"])


class TestPerformGptBrandAnalysis:
    def test_success(self):
        client = _client(
            _reply(SEARCH_REPORT, 10),
            _reply(CRAWL_REPORT, 20),
            _reply(INSIGHTS_JSON, 30),
            _reply(json.dumps(ANALYSIS), 40),
        )

        result = perform_gpt_brand_analysis("Acme Rockets", ["We sell rockets"], client=client, providers=[])

        assert result.success is True
        assert result.analysis["channels"] == ["LinkedIn", "Trade shows"]
        assert result.total_tokens == 100
        assert result.user_evidence_count == 1
        assert result.raw_data["crawlReport"] == "Crawled 3 key pages"
        data = result.to_dict()
        assert data["metadata"]["totalTokens"] == 100
        assert data["searchData"]["metadata"]["totalResults"] == 3

    def test_failed_research(self):
        client = _client(LLMServiceError("Failed to perform brand analysis"))

        result = perform_gpt_brand_analysis("Acme Rockets", client=client, providers=[])

        assert result.success is False
        assert result.analysis is None
        assert result.search_data.success is False
        assert result.raw_data == {'searchReport': '', 'crawlReport': '', 'analysisPrompt': ''}
