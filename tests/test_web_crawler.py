"""
Tests for the website crawler: URL normalization, text helpers, HTML
extraction, the fetch fallback chain and the evidence crawl report.
"""

import pytest
import requests
from unittest.mock import MagicMock, patch

from data.models import WebsiteData
from ingestion.web_crawler import (
    CRAWL_REPORT_MARKER,
    calculate_reading_level,
    clean_text,
    count_words,
    crawl_website,
    format_crawl_report,
    parse_website_html,
    validate_url,
)

LONG_PARAGRAPH = (
    "Acme Rockets builds reusable launch vehicles for small satellite operators. "
    "Our engineers design every stage in house and test each engine before flight. "
    "Customers book rides months ahead and track their payload from the factory to orbit. "
)

SAMPLE_HTML = f"""
<html>
<head>
  <title> Acme Rockets | Launch Services </title>
  <meta name="description" content="Affordable rides to orbit">
  <meta name="keywords" content="rockets, launch, satellites">
  <meta property="og:title" content="Acme Rockets">
  <meta name="twitter:card" content="summary">
  <script type="application/ld+json">{{"@type": "Organization", "name": "Acme Rockets"}}</script>
  <link rel="stylesheet" href="/main.css">
</head>
<body>
  <nav><a href="/pricing">Pricing</a></nav>
  <main>
    <h1>Launch with Acme</h1>
    <h2>Why us</h2>
    <p>{LONG_PARAGRAPH}</p>
    <p>{LONG_PARAGRAPH}</p>
    <a href="/about">About us</a>
    <a href="https://partner.example.org/">Partner</a>
    <a href="#top">Back to top</a>
    <a href="javascript:void(0)">Open menu</a>
    <img src="/hero.png" alt="Rocket on the pad">
  </main>
  <footer>Copyright Acme</footer>
</body>
</html>
"""


def _response(status_code=200, text=SAMPLE_HTML):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


@pytest.fixture(autouse=True)
def no_rate_limit():
    limiter = MagicMock()
    limiter.wait.return_value = 0.0
    with patch('ingestion.web_crawler.get_rate_limiter', return_value=limiter):
        yield limiter


class TestTextHelpers:
    def test_clean_text_collapses_whitespace(self):
        assert clean_text("  Hello \n\n  world\t ") == "Hello world"

    def test_clean_text_replaces_unusual_symbols(self):
        assert clean_text("Rockets ✓ launch") == "Rockets launch"

    def test_clean_text_keeps_accented_letters(self):
        assert clean_text("Café Crème") == "Café Crème"

    def test_clean_text_empty(self):
        assert clean_text(None) == ""
        assert clean_text("") == ""

    def test_count_words(self):
        assert count_words("one two  three\nfour") == 4
        assert count_words("") == 0

    def test_reading_level_simple_text(self):
        assert calculate_reading_level("The cat sat. The dog ran. We go.") == "Easy (Elementary)"

    def test_reading_level_dense_text(self):
        text = (
            "Organizational transformation initiatives necessitate comprehensive interdisciplinary "
            "collaboration between operational stakeholders and institutional leadership."
        )
        assert calculate_reading_level(text) == "Expert (Professional)"

    def test_reading_level_empty(self):
        assert calculate_reading_level("") == "Unknown"


class TestValidateUrl:
    def test_adds_https_scheme(self):
        assert validate_url("acme.com") == "https://acme.com/"

    def test_drops_query_string(self):
        assert validate_url("https://acme.com/about?utm_source=x") == "https://acme.com/about"

    def test_keeps_http_scheme(self):
        assert validate_url("http://acme.com/path") == "http://acme.com/path"

    def test_rejects_url_without_host(self):
        with pytest.raises(ValueError):
            validate_url("https://")


class TestParseWebsiteHtml:
    def test_extracts_metadata(self):
        data = parse_website_html("https://acme.com/", SAMPLE_HTML)

        assert data.title == "Acme Rockets | Launch Services"
        assert data.meta_description == "Affordable rides to orbit"
        assert data.meta_keywords == ["rockets", "launch", "satellites"]
        assert data.headings["h1"] == ["Launch with Acme"]
        assert data.headings["h2"] == ["Why us"]
        assert data.social_meta["og_title"] == "Acme Rockets"
        assert data.social_meta["twitter_card"] == "summary"
        assert data.social_meta["og_image"] is None
        assert data.structured_data == [{"@type": "Organization", "name": "Acme Rockets"}]
        assert data.styles == ["/main.css"]
        assert data.images == [{"src": "/hero.png", "alt": "Rocket on the pad"}]

    def test_main_content_excludes_navigation(self):
        data = parse_website_html("https://acme.com/", SAMPLE_HTML)

        assert "reusable launch vehicles" in data.main_content
        assert "Copyright Acme" not in data.main_content
        assert data.word_count == count_words(data.main_content)
        assert data.reading_level != "Unknown"

    def test_links_skip_anchors_and_javascript(self):
        data = parse_website_html("https://acme.com/", SAMPLE_HTML)
        urls = [link["url"] for link in data.links]

        assert "https://acme.com/about" in urls
        assert "https://acme.com/pricing" in urls
        assert not any(u.startswith("javascript:") or u.endswith("#top") for u in urls)

        internal = {link["url"]: link["internal"] for link in data.links}
        assert internal["https://acme.com/about"] is True
        assert internal["https://partner.example.org/"] is False

    def test_detects_javascript_site(self):
        html = '<html><head><title>App</title></head><body><div id="root"></div></body></html>'
        data = parse_website_html("https://app.acme.com/", html)

        assert data.is_javascript_site is True
        assert data.title == "App"


class TestCrawlWebsite:
    @patch('ingestion.web_crawler.requests.Session')
    def test_standard_fetch_success(self, mock_session_cls):
        session = mock_session_cls.return_value.__enter__.return_value
        session.get.return_value = _response(200)

        data = crawl_website("acme.com")

        assert data.error is None
        assert data.status_code == 200
        assert data.url == "https://acme.com/"
        assert data.title == "Acme Rockets | Launch Services"
        assert session.get.call_count == 1

    @patch('ingestion.web_crawler.requests.Session')
    def test_falls_back_to_googlebot(self, mock_session_cls):
        session = mock_session_cls.return_value.__enter__.return_value
        session.get.side_effect = [_response(403, "Forbidden"), _response(200)]

        data = crawl_website("https://acme.com")

        assert data.error is None
        assert data.title == "Acme Rockets | Launch Services"
        googlebot_headers = session.get.call_args_list[1].kwargs["headers"]
        assert "Googlebot" in googlebot_headers["User-Agent"]

    @patch('ingestion.web_crawler.requests.Session')
    def test_all_fetches_fail_returns_error_data(self, mock_session_cls):
        session = mock_session_cls.return_value.__enter__.return_value
        session.get.side_effect = requests.ConnectionError("connection refused")

        data = crawl_website("https://down.example.com")

        assert isinstance(data, WebsiteData)
        assert data.status_code == 500
        assert data.error
        assert data.body_content.startswith("Crawl failed:")
        assert data.is_javascript_site is True
        assert data.reading_level == "Unknown"

    def test_invalid_url_does_not_raise(self):
        data = crawl_website("https://")

        assert data.status_code == 500
        assert "Invalid URL" in data.error


class TestFormatCrawlReport:
    def test_report_for_successful_crawl(self):
        data = parse_website_html("https://acme.com/", SAMPLE_HTML, status_code=200, load_time=120)
        report = format_crawl_report(data)

        assert report.startswith(CRAWL_REPORT_MARKER)
        assert "URL: https://acme.com/" in report
        assert "Status: 200 (120ms)" in report
        assert "Title: Acme Rockets | Launch Services" in report
        assert "Keywords: rockets, launch, satellites" in report
        assert "H1: Launch with Acme" in report
        assert "og_title: Acme Rockets" in report
        assert "KEY PAGES" in report
        assert "- About us: https://acme.com/about" in report

    def test_report_for_failed_crawl(self):
        data = WebsiteData(
            url="https://down.example.com",
            body_content="Crawl failed: timeout",
            status_code=500,
            error="timeout",
        )
        report = format_crawl_report(data)

        assert "Status: FAILED (500" in report
        assert "Crawl failed: timeout" in report

    def test_longer_js_text_replaces_main_content(self):
        data = WebsiteData(url="https://app.acme.com/", main_content="short")
        report = format_crawl_report(data, js_text="Rendered text from the JavaScript crawler")

        assert "Rendered text from the JavaScript crawler" in report
        assert "\nshort" not in report

    def test_content_is_truncated(self):
        data = WebsiteData(url="https://acme.com/", main_content="x" * 50)
        report = format_crawl_report(data, max_content=10)

        assert "x" * 10 + "..." in report
        assert "x" * 11 not in report
