import pytest
import requests
from unittest.mock import MagicMock, patch

from ingestion.js_crawler import (
    DEFAULT_TEXT,
    DEFAULT_TITLE,
    crawl_javascript_site,
    detect_framework,
    detect_javascript_site,
)

SPA_HTML = """
<html>
<head>
  <title>Acme App</title>
  <meta name="description" content="Rocket booking app">
  <meta name="keywords" content="rockets, booking">
  <script src="/static/js/main.chunk.js"></script>
  <script type="application/ld+json">
    {"name": "Acme", "description": "Launch booking platform", "keywords": "space, launch"}
  </script>
</head>
<body>
  <div id="root">
    <section><h1>Book a launch</h1><p>Pick an orbit and a date.</p></section>
    <a href="/pricing">Pricing</a>
    <a href="#faq">FAQ</a>
  </div>
</body>
</html>
"""


def _response(text, status_code=200):
    resp = MagicMock()
    resp.text = text
    resp.status_code = status_code
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return resp


@pytest.fixture(autouse=True)
def no_rate_limit():
    with patch('ingestion.js_crawler.get_rate_limiter') as mock_limiter:
        mock_limiter.return_value.wait.return_value = 0.0
        yield


class TestDetection:
    def test_detect_framework(self):
        assert detect_framework('<div data-reactroot>React</div>') == 'React'
        assert detect_framework('<div id="app">Vue app</div>') == 'Vue'
        assert detect_framework('<div ng-app="x"></div>') == 'Angular'
        assert detect_framework('<p>plain</p>') == 'Unknown'

    def test_detect_javascript_site_root_div(self):
        assert detect_javascript_site('<html><body><div id="root"></div></body></html>') is True

    def test_detect_javascript_site_empty_body(self):
        assert detect_javascript_site('<html><body><p>Hi</p></body></html>') is True

    def test_static_page_is_not_javascript_site(self):
        text = "Plain paragraph about rocket launches and orbital logistics. " * 6
        html = f'<html><body><p>{text}</p></body></html>'
        assert detect_javascript_site(html) is False


class TestCrawlJavascriptSite:
    @patch('ingestion.js_crawler.requests.get')
    def test_extracts_content_and_structured_data(self, mock_get):
        mock_get.return_value = _response(SPA_HTML)

        result = crawl_javascript_site("https://app.acme.com/")

        assert result.success is True
        assert result.title == "Acme App"
        assert result.description == "Rocket booking app"
        assert result.keywords == ["rockets", "booking"]
        assert result.headings["h1"] == ["Book a launch"]
        assert "Pick an orbit and a date." in result.text
        assert "Description: Launch booking platform" in result.text
        assert "Keywords: space, launch" in result.text
        # Title exists, so the structured name is not appended
        assert "Brand: Acme" not in result.text
        assert result.links == ["https://app.acme.com/pricing"]
        assert result.error is None

    @patch('ingestion.js_crawler.requests.get')
    def test_empty_page_uses_defaults(self, mock_get):
        mock_get.return_value = _response("<html><body></body></html>")

        result = crawl_javascript_site("https://app.acme.com/")

        assert result.success is True
        assert result.title == DEFAULT_TITLE
        assert result.text == DEFAULT_TEXT

    @patch('ingestion.js_crawler.requests.get')
    def test_retries_with_simple_request(self, mock_get):
        mock_get.side_effect = [
            requests.Timeout("slow"),
            _response("<html><head><title>Acme</title></head><body></body></html>"),
        ]

        result = crawl_javascript_site("https://app.acme.com/")

        assert result.success is True
        assert result.title == "Acme"
        assert result.text == "JavaScript-rendered website. Minimal content extracted. Title: Acme"
        assert mock_get.call_count == 2

    @patch('ingestion.js_crawler.requests.get')
    def test_total_failure(self, mock_get):
        mock_get.side_effect = requests.ConnectionError("refused")

        result = crawl_javascript_site("https://app.acme.com/")

        assert result.success is False
        assert result.error.startswith("Failed to crawl JavaScript site:")
        assert result.text is None
