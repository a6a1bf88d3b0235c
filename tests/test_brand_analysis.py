from types import SimpleNamespace

from analysis.brand_analysis import (
    DEFAULT_CHANNELS,
    DEFAULT_PILLARS,
    DEFAULT_SUMMARY,
    build_enhanced_evidence_text,
    coerce_analysis,
    create_fallback_analysis,
    create_fallback_evidence_only_analysis,
    enhance_analysis_with_fallbacks,
    enhance_analysis_with_user_evidence,
    flatten_list_item,
    flatten_list_section,
    missing_fields,
    normalize_analysis,
    stringify_value,
)
from data.models import (
    BrandAnalysisResult,
    BrandBrainAnalysis,
    BrandInsights,
    CrawledPage,
    SearchResult,
    WebSearchResult,
)


def _search_data(**insight_fields):
    return WebSearchResult(
        success=True,
        brand_name="Acme",
        search_results=[SearchResult(title="Acme", url="https://acme.com")],
        crawled_pages=[CrawledPage(url="https://acme.com/about", title="About", content="We build rockets " * 20)],
        insights=BrandInsights(**insight_fields),
    )


class TestShapeCoercion:
    def test_stringify_nested_values(self):
        assert stringify_value(None) == ''
        assert stringify_value("  text ") == 'text'
        assert stringify_value(['a', '', 'b']) == 'a, b'
        assert stringify_value({'primary': 'Founders', 'secondary': None}) == 'primary: Founders'

    def test_flatten_list_item_uses_title_key(self):
        item = {'name': 'Thought leadership', 'description': 'Deep technical posts'}
        assert flatten_list_item(item) == 'Thought leadership: Deep technical posts'
        assert flatten_list_item({'pillar': 'Education'}) == 'Education'
        assert flatten_list_item('Plain') == 'Plain'

    def test_flatten_list_section(self):
        assert flatten_list_section(None) == []
        assert flatten_list_section('  ') == []
        assert flatten_list_section('Single') == ['Single']
        assert flatten_list_section(['A', {'title': 'B'}, '']) == ['A', 'B']
        assert flatten_list_section({'Email': 'weekly'}) == ['Email: weekly']

    def test_coerce_analysis(self):
        result = coerce_analysis({
            'summary': ['Line one', 'Line two'],
            'tone': {'voice': 'Warm'},
            'pillars': 'Education',
            'competitors': [{'name': 'Globex', 'strength': 'Price'}],
        })

        assert result['summary'] == 'Line one, Line two'
        assert result['tone'] == 'voice: Warm'
        assert result['audience'] == ''
        assert result['pillars'] == ['Education']
        assert result['competitors'] == ['Globex: Price']
        assert result['channels'] == []

    def test_missing_fields(self):
        assert missing_fields({'summary': 'x', 'audience': '', 'pillars': []}) == [
            'audience', 'tone', 'pillars', 'offers', 'competitors', 'channels'
        ]


class TestFallbacks:
    def test_enhance_analysis_fills_thin_sections(self):
        data = _search_data(company_info="Acme builds rockets.", audience_signals=["Satellite operators"])
        enhanced = enhance_analysis_with_fallbacks({'summary': 'Short', 'pillars': 'not a list'}, "Acme", data)

        assert enhanced['summary'].startswith("Comprehensive analysis of Acme")
        assert "Acme builds rockets." in enhanced['summary']
        assert "Satellite operators" in enhanced['audience']
        assert len(enhanced['pillars']) == 4
        assert len(enhanced['recommendations']) == 5

    def test_enhance_analysis_keeps_rich_sections(self):
        summary = "S" * 120
        enhanced = enhance_analysis_with_fallbacks(
            {'summary': summary, 'pillars': ['One'], 'recommendations': ['Do it']}, "Acme", _search_data()
        )
        assert enhanced['summary'] == summary
        assert enhanced['pillars'] == ['One']
        assert enhanced['recommendations'] == ['Do it']

    def test_fallback_analysis_uses_insights(self):
        data = _search_data(competitors=["Globex"], key_messages=["Reliability"])
        analysis = create_fallback_analysis("Acme", data)

        assert analysis['competitors'] == ["Globex"]
        assert "Reliability" in analysis['offers']
        assert missing_fields(analysis) == []

    def test_evidence_only_fallback(self):
        analysis = create_fallback_evidence_only_analysis("Acme", "Evidence " * 100)

        assert analysis['summary'].startswith("Analysis of Acme based on provided evidence.")
        assert analysis['summary'].endswith("...")
        assert len(analysis['recommendations']) == 4

    def test_normalize_fills_defaults(self):
        result = normalize_analysis({'audience': 'Founders', 'pillars': []})

        assert isinstance(result, BrandBrainAnalysis)
        assert result.summary == DEFAULT_SUMMARY
        assert result.audience == 'Founders'
        assert result.pillars == DEFAULT_PILLARS
        assert result.channels == DEFAULT_CHANNELS
        assert result.pillars is not DEFAULT_PILLARS

    def test_normalize_none(self):
        result = normalize_analysis(None)
        assert all(result.to_dict().values())

    def test_normalized_sections_to_dict(self):
        result = normalize_analysis({'tone': 'Bold', 'competitors': [{'name': 'Globex', 'detail': 'Cheaper'}]})

        data = result.to_dict()
        assert list(data) == [
            'summary', 'audience', 'tone', 'offers', 'pillars', 'competitors', 'channels', 'recommendations',
        ]
        assert data['tone'] == 'Bold'
        assert data['competitors'] == ['Globex: Cheaper']

    def test_user_evidence_leaves_analysis_unchanged(self):
        analysis = {'summary': 'Acme builds rockets.', 'pillars': ['Reliability']}
        items = [SimpleNamespace(type='website', value='https://acme.com', analyzed_content='Crawled')]

        result = enhance_analysis_with_user_evidence(analysis, items)

        assert result == coerce_analysis(analysis)
        assert result['summary'] == 'Acme builds rockets.'
        assert result['pillars'] == ['Reliability']


class TestEnhancedEvidenceText:
    def _items(self):
        return [
            SimpleNamespace(type='website', value='https://acme.com', analyzed_content='Crawled', analysis_summary=None),
            SimpleNamespace(type='manual', value='We sell rockets', analyzed_content=None, analysis_summary=None),
        ]

    def test_evidence_only(self):
        text = build_enhanced_evidence_text(self._items())

        assert text.startswith('USER-PROVIDED EVIDENCE:')
        assert '[WEBSITE] 1:\nCrawled' in text
        assert '[MANUAL] 2:\nWe sell rockets' in text
        assert 'GPT-ENHANCED INTERNET RESEARCH' not in text

    def test_with_research(self):
        gpt_result = BrandAnalysisResult(success=True, analysis={}, search_data=_search_data(industry="Aerospace"))
        text = build_enhanced_evidence_text(self._items(), gpt_result)

        assert 'GPT-ENHANCED INTERNET RESEARCH:' in text
        assert 'Search Results: 1 sources found' in text
        assert 'Industry: Aerospace' in text
        assert '1. About: We build rockets' in text
