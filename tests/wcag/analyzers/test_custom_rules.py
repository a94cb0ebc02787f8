import pytest

from a11y_audit.wcag.analysis_options import CustomRulesOptions
from a11y_audit.wcag.analyzers import CustomRulesAnalyzer
from a11y_audit.wcag.types import ImpactLevel, ToolSource

@pytest.fixture
def analyzer():
    return CustomRulesAnalyzer()

def _by_id(results):
    return {r.id: r for r in results}

class TestAmbiguousLinks:

    @pytest.mark.parametrize("text", ["click here", "Read More", "here", "こちら", "詳細"])
    def test_ambiguous_text(self, analyzer, text):
        rules = _by_id(analyzer.analyze_html(f'<a href="/x">{text}</a>'))
        rule = rules["custom-ambiguous-link"]
        assert rule.impact == ImpactLevel.MODERATE
        assert rule.wcag_criteria == ["2.4.4", "2.4.9"]
        assert rule.tool_source == ToolSource.CUSTOM

    def test_descriptive_text_passes(self, analyzer):
        assert analyzer.analyze_html('<a href="/pricing">Read more about pricing</a>') == []

    def test_anchor_without_href_ignored(self, analyzer):
        assert analyzer.analyze_html('<a name="top">here</a>') == []

class TestHeadingSkip:

    def test_skipped_levels(self, analyzer):
        html = "<h1>Title</h1><h3>Skip</h3><h2>Back</h2><h4>Skip again</h4>"
        rule = _by_id(analyzer.analyze_html(html))["custom-heading-skip"]
        assert rule.node_count == 2
        assert [n.target for n in rule.nodes] == ["h3", "h4"]
        assert "h1 to h3" in rule.nodes[0].failure_summary

    def test_first_heading_may_start_anywhere(self, analyzer):
        assert analyzer.analyze_html("<h2>Start</h2><h3>Next</h3><h1>Top</h1>") == []

class TestLongAlt:

    def test_alt_over_limit(self, analyzer):
        html = f'<img src="a.png" alt="{"x" * 101}"><img src="b.png" alt="short"><img src="c.png" alt="">'
        rule = _by_id(analyzer.analyze_html(html))["custom-long-alt"]
        assert rule.node_count == 1
        assert rule.impact == ImpactLevel.MINOR
        assert rule.wcag_criteria == ["1.1.1"]

    def test_custom_limit(self, analyzer):
        options = CustomRulesOptions(max_alt_length=10)
        results = analyzer.analyze_html('<img src="a.png" alt="eleven char">', options)
        assert [r.id for r in results] == ["custom-long-alt"]

class TestEmptyInteractive:

    def test_unnamed_button_and_link(self, analyzer):
        html = '<button><svg></svg></button><a href="/y"></a>'
        rule = _by_id(analyzer.analyze_html(html))["custom-empty-interactive"]
        assert rule.impact == ImpactLevel.CRITICAL
        assert rule.node_count == 2
        assert rule.wcag_criteria == ["4.1.2", "1.1.1", "2.4.4"]

    @pytest.mark.parametrize("html", [
        "<button>Save</button>",
        '<button aria-label="Close"></button>',
        '<button title="Menu"></button>',
        '<a href="/"><img src="logo.png" alt="Home"></a>',
    ])
    def test_named_elements_pass(self, analyzer, html):
        assert analyzer.analyze_html(html) == []

class TestToggles:

    def test_disabled_rules_are_skipped(self, analyzer):
        html = '<h1>A</h1><h3>B</h3><a href="/x">here</a><button></button>'
        options = CustomRulesOptions(heading_skip=False, empty_interactive=False)
        assert [r.id for r in analyzer.analyze_html(html, options)] == ["custom-ambiguous-link"]

    def test_node_html_is_excerpt_of_element(self, analyzer):
        rule = analyzer.analyze_html('<a href="/x" class="more">more</a>')[0]
        assert rule.nodes[0].html == '<a href="/x" class="more">more</a>'
        assert rule.nodes[0].target == "a.more"

    @pytest.mark.asyncio
    async def test_analyze_page(self, analyzer, mock_page):
        mock_page.content.return_value = "<h1>A</h1><h4>B</h4>"
        results = await analyzer.analyze_page(mock_page)
        assert [r.id for r in results] == ["custom-heading-skip"]
