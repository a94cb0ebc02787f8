import pytest

from a11y_audit.wcag.analyzers import AxeAnalyzer
from a11y_audit.wcag.analyzers.axe_analyzer import AXE_SCRIPT_URL, AXE_TAGS, axe_tags_for
from a11y_audit.wcag.types import ImpactLevel, ToolSource

@pytest.fixture
def axe_analyzer(timeout_config):
    return AxeAnalyzer(timeout_config=timeout_config)

@pytest.fixture
def axe_raw_results():
    """Shortened output of axe.run()"""
    return {
        "violations": [
            {
                "id": "image-alt",
                "impact": "critical",
                "help": "Images must have alternate text",
                "helpUrl": "https://dequeuniversity.com/rules/axe/4.11/image-alt",
                "tags": ["cat.text-alternatives", "wcag2a", "wcag111"],
                "nodes": [
                    {"target": ["img.logo"], "html": "<img class=\"logo\">", "failureSummary": "Fix alt"},
                    {"target": [["iframe", "img.hero"]], "html": "<img class=\"hero\">"},
                ],
            }
        ],
        "passes": [
            {
                "id": "document-title",
                "impact": None,
                "help": "Documents must have <title> element",
                "helpUrl": "https://dequeuniversity.com/rules/axe/4.11/document-title",
                "tags": ["wcag2a", "wcag242"],
                "nodes": [{"target": ["html"], "html": "<html>"}],
            }
        ],
        "incomplete": [],
    }

class TestAxeAnalyzer:

    def test_process_results(self, axe_analyzer, axe_raw_results):
        result = axe_analyzer.process_results(axe_raw_results)

        assert len(result.violations) == 1
        violation = result.violations[0]
        assert violation.id == "image-alt"
        assert violation.impact == ImpactLevel.CRITICAL
        assert violation.tool_source == ToolSource.AXE_CORE
        assert violation.wcag_criteria == ["1.1.1"]
        assert violation.node_count == 2
        assert violation.nodes[0].failure_summary == "Fix alt"
        assert violation.nodes[1].target == "iframe img.hero"

        assert result.passes[0].impact is None
        assert result.passes[0].wcag_criteria == ["2.4.2"]
        assert result.incomplete == []

    @pytest.mark.asyncio
    async def test_injects_axe_and_runs(self, axe_analyzer, axe_raw_results, mock_page):
        mock_page.evaluate.return_value = axe_raw_results
        result = await axe_analyzer.analyze(mock_page)

        mock_page.add_script_tag.assert_awaited_once_with(url=AXE_SCRIPT_URL)
        mock_page.wait_for_function.assert_awaited_once()
        assert mock_page.evaluate.call_args[0][1] == axe_analyzer.tags
        assert len(result.violations) == 1

@pytest.mark.parametrize("version,tags", [
    ("2.0", ["wcag2a", "wcag2aa"]),
    ("2.1", ["wcag2a", "wcag2aa", "wcag21a", "wcag21aa"]),
    ("2.2", ["wcag2a", "wcag2aa", "wcag21a", "wcag21aa", "wcag22aa"]),
    ("3.0", AXE_TAGS),
])
def test_axe_tags_for_wcag_version(version, tags):
    assert axe_tags_for(version) == tags
