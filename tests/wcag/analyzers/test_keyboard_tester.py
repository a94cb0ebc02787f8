import pytest
from unittest.mock import AsyncMock

from a11y_audit.wcag.analyzers import KeyboardTester, validate_focus_indicator
from a11y_audit.wcag.analyzers.keyboard_tester import FOCUSABLE_SELECTORS
from a11y_audit.wcag.types import FocusStyles, ImpactLevel, ToolSource

VISIBLE = "2px solid blue"

def _focused(selector, outline=VISIBLE, box_shadow="none", border="none"):
    return {
        "selector": selector,
        "tagName": selector.split("#")[0].split(".")[0],
        "outline": outline,
        "boxShadow": box_shadow,
        "border": border,
    }

@pytest.fixture
def tester():
    return KeyboardTester()

class TestValidateFocusIndicator:

    def test_no_indicator(self):
        assert validate_focus_indicator(FocusStyles("none", "none", "none")) is False

    @pytest.mark.parametrize("styles", [
        FocusStyles(outline=VISIBLE),
        FocusStyles(box_shadow=VISIBLE),
        FocusStyles(border=VISIBLE),
    ])
    def test_single_visible_style(self, styles):
        assert validate_focus_indicator(styles) is True

    @pytest.mark.parametrize("value", ["0", "0px", "0px none rgb(0, 0, 0)", ""])
    def test_zero_width_outline_is_invisible(self, value):
        assert validate_focus_indicator(FocusStyles(outline=value, border=value)) is False

class TestKeyboardNavigation:

    @pytest.mark.asyncio
    async def test_tab_order(self, tester, mock_page):
        """Three distinct elements are recorded in traversal order"""
        mock_page.evaluate = AsyncMock(side_effect=[
            _focused("a#home"),
            _focused("button.menu"),
            _focused("input#search"),
            None,
        ])
        result = await tester.test_keyboard_navigation(mock_page)

        assert len(result.tab_order) == 3
        assert [e.order for e in result.tab_order] == [1, 2, 3]
        assert [e.selector for e in result.tab_order] == ["a#home", "button.menu", "input#search"]
        assert result.traps == []
        assert result.focus_issues == []

    @pytest.mark.asyncio
    async def test_trap_stops_traversal(self, tester, mock_page):
        mock_page.evaluate = AsyncMock(side_effect=[
            _focused("div#modal"),
            _focused("div#modal"),
            _focused("div#modal"),
            _focused("a#after"),
        ])
        result = await tester.test_keyboard_navigation(mock_page, trap_detection_threshold=3)

        assert len(result.traps) == 1
        assert result.traps[0].selector == "div#modal"
        assert all(e.selector == "div#modal" for e in result.tab_order)
        assert len(result.tab_order) == 2
        assert mock_page.keyboard.press.await_count == 3

    @pytest.mark.asyncio
    async def test_missing_focus_indicator(self, tester, mock_page):
        mock_page.evaluate = AsyncMock(side_effect=[
            _focused("a#plain", outline="none"),
            None,
        ])
        result = await tester.test_keyboard_navigation(mock_page)

        assert result.tab_order[0].has_focus_indicator is False
        assert result.focus_issues[0].selector == "a#plain"

    @pytest.mark.asyncio
    async def test_max_elements(self, tester, mock_page):
        mock_page.evaluate = AsyncMock(side_effect=[_focused(f"a#link{i}") for i in range(10)])
        result = await tester.test_keyboard_navigation(mock_page, max_elements=5)
        assert len(result.tab_order) == 5

    @pytest.mark.asyncio
    async def test_get_focusable_elements(self, tester, mock_page):
        mock_page.evaluate = AsyncMock(return_value=["a#home", "button"])
        assert await tester.get_focusable_elements(mock_page) == ["a#home", "button"]
        assert mock_page.evaluate.call_args[0][1] == FOCUSABLE_SELECTORS

class TestKeyboardRuleResults:

    @pytest.mark.asyncio
    async def test_to_rule_results(self, tester, mock_page):
        mock_page.evaluate = AsyncMock(side_effect=[
            _focused("a#plain", outline="none"),
            _focused("div#trap"),
            _focused("div#trap"),
            _focused("div#trap"),
        ])
        result = await tester.test_keyboard_navigation(mock_page)
        rules = {r.id: r for r in KeyboardTester.to_rule_results(result)}

        assert rules["keyboard-trap"].impact == ImpactLevel.CRITICAL
        assert rules["keyboard-trap"].wcag_criteria == ["2.1.2"]
        assert rules["focus-visible"].impact == ImpactLevel.SERIOUS
        assert rules["focus-visible"].wcag_criteria == ["2.4.7"]
        assert all(r.tool_source == ToolSource.CUSTOM for r in rules.values())
