import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from a11y_audit.analyzer import PageAnalyzer, analyze_url, page_name_for, save_report
from a11y_audit.auth import AuthConfig, AuthType
from a11y_audit.config import AdBlockingConfig
from a11y_audit.errors import AuthenticationError, ErrorKind, NavigationError
from a11y_audit.wcag.analysis_options import (
    AnalysisOptions,
    CustomRulesOptions,
    EngineOptions
)
from a11y_audit.wcag.analyzers import PA11Y_VERSION
from a11y_audit.wcag.types import (
    AccessibilityReport,
    AnalyzerResult,
    ImpactLevel,
    LighthouseResult,
    LighthouseScores,
    LiveRegionValidationResult,
    PageResult,
    ReportSummary,
    RuleResult,
    ToolSource
)

TARGET_URL = "https://example.com/products"

def _rule(rule_id, impact=ImpactLevel.SERIOUS, nodes=1, source=ToolSource.AXE_CORE):
    return RuleResult(
        id=rule_id, description=rule_id, node_count=nodes, help_url="",
        wcag_criteria=["1.4.3"], tool_source=source, impact=impact
    )

def _mock_playwright(status=200):
    """async_playwright() double; returns the manager plus the page, context and browser doubles"""
    response = MagicMock()
    response.status = status

    page = MagicMock()
    page.route = AsyncMock()
    page.goto = AsyncMock(return_value=response)
    page.screenshot = AsyncMock(return_value=b"png-bytes")

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)
    return manager, page, browser

def _options(live_regions=False, keyboard=False, ibm=False, content_rules=False, wcag_version="2.1"):
    return AnalysisOptions(
        engines=EngineOptions(axe_core=True, pa11y=True, lighthouse=True, ibm=ibm, alfa=False),
        custom_rules=CustomRulesOptions(
            keyboard_navigation=keyboard, live_regions=live_regions, content_rules=content_rules
        ),
        wcag_version=wcag_version
    )

@pytest.fixture
def make_analyzer(timeout_config):
    def factory(options=None):
        analyzer = PageAnalyzer(
            options=options or _options(),
            timeout_config=timeout_config,
            ad_blocking=AdBlockingConfig(enabled=False)
        )
        analyzer.axe.analyze = AsyncMock(return_value=AnalyzerResult(
            violations=[_rule("color-contrast", nodes=3)],
            passes=[_rule("image-alt"), _rule("html-has-lang")],
            duration=1200
        ))
        analyzer.ibm.analyze = AsyncMock(return_value=AnalyzerResult(duration=300))
        analyzer.pa11y.analyze = AsyncMock(return_value=AnalyzerResult(
            violations=[_rule("WCAG2AA.H37", source=ToolSource.PA11Y)],
            duration=800
        ))
        analyzer.lighthouse.analyze = AsyncMock(return_value=LighthouseResult(
            scores=LighthouseScores(performance=70, accessibility=88, best_practices=90, seo=95),
            duration=2500
        ))
        return analyzer
    return factory

class TestPageAnalyzer:

    @pytest.mark.asyncio
    async def test_collects_results_from_all_engines(self, make_analyzer):
        analyzer = make_analyzer()
        playwright, page, browser = _mock_playwright()

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            report = await analyzer.analyze(TARGET_URL)

        assert len(report.pages) == 1
        result = report.pages[0]
        assert result.name == "example.com"
        assert result.url == TARGET_URL
        assert [v.id for v in result.violations] == ["color-contrast", "WCAG2AA.H37"]
        assert report.summary.to_dict() == {"totalViolations": 2, "totalPasses": 2, "totalIncomplete": 0}
        assert report.screenshot.startswith("data:image/png;base64,")
        assert report.lighthouse_scores.accessibility == 88
        assert [(t.name, t.duration) for t in report.tools_used] == [
            ("axe-core", 1200), ("pa11y", 800), ("lighthouse", 2500)
        ]

        page.goto.assert_awaited_once_with(TARGET_URL, wait_until="networkidle", timeout=1000)
        analyzer.axe.analyze.assert_awaited_once_with(page, strict=True)
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_event_sequence(self, make_analyzer):
        analyzer = make_analyzer()
        playwright, _, _ = _mock_playwright()
        events = []

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            await analyzer.analyze(TARGET_URL, on_progress=events.append)

        progress = [e for e in events if e["type"] == "progress"]
        assert [(e["step"], e["total"], e["stepName"]) for e in progress] == [
            (1, 3, "axe-core"), (2, 3, "pa11y"), (3, 3, "lighthouse")
        ]

        violations = [e for e in events if e["type"] == "violation"]
        assert violations[0] == {"type": "violation", "rule": "color-contrast", "impact": "serious", "count": 3}
        last_progress = max(i for i, e in enumerate(events) if e["type"] == "progress")
        first_violation = min(i for i, e in enumerate(events) if e["type"] == "violation")
        assert first_violation > last_progress

        assert all(e["message"] for e in events if e["type"] == "log")

    @pytest.mark.asyncio
    async def test_axe_failure_is_fatal(self, make_analyzer):
        analyzer = make_analyzer()
        analyzer.axe.analyze.side_effect = RuntimeError("Target closed")
        playwright, _, browser = _mock_playwright()

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            with pytest.raises(NavigationError) as exc_info:
                await analyzer.analyze(TARGET_URL)

        assert exc_info.value.kind == ErrorKind.CONNECTION_CLOSED
        browser.close.assert_awaited_once()
        analyzer.pa11y.analyze.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_navigation_failure_is_fatal(self, make_analyzer):
        analyzer = make_analyzer()
        playwright, page, browser = _mock_playwright()
        page.goto.side_effect = RuntimeError("net::ERR_NAME_NOT_RESOLVED")

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            with pytest.raises(NavigationError):
                await analyzer.analyze(TARGET_URL)

        analyzer.axe.analyze.assert_not_awaited()
        browser.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_engine_exception_is_isolated(self, make_analyzer):
        analyzer = make_analyzer()
        analyzer.pa11y.analyze.side_effect = RuntimeError("pa11y crashed")
        playwright, _, _ = _mock_playwright()
        events = []

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            report = await analyzer.analyze(TARGET_URL, on_progress=events.append)

        pa11y_info = next(t for t in report.tools_used if t.name == "pa11y")
        assert pa11y_info.duration == 0
        assert pa11y_info.version == PA11Y_VERSION
        analyzer.lighthouse.analyze.assert_awaited_once()
        assert any("pa11y crashed" in e["message"] for e in events if e["type"] == "log")

    @pytest.mark.asyncio
    async def test_failed_result_records_zero_duration(self, make_analyzer):
        analyzer = make_analyzer()
        analyzer.lighthouse.analyze.return_value = LighthouseResult(duration=1000, error_kind=ErrorKind.TIMEOUT)
        playwright, _, _ = _mock_playwright()

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            report = await analyzer.analyze(TARGET_URL)

        lighthouse_info = next(t for t in report.tools_used if t.name == "lighthouse")
        assert lighthouse_info.duration == 0
        assert report.lighthouse_scores is None

    @pytest.mark.asyncio
    async def test_disabled_engines_are_skipped(self, make_analyzer):
        options = _options()
        options.engines.pa11y = False
        options.engines.lighthouse = False
        analyzer = make_analyzer(options)
        playwright, _, _ = _mock_playwright()

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            report = await analyzer.analyze(TARGET_URL)

        analyzer.pa11y.analyze.assert_not_awaited()
        analyzer.lighthouse.analyze.assert_not_awaited()
        assert [t.name for t in report.tools_used] == ["axe-core"]

    @pytest.mark.asyncio
    async def test_page_checks_run_in_browser_phase(self, make_analyzer):
        analyzer = make_analyzer(_options(live_regions=True, keyboard=True, ibm=True))
        analyzer.live_region_validator.validate_from_page = AsyncMock(return_value=LiveRegionValidationResult())
        analyzer.keyboard_tester.test_keyboard_navigation = AsyncMock(side_effect=RuntimeError("no focus"))
        playwright, page, _ = _mock_playwright()
        events = []

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            report = await analyzer.analyze(TARGET_URL, on_progress=events.append)

        analyzer.ibm.analyze.assert_awaited_once_with(page)
        analyzer.live_region_validator.validate_from_page.assert_awaited_once_with(page)
        assert [e["stepName"] for e in events if e["type"] == "progress"] == [
            "axe-core", "ibm", "live-regions", "keyboard", "pa11y", "lighthouse"
        ]
        assert len(report.pages) == 1

    @pytest.mark.asyncio
    async def test_page_check_failures_reach_progress_log(self, make_analyzer):
        analyzer = make_analyzer(_options(live_regions=True, keyboard=True))
        analyzer.live_region_validator.validate_from_page = AsyncMock(side_effect=RuntimeError("dom gone"))
        analyzer.keyboard_tester.test_keyboard_navigation = AsyncMock(side_effect=RuntimeError("no focus"))
        playwright, _, _ = _mock_playwright()
        events = []

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            await analyzer.analyze(TARGET_URL, on_progress=events.append)

        messages = [e["message"] for e in events if e["type"] == "log"]
        assert "Live region validation failed: dom gone" in messages
        assert "Keyboard navigation test failed: no focus" in messages

    @pytest.mark.asyncio
    async def test_custom_rules_step(self, make_analyzer):
        analyzer = make_analyzer(_options(content_rules=True))
        custom_violation = _rule("custom-heading-skip", impact=ImpactLevel.MODERATE, source=ToolSource.CUSTOM)
        analyzer.custom_rules.analyze_page = AsyncMock(return_value=[custom_violation])
        playwright, page, _ = _mock_playwright()
        events = []

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            report = await analyzer.analyze(TARGET_URL, on_progress=events.append)

        analyzer.custom_rules.analyze_page.assert_awaited_once_with(page, analyzer.options.custom_rules)
        assert "custom-heading-skip" in [v.id for v in report.pages[0].violations]
        assert [e["stepName"] for e in events if e["type"] == "progress"] == [
            "axe-core", "custom-rules", "pa11y", "lighthouse"
        ]

    def test_wcag_version_selects_axe_tags_and_ibm_policies(self, timeout_config):
        analyzer = PageAnalyzer(options=_options(wcag_version="2.2"), timeout_config=timeout_config,
                                ad_blocking=AdBlockingConfig(enabled=False))
        assert "wcag22aa" in analyzer.axe.tags
        assert analyzer.ibm.policies == ["WCAG_2_2"]

        analyzer = PageAnalyzer(options=_options(wcag_version="2.0"), timeout_config=timeout_config,
                                ad_blocking=AdBlockingConfig(enabled=False))
        assert analyzer.axe.tags == ["wcag2a", "wcag2aa"]
        assert analyzer.ibm.policies == ["WCAG_2_0"]

class TestAuthentication:

    @pytest.mark.asyncio
    async def test_failed_authentication_raises(self, make_analyzer):
        analyzer = make_analyzer()
        playwright, _, _ = _mock_playwright()

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright) as mock_pw:
            with pytest.raises(AuthenticationError):
                await analyzer.analyze(TARGET_URL, auth_config=AuthConfig(type=AuthType.BEARER))

        mock_pw.assert_not_called()

    @pytest.mark.asyncio
    async def test_bearer_headers_reach_browser_and_engines(self, make_analyzer):
        analyzer = make_analyzer()
        playwright, _, browser = _mock_playwright()

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            await analyzer.analyze(TARGET_URL, auth_config=AuthConfig(type=AuthType.BEARER, token="t"))

        context_kwargs = browser.new_context.await_args.kwargs
        assert context_kwargs["extra_http_headers"] == {"Authorization": "Bearer t"}
        assert analyzer.lighthouse.analyze.await_args.kwargs["headers"] == {"Authorization": "Bearer t"}

    @pytest.mark.asyncio
    async def test_basic_credentials_passed_to_pa11y(self, make_analyzer):
        analyzer = make_analyzer()
        playwright, _, browser = _mock_playwright()

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            await analyzer.analyze(
                TARGET_URL, auth_config=AuthConfig(type=AuthType.BASIC, username="u", password="p")
            )

        assert browser.new_context.await_args.kwargs["http_credentials"] == {"username": "u", "password": "p"}
        kwargs = analyzer.pa11y.analyze.await_args.kwargs
        assert kwargs["username"] == "u"
        assert kwargs["password"] == "p"

    @pytest.mark.asyncio
    async def test_given_storage_state_takes_precedence(self, make_analyzer):
        analyzer = make_analyzer()
        playwright, _, browser = _mock_playwright()
        state = {"cookies": [{"name": "sid", "value": "given", "domain": "example.com", "path": "/"}], "origins": []}

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            await analyzer.analyze(
                TARGET_URL,
                auth_config=AuthConfig(type=AuthType.COOKIE, cookies="sid=other"),
                storage_state=state
            )

        assert browser.new_context.await_args.kwargs["storage_state"] is state

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_session_expired_event(self, make_analyzer, status):
        analyzer = make_analyzer()
        playwright, _, _ = _mock_playwright(status=status)
        events = []

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            report = await analyzer.analyze(
                TARGET_URL,
                auth_config=AuthConfig(type=AuthType.BEARER, token="t"),
                on_progress=events.append
            )

        expired = [e for e in events if e["type"] == "session_expired"]
        assert len(expired) == 1
        assert str(status) in expired[0]["message"]
        assert len(report.pages[0].violations) == 2

    @pytest.mark.asyncio
    async def test_no_session_expired_without_auth(self, make_analyzer):
        analyzer = make_analyzer()
        playwright, _, _ = _mock_playwright(status=401)
        events = []

        with patch('a11y_audit.analyzer.async_playwright', return_value=playwright):
            await analyzer.analyze(TARGET_URL, on_progress=events.append)

        assert not [e for e in events if e["type"] == "session_expired"]

@pytest.mark.asyncio
async def test_analyze_url_delegates_to_page_analyzer():
    expected = AccessibilityReport(summary=ReportSummary(), pages=[PageResult(name="example.com", url=TARGET_URL)])
    with patch.object(PageAnalyzer, 'analyze', AsyncMock(return_value=expected)) as mock_analyze:
        report = await analyze_url(TARGET_URL, options=_options())

    assert report is expected
    assert mock_analyze.await_args.args[0] == TARGET_URL

def test_page_name_for():
    assert page_name_for("https://shop.example.com/cart?x=1") == "shop.example.com"

@pytest.mark.asyncio
async def test_save_report(tmp_path):
    report = AccessibilityReport(
        summary=ReportSummary(total_violations=1),
        pages=[PageResult(name="example.com", url=TARGET_URL, violations=[_rule("color-contrast")])]
    )
    output = await save_report(report, tmp_path / "reports" / "report.json")

    assert output.exists()
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["summary"]["totalViolations"] == 1
    assert data["pages"][0]["url"] == TARGET_URL
