# src/a11y_audit/analyzer.py

import base64
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import urlparse
import aiofiles
from playwright.async_api import async_playwright, Page
from a11y_audit.auth import AuthConfig, AuthManager, StorageState
from a11y_audit.config import (
    AdBlockingConfig,
    TimeoutConfig,
    get_ad_blocking_config,
    get_timeout_config,
    setup_ad_blocking
)
from a11y_audit.errors import AuthenticationError, navigation_error_for
from a11y_audit.logging_config import get_logger
from a11y_audit.wcag.analysis_options import AnalysisOptions, get_preset
from a11y_audit.wcag.analyzers import (
    AlfaAnalyzer,
    ApiCallCounter,
    AxeAnalyzer,
    CustomRulesAnalyzer,
    IBMAnalyzer,
    KeyboardTester,
    LighthouseAnalyzer,
    LiveRegionValidator,
    Pa11yAnalyzer,
    WaveAnalyzer,
    axe_tags_for,
    ibm_policies_for
)
from a11y_audit.wcag.events import (
    ProgressCallback,
    emit,
    log_event,
    progress_event,
    session_expired_event,
    violation_event
)
from a11y_audit.wcag.types import (
    AccessibilityReport,
    AnalyzerResult,
    LighthouseResult,
    PageResult,
    ReportSummary,
    ToolInfo
)

VIEWPORT = {"width": 1280, "height": 720}
SESSION_EXPIRED_STATUSES = (401, 403)

def page_name_for(url: str) -> str:
    """Hostname der URL als Seitenname"""
    return urlparse(url).hostname or url

class PageAnalyzer:
    """
    Analysiert eine einzelne URL mit allen aktivierten Engines.

    Phase 1 (Navigation, Screenshot, axe-core) ist fatal und wirft einen
    NavigationError. Alle weiteren Engines und eigenen Prüfungen laufen
    isoliert; Fehler werden geloggt und als ToolInfo mit duration 0 erfasst.
    """

    def __init__(self,
                 options: Optional[AnalysisOptions] = None,
                 timeout_config: Optional[TimeoutConfig] = None,
                 ad_blocking: Optional[AdBlockingConfig] = None,
                 call_counter: Optional[ApiCallCounter] = None,
                 logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger(self.__class__.__name__)
        self.options = options or get_preset("default")
        self.timeout_config = timeout_config or get_timeout_config()
        self.ad_blocking = ad_blocking or get_ad_blocking_config()

        wcag_version = self.options.wcag_version
        self.axe = AxeAnalyzer(timeout_config=self.timeout_config, tags=axe_tags_for(wcag_version))
        self.ibm = IBMAnalyzer(timeout_config=self.timeout_config, policies=ibm_policies_for(wcag_version))
        self.alfa = AlfaAnalyzer(timeout_config=self.timeout_config)
        self.pa11y = Pa11yAnalyzer(timeout_config=self.timeout_config, ad_blocking=self.ad_blocking)
        self.lighthouse = LighthouseAnalyzer(timeout_config=self.timeout_config, ad_blocking=self.ad_blocking)
        self.wave = WaveAnalyzer(
            api_key=self.options.wave_api.resolved_api_key(),
            timeout_config=self.timeout_config,
            call_counter=call_counter
        )
        self.keyboard_tester = KeyboardTester()
        self.live_region_validator = LiveRegionValidator()
        self.custom_rules = CustomRulesAnalyzer()

    def _steps(self) -> List[str]:
        engines = self.options.engines
        custom = self.options.custom_rules
        steps = []
        if engines.axe_core:
            steps.append("axe-core")
        if engines.ibm:
            steps.append("ibm")
        if engines.alfa:
            steps.append("alfa")
        if custom.live_regions:
            steps.append("live-regions")
        if custom.content_rules:
            steps.append("custom-rules")
        if custom.keyboard_navigation:
            steps.append("keyboard")
        if engines.pa11y:
            steps.append("pa11y")
        if engines.lighthouse:
            steps.append("lighthouse")
        if self.options.wave_api.enabled:
            steps.append("wave")
        return steps

    async def analyze(self,
                      target_url: str,
                      auth_config: Optional[AuthConfig] = None,
                      on_progress: Optional[ProgressCallback] = None,
                      storage_state: Optional[StorageState] = None) -> AccessibilityReport:
        """
        Führt die vollständige Analyse einer URL aus

        Args:
            target_url: Zu analysierende URL
            auth_config: Optionale Authentifizierung
            on_progress: Callback für Fortschritts-Events
            storage_state: Vorhandener storage_state (hat Vorrang vor dem des AuthManagers)

        Returns:
            AccessibilityReport mit genau einer Seite

        Raises:
            AuthenticationError: Authentifizierung fehlgeschlagen
            NavigationError: Seite konnte nicht geladen oder mit axe-core geprüft werden
        """
        auth_manager = AuthManager(auth_config, target_url)
        if auth_manager.requires_auth():
            self._log(on_progress, "Authenticating...")
            auth_result = await auth_manager.authenticate()
            if not auth_result.success:
                raise AuthenticationError(f"Authentication failed: {auth_result.error}")
            self._log(on_progress, "Authentication completed")

        steps = self._steps()
        collected: Dict[str, Any] = {
            "violations": [],
            "passes": [],
            "incomplete": [],
            "tools_used": [],
            "screenshot": None,
            "lighthouse_scores": None,
        }

        await self._analyze_page(
            target_url, auth_manager, storage_state, on_progress, steps, collected
        )
        await self._analyze_url_engines(target_url, auth_manager, on_progress, steps, collected)

        for violation in collected["violations"]:
            emit(on_progress, violation_event(
                violation.id,
                violation.impact.value if violation.impact else None,
                violation.node_count
            ))

        total_duration = sum(tool.duration for tool in collected["tools_used"])
        self.logger.info(f"Total analysis time for {target_url}: {total_duration / 1000:.1f}s")

        page = PageResult(
            name=page_name_for(target_url),
            url=target_url,
            violations=collected["violations"],
            passes=collected["passes"],
            incomplete=collected["incomplete"],
            screenshot=collected["screenshot"],
            lighthouse_scores=collected["lighthouse_scores"]
        )
        return AccessibilityReport(
            summary=ReportSummary(
                total_violations=len(page.violations),
                total_passes=len(page.passes),
                total_incomplete=len(page.incomplete)
            ),
            pages=[page],
            tools_used=collected["tools_used"],
            screenshot=page.screenshot,
            lighthouse_scores=page.lighthouse_scores
        )

    async def _analyze_page(self,
                            target_url: str,
                            auth_manager: AuthManager,
                            storage_state: Optional[StorageState],
                            on_progress: Optional[ProgressCallback],
                            steps: List[str],
                            collected: Dict[str, Any]) -> None:
        """Browser-gebundene Phase: Navigation, Screenshot, axe-core und DOM-Prüfungen"""
        context_options: Dict[str, Any] = {"viewport": dict(VIEWPORT)}
        state = storage_state or auth_manager.get_storage_state()
        if state:
            context_options["storage_state"] = state
        credentials = auth_manager.get_http_credentials()
        if credentials:
            context_options["http_credentials"] = credentials
        headers = auth_manager.get_headers()
        if headers:
            context_options["extra_http_headers"] = headers

        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(headless=True)
            try:
                context = await browser.new_context(**context_options)
                page = await context.new_page()

                try:
                    await setup_ad_blocking(page, self.ad_blocking)
                    response = await page.goto(
                        target_url,
                        wait_until="networkidle",
                        timeout=self.timeout_config.page_load_timeout
                    )
                    if (response is not None and response.status in SESSION_EXPIRED_STATUSES
                            and auth_manager.requires_auth()):
                        self.logger.warning(f"Received {response.status} for {target_url}, session may have expired")
                        emit(on_progress, session_expired_event(
                            f"The server answered {response.status} for {target_url}. "
                            f"The session may have expired, please re-authenticate."
                        ))

                    screenshot = await page.screenshot(type="png", full_page=False)
                    collected["screenshot"] = f"data:image/png;base64,{base64.b64encode(screenshot).decode()}"

                    if self.options.engines.axe_core:
                        self._step(on_progress, steps, "axe-core")
                        result = await self.axe.analyze(page, strict=True)
                        self._collect(collected, self.axe, result)
                        self._log(
                            on_progress,
                            f"axe-core completed: {len(result.violations)} violations, "
                            f"{len(result.passes)} passes ({result.duration}ms)"
                        )
                except Exception as e:
                    raise navigation_error_for(e, target_url) from e

                await self._run_page_checks(page, on_progress, steps, collected)

            finally:
                try:
                    await browser.close()
                except Exception as e:
                    self.logger.debug(f"Ignoring error while closing browser: {e}")

    async def _run_page_checks(self,
                               page: Page,
                               on_progress: Optional[ProgressCallback],
                               steps: List[str],
                               collected: Dict[str, Any]) -> None:
        engines = self.options.engines
        custom = self.options.custom_rules

        for enabled, analyzer in ((engines.ibm, self.ibm), (engines.alfa, self.alfa)):
            if not enabled:
                continue
            self._step(on_progress, steps, analyzer.tool_name)
            try:
                result = await analyzer.analyze(page)
                self._collect(collected, analyzer, result)
                self._log_result(on_progress, analyzer.tool_name, result)
            except Exception as e:
                self._record_failure(on_progress, collected, analyzer.tool_name, analyzer.version, e)

        if custom.live_regions:
            self._step(on_progress, steps, "live-regions")
            try:
                live_result = await self.live_region_validator.validate_from_page(page)
                violations = LiveRegionValidator.to_rule_results(live_result)
                collected["violations"].extend(violations)
                self._log(
                    on_progress,
                    f"Live regions completed: {live_result.total_live_regions} regions, "
                    f"{len(live_result.issues)} issues"
                )
            except Exception as e:
                self._log_error(on_progress, f"Live region validation failed: {str(e)}")

        if custom.content_rules:
            self._step(on_progress, steps, "custom-rules")
            try:
                rule_violations = await self.custom_rules.analyze_page(page, custom)
                collected["violations"].extend(rule_violations)
                self._log(on_progress, f"Custom rules completed: {len(rule_violations)} violations")
            except Exception as e:
                self._log_error(on_progress, f"Custom rules failed: {str(e)}")

        if custom.keyboard_navigation:
            self._step(on_progress, steps, "keyboard")
            try:
                keyboard_result = await self.keyboard_tester.test_keyboard_navigation(
                    page,
                    max_elements=custom.max_tab_elements,
                    trap_detection_threshold=custom.trap_detection_threshold
                )
                collected["violations"].extend(KeyboardTester.to_rule_results(keyboard_result))
                self._log(
                    on_progress,
                    f"Keyboard navigation completed: {len(keyboard_result.tab_order)} elements, "
                    f"{len(keyboard_result.traps)} traps"
                )
            except Exception as e:
                self._log_error(on_progress, f"Keyboard navigation test failed: {str(e)}")

    async def _analyze_url_engines(self,
                                   target_url: str,
                                   auth_manager: AuthManager,
                                   on_progress: Optional[ProgressCallback],
                                   steps: List[str],
                                   collected: Dict[str, Any]) -> None:
        """URL-gebundene Engines mit eigenem Browser bzw. eigener HTTP-Anfrage"""
        headers = auth_manager.get_headers()
        credentials = auth_manager.get_http_credentials() or {}

        runs = []
        if self.options.engines.pa11y:
            runs.append((self.pa11y, {
                "headers": headers,
                "username": credentials.get("username"),
                "password": credentials.get("password"),
            }))
        if self.options.engines.lighthouse:
            runs.append((self.lighthouse, {"headers": headers}))
        if self.options.wave_api.enabled:
            runs.append((self.wave, {}))

        for analyzer, kwargs in runs:
            self._step(on_progress, steps, analyzer.tool_name)
            try:
                result = await analyzer.analyze(target_url, **kwargs)
                self._collect(collected, analyzer, result)
                if isinstance(result, LighthouseResult) and not result.failed:
                    collected["lighthouse_scores"] = result.scores
                self._log_result(on_progress, analyzer.tool_name, result)
            except Exception as e:
                self._record_failure(on_progress, collected, analyzer.tool_name, analyzer.version, e)

    @staticmethod
    def _collect(collected: Dict[str, Any], analyzer: Any, result: AnalyzerResult) -> None:
        collected["violations"].extend(result.violations)
        collected["passes"].extend(result.passes)
        collected["incomplete"].extend(result.incomplete)
        collected["tools_used"].append(ToolInfo(
            name=analyzer.tool_name,
            version=analyzer.version,
            duration=0 if result.failed else result.duration
        ))

    def _record_failure(self,
                        on_progress: Optional[ProgressCallback],
                        collected: Dict[str, Any],
                        name: str,
                        version: str,
                        error: Exception) -> None:
        self._log_error(on_progress, f"{name} failed: {str(error)}")
        collected["tools_used"].append(ToolInfo(name=name, version=version, duration=0))

    def _step(self, on_progress: Optional[ProgressCallback], steps: List[str], name: str) -> None:
        step = steps.index(name) + 1 if name in steps else len(steps)
        self.logger.info(f"[{step}/{len(steps)}] {name} started")
        emit(on_progress, progress_event(step, len(steps), name))
        emit(on_progress, log_event(f"[{step}/{len(steps)}] {name} started"))

    def _log_result(self, on_progress: Optional[ProgressCallback], name: str, result: AnalyzerResult) -> None:
        if result.failed:
            self._log(on_progress, f"{name} failed ({result.error_kind.value}) after {result.duration}ms")
        else:
            self._log(
                on_progress,
                f"{name} completed: {len(result.violations)} violations, "
                f"{len(result.incomplete)} incomplete ({result.duration}ms)"
            )

    def _log(self, on_progress: Optional[ProgressCallback], message: str) -> None:
        self.logger.info(message)
        emit(on_progress, log_event(message))

    def _log_error(self, on_progress: Optional[ProgressCallback], message: str) -> None:
        self.logger.error(message)
        emit(on_progress, log_event(message))

async def analyze_url(target_url: str,
                      auth_config: Optional[AuthConfig] = None,
                      on_progress: Optional[ProgressCallback] = None,
                      storage_state: Optional[StorageState] = None,
                      options: Optional[AnalysisOptions] = None,
                      call_counter: Optional[ApiCallCounter] = None) -> AccessibilityReport:
    """
    Analysiert eine URL und liefert einen Bericht mit einer Seite

    Args:
        target_url: Zu analysierende URL
        auth_config: Optionale Authentifizierung
        on_progress: Callback für Fortschritts-Events
        storage_state: Vorhandener storage_state
        options: Analyse-Optionen (Default-Preset wenn nicht angegeben)
        call_counter: Zähler für WAVE-API-Aufrufe

    Returns:
        AccessibilityReport
    """
    analyzer = PageAnalyzer(options=options, call_counter=call_counter)
    return await analyzer.analyze(target_url, auth_config, on_progress, storage_state)

async def save_report(report: AccessibilityReport, path: Union[str, Path]) -> Path:
    """
    Speichert einen Bericht als JSON

    Args:
        report: Zu speichernder Bericht
        path: Zieldatei

    Returns:
        Pfad der geschriebenen Datei
    """
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(output_path, 'w', encoding='utf-8') as f:
        await f.write(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return output_path
