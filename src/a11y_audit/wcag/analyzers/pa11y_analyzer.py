# src/a11y_audit/wcag/analyzers/pa11y_analyzer.py

import json
import os
import shutil
import tempfile
from typing import Dict, Any, Optional
import aiofiles
from a11y_audit.config import AdBlockingConfig, get_ad_blocking_config
from a11y_audit.errors import EngineError
from a11y_audit.tools.pa11y import Pa11yConfig, parse_pa11y_output
from a11y_audit.wcag.types import AnalyzerResult, ImpactLevel, NodeInfo, RuleResultBuilder, ToolSource
from .base_analyzer import BaseToolAnalyzer

PA11Y_VERSION = "9.0.1"
PA11Y_HELP_URL = "https://squizlabs.github.io/HTML_CodeSniffer/Standards/WCAG2/"

IMPACT_MAP = {
    "error": ImpactLevel.SERIOUS,
    "warning": ImpactLevel.MODERATE,
    "notice": ImpactLevel.MINOR,
}

class Pa11yAnalyzer(BaseToolAnalyzer):
    """Analyzer für Pa11y über die Kommandozeile"""

    tool_source = ToolSource.PA11Y
    tool_name = "pa11y"
    version = PA11Y_VERSION

    def __init__(self, logger=None, timeout_config=None, ad_blocking: Optional[AdBlockingConfig] = None):
        super().__init__(logger, timeout_config)
        self.ad_blocking = ad_blocking or get_ad_blocking_config()

    @property
    def timeout_ms(self) -> int:
        return self.timeout_config.pa11y_timeout

    async def setup(self) -> bool:
        """
        Prüft ob Pa11y installiert und verfügbar ist

        Returns:
            True wenn Pa11y verfügbar ist, sonst False
        """
        if not shutil.which('pa11y'):
            self.logger.error("Pa11y is not installed. Please install it using: npm install -g pa11y")
            return False
        return True

    def build_config(self,
                     headers: Optional[Dict[str, str]] = None,
                     username: Optional[str] = None,
                     password: Optional[str] = None) -> Pa11yConfig:
        return Pa11yConfig(
            timeout=self.timeout_config.pa11y_timeout,
            wait=self.timeout_config.pa11y_wait,
            hide_elements=self.ad_blocking.hide_elements_selector() if self.ad_blocking.enabled else None,
            headers=dict(headers or {}),
            username=username,
            password=password
        )

    async def _run(self,
                   url: str,
                   headers: Optional[Dict[str, str]] = None,
                   username: Optional[str] = None,
                   password: Optional[str] = None,
                   **kwargs: Any) -> AnalyzerResult:
        """
        Führt Pa11y für die angegebene URL aus

        Args:
            url: Zu testende URL
            headers: Zusätzliche HTTP-Header (z.B. Cookie)
            username: Basic-Auth Benutzer
            password: Basic-Auth Passwort

        Returns:
            Normalisierte Pa11y Ergebnisse
        """
        config = self.build_config(headers, username, password)
        config_path = None

        try:
            if config.needs_config_file():
                fd, config_path = tempfile.mkstemp(prefix="pa11y_", suffix=".json")
                os.close(fd)
                async with aiofiles.open(config_path, 'w', encoding='utf-8') as f:
                    await f.write(json.dumps(config.to_config_file()))

            cmd = ['pa11y', *config.to_command_args(config_path), url]
            # Puffer über dem Pa11y-internen Timeout
            returncode, stdout, stderr = await self.run_command(cmd, timeout=config.timeout / 1000 + 30)

        finally:
            if config_path and os.path.exists(config_path):
                os.remove(config_path)

        # Pa11y gibt 2 zurück wenn es Probleme findet (das ist normal)
        if returncode not in (0, 2):
            raise EngineError(f"Pa11y failed with code {returncode}: {stderr.strip()}")

        try:
            raw_results = json.loads(stdout) if stdout.strip() else []
        except json.JSONDecodeError as e:
            self.logger.debug(f"Raw output was: {stdout[:500]}...")
            raise EngineError(f"Failed to parse Pa11y output: {str(e)}")

        return self.process_results(raw_results)

    def process_results(self, raw_results: Any) -> AnalyzerResult:
        """
        Errors werden zu Verstößen, Warnings und Notices zu unvollständigen
        Befunden; Pa11y meldet keine bestandenen Prüfungen.
        """
        violations = RuleResultBuilder(self.tool_source)
        incomplete = RuleResultBuilder(self.tool_source)

        for issue in parse_pa11y_output(raw_results):
            issue_type = issue.type.lower()
            builder = violations if issue_type == "error" else incomplete
            builder.add(
                rule_id=issue.code,
                description=issue.message,
                help_url=PA11Y_HELP_URL,
                wcag_criteria=issue.wcag_criteria,
                impact=IMPACT_MAP.get(issue_type, ImpactLevel.MINOR),
                nodes=[NodeInfo(target=issue.selector or "", html=issue.context or "")]
            )

        return AnalyzerResult(violations=violations.build(), incomplete=incomplete.build())
