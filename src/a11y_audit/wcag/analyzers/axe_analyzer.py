# src/a11y_audit/wcag/analyzers/axe_analyzer.py

from typing import Dict, Any, List, Optional
from playwright.async_api import Page
from a11y_audit.wcag.types import (
    AnalyzerResult,
    ImpactLevel,
    NodeInfo,
    RuleResultBuilder,
    ToolSource,
    extract_wcag_criteria
)
from .base_analyzer import BaseToolAnalyzer

AXE_VERSION = "4.11.0"
AXE_SCRIPT_URL = f"https://cdnjs.cloudflare.com/ajax/libs/axe-core/{AXE_VERSION}/axe.min.js"
AXE_TAGS = ['wcag2a', 'wcag2aa', 'wcag21a', 'wcag21aa']

# Zusätzliche Tags je WCAG-Version, kumulativ
AXE_VERSION_TAGS = {
    "2.0": ['wcag2a', 'wcag2aa'],
    "2.1": ['wcag21a', 'wcag21aa'],
    "2.2": ['wcag22aa'],
}

def axe_tags_for(wcag_version: str) -> List[str]:
    """Axe-Tags bis einschließlich der angegebenen WCAG-Version"""
    if wcag_version not in AXE_VERSION_TAGS:
        return list(AXE_TAGS)
    tags = []
    for version, version_tags in AXE_VERSION_TAGS.items():
        tags.extend(version_tags)
        if version == wcag_version:
            break
    return tags

AXE_RUN_SCRIPT = """(tags) => axe.run(document, {
    runOnly: { type: 'tag', values: tags },
    resultTypes: ['violations', 'passes', 'incomplete']
})"""

class AxeAnalyzer(BaseToolAnalyzer):
    """
    Analyzer für Axe Core Accessibility Tests.
    Injiziert Axe Core in die bereits navigierte Playwright-Seite.
    """

    tool_source = ToolSource.AXE_CORE
    tool_name = "axe-core"
    version = AXE_VERSION

    def __init__(self, logger=None, timeout_config=None, tags: Optional[List[str]] = None):
        super().__init__(logger, timeout_config)
        self.tags = tags or list(AXE_TAGS)

    @property
    def timeout_ms(self) -> int:
        return self.timeout_config.axe_timeout

    async def _run(self, page: Page, **kwargs: Any) -> AnalyzerResult:
        """
        Führt Axe Core Tests auf der Seite aus

        Args:
            page: Navigierte Playwright-Seite

        Returns:
            Normalisierte Axe Ergebnisse
        """
        await self._inject_axe(page)
        raw_results = await page.evaluate(AXE_RUN_SCRIPT, self.tags)
        return self.process_results(raw_results)

    async def _inject_axe(self, page: Page) -> None:
        # Axe Core von CDN laden
        await page.add_script_tag(url=AXE_SCRIPT_URL)
        await page.wait_for_function(
            "window.axe !== undefined",
            timeout=self.timeout_config.axe_timeout
        )

    def process_results(self, raw_results: Dict[str, Any]) -> AnalyzerResult:
        """
        Verarbeitet die Axe Core Rohergebnisse

        Args:
            raw_results: Ergebnis von axe.run()

        Returns:
            AnalyzerResult (Dauer wird vom Aufrufer gesetzt)
        """
        return AnalyzerResult(
            violations=self._convert(raw_results.get("violations", [])),
            passes=self._convert(raw_results.get("passes", [])),
            incomplete=self._convert(raw_results.get("incomplete", [])),
        )

    def _convert(self, items: List[Dict[str, Any]]):
        builder = RuleResultBuilder(self.tool_source)
        for item in items or []:
            nodes = [
                NodeInfo(
                    target=self._format_target(node.get("target")),
                    html=node.get("html", ""),
                    failure_summary=node.get("failureSummary")
                )
                for node in item.get("nodes", [])
            ]
            impact = item.get("impact")
            builder.add(
                rule_id=item.get("id", "unknown"),
                description=item.get("help") or item.get("description", ""),
                help_url=item.get("helpUrl", ""),
                wcag_criteria=extract_wcag_criteria(item.get("tags", [])),
                impact=ImpactLevel(impact) if impact in ImpactLevel._value2member_map_ else None,
                nodes=nodes
            )
        return builder.build()

    @staticmethod
    def _format_target(target: Any) -> str:
        # Axe liefert Selektoren als Liste (Frames/Shadow DOM verschachtelt)
        if isinstance(target, list):
            return " ".join(
                " ".join(part) if isinstance(part, list) else str(part)
                for part in target
            )
        return str(target or "")
