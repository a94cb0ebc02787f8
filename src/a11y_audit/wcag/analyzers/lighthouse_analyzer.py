# src/a11y_audit/wcag/analyzers/lighthouse_analyzer.py

import json
import os
import re
import shutil
import tempfile
from typing import Dict, Any, Optional, List
import aiofiles
from a11y_audit.config import AdBlockingConfig, get_ad_blocking_config
from a11y_audit.errors import EngineError, ErrorKind
from a11y_audit.wcag.types import (
    AnalyzerResult,
    ImpactLevel,
    LighthouseResult,
    LighthouseScores,
    NodeInfo,
    RuleResultBuilder,
    ToolSource
)
from .base_analyzer import BaseToolAnalyzer

LIGHTHOUSE_VERSION = "12.0.0"
LIGHTHOUSE_CATEGORIES = ["accessibility", "performance", "best-practices", "seo"]

# Lighthouse-Audits basieren auf axe-core, die IDs lassen sich direkt zuordnen
AUDIT_TO_WCAG: Dict[str, List[str]] = {
    'color-contrast': ['1.4.3'],
    'image-alt': ['1.1.1'],
    'input-image-alt': ['1.1.1'],
    'link-name': ['2.4.4', '4.1.2'],
    'button-name': ['4.1.2'],
    'label': ['1.3.1', '4.1.2'],
    'html-has-lang': ['3.1.1'],
    'html-lang-valid': ['3.1.1'],
    'meta-viewport': ['1.4.4'],
    'document-title': ['2.4.2'],
    'bypass': ['2.4.1'],
    'heading-order': ['1.3.1'],
    'list': ['1.3.1'],
    'listitem': ['1.3.1'],
    'definition-list': ['1.3.1'],
    'dlitem': ['1.3.1'],
    'aria-allowed-attr': ['4.1.2'],
    'aria-hidden-body': ['4.1.2'],
    'aria-required-attr': ['4.1.2'],
    'aria-required-children': ['1.3.1'],
    'aria-required-parent': ['1.3.1'],
    'aria-roles': ['4.1.2'],
    'aria-valid-attr-value': ['4.1.2'],
    'aria-valid-attr': ['4.1.2'],
    'duplicate-id-aria': ['4.1.1'],
    'form-field-multiple-labels': ['1.3.1'],
    'frame-title': ['4.1.2'],
    'tabindex': ['2.4.3'],
    'td-headers-attr': ['1.3.1'],
    'th-has-data-cells': ['1.3.1'],
    'valid-lang': ['3.1.2'],
    'video-caption': ['1.2.2'],
}

_URL_PATTERN = re.compile(r"https?://[^\s)]+")

def map_score_to_impact(score: Optional[float]) -> Optional[ImpactLevel]:
    if score is None:
        return None
    if score < 0.5:
        return ImpactLevel.CRITICAL
    if score < 0.7:
        return ImpactLevel.SERIOUS
    if score < 0.9:
        return ImpactLevel.MODERATE
    return ImpactLevel.MINOR

def _score_percent(category: Optional[Dict[str, Any]]) -> int:
    return int(round(((category or {}).get("score") or 0) * 100))

class LighthouseAnalyzer(BaseToolAnalyzer):
    """
    Analyzer für Lighthouse.
    Steuert Lighthouse über die Kommandozeilen-Schnittstelle und liest
    den JSON-Report aus einer temporären Datei.
    """

    tool_source = ToolSource.LIGHTHOUSE
    tool_name = "lighthouse"
    version = LIGHTHOUSE_VERSION

    def __init__(self, logger=None, timeout_config=None, ad_blocking: Optional[AdBlockingConfig] = None):
        super().__init__(logger, timeout_config)
        self.ad_blocking = ad_blocking or get_ad_blocking_config()

        # Chrome Flags für Headless-Modus
        self.chrome_flags = [
            '--headless',
            '--no-sandbox',
            '--disable-gpu',
            '--disable-dev-shm-usage'
        ]

    @property
    def timeout_ms(self) -> int:
        return self.timeout_config.lighthouse_max_wait_for_load

    async def setup(self) -> bool:
        if not shutil.which('lighthouse'):
            self.logger.error("Lighthouse is not installed. Please install it using: npm install -g lighthouse")
            return False
        return True

    def empty_result(self, duration: int, error_kind: Optional[ErrorKind] = None) -> LighthouseResult:
        return LighthouseResult(duration=duration, error_kind=error_kind, scores=LighthouseScores())

    def build_command(self,
                      url: str,
                      output_path: str,
                      headers: Optional[Dict[str, str]] = None,
                      additional_blocked_patterns: Optional[List[str]] = None) -> List[str]:
        cmd = [
            'lighthouse',
            url,
            '--output=json',
            f'--output-path={output_path}',
            '--quiet',
            f'--only-categories={",".join(LIGHTHOUSE_CATEGORIES)}',
            f'--chrome-flags={" ".join(self.chrome_flags)}',
            f'--max-wait-for-load={self.timeout_config.lighthouse_max_wait_for_load}',
            f'--max-wait-for-fcp={self.timeout_config.lighthouse_max_wait_for_fcp}',
            '--no-enable-error-reporting'
        ]

        blocked = []
        if self.ad_blocking.enabled:
            blocked.extend(self.ad_blocking.blocked_url_patterns)
        blocked.extend(additional_blocked_patterns or [])
        for pattern in blocked:
            cmd.append(f'--blocked-url-patterns={pattern}')

        if headers:
            cmd.append(f'--extra-headers={json.dumps(headers)}')
            # Session erhalten
            cmd.append('--disable-storage-reset')

        return cmd

    async def _run(self,
                   url: str,
                   headers: Optional[Dict[str, str]] = None,
                   additional_blocked_patterns: Optional[List[str]] = None,
                   **kwargs: Any) -> LighthouseResult:
        """
        Führt Lighthouse aus

        Args:
            url: Zu testende URL
            headers: Zusätzliche HTTP-Header (Cookie, Authorization)
            additional_blocked_patterns: Weitere zu blockierende URL-Muster

        Returns:
            Normalisierte Lighthouse Ergebnisse mit Scores
        """
        fd, output_path = tempfile.mkstemp(prefix="lighthouse_", suffix=".json")
        os.close(fd)

        try:
            cmd = self.build_command(url, output_path, headers, additional_blocked_patterns)
            returncode, stdout, stderr = await self.run_command(
                cmd,
                timeout=self.timeout_config.lighthouse_max_wait_for_load / 1000 + 60
            )
            if returncode != 0:
                raise EngineError(f"Lighthouse failed with code {returncode}: {stderr.strip()}")

            async with aiofiles.open(output_path, 'r', encoding='utf-8') as f:
                content = await f.read()
            if not content.strip():
                raise EngineError("Lighthouse did not return results")

            return self.process_results(json.loads(content))

        finally:
            # Bereinige temporäre Dateien
            if os.path.exists(output_path):
                try:
                    os.remove(output_path)
                except OSError as e:
                    self.logger.warning(f"Failed to remove temp file {output_path}: {e}")

    def process_results(self, lhr: Dict[str, Any]) -> LighthouseResult:
        """
        Verarbeitet einen Lighthouse-Report (lhr)

        Args:
            lhr: Lighthouse JSON Report

        Returns:
            LighthouseResult
        """
        categories = lhr.get("categories") or {}
        audits = lhr.get("audits") or {}

        pwa = categories.get("pwa")
        scores = LighthouseScores(
            performance=_score_percent(categories.get("performance")),
            accessibility=_score_percent(categories.get("accessibility")),
            best_practices=_score_percent(categories.get("best-practices")),
            seo=_score_percent(categories.get("seo")),
            pwa=_score_percent(pwa) if pwa and pwa.get("score") is not None else None
        )

        violations = RuleResultBuilder(self.tool_source)
        passes = RuleResultBuilder(self.tool_source)
        incomplete = RuleResultBuilder(self.tool_source)

        audit_refs = (categories.get("accessibility") or {}).get("auditRefs", [])
        for ref in audit_refs:
            audit = audits.get(ref.get("id"))
            if not audit:
                continue

            mode = audit.get("scoreDisplayMode")
            if mode == "notApplicable":
                continue

            score = audit.get("score")
            details = audit.get("details") or {}
            nodes = self.extract_nodes(details)
            extra = {"raw_score": score}

            if score is None:
                builder = incomplete
                extra["classification_reason"] = "manual-review" if mode == "manual" else "insufficient-data"
            elif score < 0.5:
                builder = violations
            else:
                builder = passes

            builder.add(
                rule_id=audit.get("id", ref.get("id")),
                description=audit.get("title", ""),
                help_url=self._help_url(audit),
                wcag_criteria=AUDIT_TO_WCAG.get(audit.get("id", ""), []),
                impact=map_score_to_impact(score),
                nodes=nodes or None,
                node_count=len(details.get("items") or []),
                **extra
            )

        return LighthouseResult(
            violations=violations.build(),
            passes=passes.build(),
            incomplete=incomplete.build(),
            scores=scores
        )

    @staticmethod
    def extract_nodes(details: Dict[str, Any]) -> List[NodeInfo]:
        """Knoten aus table- (items[].node) oder list-Details"""
        nodes = []
        detail_type = details.get("type")
        for item in details.get("items") or []:
            if not isinstance(item, dict):
                continue
            if detail_type == "table":
                source = item.get("node") if isinstance(item.get("node"), dict) else None
            elif detail_type == "list":
                source = item
            else:
                source = None
            if source and source.get("selector"):
                nodes.append(NodeInfo(target=source["selector"], html=source.get("snippet", "")))
        return nodes

    @staticmethod
    def _help_url(audit: Dict[str, Any]) -> str:
        description = audit.get("description") or ""
        match = _URL_PATTERN.search(description)
        if match:
            return match.group(0)
        return f"https://web.dev/{audit.get('id', '')}/"
