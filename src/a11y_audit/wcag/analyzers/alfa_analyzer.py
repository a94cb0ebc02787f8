# src/a11y_audit/wcag/analyzers/alfa_analyzer.py

import json
import os
import shutil
import tempfile
from typing import Dict, Any, List, Optional
import aiofiles
from playwright.async_api import Page
from a11y_audit.errors import EngineError
from a11y_audit.wcag.types import AnalyzerResult, ImpactLevel, NodeInfo, RuleResultBuilder, ToolSource
from .base_analyzer import BaseToolAnalyzer

ALFA_VERSION = "0.98.0"
RESULT_START_MARKER = "ALFARESULTS"
RESULT_END_MARKER = "ENDALFARESULTS"

# Node-Skript: rendert das gespeicherte HTML erneut und führt das Alfa-Audit aus.
# argv[2] = HTML-Datei, argv[3] = Basis-URL
ALFA_RUNNER_SCRIPT = """
const fs = require('fs');
const { chromium } = require('playwright');
const { Playwright } = require('@siteimprove/alfa-playwright');
const { Audit } = require('@siteimprove/alfa-test-utils');

async function runAlfa() {
    const [htmlPath, baseUrl] = process.argv.slice(2);
    const browser = await chromium.launch({ args: ['--no-sandbox'] });
    try {
        const page = await browser.newPage();
        const html = fs.readFileSync(htmlPath, 'utf-8');
        await page.route('**/*', route => route.request().isNavigationRequest()
            ? route.fulfill({ body: html, contentType: 'text/html' })
            : route.continue());
        await page.goto(baseUrl, { waitUntil: 'load' });
        const alfaPage = await Playwright.toPage(await page.evaluateHandle(() => document));
        const result = await Audit.run(alfaPage);
        console.log('ALFARESULTS' + JSON.stringify(result.toJSON()) + 'ENDALFARESULTS');
    } finally {
        await browser.close();
    }
}

runAlfa().catch(error => {
    console.error('Unhandled error:', error);
    process.exit(1);
});
"""

WCAG_URI_TO_CRITERION: Dict[str, str] = {
    'non-text-content': '1.1.1',
    'audio-only-and-video-only-prerecorded': '1.2.1',
    'captions-prerecorded': '1.2.2',
    'audio-description-or-media-alternative-prerecorded': '1.2.3',
    'captions-live': '1.2.4',
    'audio-description-prerecorded': '1.2.5',
    'info-and-relationships': '1.3.1',
    'meaningful-sequence': '1.3.2',
    'sensory-characteristics': '1.3.3',
    'orientation': '1.3.4',
    'identify-input-purpose': '1.3.5',
    'use-of-color': '1.4.1',
    'audio-control': '1.4.2',
    'contrast-minimum': '1.4.3',
    'resize-text': '1.4.4',
    'images-of-text': '1.4.5',
    'contrast-enhanced': '1.4.6',
    'low-or-no-background-audio': '1.4.7',
    'visual-presentation': '1.4.8',
    'images-of-text-no-exception': '1.4.9',
    'reflow': '1.4.10',
    'non-text-contrast': '1.4.11',
    'text-spacing': '1.4.12',
    'content-on-hover-or-focus': '1.4.13',
    'keyboard': '2.1.1',
    'no-keyboard-trap': '2.1.2',
    'keyboard-no-exception': '2.1.3',
    'character-key-shortcuts': '2.1.4',
    'timing-adjustable': '2.2.1',
    'pause-stop-hide': '2.2.2',
    'no-timing': '2.2.3',
    'interruptions': '2.2.4',
    're-authenticating': '2.2.5',
    'timeouts': '2.2.6',
    'three-flashes-or-below-threshold': '2.3.1',
    'three-flashes': '2.3.2',
    'animation-from-interactions': '2.3.3',
    'bypass-blocks': '2.4.1',
    'page-titled': '2.4.2',
    'focus-order': '2.4.3',
    'link-purpose-in-context': '2.4.4',
    'multiple-ways': '2.4.5',
    'headings-and-labels': '2.4.6',
    'focus-visible': '2.4.7',
    'location': '2.4.8',
    'link-purpose-link-only': '2.4.9',
    'section-headings': '2.4.10',
    'focus-not-obscured-minimum': '2.4.11',
    'focus-not-obscured-enhanced': '2.4.12',
    'focus-appearance': '2.4.13',
    'pointer-gestures': '2.5.1',
    'pointer-cancellation': '2.5.2',
    'label-in-name': '2.5.3',
    'motion-actuation': '2.5.4',
    'target-size-enhanced': '2.5.5',
    'concurrent-input-mechanisms': '2.5.6',
    'dragging-movements': '2.5.7',
    'target-size-minimum': '2.5.8',
    'language-of-page': '3.1.1',
    'language-of-parts': '3.1.2',
    'unusual-words': '3.1.3',
    'abbreviations': '3.1.4',
    'reading-level': '3.1.5',
    'pronunciation': '3.1.6',
    'on-focus': '3.2.1',
    'on-input': '3.2.2',
    'consistent-navigation': '3.2.3',
    'consistent-identification': '3.2.4',
    'change-on-request': '3.2.5',
    'consistent-help': '3.2.6',
    'error-identification': '3.3.1',
    'labels-or-instructions': '3.3.2',
    'error-suggestion': '3.3.3',
    'error-prevention-legal-financial-data': '3.3.4',
    'help': '3.3.5',
    'error-prevention-all': '3.3.6',
    'redundant-entry': '3.3.7',
    'accessible-authentication-minimum': '3.3.8',
    'accessible-authentication-enhanced': '3.3.9',
    'parsing': '4.1.1',
    'name-role-value': '4.1.2',
    'status-messages': '4.1.3',
}

WCAG22_CRITERIA = {'2.4.11', '2.4.12', '2.4.13', '2.5.7', '2.5.8', '3.2.6', '3.3.7', '3.3.8', '3.3.9'}

OUTCOME_IMPACT = {
    'failed': ImpactLevel.SERIOUS,
    'cantTell': ImpactLevel.MODERATE,
}

def extract_rule_id(rule_uri: str) -> str:
    # https://alfa.siteimprove.com/rules/sia-r1 -> sia-r1
    return rule_uri.rstrip('/').split('/')[-1] or rule_uri

def criterion_from_uri(uri: str) -> Optional[str]:
    fragment = uri.split('#')[-1] if uri else ''
    return WCAG_URI_TO_CRITERION.get(fragment)

def extract_json_between_markers(output: str) -> Any:
    start = output.find(RESULT_START_MARKER)
    end = output.find(RESULT_END_MARKER)
    if start == -1 or end == -1:
        raise EngineError("Could not find Alfa result markers in output")
    return json.loads(output[start + len(RESULT_START_MARKER):end])

class AlfaAnalyzer(BaseToolAnalyzer):
    """
    Analyzer für Siteimprove Alfa.
    Das HTML der navigierten Seite wird über ein Node-Skript geprüft.
    """

    tool_source = ToolSource.ALFA
    tool_name = "alfa"
    version = ALFA_VERSION

    async def setup(self) -> bool:
        if not shutil.which('node'):
            self.logger.error("Node.js is not installed, Alfa cannot run")
            return False
        return True

    async def _run(self, page: Page, **kwargs: Any) -> AnalyzerResult:
        html = await page.content()
        output = await self.run_alfa(html, page.url)
        raw = extract_json_between_markers(output)
        return self.process_results(raw.get("outcomes", []) if isinstance(raw, dict) else raw)

    async def run_alfa(self, html: str, base_url: str) -> str:
        """
        Schreibt HTML und Runner-Skript in ein temporäres Verzeichnis und
        führt das Skript mit node aus

        Returns:
            stdout des Skripts
        """
        work_dir = tempfile.mkdtemp(prefix="alfa_")
        try:
            html_path = os.path.join(work_dir, "page.html")
            script_path = os.path.join(work_dir, "run_alfa.js")
            async with aiofiles.open(html_path, 'w', encoding='utf-8') as f:
                await f.write(html)
            async with aiofiles.open(script_path, 'w', encoding='utf-8') as f:
                await f.write(ALFA_RUNNER_SCRIPT)

            returncode, stdout, stderr = await self.run_command(
                ['node', script_path, html_path, base_url],
                timeout=self.timeout_ms / 1000
            )
            if returncode != 0:
                raise EngineError(f"Alfa failed with code {returncode}: {stderr.strip()}")
            return stdout
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    def process_results(self, outcomes: List[Dict[str, Any]]) -> AnalyzerResult:
        """
        Normalisiert Alfa-Outcomes; inapplicable wird übersprungen

        Args:
            outcomes: Liste der Alfa-Outcomes

        Returns:
            AnalyzerResult
        """
        builders = {
            "failed": RuleResultBuilder(self.tool_source),
            "passed": RuleResultBuilder(self.tool_source),
            "cantTell": RuleResultBuilder(self.tool_source),
        }

        for item in outcomes or []:
            outcome = item.get("outcome")
            if outcome not in builders:
                continue

            rule = item.get("rule") or {}
            rule_uri = rule.get("uri", "")
            rule_id = extract_rule_id(rule_uri)

            criteria = []
            for requirement in rule.get("requirements") or []:
                criterion = criterion_from_uri(requirement.get("uri", ""))
                if criterion and criterion not in criteria:
                    criteria.append(criterion)

            target = item.get("target") or {}
            extra = {}
            if outcome != "passed":
                extra["impact"] = OUTCOME_IMPACT[outcome]
                extra["is_experimental"] = any(c in WCAG22_CRITERIA for c in criteria)

            builders[outcome].add(
                rule_id=rule_id,
                description=f"Alfa rule {rule_id}",
                help_url=rule_uri,
                wcag_criteria=criteria,
                nodes=[NodeInfo(
                    target=target.get("path", ""),
                    xpath=target.get("path", ""),
                    html=target.get("html", "")
                )],
                **extra
            )

        return AnalyzerResult(
            violations=builders["failed"].build(),
            passes=builders["passed"].build(),
            incomplete=builders["cantTell"].build()
        )
