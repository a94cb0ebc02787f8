# src/a11y_audit/wcag/analyzers/wave_analyzer.py

import threading
from typing import Dict, Any, List, Optional
import aiohttp
from a11y_audit.errors import EngineError
from a11y_audit.wcag.types import AnalyzerResult, ImpactLevel, NodeInfo, RuleResultBuilder, ToolSource
from .base_analyzer import BaseToolAnalyzer

WAVE_API_BASE_URL = "https://wave.webaim.org/api/request"
WAVE_VERSION = "3.0"
WAVE_HELP_URL = "https://wave.webaim.org/doc/rule/{rule_id}"

WAVE_RULE_TO_WCAG: Dict[str, List[str]] = {
    # Error
    'alt_missing': ['1.1.1'],
    'alt_link_missing': ['1.1.1', '2.4.4'],
    'alt_spacer_missing': ['1.1.1'],
    'alt_input_missing': ['1.1.1', '1.3.1'],
    'alt_area_missing': ['1.1.1', '2.4.4'],
    'alt_map_missing': ['1.1.1'],
    'longdesc_invalid': ['1.1.1'],
    'label_missing': ['1.3.1', '4.1.2'],
    'label_empty': ['1.3.1', '4.1.2'],
    'label_multiple': ['1.3.1'],
    'title_invalid': ['2.4.2'],
    'language_missing': ['3.1.1'],
    'meta_refresh': ['2.2.1', '2.2.4'],
    'heading_empty': ['1.3.1', '2.4.6'],
    'button_empty': ['1.1.1', '4.1.2'],
    'link_empty': ['2.4.4', '4.1.2'],
    'link_skip_broken': ['2.4.1'],
    'th_empty': ['1.3.1'],
    'blink': ['2.2.2'],
    'marquee': ['2.2.2'],
    # Contrast
    'contrast': ['1.4.3'],
    # Alert
    'alt_suspicious': ['1.1.1'],
    'alt_redundant': ['1.1.1'],
    'alt_duplicate': ['1.1.1'],
    'alt_long': ['1.1.1'],
    'longdesc': ['1.1.1'],
    'label_orphaned': ['1.3.1'],
    'label_title': ['1.3.1'],
    'heading_skipped': ['1.3.1'],
    'heading_possible': ['1.3.1'],
    'region_missing': ['1.3.1'],
    'table_layout': ['1.3.1'],
    'table_caption_possible': ['1.3.1'],
    'link_suspicious': ['2.4.4'],
    'link_redundant': ['2.4.4'],
    'noscript': ['4.1.1'],
    'title_redundant': ['2.4.2'],
    'audio_video': ['1.2.1', '1.2.2', '1.2.3'],
    'youtube_video': ['1.2.1', '1.2.2'],
    'flash': ['1.1.1'],
    'applet': ['1.1.1'],
    'object': ['1.1.1'],
    'plugin': ['1.1.1'],
    'html5_video_audio': ['1.2.1', '1.2.2'],
    'pdf': ['1.1.1'],
    'underline': ['1.4.1'],
    'text_small': ['1.4.4'],
    'text_justified': ['1.4.8'],
    # ARIA
    'aria_reference_broken': ['4.1.2'],
    'aria_menu_broken': ['4.1.2'],
    'aria_hidden': ['4.1.2'],
}

# Kategorie -> (Ergebnistyp, Impact)
CATEGORY_MAPPING = {
    'error': ('violation', ImpactLevel.SERIOUS),
    'contrast': ('violation', ImpactLevel.SERIOUS),
    'alert': ('incomplete', ImpactLevel.MODERATE),
    'feature': ('pass', None),
    'structure': ('pass', None),
    'aria': ('pass', None),
}

class ApiCallCounter:
    """Zählt WAVE-API-Aufrufe; gehört dem Aufrufer (z.B. einem Batch)"""

    def __init__(self):
        self._count = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._count += 1
            return self._count

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def reset(self) -> None:
        with self._lock:
            self._count = 0

class WaveAnalyzer(BaseToolAnalyzer):
    """Analyzer für die WAVE REST API (Report-Typ 3 mit XPaths)"""

    tool_source = ToolSource.WAVE
    tool_name = "wave"
    version = WAVE_VERSION

    def __init__(self,
                 api_key: str,
                 logger=None,
                 timeout_config=None,
                 call_counter: Optional[ApiCallCounter] = None,
                 report_type: int = 3):
        super().__init__(logger, timeout_config)
        self.api_key = api_key
        self.call_counter = call_counter or ApiCallCounter()
        self.report_type = report_type

    async def setup(self) -> bool:
        if not self.api_key:
            self.logger.error("WAVE API key is not configured")
            return False
        return True

    async def _run(self, url: str, **kwargs: Any) -> AnalyzerResult:
        """
        Ruft die WAVE API für die URL auf

        Args:
            url: Zu testende URL

        Returns:
            Normalisierte WAVE Ergebnisse
        """
        self.call_counter.increment()
        params = {
            "key": self.api_key,
            "url": url,
            "reporttype": str(self.report_type),
        }
        timeout = aiohttp.ClientTimeout(total=self.timeout_ms / 1000)

        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(WAVE_API_BASE_URL, params=params) as response:
                if response.status == 401:
                    raise EngineError("WAVE API key is invalid (401)")
                if response.status == 429:
                    self.logger.warning("WAVE API rate limit reached (429)")
                    raise EngineError("WAVE API rate limit reached (429)")
                if response.status != 200:
                    raise EngineError(f"WAVE API error: {response.status}")
                data = await response.json(content_type=None)

        if not (data.get("status") or {}).get("success"):
            raise EngineError("WAVE API response indicates failure")

        credits = (data.get("statistics") or {}).get("creditsremaining")
        if credits is not None:
            self.logger.debug(f"WAVE credits remaining: {credits}")

        return self.process_results(data)

    def process_results(self, data: Dict[str, Any]) -> AnalyzerResult:
        builders = {
            "violation": RuleResultBuilder(self.tool_source),
            "pass": RuleResultBuilder(self.tool_source),
            "incomplete": RuleResultBuilder(self.tool_source),
        }

        for category_name, category in (data.get("categories") or {}).items():
            items = (category or {}).get("items")
            if not items:
                continue
            result_type, impact = CATEGORY_MAPPING.get(category_name, ('incomplete', ImpactLevel.MINOR))

            for item_id, item in items.items():
                xpaths = item.get("xpaths") or []
                nodes = [NodeInfo(target=xpath, xpath=xpath) for xpath in xpaths]
                builders[result_type].add(
                    rule_id=item_id,
                    description=item.get("description", ""),
                    help_url=WAVE_HELP_URL.format(rule_id=item_id),
                    wcag_criteria=WAVE_RULE_TO_WCAG.get(item_id, []),
                    impact=impact,
                    nodes=nodes or None,
                    node_count=item.get("count", 0)
                )

        return AnalyzerResult(
            violations=builders["violation"].build(),
            passes=builders["pass"].build(),
            incomplete=builders["incomplete"].build()
        )
