# src/a11y_audit/wcag/timing.py

import time
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from a11y_audit.logging_config import get_logger

SLOW_ANALYZER_THRESHOLD_MS = 60000

logger = get_logger(__name__)

@dataclass
class AnalyzerTiming:
    """Zeitmessung eines einzelnen Engine-Laufs"""
    analyzer: str
    url: str
    start_time: float
    start_timestamp: str
    end_time: Optional[float] = None
    duration: Optional[int] = None
    status: Optional[str] = None  # success | timeout | error

def _now_ms() -> float:
    return time.monotonic() * 1000

def create_analyzer_timing(analyzer: str, url: str) -> AnalyzerTiming:
    return AnalyzerTiming(
        analyzer=analyzer,
        url=url,
        start_time=_now_ms(),
        start_timestamp=datetime.now(timezone.utc).isoformat(),
    )

def complete_analyzer_timing(timing: AnalyzerTiming, status: str) -> AnalyzerTiming:
    """
    Schließt die Zeitmessung ab

    Args:
        timing: Laufende Messung
        status: success, timeout oder error

    Returns:
        Dieselbe Messung mit end_time, duration und status
    """
    timing.end_time = _now_ms()
    timing.duration = int(round(timing.end_time - timing.start_time))
    timing.status = status
    return timing

def format_timeout_error(location: str, url: str, timeout_ms: int, elapsed_ms: int) -> str:
    """Nutzerlesbare Timeout-Meldung mit URL und verstrichener Zeit"""
    return (
        f"[{location}] Timeout after {timeout_ms / 1000:g}s while analyzing {url} "
        f"(elapsed: {elapsed_ms / 1000:.1f}s)"
    )

def format_structured_log(timing: AnalyzerTiming, error_message: Optional[str] = None) -> str:
    duration = timing.duration or 0
    parts = [
        f"analyzer={timing.analyzer}",
        f"url={timing.url}",
        f"status={timing.status}",
        f"duration={duration}ms",
    ]
    if duration > SLOW_ANALYZER_THRESHOLD_MS:
        parts.append(f"warning=exceeded {SLOW_ANALYZER_THRESHOLD_MS // 1000}s")
    if error_message:
        parts.append(f"error={error_message}")
    return " ".join(parts)

def log_analyzer_start(analyzer: str, url: str, log: Optional[logging.Logger] = None) -> None:
    (log or logger).info(f"[{analyzer}] Starting analysis for {url}")

def log_analyzer_complete(timing: AnalyzerTiming,
                          error_message: Optional[str] = None,
                          log: Optional[logging.Logger] = None) -> None:
    log = log or logger
    message = format_structured_log(timing, error_message)
    if timing.status == "success":
        if (timing.duration or 0) > SLOW_ANALYZER_THRESHOLD_MS:
            log.warning(message)
        else:
            log.info(message)
    else:
        log.error(message)
