# src/a11y_audit/multi_url_analyzer.py

import logging
from typing import List, Optional
from a11y_audit.analyzer import analyze_url, page_name_for
from a11y_audit.auth import AuthConfig, StorageState
from a11y_audit.logging_config import get_logger
from a11y_audit.wcag.analysis_options import AnalysisOptions
from a11y_audit.wcag.analyzers import ApiCallCounter
from a11y_audit.wcag.events import ProgressCallback, SSEEvent, emit, page_progress_event
from a11y_audit.wcag.types import AccessibilityReport, PageResult, ReportSummary, ToolInfo

logger = get_logger(__name__)

ANALYSIS_ERROR_CODE = "ANALYSIS_ERROR"

async def analyze_multiple_urls(urls: List[str],
                                auth_config: Optional[AuthConfig] = None,
                                on_progress: Optional[ProgressCallback] = None,
                                storage_state: Optional[StorageState] = None,
                                options: Optional[AnalysisOptions] = None,
                                call_counter: Optional[ApiCallCounter] = None,
                                log: Optional[logging.Logger] = None) -> AccessibilityReport:
    """
    Analysiert mehrere URLs nacheinander und fasst die Ergebnisse zusammen

    Die URLs werden strikt in Eingabereihenfolge verarbeitet. Schlägt die
    Analyse einer URL fehl, wird eine Seite mit Fehlerinformation angelegt
    und mit der nächsten URL fortgefahren.

    Args:
        urls: Zu analysierende URLs
        auth_config: Authentifizierung für alle URLs
        on_progress: Callback für Fortschritts-Events
        storage_state: Gemeinsamer storage_state für alle URLs
        options: Analyse-Optionen
        call_counter: WAVE-Aufrufzähler für diesen Lauf
        log: Optional logger instance

    Returns:
        AccessibilityReport mit einer Seite pro URL
    """
    log = log or logger
    call_counter = call_counter or ApiCallCounter()
    total_pages = len(urls)

    pages: List[PageResult] = []
    summary = ReportSummary()
    tools_used: List[ToolInfo] = []
    screenshot = None
    lighthouse_scores = None
    ai_summary = None

    def forward(event: SSEEvent) -> None:
        emit(on_progress, event)

    for index, url in enumerate(urls):
        emit(on_progress, page_progress_event(index, total_pages, url, 'started'))

        try:
            report = await analyze_url(
                url,
                auth_config=auth_config,
                on_progress=forward,
                storage_state=storage_state,
                options=options,
                call_counter=call_counter
            )
        except Exception as e:
            log.error(f"Analysis failed for {url}: {str(e)}")
            pages.append(PageResult.failed(page_name_for(url), url, str(e), ANALYSIS_ERROR_CODE))
            emit(on_progress, page_progress_event(index, total_pages, url, 'failed'))
            continue

        if not report.pages:
            continue
        page = report.pages[0]
        pages.append(page)
        summary.add(report.summary)

        # Report-Felder der ersten Seite für das Einzelseiten-Format
        if not tools_used and report.tools_used:
            tools_used.extend(report.tools_used)
        if screenshot is None and page.screenshot:
            screenshot = page.screenshot
        if lighthouse_scores is None and page.lighthouse_scores:
            lighthouse_scores = page.lighthouse_scores
        if ai_summary is None and page.ai_summary:
            ai_summary = page.ai_summary

        emit(on_progress, page_progress_event(index, total_pages, url, 'completed', page.name))

    log.info(
        f"Analyzed {total_pages} URLs: {sum(1 for p in pages if p.error is None)} succeeded, "
        f"{summary.total_violations} violations"
    )
    if call_counter.count:
        log.info(f"WAVE API calls in this run: {call_counter.count}")

    return AccessibilityReport(
        summary=summary,
        pages=pages,
        tools_used=tools_used,
        screenshot=screenshot,
        lighthouse_scores=lighthouse_scores,
        ai_summary=ai_summary
    )
