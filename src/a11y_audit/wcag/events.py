# src/a11y_audit/wcag/events.py

import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Union
from typing_extensions import TypedDict, Literal

PageStatus = Literal['started', 'analyzing', 'completed', 'failed']

class LogEvent(TypedDict):
    type: Literal['log']
    message: str
    timestamp: str

class ProgressEvent(TypedDict):
    type: Literal['progress']
    step: int
    total: int
    stepName: str

class ViolationEvent(TypedDict):
    type: Literal['violation']
    rule: str
    impact: str
    count: int

class PageProgressEvent(TypedDict):
    type: Literal['page_progress']
    pageIndex: int
    totalPages: int
    pageUrl: str
    pageTitle: str
    status: PageStatus

class CompleteEvent(TypedDict):
    type: Literal['complete']
    report: Dict[str, Any]

class ErrorEvent(TypedDict):
    type: Literal['error']
    message: str
    code: str

class SessionExpiredEvent(TypedDict):
    type: Literal['session_expired']
    message: str

SSEEvent = Union[
    LogEvent,
    ProgressEvent,
    ViolationEvent,
    PageProgressEvent,
    CompleteEvent,
    ErrorEvent,
    SessionExpiredEvent,
]

ProgressCallback = Callable[[SSEEvent], None]

def log_event(message: str) -> LogEvent:
    return {
        'type': 'log',
        'message': message,
        'timestamp': datetime.now(timezone.utc).isoformat(),
    }

def progress_event(step: int, total: int, step_name: str) -> ProgressEvent:
    return {'type': 'progress', 'step': step, 'total': total, 'stepName': step_name}

def violation_event(rule: str, impact: Optional[str], count: int) -> ViolationEvent:
    return {'type': 'violation', 'rule': rule, 'impact': impact or 'minor', 'count': count}

def page_progress_event(page_index: int,
                        total_pages: int,
                        page_url: str,
                        status: PageStatus,
                        page_title: str = '') -> PageProgressEvent:
    return {
        'type': 'page_progress',
        'pageIndex': page_index,
        'totalPages': total_pages,
        'pageUrl': page_url,
        'pageTitle': page_title,
        'status': status,
    }

def complete_event(report: Dict[str, Any]) -> CompleteEvent:
    return {'type': 'complete', 'report': report}

def error_event(message: str, code: str) -> ErrorEvent:
    return {'type': 'error', 'message': message, 'code': code}

def session_expired_event(message: str) -> SessionExpiredEvent:
    return {'type': 'session_expired', 'message': message}

def format_sse_data(event: SSEEvent) -> str:
    """Render one event as an SSE data frame"""
    return f"data: {json.dumps(event, ensure_ascii=False)}\n\n"

def emit(on_progress: Optional[ProgressCallback], event: SSEEvent) -> None:
    """Invoke the callback if one was given"""
    if on_progress is not None:
        on_progress(event)
