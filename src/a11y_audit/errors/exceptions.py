# src/a11y_audit/errors/exceptions.py

from enum import Enum
from typing import Optional

class ErrorKind(str, Enum):
    """Fehlerklassen, einmalig an der Adapter- bzw. Orchestrator-Grenze bestimmt"""
    TIMEOUT = "timeout"
    NAVIGATION_REDIRECT = "navigation_redirect"
    CONNECTION_CLOSED = "connection_closed"
    ENGINE_FAILURE = "engine_failure"

def classify_error(error: BaseException) -> ErrorKind:
    """
    Ordnet eine Exception genau einer ErrorKind zu

    Args:
        error: Aufgetretene Exception

    Returns:
        Passende ErrorKind
    """
    if isinstance(error, AuditError) and error.kind is not None:
        return error.kind

    message = str(error)
    name = type(error).__name__
    if name == "TimeoutError" or isinstance(error, TimeoutError) or "timeout" in message.lower():
        return ErrorKind.TIMEOUT
    if "Execution context was destroyed" in message:
        return ErrorKind.NAVIGATION_REDIRECT
    if "Target closed" in message or "has been closed" in message:
        return ErrorKind.CONNECTION_CLOSED
    return ErrorKind.ENGINE_FAILURE

class AuditError(Exception):
    """Basisklasse für Audit-Fehler"""

    kind: Optional[ErrorKind] = None

class AuthenticationError(AuditError):
    """Authentifizierung vor der Analyse fehlgeschlagen"""
    pass

class EngineError(AuditError):
    """Fehler innerhalb einer Test-Engine, wird am Adapter abgefangen"""

    kind = ErrorKind.ENGINE_FAILURE

class NavigationError(AuditError):
    """Fataler Fehler beim Laden einer Seite"""

    kind = ErrorKind.ENGINE_FAILURE

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url

class NavigationTimeoutError(NavigationError):
    """Seite wurde nicht innerhalb des Timeouts geladen"""

    kind = ErrorKind.TIMEOUT

class RedirectDestroyedContextError(NavigationError):
    """Ausführungskontext durch Weiterleitung zerstört"""

    kind = ErrorKind.NAVIGATION_REDIRECT

class ConnectionClosedError(NavigationError):
    """Verbindung zum Browser wurde getrennt"""

    kind = ErrorKind.CONNECTION_CLOSED

def navigation_error_for(error: BaseException, url: str) -> NavigationError:
    """
    Übersetzt einen Fehler der Lade-/Axe-Phase in einen NavigationError
    mit nutzerlesbarer, URL-haltiger Meldung

    Args:
        error: Ursprüngliche Exception
        url: Ziel-URL

    Returns:
        NavigationError-Unterklasse passend zur ErrorKind
    """
    if isinstance(error, NavigationError):
        return error

    kind = classify_error(error)
    if kind == ErrorKind.TIMEOUT:
        return NavigationTimeoutError(
            f"Page load timed out for {url}. If the page requires authentication, "
            f"configure credentials before analyzing.",
            url
        )
    if kind == ErrorKind.NAVIGATION_REDIRECT:
        return RedirectDestroyedContextError(
            f"The page at {url} redirected during analysis and the execution context was destroyed.",
            url
        )
    if kind == ErrorKind.CONNECTION_CLOSED:
        return ConnectionClosedError(
            f"The browser connection was closed while analyzing {url}.",
            url
        )
    return NavigationError(f"Failed to analyze {url}: {error}", url)
