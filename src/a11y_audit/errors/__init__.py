from .exceptions import (
    ErrorKind,
    classify_error,
    navigation_error_for,
    AuditError,
    AuthenticationError,
    EngineError,
    NavigationError,
    NavigationTimeoutError,
    RedirectDestroyedContextError,
    ConnectionClosedError
)

__all__ = [
    'ErrorKind',
    'classify_error',
    'navigation_error_for',
    'AuditError',
    'AuthenticationError',
    'EngineError',
    'NavigationError',
    'NavigationTimeoutError',
    'RedirectDestroyedContextError',
    'ConnectionClosedError'
]
