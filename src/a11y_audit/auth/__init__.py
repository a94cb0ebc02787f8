from .types import AuthConfig, AuthType, AuthResult, AuthSession, StorageState
from .manager import AuthManager, parse_cookie_string, extract_domain

__all__ = [
    'AuthConfig',
    'AuthType',
    'AuthResult',
    'AuthSession',
    'StorageState',
    'AuthManager',
    'parse_cookie_string',
    'extract_domain'
]
