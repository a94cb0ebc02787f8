# src/a11y_audit/auth/types.py

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional
from typing_extensions import TypedDict

class AuthType(str, Enum):
    NONE = "none"
    COOKIE = "cookie"
    BEARER = "bearer"
    BASIC = "basic"
    FORM = "form"

class Cookie(TypedDict, total=False):
    name: str
    value: str
    domain: str
    path: str
    expires: float
    httpOnly: bool
    secure: bool
    sameSite: str

class StorageState(TypedDict):
    """Playwright storage_state: Cookies und localStorage je Origin"""
    cookies: List[Cookie]
    origins: List[Dict[str, Any]]

class HttpCredentials(TypedDict):
    username: str
    password: str

@dataclass
class AuthConfig:
    """Authentifizierungseinstellungen für eine Analyse"""
    type: AuthType = AuthType.NONE

    # Cookie-Auth: "name=value; name2=value2"
    cookies: Optional[str] = None

    # Bearer-Token
    token: Optional[str] = None

    # Basic-Auth und Formular-Login
    username: Optional[str] = None
    password: Optional[str] = None

    # Formular-Login
    login_url: Optional[str] = None
    username_selector: Optional[str] = None
    password_selector: Optional[str] = None
    submit_selector: Optional[str] = None
    success_url_pattern: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuthConfig':
        return cls(
            type=AuthType(data.get("type", "none")),
            cookies=data.get("cookies"),
            token=data.get("token"),
            username=data.get("username"),
            password=data.get("password"),
            login_url=data.get("loginUrl"),
            username_selector=data.get("usernameSelector"),
            password_selector=data.get("passwordSelector"),
            submit_selector=data.get("submitSelector"),
            success_url_pattern=data.get("successUrlPattern")
        )

@dataclass
class AuthSession:
    cookies: List[Cookie] = field(default_factory=list)
    headers: Dict[str, str] = field(default_factory=dict)
    http_credentials: Optional[HttpCredentials] = None

@dataclass
class AuthResult:
    success: bool
    session: Optional[AuthSession] = None
    storage_state: Optional[StorageState] = None
    error: Optional[str] = None
