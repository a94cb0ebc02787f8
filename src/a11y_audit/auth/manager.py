# src/a11y_audit/auth/manager.py

import base64
import logging
import re
from typing import Dict, List, Optional
from urllib.parse import urlparse
from playwright.async_api import async_playwright
from a11y_audit.logging_config import get_logger
from .types import (
    AuthConfig,
    AuthResult,
    AuthSession,
    AuthType,
    Cookie,
    HttpCredentials,
    StorageState
)

FORM_LOGIN_TIMEOUT = 30000

def parse_cookie_string(cookie_string: str, domain: str) -> List[Cookie]:
    """
    Parses "name=value; name2=value2" into Playwright cookies

    Args:
        cookie_string: Cookie header value
        domain: Cookie domain

    Returns:
        List of cookies with path '/'
    """
    cookies: List[Cookie] = []
    for pair in (p.strip() for p in cookie_string.split(';')):
        if not pair or '=' not in pair:
            continue
        name, value = pair.split('=', 1)
        if name.strip():
            cookies.append({
                "name": name.strip(),
                "value": value.strip(),
                "domain": domain,
                "path": "/",
            })
    return cookies

def extract_domain(url: str) -> str:
    try:
        return urlparse(url).hostname or ""
    except ValueError:
        return ""

class AuthManager:
    """Erzeugt und hält die Authentifizierungs-Session für eine Ziel-URL"""

    def __init__(self, config: Optional[AuthConfig], target_url: str,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.target_url = target_url
        self.logger = logger or get_logger(self.__class__.__name__)
        self.session: Optional[AuthSession] = None
        self.storage_state: Optional[StorageState] = None

    def requires_auth(self) -> bool:
        return self.config is not None and self.config.type != AuthType.NONE

    async def authenticate(self) -> AuthResult:
        """
        Führt die Authentifizierung gemäß Konfiguration aus

        Returns:
            AuthResult; bei Erfolg werden Session und storage_state übernommen
        """
        result = await self._create_session()
        if result.success and result.session:
            self.session = result.session
            self.storage_state = result.storage_state
        elif not result.success:
            self.logger.error(f"Authentication failed: {result.error}")
        return result

    def get_storage_state(self) -> Optional[StorageState]:
        return self.storage_state

    def get_headers(self) -> Dict[str, str]:
        """HTTP-Header für Pa11y, Lighthouse und den Browser-Kontext"""
        return dict(self.session.headers) if self.session else {}

    def get_http_credentials(self) -> Optional[HttpCredentials]:
        return self.session.http_credentials if self.session else None

    async def _create_session(self) -> AuthResult:
        config = self.config
        if config is None or config.type == AuthType.NONE:
            return AuthResult(success=True, session=AuthSession())

        if config.type == AuthType.COOKIE:
            return self._cookie_session(config)
        if config.type == AuthType.BEARER:
            return self._bearer_session(config)
        if config.type == AuthType.BASIC:
            return self._basic_session(config)
        if config.type == AuthType.FORM:
            return await self._form_login(config)
        return AuthResult(success=False, error=f"Unsupported auth type: {config.type}")

    def _cookie_session(self, config: AuthConfig) -> AuthResult:
        if not config.cookies:
            return AuthResult(success=False, error="No cookie string provided")

        cookies = parse_cookie_string(config.cookies, extract_domain(self.target_url))
        return AuthResult(
            success=True,
            session=AuthSession(cookies=cookies, headers={"Cookie": config.cookies}),
            storage_state={"cookies": cookies, "origins": []}
        )

    @staticmethod
    def _bearer_session(config: AuthConfig) -> AuthResult:
        if not config.token:
            return AuthResult(success=False, error="No bearer token provided")
        return AuthResult(
            success=True,
            session=AuthSession(headers={"Authorization": f"Bearer {config.token}"})
        )

    @staticmethod
    def _basic_session(config: AuthConfig) -> AuthResult:
        if not config.username or not config.password:
            return AuthResult(success=False, error="Username or password missing")

        token = base64.b64encode(f"{config.username}:{config.password}".encode()).decode()
        return AuthResult(
            success=True,
            session=AuthSession(
                headers={"Authorization": f"Basic {token}"},
                http_credentials={"username": config.username, "password": config.password}
            )
        )

    async def _form_login(self, config: AuthConfig) -> AuthResult:
        required = [
            config.login_url, config.username_selector, config.password_selector,
            config.submit_selector, config.username, config.password
        ]
        if not all(required):
            return AuthResult(
                success=False,
                error="Form login requires login_url, username_selector, password_selector, "
                      "submit_selector, username and password"
            )

        try:
            async with async_playwright() as playwright:
                browser = await playwright.chromium.launch(headless=True)
                try:
                    context = await browser.new_context()
                    page = await context.new_page()

                    await page.goto(config.login_url, wait_until="networkidle")
                    await page.fill(config.username_selector, config.username)
                    await page.fill(config.password_selector, config.password)
                    await page.click(config.submit_selector)

                    if config.success_url_pattern:
                        await page.wait_for_url(
                            re.compile(config.success_url_pattern),
                            timeout=FORM_LOGIN_TIMEOUT
                        )
                    else:
                        await page.wait_for_load_state("networkidle")

                    storage_state = await context.storage_state()
                finally:
                    await browser.close()

        except Exception as e:
            return AuthResult(success=False, error=f"Form login failed: {str(e)}")

        cookie_header = "; ".join(f"{c['name']}={c['value']}" for c in storage_state.get("cookies", []))
        self.logger.info(f"Form login succeeded with {len(storage_state.get('cookies', []))} cookies")
        return AuthResult(
            success=True,
            session=AuthSession(cookies=storage_state.get("cookies", []), headers={"Cookie": cookie_header}),
            storage_state=storage_state
        )
