import base64
import re
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from a11y_audit.auth import (
    AuthConfig,
    AuthManager,
    AuthType,
    extract_domain,
    parse_cookie_string
)

TARGET_URL = "https://app.example.com/dashboard"

def _mock_playwright(storage_state):
    """async_playwright() double returning a browser whose context yields storage_state"""
    page = MagicMock()
    page.goto = AsyncMock()
    page.fill = AsyncMock()
    page.click = AsyncMock()
    page.wait_for_url = AsyncMock()
    page.wait_for_load_state = AsyncMock()

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.storage_state = AsyncMock(return_value=storage_state)

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)
    browser.close = AsyncMock()

    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)

    manager = MagicMock()
    manager.__aenter__ = AsyncMock(return_value=playwright)
    manager.__aexit__ = AsyncMock(return_value=False)
    return manager, page, browser

class TestCookieParsing:

    def test_parse_cookie_string(self):
        cookies = parse_cookie_string("session=abc; theme=dark; token=a=b", "example.com")
        assert [(c["name"], c["value"]) for c in cookies] == [
            ("session", "abc"), ("theme", "dark"), ("token", "a=b")
        ]
        assert all(c["domain"] == "example.com" and c["path"] == "/" for c in cookies)

    def test_parse_skips_invalid_pairs(self):
        assert parse_cookie_string("novalue; =x; ; ok=1", "example.com") == [
            {"name": "ok", "value": "1", "domain": "example.com", "path": "/"}
        ]

    def test_extract_domain(self):
        assert extract_domain(TARGET_URL) == "app.example.com"
        assert extract_domain("not a url") == ""

class TestAuthManager:

    def test_requires_auth(self):
        assert not AuthManager(None, TARGET_URL).requires_auth()
        assert not AuthManager(AuthConfig(), TARGET_URL).requires_auth()
        assert AuthManager(AuthConfig(type=AuthType.BEARER, token="t"), TARGET_URL).requires_auth()

    @pytest.mark.asyncio
    async def test_cookie_auth(self):
        manager = AuthManager(AuthConfig(type=AuthType.COOKIE, cookies="sid=1; lang=de"), TARGET_URL)
        result = await manager.authenticate()

        assert result.success
        assert manager.get_headers() == {"Cookie": "sid=1; lang=de"}
        state = manager.get_storage_state()
        assert state["origins"] == []
        assert state["cookies"][0] == {"name": "sid", "value": "1", "domain": "app.example.com", "path": "/"}
        assert manager.get_http_credentials() is None

    @pytest.mark.asyncio
    async def test_bearer_auth(self):
        manager = AuthManager(AuthConfig(type=AuthType.BEARER, token="tok"), TARGET_URL)
        assert (await manager.authenticate()).success
        assert manager.get_headers() == {"Authorization": "Bearer tok"}
        assert manager.get_storage_state() is None

    @pytest.mark.asyncio
    async def test_basic_auth(self):
        manager = AuthManager(AuthConfig(type=AuthType.BASIC, username="u", password="p"), TARGET_URL)
        assert (await manager.authenticate()).success
        expected = base64.b64encode(b"u:p").decode()
        assert manager.get_headers() == {"Authorization": f"Basic {expected}"}
        assert manager.get_http_credentials() == {"username": "u", "password": "p"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("config", [
        AuthConfig(type=AuthType.COOKIE),
        AuthConfig(type=AuthType.BEARER),
        AuthConfig(type=AuthType.BASIC, username="u"),
        AuthConfig(type=AuthType.FORM, login_url="https://example.com/login"),
    ])
    async def test_missing_fields_fail(self, config):
        manager = AuthManager(config, TARGET_URL)
        result = await manager.authenticate()
        assert not result.success
        assert result.error
        assert manager.get_headers() == {}

    def test_config_from_dict(self):
        config = AuthConfig.from_dict({
            "type": "form",
            "loginUrl": "https://example.com/login",
            "usernameSelector": "#user",
            "passwordSelector": "#pass",
            "submitSelector": "button[type=submit]",
            "successUrlPattern": "/dashboard",
        })
        assert config.type == AuthType.FORM
        assert config.login_url == "https://example.com/login"
        assert config.success_url_pattern == "/dashboard"

class TestFormLogin:

    @pytest.fixture
    def form_config(self):
        return AuthConfig(
            type=AuthType.FORM,
            login_url="https://app.example.com/login",
            username_selector="#user",
            password_selector="#pass",
            submit_selector="button[type=submit]",
            username="alice",
            password="secret",
            success_url_pattern=r"/dashboard"
        )

    @pytest.mark.asyncio
    async def test_form_login_captures_session(self, form_config):
        storage_state = {
            "cookies": [
                {"name": "sid", "value": "42", "domain": "app.example.com", "path": "/"},
                {"name": "csrf", "value": "x", "domain": "app.example.com", "path": "/"},
            ],
            "origins": [],
        }
        playwright, page, browser = _mock_playwright(storage_state)

        with patch('a11y_audit.auth.manager.async_playwright', return_value=playwright):
            manager = AuthManager(form_config, TARGET_URL)
            result = await manager.authenticate()

        assert result.success
        page.goto.assert_awaited_once_with("https://app.example.com/login", wait_until="networkidle")
        page.fill.assert_any_await("#user", "alice")
        page.fill.assert_any_await("#pass", "secret")
        page.click.assert_awaited_once_with("button[type=submit]")
        pattern = page.wait_for_url.await_args.args[0]
        assert isinstance(pattern, re.Pattern) and pattern.pattern == "/dashboard"
        browser.close.assert_awaited_once()

        assert manager.get_headers() == {"Cookie": "sid=42; csrf=x"}
        assert manager.get_storage_state() == storage_state

    @pytest.mark.asyncio
    async def test_form_login_without_pattern_waits_for_network(self, form_config):
        form_config.success_url_pattern = None
        playwright, page, _ = _mock_playwright({"cookies": [], "origins": []})

        with patch('a11y_audit.auth.manager.async_playwright', return_value=playwright):
            result = await AuthManager(form_config, TARGET_URL).authenticate()

        assert result.success
        page.wait_for_load_state.assert_awaited_once_with("networkidle")
        page.wait_for_url.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_form_login_failure(self, form_config):
        playwright, page, browser = _mock_playwright({})
        page.click.side_effect = RuntimeError("selector not found")

        with patch('a11y_audit.auth.manager.async_playwright', return_value=playwright):
            result = await AuthManager(form_config, TARGET_URL).authenticate()

        assert not result.success
        assert "selector not found" in result.error
        browser.close.assert_awaited_once()
