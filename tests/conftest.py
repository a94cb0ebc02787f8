import pytest
from unittest.mock import AsyncMock, MagicMock

from a11y_audit.config import AdBlockingConfig, TimeoutConfig

@pytest.fixture
def timeout_config():
    """Short timeouts so nothing in the tests waits long"""
    return TimeoutConfig(
        page_load_timeout=1000,
        axe_timeout=1000,
        pa11y_timeout=1000,
        pa11y_wait=0,
        lighthouse_max_wait_for_load=1000,
        lighthouse_max_wait_for_fcp=1000
    )

@pytest.fixture
def ad_blocking():
    return AdBlockingConfig(enabled=True)

@pytest.fixture
def mock_page():
    """Playwright page double with async methods"""
    page = MagicMock()
    page.url = "https://example.com/"
    page.add_script_tag = AsyncMock()
    page.wait_for_function = AsyncMock()
    page.evaluate = AsyncMock()
    page.content = AsyncMock(return_value="<html><body></body></html>")
    page.route = AsyncMock()
    page.keyboard = MagicMock()
    page.keyboard.press = AsyncMock()
    return page
