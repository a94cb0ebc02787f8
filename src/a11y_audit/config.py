# src/a11y_audit/config.py

import os
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv
from a11y_audit.logging_config import get_logger

load_dotenv()

logger = get_logger(__name__)

DEFAULT_PAGE_LOAD_TIMEOUT = 90000
DEFAULT_AXE_TIMEOUT = 120000
DEFAULT_PA11Y_TIMEOUT = 90000
DEFAULT_PA11Y_WAIT = 3000
DEFAULT_LIGHTHOUSE_MAX_WAIT_FOR_LOAD = 90000
DEFAULT_LIGHTHOUSE_MAX_WAIT_FOR_FCP = 60000

DEFAULT_AD_SELECTORS = [
    'iframe[src*="ads"]',
    'iframe[src*="doubleclick"]',
    'iframe[src*="googlesyndication"]',
    '[class*="ad-"]',
    '[class*="ads-"]',
    '.adsbygoogle',
    '.ad-container',
    '.advertisement',
    '[id*="ad-"]',
    '[id*="ads-"]',
    '[data-ad-slot]',
    '[data-ad-client]',
]

DEFAULT_BLOCKED_URL_PATTERNS = [
    '*doubleclick.net/*',
    '*googlesyndication.com/*',
    '*adservice.google.*',
    '*googleadservices.com/*',
    '*amazon-adsystem.com/*',
    '*ads.yahoo.com/*',
    '**/*ads*/**',
]

DEFAULT_BLOCKED_MEDIA_EXTENSIONS = ['.mp4', '.webm', '.avi', '.mov', '.wmv', '.flv', '.mkv']

def _env_ms(name: str, default: int) -> int:
    """Read a millisecond value from the environment, falling back on invalid input"""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Invalid value for {name}: {raw!r}, using default {default}")
        return default
    if value < 0:
        logger.warning(f"Negative value for {name}: {value}, using default {default}")
        return default
    return value

@dataclass
class TimeoutConfig:
    """Timeouts in milliseconds"""
    page_load_timeout: int = DEFAULT_PAGE_LOAD_TIMEOUT
    axe_timeout: int = DEFAULT_AXE_TIMEOUT
    pa11y_timeout: int = DEFAULT_PA11Y_TIMEOUT
    pa11y_wait: int = DEFAULT_PA11Y_WAIT
    lighthouse_max_wait_for_load: int = DEFAULT_LIGHTHOUSE_MAX_WAIT_FOR_LOAD
    lighthouse_max_wait_for_fcp: int = DEFAULT_LIGHTHOUSE_MAX_WAIT_FOR_FCP

@dataclass
class AdBlockingConfig:
    """Ad and media blocking used during page load and by URL-based engines"""
    enabled: bool = True
    ad_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_AD_SELECTORS))
    blocked_url_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_BLOCKED_URL_PATTERNS))
    blocked_media_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_BLOCKED_MEDIA_EXTENSIONS))

    def hide_elements_selector(self) -> str:
        """Comma separated selector list, as accepted by pa11y --hide-elements"""
        return ", ".join(self.ad_selectors)

def get_timeout_config() -> TimeoutConfig:
    """Build the timeout configuration from environment variables"""
    return TimeoutConfig(
        page_load_timeout=_env_ms("PAGE_LOAD_TIMEOUT_MS", DEFAULT_PAGE_LOAD_TIMEOUT),
        axe_timeout=_env_ms("AXE_TIMEOUT_MS", DEFAULT_AXE_TIMEOUT),
        pa11y_timeout=_env_ms("PA11Y_TIMEOUT_MS", DEFAULT_PA11Y_TIMEOUT),
        pa11y_wait=DEFAULT_PA11Y_WAIT,
        lighthouse_max_wait_for_load=_env_ms("LIGHTHOUSE_TIMEOUT_MS", DEFAULT_LIGHTHOUSE_MAX_WAIT_FOR_LOAD),
        lighthouse_max_wait_for_fcp=DEFAULT_LIGHTHOUSE_MAX_WAIT_FOR_FCP,
    )

def get_ad_blocking_config() -> AdBlockingConfig:
    """Build the ad-blocking configuration; DISABLE_AD_BLOCKING=true|1 turns it off"""
    disabled = os.getenv("DISABLE_AD_BLOCKING", "").strip().lower() in ("true", "1")
    return AdBlockingConfig(enabled=not disabled)

def get_wave_api_key() -> Optional[str]:
    return os.getenv("WAVE_API_KEY") or None

async def setup_ad_blocking(page, config: Optional[AdBlockingConfig] = None) -> None:
    """
    Install route handlers on a Playwright page that abort ad and media requests

    Args:
        page: Playwright page
        config: Ad-blocking configuration (read from the environment if omitted)
    """
    config = config or get_ad_blocking_config()
    if not config.enabled:
        logger.debug("Ad blocking disabled")
        return

    async def _abort(route):
        await route.abort()

    for pattern in config.blocked_url_patterns:
        await page.route(pattern, _abort)

    for extension in config.blocked_media_extensions:
        await page.route(f"**/*{extension}", _abort)

    logger.debug(
        f"Ad blocking enabled: {len(config.blocked_url_patterns)} URL patterns, "
        f"{len(config.blocked_media_extensions)} media extensions"
    )
