"""Browser factory for acquiring and releasing Playwright browser sessions.

This module provides the BrowserFactory class that launches Chromium with
anti-detection and environment-specific arguments, hands out one
BrowserSession per capture attempt, and tears sessions down with bounded
waits so a hung browser can never stall the caller.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from ..errors import LaunchFailure
from .filter_engine import FilterEngine
from .page_setup import PageSetupConfig, setup_page

logger = logging.getLogger(__name__)


# Shared arguments for consistent behavior between environments
SHARED_LAUNCH_ARGS = [
    # Anti-detection
    "--disable-blink-features=AutomationControlled",
    "--disable-field-trial-config",
    "--disable-features=IsolateOrigins,site-per-process,TranslateUI",
    "--window-size=1920,1080",
    # Performance
    "--disable-domain-reliability",
    "--no-default-browser-check",
    "--no-pings",
    "--disable-print-preview",
    # Consistent rendering
    "--font-render-hinting=none",
]

# Memory and GPU savings for serverless and container environments
CONSTRAINED_LAUNCH_ARGS = [
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--no-zygote",
    "--js-flags=--max-old-space-size=512",
    "--disable-gpu",
    "--disable-gpu-sandbox",
    "--disable-accelerated-2d-canvas",
    "--disable-accelerated-jpeg-decoding",
    "--disable-accelerated-mjpeg-decode",
    "--disable-accelerated-video-decode",
    "--disable-background-timer-throttling",
    "--disable-renderer-backgrounding",
    "--disable-backgrounding-occluded-windows",
    "--disable-ipc-flooding-protection",
]

CONSTRAINED_ENV_MARKERS = ("PAGESHOT_CONSTRAINED", "VERCEL_ENV", "AWS_LAMBDA_FUNCTION_NAME")

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36"
)


MOBILE_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 10; K) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/138.0.0.0 Mobile Safari/537.36"
)

# Phone-sized context for pages that only paginate with touch layouts
MOBILE_CONTEXT_OPTIONS = {
    "viewport": {"width": 390, "height": 844},
    "device_scale_factor": 3,
    "is_mobile": True,
    "has_touch": True,
    "user_agent": MOBILE_USER_AGENT,
}


def detect_constrained_environment() -> bool:
    """Check whether we are running in a serverless or resource-limited container."""
    return any(os.environ.get(marker) for marker in CONSTRAINED_ENV_MARKERS)


class BrowserConfig:
    """Configuration for browser launch and context setup."""

    def __init__(
        self,
        headless: bool = True,
        constrained: Optional[bool] = None,
        launch_timeout_ms: int = 30000,
        close_timeout_ms: int = 5000,
        viewport: Optional[Dict[str, int]] = None,
        device_scale_factor: float = 2,
        user_agent: Optional[str] = DEFAULT_USER_AGENT,
        extra_headers: Optional[Dict[str, str]] = None,
        ignore_https_errors: bool = True,
        locale: Optional[str] = "en-US",
        timezone: Optional[str] = None,
        executable_path: Optional[str] = None,
        extra_args: Optional[List[str]] = None,
        **kwargs
    ):
        """Initialize browser configuration.

        Args:
            headless: Run browser in headless mode
            constrained: Use the serverless argument set; autodetected when None
            launch_timeout_ms: Maximum time to wait for the browser process
            close_timeout_ms: Maximum time to wait for a graceful browser close
            viewport: Viewport size dict with 'width' and 'height'
            device_scale_factor: Device pixel ratio used for captures
            user_agent: Custom User-Agent string
            extra_headers: Additional HTTP headers for all requests
            ignore_https_errors: Ignore SSL/TLS certificate errors
            locale: Locale for the browser context
            timezone: Timezone ID (e.g., 'America/New_York')
            executable_path: Explicit Chromium binary to launch
            extra_args: Additional Chromium command line switches
        """
        self.headless = headless
        self.constrained = detect_constrained_environment() if constrained is None else constrained
        self.launch_timeout_ms = launch_timeout_ms
        self.close_timeout_ms = close_timeout_ms
        self.viewport = viewport or {'width': 1920, 'height': 1080}
        self.device_scale_factor = device_scale_factor
        self.user_agent = user_agent
        self.extra_headers = extra_headers or {}
        self.ignore_https_errors = ignore_https_errors
        self.locale = locale
        self.timezone = timezone
        self.executable_path = executable_path
        self.extra_args = extra_args or []
        self.extra_options = kwargs

    def launch_args(self) -> List[str]:
        """Chromium switches for the configured environment."""
        args = list(SHARED_LAUNCH_ARGS)
        if self.constrained:
            args = CONSTRAINED_LAUNCH_ARGS + args
        args.extend(self.extra_args)
        return args

    def to_browser_options(self) -> Dict[str, Any]:
        """Convert to Playwright browser launch options."""
        options = {
            'headless': self.headless,
            'args': self.launch_args(),
            'timeout': self.launch_timeout_ms,
        }

        if self.executable_path:
            options['executable_path'] = self.executable_path

        options.update(self.extra_options)
        return options

    def to_context_options(self) -> Dict[str, Any]:
        """Convert to Playwright browser context options."""
        options: Dict[str, Any] = {
            'viewport': self.viewport,
            'device_scale_factor': self.device_scale_factor,
        }

        if self.user_agent:
            options['user_agent'] = self.user_agent

        if self.extra_headers:
            options['extra_http_headers'] = self.extra_headers

        if self.ignore_https_errors:
            options['ignore_https_errors'] = True

        if self.locale:
            options['locale'] = self.locale

        if self.timezone:
            options['timezone_id'] = self.timezone

        return options


class BrowserSession:
    """A live Playwright driver, browser and context owned by one capture attempt."""

    def __init__(self, playwright: Playwright, browser: Browser, context: BrowserContext,
                 config: BrowserConfig):
        self.playwright = playwright
        self.browser = browser
        self.context = context
        self.config = config
        self.released = False

    @property
    def pages(self) -> List[Page]:
        return list(self.context.pages)

    def __repr__(self) -> str:
        return (
            f"BrowserSession(headless={self.config.headless}, "
            f"pages={len(self.context.pages)}, released={self.released})"
        )


class BrowserFactory:
    """Factory for acquiring and releasing browser sessions."""

    def __init__(self, config: Optional[BrowserConfig] = None,
                 filter_engine: Optional[FilterEngine] = None,
                 page_setup: Optional[PageSetupConfig] = None):
        """Initialize browser factory.

        Args:
            config: Browser configuration object
            filter_engine: Prebuilt request filter shared by every page
            page_setup: Setup applied to each new page
        """
        self.config = config or BrowserConfig()
        self.filter_engine = filter_engine
        self.page_setup = page_setup or PageSetupConfig()
        self._sessions_acquired = 0
        self._sessions_released = 0

    async def acquire(self) -> BrowserSession:
        """Start Playwright, launch Chromium and open a fresh context.

        Returns:
            A new browser session

        Raises:
            LaunchFailure: If the browser could not be started
        """
        logger.info(
            f"Launching browser (headless={self.config.headless}, "
            f"environment={'constrained' if self.config.constrained else 'local'})"
        )

        playwright: Optional[Playwright] = None
        browser: Optional[Browser] = None
        try:
            playwright = await async_playwright().start()
            browser = await asyncio.wait_for(
                playwright.chromium.launch(**self.config.to_browser_options()),
                timeout=self.config.launch_timeout_ms / 1000.0 + 5,
            )
            context = await browser.new_context(**self.config.to_context_options())
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Failed to launch browser: {message}")
            await self._abandon(playwright, browser)
            raise LaunchFailure(message, cause=e) from e

        self._sessions_acquired += 1
        logger.info(f"Browser launched successfully (version={getattr(browser, 'version', 'unknown')})")
        return BrowserSession(playwright, browser, context, self.config)

    async def _abandon(self, playwright: Optional[Playwright], browser: Optional[Browser]) -> None:
        """Best-effort cleanup after a failed launch."""
        if browser is not None:
            try:
                await asyncio.wait_for(browser.close(), timeout=self.config.close_timeout_ms / 1000.0)
            except Exception as e:
                logger.debug(f"Error closing partially launched browser: {e}")
        if playwright is not None:
            try:
                await asyncio.wait_for(playwright.stop(), timeout=self.config.close_timeout_ms / 1000.0)
            except Exception as e:
                logger.debug(f"Error stopping Playwright after failed launch: {e}")

    async def new_page(self, session: BrowserSession, **setup_overrides) -> Page:
        """Open a fresh page in the session and apply page setup.

        Args:
            session: Session owning the page
            **setup_overrides: Per-page overrides of the page setup (e.g. color_scheme)

        Returns:
            A configured page ready for navigation
        """
        page = await session.context.new_page()
        setup = self.page_setup.with_overrides(**setup_overrides) if setup_overrides else self.page_setup
        await setup_page(page, setup, self.filter_engine)
        logger.debug("Page ready")
        return page

    @asynccontextmanager
    async def page(self, session: BrowserSession, **setup_overrides) -> AsyncGenerator[Page, None]:
        """Context manager for a single page that is always closed afterwards."""
        page = await self.new_page(session, **setup_overrides)
        try:
            yield page
        finally:
            await close_page_safely(page)

    @asynccontextmanager
    async def mobile_page(self, session: BrowserSession, **setup_overrides) -> AsyncGenerator[Page, None]:
        """Page in a separate phone-emulating context; the context is closed afterwards."""
        options = dict(MOBILE_CONTEXT_OPTIONS)
        if self.config.ignore_https_errors:
            options['ignore_https_errors'] = True
        if self.config.locale:
            options['locale'] = self.config.locale

        context = await session.browser.new_context(**options)
        try:
            page = await context.new_page()
            setup = self.page_setup.with_overrides(**setup_overrides) if setup_overrides else self.page_setup
            await setup_page(page, setup, self.filter_engine)
            logger.debug("Mobile page ready")
            yield page
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"Failed to close mobile context: {e}")

    async def release(self, session: BrowserSession) -> None:
        """Tear down a session. Never raises and never waits unboundedly."""
        if session.released:
            return
        session.released = True

        pages = session.pages
        logger.info(f"Closing browser ({len(pages)} open pages)")
        if pages:
            await asyncio.gather(*(close_page_safely(page) for page in pages))

        close_timeout = self.config.close_timeout_ms / 1000.0
        try:
            await asyncio.wait_for(session.browser.close(), timeout=close_timeout)
            logger.info("Browser closed successfully")
        except Exception as e:
            # asyncio.TimeoutError included; the driver is torn down below either way
            logger.warning(f"Browser close did not complete, disconnecting: {e!r}")

        await self._disconnect(session, close_timeout)
        self._sessions_released += 1

    async def _disconnect(self, session: BrowserSession, timeout: float) -> None:
        """Stop the Playwright driver, which drops the browser connection."""
        try:
            await asyncio.wait_for(session.playwright.stop(), timeout=timeout)
        except Exception as e:
            logger.warning(f"Playwright driver did not stop cleanly: {e!r}")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[BrowserSession, None]:
        """Context manager for one session, released regardless of outcome."""
        session = await self.acquire()
        try:
            yield session
        finally:
            await self.release(session)

    def get_stats(self) -> Dict[str, int]:
        return {
            'sessions_acquired': self._sessions_acquired,
            'sessions_released': self._sessions_released,
        }

    def __repr__(self) -> str:
        """String representation of browser factory."""
        return (
            f"BrowserFactory(headless={self.config.headless}, "
            f"constrained={self.config.constrained}, "
            f"filters={'on' if self.filter_engine else 'off'})"
        )


async def close_page_safely(page: Page) -> None:
    """Close a page, logging instead of raising on failure."""
    try:
        await page.close()
        logger.debug("Page closed successfully")
    except Exception as e:
        logger.warning(f"Failed to close page: {e}")


async def get_page_metrics(page: Page) -> Dict[str, float]:
    """Read renderer resource metrics through the DevTools protocol.

    Returns:
        Dict with heap and DOM counters, zeros when unavailable
    """
    metrics = {
        'documents': 0.0,
        'nodes': 0.0,
        'event_listeners': 0.0,
        'js_heap_used_mb': 0.0,
        'js_heap_total_mb': 0.0,
    }
    try:
        session = await page.context.new_cdp_session(page)
        try:
            await session.send("Performance.enable")
            result = await session.send("Performance.getMetrics")
        finally:
            await session.detach()

        raw = {item['name']: item['value'] for item in result.get('metrics', [])}
        metrics.update({
            'documents': raw.get('Documents', 0.0),
            'nodes': raw.get('Nodes', 0.0),
            'event_listeners': raw.get('JSEventListeners', 0.0),
            'js_heap_used_mb': round(raw.get('JSHeapUsedSize', 0.0) / 1024 / 1024, 2),
            'js_heap_total_mb': round(raw.get('JSHeapTotalSize', 0.0) / 1024 / 1024, 2),
        })
        logger.debug(f"Page resource metrics: {metrics}")
    except Exception as e:
        logger.warning(f"Failed to get page metrics: {e}")
    return metrics


def create_browser_factory(
    headless: bool = True,
    filter_engine: Optional[FilterEngine] = None,
    **kwargs
) -> BrowserFactory:
    """Create a browser factory with simple configuration.

    Args:
        headless: Run in headless mode
        filter_engine: Optional prebuilt request filter
        **kwargs: Additional BrowserConfig options

    Returns:
        Configured BrowserFactory instance
    """
    config = BrowserConfig(headless=headless, **kwargs)
    return BrowserFactory(config, filter_engine=filter_engine)
