"""Per-page setup applied right after a page is created.

Sets media features, injects the anti-detection script, attaches the
console logger sink and, when a filter engine was injected, installs
request blocking. Must run before the first navigation.
"""

import logging
from typing import Optional

from playwright.async_api import Page

from .console_observer import ConsoleObserver

logger = logging.getLogger(__name__)

# Runs before any page script in every frame
STEALTH_INIT_SCRIPT = """
(() => {
    try {
        delete Object.getPrototypeOf(navigator).webdriver;
    } catch (e) {}
    Object.defineProperty(navigator, 'webdriver', { get: () => undefined, configurable: true });

    if (!window.chrome) {
        window.chrome = {};
    }
    window.chrome.runtime = window.chrome.runtime || {};
    try {
        Object.defineProperty(window.chrome.runtime, 'id', { get: () => undefined });
    } catch (e) {}

    if (!navigator.languages || navigator.languages.length === 0) {
        Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
    }
})();
"""


class PageSetupConfig:
    """Configuration for page setup."""

    def __init__(
        self,
        color_scheme: Optional[str] = "dark",
        reduced_motion: Optional[str] = "reduce",
        stealth: bool = True,
        capture_console: bool = True,
        filter_console_noise: bool = True,
        enable_filters: bool = True,
    ):
        """Initialize page setup configuration.

        Args:
            color_scheme: Emulated prefers-color-scheme ('dark', 'light' or None)
            reduced_motion: Emulated prefers-reduced-motion ('reduce' or None)
            stealth: Inject the anti-detection init script
            capture_console: Forward console output to the browser logger
            filter_console_noise: Drop noisy console messages
            enable_filters: Install request blocking when a filter engine is available
        """
        self.color_scheme = color_scheme
        self.reduced_motion = reduced_motion
        self.stealth = stealth
        self.capture_console = capture_console
        self.filter_console_noise = filter_console_noise
        self.enable_filters = enable_filters

    def with_overrides(self, **overrides) -> 'PageSetupConfig':
        params = dict(vars(self))
        unknown = set(overrides) - set(params)
        if unknown:
            raise ValueError(f"Unknown page setup options: {sorted(unknown)}")
        params.update(overrides)
        return PageSetupConfig(**params)


async def setup_page(page: Page, config: PageSetupConfig, filter_engine=None) -> Optional[ConsoleObserver]:
    """Apply setup to a freshly created page.

    Args:
        page: Page to configure
        config: Page setup configuration
        filter_engine: Optional FilterEngine used for request blocking

    Returns:
        The console observer attached to the page, if any
    """
    observer = None
    if config.capture_console:
        observer = ConsoleObserver(page, filter_noise=config.filter_console_noise)

    media = {}
    if config.color_scheme:
        media['color_scheme'] = config.color_scheme
    if config.reduced_motion:
        media['reduced_motion'] = config.reduced_motion
    if media:
        await page.emulate_media(**media)

    if config.stealth:
        try:
            await page.add_init_script(STEALTH_INIT_SCRIPT)
        except Exception as e:
            logger.warning(f"Anti-detection script injection failed: {e}")

    if filter_engine is not None and config.enable_filters:
        try:
            await filter_engine.enable_blocking(page)
        except Exception as e:
            logger.warning(f"Failed to enable request blocking: {e}")

    return observer
