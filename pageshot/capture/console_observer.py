"""Console and page error observer that forwards browser output to logging.

Browser-side console messages and uncaught page errors are useful when a
capture comes out blank, but they are noisy, so they go to a dedicated
``pageshot.browser`` logger at debug level after noise filtering.
"""

import logging
from typing import Dict

from playwright.async_api import ConsoleMessage, Page

logger = logging.getLogger(__name__)

browser_logger = logging.getLogger("pageshot.browser")

MAX_MESSAGE_LENGTH = 5000


class ConsoleObserver:
    """Logger sink for console messages and page errors of one page."""

    def __init__(self, page: Page, filter_noise: bool = True):
        """Initialize console observer for a page.

        Args:
            page: Playwright page to observe
            filter_noise: Whether to drop noisy console messages
        """
        self.page = page
        self.filter_noise = filter_noise
        self.message_count = 0
        self.error_count = 0
        self.filtered_count = 0

        self._noise_patterns = {
            "extensions": [
                "chrome-extension://",
                "moz-extension://",
                "webkitURL is deprecated",
            ],
            "development_tools": [
                "React DevTools",
                "Vue DevTools",
                "[HMR]",
                "[WDS]",
                "DevTools failed to load",
            ],
            "resource_noise": [
                "Failed to load resource",
                "net::ERR_BLOCKED_BY_CLIENT",
                "Blocked attempt to show a 'beforeunload'",
            ],
            "observers": [
                "ResizeObserver loop limit exceeded",
                "ResizeObserver loop completed",
            ],
        }

        self._setup_listeners()

    def _setup_listeners(self) -> None:
        self.page.on("console", self._on_console_message)
        self.page.on("pageerror", self._on_page_error)
        logger.debug("Console observer listeners setup complete")

    def _should_filter_message(self, message: str) -> bool:
        """Check if console message should be filtered out as noise."""
        if not self.filter_noise:
            return False

        message_lower = message.lower()
        for patterns in self._noise_patterns.values():
            for pattern in patterns:
                if pattern.lower() in message_lower:
                    return True

        # Very long messages are usually data dumps
        return len(message) > MAX_MESSAGE_LENGTH

    def _on_console_message(self, message: ConsoleMessage) -> None:
        try:
            text = message.text
            if self._should_filter_message(text):
                self.filtered_count += 1
                return

            self.message_count += 1
            browser_logger.debug(f"Browser console.{message.type}: {text[:500]}")
        except Exception as e:
            logger.error(f"Error processing console message: {e}")

    def _on_page_error(self, error: Exception) -> None:
        self.error_count += 1
        browser_logger.debug(f"Page JS error: {error}")

    def get_stats(self) -> Dict[str, int]:
        return {
            'messages': self.message_count,
            'errors': self.error_count,
            'filtered': self.filtered_count,
        }
