"""Navigation with bounded, non-fatal waits.

A page that never reaches network idle is still worth capturing, so
timeouts here only ever produce a warning. Errors that mean the page could
not be reached at all (DNS, connection resets, protocol errors) propagate
to the retry layer.
"""

import asyncio
import logging
import re
import time
from typing import Optional

from playwright.async_api import Page, Response
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import NavigationTimeout
from ..logging_setup import log_timer

logger = logging.getLogger(__name__)

DEFAULT_NAVIGATION_TIMEOUT_MS = 30000
DEFAULT_FONT_TIMEOUT_MS = 30000
DIALOG_CLOSE_TIMEOUT_MS = 2000

DIALOG_SELECTOR = 'div[role="dialog"]'

_DIRECT_IMAGE_RE = re.compile(r'\.(?:jpg|jpeg|png|gif|webp|svg)(?:\?.*)?$', re.IGNORECASE)


def is_direct_image_url(url: str) -> bool:
    return bool(_DIRECT_IMAGE_RE.search(url))


async def goto(
    page: Page,
    url: str,
    nav_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
    font_timeout_ms: int = DEFAULT_FONT_TIMEOUT_MS,
) -> Optional[Response]:
    """Navigate to a URL and wait for the page to settle.

    Args:
        page: Page to navigate
        url: Target URL
        nav_timeout_ms: Budget for navigation plus network idle
        font_timeout_ms: Separate budget for web font readiness

    Returns:
        The main resource response, or None if navigation timed out first

    Raises:
        playwright.async_api.Error: For non-timeout navigation failures
    """
    direct_image = is_direct_image_url(url)
    logger.info(f"Navigating to {url} (direct_image={direct_image})")

    response: Optional[Response] = None
    started = time.monotonic()

    with log_timer("Page navigation", logger):
        try:
            response = await page.goto(
                url,
                wait_until="load" if direct_image else "domcontentloaded",
                timeout=nav_timeout_ms,
            )
        except PlaywrightTimeoutError:
            logger.warning(str(NavigationTimeout(url, nav_timeout_ms)) + ", continuing with partial page")
            return None

        remaining_ms = nav_timeout_ms - int((time.monotonic() - started) * 1000)
        if remaining_ms > 0:
            try:
                await page.wait_for_load_state("networkidle", timeout=remaining_ms)
            except PlaywrightTimeoutError:
                logger.warning(f"Network did not go idle for {url}, continuing anyway")

    if not direct_image:
        await wait_for_fonts(page, font_timeout_ms)

    status = response.status if response is not None else None
    logger.info(f"Navigation completed (status={status})")
    return response


async def wait_for_fonts(page: Page, timeout_ms: int = DEFAULT_FONT_TIMEOUT_MS) -> bool:
    """Wait for ``document.fonts.ready``. Returns False on timeout or error."""
    logger.debug("Waiting for fonts to load")
    try:
        await asyncio.wait_for(
            page.evaluate("() => document.fonts.ready.then(() => true)"),
            timeout=timeout_ms / 1000.0,
        )
        return True
    except asyncio.TimeoutError:
        logger.warning("Fonts did not load within timeout, continuing anyway")
    except Exception as e:
        logger.warning(f"Font readiness check failed: {e}")
    return False


async def handle_dialogs(page: Page) -> bool:
    """Dismiss a modal dialog with Escape if one is showing.

    Returns:
        True if a dialog was found and closed
    """
    try:
        dialog = await page.query_selector(DIALOG_SELECTOR)
        if not dialog:
            logger.debug("No dialog detected, skipping dialog handling")
            return False

        logger.info("Dialog detected, attempting to close")
        await page.keyboard.press("Escape")
        try:
            await page.wait_for_selector(DIALOG_SELECTOR, state="hidden", timeout=DIALOG_CLOSE_TIMEOUT_MS)
            logger.info("Dialog closed")
            return True
        except PlaywrightTimeoutError:
            logger.warning("Dialog did not close after Escape, continuing anyway")
            return False
    except Exception as e:
        logger.debug(f"Skipping dialog check due to page state: {e}")
        return False
