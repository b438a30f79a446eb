"""Cascading screenshot capture.

Capture degrades through progressively cheaper strategies and never raises:

1. the requested options (JPEG by default)
2. a simplified viewport-only JPEG at reduced quality
3. a raw DevTools protocol capture (pages only)
4. a fixed placeholder image
"""

import base64
import logging
from typing import Any, Dict, Optional, Union

from playwright.async_api import ElementHandle, Locator, Page

from ..errors import CaptureFailure
from ..logging_setup import log_timer

logger = logging.getLogger(__name__)

ScreenshotTarget = Union[Page, ElementHandle, Locator]

DEFAULT_SCREENSHOT_OPTIONS: Dict[str, Any] = {
    'type': 'jpeg',
    'timeout': 30000,
}

SIMPLIFIED_QUALITY = 70
CDP_QUALITY = 60

# Minimal 1x1 JPEG returned when every capture strategy fails
PLACEHOLDER_IMAGE = base64.b64decode(
    "/9j/4AAQSkZJRgABAQEASABIAAD/2wBDAP//////////////////////////////////////////////////////////////////////////////////////wgALCAABAAEBAREA/8QAFBABAAAAAAAAAAAAAAAAAAAAAP/aAAgBAQABPxA="
)


def content_type_for(options: Optional[Dict[str, Any]] = None) -> str:
    """MIME type produced for the given screenshot options."""
    if options and options.get('type') == 'png':
        return 'image/png'
    return 'image/jpeg'


def _is_page(target: Any) -> bool:
    return isinstance(target, Page)


def _target_options(target: ScreenshotTarget, options: Dict[str, Any]) -> Dict[str, Any]:
    """Drop options the target type does not accept."""
    merged = dict(options)
    if not _is_page(target):
        merged.pop('full_page', None)
        merged.pop('clip', None)
    if merged.get('type') == 'png':
        merged.pop('quality', None)
    return merged


async def _capture_with_options(target: ScreenshotTarget, options: Dict[str, Any]) -> bytes:
    data = await target.screenshot(**_target_options(target, options))
    if not data:
        raise CaptureFailure("Screenshot returned no data")
    return data


async def _capture_with_cdp(page: Page) -> bytes:
    """Capture through a raw DevTools session, bypassing Playwright's screenshot path."""
    session = await page.context.new_cdp_session(page)
    try:
        result = await session.send(
            "Page.captureScreenshot",
            {"format": "jpeg", "quality": CDP_QUALITY},
        )
    finally:
        try:
            await session.detach()
        except Exception as e:
            logger.debug(f"Failed to detach CDP session: {e}")

    data = base64.b64decode(result.get("data", "")) if result else b""
    if not data:
        raise CaptureFailure("CDP capture returned no data")
    return data


async def capture_screenshot(
    target: ScreenshotTarget,
    options: Optional[Dict[str, Any]] = None,
    timer_label: Optional[str] = None,
) -> bytes:
    """Capture a page or element, degrading through fallbacks.

    Args:
        target: Page, element handle or locator to capture
        options: Playwright screenshot options merged over the defaults
        timer_label: If set, the time spent is logged under this label

    Returns:
        Non-empty image bytes. Never raises.
    """
    requested = {**DEFAULT_SCREENSHOT_OPTIONS, **(options or {})}

    with log_timer(timer_label, logger):
        try:
            return await _capture_with_options(target, requested)
        except Exception as e:
            logger.warning(f"Screenshot failed, retrying with simplified options: {e}")

        simplified = {
            'type': 'jpeg',
            'full_page': False,
            'quality': SIMPLIFIED_QUALITY,
            'timeout': requested.get('timeout', DEFAULT_SCREENSHOT_OPTIONS['timeout']),
        }
        try:
            return await _capture_with_options(target, simplified)
        except Exception as e:
            logger.warning(f"Simplified screenshot failed: {e}")

        if _is_page(target):
            try:
                data = await _capture_with_cdp(target)
                logger.info("Captured screenshot through CDP fallback")
                return data
            except Exception as e:
                logger.warning(f"CDP screenshot fallback failed: {e}")

    logger.error("All screenshot strategies failed, returning placeholder image")
    return PLACEHOLDER_IMAGE
