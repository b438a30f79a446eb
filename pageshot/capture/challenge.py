"""Detection and clearing of interstitial bot challenges."""

import logging
from typing import Optional
from urllib.parse import urlparse

from playwright.async_api import Frame, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import ChallengeUnresolved

logger = logging.getLogger(__name__)

CHALLENGE_HOST = "challenges.cloudflare.com"
DEFAULT_CHALLENGE_TIMEOUT_MS = 10000

WIDGET_ID_SCRIPT = "() => window._cf_chl_opt ? window._cf_chl_opt.chlApiWidgetId : null"

RESPONSE_FILLED_SCRIPT = """
(widgetId) => {
    const input = document.getElementById(`cf-chl-widget-${widgetId}_response`);
    return !!(input && input.value && input.value !== "");
}
"""


def _frame_host(frame: Frame) -> str:
    try:
        return (urlparse(frame.url).hostname or '').lower()
    except ValueError:
        return ''


async def _widget_id(frame: Frame) -> Optional[str]:
    widget_id = await frame.evaluate(WIDGET_ID_SCRIPT)
    return str(widget_id) if widget_id else None


async def check(page: Page, timeout_ms: int = DEFAULT_CHALLENGE_TIMEOUT_MS) -> bool:
    """Wait for an embedded challenge widget to produce its response token.

    Args:
        page: Page that may host a challenge frame
        timeout_ms: How long to wait for the widget to be solved

    Returns:
        True if a challenge was found and solved, False otherwise. Never raises.
    """
    try:
        frames = list(page.frames)
    except Exception as e:
        logger.debug(f"Could not list frames for challenge check: {e}")
        return False

    for frame in frames:
        if _frame_host(frame) != CHALLENGE_HOST:
            continue

        try:
            widget_id = await _widget_id(frame)
            if not widget_id:
                continue

            logger.info(f"Challenge widget {widget_id} detected, waiting up to {timeout_ms}ms")
            await frame.wait_for_function(RESPONSE_FILLED_SCRIPT, arg=widget_id, timeout=timeout_ms)
            logger.info("Challenge solved")
            return True
        except PlaywrightTimeoutError:
            logger.warning(str(ChallengeUnresolved(f"Challenge not solved within {timeout_ms}ms")))
        except Exception as e:
            logger.warning(f"Challenge check failed for frame {frame.url}: {e}")

    logger.debug("No challenge frame solved")
    return False
