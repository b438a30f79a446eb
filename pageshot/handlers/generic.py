"""Generic page handler; terminates every dispatch chain."""

import logging
from typing import Optional

from ..capture import challenge
from ..capture.browser_factory import get_page_metrics
from ..capture.cookie_banners import hide_annoyances
from ..capture.metadata import extract_page_metadata
from ..capture.navigation import goto, handle_dialogs
from ..capture.screenshot import capture_screenshot, content_type_for
from ..models.capture import CaptureResult, SiteKind
from .base import BaseHandler, HandlerContext

logger = logging.getLogger(__name__)


class GenericPageHandler(BaseHandler):
    """Renders the page in a fresh tab and captures the viewport or full page.

    Once a page exists this handler always yields an image, if only the
    placeholder. Non-timeout navigation errors propagate to the retry layer.
    """

    kind = SiteKind.GENERIC

    async def handle(self, ctx: HandlerContext, url: str) -> Optional[CaptureResult]:
        logger.info(f"Capturing page screenshot for {url}")
        options = ctx.screenshot_options

        async with ctx.factory.page(ctx.session) as page:
            await goto(page, url, ctx.nav_timeout_ms, ctx.font_timeout_ms)
            if ctx.request.should_get_page_metrics:
                await get_page_metrics(page)
            await challenge.check(page, ctx.challenge_timeout_ms)
            await hide_annoyances(page, ctx.factory.filter_engine)
            await handle_dialogs(page)

            image = await capture_screenshot(page, options, timer_label="Page screenshot")
            metadata = await extract_page_metadata(page, url)

        logger.info(f"Page screenshot captured ({len(image)} bytes)")
        return CaptureResult(
            image=image,
            content_type=content_type_for(options),
            handler=self.kind,
            metadata=metadata,
        )
