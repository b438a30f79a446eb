"""X/Twitter handler: syndication media plus a screenshot of the tweet itself."""

import logging
from typing import List, Optional, Tuple

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from ..capture import challenge
from ..capture.browser_factory import get_page_metrics
from ..capture.fetch import fetch_images
from ..capture.metadata import extract_page_metadata
from ..capture.navigation import goto, handle_dialogs
from ..capture.screenshot import capture_screenshot
from ..models.capture import CaptureResult, MediaItem, SiteKind
from ..platforms.twitter import TwitterExtractor
from .base import BaseHandler, HandlerContext

logger = logging.getLogger(__name__)

MAIN_TIMEOUT_MS = 10000
ARTICLE_TIMEOUT_MS = 5000

HIDE_BOTTOM_BAR_SCRIPT = """
() => {
    const bar = document.querySelector('[data-testid="BottomBar"]');
    if (bar instanceof HTMLElement) {
        bar.style.display = 'none';
        return true;
    }
    return false;
}
"""

CONTENT_CONTAINER_SCRIPT = """
() => {
    const main = document.querySelector('main');
    if (!main) return null;
    for (const div of main.querySelectorAll('div')) {
        const first = div.firstElementChild;
        if (first && first.tagName === 'A') return div;
    }
    return null;
}
"""


class TwitterHandler(BaseHandler):
    """Captures tweets and profile pages on x.com / twitter.com."""

    kind = SiteKind.PLATFORM_A

    def __init__(self, extractor: Optional[TwitterExtractor] = None):
        self.extractor = extractor

    async def extract_media(self, ctx: HandlerContext, url: str) -> Tuple[List[MediaItem], List[bytes], Optional[str]]:
        """Syndication media, photo bytes and tweet text. Failures yield empty results."""
        extractor = self.extractor or TwitterExtractor(ctx.client)
        # Tweet ids are only read from https URLs; bare hosts were normalized to http
        if url.startswith('http://'):
            url = 'https://' + url[len('http://'):]
        outcome = await extractor.extract(url)
        if not outcome.success:
            logger.warning(f"Syndication API failed, capturing screenshot only: {outcome.error}")
            return [], [], None

        tweet_media = outcome.data
        images = await fetch_images([item.url for item in tweet_media.images], ctx.client)
        logger.info(
            f"Extracted Twitter media: {len(images)}/{len(tweet_media.images)} images fetched, "
            f"{len(tweet_media.videos)} video variants"
        )
        return tweet_media.all_items, images, tweet_media.tweet.text

    async def handle(self, ctx: HandlerContext, url: str) -> Optional[CaptureResult]:
        logger.info(f"X/Twitter URL detected: {url}")

        try:
            media, all_images, caption = await self.extract_media(ctx, url)
        except Exception as e:
            logger.warning(f"Error during media extraction, continuing with screenshot: {e}")
            media, all_images, caption = [], [], None

        try:
            async with ctx.factory.page(ctx.session, color_scheme="light") as page:
                await goto(page, url, ctx.nav_timeout_ms, ctx.font_timeout_ms)
                if ctx.request.should_get_page_metrics:
                    await get_page_metrics(page)
                await challenge.check(page, ctx.challenge_timeout_ms)
                await handle_dialogs(page)

                image = await self.capture_tweet(page, url)
                if image is None:
                    logger.info("No X/Twitter target element found, falling back to page screenshot")
                    return None
                metadata = await extract_page_metadata(page, url)
        except Exception as e:
            logger.warning(f"X/Twitter screenshot failed, falling back: {e}")
            return None

        logger.info("X/Twitter screenshot captured successfully")
        return CaptureResult(
            image=image,
            handler=self.kind,
            metadata=metadata,
            media=media,
            all_images=all_images,
            caption=caption,
        )

    async def capture_tweet(self, page: Page, url: str) -> Optional[bytes]:
        """Screenshot the tweet article, or the main content container on other pages."""
        try:
            await page.wait_for_selector('main', timeout=MAIN_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.warning("Main element not found, continuing anyway")

        try:
            if await page.evaluate(HIDE_BOTTOM_BAR_SCRIPT):
                logger.debug("Hid X/Twitter bottom bar")
        except Exception as e:
            logger.debug(f"Could not hide bottom bar: {e}")

        if '/status/' in url:
            try:
                article = await page.wait_for_selector('article', timeout=ARTICLE_TIMEOUT_MS)
                return await capture_screenshot(article, timer_label="X/Twitter tweet screenshot")
            except PlaywrightTimeoutError:
                logger.warning("Article element not found for status page, trying content container")

        handle = await page.evaluate_handle(CONTENT_CONTAINER_SCRIPT)
        element = handle.as_element()
        if element is None:
            logger.warning("Could not find a suitable X/Twitter content container")
            return None
        return await capture_screenshot(element, timer_label="X/Twitter content screenshot")
