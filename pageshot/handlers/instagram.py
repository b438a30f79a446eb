"""Instagram handler: picks a post image from embed data or the live carousel."""

import logging
from typing import List, Optional, Tuple

from playwright.async_api import Page

from ..capture import challenge
from ..capture.browser_factory import get_page_metrics
from ..capture.fetch import FetchedImage, ImageFetchError, fetch_image_directly, fetch_images
from ..capture.metadata import extract_page_metadata
from ..capture.navigation import goto, handle_dialogs
from ..errors import ExtractionError
from ..models.capture import CaptureResult, MediaItem, MediaKind, SiteKind
from ..platforms.instagram import InstagramExtractor, InstagramPost, resolve_image_index, truncate_title
from ..platforms.instagram.carousel import dismiss_login_prompt, extract_all_carousel_images, fetch_og_image
from .base import BaseHandler, HandlerContext

logger = logging.getLogger(__name__)


def preview_url(item: MediaItem) -> Optional[str]:
    """Still image for a media item: the image itself or a video's thumbnail."""
    if item.kind == MediaKind.IMAGE:
        return item.url
    return item.thumbnail


class InstagramHandler(BaseHandler):
    """Captures Instagram posts and reels.

    The ``image_index`` of the request (1-based, clamped) selects which
    carousel item becomes the primary image; every item is still returned in
    ``all_images``.
    """

    kind = SiteKind.PLATFORM_B

    def __init__(self, extractor: Optional[InstagramExtractor] = None):
        self.extractor = extractor

    async def extract_post(self, ctx: HandlerContext, url: str) -> InstagramPost:
        extractor = self.extractor or InstagramExtractor(ctx.client)
        try:
            return await extractor.extract_media(url)
        except ExtractionError as e:
            logger.warning(f"Instagram embed extraction failed, using rendered page: {e}")
            return InstagramPost()

    async def images_from_post(self, ctx: HandlerContext,
                               post: InstagramPost) -> Tuple[Optional[FetchedImage], List[bytes]]:
        """Primary image and all gallery bytes for the extracted media."""
        urls = [u for u in (preview_url(item) for item in post.media) if u]
        if not urls:
            return None, []

        position = resolve_image_index(ctx.request.image_index, len(urls))
        logger.info(f"Using Instagram media item {position + 1}/{len(urls)} as primary image")
        try:
            primary = await fetch_image_directly(urls[position], ctx.client)
        except ImageFetchError as e:
            logger.warning(f"Failed to fetch primary Instagram image: {e}")
            return None, []

        all_images = await fetch_images(urls, ctx.client) if len(urls) > 1 else [primary.data]
        return primary, all_images

    async def images_from_page(self, ctx: HandlerContext,
                               page: Page) -> Tuple[Optional[FetchedImage], List[bytes]]:
        """Walk the rendered carousel, falling back to the og:image."""
        try:
            await handle_dialogs(page)
            slides = await extract_all_carousel_images(page, ctx.client)
        except Exception as e:
            logger.error(f"Error processing Instagram carousel, falling back to og:image: {e}")
            slides = []

        if slides:
            position = resolve_image_index(ctx.request.image_index, len(slides))
            return slides[position], [slide.data for slide in slides]

        og_image = await fetch_og_image(page, ctx.client)
        return og_image, []

    async def handle(self, ctx: HandlerContext, url: str) -> Optional[CaptureResult]:
        logger.info(f"Instagram post detected: {url} (image_index={ctx.request.image_index or 'default'})")
        post = await self.extract_post(ctx, url)
        primary, all_images = await self.images_from_post(ctx, post)

        metadata = None
        try:
            async with ctx.factory.mobile_page(ctx.session) as page:
                await goto(page, url, ctx.nav_timeout_ms, ctx.font_timeout_ms)
                if ctx.request.should_get_page_metrics:
                    await get_page_metrics(page)
                await challenge.check(page, ctx.challenge_timeout_ms)
                await dismiss_login_prompt(page)

                if primary is None:
                    primary, all_images = await self.images_from_page(ctx, page)
                if primary is None:
                    logger.info("No Instagram content found, falling back to page screenshot")
                    return None

                metadata = await extract_page_metadata(page, url)
        except Exception as e:
            if primary is None:
                logger.warning(f"Instagram capture failed, falling back: {e}")
                return None
            logger.warning(f"Instagram page did not load, returning embed media without metadata: {e}")

        if metadata is not None:
            metadata = metadata.model_copy(update={'title': truncate_title(metadata.title)})

        logger.info("Instagram capture completed successfully")
        return CaptureResult(
            image=primary.data,
            content_type=primary.content_type,
            handler=self.kind,
            metadata=metadata,
            media=post.media,
            all_images=all_images,
            caption=post.caption,
        )
