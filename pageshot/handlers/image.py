"""Image handler: downloads the image server-side, rendering it only as a fallback."""

import logging
from typing import Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..capture.fetch import ImageFetchError, fetch_image_directly
from ..capture.screenshot import capture_screenshot
from ..models.capture import CaptureResult, SiteKind
from .base import BaseHandler, HandlerContext, js_string_literal

logger = logging.getLogger(__name__)

IMAGE_LOAD_TIMEOUT_MS = 5000
ELEMENT_TIMEOUT_MS = 1000

IMAGE_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
  <body style="margin:0;background:#f0f0f0;display:flex;justify-content:center;align-items:center;min-height:100vh">
    <img id="i" crossorigin="anonymous" style="max-width:100%;max-height:100vh;display:block;object-fit:contain">
    <script>
      const i = document.getElementById('i');
      i.addEventListener('load', () => {
        if (i.naturalWidth > 0) {
          window.imageReady = true;
        }
      });
      i.addEventListener('error', () => window.imageError = true);
      i.src = __IMAGE_URL__;
    </script>
  </body>
</html>
"""


def build_image_page(url: str) -> str:
    return IMAGE_PAGE_TEMPLATE.replace("__IMAGE_URL__", js_string_literal(url))


class ImageHandler(BaseHandler):
    """Returns the original image bytes for direct image URLs."""

    kind = SiteKind.IMAGE

    async def handle(self, ctx: HandlerContext, url: str) -> Optional[CaptureResult]:
        logger.info(f"Processing image URL {url}")
        try:
            fetched = await fetch_image_directly(url, ctx.client)
            return CaptureResult(image=fetched.data, content_type=fetched.content_type, handler=self.kind)
        except ImageFetchError as e:
            logger.warning(f"Direct image fetch failed, rendering instead: {e}")

        try:
            async with ctx.factory.page(ctx.session, enable_filters=False) as page:
                image = await self._render(page, url)
        except Exception as e:
            logger.error(f"Error rendering image: {e}")
            return None

        if image is None:
            logger.warning("Image screenshot failed, falling back")
            return None
        return CaptureResult(image=image, handler=self.kind)

    async def _render(self, page, url: str) -> Optional[bytes]:
        await page.set_content(build_image_page(url), wait_until="domcontentloaded")

        try:
            await page.wait_for_function("() => window.imageReady || window.imageError",
                                         timeout=IMAGE_LOAD_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.warning("Image did not load within timeout")
            return None

        if not await page.evaluate("() => window.imageReady === true"):
            logger.warning("Image failed to load")
            return None

        try:
            element = await page.wait_for_selector('img', timeout=ELEMENT_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.error("Image element not found")
            return None

        image = await capture_screenshot(element, timer_label="Image element screenshot")
        logger.info(f"Image screenshot captured ({len(image)} bytes)")
        return image
