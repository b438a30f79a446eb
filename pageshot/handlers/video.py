"""Video handler: draws a frame of a video file onto a canvas and captures it."""

import asyncio
import logging
from typing import Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..capture.screenshot import capture_screenshot
from ..models.capture import CaptureResult, SiteKind
from .base import BaseHandler, HandlerContext, js_string_literal

logger = logging.getLogger(__name__)

FRAME_TIMEOUT_MS = 20000
FRAME_SETTLE_SECONDS = 1.0
BLACK_THRESHOLD = 20

VIDEO_PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
  <head>
    <style>
      body { margin: 0; background: #000; display: flex; justify-content: center;
             align-items: center; min-height: 100vh; }
      canvas { max-width: 100%; max-height: 100vh; }
      video { display: none; }
    </style>
  </head>
  <body>
    <video id="video" muted playsinline preload="auto" crossorigin="anonymous"></video>
    <canvas id="canvas" width="1280" height="720"></canvas>
    <script>
      const video = document.getElementById('video');
      const canvas = document.getElementById('canvas');
      const ctx = canvas.getContext('2d');
      let frameDrawn = false;

      function drawFrame() {
        if (video.videoWidth > 0 && video.videoHeight > 0) {
          canvas.width = video.videoWidth;
          canvas.height = video.videoHeight;
          ctx.drawImage(video, 0, 0, canvas.width, canvas.height);
          frameDrawn = true;
        }
      }

      video.addEventListener('loadeddata', () => setTimeout(drawFrame, 100));
      video.addEventListener('canplay', () => {
        video.play().then(() => {
          setTimeout(() => { drawFrame(); video.pause(); }, 500);
        }).catch(() => setTimeout(drawFrame, 1000));
      });
      video.addEventListener('timeupdate', () => {
        if (!frameDrawn && video.currentTime > 0) {
          drawFrame();
        }
      });

      window.isFrameDrawn = () => frameDrawn;
      video.src = __VIDEO_URL__;
    </script>
  </body>
</html>
"""

CANVAS_HAS_CONTENT_SCRIPT = """
(threshold) => {
    const canvas = document.querySelector('#canvas');
    const data = canvas.getContext('2d').getImageData(0, 0, canvas.width, canvas.height).data;
    for (let i = 0; i < data.length; i += 4) {
        if (data[i] > threshold || data[i + 1] > threshold || data[i + 2] > threshold) {
            return true;
        }
    }
    return false;
}
"""


def build_video_page(url: str) -> str:
    return VIDEO_PAGE_TEMPLATE.replace("__VIDEO_URL__", js_string_literal(url))


class VideoHandler(BaseHandler):
    """Captures the first meaningful frame of a direct video URL."""

    kind = SiteKind.VIDEO

    async def handle(self, ctx: HandlerContext, url: str) -> Optional[CaptureResult]:
        logger.info(f"Processing video screenshot for {url}")
        try:
            async with ctx.factory.page(ctx.session) as page:
                image = await self._capture_frame(page, url)
        except Exception as e:
            logger.error(f"Error capturing video frame: {e}")
            return None

        if image is None:
            logger.warning("Video screenshot failed, falling back")
            return None
        return CaptureResult(image=image, handler=self.kind)

    async def _capture_frame(self, page, url: str) -> Optional[bytes]:
        await page.set_content(build_video_page(url), wait_until="domcontentloaded")

        logger.info("Waiting for video frame to be drawn to canvas")
        try:
            await page.wait_for_function("() => window.isFrameDrawn && window.isFrameDrawn()",
                                         timeout=FRAME_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            logger.warning("Frame drawing timed out, checking canvas anyway")

        await asyncio.sleep(FRAME_SETTLE_SECONDS)

        has_content = await page.evaluate(CANVAS_HAS_CONTENT_SCRIPT, BLACK_THRESHOLD)
        if not has_content:
            logger.warning("Canvas has no meaningful content, video may be black or failed to load")
            return None

        canvas = await page.query_selector('canvas')
        if canvas is None:
            logger.error("Canvas element not found")
            return None

        image = await capture_screenshot(canvas, timer_label="Video canvas screenshot")
        logger.info(f"Video screenshot captured ({len(image)} bytes)")
        return image
