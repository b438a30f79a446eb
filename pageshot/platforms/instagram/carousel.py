"""Interactive carousel pagination on a rendered Instagram post.

Used when embed extraction yields nothing: the post is opened in a mobile
layout and the "Next" button is clicked until the last slide, collecting
every image URL on the way.
"""

import asyncio
import logging
from typing import List, Optional

import httpx
from playwright.async_api import Page

from ...capture.fetch import FetchedImage, fetch_image_directly, fetch_typed_images, ImageFetchError

logger = logging.getLogger(__name__)

MAX_CAROUSEL_ITERATIONS = 20
STEP_DELAY_SECONDS = 0.5
ARTICLE_TIMEOUT_MS = 30000
CLICK_TIMEOUT_MS = 2000

LOGIN_CLOSE_SELECTOR = '[aria-label="Close"]'
NEXT_BUTTON_SELECTOR = 'button[aria-label="Next"]'
IMAGE_SRC_SCRIPT = "imgs => imgs.map(img => img.src).filter(Boolean)"


async def dismiss_login_prompt(page: Page) -> bool:
    """Close the login overlay if one is shown."""
    try:
        close_button = await page.query_selector(LOGIN_CLOSE_SELECTOR)
        if not close_button:
            return False
        await close_button.click(timeout=CLICK_TIMEOUT_MS)
        logger.debug("Dismissed login prompt")
        return True
    except Exception as e:
        logger.debug(f"Could not dismiss login prompt: {e}")
        return False


async def collect_carousel_image_urls(page: Page, max_iterations: int = MAX_CAROUSEL_ITERATIONS,
                                      step_delay: float = STEP_DELAY_SECONDS) -> List[str]:
    """Walk the carousel and collect image URLs in slide order.

    The first collected URL is the author avatar and is dropped.
    """
    try:
        await page.wait_for_selector('article', timeout=ARTICLE_TIMEOUT_MS)
    except Exception as e:
        logger.warning(f"Post article did not render: {e}")
        return []

    # dict keeps insertion order
    seen = {}
    for iteration in range(max_iterations):
        try:
            srcs = await page.eval_on_selector_all('article img', IMAGE_SRC_SCRIPT)
        except Exception as e:
            logger.debug(f"Failed to read carousel images: {e}")
            srcs = []
        for src in srcs:
            seen.setdefault(src, None)

        next_button = await page.query_selector(NEXT_BUTTON_SELECTOR)
        if not next_button:
            logger.debug(f"Carousel end reached after {iteration + 1} slides")
            break
        try:
            await next_button.click(timeout=CLICK_TIMEOUT_MS)
        except Exception as e:
            logger.debug(f"Next button not clickable: {e}")
            break
        await asyncio.sleep(step_delay)
    else:
        logger.warning(f"Carousel pagination stopped at the {max_iterations} slide limit")

    urls = list(seen)[1:]
    logger.info(f"Collected {len(urls)} carousel image URLs")
    return urls


async def extract_all_carousel_images(page: Page, client: Optional[httpx.AsyncClient] = None,
                                      max_iterations: int = MAX_CAROUSEL_ITERATIONS) -> List[FetchedImage]:
    """Paginate the carousel and download every slide image."""
    await dismiss_login_prompt(page)
    urls = await collect_carousel_image_urls(page, max_iterations=max_iterations)
    return await fetch_typed_images(urls, client)


def resolve_image_index(image_index: Optional[int], count: int) -> int:
    """Convert a 1-based image index to a list position clamped to ``count``."""
    if count <= 0:
        return 0
    position = (image_index or 1) - 1
    return max(0, min(position, count - 1))


async def fetch_og_image(page: Page, client: Optional[httpx.AsyncClient] = None) -> Optional[FetchedImage]:
    """Download the image named by the page's og:image tag."""
    try:
        og_image = await page.get_attribute('meta[property="og:image"]', 'content', timeout=CLICK_TIMEOUT_MS)
    except Exception as e:
        logger.debug(f"No og:image on page: {e}")
        return None
    if not og_image:
        return None

    try:
        return await fetch_image_directly(og_image, client)
    except ImageFetchError as e:
        logger.warning(f"Failed to fetch og:image: {e}")
        return None
