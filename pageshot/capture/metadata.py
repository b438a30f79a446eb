"""Page metadata extraction (title, description, preview image, favicon)."""

import logging
from typing import Optional
from urllib.parse import urljoin

from playwright.async_api import Page

from ..logging_setup import log_timer
from ..models.capture import PageMetadata

logger = logging.getLogger(__name__)

METADATA_SCRIPT = """
() => {
    const meta = (selector) => {
        const el = document.querySelector(selector);
        return el ? el.getAttribute("content") : null;
    };
    const href = (selector) => {
        const el = document.querySelector(selector);
        return el ? el.getAttribute("href") : null;
    };
    return {
        title: meta('meta[property="og:title"]') || document.title || null,
        description: meta('meta[property="og:description"]') || meta('meta[name="description"]'),
        og_image: meta('meta[property="og:image"]') || href('link[rel="image_src"]'),
        favicon: href('link[rel="icon"]') || href('link[rel="shortcut icon"]'),
    };
}
"""


def _absolute(base_url: str, value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return urljoin(base_url, value.strip())


async def extract_page_metadata(page: Page, url: Optional[str] = None) -> Optional[PageMetadata]:
    """Read Open Graph and document metadata from the current page.

    Relative image and icon references are resolved against the page URL.

    Returns:
        PageMetadata, or None if the page could not be evaluated
    """
    base_url = url or page.url
    logger.info(f"Extracting metadata from current page: {base_url}")

    try:
        with log_timer("Metadata extraction", logger):
            raw = await page.evaluate(METADATA_SCRIPT)
    except Exception as e:
        logger.error(f"Failed to extract metadata for {base_url}: {e}")
        return None

    metadata = PageMetadata(
        title=(raw.get('title') or None),
        description=(raw.get('description') or None),
        og_image=_absolute(base_url, raw.get('og_image')),
        favicon=_absolute(base_url, raw.get('favicon')),
    )

    if not (metadata.title or metadata.og_image or metadata.description):
        logger.warning(f"No meaningful metadata found for {base_url}")
    else:
        logger.info(
            f"Metadata extraction completed (title={bool(metadata.title)}, "
            f"description={bool(metadata.description)}, og_image={bool(metadata.og_image)}, "
            f"favicon={bool(metadata.favicon)})"
        )
    return metadata
