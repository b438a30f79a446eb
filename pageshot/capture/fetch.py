"""Server-side HTTP helpers: direct image downloads and content-type probes.

Direct downloads bypass the browser entirely, which avoids CORS and hotlink
protection on CDNs and is much cheaper than rendering.
"""

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator, List, Optional, Sequence

import httpx
from pydantic import BaseModel, Field

from ..utils.url_normalizer import get_hostname, get_origin

logger = logging.getLogger(__name__)

IMAGE_FETCH_TIMEOUT = 10.0
PROBE_TIMEOUT = 5.0

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

INSTAGRAM_REFERER = "https://www.instagram.com/"
_INSTAGRAM_HOST_RE = re.compile(r'(^|\.)(instagram\.com|cdninstagram\.com)$')

IMAGE_EXTENSION_RE = re.compile(
    r'\.(png|jpe?g|gif|webp|avif|svg|bmp|ico|apng|tiff?)(\?.*)?$', re.IGNORECASE
)
VIDEO_EXTENSION_RE = re.compile(
    r'\.(mp4|avi|mov|wmv|flv|webm|mkv|m4v|3gp|ogv|mpg|mpeg|m2v|divx|xvid|rm|rmvb|asf|ts|mts|vob|m3u8|mpd)(\?.*)?$',
    re.IGNORECASE,
)
STREAMING_CONTENT_TYPES = ("application/vnd.apple.mpegurl", "application/dash+xml")


class ImageFetchError(Exception):
    """Raised when a direct image download fails or returns a non-image."""
    pass


class FetchedImage(BaseModel):
    """Image bytes together with the media type the server reported."""

    data: bytes = Field(description="Raw image bytes")
    content_type: str = Field(default="image/jpeg", description="Media type without parameters")


def media_type(content_type: Optional[str]) -> str:
    """Strip parameters from a Content-Type header: ``image/png; q=1`` -> ``image/png``."""
    return (content_type or "").split(";")[0].strip().lower()


@asynccontextmanager
async def http_client(client: Optional[httpx.AsyncClient] = None,
                      timeout: float = IMAGE_FETCH_TIMEOUT) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Yield the injected client, or a temporary one that is closed afterwards."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as temp_client:
        yield temp_client


def is_image_url_by_extension(url: str) -> bool:
    return bool(IMAGE_EXTENSION_RE.search(url))


def is_video_url_by_extension(url: str) -> bool:
    return bool(VIDEO_EXTENSION_RE.search(url))


def image_request_headers(url: str) -> dict:
    """Browser-like headers with a Referer the CDN will accept."""
    host = get_hostname(url)
    referer = INSTAGRAM_REFERER if _INSTAGRAM_HOST_RE.search(host) else get_origin(url)
    return {
        "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
        "Cache-Control": "no-cache",
        "Referer": referer,
        "User-Agent": BROWSER_USER_AGENT,
    }


async def fetch_image_directly(url: str, client: Optional[httpx.AsyncClient] = None,
                               timeout: float = IMAGE_FETCH_TIMEOUT) -> FetchedImage:
    """Download an image without a browser.

    Returns:
        The image bytes and the reported media type (``image/png``, ``image/webp``...)

    Raises:
        ImageFetchError: On HTTP errors, timeouts or a non-image content type
    """
    logger.info(f"Fetching image directly: {url}")
    try:
        async with http_client(client, timeout) as http:
            response = await http.get(url, headers=image_request_headers(url), timeout=timeout)
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise ImageFetchError(f"Failed to fetch image {url}: {e}") from e

    content_type = media_type(response.headers.get("content-type"))
    if not content_type.startswith("image/"):
        raise ImageFetchError(f"Not an image: {content_type or 'no content-type'}")

    data = response.content
    if not data:
        raise ImageFetchError(f"Empty image body for {url}")

    logger.info(f"Image fetched successfully ({content_type}, {len(data)} bytes)")
    return FetchedImage(data=data, content_type=content_type)


async def fetch_images(urls: Sequence[str], client: Optional[httpx.AsyncClient] = None) -> List[bytes]:
    """Fetch several images concurrently and return the bytes of those that succeed."""
    return [image.data for image in await fetch_typed_images(urls, client)]


async def fetch_typed_images(urls: Sequence[str],
                             client: Optional[httpx.AsyncClient] = None) -> List[FetchedImage]:
    """Fetch several images concurrently, keeping only the ones that succeed.

    Order of successful results follows the order of ``urls``.
    """
    if not urls:
        return []

    async with http_client(client) as http:
        results = await asyncio.gather(
            *(fetch_image_directly(url, http) for url in urls),
            return_exceptions=True,
        )

    images = []
    for index, result in enumerate(results):
        if isinstance(result, BaseException):
            logger.warning(f"Failed to fetch image {index + 1}/{len(urls)}: {result}")
        else:
            images.append(result)

    logger.info(f"Fetched {len(images)}/{len(urls)} images")
    return images


async def probe_content_type(url: str, client: Optional[httpx.AsyncClient] = None,
                             timeout: float = PROBE_TIMEOUT) -> Optional[str]:
    """HEAD the URL and return its lowercased media type, or None on failure."""
    try:
        async with http_client(client, timeout) as http:
            response = await http.head(url, timeout=timeout)
    except httpx.HTTPError as e:
        logger.debug(f"Content-type probe failed for {url}: {e}")
        return None

    content_type = response.headers.get("content-type")
    if not content_type:
        return None
    return media_type(content_type)


def is_video_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    return content_type.startswith("video/") or content_type in STREAMING_CONTENT_TYPES


def is_image_content_type(content_type: Optional[str], url: str) -> bool:
    if not content_type:
        return False
    if content_type.startswith("image/"):
        return True
    return content_type == "application/octet-stream" and is_image_url_by_extension(url)
