"""Instagram media extraction from the public embed page.

Structured JSON is tried first, then the embed markup is scraped. Network
level failures are treated as critical and propagate; anything else
degrades to an empty result so the handler can fall back to rendering.
"""

import html as html_lib
import logging
import re
from typing import List, Optional

import httpx

from ...capture.fetch import http_client
from ...errors import ExtractionError
from ..base import ExtractionOutcome, Strategy, run_strategies
from .embed_parser import EmbedParseError, extract_context_json, parse_embed_context, parse_embed_json
from .html_parser import extract_media_from_html
from .models import InstagramPost
from .urls import build_embed_url, extract_shortcode

logger = logging.getLogger(__name__)

EMBED_TIMEOUT = 10.0
PLATFORM = "instagram"

EMBED_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
}

CRITICAL_STATUS_CODES = (401, 403, 429, 500, 503)
CRITICAL_ERROR_MARKERS = (
    'timeout', 'etimedout', 'econnrefused', 'econnreset', 'enotfound',
    'rate limit', 'out of memory',
)

_TAG_RE = re.compile(r'<[^>]+>')


def is_critical_error(error: BaseException) -> bool:
    """Whether an extraction failure should abort instead of degrading."""
    if isinstance(error, (httpx.TimeoutException, httpx.NetworkError)):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in CRITICAL_STATUS_CODES
    message = str(error).lower()
    return any(marker in message for marker in CRITICAL_ERROR_MARKERS)


def clean_caption(caption: Optional[str]) -> Optional[str]:
    """Decode HTML entities and strip markup from a caption."""
    if not caption:
        return None
    text = _TAG_RE.sub('', html_lib.unescape(caption)).strip()
    return text or None


async def _json_strategy(html: str) -> Optional[InstagramPost]:
    try:
        post = parse_embed_json(html)
    except EmbedParseError as e:
        logger.debug(f"Embed JSON unavailable: {e}")
        return None
    return post if post.has_media else None


async def _html_strategy(html: str) -> Optional[InstagramPost]:
    post = extract_media_from_html(html)
    return post if post.has_media else None


def _json_caption(html: str) -> Optional[str]:
    try:
        _, caption = parse_embed_context(extract_context_json(html))
    except EmbedParseError:
        return None
    return caption


class InstagramExtractor:
    """Extracts images and videos from an Instagram post."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None,
                 timeout: float = EMBED_TIMEOUT):
        self.client = client
        self.timeout = timeout
        self.strategies: List[Strategy] = [
            ("embed_json", _json_strategy),
            ("embed_html", _html_strategy),
        ]

    async def fetch_embed(self, shortcode: str) -> str:
        """Download the captioned embed page for a post.

        Raises:
            httpx.HTTPError: On network failures or a non-2xx status
        """
        url = build_embed_url(shortcode)
        logger.debug(f"Fetching Instagram embed page: {url}")
        async with http_client(self.client, self.timeout) as http:
            response = await http.get(url, headers=EMBED_HEADERS, timeout=self.timeout)
            response.raise_for_status()
        return response.text

    async def extract_media(self, url: str) -> InstagramPost:
        """Extract media and caption for a post URL.

        Returns an empty post when nothing could be found.

        Raises:
            ExtractionError: On critical (network level) failures
        """
        shortcode = extract_shortcode(url)
        if not shortcode:
            logger.warning(f"Could not extract Instagram shortcode from {url}")
            return InstagramPost()

        try:
            html = await self.fetch_embed(shortcode)
            outcome = await run_strategies(self.strategies, html)
        except Exception as e:
            if is_critical_error(e):
                raise ExtractionError(f"Instagram extraction failed: {e}", platform=PLATFORM) from e
            logger.warning(f"Instagram extraction failed for {shortcode}, continuing without media: {e}")
            return InstagramPost(shortcode=shortcode)

        if not outcome.success:
            logger.info(f"No media found in Instagram embed for {shortcode}")
            return InstagramPost(shortcode=shortcode, caption=clean_caption(_json_caption(html)))

        post = outcome.data
        caption = post.caption or _json_caption(html)
        logger.info(f"Extracted {len(post.media)} Instagram media items via {outcome.method}")
        return InstagramPost(shortcode=shortcode, caption=clean_caption(caption), media=post.media)

    async def extract(self, url: str) -> ExtractionOutcome[InstagramPost]:
        """Like :meth:`extract_media` but reports every failure as an outcome."""
        try:
            post = await self.extract_media(url)
        except ExtractionError as e:
            logger.warning(f"Instagram extraction failed: {e}")
            return ExtractionOutcome.fail(str(e), method="embed")
        if not post.has_media:
            return ExtractionOutcome.fail("No media found", method="embed", data=post)
        return ExtractionOutcome.ok(post, method="embed")
