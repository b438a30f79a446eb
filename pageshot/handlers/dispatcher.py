"""URL classification and handler chain dispatch.

Every SiteKind maps to an ordered chain of handlers. A handler returning
None falls through to the next one; the generic page handler ends every
chain so a rendered page is always the last resort.
"""

import logging
from typing import Dict, List, Optional

import httpx

from ..capture.fetch import (
    is_image_content_type,
    is_image_url_by_extension,
    is_video_content_type,
    is_video_url_by_extension,
    probe_content_type,
)
from ..errors import AllHandlersFailed
from ..models.capture import CaptureResult, SiteKind
from ..platforms.instagram.urls import is_instagram_post_url
from ..platforms.twitter.urls import is_twitter_domain
from .base import BaseHandler, HandlerContext
from .generic import GenericPageHandler
from .image import ImageHandler
from .instagram import InstagramHandler
from .twitter import TwitterHandler
from .video import VideoHandler

logger = logging.getLogger(__name__)


async def classify(url: str, probe_content_type_enabled: bool = True,
                   client: Optional[httpx.AsyncClient] = None) -> SiteKind:
    """Decide which handler chain serves a URL.

    Cheap checks run first; the HEAD probe only runs when nothing else matched.
    """
    if is_video_url_by_extension(url):
        return SiteKind.VIDEO
    if is_image_url_by_extension(url):
        return SiteKind.IMAGE
    if is_twitter_domain(url):
        return SiteKind.PLATFORM_A
    if is_instagram_post_url(url):
        return SiteKind.PLATFORM_B

    if probe_content_type_enabled:
        content_type = await probe_content_type(url, client)
        if is_video_content_type(content_type):
            return SiteKind.VIDEO
        if is_image_content_type(content_type, url):
            return SiteKind.IMAGE

    return SiteKind.GENERIC


def default_chains() -> Dict[SiteKind, List[BaseHandler]]:
    generic = GenericPageHandler()
    return {
        SiteKind.VIDEO: [VideoHandler(), generic],
        SiteKind.IMAGE: [ImageHandler(), generic],
        SiteKind.PLATFORM_A: [TwitterHandler(), generic],
        SiteKind.PLATFORM_B: [InstagramHandler(), generic],
        SiteKind.GENERIC: [generic],
    }


class HandlerDispatcher:
    """Classifies URLs and runs the matching handler chain."""

    def __init__(self, chains: Optional[Dict[SiteKind, List[BaseHandler]]] = None,
                 probe_content_type_enabled: bool = True):
        """Initialize dispatcher.

        Args:
            chains: Handler chain per site kind; must cover every SiteKind
            probe_content_type_enabled: Allow the HEAD probe during classification

        Raises:
            ValueError: If a site kind has no chain
        """
        self.chains = chains or default_chains()
        missing = [kind.value for kind in SiteKind if not self.chains.get(kind)]
        if missing:
            raise ValueError(f"No handler chain for site kinds: {missing}")
        self.probe_content_type_enabled = probe_content_type_enabled

    async def classify(self, url: str, client: Optional[httpx.AsyncClient] = None) -> SiteKind:
        kind = await classify(url, self.probe_content_type_enabled, client)
        logger.info(f"Classified {url} as {kind.value}")
        return kind

    async def dispatch(self, ctx: HandlerContext, url: str, kind: Optional[SiteKind] = None) -> CaptureResult:
        """Run the chain for ``url`` and return the first result.

        Raises:
            AllHandlersFailed: If every handler in the chain returned None
        """
        if kind is None:
            kind = await self.classify(url, ctx.client)

        for handler in self.chains[kind]:
            logger.debug(f"Running {handler.name} for {url}")
            result = await handler.handle(ctx, url)
            if result is not None:
                return result
            logger.info(f"{handler.name} produced no result, trying next handler")

        raise AllHandlersFailed(url)

    def __repr__(self) -> str:
        return f"HandlerDispatcher(kinds={[kind.value for kind in self.chains]})"
