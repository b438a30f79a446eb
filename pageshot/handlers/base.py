"""Base handler protocol and the per-attempt context handlers run in.

A handler turns one URL into a CaptureResult, or returns None to let the
next handler in its chain try. Handlers open their own pages and close them
before returning.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ..capture.browser_factory import BrowserFactory, BrowserSession
from ..capture.challenge import DEFAULT_CHALLENGE_TIMEOUT_MS
from ..capture.navigation import DEFAULT_FONT_TIMEOUT_MS, DEFAULT_NAVIGATION_TIMEOUT_MS
from ..models.capture import CaptureRequest, CaptureResult, SiteKind


class HandlerContext:
    """Everything a handler needs for one capture attempt."""

    def __init__(
        self,
        factory: BrowserFactory,
        session: BrowserSession,
        request: CaptureRequest,
        client: Optional[httpx.AsyncClient] = None,
        nav_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
        font_timeout_ms: int = DEFAULT_FONT_TIMEOUT_MS,
        challenge_timeout_ms: int = DEFAULT_CHALLENGE_TIMEOUT_MS,
    ):
        """Initialize handler context.

        Args:
            factory: Factory that owns the session and opens configured pages
            session: Browser session for this attempt
            request: The capture request being served
            client: Shared HTTP client for side fetches
            nav_timeout_ms: Navigation budget per page
            font_timeout_ms: Font readiness budget per page
            challenge_timeout_ms: Challenge clearance budget per page
        """
        self.factory = factory
        self.session = session
        self.request = request
        self.client = client
        self.nav_timeout_ms = nav_timeout_ms
        self.font_timeout_ms = font_timeout_ms
        self.challenge_timeout_ms = challenge_timeout_ms

    @property
    def screenshot_options(self) -> dict:
        return {'full_page': self.request.full_page}


class BaseHandler(ABC):
    """Abstract base class for site handlers."""

    kind: SiteKind = SiteKind.GENERIC

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    async def handle(self, ctx: HandlerContext, url: str) -> Optional[CaptureResult]:
        """Capture ``url`` or return None to fall through."""
        pass

    def __repr__(self) -> str:
        return f"{self.name}(kind={self.kind.value})"


def js_string_literal(value: str) -> str:
    """Quote a value for an inline ``<script>`` block."""
    return json.dumps(value).replace('</', '<\\/')
