"""Main capture engine that turns one request into one capture result.

This module provides the CaptureEngine class that ties the pieces together:
URL rewriting, classification, a retried browser session per attempt and the
handler chain selected for the URL.
"""

import asyncio
import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..errors import InvalidRequestError
from ..handlers.base import HandlerContext
from ..handlers.dispatcher import HandlerDispatcher
from ..models.capture import CaptureRequest, CaptureResult
from ..utils.url_processor import process_url
from .browser_factory import BrowserConfig, BrowserFactory
from .challenge import DEFAULT_CHALLENGE_TIMEOUT_MS
from .fetch import http_client
from .filter_engine import DEFAULT_FILTER_LISTS, FilterEngine, build_filter_engine
from .navigation import DEFAULT_FONT_TIMEOUT_MS, DEFAULT_NAVIGATION_TIMEOUT_MS
from .page_setup import PageSetupConfig
from .retry import DEFAULT_BASE_DELAY, DEFAULT_MAX_RETRIES, RetryController

logger = logging.getLogger(__name__)


class CaptureEngineConfig:
    """Configuration for the capture engine."""

    def __init__(
        self,
        # Browser configuration
        browser_config: Optional[BrowserConfig] = None,
        page_setup: Optional[PageSetupConfig] = None,

        # Timeouts
        nav_timeout_ms: int = DEFAULT_NAVIGATION_TIMEOUT_MS,
        font_timeout_ms: int = DEFAULT_FONT_TIMEOUT_MS,
        challenge_timeout_ms: int = DEFAULT_CHALLENGE_TIMEOUT_MS,

        # Error handling
        retry_attempts: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY,

        # Classification and filtering
        probe_content_type: bool = True,
        filters_enabled: bool = True,
        filter_lists: Optional[List[str]] = None,
        **kwargs
    ):
        """Initialize capture engine configuration.

        Args:
            browser_config: Browser launch and context configuration
            page_setup: Setup applied to every page
            nav_timeout_ms: Navigation budget per page
            font_timeout_ms: Font readiness budget per page
            challenge_timeout_ms: Budget for clearing an interstitial challenge
            retry_attempts: Total number of attempts per capture
            retry_base_delay: Backoff before the second attempt, doubled afterwards
            probe_content_type: Allow a HEAD request when classifying unknown URLs
            filters_enabled: Block ads and trackers using the filter lists
            filter_lists: Filter list URLs (defaults to the bundled list set)
        """
        self.browser_config = browser_config or BrowserConfig()
        self.page_setup = page_setup or PageSetupConfig()

        self.nav_timeout_ms = nav_timeout_ms
        self.font_timeout_ms = font_timeout_ms
        self.challenge_timeout_ms = challenge_timeout_ms

        self.retry_attempts = retry_attempts
        self.retry_base_delay = retry_base_delay

        self.probe_content_type = probe_content_type
        self.filters_enabled = filters_enabled
        self.filter_lists = filter_lists or list(DEFAULT_FILTER_LISTS)

        # Store extra config
        self.extra_config = kwargs

    def browser_config_for(self, request: CaptureRequest) -> BrowserConfig:
        """Browser configuration with the request's headless flag applied."""
        config = copy.copy(self.browser_config)
        config.headless = request.headless
        return config


class CaptureEngine:
    """Coordinates classification, browser sessions, retries and handlers."""

    def __init__(
        self,
        config: Optional[CaptureEngineConfig] = None,
        filter_engine: Optional[FilterEngine] = None,
        client: Optional[httpx.AsyncClient] = None,
        dispatcher: Optional[HandlerDispatcher] = None,
    ):
        """Initialize capture engine.

        Args:
            config: Engine configuration (uses defaults if None)
            filter_engine: Prebuilt request filter shared by all captures
            client: Shared HTTP client for side fetches (temporary per capture if None)
            dispatcher: Handler dispatcher (default chains if None)
        """
        self.config = config or CaptureEngineConfig()
        self.filter_engine = filter_engine if self.config.filters_enabled else None
        self.client = client
        self.dispatcher = dispatcher or HandlerDispatcher(
            probe_content_type_enabled=self.config.probe_content_type
        )

        # Statistics
        self.stats = {
            'captures_attempted': 0,
            'captures_successful': 0,
            'captures_failed': 0,
            'attempts': 0,
            'handlers': {},
        }

    def create_factory(self, request: CaptureRequest) -> BrowserFactory:
        return BrowserFactory(
            self.config.browser_config_for(request),
            filter_engine=self.filter_engine,
            page_setup=self.config.page_setup,
        )

    async def capture(self, request: CaptureRequest) -> CaptureResult:
        """Capture one URL.

        Args:
            request: Validated capture request

        Returns:
            CaptureResult from the first handler in the chain that succeeded

        Raises:
            LaunchFailure: If the browser could not be started on the last attempt
            AllHandlersFailed: If no handler produced an image
        """
        self.stats['captures_attempted'] += 1
        url = process_url(request.url)
        if url != request.url:
            logger.info(f"Rewrote {request.url} to {url}")

        factory = self.create_factory(request)
        controller = RetryController(
            max_retries=self.config.retry_attempts,
            base_delay=self.config.retry_base_delay,
        )

        try:
            async with http_client(self.client) as client:
                kind = await self.dispatcher.classify(url, client)

                async def attempt(state) -> CaptureResult:
                    self.stats['attempts'] += 1
                    logger.info(f"Capture attempt {state.attempt + 1}/{state.max_attempts} for {url}")
                    async with factory.session() as session:
                        ctx = HandlerContext(
                            factory,
                            session,
                            request,
                            client=client,
                            nav_timeout_ms=self.config.nav_timeout_ms,
                            font_timeout_ms=self.config.font_timeout_ms,
                            challenge_timeout_ms=self.config.challenge_timeout_ms,
                        )
                        return await self.dispatcher.dispatch(ctx, url, kind)

                result = await controller.run(attempt)
        except Exception as e:
            self.stats['captures_failed'] += 1
            logger.error(f"Capture failed for {url}: {e}")
            raise

        self.stats['captures_successful'] += 1
        handlers = self.stats['handlers']
        handlers[result.handler.value] = handlers.get(result.handler.value, 0) + 1
        logger.info(f"Capture completed for {url} via {result.handler.value} ({result.image_size} bytes)")
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get engine statistics."""
        stats = dict(self.stats)
        stats['handlers'] = dict(self.stats['handlers'])
        if stats['captures_attempted'] > 0:
            stats['success_rate'] = stats['captures_successful'] / stats['captures_attempted'] * 100
        else:
            stats['success_rate'] = 0
        stats['filters_enabled'] = self.filter_engine is not None
        return stats

    def __repr__(self) -> str:
        """String representation of capture engine."""
        stats = self.get_stats()
        return (
            f"CaptureEngine(captures={stats['captures_attempted']}, "
            f"success_rate={stats['success_rate']:.1f}%, "
            f"filters={'on' if self.filter_engine else 'off'})"
        )


def success_response(result: CaptureResult) -> Tuple[int, Dict[str, Any]]:
    return 200, result.to_response()


def error_response(error: BaseException) -> Tuple[int, Dict[str, Any]]:
    """Status code and JSON body for a failed capture."""
    if isinstance(error, InvalidRequestError):
        return 400, {'error': str(error)}
    return 500, {'error': str(error) or error.__class__.__name__}


# Convenience functions for common use cases

def create_capture_engine(
    headless: bool = True,
    filter_engine: Optional[FilterEngine] = None,
    retry_attempts: int = DEFAULT_MAX_RETRIES,
    **kwargs
) -> CaptureEngine:
    """Create capture engine with common configuration.

    Args:
        headless: Default headless mode (requests override it)
        filter_engine: Prebuilt request filter
        retry_attempts: Total attempts per capture
        **kwargs: Additional CaptureEngineConfig options

    Returns:
        Configured CaptureEngine instance
    """
    engine_config = CaptureEngineConfig(
        browser_config=BrowserConfig(headless=headless),
        retry_attempts=retry_attempts,
        **kwargs
    )
    return CaptureEngine(engine_config, filter_engine=filter_engine)


async def build_capture_engine(config: Optional[CaptureEngineConfig] = None,
                               client: Optional[httpx.AsyncClient] = None) -> CaptureEngine:
    """Create an engine, compiling the filter lists first when filtering is enabled."""
    config = config or CaptureEngineConfig()
    filter_engine = None
    if config.filters_enabled:
        filter_engine = await build_filter_engine(config.filter_lists, client=client)
    return CaptureEngine(config, filter_engine=filter_engine, client=client)


async def capture_url(request: CaptureRequest,
                      config: Optional[CaptureEngineConfig] = None) -> CaptureResult:
    """One-shot capture with a freshly built engine."""
    engine = await build_capture_engine(config)
    return await engine.capture(request)


def capture_sync(request: CaptureRequest, config: Optional[CaptureEngineConfig] = None) -> CaptureResult:
    """Blocking wrapper around :func:`capture_url` for synchronous callers."""
    return asyncio.run(capture_url(request, config))
