"""Browser capture pipeline for pageshot.

Main Components:
- Browser Factory: session acquisition and bounded teardown
- Page Setup: media features, stealth script, console sink, request filtering
- Navigation: goto with load budgets, font readiness, dialog dismissal
- Challenge: interstitial challenge detection and clearance wait
- Screenshot: cascading capture that never fails
- Retry: bounded retries with exponential backoff
- Capture Engine: classification, dispatch and retries for one request

Usage:
    from pageshot.capture import CaptureEngine

    engine = CaptureEngine(config)
    result = await engine.capture(request)
"""

from .browser_factory import BrowserConfig, BrowserFactory, BrowserSession, create_browser_factory
from .filter_engine import FilterEngine, build_filter_engine
from .page_setup import PageSetupConfig
from .retry import RetryController, is_retryable_error, retry_with_backoff
from .screenshot import PLACEHOLDER_IMAGE, capture_screenshot
from .engine import (
    CaptureEngine,
    CaptureEngineConfig,
    build_capture_engine,
    capture_sync,
    capture_url,
    create_capture_engine,
    error_response,
)

__all__ = [
    # Main components
    "CaptureEngine",
    "CaptureEngineConfig",
    "BrowserFactory",
    "BrowserConfig",
    "BrowserSession",
    "PageSetupConfig",
    "FilterEngine",
    "RetryController",

    # Functions
    "capture_screenshot",
    "is_retryable_error",
    "retry_with_backoff",
    "error_response",
    "PLACEHOLDER_IMAGE",

    # Convenience functions
    "create_capture_engine",
    "create_browser_factory",
    "build_capture_engine",
    "build_filter_engine",
    "capture_url",
    "capture_sync",
]
