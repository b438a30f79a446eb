"""Shared test fixtures and configuration for pageshot tests."""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pageshot.capture.browser_factory import BrowserConfig, BrowserFactory, BrowserSession
from pageshot.handlers.base import HandlerContext
from pageshot.models.capture import CaptureRequest


@pytest.fixture
def sample_request():
    """A plain headless capture request."""
    return CaptureRequest(url="https://example.com/")


@pytest.fixture
def mock_page():
    """Mock Playwright page with the calls handlers make."""
    page = AsyncMock()
    page.url = "https://example.com/"
    page.screenshot.return_value = b"page-bytes"
    page.evaluate.return_value = {
        'title': 'Example Domain',
        'description': None,
        'og_image': None,
        'favicon': '/favicon.ico',
    }
    page.query_selector.return_value = None
    page.frames = []
    page.on = MagicMock()
    return page


@pytest.fixture
def mock_session(mock_page):
    """Browser session whose context hands out ``mock_page``."""
    context = AsyncMock()
    context.new_page.return_value = mock_page
    context.pages = []
    return BrowserSession(AsyncMock(), AsyncMock(), context, BrowserConfig(constrained=False))


@pytest.fixture
def handler_context(mock_session, sample_request):
    """Handler context backed by mocks; pages come from ``mock_page``."""
    factory = BrowserFactory(BrowserConfig(constrained=False))
    return HandlerContext(factory, mock_session, sample_request, client=None,
                          nav_timeout_ms=1000, font_timeout_ms=1000, challenge_timeout_ms=1000)
