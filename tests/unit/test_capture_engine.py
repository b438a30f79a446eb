"""Unit tests for capture engine."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from pageshot.capture.browser_factory import BrowserConfig
from pageshot.capture.engine import (
    CaptureEngine,
    CaptureEngineConfig,
    create_capture_engine,
    error_response,
    success_response,
)
from pageshot.errors import AllHandlersFailed, InvalidRequestError, TransientProtocolError
from pageshot.models.capture import CaptureRequest, CaptureResult, SiteKind


class TestCaptureEngineConfig:
    """Tests for CaptureEngineConfig class."""

    def test_default_config(self):
        """Test default configuration values."""
        config = CaptureEngineConfig()

        assert config.nav_timeout_ms == 30000
        assert config.retry_attempts == 2
        assert config.retry_base_delay == 1.0
        assert config.probe_content_type is True
        assert config.filters_enabled is True
        assert config.filter_lists

    def test_browser_config_for_request(self):
        """Test that the request's headless flag wins without mutating the shared config."""
        config = CaptureEngineConfig(browser_config=BrowserConfig(headless=True, constrained=False))
        request = CaptureRequest(url="https://example.com/", headless=False)

        browser_config = config.browser_config_for(request)

        assert browser_config.headless is False
        assert config.browser_config.headless is True


class TestCaptureEngine:
    """Tests for CaptureEngine.capture."""

    @pytest.fixture
    def dispatcher(self):
        dispatcher = MagicMock()
        dispatcher.classify = AsyncMock(return_value=SiteKind.GENERIC)
        dispatcher.dispatch = AsyncMock(
            return_value=CaptureResult(image=b"jpeg", handler=SiteKind.GENERIC)
        )
        return dispatcher

    @pytest.fixture
    def factory(self):
        factory = MagicMock()
        factory.sessions = 0

        @asynccontextmanager
        async def session():
            factory.sessions += 1
            yield MagicMock()

        factory.session = session
        return factory

    @pytest.fixture
    def engine(self, dispatcher, factory):
        config = CaptureEngineConfig(retry_attempts=2, retry_base_delay=0, filters_enabled=False)
        client = httpx.AsyncClient()
        engine = CaptureEngine(config, client=client, dispatcher=dispatcher)
        engine.create_factory = MagicMock(return_value=factory)
        return engine

    @pytest.mark.asyncio
    async def test_successful_capture(self, engine, dispatcher, factory):
        result = await engine.capture(CaptureRequest(url="https://example.com/"))

        assert result.image == b"jpeg"
        dispatcher.classify.assert_awaited_once()
        assert factory.sessions == 1
        ctx, url, kind = dispatcher.dispatch.await_args.args
        assert url == "https://example.com/"
        assert kind == SiteKind.GENERIC
        assert ctx.client is engine.client

        stats = engine.get_stats()
        assert stats['captures_successful'] == 1
        assert stats['handlers'] == {'generic': 1}
        assert stats['success_rate'] == 100

    @pytest.mark.asyncio
    async def test_youtube_url_is_rewritten(self, engine, dispatcher):
        await engine.capture(CaptureRequest(url="https://youtu.be/dQw4w9WgXcQ"))

        url = dispatcher.classify.await_args.args[0]
        assert url == "https://img.youtube.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"

    @pytest.mark.asyncio
    async def test_transient_error_gets_fresh_session(self, engine, dispatcher, factory):
        """Test that a retried attempt runs in a new browser session."""
        dispatcher.dispatch.side_effect = [
            TransientProtocolError("Target closed"),
            CaptureResult(image=b"second", handler=SiteKind.GENERIC),
        ]

        result = await engine.capture(CaptureRequest(url="https://example.com/"))

        assert result.image == b"second"
        assert factory.sessions == 2
        # Classification happens once per request
        dispatcher.classify.assert_awaited_once()
        assert engine.get_stats()['attempts'] == 2

    @pytest.mark.asyncio
    async def test_all_handlers_failed_is_not_retried(self, engine, dispatcher, factory):
        dispatcher.dispatch.side_effect = AllHandlersFailed("https://example.com/")

        with pytest.raises(AllHandlersFailed):
            await engine.capture(CaptureRequest(url="https://example.com/"))

        assert factory.sessions == 1
        assert engine.get_stats()['captures_failed'] == 1

    def test_filter_engine_dropped_when_disabled(self):
        engine = CaptureEngine(CaptureEngineConfig(filters_enabled=False), filter_engine=MagicMock())
        assert engine.filter_engine is None
        assert "filters=off" in repr(engine)


class TestResponses:
    """Tests for response rendering."""

    def test_success_response(self):
        status, body = success_response(CaptureResult(image=b"x", handler=SiteKind.IMAGE))
        assert status == 200
        assert body['handler'] == "image"

    def test_error_response(self):
        assert error_response(InvalidRequestError("Invalid URL")) == (400, {'error': "Invalid URL"})

        status, body = error_response(AllHandlersFailed("https://example.com/"))
        assert status == 500
        assert "no handler produced an image" in body['error']

        assert error_response(RuntimeError()) == (500, {'error': "RuntimeError"})


def test_create_capture_engine():
    engine = create_capture_engine(headless=False, retry_attempts=3, filters_enabled=False)
    assert engine.config.browser_config.headless is False
    assert engine.config.retry_attempts == 3
    assert engine.filter_engine is None
