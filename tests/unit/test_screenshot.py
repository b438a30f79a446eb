"""Unit tests for the cascading screenshot capture."""

import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import ElementHandle, Page

from pageshot.capture.screenshot import (
    PLACEHOLDER_IMAGE,
    SIMPLIFIED_QUALITY,
    capture_screenshot,
    content_type_for,
)


def make_page():
    page = AsyncMock(spec=Page)
    cdp = AsyncMock()
    page.context = MagicMock()
    page.context.new_cdp_session = AsyncMock(return_value=cdp)
    return page, cdp


class TestCaptureScreenshot:
    """Tests for capture_screenshot fallbacks."""

    @pytest.mark.asyncio
    async def test_first_strategy_success(self):
        page, _ = make_page()
        page.screenshot.return_value = b"jpeg-bytes"

        data = await capture_screenshot(page, {'full_page': True})

        assert data == b"jpeg-bytes"
        kwargs = page.screenshot.await_args.kwargs
        assert kwargs['type'] == 'jpeg'
        assert kwargs['full_page'] is True

    @pytest.mark.asyncio
    async def test_simplified_fallback(self):
        """Test that a failed capture retries with viewport-only reduced quality."""
        page, _ = make_page()
        page.screenshot.side_effect = [Exception("Protocol error"), b"simplified"]

        data = await capture_screenshot(page, {'full_page': True})

        assert data == b"simplified"
        second = page.screenshot.await_args_list[1].kwargs
        assert second['full_page'] is False
        assert second['quality'] == SIMPLIFIED_QUALITY

    @pytest.mark.asyncio
    async def test_empty_bytes_count_as_failure(self):
        page, _ = make_page()
        page.screenshot.side_effect = [b"", b"second"]

        assert await capture_screenshot(page) == b"second"

    @pytest.mark.asyncio
    async def test_cdp_fallback(self):
        page, cdp = make_page()
        page.screenshot.side_effect = Exception("Target crashed")
        cdp.send.return_value = {'data': base64.b64encode(b"cdp-bytes").decode('ascii')}

        data = await capture_screenshot(page)

        assert data == b"cdp-bytes"
        cdp.send.assert_awaited_once()
        assert cdp.send.await_args.args[0] == "Page.captureScreenshot"
        cdp.detach.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_placeholder_when_everything_fails(self):
        """Test that capture never raises."""
        page, cdp = make_page()
        page.screenshot.side_effect = Exception("boom")
        cdp.send.side_effect = Exception("cdp gone")

        data = await capture_screenshot(page)

        assert data == PLACEHOLDER_IMAGE
        assert len(data) > 0

    @pytest.mark.asyncio
    async def test_element_skips_cdp_and_page_options(self):
        element = AsyncMock(spec=ElementHandle)
        element.screenshot.side_effect = Exception("detached")

        data = await capture_screenshot(element, {'full_page': True})

        assert data == PLACEHOLDER_IMAGE
        for call in element.screenshot.await_args_list:
            assert 'full_page' not in call.kwargs

    def test_content_type(self):
        assert content_type_for(None) == 'image/jpeg'
        assert content_type_for({'type': 'jpeg'}) == 'image/jpeg'
        assert content_type_for({'type': 'png'}) == 'image/png'
