"""Unit tests for challenge widget handling."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from pageshot.capture import challenge


def make_frame(url, widget_id="abc123"):
    frame = AsyncMock()
    frame.url = url
    frame.evaluate.return_value = widget_id
    return frame


class TestChallengeCheck:
    """Tests for challenge.check."""

    @pytest.mark.asyncio
    async def test_no_challenge_frames(self):
        page = MagicMock()
        page.frames = [make_frame("https://example.com/"), make_frame("about:blank")]

        assert await challenge.check(page, 100) is False
        for frame in page.frames:
            frame.wait_for_function.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_challenge_solved(self):
        frame = make_frame("https://challenges.cloudflare.com/cdn-cgi/challenge-platform/h/b")
        page = MagicMock()
        page.frames = [make_frame("https://example.com/"), frame]

        assert await challenge.check(page, 500) is True

        frame.wait_for_function.assert_awaited_once()
        kwargs = frame.wait_for_function.await_args.kwargs
        assert kwargs['arg'] == "abc123"
        assert kwargs['timeout'] == 500

    @pytest.mark.asyncio
    async def test_frame_without_widget_is_skipped(self):
        frame = make_frame("https://challenges.cloudflare.com/x", widget_id=None)
        page = MagicMock()
        page.frames = [frame]

        assert await challenge.check(page, 100) is False
        frame.wait_for_function.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unsolved_challenge_does_not_raise(self):
        """Test that a timeout while waiting is logged, not raised."""
        frame = make_frame("https://challenges.cloudflare.com/x")
        frame.wait_for_function.side_effect = PlaywrightTimeoutError("Timeout 100ms exceeded")
        page = MagicMock()
        page.frames = [frame]

        assert await challenge.check(page, 100) is False

    @pytest.mark.asyncio
    async def test_detached_frame_does_not_raise(self):
        frame = make_frame("https://challenges.cloudflare.com/x")
        frame.evaluate.side_effect = Exception("Frame was detached")
        page = MagicMock()
        page.frames = [frame]

        assert await challenge.check(page, 100) is False
