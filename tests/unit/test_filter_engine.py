"""Unit tests for the request filter engine."""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from pageshot.capture.filter_engine import FilterEngine, build_filter_engine


@pytest.fixture
def engine():
    return FilterEngine.from_rules(["||ads.example.com^", "/tracker.js"])


def make_route(url, resource_type="script", navigation=False, top_level=True):
    route = MagicMock()
    route.continue_ = AsyncMock()
    route.abort = AsyncMock()
    route.request.url = url
    route.request.resource_type = resource_type
    route.request.is_navigation_request.return_value = navigation
    route.request.frame.parent_frame = None if top_level else MagicMock()
    return route


class TestFilterEngine:
    """Tests for FilterEngine matching."""

    def test_should_block(self, engine):
        assert engine.should_block("https://ads.example.com/banner.js", "https://news.example.org/", "script")
        assert engine.should_block("https://cdn.example.org/tracker.js", "https://news.example.org/", "script")
        assert not engine.should_block("https://news.example.org/app.js", "https://news.example.org/", "script")

    def test_unknown_resource_type(self, engine):
        assert engine.should_block("https://ads.example.com/x", "https://news.example.org/", "weird-type")

    def test_repr(self, engine):
        assert repr(engine) == "FilterEngine(lists=1)"
        assert engine.list_names == ("inline",)

    @pytest.mark.asyncio
    async def test_enable_blocking_routes_requests(self, engine):
        """Test that blocked requests are aborted and the rest continue."""
        page = AsyncMock()
        page.url = "https://news.example.org/"

        await engine.enable_blocking(page)

        pattern, handler = page.route.await_args.args
        assert pattern == "**/*"

        blocked = make_route("https://ads.example.com/banner.js")
        await handler(blocked)
        blocked.abort.assert_awaited_once()
        blocked.continue_.assert_not_awaited()

        allowed = make_route("https://news.example.org/style.css", resource_type="stylesheet")
        await handler(allowed)
        allowed.continue_.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_top_level_document_never_blocked(self, engine):
        page = AsyncMock()
        page.url = "about:blank"
        await engine.enable_blocking(page)
        _, handler = page.route.await_args.args

        route = make_route("https://ads.example.com/", resource_type="document", navigation=True)
        await handler(route)

        route.continue_.assert_awaited_once()
        route.abort.assert_not_awaited()


class TestCosmeticFiltering:
    """Tests for cosmetic (element hiding) rules."""

    def test_site_specific_selectors(self):
        engine = FilterEngine.from_rules(["example.com##.cookie-banner"])

        assert engine.cosmetic_selectors("https://example.com/article") == [".cookie-banner"]
        assert engine.cosmetic_selectors("https://other.org/") == []

    def test_generic_selectors_match_page_classes(self):
        """Test that generic rules apply only to classes present on the page."""
        engine = FilterEngine.from_rules(["##.consent-popup"])

        assert ".consent-popup" in engine.cosmetic_selectors(
            "https://news.example.org/", classes=["header", "consent-popup"]
        )
        assert engine.cosmetic_selectors("https://news.example.org/", classes=["header"]) == []

    @pytest.mark.asyncio
    async def test_hide_cosmetic_elements_injects_style(self):
        engine = FilterEngine.from_rules(["example.com##.cookie-banner"])
        page = AsyncMock()
        page.url = "https://example.com/"
        page.evaluate.return_value = {'classes': ["cookie-banner"], 'ids': []}

        hidden = await engine.hide_cosmetic_elements(page)

        assert hidden == 1
        css = page.add_style_tag.await_args.kwargs['content']
        assert ".cookie-banner { display: none !important; }" in css

    @pytest.mark.asyncio
    async def test_nothing_to_hide(self, engine):
        page = AsyncMock()
        page.url = "https://example.com/"
        page.evaluate.return_value = {'classes': [], 'ids': []}

        assert await engine.hide_cosmetic_elements(page) == 0
        page.add_style_tag.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_injection_failure_is_swallowed(self):
        engine = FilterEngine.from_rules(["example.com##.cookie-banner"])
        page = AsyncMock()
        page.url = "https://example.com/"
        page.evaluate.return_value = {'classes': [], 'ids': []}
        page.add_style_tag.side_effect = Exception("Execution context was destroyed")

        assert await engine.hide_cosmetic_elements(page) == 0


class TestFromLists:
    """Tests for downloading and compiling filter lists."""

    @pytest.mark.asyncio
    async def test_failed_lists_are_skipped(self):
        def handler(request):
            if request.url.host == "lists.example.com":
                return httpx.Response(200, text="||tracker.example.net^\n")
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            engine = await FilterEngine.from_lists(
                ["https://lists.example.com/a.txt", "https://broken.example.com/b.txt"],
                client=client,
            )

        assert engine.list_names == ("https://lists.example.com/a.txt",)
        assert engine.should_block("https://tracker.example.net/p.gif", "https://site.example/", "image")

    @pytest.mark.asyncio
    async def test_build_filter_engine(self):
        def handler(request):
            return httpx.Response(200, text="||ads.example.com^\n")

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            engine = await build_filter_engine(["https://lists.example.com/a.txt"], client=client)

        assert engine is not None
        assert engine.should_block("https://ads.example.com/x.js", "https://site.example/", "script")
