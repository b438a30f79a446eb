"""Unit tests for browser factory."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pageshot.capture.browser_factory import (
    CONSTRAINED_LAUNCH_ARGS,
    MOBILE_USER_AGENT,
    BrowserConfig,
    BrowserFactory,
    create_browser_factory,
    detect_constrained_environment,
    get_page_metrics,
)
from pageshot.capture.page_setup import PageSetupConfig
from pageshot.errors import LaunchFailure


class TestBrowserConfig:
    """Tests for BrowserConfig class."""

    def test_default_config(self):
        """Test default configuration values."""
        config = BrowserConfig(constrained=False)

        assert config.headless is True
        assert config.viewport == {'width': 1920, 'height': 1080}
        assert config.device_scale_factor == 2
        assert config.close_timeout_ms == 5000
        assert config.extra_headers == {}

    def test_constrained_args(self):
        """Test that constrained environments get the memory-saving switches first."""
        args = BrowserConfig(constrained=True).launch_args()
        assert args[:len(CONSTRAINED_LAUNCH_ARGS)] == CONSTRAINED_LAUNCH_ARGS
        assert "--disable-blink-features=AutomationControlled" in args

        local_args = BrowserConfig(constrained=False).launch_args()
        assert "--no-sandbox" not in local_args

    def test_constrained_autodetect(self, monkeypatch):
        for marker in ("PAGESHOT_CONSTRAINED", "VERCEL_ENV", "AWS_LAMBDA_FUNCTION_NAME"):
            monkeypatch.delenv(marker, raising=False)
        assert detect_constrained_environment() is False

        monkeypatch.setenv("AWS_LAMBDA_FUNCTION_NAME", "capture")
        assert detect_constrained_environment() is True
        assert BrowserConfig().constrained is True

    def test_browser_options_conversion(self):
        """Test conversion to browser launch options."""
        config = BrowserConfig(
            headless=False,
            constrained=False,
            executable_path="/opt/chromium",
            extra_args=["--mute-audio"],
            slow_mo=500,
        )

        options = config.to_browser_options()

        assert options['headless'] is False
        assert options['executable_path'] == "/opt/chromium"
        assert options['args'][-1] == "--mute-audio"
        assert options['slow_mo'] == 500

    def test_context_options_conversion(self):
        """Test conversion to context options."""
        config = BrowserConfig(
            constrained=False,
            viewport={'width': 800, 'height': 600},
            user_agent="Test Agent",
            extra_headers={'Test': 'Header'},
            timezone='America/New_York',
        )

        options = config.to_context_options()

        assert options['viewport'] == {'width': 800, 'height': 600}
        assert options['device_scale_factor'] == 2
        assert options['user_agent'] == "Test Agent"
        assert options['extra_http_headers'] == {'Test': 'Header'}
        assert options['ignore_https_errors'] is True
        assert options['locale'] == 'en-US'
        assert options['timezone_id'] == 'America/New_York'


class TestBrowserFactory:
    """Tests for BrowserFactory class."""

    @pytest.fixture
    def mock_playwright(self):
        """Mock Playwright instance."""
        with patch('pageshot.capture.browser_factory.async_playwright') as mock_pw:
            playwright_mock = AsyncMock()
            async_pw_instance = MagicMock()
            async_pw_instance.start = AsyncMock(return_value=playwright_mock)
            mock_pw.return_value = async_pw_instance

            browser_mock = AsyncMock()
            browser_mock.version = "Test Browser 1.0"
            playwright_mock.chromium.launch.return_value = browser_mock

            context_mock = AsyncMock()
            context_mock.pages = []
            browser_mock.new_context.return_value = context_mock

            page_mock = AsyncMock()
            page_mock.on = MagicMock()
            context_mock.new_page.return_value = page_mock

            yield {
                'playwright': playwright_mock,
                'browser': browser_mock,
                'context': context_mock,
                'page': page_mock,
            }

    @pytest.fixture
    def factory(self):
        """Create browser factory for testing."""
        config = BrowserConfig(headless=True, constrained=False, close_timeout_ms=50)
        return BrowserFactory(config, page_setup=PageSetupConfig(stealth=False))

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, factory, mock_playwright):
        """Test session lifecycle."""
        session = await factory.acquire()

        assert session.browser is mock_playwright['browser']
        assert session.context is mock_playwright['context']
        assert not session.released

        await factory.release(session)

        assert session.released
        mock_playwright['browser'].close.assert_awaited_once()
        mock_playwright['playwright'].stop.assert_awaited_once()
        assert factory.get_stats() == {'sessions_acquired': 1, 'sessions_released': 1}

    @pytest.mark.asyncio
    async def test_release_is_idempotent(self, factory, mock_playwright):
        session = await factory.acquire()
        await factory.release(session)
        await factory.release(session)

        mock_playwright['browser'].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_launch_failure(self, factory, mock_playwright):
        """Test that launch errors surface as LaunchFailure and clean up the driver."""
        mock_playwright['playwright'].chromium.launch.side_effect = Exception("Executable doesn't exist")

        with pytest.raises(LaunchFailure) as exc_info:
            await factory.acquire()

        assert "Executable doesn't exist" in str(exc_info.value)
        mock_playwright['playwright'].stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_release_with_hung_close(self, factory, mock_playwright):
        """Test that a browser close that never finishes still releases the session."""
        async def hang():
            await asyncio.sleep(10)

        mock_playwright['browser'].close.side_effect = hang
        session = await factory.acquire()

        await factory.release(session)

        assert session.released
        mock_playwright['playwright'].stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_release_closes_open_pages(self, factory, mock_playwright):
        pages = [AsyncMock(), AsyncMock()]
        pages[1].close.side_effect = Exception("already closed")
        mock_playwright['context'].pages = pages

        session = await factory.acquire()
        await factory.release(session)

        for page in pages:
            page.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_session_context_manager_releases_on_error(self, factory, mock_playwright):
        with pytest.raises(RuntimeError):
            async with factory.session():
                raise RuntimeError("capture failed")

        mock_playwright['browser'].close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_page_applies_setup_and_closes(self, factory, mock_playwright):
        session = await factory.acquire()

        async with factory.page(session, color_scheme="light") as page:
            assert page is mock_playwright['page']

        page.emulate_media.assert_awaited_once_with(color_scheme="light", reduced_motion="reduce")
        page.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mobile_page_uses_separate_context(self, factory, mock_playwright):
        """Test phone emulation in a dedicated context."""
        session = await factory.acquire()
        mobile_context = AsyncMock()
        mobile_page = AsyncMock()
        mobile_page.on = MagicMock()
        mobile_context.new_page.return_value = mobile_page
        mock_playwright['browser'].new_context.return_value = mobile_context

        async with factory.mobile_page(session) as page:
            assert page is mobile_page

        options = mock_playwright['browser'].new_context.await_args.kwargs
        assert options['is_mobile'] is True
        assert options['has_touch'] is True
        assert options['user_agent'] == MOBILE_USER_AGENT
        mobile_context.close.assert_awaited_once()

    def test_factory_repr(self, factory):
        assert "headless=True" in repr(factory)
        assert "filters=off" in repr(factory)


class TestPageMetrics:
    """Tests for DevTools performance metrics."""

    @pytest.mark.asyncio
    async def test_metrics_read(self):
        page = AsyncMock()
        cdp = AsyncMock()
        page.context = MagicMock()
        page.context.new_cdp_session = AsyncMock(return_value=cdp)
        cdp.send.side_effect = [None, {'metrics': [
            {'name': 'Nodes', 'value': 120.0},
            {'name': 'JSHeapUsedSize', 'value': 2 * 1024 * 1024},
        ]}]

        metrics = await get_page_metrics(page)

        assert metrics['nodes'] == 120.0
        assert metrics['js_heap_used_mb'] == 2.0
        cdp.detach.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_metrics_failure_returns_zeros(self):
        page = AsyncMock()
        page.context = MagicMock()
        page.context.new_cdp_session = AsyncMock(side_effect=Exception("no cdp"))

        metrics = await get_page_metrics(page)

        assert all(value == 0.0 for value in metrics.values())


def test_create_browser_factory():
    factory = create_browser_factory(headless=False, constrained=False)
    assert factory.config.headless is False
    assert factory.filter_engine is None
