"""Unit tests for the browser session lifecycle.

Tests lazy initialisation, idempotent setup and close, launch options and
failure teardown using a mocked Playwright driver.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from page_harvester.config.settings import Settings
from page_harvester.core.exceptions import SessionError
from page_harvester.crawler.session import BrowserSession


@pytest.mark.asyncio
class TestEnsureReady:
    async def test_setup_twice_launches_once(
        self,
        settings: Settings,
        patched_playwright: MagicMock,
        mock_playwright: MagicMock,
        mock_browser: MagicMock,
    ) -> None:
        session = BrowserSession(settings)
        await session.ensure_ready()
        await session.ensure_ready()

        assert patched_playwright.call_count == 1
        mock_playwright.chromium.launch.assert_awaited_once()
        mock_browser.new_context.assert_awaited_once()
        assert session.is_ready is True

    async def test_launch_uses_settings(
        self,
        patched_playwright: MagicMock,
        mock_playwright: MagicMock,
        mock_browser: MagicMock,
    ) -> None:
        settings = Settings(  # type: ignore[call-arg]
            _env_file=None,
            headless=False,
            viewport_width=375,
            viewport_height=667,
            user_agent="TestAgent/1.0",
        )
        await BrowserSession(settings).ensure_ready()

        launch_kwargs = mock_playwright.chromium.launch.await_args.kwargs
        assert launch_kwargs["headless"] is False
        assert '--user-agent="TestAgent/1.0"' in launch_kwargs["args"]
        assert "--no-sandbox" in launch_kwargs["args"]

        mock_browser.new_context.assert_awaited_once_with(
            viewport={"width": 375, "height": 667},
            user_agent="TestAgent/1.0",
        )

    async def test_new_page_initialises_lazily(
        self,
        settings: Settings,
        patched_playwright: MagicMock,
        mock_context: MagicMock,
        mock_page: MagicMock,
    ) -> None:
        session = BrowserSession(settings)
        assert session.is_ready is False

        page = await session.new_page()

        assert page is mock_page
        assert session.is_ready is True
        mock_context.new_page.assert_awaited_once()

    async def test_launch_failure_raises_session_error_and_tears_down(
        self,
        settings: Settings,
        patched_playwright: MagicMock,
        mock_playwright: MagicMock,
    ) -> None:
        mock_playwright.chromium.launch.side_effect = RuntimeError("no chromium binary")
        session = BrowserSession(settings)

        with pytest.raises(SessionError) as excinfo:
            await session.ensure_ready()

        assert excinfo.value.stage == "browser"
        assert isinstance(excinfo.value.__cause__, RuntimeError)
        assert session.is_ready is False
        mock_playwright.stop.assert_awaited_once()

    async def test_context_failure_closes_browser(
        self,
        settings: Settings,
        patched_playwright: MagicMock,
        mock_browser: MagicMock,
    ) -> None:
        mock_browser.new_context.side_effect = RuntimeError("context refused")
        session = BrowserSession(settings)

        with pytest.raises(SessionError) as excinfo:
            await session.ensure_ready()

        assert excinfo.value.stage == "context"
        mock_browser.close.assert_awaited_once()


@pytest.mark.asyncio
class TestClose:
    async def test_close_is_idempotent(
        self,
        settings: Settings,
        patched_playwright: MagicMock,
        mock_playwright: MagicMock,
        mock_browser: MagicMock,
        mock_context: MagicMock,
    ) -> None:
        session = BrowserSession(settings)
        await session.ensure_ready()
        await session.close()
        await session.close()

        mock_context.close.assert_awaited_once()
        mock_browser.close.assert_awaited_once()
        mock_playwright.stop.assert_awaited_once()
        assert session.is_ready is False

    async def test_close_before_setup_is_noop(
        self, settings: Settings, patched_playwright: MagicMock
    ) -> None:
        session = BrowserSession(settings)
        await session.close()

        patched_playwright.assert_not_called()

    async def test_close_swallows_cleanup_errors(
        self,
        settings: Settings,
        patched_playwright: MagicMock,
        mock_browser: MagicMock,
        mock_context: MagicMock,
    ) -> None:
        mock_context.close = AsyncMock(side_effect=RuntimeError("already gone"))
        session = BrowserSession(settings)
        await session.ensure_ready()

        await session.close()

        mock_browser.close.assert_awaited_once()
        assert session.is_ready is False

    async def test_reopens_after_close(
        self,
        settings: Settings,
        patched_playwright: MagicMock,
        mock_playwright: MagicMock,
    ) -> None:
        session = BrowserSession(settings)
        await session.ensure_ready()
        await session.close()
        await session.ensure_ready()

        assert mock_playwright.chromium.launch.await_count == 2

    async def test_async_context_manager(
        self,
        settings: Settings,
        patched_playwright: MagicMock,
        mock_browser: MagicMock,
    ) -> None:
        async with BrowserSession(settings) as session:
            assert session.is_ready is True

        mock_browser.close.assert_awaited_once()


@pytest.mark.asyncio
class TestNewPageAfterClose:
    async def test_context_gone_raises_session_error(self, settings: Settings) -> None:
        session = BrowserSession(settings)
        session.ensure_ready = AsyncMock(return_value=None)  # type: ignore[method-assign]

        with pytest.raises(SessionError) as excinfo:
            await session.new_page()

        assert excinfo.value.stage == "context"

    async def test_close_during_setup_is_session_error(
        self,
        settings: Settings,
        patched_playwright: MagicMock,
        mock_context: MagicMock,
    ) -> None:
        session = BrowserSession(settings)
        real_ensure_ready = session.ensure_ready

        async def ready_then_closed() -> None:
            await real_ensure_ready()
            await session.close()

        session.ensure_ready = ready_then_closed  # type: ignore[method-assign]

        with pytest.raises(SessionError):
            await session.new_page()

        mock_context.new_page.assert_not_awaited()
