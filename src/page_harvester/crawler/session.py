"""Playwright browser session owned by one crawl run.

A :class:`BrowserSession` holds exactly one Playwright driver, one
Chromium process and one browsing context (cookies, viewport and
user-agent scope).  Handles are created lazily on the first
:meth:`BrowserSession.ensure_ready` call and destroyed only by
:meth:`BrowserSession.close`.  No other component may hold or close them:
the fetcher obtains pages exclusively through :meth:`BrowserSession.new_page`.

Install Playwright and download the Chromium browser binary::

    pip install playwright
    playwright install chromium

Usage::

    async with BrowserSession(settings) as session:
        page = await session.new_page()
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from playwright.async_api import async_playwright

from page_harvester.config.settings import Settings, get_settings
from page_harvester.core.exceptions import SessionError

if TYPE_CHECKING:
    from playwright.async_api import Browser, BrowserContext, Page, Playwright

logger = logging.getLogger(__name__)


class BrowserSession:
    """Lazily created, explicitly closed browser and context pair.

    Args:
        settings: Browser launch and context options.  Defaults to the
            process-wide :func:`~page_harvester.config.settings.get_settings`.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self._browser is not None and self._context is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def ensure_ready(self) -> None:
        """Start the driver, launch the browser and create the context if missing.

        Idempotent: handles that already exist are left untouched, so a
        second call performs no launch.

        Raises:
            SessionError: If any handle cannot be created.  Handles created
                earlier in the same call are torn down first, so a failed
                call never leaves a half-initialised session behind.
        """
        async with self._lock:
            if self.is_ready:
                return

            stage = "driver"
            try:
                if self._playwright is None:
                    self._playwright = await async_playwright().start()

                stage = "browser"
                if self._browser is None:
                    launch_options = self._settings.launch_options()
                    logger.debug(
                        "crawler: launching chromium (headless=%s)", launch_options["headless"]
                    )
                    self._browser = await self._playwright.chromium.launch(**launch_options)

                stage = "context"
                if self._context is None:
                    self._context = await self._browser.new_context(
                        **self._settings.context_options()
                    )
            except Exception as exc:
                logger.error("crawler: browser %s setup failed: %s", stage, exc)
                await self._teardown()
                raise SessionError(f"Browser {stage} setup failed: {exc}", stage=stage) from exc

            logger.info("crawler: browser session ready (%s)", self._settings.summary())

    async def new_page(self) -> Page:
        """Open a fresh page in the shared context, initialising it if needed."""
        await self.ensure_ready()
        context = self._context
        if context is None:
            # close() ran between ensure_ready() and here.
            raise SessionError("Browser context was closed", stage="context")
        return await context.new_page()

    async def close(self) -> None:
        """Close the context, the browser and the driver, in that order.

        Safe to call any number of times, including before
        :meth:`ensure_ready`.  Close failures are logged, never raised.
        """
        async with self._lock:
            if self._playwright is None and self._browser is None and self._context is None:
                return
            await self._teardown()
            logger.info("crawler: browser session closed")

    async def _teardown(self) -> None:
        context, browser, driver = self._context, self._browser, self._playwright
        self._context = None
        self._browser = None
        self._playwright = None

        if context is not None:
            await _close_quietly(context.close, "context")
        if browser is not None:
            await _close_quietly(browser.close, "browser")
        if driver is not None:
            await _close_quietly(driver.stop, "driver")

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BrowserSession:
        await self.ensure_ready()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


async def _close_quietly(closer: Any, what: str) -> None:
    try:
        await closer()
    except Exception as exc:  # noqa: BLE001
        logger.warning("crawler: error closing %s: %s", what, exc)
