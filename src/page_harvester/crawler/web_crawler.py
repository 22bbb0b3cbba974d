"""Caller-facing crawl API.

:class:`WebCrawler` wires a :class:`~page_harvester.crawler.session.BrowserSession`,
a :class:`~page_harvester.crawler.fetcher.PageFetcher` and a
:class:`~page_harvester.crawler.store.ResultStore` together.  Each
instance owns its own session and store, so independent crawl runs (and
tests) never share browser state or results.

Example::

    async with WebCrawler() as crawler:
        await crawler.crawl(rule_set)
        record = crawler.get_latest_data(rule_set.name)
        if record and record.succeeded:
            print(record.data)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import structlog

from page_harvester.config.settings import Settings, get_settings
from page_harvester.crawler.fetcher import PageFetcher
from page_harvester.crawler.models import CrawlRecord, RuleSet
from page_harvester.crawler.session import BrowserSession
from page_harvester.crawler.store import ResultStore

logger = logging.getLogger(__name__)


class WebCrawler:
    """Fetch, extract and store records for explicit URLs, one at a time.

    Only browser session failures escape :meth:`crawl`; every per-URL
    failure ends up in a failed :class:`~page_harvester.crawler.models.CrawlRecord`.

    Args:
        settings: Browser and retry defaults.
        session: Browser session to use.  Created from ``settings`` if omitted.
        store: Record store.  A fresh one is created if omitted.
        fetcher: Fetcher to use.  Built on ``session`` if omitted.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session: BrowserSession | None = None,
        store: ResultStore | None = None,
        fetcher: PageFetcher | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._session = session or BrowserSession(self._settings)
        self._store = store or ResultStore()
        self._fetcher = fetcher or PageFetcher(
            self._session,
            timeout_ms=self._settings.timeout,
            max_retries=self._settings.max_retries,
            retry_delay_ms=self._settings.retry_delay_ms,
        )

    @property
    def session(self) -> BrowserSession:
        return self._session

    # ------------------------------------------------------------------
    # Crawling
    # ------------------------------------------------------------------

    async def crawl(self, rule_set: RuleSet, params: Mapping[str, str] | None = None) -> None:
        """Run one fetch + extract + store cycle for ``rule_set.url``.

        Raises:
            SessionError: If the browser cannot be launched.
        """
        logger.debug("crawler: starting crawl of %s for %s", rule_set.url, rule_set.name)
        await self._session.ensure_ready()
        await self.handle_url(rule_set.url, rule_set, params)

    async def handle_url(
        self,
        url: str,
        rule_set: RuleSet,
        params: Mapping[str, str] | None = None,
    ) -> CrawlRecord:
        """Fetch ``url`` with ``rule_set`` and append exactly one record.

        The record is appended only once the retry loop has fully resolved.

        Returns:
            The appended record.
        """
        with structlog.contextvars.bound_contextvars(site=rule_set.name, url=url):
            record = await self._fetcher.fetch(url, rule_set, params)
            self._store.append(rule_set.name, record)
            if record.succeeded:
                logger.info("crawler: stored %d field(s) for %s", len(record.data), rule_set.name)
            else:
                logger.warning("crawler: crawl of %s failed: %s", url, "; ".join(record.errors))
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_data(
        self, site_name: str | None = None
    ) -> list[CrawlRecord] | dict[str, list[CrawlRecord]]:
        """Records of one site, or every site's records grouped by name."""
        if site_name is None:
            return self._store.grouped()
        return self._store.all(site_name)

    def get_latest_data(self, site_name: str) -> CrawlRecord | None:
        return self._store.latest(site_name)

    def get_successful_data(self, site_name: str) -> list[CrawlRecord]:
        return self._store.succeeded(site_name)

    def get_failed_data(self, site_name: str) -> list[CrawlRecord]:
        return self._store.failed(site_name)

    def clear_data(self, site_name: str | None = None) -> None:
        if site_name is None:
            logger.debug("crawler: clearing all data")
        else:
            logger.debug("crawler: clearing data for %s", site_name)
        self._store.clear(site_name)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Release the browser session.  Idempotent."""
        await self._session.close()

    async def __aenter__(self) -> WebCrawler:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
