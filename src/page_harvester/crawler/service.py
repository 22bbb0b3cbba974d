"""High-level crawl requests on top of :class:`~page_harvester.crawler.web_crawler.WebCrawler`.

Two request shapes are supported:

``start_crawling``
    Search-style request: crawl a rule set's listing URL, optionally with a
    ``keyword`` appended to its query string, and return every record
    stored for the site.  When a storage collaborator is configured the
    completed request is persisted as ``{config, items, timestamp}``.

``crawl_url``
    Detail-style request: resolve the rule set for an arbitrary URL via the
    registry and return that URL's record.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from page_harvester.core.exceptions import RuleSetNotFoundError
from page_harvester.crawler.models import CrawlRecord, RuleSet, now_ms
from page_harvester.crawler.registry import RuleRegistry
from page_harvester.crawler.storage import JsonFileStorage
from page_harvester.crawler.web_crawler import WebCrawler

logger = logging.getLogger(__name__)


def build_search_url(base_url: str, keyword: str) -> str:
    """Append ``keyword=<keyword>`` to ``base_url``'s query string.

    Existing query parameters are preserved in order.

    Raises:
        ValueError: If ``base_url`` is not an absolute http(s) URL.
    """
    parts = urlsplit(base_url)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(f"Invalid URL: {base_url!r}")
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.append(("keyword", keyword))
    return urlunsplit(parts._replace(query=urlencode(query)))


class CrawlerService:
    """Entry point used by automation callers.

    Args:
        crawler: Crawler to drive.  A default :class:`WebCrawler` is created
            if omitted.
        registry: Rule sets used by :meth:`crawl_url`.
        storage: Optional persistence collaborator for :meth:`start_crawling`.
    """

    def __init__(
        self,
        crawler: WebCrawler | None = None,
        *,
        registry: RuleRegistry | None = None,
        storage: JsonFileStorage | None = None,
    ) -> None:
        self.crawler = crawler or WebCrawler()
        self.registry = registry or RuleRegistry()
        self.storage = storage

    async def start_crawling(
        self,
        rule_set: RuleSet,
        params: Mapping[str, str] | None = None,
    ) -> list[CrawlRecord]:
        """Crawl ``rule_set`` (with an optional keyword) and return the site's records.

        An empty-string keyword is still appended.  If the rule set's URL
        cannot carry a keyword it is crawled unchanged and the problem is
        logged.
        """
        target = rule_set
        if params and "keyword" in params:
            try:
                target = rule_set.with_url(build_search_url(rule_set.url, params["keyword"]))
            except ValueError as exc:
                logger.error(
                    "[CrawlerService] Error constructing URL with keyword for %s: %s",
                    rule_set.name,
                    exc,
                )

        await self.crawler.crawl(target, params)
        items: list[CrawlRecord] = self.crawler.get_data(target.name)  # type: ignore[assignment]

        if self.storage is not None:
            self.storage.save_data(
                target.name,
                {
                    "config": target.to_dict(),
                    "items": [item.to_dict() for item in items],
                    "timestamp": now_ms(),
                },
            )
        return items

    async def crawl_url(
        self,
        url: str,
        params: Mapping[str, str] | None = None,
    ) -> CrawlRecord:
        """Crawl one URL with whichever registered rule set matches it.

        Named groups captured by the rule set's URL pattern are merged into
        ``params`` (explicit params win).

        Raises:
            RuleSetNotFoundError: If no rule set matches ``url``.
            SessionError: If the browser cannot be launched.
        """
        rule_set = self.registry.match(url)
        if rule_set is None:
            raise RuleSetNotFoundError(url)

        merged: dict[str, str] = {**self.registry.extract_url_params(url, rule_set), **(params or {})}
        await self.crawler.session.ensure_ready()
        return await self.crawler.handle_url(url, rule_set, merged or None)

    async def close(self) -> None:
        await self.crawler.close()

    async def __aenter__(self) -> CrawlerService:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
