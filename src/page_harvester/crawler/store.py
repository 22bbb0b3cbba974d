"""In-memory, append-only ledger of crawl records grouped by site name."""

from __future__ import annotations

import logging

from page_harvester.crawler.models import CrawlRecord

logger = logging.getLogger(__name__)


class ResultStore:
    """Per-site record lists in insertion order (oldest first).

    The store owns its lists: every query returns a new list, and records
    are read-only down to their nested values (``CrawlRecord`` freezes
    ``data``, ``raw_data`` and ``params``), so callers cannot mutate stored
    state.  Sites keep the order in which they first received a record.
    """

    def __init__(self) -> None:
        self._records: dict[str, list[CrawlRecord]] = {}

    def append(self, site_name: str, record: CrawlRecord) -> None:
        self._records.setdefault(site_name, []).append(record)
        logger.debug(
            "crawler: stored record for %s (%d total)", site_name, len(self._records[site_name])
        )

    def all(self, site_name: str | None = None) -> list[CrawlRecord]:
        """Records of one site, or of every site concatenated in site order."""
        if site_name is not None:
            return list(self._records.get(site_name, ()))
        return [record for records in self._records.values() for record in records]

    def grouped(self) -> dict[str, list[CrawlRecord]]:
        return {site: list(records) for site, records in self._records.items()}

    def latest(self, site_name: str) -> CrawlRecord | None:
        records = self._records.get(site_name)
        return records[-1] if records else None

    def succeeded(self, site_name: str) -> list[CrawlRecord]:
        return [record for record in self._records.get(site_name, ()) if record.succeeded]

    def failed(self, site_name: str) -> list[CrawlRecord]:
        return [record for record in self._records.get(site_name, ()) if not record.succeeded]

    def clear(self, site_name: str | None = None) -> None:
        """Drop one site's records, or everything when no site is given."""
        if site_name is None:
            self._records.clear()
        else:
            self._records.pop(site_name, None)

    def sites(self) -> list[str]:
        return list(self._records)

    def __len__(self) -> int:
        return sum(len(records) for records in self._records.values())
