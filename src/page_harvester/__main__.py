"""Command-line entry point.

Usage:
    python -m page_harvester run [--site NAME ...] [--data-dir DIR]
    python -m page_harvester fetch URL

``run`` crawls every built-in rule set that has a concrete URL (or only
the named ones) and writes one JSON file per site to the data directory.
A site that fails is logged and the run continues with the next one.

``fetch`` crawls one URL with the matching built-in rule set and prints
the resulting record as JSON on stdout.

Environment variables:
    CRAWLER_HEADLESS, CRAWLER_TIMEOUT, CRAWLER_DEBUG, CRAWLER_LOG_LEVEL,
    CRAWLER_DATA_DIR and the rest of ``page_harvester.config.settings``.

Exit codes:
    0  Success.  For ``run``, individual sites may still have failed
       records; for ``fetch``, the record succeeded.
    1  Failure: the browser could not be launched, the URL or site is
       unknown, or the ``fetch`` record failed (it is still printed).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from page_harvester.config.settings import Settings, get_settings
from page_harvester.core.exceptions import PageHarvesterError, SessionError
from page_harvester.core.logging_config import configure_logging
from page_harvester.crawler.registry import RuleRegistry
from page_harvester.crawler.service import CrawlerService
from page_harvester.crawler.storage import JsonFileStorage
from page_harvester.crawler.web_crawler import WebCrawler
from page_harvester.sites import default_registry

logger = logging.getLogger("page_harvester")


async def run_all(
    settings: Settings,
    registry: RuleRegistry,
    *,
    sites: Sequence[str] = (),
    data_dir: Path | None = None,
) -> int:
    """Crawl the selected rule sets sequentially and persist each site's records."""
    selected = [rule_set for rule_set in registry if rule_set.url]
    if sites:
        wanted = set(sites)
        selected = [rule_set for rule_set in selected if rule_set.name in wanted]
        missing = wanted - {rule_set.name for rule_set in selected}
        if missing:
            logger.error("Unknown or URL-less site(s): %s", ", ".join(sorted(missing)))
            return 1

    storage = JsonFileStorage(data_dir or settings.data_dir)
    async with CrawlerService(WebCrawler(settings), registry=registry, storage=storage) as service:
        for rule_set in selected:
            logger.info("Starting crawl for %s", rule_set.name)
            try:
                items = await service.start_crawling(rule_set)
            except SessionError:
                raise
            except PageHarvesterError as exc:
                logger.error("Error crawling %s: %s", rule_set.name, exc)
                continue
            logger.info("Crawling completed for %s (%d record(s))", rule_set.name, len(items))
    return 0


async def fetch_one(settings: Settings, registry: RuleRegistry, url: str) -> int:
    """Print the record for ``url``; exit status 1 if that record failed."""
    async with CrawlerService(WebCrawler(settings), registry=registry) as service:
        record = await service.crawl_url(url)
    json.dump(record.to_dict(), sys.stdout, ensure_ascii=False, indent=2, default=str)
    sys.stdout.write("\n")
    return 0 if record.succeeded else 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="page-harvester",
        description="Extract structured records from web pages with per-site rules.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Crawl the built-in sites and save the results.")
    run.add_argument("--site", action="append", default=[], help="Only crawl this site (repeatable).")
    run.add_argument("--data-dir", type=Path, default=None, help="Output directory for JSON files.")

    fetch = sub.add_parser("fetch", help="Crawl one URL and print its record as JSON.")
    fetch.add_argument("url")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.effective_log_level)
    logger.debug("%s", settings.summary())

    registry = default_registry()
    try:
        if args.command == "run":
            return asyncio.run(run_all(settings, registry, sites=args.site, data_dir=args.data_dir))
        return asyncio.run(fetch_one(settings, registry, args.url))
    except PageHarvesterError as exc:
        logger.error("page-harvester failed: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
