"""Page fetcher with a bounded retry state machine.

One :meth:`PageFetcher.fetch` call drives a single URL through::

    Attempting(1) ─┬─> Success
                   ├─> Attempting(n + 1)   (after retry_delay_ms)
                   └─> Exhausted           (n == max_retries)

Each attempt opens a fresh page from the session, navigates (DOM parsed,
not network idle), optionally waits for the rule set's readiness selector
and runs the extraction pipeline.  Navigation and extraction failures
share one retry budget and one failure path; each failure is recorded
with its stage so retry causes stay visible in the resulting record.

Session failures (:class:`~page_harvester.core.exceptions.SessionError`)
are not attempt failures: they propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING

from page_harvester.core.exceptions import SessionError
from page_harvester.crawler.config import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_TIMEOUT_MS,
    NAVIGATION_WAIT_UNTIL,
    READINESS_STATE,
)
from page_harvester.crawler.extractor import extract_fields
from page_harvester.crawler.models import (
    AttemptFailure,
    CrawlRecord,
    ExtractionResult,
    FailureKind,
    RuleSet,
)

if TYPE_CHECKING:
    from playwright.async_api import Page

    from page_harvester.crawler.session import BrowserSession

logger = logging.getLogger(__name__)

Extractor = Callable[["Page", RuleSet], Awaitable[ExtractionResult]]


class PageFetcher:
    """Fetch-and-extract driver for one URL at a time.

    Args:
        session: The run's browser session.  The fetcher only ever asks it
            for new pages.
        extractor: Extraction pipeline applied to each loaded page.
        timeout_ms: Navigation timeout when the rule set has none.
        max_retries: Total attempts when the rule set has none.
        retry_delay_ms: Inter-attempt pause when the rule set has none.
        sleep: Coroutine used for the inter-attempt pause (seconds).
    """

    def __init__(
        self,
        session: BrowserSession,
        *,
        extractor: Extractor = extract_fields,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._session = session
        self._extractor = extractor
        self._timeout_ms = timeout_ms
        self._max_retries = max_retries
        self._retry_delay_ms = retry_delay_ms
        self._sleep = sleep

    async def fetch(
        self,
        url: str,
        rule_set: RuleSet,
        params: Mapping[str, str] | None = None,
    ) -> CrawlRecord:
        """Fetch ``url`` and extract it with ``rule_set``.

        Args:
            url: Concrete URL to navigate to.
            rule_set: Extraction rules and timing overrides.
            params: Caller search parameters copied onto the record.

        Returns:
            Exactly one :class:`~page_harvester.crawler.models.CrawlRecord`:
            succeeded with data, or failed with the last attempt's message
            as its only error.

        Raises:
            SessionError: If the browser session cannot be initialised.
        """
        timeout_ms = _pick(rule_set.timeout_ms, self._timeout_ms)
        max_attempts = max(1, _pick(rule_set.max_retries, self._max_retries))
        retry_delay_ms = _pick(rule_set.retry_delay_ms, self._retry_delay_ms)

        failures: list[AttemptFailure] = []
        page: Page | None = None
        try:
            for attempt in range(1, max_attempts + 1):
                stage = FailureKind.NAVIGATION
                try:
                    page = await self._session.new_page()
                    await page.goto(url, wait_until=NAVIGATION_WAIT_UNTIL, timeout=timeout_ms)
                    await self._wait_until_ready(page, rule_set, timeout_ms)

                    stage = FailureKind.EXTRACTION
                    result = await self._extractor(page, rule_set)
                except SessionError:
                    raise
                except Exception as exc:  # noqa: BLE001
                    message = str(exc) or type(exc).__name__
                    failures.append(AttemptFailure(attempt=attempt, kind=stage, message=message))
                    logger.warning(
                        "crawler: attempt %d/%d for %s failed during %s: %s",
                        attempt,
                        max_attempts,
                        url,
                        stage.value,
                        message,
                    )
                    await _close_page(page)
                    page = None
                    if attempt < max_attempts:
                        await self._sleep(retry_delay_ms / 1000)
                    continue

                logger.info("crawler: fetched %s on attempt %d/%d", url, attempt, max_attempts)
                return CrawlRecord.success(url, result, params=params, failures=tuple(failures))
        finally:
            await _close_page(page)

        logger.error("crawler: giving up on %s after %d attempt(s)", url, max_attempts)
        return CrawlRecord.failure(
            url, failures[-1].message, params=params, failures=tuple(failures)
        )

    @staticmethod
    async def _wait_until_ready(page: Page, rule_set: RuleSet, timeout_ms: int) -> None:
        """Wait for the readiness selector; a timeout here is not an error."""
        selector = rule_set.readiness_selector
        if not selector:
            return
        try:
            await page.wait_for_selector(selector, state=READINESS_STATE, timeout=timeout_ms)
        except Exception as exc:  # noqa: BLE001
            logger.info(
                'crawler: Timeout or error waiting for readiness selector "%s", '
                "proceeding with extraction: %s",
                selector,
                exc,
            )


def _pick(value: int | None, default: int) -> int:
    return default if value is None else value


async def _close_page(page: Page | None) -> None:
    if page is None:
        return
    try:
        if not page.is_closed():
            await page.close()
    except Exception as exc:  # noqa: BLE001
        logger.warning("crawler: error closing page: %s", exc)
