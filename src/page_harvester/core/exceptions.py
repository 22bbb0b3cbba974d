"""Application-wide exception hierarchy for page-harvester.

All custom exceptions subclass ``PageHarvesterError``, enabling
consistent error handling and structured logging across the application.

Only session failures escape a crawl: navigation, extraction and cleanup
problems are captured into the ``CrawlRecord`` instead of being raised.

Hierarchy::

    PageHarvesterError
    ├── SessionError
    ├── RuleSetNotFoundError
    └── PersistenceError
"""

from __future__ import annotations


class PageHarvesterError(Exception):
    """Base class for all page-harvester exceptions.

    All application-specific exceptions inherit from this class so that
    callers can catch the entire hierarchy with a single ``except`` clause
    when needed.
    """


# ---------------------------------------------------------------------------
# Browser session
# ---------------------------------------------------------------------------


class SessionError(PageHarvesterError):
    """Raised when the browser driver, process or context cannot be created.

    Session failures are fatal to the crawl run and are never retried by
    the fetcher.  The original exception is chained as ``__cause__``.

    Args:
        message: Human-readable description of the failure.
        stage: Which handle failed (``"driver"``, ``"browser"`` or
            ``"context"``).
    """

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage


# ---------------------------------------------------------------------------
# Rule registry
# ---------------------------------------------------------------------------


class RuleSetNotFoundError(PageHarvesterError):
    """Raised when no registered rule set matches a requested URL.

    Args:
        url: The URL that could not be matched.
    """

    def __init__(self, url: str) -> None:
        super().__init__(f"No rule set matches URL '{url}'")
        self.url = url


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class PersistenceError(PageHarvesterError):
    """Raised when a completed crawl request cannot be written to storage.

    Args:
        message: Human-readable description of the failure.
        path: Destination path that could not be written, if known.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path
