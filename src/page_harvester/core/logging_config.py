"""Structured logging for crawl runs using structlog.

Call ``configure_logging()`` once at process startup (the CLI does this in
``page_harvester.__main__``).  Modules keep using the stdlib API::

    import logging
    logger = logging.getLogger(__name__)
    logger.info("crawler: fetched %s", url)

and their records are rendered by structlog, together with anything bound
through ``structlog.contextvars``.  :class:`~page_harvester.crawler.web_crawler.WebCrawler`
binds ``site`` and ``url`` around each fetch, so every record emitted while
a URL is being processed carries both fields.

Crawled URLs often embed credentials (``user:pass@host``) or signed query
parameters.  :func:`_redact_url_secrets` masks them in the ``url`` field
and in the rendered message before any renderer sees the record.
"""

from __future__ import annotations

import logging
import re
import sys
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog
from structlog.types import EventDict, WrappedLogger

REDACTED = "[REDACTED]"

#: Query parameter names whose values are masked.  Matched per name segment
#: (split on ``_``, ``-`` and ``.``) so search parameters such as ``key``
#: or ``author`` pass through.
_SENSITIVE_PARAM_RE = re.compile(
    r"(?:^|[_.\-])(?:token|api_?key|secret|signature|sig|password|passwd|session_?id|auth)(?:$|[_.\-])",
    re.IGNORECASE,
)

#: Event-dict fields scanned for URLs.
_URL_FIELDS: tuple[str, ...] = ("event", "url")

_URL_RE = re.compile(r"https?://[^\s'\"<>]+")

_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "playwright")


# ---------------------------------------------------------------------------
# Custom processors
# ---------------------------------------------------------------------------


def mask_url(url: str) -> str:
    """Return ``url`` with its password and sensitive query values masked.

    URLs with nothing to mask are returned unchanged (not re-encoded).
    """
    try:
        parts = urlsplit(url)
        password = parts.password
    except ValueError:
        return url

    changed = False
    netloc = parts.netloc
    if password:
        netloc = netloc.replace(f":{password}@", f":{REDACTED}@", 1)
        changed = True

    query = parse_qsl(parts.query, keep_blank_values=True)
    masked = []
    for name, value in query:
        if value and _SENSITIVE_PARAM_RE.search(name):
            masked.append((name, REDACTED))
            changed = True
        else:
            masked.append((name, value))

    if not changed:
        return url
    return urlunsplit(parts._replace(netloc=netloc, query=urlencode(masked, safe="[]")))


def _redact_url_secrets(
    logger: WrappedLogger,  # noqa: ARG001
    method_name: str,  # noqa: ARG001
    event_dict: EventDict,
) -> EventDict:
    """structlog processor masking URL secrets in :data:`_URL_FIELDS`."""
    for field in _URL_FIELDS:
        value = event_dict.get(field)
        if isinstance(value, str) and "://" in value:
            event_dict[field] = _URL_RE.sub(lambda m: mask_url(m.group(0)), value)
    return event_dict


# ---------------------------------------------------------------------------
# Public configuration entry-point
# ---------------------------------------------------------------------------


def configure_logging(log_level: str = "INFO") -> None:
    """Route stdlib logging through structlog and write records to stderr.

    Below DEBUG every record is one JSON object per line; at DEBUG the
    console renderer is used instead.  Each record carries ``timestamp``,
    ``level`` (lower case), ``logger`` and ``event``, plus ``site`` and
    ``url`` while a URL is being crawled.  stderr keeps stdout free for
    ``python -m page_harvester fetch`` output.

    Safe to call more than once: previous root handlers are replaced.

    Args:
        log_level: Level name, case-insensitive.  Unknown names fall back
            to ``INFO``.
    """
    level_upper = log_level.upper()
    numeric_level = getattr(logging, level_upper, logging.INFO)
    is_development = level_upper == "DEBUG"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _redact_url_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if is_development:
        final_renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer(colors=True)
    else:
        final_renderer = structlog.processors.JSONRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            final_renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    # Playwright's driver logs every protocol message at DEBUG.
    noisy_level = logging.NOTSET if is_development else logging.WARNING
    for noisy_logger in _NOISY_LOGGERS:
        logging.getLogger(noisy_logger).setLevel(noisy_level)

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
