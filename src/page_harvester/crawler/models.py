"""Data model for the crawl-execution engine.

``RuleSet`` and ``ExtractionRule`` describe *what* to fetch and extract;
``CrawlRecord`` is the unit of output and storage.  All of them are
frozen dataclasses: a rule set is immutable for the duration of a run and
a record is never mutated after it has been appended to the store.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from page_harvester.crawler.transforms import FieldTransform


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class ValueKind(str, Enum):
    """How a raw value is read from a matched element.

    Attributes:
        TEXT: The element's ``textContent``.
        ATTRIBUTE: The value of ``ExtractionRule.attribute``.
        HTML: The element's inner markup.
    """

    TEXT = "text"
    ATTRIBUTE = "attribute"
    HTML = "html"


@dataclass(frozen=True)
class ExtractionRule:
    """Extraction rule for one output field.

    Attributes:
        selector: CSS selector; every matching element contributes a value.
        value_kind: A :class:`ValueKind` (plain strings are accepted).  An
            unrecognised kind yields ``None`` for each element rather than
            an error.
        attribute: Attribute name read when ``value_kind`` is
            ``"attribute"``.
        transform: Optional per-element strategy producing the processed
            value.  Without one, the raw value is the processed value.
    """

    selector: str
    value_kind: ValueKind | str = ValueKind.TEXT
    attribute: str | None = None
    transform: FieldTransform | None = None

    def to_dict(self) -> dict[str, Any]:
        kind = self.value_kind.value if isinstance(self.value_kind, ValueKind) else self.value_kind
        out: dict[str, Any] = {"selector": self.selector, "value_kind": kind}
        if self.attribute is not None:
            out["attribute"] = self.attribute
        if self.transform is not None:
            out["transform"] = type(self.transform).__name__
        return out


@dataclass(frozen=True)
class RuleSet:
    """Per-site description of where to navigate and how to extract fields.

    Attributes:
        url: Concrete URL fetched by ``WebCrawler.crawl``.  May be empty for
            rule sets that are only reached through ``url_pattern``.
        name: Site name; records are grouped under it.
        fields: Field name to rule.  Declaration order is processing order,
            so a transform may read fields declared before its own.
        url_pattern: Regular expression used by the registry when no rule set
            matches a URL exactly.  Named groups become crawl parameters.
        timeout_ms: Navigation and readiness timeout override.
        max_retries: Total attempts override.
        retry_delay_ms: Inter-attempt pause override.
        readiness_selector: Element that must become visible before
            extraction is considered safe.  Waiting for it is best-effort.
    """

    url: str
    name: str
    fields: Mapping[str, ExtractionRule] = field(default_factory=dict)
    url_pattern: str | None = None
    timeout_ms: int | None = None
    max_retries: int | None = None
    retry_delay_ms: int | None = None
    readiness_selector: str | None = None

    def with_url(self, url: str) -> RuleSet:
        """Return a copy of this rule set bound to another concrete URL."""
        return replace(self, url=url)

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe description, used when persisting a crawl request."""
        out: dict[str, Any] = {
            "url": self.url,
            "name": self.name,
            "fields": {name: rule.to_dict() for name, rule in self.fields.items()},
        }
        for key in ("url_pattern", "timeout_ms", "max_retries", "retry_delay_ms", "readiness_selector"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


# ---------------------------------------------------------------------------
# Attempts
# ---------------------------------------------------------------------------


class FailureKind(str, Enum):
    """Stage at which a fetch attempt failed.

    Attributes:
        NAVIGATION: Opening the page or navigating to the URL.
        EXTRACTION: Running the extraction pipeline on a loaded page.
    """

    NAVIGATION = "navigation"
    EXTRACTION = "extraction"


@dataclass(frozen=True)
class AttemptFailure:
    """One failed attempt of the fetch state machine.

    Attributes:
        attempt: 1-based attempt number.
        kind: Stage that raised.
        message: The exception message.
    """

    attempt: int
    kind: FailureKind
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"attempt": self.attempt, "kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class ExtractionResult:
    """Output of one extraction pass.

    Attributes:
        raw_data: Field name to mechanically scraped value.
        data: Field name to processed value (after transforms).
    """

    raw_data: dict[str, Any]
    data: dict[str, Any]


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return time.time_ns() // 1_000_000


def freeze(value: Any) -> Any:
    """Read-only deep copy: mappings become ``MappingProxyType``, lists tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def thaw(value: Any) -> Any:
    """Plain ``dict``/``list`` copy of a value built by :func:`freeze`."""
    if isinstance(value, Mapping):
        return {key: thaw(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    return value


@dataclass(frozen=True)
class CrawlRecord:
    """Outcome of one fetch attempt sequence for one URL.

    A record is read-only all the way down: ``data``, ``raw_data`` and
    ``params`` are frozen copies (see :func:`freeze`) taken at construction,
    so neither the producer nor any caller can change a stored record.
    Use :meth:`to_dict` for a mutable, JSON-safe copy.

    Attributes:
        url: The concrete URL that was fetched.
        succeeded: Whether extraction completed.
        data: Processed record; empty on failure.
        raw_data: Pre-transform values; empty on failure.
        timestamp: Creation time in epoch milliseconds.
        params: Caller-supplied search parameters, carried through for
            traceability.
        errors: Non-empty only when ``succeeded`` is ``False``; holds the
            last attempt's message.  Earlier messages are not retained here.
        failures: Typed history of every failed attempt, including those
            followed by a successful retry.
    """

    url: str
    succeeded: bool
    data: Mapping[str, Any] = field(default_factory=dict)
    raw_data: Mapping[str, Any] = field(default_factory=dict)
    timestamp: int = field(default_factory=now_ms)
    params: Mapping[str, str] | None = None
    errors: tuple[str, ...] = ()
    failures: tuple[AttemptFailure, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", freeze(self.data))
        object.__setattr__(self, "raw_data", freeze(self.raw_data))
        if self.params is not None:
            object.__setattr__(self, "params", freeze(self.params))
        object.__setattr__(self, "errors", tuple(self.errors))
        object.__setattr__(self, "failures", tuple(self.failures))

    @classmethod
    def success(
        cls,
        url: str,
        result: ExtractionResult,
        *,
        params: Mapping[str, str] | None = None,
        failures: tuple[AttemptFailure, ...] = (),
    ) -> CrawlRecord:
        return cls(
            url=url,
            succeeded=True,
            data=result.data,
            raw_data=result.raw_data,
            params=params,
            failures=failures,
        )

    @classmethod
    def failure(
        cls,
        url: str,
        message: str,
        *,
        params: Mapping[str, str] | None = None,
        failures: tuple[AttemptFailure, ...] = (),
    ) -> CrawlRecord:
        return cls(
            url=url,
            succeeded=False,
            params=params,
            errors=(message,),
            failures=failures,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe, mutable copy; ``errors`` is only present on failures."""
        out: dict[str, Any] = {
            "url": self.url,
            "succeeded": self.succeeded,
            "data": thaw(self.data),
            "raw_data": thaw(self.raw_data),
            "timestamp": self.timestamp,
        }
        if self.params is not None:
            out["params"] = thaw(self.params)
        if not self.succeeded:
            out["errors"] = list(self.errors)
        if self.failures:
            out["failures"] = [failure.to_dict() for failure in self.failures]
        return out
