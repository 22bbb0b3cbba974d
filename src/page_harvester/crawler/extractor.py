"""Rule-driven DOM extraction.

Turns a live Playwright page plus a :class:`~page_harvester.crawler.models.RuleSet`
into two layers of output:

- ``raw_data`` - values read mechanically from the matched elements;
- ``data`` - values after the field's optional transform.

Fields are processed in declaration order and in isolation: a broken
selector degrades that field to ``None`` and a failing transform degrades
it to its raw value, while every other field is still extracted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from page_harvester.crawler.models import ExtractionResult, ExtractionRule, RuleSet, ValueKind

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle, Page

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------


def collapse_values(values: Sequence[Any]) -> Any:
    """Collapse per-element values into a field value.

    A single value becomes a scalar, several stay an ordered list and no
    value gives an empty list.  Note that this loses cardinality: callers
    cannot tell one match from a one-element list.  Kept for compatibility
    with stored records.
    """
    if len(values) == 1:
        return values[0]
    return list(values)


def _raise_first_error(results: Sequence[Any]) -> None:
    """Re-raise the first exception collected by a settled ``gather``.

    Every per-element coroutine of a field has finished by the time this
    runs, so a failing element never leaves siblings reading the page.
    """
    for result in results:
        if isinstance(result, BaseException):
            raise result


async def read_raw_value(element: ElementHandle, rule: ExtractionRule) -> Any:
    """Read one element's raw value according to ``rule.value_kind``."""
    kind = rule.value_kind
    if kind == ValueKind.TEXT:
        return await element.text_content()
    if kind == ValueKind.ATTRIBUTE:
        return await element.get_attribute(rule.attribute or "")
    if kind == ValueKind.HTML:
        return await element.inner_html()
    return None


# ---------------------------------------------------------------------------
# Public extraction function
# ---------------------------------------------------------------------------


async def extract_fields(page: Page, rule_set: RuleSet) -> ExtractionResult:
    """Run every field rule of ``rule_set`` against ``page``.

    For each field:

    1. select all matching elements;
    2. read their raw values concurrently and collapse them;
    3. if the rule has a transform, apply it once per element (concurrently)
       with a read-only view of the processed record so far, the field's raw
       value and the element handle, then collapse the results.

    Both fan-outs wait for every element to settle before the field is
    decided, so no element read outlives its field.

    Args:
        page: A loaded Playwright page.
        rule_set: The rules to apply.

    Returns:
        An :class:`~page_harvester.crawler.models.ExtractionResult`.  Never
        raises for selector or transform errors; those are isolated per
        field and logged.
    """
    raw_data: dict[str, Any] = {}
    data: dict[str, Any] = {}
    record_view = MappingProxyType(data)

    for name, rule in rule_set.fields.items():
        try:
            elements = await page.query_selector_all(rule.selector)
            logger.debug(
                "crawler: %d element(s) for field %s (selector=%r)",
                len(elements),
                name,
                rule.selector,
            )
            values = await asyncio.gather(
                *(read_raw_value(el, rule) for el in elements), return_exceptions=True
            )
            _raise_first_error(values)
        except Exception as exc:  # noqa: BLE001
            logger.warning("crawler: error extracting field %s (selector=%r): %s", name, rule.selector, exc)
            raw_data[name] = None
            data[name] = None
            continue

        raw_value = collapse_values(values)
        raw_data[name] = raw_value

        if rule.transform is None:
            data[name] = raw_value
            continue

        try:
            results = await asyncio.gather(
                *(rule.transform.apply(record_view, raw_value, el) for el in elements),
                return_exceptions=True,
            )
            _raise_first_error(results)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "crawler: transform %s failed for field %s, using raw value: %s",
                type(rule.transform).__name__,
                name,
                exc,
            )
            data[name] = raw_value
        else:
            data[name] = collapse_values(results)

    return ExtractionResult(raw_data=raw_data, data=data)
