"""Per-field transform strategies.

A transform turns one matched element into a processed value.  Each
transform is an object with an async :meth:`FieldTransform.apply` method so
that site-specific logic lives in its own class and can be unit-tested
against a mocked element handle, independently of the crawler.

Example::

    class PriceTransform(FieldTransform):
        async def apply(self, record, raw_value, element):
            return float(raw_value.strip("$"))

    rule = ExtractionRule(selector=".price", transform=PriceTransform())
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from playwright.async_api import ElementHandle


class FieldTransform(ABC):
    """Strategy producing a field's processed value for one element."""

    @abstractmethod
    async def apply(
        self,
        record: Mapping[str, Any],
        raw_value: Any,
        element: ElementHandle,
    ) -> Any:
        """Return the processed value for ``element``.

        Args:
            record: Read-only view of the processed record built so far.
                Fields declared earlier in the rule set are already present.
            raw_value: The field's raw value (scalar for a single match,
                list for several).
            element: Handle to the specific matched element.

        Raises:
            Exception: Any error makes the whole field fall back to its raw
                value; the extractor logs it.
        """


class CallableTransform(FieldTransform):
    """Adapt a plain function (sync or async) to :class:`FieldTransform`.

    Args:
        func: Called as ``func(record, raw_value, element)``.  May return a
            value or an awaitable.
    """

    def __init__(self, func: Callable[[Mapping[str, Any], Any, Any], Any]) -> None:
        self.func = func

    async def apply(self, record: Mapping[str, Any], raw_value: Any, element: Any) -> Any:
        result = self.func(record, raw_value, element)
        if inspect.isawaitable(result):
            result = await result
        return result

    def __repr__(self) -> str:
        return f"CallableTransform({getattr(self.func, '__name__', self.func)!r})"


# ---------------------------------------------------------------------------
# Element helpers shared by site transforms
# ---------------------------------------------------------------------------

_TRIMMED_TEXT_JS = "el => (el.textContent || '').trim()"
_TRIMMED_TEXT_ALL_JS = "els => els.map(el => (el.textContent || '').trim())"


async def child_text(element: ElementHandle, selector: str) -> str:
    """Trimmed text of the first descendant matching ``selector``.

    Raises if nothing matches, which lets a transform fall back as a whole.
    """
    return await element.eval_on_selector(selector, _TRIMMED_TEXT_JS)


async def child_texts(element: ElementHandle, selector: str) -> list[str]:
    """Trimmed text of every descendant matching ``selector`` (may be empty)."""
    return await element.eval_on_selector_all(selector, _TRIMMED_TEXT_ALL_JS)


async def child_attribute(element: ElementHandle, selector: str, name: str) -> str:
    """Attribute ``name`` of the first descendant matching ``selector``, or ``""``."""
    return await element.eval_on_selector(
        selector, "(el, name) => el.getAttribute(name) || ''", name
    )
