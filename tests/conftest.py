"""Shared pytest fixtures for page-harvester tests.

Fixture summary
---------------
settings            - Settings built from defaults only (no .env, fast retries).
mock_page           - Playwright page mock with async navigation methods.
mock_context        - Browsing context mock whose ``new_page`` returns ``mock_page``.
mock_browser        - Browser mock whose ``new_context`` returns ``mock_context``.
mock_playwright     - Driver mock whose ``chromium.launch`` returns ``mock_browser``.
patched_playwright  - Patches ``async_playwright`` in the session module.
make_element        - Factory for element-handle mocks.
basic_rule_set      - One-field rule set (``title`` from ``h1`` text).

No test launches a real browser: every Playwright object is a mock.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from page_harvester.config.settings import Settings
from page_harvester.crawler.models import ExtractionRule, RuleSet, ValueKind


@pytest.fixture
def settings() -> Settings:
    """Defaults only, ignoring any developer .env file."""
    return Settings(_env_file=None, retry_delay_ms=1)  # type: ignore[call-arg]


# ---------------------------------------------------------------------------
# Playwright object mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_page() -> MagicMock:
    page = MagicMock(name="page")
    page.goto = AsyncMock(return_value=None)
    page.wait_for_selector = AsyncMock(return_value=None)
    page.query_selector_all = AsyncMock(return_value=[])
    page.close = AsyncMock(return_value=None)
    page.is_closed = MagicMock(return_value=False)
    return page


@pytest.fixture
def mock_context(mock_page: MagicMock) -> MagicMock:
    context = MagicMock(name="context")
    context.new_page = AsyncMock(return_value=mock_page)
    context.close = AsyncMock(return_value=None)
    return context


@pytest.fixture
def mock_browser(mock_context: MagicMock) -> MagicMock:
    browser = MagicMock(name="browser")
    browser.new_context = AsyncMock(return_value=mock_context)
    browser.close = AsyncMock(return_value=None)
    return browser


@pytest.fixture
def mock_playwright(mock_browser: MagicMock) -> MagicMock:
    driver = MagicMock(name="playwright")
    driver.chromium.launch = AsyncMock(return_value=mock_browser)
    driver.stop = AsyncMock(return_value=None)
    return driver


@pytest.fixture
def patched_playwright(mock_playwright: MagicMock) -> Iterator[MagicMock]:
    """Patch the driver factory; yields the patched ``async_playwright``."""
    starter = MagicMock(name="playwright_context_manager")
    starter.start = AsyncMock(return_value=mock_playwright)
    with patch(
        "page_harvester.crawler.session.async_playwright", return_value=starter
    ) as factory:
        yield factory


# ---------------------------------------------------------------------------
# Elements and rules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_element() -> Callable[..., MagicMock]:
    """Return a factory building element-handle mocks.

    Usage::

        el = make_element(text="Hello", attrs={"href": "/a"}, html="<b>Hello</b>")
    """

    def _make(
        text: str | None = None,
        attrs: dict[str, str] | None = None,
        html: str = "",
    ) -> MagicMock:
        attributes = attrs or {}
        element = MagicMock(name="element")
        element.text_content = AsyncMock(return_value=text)
        element.get_attribute = AsyncMock(side_effect=lambda name: attributes.get(name))
        element.inner_html = AsyncMock(return_value=html)
        return element

    return _make


@pytest.fixture
def basic_rule_set() -> RuleSet:
    return RuleSet(
        url="http://example.com",
        name="example",
        fields={"title": ExtractionRule(selector="h1", value_kind=ValueKind.TEXT)},
        timeout_ms=5000,
    )


def selector_map(mapping: dict[str, list[Any]]) -> Callable[[str], Any]:
    """Build a ``query_selector_all`` side effect from selector -> elements."""

    async def _query(selector: str) -> list[Any]:
        return mapping.get(selector, [])

    return _query


@pytest.fixture
def by_selector() -> Callable[[dict[str, list[Any]]], Callable[[str], Any]]:
    return selector_map
