"""Ordered rule-set registry with exact-then-pattern URL matching."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator

from page_harvester.crawler.models import RuleSet

logger = logging.getLogger(__name__)


class RuleRegistry:
    """Look up the rule set responsible for a URL.

    Matching is two-phase: a rule set whose ``url`` equals the URL wins;
    otherwise the first rule set (in registration order) whose
    ``url_pattern`` matches anywhere in the URL is returned.  Registration
    order is therefore part of the contract: register specific patterns
    before broad ones.

    Args:
        rule_sets: Initial rule sets, in priority order.
    """

    def __init__(self, rule_sets: Iterable[RuleSet] = ()) -> None:
        self._rule_sets: list[RuleSet] = []
        self._patterns: dict[str, re.Pattern[str] | None] = {}
        for rule_set in rule_sets:
            self.register(rule_set)

    def register(self, rule_set: RuleSet) -> None:
        self._rule_sets.append(rule_set)
        if rule_set.url_pattern and rule_set.url_pattern not in self._patterns:
            self._patterns[rule_set.url_pattern] = _compile(rule_set)

    def match(self, url: str) -> RuleSet | None:
        """Return the rule set for ``url``, or ``None`` when nothing matches."""
        for rule_set in self._rule_sets:
            if rule_set.url and rule_set.url == url:
                return rule_set

        for rule_set in self._rule_sets:
            pattern = self._pattern_for(rule_set)
            if pattern is not None and pattern.search(url):
                return rule_set
        return None

    def extract_url_params(self, url: str, rule_set: RuleSet) -> dict[str, str]:
        """Named groups captured by the rule set's pattern from ``url``.

        Groups that did not participate in the match are omitted.
        """
        pattern = self._pattern_for(rule_set)
        if pattern is None:
            return {}
        found = pattern.search(url)
        if found is None:
            return {}
        return {key: value for key, value in found.groupdict().items() if value is not None}

    def get(self, name: str) -> RuleSet | None:
        """First registered rule set called ``name``."""
        return next((rule_set for rule_set in self._rule_sets if rule_set.name == name), None)

    def _pattern_for(self, rule_set: RuleSet) -> re.Pattern[str] | None:
        if not rule_set.url_pattern:
            return None
        if rule_set.url_pattern not in self._patterns:
            self._patterns[rule_set.url_pattern] = _compile(rule_set)
        return self._patterns[rule_set.url_pattern]

    def __iter__(self) -> Iterator[RuleSet]:
        return iter(list(self._rule_sets))

    def __len__(self) -> int:
        return len(self._rule_sets)


def _compile(rule_set: RuleSet) -> re.Pattern[str] | None:
    try:
        return re.compile(rule_set.url_pattern or "")
    except re.error as exc:
        logger.error("crawler: invalid URL pattern for rule set %s: %s", rule_set.name, exc)
        return None
