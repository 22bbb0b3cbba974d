"""Unit tests for rule and record data classes."""

from __future__ import annotations

import dataclasses
import json
import time

import pytest

from page_harvester.crawler.models import (
    AttemptFailure,
    CrawlRecord,
    ExtractionResult,
    ExtractionRule,
    FailureKind,
    RuleSet,
    ValueKind,
)
from page_harvester.crawler.transforms import CallableTransform


class TestCrawlRecord:
    def test_success_factory(self) -> None:
        result = ExtractionResult(raw_data={"t": " x "}, data={"t": "x"})

        record = CrawlRecord.success("http://e.com", result, params={"keyword": "k"})

        assert record.succeeded is True
        assert record.data == {"t": "x"}
        assert record.raw_data == {"t": " x "}
        assert record.errors == ()
        assert record.params == {"keyword": "k"}

    def test_failure_factory(self) -> None:
        failures = (AttemptFailure(1, FailureKind.NAVIGATION, "timeout"),)

        record = CrawlRecord.failure("http://e.com", "timeout", failures=failures)

        assert record.succeeded is False
        assert record.data == {}
        assert record.raw_data == {}
        assert record.errors == ("timeout",)
        assert record.params is None

    def test_timestamp_is_epoch_millis(self) -> None:
        before = int(time.time() * 1000)
        record = CrawlRecord(url="u", succeeded=True)
        after = int(time.time() * 1000)

        assert before - 1 <= record.timestamp <= after + 1

    def test_records_are_frozen(self) -> None:
        record = CrawlRecord(url="u", succeeded=True)

        with pytest.raises(dataclasses.FrozenInstanceError):
            record.succeeded = False  # type: ignore[misc]

    def test_to_dict_failure_is_json_safe(self) -> None:
        record = CrawlRecord.failure(
            "http://e.com",
            "boom",
            params={"keyword": "x"},
            failures=(AttemptFailure(1, FailureKind.EXTRACTION, "boom"),),
        )

        out = json.loads(json.dumps(record.to_dict()))

        assert out["errors"] == ["boom"]
        assert out["failures"] == [{"attempt": 1, "kind": "extraction", "message": "boom"}]
        assert out["params"] == {"keyword": "x"}

    def test_to_dict_success_has_no_errors_key(self) -> None:
        out = CrawlRecord(url="u", succeeded=True, data={"a": 1}).to_dict()

        assert "errors" not in out
        assert "failures" not in out
        assert out["data"] == {"a": 1}


class TestRuleSet:
    def test_with_url_copies(self) -> None:
        rule_set = RuleSet(url="http://a", name="a", max_retries=2)

        moved = rule_set.with_url("http://b")

        assert moved.url == "http://b"
        assert moved.max_retries == 2
        assert rule_set.url == "http://a"

    def test_to_dict(self) -> None:
        rule_set = RuleSet(
            url="http://a",
            name="a",
            fields={
                "title": ExtractionRule(selector="h1"),
                "link": ExtractionRule(
                    selector="a",
                    value_kind=ValueKind.ATTRIBUTE,
                    attribute="href",
                    transform=CallableTransform(lambda r, v, e: v),
                ),
            },
            readiness_selector=".ready",
        )

        out = json.loads(json.dumps(rule_set.to_dict()))

        assert out["fields"]["title"] == {"selector": "h1", "value_kind": "text"}
        assert out["fields"]["link"] == {
            "selector": "a",
            "value_kind": "attribute",
            "attribute": "href",
            "transform": "CallableTransform",
        }
        assert out["readiness_selector"] == ".ready"
        assert "timeout_ms" not in out


class TestRecordImmutability:
    def test_nested_values_are_frozen(self) -> None:
        record = CrawlRecord(
            url="u",
            succeeded=True,
            data={"cards": [{"title": "a", "tags": ["x"]}]},
        )

        card = record.data["cards"][0]
        assert isinstance(record.data["cards"], tuple)
        with pytest.raises(TypeError):
            card["title"] = "b"
        assert card["tags"] == ("x",)

    def test_to_dict_thaws_to_plain_containers(self) -> None:
        record = CrawlRecord(url="u", succeeded=True, data={"cards": [{"tags": ["x"]}]})

        out = record.to_dict()

        assert out["data"] == {"cards": [{"tags": ["x"]}]}
        assert type(out["data"]["cards"][0]) is dict
