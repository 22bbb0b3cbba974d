"""Rule sets for the supported job boards.

Registration order matters: the registry returns the first pattern that
matches, so list pages are registered before the broader detail patterns
(``zhipin`` must precede ``zhipin-detail``, whose pattern also matches
list URLs).

Card transforms return one dict per job card; detail transforms return
one dict per page.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from page_harvester.crawler.models import ExtractionRule, RuleSet, ValueKind
from page_harvester.crawler.registry import RuleRegistry
from page_harvester.crawler.transforms import (
    FieldTransform,
    child_attribute,
    child_text,
    child_texts,
)

logger = logging.getLogger(__name__)

ZHIPIN_MOBILE_ORIGIN = "https://m.zhipin.com"


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


class LiepinJobCardTransform(FieldTransform):
    """Structured job card from a liepin.com search result.

    If any expected child element is missing, the card's plain text is
    returned as ``{"content": ...}`` so that the field still carries data.
    """

    async def apply(self, record: Mapping[str, Any], raw_value: Any, element: Any) -> dict[str, Any]:
        try:
            title = await child_text(element, ".job-title-box > .ellipsis-1")
            salary = await child_text(element, ".job-salary")
            company = await child_text(element, ".company-name")
            address = await child_text(element, ".job-dq-box")
            tags = await child_texts(element, ".job-labels-box span")
            company_tags = await child_texts(element, ".company-tags-box span")
            job_detail = await child_attribute(element, "a", "href")
        except Exception as exc:  # noqa: BLE001
            logger.debug("sites: liepin card layout mismatch, keeping text: %s", exc)
            return {"content": await element.text_content()}

        return {
            "title": title,
            "salary": salary,
            "company": company,
            "address": address,
            "tags": [*tags, *company_tags],
            "job_detail": job_detail,
        }


class ZhipinJobCardTransform(FieldTransform):
    """Structured job card from the zhipin.com mobile search list."""

    async def apply(self, record: Mapping[str, Any], raw_value: Any, element: Any) -> dict[str, Any]:
        href = await child_attribute(element, "a", "href")
        return {
            "title": await child_text(element, ".title-text"),
            "salary": await child_text(element, ".salary"),
            "company": await child_text(element, ".company"),
            "address": await child_text(element, ".workplace"),
            "job_detail": href if href.startswith("https://") else f"{ZHIPIN_MOBILE_ORIGIN}{href}",
            "tags": await child_texts(element, ".labels span"),
        }


class JobDescriptionTransform(FieldTransform):
    """Job and company description from a detail page.

    Args:
        job_selector: Selector of the job description text, relative to
            the matched element.
        company_selector: Selector of the company description text.
    """

    def __init__(self, job_selector: str, company_selector: str) -> None:
        self.job_selector = job_selector
        self.company_selector = company_selector

    async def apply(self, record: Mapping[str, Any], raw_value: Any, element: Any) -> dict[str, str]:
        return {
            "job_description": await child_text(element, self.job_selector),
            "company_description": await child_text(element, self.company_selector),
        }


# ---------------------------------------------------------------------------
# Rule table
# ---------------------------------------------------------------------------

LIEPIN = RuleSet(
    url="https://www.liepin.com/zhaopin/?city=000&dq=000&key=",
    name="liepin",
    url_pattern=r"^https://www\.liepin\.com/zhaopin/.*$",
    fields={
        "job_info": ExtractionRule(
            selector=".job-card-pc-container",
            value_kind=ValueKind.HTML,
            transform=LiepinJobCardTransform(),
        ),
    },
    timeout_ms=30_000,
)

ZHIPIN = RuleSet(
    url="https://m.zhipin.com/job_detail/?query=",
    name="zhipin",
    url_pattern=r"^https://m\.zhipin\.com/job_detail/[^.]+$",
    fields={
        "job_info": ExtractionRule(
            selector="li.item",
            value_kind=ValueKind.HTML,
            transform=ZhipinJobCardTransform(),
        ),
    },
)

ZHIPIN_DETAIL = RuleSet(
    url="",
    name="zhipin-detail",
    url_pattern=r"^https://m\.zhipin\.com/job_detail/.*$",
    fields={
        "job": ExtractionRule(
            selector=".job-detail",
            value_kind=ValueKind.HTML,
            transform=JobDescriptionTransform(".job-sec > .text", ".job-sec > .detail-text"),
        ),
    },
)

LIEPIN_DETAIL = RuleSet(
    url="",
    name="liepin-detail",
    url_pattern=r"^https://www\.liepin\.com/job/.*$",
    fields={
        "job": ExtractionRule(
            selector="body",
            value_kind=ValueKind.HTML,
            transform=JobDescriptionTransform(
                ".job-intro-container dd", ".company-intro-container .ellipsis-3"
            ),
        ),
    },
)

JOB_BOARD_RULE_SETS: tuple[RuleSet, ...] = (LIEPIN, ZHIPIN, ZHIPIN_DETAIL, LIEPIN_DETAIL)


def default_registry() -> RuleRegistry:
    """Registry over :data:`JOB_BOARD_RULE_SETS`, in priority order."""
    return RuleRegistry(JOB_BOARD_RULE_SETS)
