"""Built-in site rule tables.

Each module exposes ``RuleSet`` constants and the ``FieldTransform``
classes they use.  ``default_registry()`` returns a registry over every
built-in rule set.
"""

from __future__ import annotations

from page_harvester.sites.job_boards import JOB_BOARD_RULE_SETS, default_registry

__all__ = [
    "JOB_BOARD_RULE_SETS",
    "default_registry",
]
