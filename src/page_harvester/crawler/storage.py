"""JSON file persistence for completed crawl requests.

Each completed request is written as one pretty-printed file::

    <data_dir>/<site>_<UTC ISO timestamp>[-<n>].json

with ``:`` and ``.`` in the timestamp replaced by ``-`` so that names sort
chronologically and are valid on every filesystem.  The ``-<n>`` suffix
only appears when a site is saved twice within one millisecond.
"""

from __future__ import annotations

import itertools
import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from page_harvester.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def _timestamp_slug(moment: datetime) -> str:
    iso = moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return iso.replace("+00:00", "Z").replace(":", "-").replace(".", "-")


def _file_pattern(site_name: str) -> re.Pattern[str]:
    return re.compile(
        rf"{re.escape(site_name)}_"
        r"(?P<stamp>\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z)"
        r"(?:-(?P<seq>\d+))?\.json"
    )


class JsonFileStorage:
    """Write and read crawl payloads as timestamped JSON files.

    Args:
        data_dir: Target directory.  Created (with parents) if missing.
    """

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def save_data(self, site_name: str, payload: Any) -> Path:
        """Write ``payload`` for ``site_name`` and return the file path.

        An existing file is never overwritten: a second save within the same
        millisecond gets a ``-1``, ``-2``... suffix.

        Raises:
            PersistenceError: If the payload cannot be serialised or written.
        """
        stem = f"{site_name}_{_timestamp_slug(datetime.now(timezone.utc))}"
        try:
            body = json.dumps(payload, indent=2, ensure_ascii=False, default=str)
        except (TypeError, ValueError) as exc:
            logger.error("storage: cannot serialise data for %s: %s", site_name, exc)
            raise PersistenceError(f"Could not serialise data for {site_name}: {exc}") from exc

        for seq in itertools.count():
            path = self.data_dir / (f"{stem}.json" if seq == 0 else f"{stem}-{seq}.json")
            try:
                with path.open("x", encoding="utf-8") as fh:
                    fh.write(body)
            except FileExistsError:
                continue
            except OSError as exc:
                logger.error("storage: error saving data to %s: %s", path, exc)
                raise PersistenceError(f"Could not write {path}: {exc}", path=str(path)) from exc
            break

        logger.info("storage: data saved to %s", path)
        return path

    def load_latest_data(self, site_name: str) -> Any | None:
        """Return the newest payload stored for ``site_name``, or ``None``.

        Only files named exactly ``<site_name>_<timestamp>[-<n>].json`` are
        considered, so ``foo`` never reads files of ``foo_bar`` or
        ``foo-detail``.  Read and parse errors are logged and reported as
        ``None``.
        """
        pattern = _file_pattern(site_name)
        try:
            candidates = []
            for path in self.data_dir.glob("*.json"):
                found = pattern.fullmatch(path.name)
                if found is not None:
                    candidates.append((found["stamp"], int(found["seq"] or 0), path))
            if not candidates:
                return None
            newest = max(candidates)[2]
            return json.loads(newest.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("storage: error loading data for %s: %s", site_name, exc)
            return None
