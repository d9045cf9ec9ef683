"""JSON file storage for extension records.

Each record lives in its own file under a configurable base directory:

    {base}/
      living-world.json        ← the settings record
      connectionManager.json   ← host connection profiles (read-only here)

There is no database; reads and writes go through plain helper methods that
load and dump JSON.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Storage(Protocol):
    def read(self, key: str) -> dict[str, Any] | None: ...

    def write(self, key: str, record: dict[str, Any]) -> None: ...


class JsonStorage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self._base / f"{key}.json"

    def read(self, key: str) -> dict[str, Any] | None:
        """Return the stored record, or None if it is missing or unreadable."""
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed record %s", path)
            return None
        if not isinstance(data, dict):
            logger.warning("Ignoring non-object record %s", path)
            return None
        return data

    def write(self, key: str, record: dict[str, Any]) -> None:
        # Write-then-rename: readers never see a partial file
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(record, indent=2))
        tmp.replace(path)
        logger.debug("wrote %s", path)
