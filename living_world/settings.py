"""Living-world settings store.

One configuration record per installation, stored under MODULE_NAME.

Load: the stored record is reconciled against DEFAULT_SETTINGS. Missing keys
are backfilled (including the keys of injectionStrategy), present keys are
kept, unknown keys are carried along untouched. Malformed values are coerced
back to their defaults, so get() always yields a complete, valid record.

Mutation: set() applies a shallow patch (injectionStrategy merged key-by-key)
and hands the new record to a WriteCoalescer; a burst of set() calls ends in
one storage write with the last values.
"""

from __future__ import annotations

import copy
import logging
import math
import re
import threading
from collections.abc import Mapping
from typing import Any

from living_world.debounce import Scheduler, WriteCoalescer
from living_world.models import Configuration
from living_world.storage import Storage

logger = logging.getLogger(__name__)

MODULE_NAME = "living-world"

DEFAULT_SETTINGS: dict[str, Any] = {
    "enabled": False,
    # Lorebook
    "selectedLorebook": "",
    "selectedCharacterListEntry": "",
    # Generation
    "connectionProfile": "",
    "preset": "current",
    "characterQuantity": 20,
    # Injection
    "injectionStrategy": {
        "type": "depth",
        "depth": 1,
        "role": "system",
    },
    # Advanced
    "autoTrigger": True,
    "debugMode": False,
}

_BOOL_FIELDS = frozenset({"enabled", "autoTrigger", "debugMode"})
_STR_FIELDS = frozenset({
    "selectedLorebook", "selectedCharacterListEntry", "connectionProfile", "preset",
})
_ENUM_FIELDS: dict[str, tuple[str, ...]] = {
    "injectionStrategy.type": ("depth", "top"),
    "injectionStrategy.role": ("system", "user", "assistant"),
}

# snake_case attribute name → storage key
_KEY_ALIASES: dict[str, str] = {
    name: field.alias
    for name, field in Configuration.model_fields.items()
    if field.alias
}

_TRUE_STRINGS = frozenset({"true", "1", "on", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "off", "no", ""})
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _default_for(field: str) -> Any:
    if field.startswith("injectionStrategy."):
        return DEFAULT_SETTINGS["injectionStrategy"][field.split(".", 1)[1]]
    return copy.deepcopy(DEFAULT_SETTINGS[field])


def parse_int(raw: Any) -> int | None:
    """Read an integer the way a number input is read.

    "15" → 15, " 7px" → 7, 3.9 → 3, "abc" → None. Booleans are not numbers.
    """
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    if isinstance(raw, str):
        match = _LEADING_INT.match(raw)
        return int(match.group(1)) if match else None
    return None


def _parse_bool(raw: Any) -> bool | None:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return None


def _apply_debug_mode(enabled: bool) -> None:
    # NOTSET hands the level back to whatever the root logger is configured with
    logging.getLogger("living_world").setLevel(logging.DEBUG if enabled else logging.NOTSET)


class SettingsStore:
    """Owns the configuration record and its persistence.

    Args:
        storage:   Storage collaborator holding the record.
        scheduler: Timer source for debounced writes.
        debounce:  Debounce window in seconds.
        key:       Storage key of the record.
    """

    def __init__(
        self,
        storage: Storage,
        scheduler: Scheduler,
        *,
        debounce: float = 1.0,
        key: str = MODULE_NAME,
    ) -> None:
        self._storage = storage
        self._key = key
        self._config: Configuration | None = None
        self._lock = threading.RLock()
        self._writer = WriteCoalescer(self._persist, scheduler, delay=debounce)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self) -> Configuration:
        """Return a copy of the current configuration, loading it on first use."""
        with self._lock:
            return self._current().model_copy(deep=True)

    def set(self, patch: Mapping[str, Any]) -> Configuration:
        """Apply a shallow update and schedule a debounced write.

        Keys are storage keys ("characterQuantity") or attribute names
        ("character_quantity"). Unknown keys are ignored.
        """
        with self._lock:
            current = self._current()
            record = current.to_record()
            for key, value in patch.items():
                name = _KEY_ALIASES.get(key, key)
                if name not in DEFAULT_SETTINGS:
                    logger.warning("Ignoring unknown setting %r", key)
                    continue
                if name == "injectionStrategy":
                    record[name] = self._merge_strategy(record[name], value)
                else:
                    record[name] = self.validate_and_coerce(name, value)

            updated = Configuration.model_validate(record)
            if updated.debug_mode != current.debug_mode:
                _apply_debug_mode(updated.debug_mode)
            self._config = updated
            self._writer.schedule(updated.to_record())
            logger.debug("settings updated: %s", sorted(patch))
            return updated.model_copy(deep=True)

    def validate_and_coerce(self, field: str, raw: Any) -> Any:
        """Coerce a raw input value for `field`, falling back to its default.

        `field` is a storage key, or "injectionStrategy.<key>" for the
        strategy's members. Never raises for bad values.
        """
        if field == "characterQuantity":
            value = parse_int(raw)
            return value if value is not None and value >= 1 else _default_for(field)
        if field == "injectionStrategy.depth":
            value = parse_int(raw)
            return value if value is not None and value >= 0 else _default_for(field)
        if field in _ENUM_FIELDS:
            return raw if raw in _ENUM_FIELDS[field] else _default_for(field)
        if field in _BOOL_FIELDS:
            value = _parse_bool(raw)
            return value if value is not None else _default_for(field)
        if field in _STR_FIELDS:
            return "" if raw is None else str(raw)
        if field == "injectionStrategy":
            return self._merge_strategy(_default_for(field), raw)
        raise KeyError(f"Unknown setting: {field}")

    def flush(self) -> bool:
        """Write a pending change immediately."""
        return self._writer.flush()

    def close(self) -> None:
        """Cancel the debounce timer and flush any pending change."""
        self._writer.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _current(self) -> Configuration:
        if self._config is None:
            self._config = self._load()
            _apply_debug_mode(self._config.debug_mode)
        return self._config

    def _load(self) -> Configuration:
        try:
            stored = self._storage.read(self._key)
        except Exception:
            logger.exception("Failed to read settings, using defaults")
            stored = None
        if stored is None:
            logger.debug("No stored settings, initializing defaults")
            return Configuration.model_validate(copy.deepcopy(DEFAULT_SETTINGS))
        if not isinstance(stored, Mapping):
            logger.warning("Stored settings are not an object (%s), using defaults", type(stored).__name__)
            return Configuration.model_validate(copy.deepcopy(DEFAULT_SETTINGS))
        return Configuration.model_validate(self._reconcile(stored))

    def _reconcile(self, stored: Mapping[str, Any]) -> dict[str, Any]:
        """Backfill missing keys and coerce malformed values. Top-level keys are never dropped."""
        record = copy.deepcopy(dict(stored))
        for key, default in DEFAULT_SETTINGS.items():
            if key not in record:
                logger.debug("Backfilling missing setting %r", key)
                record[key] = copy.deepcopy(default)
                continue
            record[key] = self.validate_and_coerce(key, record[key])
        return record

    def _merge_strategy(self, current: Mapping[str, Any], patch: Any) -> dict[str, Any]:
        strategy = dict(current)
        if not isinstance(patch, Mapping):
            logger.warning("Ignoring non-object injectionStrategy %r", patch)
            return strategy
        for sub, value in patch.items():
            if sub not in DEFAULT_SETTINGS["injectionStrategy"]:
                logger.warning("Ignoring unknown injectionStrategy key %r", sub)
                continue
            strategy[sub] = self.validate_and_coerce(f"injectionStrategy.{sub}", value)
        return strategy

    def _persist(self, record: dict[str, Any]) -> None:
        self._storage.write(self._key, record)
