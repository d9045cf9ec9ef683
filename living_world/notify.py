"""Transient user notifications (the settings panel's toasts).

Notifications are logged and kept in a short in-memory list the panel polls.
"""

from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Literal

logger = logging.getLogger(__name__)

Level = Literal["info", "success", "warning", "error"]

_LOG_LEVELS: dict[str, int] = {
    "info": logging.INFO,
    "success": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class Notifier:
    def __init__(self, limit: int = 50) -> None:
        self._recent: deque[dict] = deque(maxlen=limit)

    def notify(self, level: Level, message: str) -> None:
        logger.log(_LOG_LEVELS[level], "[%s] %s", level, message)
        self._recent.append({
            "level": level,
            "message": message,
            "ts": datetime.now(timezone.utc).isoformat(),
        })

    def info(self, message: str) -> None:
        self.notify("info", message)

    def success(self, message: str) -> None:
        self.notify("success", message)

    def error(self, message: str) -> None:
        self.notify("error", message)

    def recent(self) -> list[dict]:
        return list(self._recent)

    def clear(self) -> None:
        self._recent.clear()
