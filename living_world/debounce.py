"""Debounced, write-coalescing persistence.

A `WriteCoalescer` holds a single pending-write slot. Every `schedule()`
overwrites the slot and restarts the timer, so a burst of mutations inside
one debounce window ends in exactly one write carrying the last value.

Timers come from an injectable `Scheduler`:

    AsyncioScheduler   — loop.call_later on the running event loop.
    ThreadingScheduler — threading.Timer, for callers without a loop.

Tests drive a manual scheduler instead (see conftest.py).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Scheduler protocol
# ---------------------------------------------------------------------------

class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioScheduler:
    """Schedules callbacks on an asyncio event loop.

    Uses the running loop at call time unless a loop is given explicitly.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class ThreadingScheduler:
    """Schedules callbacks on daemon timer threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


# ---------------------------------------------------------------------------
# WriteCoalescer
# ---------------------------------------------------------------------------

_EMPTY = object()


class WriteCoalescer:
    """Single-slot debounced writer.

    Args:
        write:     Called with the latest payload when the timer fires.
        scheduler: Timer source.
        delay:     Debounce window in seconds.
    """

    def __init__(
        self,
        write: Callable[[Any], None],
        scheduler: Scheduler,
        delay: float = 1.0,
    ) -> None:
        self._write = write
        self._scheduler = scheduler
        self._delay = delay
        self._pending: Any = _EMPTY
        self._timer: TimerHandle | None = None
        self._lock = threading.Lock()
        # Held from taking the slot until the write returns, so writes land in order
        self._write_lock = threading.Lock()

    def schedule(self, payload: Any) -> None:
        """Replace the pending payload and restart the debounce window."""
        with self._lock:
            self._pending = payload
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._scheduler.call_later(self._delay, self.flush)

    def has_pending(self) -> bool:
        return self._pending is not _EMPTY

    def flush(self) -> bool:
        """Write the pending payload now. Returns False when nothing was pending.

        Write failures are logged and swallowed: persistence is
        fire-and-forget for the code that scheduled it.
        """
        with self._write_lock:
            with self._lock:
                payload, self._pending = self._pending, _EMPTY
                if self._timer is not None:
                    self._timer.cancel()
                    self._timer = None
            if payload is _EMPTY:
                return False
            try:
                self._write(payload)
            except Exception:
                logger.exception("Debounced write failed")
            return True

    def close(self) -> None:
        """Cancel the timer and flush whatever is still pending."""
        self.flush()
