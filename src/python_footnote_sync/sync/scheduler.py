"""
Schedulers deciding when a deferred reconciliation pass runs.

A scheduler receives a zero-argument callback. Scheduling again before the
callback ran does not queue a second run: the pending run is kept (or, for
the debouncing scheduler, pushed back) so a burst of edits costs one pass.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from ..constants import DEFAULT_DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Scheduler(Protocol):
    def schedule(self, callback: Callback) -> None: ...

    def cancel(self) -> None: ...


class ImmediateScheduler:
    """Runs the callback synchronously, inside ``schedule()``."""

    def schedule(self, callback: Callback) -> None:
        callback()

    def cancel(self) -> None:
        pass


class ManualScheduler:
    """Holds callbacks until ``flush()`` is called.

    Useful in tests and in hosts that drive passes from their own loop.

    Example:
        >>> scheduler = ManualScheduler()
        >>> doc = Document.from_html(markup, scheduler=scheduler)
        >>> doc.insert_footnote("See Smith", at="results")
        >>> scheduler.pending
        1
        >>> scheduler.flush()
    """

    def __init__(self) -> None:
        self._queue: list[Callback] = []

    @property
    def pending(self) -> int:
        return len(self._queue)

    def schedule(self, callback: Callback) -> None:
        if callback not in self._queue:
            self._queue.append(callback)

    def cancel(self) -> None:
        self._queue.clear()

    def flush(self) -> int:
        """Run queued callbacks, including ones scheduled while flushing.

        Returns:
            Number of callbacks run
        """
        ran = 0
        while self._queue:
            callback = self._queue.pop(0)
            callback()
            ran += 1
        return ran


class AsyncioScheduler:
    """Trailing-edge debounce on an asyncio event loop.

    Every ``schedule()`` call restarts the timer, so the callback runs once,
    ``delay`` seconds after the last call.

    Args:
        delay: Quiet period in seconds
        loop: Event loop to use (defaults to the running loop at schedule time)
    """

    def __init__(
        self,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = delay
        self._loop = loop
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, callback: Callback) -> None:
        loop = self._loop or asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        logger.debug("Pass scheduled in %.3fs", self.delay)
        self._handle = loop.call_later(self.delay, self._fire, callback)

    def _fire(self, callback: Callback) -> None:
        self._handle = None
        callback()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


def create_scheduler(kind: str, delay: float = DEFAULT_DEBOUNCE_SECONDS) -> Scheduler:
    """Create a scheduler by name ("immediate", "manual" or "asyncio")."""
    if kind == "manual":
        return ManualScheduler()
    if kind == "asyncio":
        return AsyncioScheduler(delay)
    if kind == "immediate":
        return ImmediateScheduler()
    raise ValueError(f"Unknown scheduler '{kind}'")
