"""Delayed-callback schedulers used to pace battle turns.

The battle engine never sleeps. Every pause between a player action and
the enemy response is a callback handed to a scheduler, keyed by the
battle session that owns it so a finished battle can drop its pending
turns. ``VirtualScheduler`` runs on a manual clock (tests, replays);
``AsyncioScheduler`` runs on the server's event loop.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
from collections.abc import Callable, Hashable

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


class Scheduler:
    """Interface for scheduling callbacks after a delay in milliseconds."""

    def call_later(self, delay_ms: int, callback: Callback, key: Hashable = None) -> None:
        raise NotImplementedError

    def cancel(self, key: Hashable) -> int:
        """Drop every pending callback registered under ``key``.

        Returns:
            How many callbacks were dropped.
        """
        raise NotImplementedError


class VirtualScheduler(Scheduler):
    """Scheduler driven by an explicit virtual clock.

    Callbacks fire only from ``advance`` or ``run_pending``, in due-time
    order; ties fire in the order they were scheduled. A callback may
    schedule further callbacks, which fire in the same ``advance`` call
    if they fall due within it.
    """

    def __init__(self) -> None:
        self.now_ms = 0
        self._queue: list[tuple[int, int, Hashable, Callback]] = []
        self._seq = itertools.count()
        self._cancelled: set[int] = set()

    def call_later(self, delay_ms: int, callback: Callback, key: Hashable = None) -> None:
        if delay_ms < 0:
            raise ValueError(f"Delay must be non-negative, got {delay_ms}")
        heapq.heappush(
            self._queue, (self.now_ms + delay_ms, next(self._seq), key, callback)
        )

    def cancel(self, key: Hashable) -> int:
        dropped = 0
        for _, seq, entry_key, _ in self._queue:
            if entry_key == key and seq not in self._cancelled:
                self._cancelled.add(seq)
                dropped += 1
        return dropped

    @property
    def pending(self) -> int:
        """Number of callbacks still waiting to fire."""
        return sum(1 for _, seq, _, _ in self._queue if seq not in self._cancelled)

    def advance(self, delay_ms: int) -> int:
        """Move the clock forward, firing everything that falls due.

        Returns:
            How many callbacks fired.
        """
        target = self.now_ms + delay_ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, seq, _, callback = heapq.heappop(self._queue)
            if seq in self._cancelled:
                self._cancelled.discard(seq)
                continue
            self.now_ms = due
            callback()
            fired += 1
        self.now_ms = target
        return fired

    def run_pending(self) -> int:
        """Fire callbacks until the queue is empty, however far ahead they are."""
        fired = 0
        while self._queue:
            fired += self.advance(self._queue[0][0] - self.now_ms)
        return fired


class AsyncioScheduler(Scheduler):
    """Scheduler backed by ``loop.call_later`` on the running event loop."""

    def __init__(self) -> None:
        self._handles: dict[Hashable, list[asyncio.TimerHandle]] = {}

    def call_later(self, delay_ms: int, callback: Callback, key: Hashable = None) -> None:
        if delay_ms < 0:
            raise ValueError(f"Delay must be non-negative, got {delay_ms}")
        loop = asyncio.get_running_loop()
        handles = self._handles.setdefault(key, [])

        def _fire() -> None:
            if handle in handles:
                handles.remove(handle)
            callback()

        handle = loop.call_later(delay_ms / 1000, _fire)
        handles.append(handle)

    def cancel(self, key: Hashable) -> int:
        handles = self._handles.pop(key, [])
        for handle in handles:
            handle.cancel()
        if handles:
            logger.debug("Cancelled %d pending callbacks for %r", len(handles), key)
        return len(handles)
