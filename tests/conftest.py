"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

EPOCH = datetime(2026, 1, 1, tzinfo=UTC)


class _ManualTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


async def settle(rounds: int = 25) -> None:
    """Let every ready task on the loop run until it blocks again."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """Simulated clock: time only moves when a test calls :meth:`advance`.

    Timers due at the same instant fire in the order they were scheduled.
    """

    def __init__(self) -> None:
        self._now = 0.0
        self._timers: list[tuple[float, int, _ManualTimer]] = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._now

    def wall_time(self) -> datetime:
        return EPOCH + timedelta(seconds=self._now)

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._timers, (timer.when, next(self._seq), timer))
        return timer

    def cancel(self, handle: _ManualTimer | None) -> None:
        if handle is not None:
            handle.cancel()

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()

        def _wake() -> None:
            if not future.done():
                future.set_result(None)

        self.call_later(delay, _wake)
        await future

    @property
    def pending(self) -> int:
        """Number of armed, uncancelled timers."""
        return sum(1 for _, _, t in self._timers if not t.cancelled and not t.fired)

    async def advance(self, seconds: float) -> None:
        """Move time forward, firing due timers in order and settling the loop."""
        target = self._now + seconds
        await settle()
        while self._timers and self._timers[0][0] <= target + 1e-9:
            when, _, timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = max(self._now, when)
            timer.fired = True
            timer.callback()
            await settle()
        self._now = max(self._now, target)
        await settle()


class FakeTracker:
    """Stand-in for the HTTP layer's in-flight request counter."""

    def __init__(self, count: int = 0) -> None:
        self.count = count


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def tracker() -> FakeTracker:
    return FakeTracker()
