"""Timer abstraction used by the supervisor.

Everything that waits or schedules goes through a :class:`Clock` so tests
can swap the event loop's real timers for a simulated one.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable


class Clock(Protocol):
    """Minimal timer interface: monotonic time, one-shot timers, sleeping."""

    def now(self) -> float:
        """Monotonic time in seconds."""
        ...

    def wall_time(self) -> datetime:
        """Current wall-clock time (timezone-aware, UTC)."""
        ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> Any:
        """Run *callback* once after *delay* seconds. Returns a cancellable handle."""
        ...

    def cancel(self, handle: Any) -> None:
        """Cancel a handle returned by :meth:`call_later`. None is ignored."""
        ...

    async def sleep(self, delay: float) -> None:
        """Suspend the calling coroutine for *delay* seconds."""
        ...


class LoopClock:
    """Clock backed by the running asyncio event loop."""

    def now(self) -> float:
        return asyncio.get_running_loop().time()

    def wall_time(self) -> datetime:
        return datetime.now(UTC)

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(max(delay, 0.0), callback)

    def cancel(self, handle: asyncio.TimerHandle | None) -> None:
        # Cancelling an already-fired TimerHandle is a no-op in asyncio.
        if handle is not None:
            handle.cancel()

    async def sleep(self, delay: float) -> None:
        await asyncio.sleep(delay)
