"""ShutdownCoordinator — drains in-flight requests, then releases and exits."""

from __future__ import annotations

import asyncio
import inspect
import logging
import signal
from typing import TYPE_CHECKING, Any, Protocol

from src.config import settings
from src.supervisor.models import ShutdownPhase, ShutdownState

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.clock import Clock
    from src.supervisor.connectivity import ConnectivityProber
    from src.supervisor.engine import Scheduler

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class InFlightCounter(Protocol):
    @property
    def count(self) -> int: ...


async def _call(fn: Callable[[], Any]) -> None:
    result = fn()
    if inspect.isawaitable(result):
        await result


class ShutdownCoordinator:
    """Runs the shutdown sequence exactly once.

    Running → ShuttingDown → Drained → Exited. The drain step polls the
    request counter with ``clock.sleep`` so the loop keeps serving the very
    requests being waited on. Resource release failures are logged and
    skipped; the sequence always reaches Exited.

    Args:
        clock: Timer source used for the drain poll.
        scheduler: Scheduler whose timers are cancelled.
        tracker: In-flight request counter owned by the HTTP layer.
        prober: Connectivity prober whose retry timer is cancelled.
        stop_accepting: Callable that closes the listening socket.
        drain_timeout: Max seconds to wait for in-flight requests.
        poll_interval: Seconds between in-flight checks.
    """

    def __init__(
        self,
        clock: Clock,
        scheduler: Scheduler,
        tracker: InFlightCounter,
        prober: ConnectivityProber | None = None,
        stop_accepting: Callable[[], Any] | None = None,
        drain_timeout: float | None = None,
        poll_interval: float | None = None,
    ) -> None:
        self._clock = clock
        self._scheduler = scheduler
        self._tracker = tracker
        self._prober = prober
        self._stop_accepting = stop_accepting
        self._drain_timeout = (
            settings.drain_timeout_seconds if drain_timeout is None else drain_timeout
        )
        self._poll_interval = (
            settings.drain_poll_interval_seconds if poll_interval is None else poll_interval
        )
        self._releasers: list[tuple[str, Callable[[], Any]]] = []
        self._exited = asyncio.Event()
        self._triggered: set[asyncio.Task] = set()
        self.state = ShutdownState()

    @property
    def in_progress(self) -> bool:
        return self.state.in_progress

    def add_releaser(self, name: str, release: Callable[[], Any]) -> None:
        """Register a resource to release after draining (runs in order)."""
        self._releasers.append((name, release))

    # -- Entry points ----------------------------------------------------------

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Route SIGTERM and SIGINT to :meth:`trigger`."""
        loop = loop or asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self.trigger, sig.name)
        logger.debug("Signal handlers installed: %s", [s.name for s in SHUTDOWN_SIGNALS])

    def trigger(self, signal_name: str = "manual") -> asyncio.Task:
        """Start :meth:`shutdown` in the background (signal-handler safe)."""
        task = asyncio.get_running_loop().create_task(self.shutdown(signal_name))
        self._triggered.add(task)
        task.add_done_callback(self._triggered.discard)
        return task

    async def shutdown(self, signal_name: str = "manual") -> None:
        """Drain and exit. A second call while in progress is a no-op."""
        if self.state.in_progress:
            logger.info("Shutdown already in progress; ignoring %s", signal_name)
            return
        self.state.in_progress = True
        self.state.signal = signal_name
        self.state.phase = ShutdownPhase.SHUTTING_DOWN
        logger.info("Received %s, shutting down...", signal_name)

        try:
            if self._stop_accepting is not None:
                try:
                    await _call(self._stop_accepting)
                except Exception:
                    logger.exception("Failed to stop accepting connections")

            self._scheduler.stop()
            if self._prober is not None:
                self._prober.stop()

            await self._drain()
            self.state.phase = ShutdownPhase.DRAINED

            for name, release in self._releasers:
                try:
                    await _call(release)
                    logger.info("Released %s", name)
                except Exception:
                    logger.exception("Failed to release %s", name)
        finally:
            self.state.phase = ShutdownPhase.EXITED
            self.state.exit_code = 0
            self._exited.set()
            logger.info("Shutdown complete")

    async def wait_exited(self) -> int:
        """Wait for the sequence to finish and return the exit code."""
        await self._exited.wait()
        return self.state.exit_code or 0

    # -- Internal --------------------------------------------------------------

    async def _drain(self) -> bool:
        """Wait for in-flight requests to hit zero or the drain timeout."""
        deadline = self._clock.now() + self._drain_timeout
        while True:
            count = self._tracker.count
            if count <= 0:
                logger.info("All in-flight requests drained")
                return True
            remaining = deadline - self._clock.now()
            if remaining <= 0:
                self.state.forced = True
                logger.warning(
                    "Drain timeout after %.1fs with %d request(s) in flight; forcing shutdown",
                    self._drain_timeout,
                    count,
                )
                return False
            logger.debug("Waiting on %d in-flight request(s)", count)
            await self._clock.sleep(min(self._poll_interval, remaining))
