"""Supervisor application — wires cache, HTTP server, prober, scheduler, shutdown."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import aiohttp
import psutil

from src.cache import CacheService
from src.clock import LoopClock
from src.config import settings
from src.refresh.catalog import build_registry
from src.supervisor.connectivity import ConnectivityProber
from src.supervisor.engine import Scheduler
from src.supervisor.errors import ConfigurationError
from src.supervisor.models import PeriodicAnchor
from src.supervisor.shutdown import ShutdownCoordinator
from src.watchdog import notify_ready, notify_status, notify_stopping, start_watchdog
from src.web.server import HealthServer, RequestTracker

if TYPE_CHECKING:
    from src.clock import Clock
    from src.supervisor.registry import TaskRegistry

logger = logging.getLogger(__name__)


def handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    """Log exceptions that escaped every task-level guard. Never exits."""
    exc = context.get("exception")
    logger.error(
        "Unhandled exception in event loop: %s",
        context.get("message", "no message"),
        exc_info=exc,
    )


class Supervisor:
    """Owns every long-lived component of the process.

    Startup: connect cache → build registry → start HTTP server → install
    signal handlers → probe connectivity, starting the scheduler once
    online. Shutdown is delegated to :class:`ShutdownCoordinator`.

    Args:
        registry: Task registry (default: built from the refresh catalog).
        clock: Timer source (default: :class:`LoopClock`).
        cache: Cache collaborator (default: Redis from settings).
        port: HTTP port override (0 picks a free port).
    """

    def __init__(
        self,
        registry: TaskRegistry | None = None,
        clock: Clock | None = None,
        cache: CacheService | None = None,
        port: int | None = None,
    ) -> None:
        self.clock = clock or LoopClock()
        self.cache = cache or CacheService()
        self.tracker = RequestTracker()
        self.scheduler = Scheduler(self.clock, anchor=PeriodicAnchor(settings.periodic_anchor))
        self.prober = ConnectivityProber(self.clock)
        self.server = HealthServer(self.tracker, self, port=port)
        self.coordinator = ShutdownCoordinator(
            self.clock,
            self.scheduler,
            self.tracker,
            prober=self.prober,
            stop_accepting=self._stop_accepting,
        )
        self.registry = registry
        self._session: aiohttp.ClientSession | None = None
        self._watchdog: asyncio.Task | None = None
        self._started_at: float | None = None

    @property
    def shutting_down(self) -> bool:
        return self.coordinator.in_progress

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Bring every component up. Raises ConfigurationError on a bad registry."""
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(handle_loop_exception)
        self._started_at = self.clock.now()

        if not await self.cache.connect():
            logger.warning("Redis not connected - caching disabled")

        self._session = aiohttp.ClientSession()
        if self.registry is None:
            try:
                self.registry = build_registry(
                    self.cache,
                    self._session,
                    disabled=settings.get_disabled_tasks(),
                )
            except ConfigurationError:
                await self._close_session()
                await self.cache.disconnect()
                raise
        if not len(self.registry):
            logger.warning("No refresh tasks registered")

        self._register_releasers()
        await self.server.start()
        self.coordinator.install_signal_handlers(loop)
        self._watchdog = start_watchdog()

        notify_status("Probing connectivity")
        await self.prober.start(self._on_online)

    async def run(self) -> int:
        """Start and block until shutdown completes. Returns the exit code."""
        await self.start()
        return await self.coordinator.wait_exited()

    def _on_online(self) -> None:
        self.scheduler.start(self.registry)
        notify_ready()

    def _stop_accepting(self) -> Any:
        notify_stopping()
        return self.server.stop_accepting()

    def _register_releasers(self) -> None:
        self.coordinator.add_releaser("watchdog", self._stop_watchdog)
        self.coordinator.add_releaser("http server", self.server.stop)
        self.coordinator.add_releaser("http session", self._close_session)
        self.coordinator.add_releaser("cache", self.cache.disconnect)

    def _stop_watchdog(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

    async def _close_session(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    # -- Health ----------------------------------------------------------------

    async def health_report(self) -> dict[str, Any]:
        """Build the JSON body served at GET /health."""
        cache_health = await self.cache.health()
        healthy = cache_health.get("status") == "healthy" and not self.shutting_down
        uptime = 0.0
        if self._started_at is not None:
            uptime = round(self.clock.now() - self._started_at, 3)
        return {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "uptime": uptime,
            "online": self.prober.online,
            "shuttingDown": self.shutting_down,
            "inFlight": self.tracker.count,
            "memory": {"rssBytes": psutil.Process().memory_info().rss},
            "cache": cache_health,
            "tasks": self.scheduler.store.to_dict(),
        }
