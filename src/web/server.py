"""Async HTTP server exposing the supervisor's health endpoint.

Runs in the same asyncio event loop as the scheduler. Uses aiohttp's
AppRunner/TCPSite so the listening socket can be closed on shutdown while
requests already in flight finish.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Protocol

from aiohttp import web

from src.config import settings

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SERVICE_NAME = "Monitored Supervisor"
SERVICE_VERSION = "1.0.0"


class HealthSource(Protocol):
    async def health_report(self) -> dict[str, Any]: ...

    @property
    def shutting_down(self) -> bool: ...


class RequestTracker:
    """Counts HTTP requests currently being handled."""

    def __init__(self) -> None:
        self._count = 0
        self._total = 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def total(self) -> int:
        return self._total

    def enter(self) -> None:
        self._count += 1
        self._total += 1

    def leave(self) -> None:
        self._count = max(self._count - 1, 0)


def _tracking_middleware(tracker: RequestTracker, source: HealthSource):
    @web.middleware
    async def middleware(
        request: web.Request,
        handler: Callable[[web.Request], Awaitable[web.StreamResponse]],
    ) -> web.StreamResponse:
        if source.shutting_down:
            return web.json_response(
                {"error": "shutting down"},
                status=503,
                headers={"Connection": "close"},
            )
        tracker.enter()
        start = time.monotonic()
        status = 500
        try:
            response = await handler(request)
            status = response.status
            return response
        except web.HTTPException as exc:
            status = exc.status
            raise
        finally:
            tracker.leave()
            duration_ms = (time.monotonic() - start) * 1000
            log = logger.debug if request.path == "/health" else logger.info
            log("%s %s %d %.0fms", request.method, request.path, status, duration_ms)

    return middleware


def _create_web_app(tracker: RequestTracker, source: HealthSource) -> web.Application:
    """Build the aiohttp Application with routes."""

    async def _index(request: web.Request) -> web.Response:
        return web.json_response(
            {
                "name": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "endpoints": {"health": "/health"},
            }
        )

    async def _health(request: web.Request) -> web.Response:
        """GET /health — task status, cache health and process metrics."""
        report = await source.health_report()
        status = 200 if report.get("status") == "healthy" else 503
        return web.json_response(report, status=status)

    app = web.Application(middlewares=[_tracking_middleware(tracker, source)])
    app.router.add_get("/", _index)
    app.router.add_get("/health", _health)
    return app


class HealthServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        tracker: RequestTracker,
        source: HealthSource,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self.host = host or settings.host
        self.port = settings.port if port is None else port
        self.app = _create_web_app(tracker, source)
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

    @property
    def addresses(self) -> list:
        """Bound socket addresses (useful when started on port 0)."""
        return self._runner.addresses if self._runner is not None else []

    async def start(self) -> None:
        """Start listening."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("HTTP server listening on %s:%d", self.host, self.port)

    async def stop_accepting(self) -> None:
        """Close the listening socket; open connections keep being served."""
        if self._site is not None:
            await self._site.stop()
            self._site = None
            logger.info("HTTP server no longer accepting connections")

    async def stop(self) -> None:
        """Shut down the server and close remaining connections."""
        await self.stop_accepting()
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("HTTP server stopped")
