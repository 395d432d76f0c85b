"""ConnectivityProber — gates scheduler startup on external reachability."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from src.config import settings
from src.supervisor.models import ConnectivityState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.clock import Clock

logger = logging.getLogger(__name__)


class ConnectivityProber:
    """Checks that the outside world is reachable before work starts.

    When the first probe fails the prober keeps re-probing on a fixed
    cadence until one succeeds, then cancels its timer and fires the
    ``on_online`` callback. The offline → online transition happens at most
    once per prober.

    Args:
        clock: Timer source.
        url: URL to probe (default from settings).
        timeout: Upper bound for one probe, in seconds (default from settings).
        retry_interval: Seconds between probes while offline (default from settings).
        session: Shared aiohttp session; a short-lived one is used when None.
        check: Optional async callable replacing the HTTP check.
    """

    def __init__(
        self,
        clock: Clock,
        url: str | None = None,
        timeout: float | None = None,
        retry_interval: float | None = None,
        session: aiohttp.ClientSession | None = None,
        check: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        self._clock = clock
        self._url = url or settings.probe_url
        self._timeout = min(settings.probe_timeout_seconds if timeout is None else timeout, 5.0)
        self._retry_interval = (
            settings.probe_retry_seconds if retry_interval is None else retry_interval
        )
        self._session = session
        self._check = check
        self._on_online: Callable[[], Any] | None = None
        self._online_event = asyncio.Event()
        self._probing = False
        self._stopped = False
        self._probe_tasks: set[asyncio.Task] = set()
        self.state = ConnectivityState()

    @property
    def online(self) -> bool:
        return self.state.online

    # -- Probe -----------------------------------------------------------------

    async def probe(self) -> bool:
        """Return True if the probe target answers in time. Never raises."""
        try:
            if self._check is not None:
                return bool(await asyncio.wait_for(self._check(), self._timeout))
            return await self._http_probe()
        except Exception as exc:
            logger.debug("Connectivity probe failed: %s", exc)
            return False

    async def _http_probe(self) -> bool:
        timeout = aiohttp.ClientTimeout(total=self._timeout)
        if self._session is not None and not self._session.closed:
            async with self._session.get(self._url, timeout=timeout, allow_redirects=False) as resp:
                return resp.status < 500
        async with (
            aiohttp.ClientSession(timeout=timeout) as session,
            session.get(self._url, allow_redirects=False) as resp,
        ):
            return resp.status < 500

    # -- Lifecycle -------------------------------------------------------------

    async def start(self, on_online: Callable[[], Any] | None = None) -> bool:
        """Probe now; on failure keep retrying in the background.

        Returns True if the first probe succeeded (``on_online`` has already
        run), False if the retry loop was armed.
        """
        self._on_online = on_online
        if await self._attempt():
            return True
        logger.warning(
            "Offline: %s unreachable, retrying every %ds",
            self._url,
            self._retry_interval,
        )
        if not self._stopped and not self.state.online:
            self._arm()
        return False

    async def wait_until_online(self) -> None:
        """Block until the online transition has happened."""
        await self._online_event.wait()

    def stop(self) -> None:
        """Cancel any pending probe timer. Safe to call repeatedly."""
        self._stopped = True
        self._clock.cancel(self.state.probe_handle)
        self.state.probe_handle = None

    # -- Internal --------------------------------------------------------------

    def _arm(self) -> None:
        self._clock.cancel(self.state.probe_handle)
        self.state.probe_handle = self._clock.call_later(self._retry_interval, self._on_timer)

    def _on_timer(self) -> None:
        self.state.probe_handle = None
        if self._stopped or self.state.online:
            return
        self._arm()
        if self._probing:
            return
        task = asyncio.get_running_loop().create_task(self._retry())
        self._probe_tasks.add(task)
        task.add_done_callback(self._probe_tasks.discard)

    async def _retry(self) -> None:
        if not await self._attempt():
            logger.warning(
                "Still offline after %d probe(s) of %s",
                self.state.attempts,
                self._url,
            )

    async def _attempt(self) -> bool:
        self._probing = True
        try:
            self.state.attempts += 1
            ok = await self.probe()
            self.state.last_probe_at = self._clock.wall_time()
        finally:
            self._probing = False
        if not ok:
            return False
        await self._go_online()
        return True

    async def _go_online(self) -> None:
        if self.state.online or self._stopped:
            return
        self.state.online = True
        self._clock.cancel(self.state.probe_handle)
        self.state.probe_handle = None
        self._online_event.set()
        logger.info("Online after %d probe(s)", self.state.attempts)
        if self._on_online is not None:
            result = self._on_online()
            if inspect.isawaitable(result):
                await result
