"""Fetch a JSON endpoint and write it to the cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import aiohttp

from src.config import settings
from src.supervisor.models import TaskDefinition

if TYPE_CHECKING:
    from src.cache import CacheService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonSource:
    """An upstream JSON endpoint refreshed on a fixed interval.

    Attributes:
        name: Task name (unique).
        url: Endpoint to GET.
        cache_key: Key the payload is written under.
        ttl_seconds: Cache TTL for the payload.
        interval_ms: Refresh period.
        initial_delay_ms: Startup stagger before the first refresh.
        description: Human-readable description.
    """

    name: str
    url: str
    cache_key: str
    ttl_seconds: int
    interval_ms: int
    initial_delay_ms: int = 0
    description: str = ""


class JsonRefresher:
    """Unit of work for a :class:`JsonSource`.

    HTTP and decode failures raise so the runner records them. Cache write
    failures only log: the next tick tries again.
    """

    def __init__(
        self,
        source: JsonSource,
        cache: CacheService,
        session: aiohttp.ClientSession,
        timeout: float | None = None,
    ) -> None:
        self.source = source
        self._cache = cache
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout or settings.http_timeout_seconds)

    async def __call__(self) -> None:
        payload = await self._fetch()
        envelope = {
            "source": self.source.name,
            "fetchedAt": datetime.now(UTC).isoformat(),
            "data": payload,
        }
        stored = await self._cache.set(self.source.cache_key, envelope, self.source.ttl_seconds)
        if not stored:
            logger.warning(
                "Fetched %s but could not cache it under %s",
                self.source.name,
                self.source.cache_key,
            )

    async def _fetch(self) -> Any:
        headers = {"User-Agent": settings.user_agent, "Accept": "application/json"}
        async with self._session.get(
            self.source.url, headers=headers, timeout=self._timeout
        ) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None)

    def definition(self) -> TaskDefinition:
        """Wrap this refresher as a scheduler task definition."""
        return TaskDefinition(
            name=self.source.name,
            unit_of_work=self,
            interval_ms=self.source.interval_ms,
            initial_delay_ms=self.source.initial_delay_ms,
            description=self.source.description,
        )
