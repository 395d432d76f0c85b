"""Redis-backed JSON cache shared by refresh tasks.

The cache is advisory: every operation swallows backend errors and reports
a miss or ``False`` so a Redis outage degrades refreshes instead of failing
them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis.asyncio as aioredis

from src.config import settings

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60


class CacheService:
    """JSON get/set over Redis with TTLs.

    Args:
        url: Redis URL (default from settings).
        client: Pre-built ``redis.asyncio`` client (tests).
    """

    def __init__(self, url: str | None = None, client: aioredis.Redis | None = None) -> None:
        self._url = url or settings.redis_url
        self._client = client
        self._connected = client is not None

    @property
    def connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        """Create the client and ping it. Returns False if Redis is unreachable."""
        if self._client is None:
            self._client = aioredis.from_url(
                self._url,
                encoding="utf-8",
                decode_responses=True,
            )
        try:
            await self._client.ping()
        except Exception as exc:
            logger.error("Redis not reachable at %s: %s", self._url, exc)
            self._connected = False
            return False
        self._connected = True
        logger.info("Connected to Redis")
        return True

    async def get(self, key: str) -> Any | None:
        """Return the decoded value for *key*, or None on miss or error."""
        if self._client is None:
            return None
        try:
            raw = await self._client.get(key)
            return json.loads(raw) if raw else None
        except Exception as exc:
            logger.warning("Cache get failed for %s: %s", key, exc)
            return None

    async def set(self, key: str, value: Any, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> bool:
        """Store *value* as JSON under *key* with a TTL. Returns True on success."""
        if self._client is None:
            return False
        try:
            await self._client.set(key, json.dumps(value), ex=ttl_seconds)
            return True
        except Exception as exc:
            logger.warning("Cache set failed for %s: %s", key, exc)
            return False

    async def delete(self, key: str) -> bool:
        if self._client is None:
            return False
        try:
            await self._client.delete(key)
            return True
        except Exception as exc:
            logger.warning("Cache delete failed for %s: %s", key, exc)
            return False

    async def health(self) -> dict[str, Any]:
        """Ping Redis and report ``{"status", "connected"[, "error"]}``."""
        if self._client is None:
            return {"status": "unhealthy", "connected": False, "error": "not connected"}
        try:
            await self._client.ping()
        except Exception as exc:
            self._connected = False
            return {"status": "unhealthy", "connected": False, "error": str(exc)}
        self._connected = True
        return {"status": "healthy", "connected": True}

    async def disconnect(self) -> None:
        """Close the client connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._connected = False
            logger.info("Redis connection closed")
