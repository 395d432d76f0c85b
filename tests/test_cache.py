"""Tests for the Redis cache service."""

import json
from unittest.mock import AsyncMock, patch

from redis.exceptions import ConnectionError as RedisConnectionError

from src.cache import CacheService


def _client(**overrides) -> AsyncMock:
    client = AsyncMock()
    client.ping.return_value = True
    for name, value in overrides.items():
        setattr(client, name, value)
    return client


# -- connect / health --------------------------------------------------------


async def test_connect_pings_client() -> None:
    client = _client()
    cache = CacheService(client=client)
    assert await cache.connect() is True
    client.ping.assert_awaited_once()
    assert cache.connected is True


async def test_connect_builds_client_from_url() -> None:
    client = _client()
    with patch("src.cache.aioredis.from_url", return_value=client) as from_url:
        cache = CacheService(url="redis://cache:6379/1")
        assert await cache.connect() is True
    from_url.assert_called_once()
    assert from_url.call_args.args[0] == "redis://cache:6379/1"
    assert from_url.call_args.kwargs["decode_responses"] is True


async def test_connect_failure_returns_false() -> None:
    client = _client(ping=AsyncMock(side_effect=RedisConnectionError("refused")))
    cache = CacheService(client=client)
    assert await cache.connect() is False
    assert cache.connected is False


async def test_health_reports_status() -> None:
    cache = CacheService(client=_client())
    assert await cache.health() == {"status": "healthy", "connected": True}


async def test_health_reports_error() -> None:
    client = _client(ping=AsyncMock(side_effect=RedisConnectionError("refused")))
    health = await CacheService(client=client).health()
    assert health["status"] == "unhealthy"
    assert health["connected"] is False
    assert "refused" in health["error"]


async def test_health_without_client() -> None:
    health = await CacheService(url="redis://x").health()
    assert health["status"] == "unhealthy"


# -- get / set / delete ------------------------------------------------------


async def test_set_serializes_with_ttl() -> None:
    client = _client()
    cache = CacheService(client=client)

    assert await cache.set("disasters:combined", {"events": [1, 2]}, ttl_seconds=600) is True

    client.set.assert_awaited_once_with(
        "disasters:combined", json.dumps({"events": [1, 2]}), ex=600
    )


async def test_get_decodes_json() -> None:
    client = _client(get=AsyncMock(return_value='{"a": 1}'))
    assert await CacheService(client=client).get("k") == {"a": 1}


async def test_get_miss_returns_none() -> None:
    client = _client(get=AsyncMock(return_value=None))
    assert await CacheService(client=client).get("k") is None


async def test_errors_are_swallowed(caplog) -> None:
    failure = AsyncMock(side_effect=RedisConnectionError("down"))
    client = _client(get=failure, set=failure, delete=failure)
    cache = CacheService(client=client)

    assert await cache.get("k") is None
    assert await cache.set("k", 1) is False
    assert await cache.delete("k") is False
    assert "Cache set failed" in caplog.text


async def test_operations_before_connect() -> None:
    cache = CacheService(url="redis://x")
    assert await cache.get("k") is None
    assert await cache.set("k", 1) is False
    assert await cache.delete("k") is False


async def test_disconnect_closes_client() -> None:
    client = _client()
    cache = CacheService(client=client)
    await cache.disconnect()
    client.aclose.assert_awaited_once()
    assert cache.connected is False
    await cache.disconnect()
