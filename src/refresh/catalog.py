"""The fixed catalog of refresh sources and registry construction.

Startup delays are staggered so the first calls against rate-limited
upstreams do not all land at once.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.refresh.sources import JsonRefresher, JsonSource
from src.supervisor.registry import TaskRegistry

if TYPE_CHECKING:
    from collections.abc import Iterable

    import aiohttp

    from src.cache import CacheService

logger = logging.getLogger(__name__)

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS

SOURCES: tuple[JsonSource, ...] = (
    JsonSource(
        name="conflict-losses",
        url="https://russianwarship.rip/api/v2/statistics/latest",
        cache_key="conflict:losses",
        ttl_seconds=3600,
        interval_ms=30 * MINUTE_MS,
        description="Daily equipment and personnel loss statistics",
    ),
    JsonSource(
        name="disasters",
        url="https://eonet.gsfc.nasa.gov/api/v3/events?status=open&limit=100",
        cache_key="disasters:combined",
        ttl_seconds=600,
        interval_ms=10 * MINUTE_MS,
        initial_delay_ms=25_000,
        description="Open natural events from NASA EONET",
    ),
    JsonSource(
        name="cyber",
        url="https://www.cisa.gov/sites/default/files/feeds/known_exploited_vulnerabilities.json",
        cache_key="cyber:combined",
        ttl_seconds=600,
        interval_ms=10 * MINUTE_MS,
        initial_delay_ms=28_000,
        description="CISA known exploited vulnerabilities",
    ),
    JsonSource(
        name="refugees",
        url="https://api.unhcr.org/population/v1/population/?limit=100&yearFrom=2023",
        cache_key="refugee:combined",
        ttl_seconds=3600,
        interval_ms=HOUR_MS,
        initial_delay_ms=30_000,
        description="UNHCR population statistics",
    ),
    JsonSource(
        name="metaculus",
        url="https://www.metaculus.com/api2/questions/?limit=20&order_by=-activity&status=open",
        cache_key="metaculus:combined",
        ttl_seconds=900,
        interval_ms=15 * MINUTE_MS,
        initial_delay_ms=36_000,
        description="Most active open forecasting questions",
    ),
)


def build_registry(
    cache: CacheService,
    session: aiohttp.ClientSession,
    sources: Iterable[JsonSource] = SOURCES,
    disabled: set[str] | None = None,
) -> TaskRegistry:
    """Create a TaskRegistry with one refresher per enabled source."""
    disabled = disabled or set()
    registry = TaskRegistry()
    for source in sources:
        if source.name in disabled:
            logger.info("Refresh source disabled: %s", source.name)
            continue
        registry.add(JsonRefresher(source, cache, session).definition())
    return registry
