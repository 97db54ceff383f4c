"""Simple in-memory key-value cache for serialized forecasts.

Mirrors the get/set(ttl) interface of a shared key-value store so the
engine can be pointed at one later. Values are strings; the caller owns
serialization. Shared by all callers in the process with no locking.
"""
from typing import Callable, Dict, Optional
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheEntry:
    """A cached value with expiration."""
    value: str
    expires_at: datetime


class ForecastCache:
    """
    In-memory TTL cache.

    Keys look like "forecast:90". Expired entries are dropped on read.
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._cache: Dict[str, CacheEntry] = {}
        self._clock = clock

    async def get(self, key: str) -> Optional[str]:
        """Get a cached value if not expired."""
        entry = self._cache.get(key)

        if entry is None:
            return None

        if self._clock() >= entry.expires_at:
            # Expired, remove from cache
            del self._cache[key]
            return None

        return entry.value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Cache a value with TTL."""
        self._cache[key] = CacheEntry(
            value=value,
            expires_at=self._clock() + timedelta(seconds=ttl_seconds),
        )

    async def invalidate(self, key: str) -> None:
        """Invalidate a single key."""
        self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear entire cache."""
        self._cache.clear()


def forecast_key(horizon_days: int) -> str:
    return f"forecast:{horizon_days}"


# Process-wide cache shared by every request
forecast_cache = ForecastCache()
