"""
Result Cache — composed assessments keyed by rounded coordinate + hazard set.

ResultCache is the injected abstraction (get/set/delete with TTL) the
aggregator depends on. Two implementations:
- InMemoryResultCache: process-local, lazy expiry on read, evicts the
  oldest-inserted entries (not least-recently-used) past an entry ceiling
- RedisResultCache: shared across processes, TTL enforced by Redis,
  graceful degradation (errors behave as misses)
"""

import json
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from hazardcast.schemas.hazards import Coordinate, HazardType

logger = structlog.get_logger(__name__)

CACHE_KEY_PREFIX = "climate"


def build_cache_key(
    coordinate: Coordinate,
    hazards: Iterable[HazardType],
    precision: int = 6,
) -> str:
    """
    Deterministic key from the rounded coordinate and the sorted hazard set.

    Transient call options never participate.
    """
    lat, lon = coordinate.rounded(precision)
    names = sorted({HazardType(h).value for h in hazards})
    return f"{CACHE_KEY_PREFIX}:{lat},{lon}:{','.join(names)}"


@dataclass
class CacheEntry:
    """A stored value with its insertion and expiry times (epoch seconds)."""

    key: str
    value: Any
    stored_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def age_seconds(self, now: float) -> float:
        return max(0.0, now - self.stored_at)


class ResultCache(ABC):
    """Interface the aggregator depends on."""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        """Live entry for key, or None on miss/expiry."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> CacheEntry:
        """Store value under key."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove key; True if it was present."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry."""


# ============================================================================
# IN-MEMORY
# ============================================================================


class InMemoryResultCache(ResultCache):
    """
    Process-local TTL cache with an entry ceiling.

    Not thread-safe: intended for a single event loop, where mutation
    happens between suspension points. Under preemptive threads, wrap
    access in a lock.
    """

    def __init__(
        self,
        ttl_seconds: float = 30 * 24 * 3600,
        max_entries: int = 1000,
        eviction_batch: int = 100,
        clock: Callable[[], float] = time.time,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.eviction_batch = max(1, eviction_batch)
        self._clock = clock
        # dict preserves insertion order: first key is the oldest
        self._entries: dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    async def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            self.misses += 1
            logger.debug("result_cache_expired", key=key)
            return None
        self.hits += 1
        return entry

    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> CacheEntry:
        now = self._clock()
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        # Re-insert so an overwritten key counts as newest
        self._entries.pop(key, None)
        entry = CacheEntry(key=key, value=value, stored_at=now, expires_at=now + ttl)
        self._entries[key] = entry

        if len(self._entries) > self.max_entries:
            self._purge_expired(now)
        if len(self._entries) > self.max_entries:
            self._evict_oldest()
        return entry

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def keys(self) -> list[str]:
        return list(self._entries)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("result_cache_purged", count=len(expired))

    def _evict_oldest(self) -> None:
        overflow = len(self._entries) - self.max_entries
        count = min(max(self.eviction_batch, overflow), len(self._entries) - 1)
        oldest = list(self._entries)[:count]
        for key in oldest:
            del self._entries[key]
        self.evictions += len(oldest)
        logger.info("result_cache_evicted", count=len(oldest), remaining=len(self._entries))

    def get_stats(self) -> dict:
        return {
            "entries": len(self._entries),
            "max_entries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
        }


# ============================================================================
# REDIS
# ============================================================================


class RedisResultCache(ResultCache):
    """
    Redis-backed result cache.

    Values are stored as JSON envelopes {"stored_at", "value"} with SETEX;
    Redis enforces expiry, and the server's maxmemory policy replaces the
    entry ceiling. Connection or command errors are logged and treated as
    misses so a cache outage never fails an assessment.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        client: Any = None,
        namespace: str = "hazardcast",
        ttl_seconds: float = 30 * 24 * 3600,
        serialize: Callable[[Any], Any] = lambda v: v.model_dump(mode="json") if hasattr(v, "model_dump") else v,
        clock: Callable[[], float] = time.time,
    ):
        self._url = url
        self._client = client
        self._namespace = namespace
        self.ttl_seconds = ttl_seconds
        self._serialize = serialize
        self._clock = clock

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    async def _get_client(self):
        if self._client is None:
            if not self._url:
                return None
            try:
                import redis.asyncio as aioredis

                self._client = aioredis.from_url(
                    self._url,
                    decode_responses=True,
                    socket_connect_timeout=3,
                )
                await self._client.ping()
                logger.info("redis_connected")
            except Exception as e:
                logger.warning("redis_unavailable", error=str(e))
                self._client = None
        return self._client

    async def get(self, key: str) -> Optional[CacheEntry]:
        try:
            client = await self._get_client()
            if client is None:
                return None
            raw = await client.get(self._key(key))
            if not raw:
                logger.debug("cache_miss", key=key)
                return None
            envelope = json.loads(raw)
            stored_at = float(envelope["stored_at"])
            logger.debug("cache_hit", key=key)
            return CacheEntry(
                key=key,
                value=envelope["value"],
                stored_at=stored_at,
                expires_at=float(envelope.get("expires_at", stored_at + self.ttl_seconds)),
            )
        except Exception as e:
            logger.warning("cache_get_error", key=key, error=str(e))
            return None

    async def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> CacheEntry:
        now = self._clock()
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        entry = CacheEntry(key=key, value=value, stored_at=now, expires_at=now + ttl)
        try:
            client = await self._get_client()
            if client is not None:
                envelope = {
                    "stored_at": now,
                    "expires_at": now + ttl,
                    "value": self._serialize(value),
                }
                await client.setex(self._key(key), int(ttl), json.dumps(envelope, default=str))
                logger.debug("cache_set", key=key, ttl=ttl)
        except Exception as e:
            logger.warning("cache_set_error", key=key, error=str(e))
        return entry

    async def delete(self, key: str) -> bool:
        try:
            client = await self._get_client()
            if client is None:
                return False
            return bool(await client.delete(self._key(key)))
        except Exception as e:
            logger.warning("cache_delete_error", key=key, error=str(e))
            return False

    async def clear(self) -> None:
        try:
            client = await self._get_client()
            if client is None:
                return
            keys = [k async for k in client.scan_iter(match=self._key("*"))]
            if keys:
                await client.delete(*keys)
        except Exception as e:
            logger.warning("cache_clear_error", error=str(e))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
