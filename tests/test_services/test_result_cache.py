"""
Result Cache Tests — keying, TTL, eviction, Redis degradation.
"""

import json

import pytest

from conftest import FakeClock
from hazardcast.engine.validation import validate_coordinate
from hazardcast.schemas.hazards import HazardType
from hazardcast.services.cache import InMemoryResultCache, RedisResultCache, build_cache_key


class TestBuildCacheKey:
    """Test deterministic keys."""

    def test_format(self):
        coord = validate_coordinate(29.7604, -95.3698)
        key = build_cache_key(coord, [HazardType.HEAT, HazardType.FLOOD])
        assert key == "climate:29.760400,-95.369800:flood,heat"

    def test_rounding_beyond_precision(self):
        a = build_cache_key(validate_coordinate(1.00000001, 2.0), [HazardType.FLOOD])
        b = build_cache_key(validate_coordinate(1.00000004, 2.0), [HazardType.FLOOD])
        assert a == b

    def test_sign_straddling_zero(self):
        """Tiny values either side of zero share the positive-zero key."""
        a = build_cache_key(validate_coordinate(0.0000001, -0.0), [HazardType.FLOOD])
        b = build_cache_key(validate_coordinate(-0.0000001, 0.0), [HazardType.FLOOD])
        assert a == b
        assert a == "climate:0.000000,0.000000:flood"

    def test_distinct_coordinates(self):
        a = build_cache_key(validate_coordinate(1.000001, 2.0), [HazardType.FLOOD])
        b = build_cache_key(validate_coordinate(1.000002, 2.0), [HazardType.FLOOD])
        assert a != b

    def test_duplicates_and_order(self):
        coord = validate_coordinate(0, 0)
        assert build_cache_key(coord, ["heat", "flood", "heat"]) == build_cache_key(coord, ["flood", "heat"])


@pytest.mark.asyncio
class TestInMemoryResultCache:
    """Test TTL and oldest-first eviction."""

    def setup_method(self):
        self.clock = FakeClock()

    async def test_set_and_get(self):
        cache = InMemoryResultCache(clock=self.clock)
        await cache.set("k", "v")
        entry = await cache.get("k")
        assert entry.value == "v"
        assert cache.hits == 1

    async def test_miss(self):
        cache = InMemoryResultCache(clock=self.clock)
        assert await cache.get("missing") is None
        assert cache.misses == 1

    async def test_lazy_expiry(self):
        """Expired entries are dropped on read."""
        cache = InMemoryResultCache(ttl_seconds=10, clock=self.clock)
        await cache.set("k", "v")
        self.clock.advance(9)
        assert await cache.get("k") is not None
        self.clock.advance(1)
        assert await cache.get("k") is None
        assert "k" not in cache

    async def test_per_entry_ttl(self):
        cache = InMemoryResultCache(ttl_seconds=10, clock=self.clock)
        await cache.set("k", "v", ttl_seconds=100)
        self.clock.advance(50)
        assert await cache.get("k") is not None

    async def test_age(self):
        cache = InMemoryResultCache(clock=self.clock)
        await cache.set("k", "v")
        self.clock.advance(3600)
        entry = await cache.get("k")
        assert entry.age_seconds(self.clock()) == 3600

    async def test_eviction_batch(self):
        """Crossing the ceiling drops the oldest batch at once."""
        cache = InMemoryResultCache(max_entries=10, eviction_batch=3, clock=self.clock)
        for i in range(11):
            await cache.set(f"k{i}", i)
        assert len(cache) == 8
        assert cache.keys()[0] == "k3"
        assert cache.evictions == 3

    async def test_expired_entries_purged_before_eviction(self):
        """Unread expired entries go first; live ones survive the overflow."""
        cache = InMemoryResultCache(ttl_seconds=60, max_entries=3, eviction_batch=3, clock=self.clock)
        await cache.set("old1", 1)
        await cache.set("old2", 2)
        self.clock.advance(61)
        await cache.set("live1", 3)
        await cache.set("live2", 4)
        assert cache.keys() == ["live1", "live2"]
        assert cache.evictions == 0

    async def test_eviction_is_insertion_order_not_lru(self):
        """Reading an old entry does not protect it from eviction."""
        cache = InMemoryResultCache(max_entries=3, eviction_batch=1, clock=self.clock)
        for key in ("a", "b", "c"):
            await cache.set(key, key)
        await cache.get("a")
        await cache.set("d", "d")
        assert "a" not in cache
        assert cache.keys() == ["b", "c", "d"]

    async def test_overwrite_counts_as_newest(self):
        cache = InMemoryResultCache(max_entries=3, eviction_batch=1, clock=self.clock)
        for key in ("a", "b", "c"):
            await cache.set(key, key)
        await cache.set("a", "a2")
        await cache.set("d", "d")
        assert cache.keys() == ["c", "a", "d"]

    async def test_never_evicts_new_entry(self):
        """A batch larger than the cache keeps at least the newest entry."""
        cache = InMemoryResultCache(max_entries=1, eviction_batch=100, clock=self.clock)
        await cache.set("a", 1)
        await cache.set("b", 2)
        assert cache.keys() == ["b"]

    async def test_delete_and_clear(self):
        cache = InMemoryResultCache(clock=self.clock)
        await cache.set("a", 1)
        await cache.set("b", 2)
        assert await cache.delete("a") is True
        assert await cache.delete("a") is False
        await cache.clear()
        assert len(cache) == 0

    async def test_stats(self):
        cache = InMemoryResultCache(max_entries=5, clock=self.clock)
        await cache.set("a", 1)
        await cache.get("a")
        await cache.get("b")
        stats = cache.get_stats()
        assert stats == {"entries": 1, "max_entries": 5, "hits": 1, "misses": 1, "evictions": 0}


class TestInMemoryConfig:
    def test_invalid_config(self):
        with pytest.raises(ValueError):
            InMemoryResultCache(ttl_seconds=0)
        with pytest.raises(ValueError):
            InMemoryResultCache(max_entries=0)


class FakeRedis:
    """Minimal async stand-in for the redis.asyncio commands the cache uses."""

    def __init__(self, fail: bool = False):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.fail = fail

    async def get(self, key):
        if self.fail:
            raise ConnectionError("redis down")
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        if self.fail:
            raise ConnectionError("redis down")
        self.store[key] = value
        self.ttls[key] = ttl

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            removed += self.store.pop(key, None) is not None
        return removed

    async def scan_iter(self, match=None):
        prefix = match.rstrip("*")
        for key in list(self.store):
            if key.startswith(prefix):
                yield key

    async def aclose(self):
        pass


@pytest.mark.asyncio
class TestRedisResultCache:
    """Test the shared cache against a fake client."""

    async def test_round_trip_envelope(self):
        redis = FakeRedis()
        clock = FakeClock()
        cache = RedisResultCache(client=redis, ttl_seconds=600, clock=clock)
        await cache.set("climate:k", {"score": 5})

        raw = json.loads(redis.store["hazardcast:climate:k"])
        assert raw["value"] == {"score": 5}
        assert redis.ttls["hazardcast:climate:k"] == 600

        entry = await cache.get("climate:k")
        assert entry.value == {"score": 5}
        assert entry.stored_at == clock()

    async def test_miss(self):
        cache = RedisResultCache(client=FakeRedis())
        assert await cache.get("nope") is None

    async def test_errors_degrade_to_miss(self):
        """A Redis outage never raises into the caller."""
        cache = RedisResultCache(client=FakeRedis(fail=True))
        await cache.set("k", {"a": 1})
        assert await cache.get("k") is None

    async def test_no_url_no_client(self):
        cache = RedisResultCache()
        await cache.set("k", 1)
        assert await cache.get("k") is None

    async def test_delete_and_clear_namespace(self):
        redis = FakeRedis()
        redis.store["other:x"] = "1"
        cache = RedisResultCache(client=redis)
        await cache.set("a", 1)
        await cache.set("b", 2)
        assert await cache.delete("a") is True
        await cache.clear()
        assert list(redis.store) == ["other:x"]
