"""
Unit Tests - Read Cache
"""
import fnmatch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from pcstore.serving.cache import CacheManager, set_redis


class InMemoryRedis:
    """Subset of the redis.asyncio client used by the cache helpers"""

    def __init__(self):
        self.store = {}
        self.ttls = {}
        self.down = False

    def _check(self):
        if self.down:
            raise RedisConnectionError("connection refused")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def set(self, key, value):
        self._check()
        self.store[key] = value

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl

    async def keys(self, pattern):
        self._check()
        return [k for k in self.store if fnmatch.fnmatch(k, pattern)]

    async def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            removed += self.store.pop(key, None) is not None
        return removed


@pytest.fixture
def fake_redis():
    client = InMemoryRedis()
    set_redis(client)
    yield client
    set_redis(None)


class TestCacheManager:
    """Tests for CacheManager"""

    async def test_roundtrip_with_default_ttl(self, fake_redis):
        """Test values are namespaced and expire"""
        cache = CacheManager("products", default_ttl=120)

        assert await cache.set("abc", {"name": "RTX 4090"}) is True
        assert await cache.get("abc") == {"name": "RTX 4090"}
        assert fake_redis.ttls["products:abc"] == 120

    async def test_invalidate_namespace_only(self, fake_redis):
        """Test invalidation leaves other namespaces alone"""
        products = CacheManager("products")
        categories = CacheManager("categories")
        await products.set("1", {"a": 1})
        await products.set("2", {"a": 2})
        await categories.set("1", {"b": 1})

        assert await products.invalidate_all() == 2
        assert await products.get("1") is None
        assert await categories.get("1") == {"b": 1}

    async def test_redis_errors_are_misses(self, fake_redis):
        """Test an unavailable Redis degrades to no caching"""
        cache = CacheManager("products")
        fake_redis.down = True

        assert await cache.set("1", {"a": 1}) is False
        assert await cache.get("1") is None
        assert await cache.invalidate_all() == 0

    async def test_without_client(self):
        """Test every operation passes through when Redis is not initialized"""
        set_redis(None)
        cache = CacheManager("products")

        assert await cache.set("1", {"a": 1}) is False
        assert await cache.get("1") is None
        assert await cache.invalidate_all() == 0
