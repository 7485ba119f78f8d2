"""Tests for the in-memory TTL cache."""

import pytest

from helpdesk.shared.infrastructure.cache import InMemoryTTLCache


class FakeTimer:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class Loader:
    def __init__(self, value="v"):
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.value


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def cache(timer):
    return InMemoryTTLCache(timer=timer)


async def test_miss_then_hit(cache):
    loader = Loader()

    assert await cache.get_or_populate("k", loader, 60) == "v"
    assert await cache.get_or_populate("k", loader, 60) == "v"

    assert loader.calls == 1
    assert (cache.hits, cache.misses) == (1, 1)


async def test_expires_after_ttl(cache, timer):
    loader = Loader()
    await cache.get_or_populate("k", loader, 60)

    timer.now += 60
    await cache.get_or_populate("k", loader, 60)

    assert loader.calls == 2


async def test_zero_ttl_disables_caching(cache):
    loader = Loader()
    await cache.get_or_populate("k", loader, 0)
    await cache.get_or_populate("k", loader, 0)

    assert loader.calls == 2
    assert len(cache) == 0


async def test_loader_error_not_cached(cache):
    async def failing():
        raise LookupError("missing")

    with pytest.raises(LookupError):
        await cache.get_or_populate("k", failing, 60)

    assert len(cache) == 0


async def test_invalidate_drops_nested_keys(cache):
    for key in ("tickets:list:org1", "tickets:list:org1:status=open", "tickets:list:org2:limit=10"):
        await cache.get_or_populate(key, Loader(), 60)

    await cache.invalidate("tickets:list:org1")

    assert len(cache) == 1
    assert "tickets:list:org2:limit=10" in cache._entries


async def test_invalidate_does_not_match_partial_segment(cache):
    await cache.get_or_populate("ticket:org1:abc", Loader(), 60)
    await cache.get_or_populate("ticket:org1:abcdef", Loader(), 60)

    await cache.invalidate("ticket:org1:abc")

    assert list(cache._entries) == ["ticket:org1:abcdef"]


async def test_evicts_oldest_when_full(timer):
    cache = InMemoryTTLCache(max_entries=2, timer=timer)
    for key in ("a", "b", "c"):
        await cache.get_or_populate(key, Loader(key), 60)

    assert list(cache._entries) == ["b", "c"]


async def test_clear(cache):
    await cache.get_or_populate("k", Loader(), 60)
    await cache.clear()
    assert len(cache) == 0


async def test_load_overlapping_invalidation_is_not_stored(cache):
    calls = []

    async def loader():
        calls.append(len(calls))
        if len(calls) == 1:
            # A write lands while the first read is still loading
            await cache.invalidate("ticket:org:1")
            return "before update"
        return "after update"

    assert await cache.get_or_populate("ticket:org:1", loader, 60) == "before update"
    assert len(cache) == 0
    assert await cache.get_or_populate("ticket:org:1", loader, 60) == "after update"
    assert await cache.get_or_populate("ticket:org:1", loader, 60) == "after update"
    assert len(calls) == 2
