import asyncio

import pytest

from watchroom.cache import MISSING, AsyncTTLCache, cached
from watchroom.errors import StorageError


def test_invalidate_keeps_stale_copy():
    cache = AsyncTTLCache(maxsize=4, ttl=60)
    cache.set("k", [1])
    cache.invalidate("k")
    assert cache.get("k") is MISSING
    assert cache.get_stale("k") == [1]


def test_stale_store_is_bounded():
    cache = AsyncTTLCache(maxsize=2, ttl=60)
    for key in ("a", "b", "c"):
        cache.set(key, key)
    assert cache.stale_size == 2
    assert cache.get_stale("a") is MISSING


def test_clear_stale():
    cache = AsyncTTLCache()
    cache.set("k", 1)
    cache.clear()
    assert cache.get_stale("k") == 1
    cache.clear(stale=True)
    assert cache.get_stale("k") is MISSING


async def test_cached_hits_source_once():
    cache = AsyncTTLCache()
    calls = []

    @cached(cache=cache, key_func=lambda name: f"k:{name}")
    async def load(name):
        calls.append(name)
        return name.upper()

    assert await load("a") == "A"
    assert await load("a") == "A"
    assert calls == ["a"]


async def test_cached_falls_back_to_stale_on_storage_error():
    cache = AsyncTTLCache()
    fail = False

    @cached(cache=cache, key_func=lambda: "k", retry=2, retry_delay=0)
    async def load():
        if fail:
            raise StorageError("down")
        return "fresh"

    assert await load() == "fresh"
    cache.invalidate("k")
    fail = True
    assert await load() == "fresh"


async def test_cached_raises_without_stale_value():
    cache = AsyncTTLCache()
    attempts = []

    @cached(cache=cache, key_func=lambda: "k", retry=3, retry_delay=0)
    async def load():
        attempts.append(1)
        raise StorageError("down")

    with pytest.raises(StorageError):
        await load()
    assert len(attempts) == 3


async def test_cached_does_not_retry_other_errors():
    cache = AsyncTTLCache()
    attempts = []

    @cached(cache=cache, key_func=lambda: "k", retry=3, retry_delay=0)
    async def load():
        attempts.append(1)
        raise KeyError("bug")

    with pytest.raises(KeyError):
        await load()
    assert len(attempts) == 1


async def test_read_overlapping_an_invalidation_is_not_stored():
    cache = AsyncTTLCache()
    release = asyncio.Event()
    versions = iter(["before", "after"])

    @cached(cache=cache, key_func=lambda: "k")
    async def load():
        value = next(versions)
        if value == "before":
            await release.wait()
        return value

    pending = asyncio.create_task(load())
    await asyncio.sleep(0)
    cache.invalidate("k")
    release.set()

    assert await pending == "before"
    assert cache.get("k") is MISSING
    assert await load() == "after"
