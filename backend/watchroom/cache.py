"""In-process TTL cache with stale fallback for read-mostly lookups.

Uses cachetools.TTLCache. Only browsing data (the video catalog listing and
user lookups) goes through here; vote tallies and playback cursors are always
read from the database.

When the database is unavailable, cached reads fall back to the last value
seen (even if its TTL expired) so browsing keeps working.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

from watchroom.errors import StorageError

logger = logging.getLogger(__name__)

# Distinguishes "not in cache" from a cached None
MISSING = object()

F = TypeVar("F", bound=Callable[..., Any])


class AsyncTTLCache:
    """Async-aware TTL cache backed by a bounded last-known-good store.

    ``_fresh`` holds values until *ttl* expires. ``_stale`` keeps the most
    recent *maxsize* values regardless of age and is read only when the
    database fails.
    """

    def __init__(self, maxsize: int = 128, ttl: float = 60.0):
        self._maxsize = maxsize
        self._fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._stale: OrderedDict[str, Any] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        # Bumped by every invalidation; a read started under an older
        # generation must not store its result
        self._generation = 0

    def lock_for(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            if len(self._locks) >= self._maxsize * 2:
                for k in [k for k in self._locks if k not in self._stale]:
                    del self._locks[k]
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def get(self, key: str) -> Any:
        """Return the fresh value or ``MISSING``."""
        return self._fresh.get(key, MISSING)

    def set(self, key: str, value: Any) -> None:
        self._fresh[key] = value
        self._stale[key] = value
        self._stale.move_to_end(key)
        while len(self._stale) > self._maxsize:
            self._stale.popitem(last=False)

    def invalidate(self, key: str) -> None:
        """Drop the fresh value; the stale copy survives."""
        self._generation += 1
        self._fresh.pop(key, None)

    def clear(self, *, stale: bool = False) -> None:
        """Drop fresh values; with ``stale`` also forget the fallback copies."""
        self._generation += 1
        self._fresh.clear()
        if stale:
            self._stale.clear()

    def get_stale(self, key: str) -> Any:
        """Return the last-known-good value or ``MISSING``."""
        value = self._stale.get(key, MISSING)
        if value is not MISSING:
            self._stale.move_to_end(key)
        return value

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def size(self) -> int:
        return len(self._fresh)

    @property
    def stale_size(self) -> int:
        return len(self._stale)


def cached(
    cache: AsyncTTLCache,
    key_func: Callable[..., str],
    *,
    retry: int = 3,
    retry_delay: float = 1.0,
):
    """Cache the result of an async repository/service read.

    Parameters
    ----------
    cache : AsyncTTLCache
        The cache instance to use.
    key_func : callable
        Receives the decorated function's ``(*args, **kwargs)`` and returns
        the cache key.
    retry : int
        Attempts made when the read raises ``StorageError``.
    retry_delay : float
        Base delay between attempts; grows linearly.

    After the last failed attempt the stale value is returned with a warning.
    With no stale value the ``StorageError`` propagates. A result read while
    the cache was invalidated is returned but not stored.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            key = key_func(*args, **kwargs)

            result = cache.get(key)
            if result is not MISSING:
                return result

            async with cache.lock_for(key):
                result = cache.get(key)
                if result is not MISSING:
                    return result

                last_exc: StorageError | None = None
                for attempt in range(1, retry + 1):
                    generation = cache.generation
                    try:
                        result = await func(*args, **kwargs)
                    except StorageError as exc:
                        last_exc = exc
                        if attempt < retry:
                            delay = retry_delay * attempt
                            logger.warning(
                                "Read attempt %d/%d failed for %s: %s, retrying in %.1fs",
                                attempt,
                                retry,
                                key,
                                exc,
                                delay,
                            )
                            await asyncio.sleep(delay)
                        continue
                    if cache.generation == generation:
                        cache.set(key, result)
                    else:
                        logger.debug("Not caching %s: invalidated during the read", key)
                    return result

                stale = cache.get_stale(key)
                if stale is not MISSING:
                    logger.warning("Returning stale data for %s (%s)", key, last_exc)
                    return stale

                assert last_exc is not None
                raise last_exc

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
