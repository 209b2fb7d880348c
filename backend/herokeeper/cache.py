"""In-process TTL cache for roster and settings reads.

Backed by cachetools.TTLCache. Every process keeps its own instances, so the
Discord bot and the API each cache independently and writes only invalidate
the local copy.

Reads that hit a database outage fall back to the last value that was ever
loaded for the key (the "stale" tier), so a campaign's roster and hero point
settings keep working while PostgreSQL is unreachable.
"""

import asyncio
import functools
import logging
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, TypeVar

from cachetools import TTLCache  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)

# Distinguishes "not cached" from a cached None
_MISSING = object()

F = TypeVar("F", bound=Callable[..., Any])


class AsyncTTLCache:
    """TTL cache with a bounded last-known-good store behind it."""

    def __init__(self, maxsize: int = 128, ttl: float = 60.0):
        self._maxsize = maxsize
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._stale: OrderedDict[str, Any] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}

    def _get_lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
            if len(self._locks) > self._maxsize * 2:
                for k in [k for k in self._locks if k not in self._stale]:
                    if k != key:
                        del self._locks[k]
        return lock

    def get(self, key: str) -> Any:
        """Return the fresh value or ``_MISSING``."""
        return self._cache.get(key, _MISSING)

    def set(self, key: str, value: Any) -> None:
        self._cache[key] = value
        self._stale[key] = value
        self._stale.move_to_end(key)
        while len(self._stale) > self._maxsize:
            self._stale.popitem(last=False)

    def invalidate(self, key: str) -> None:
        """Drop the fresh value. The stale copy is kept for outages."""
        self._cache.pop(key, None)

    def clear(self) -> None:
        self._cache.clear()

    def get_stale(self, key: str) -> Any:
        value = self._stale.get(key, _MISSING)
        if value is not _MISSING:
            self._stale.move_to_end(key)
        return value

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
    """Cache the result of an async repository read.

    Parameters
    ----------
    cache : AsyncTTLCache
        Cache instance shared by the decorated method.
    key_func : callable
        Called with the decorated function's arguments, returns the key.
    retry : int
        Attempts against the database before giving up.
    retry_delay : float
        Base delay in seconds, multiplied by the attempt number.

    When every attempt fails the stale value is returned (with a warning).
    Without a stale value the last exception propagates.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            cache_key = key_func(*args, **kwargs)

            result = cache.get(cache_key)
            if result is not _MISSING:
                return result

            async with cache._get_lock(cache_key):
                result = cache.get(cache_key)
                if result is not _MISSING:
                    return result

                last_exc: BaseException | None = None
                for attempt in range(1, retry + 1):
                    try:
                        result = await func(*args, **kwargs)
                        cache.set(cache_key, result)
                        return result
                    except asyncio.CancelledError:
                        raise
                    except Exception as exc:
                        last_exc = exc
                        if attempt < retry:
                            delay = retry_delay * attempt
                            logger.warning(
                                "DB attempt %d/%d failed for %s: %s, retrying in %.1fs",
                                attempt,
                                retry,
                                cache_key,
                                type(exc).__name__,
                                delay,
                            )
                            await asyncio.sleep(delay)

                stale = cache.get_stale(cache_key)
                if stale is not _MISSING:
                    logger.warning(
                        "Returning stale data for %s (%s)",
                        cache_key,
                        type(last_exc).__name__,
                    )
                    return stale

                raise last_exc  # type: ignore[misc]

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
