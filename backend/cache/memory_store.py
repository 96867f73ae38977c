"""
Memory Store Implementation

In-process key/value cache for API responses and transformed images.

Features:
- Per-entry TTL with lazy expiry on read
- Periodic sweep of expired entries (CacheSweeper)
- Optional max entry count with LRU eviction
- with_cache() read-through helper for async producers

The cache lives for the lifetime of the process and is never persisted.
Handlers share one instance created by the app factory.
"""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0  # 5 minutes
DEFAULT_CLEANUP_INTERVAL_SECONDS = 600.0  # 10 minutes


@dataclass
class CacheEntry:
    """
    Cache entry data structure
    """
    key: str
    value: Any
    stored_at: float                 # clock() value at insertion
    ttl: float                       # Time to live in seconds

    def is_expired(self, now: float) -> bool:
        """An entry is live while now - stored_at <= ttl"""
        return now - self.stored_at > self.ttl


class TTLCache:
    """
    In-memory TTL cache

    Features:
    - get/set/delete/clear with per-entry TTL
    - cleanup() removes every expired entry
    - LRU eviction when max_entries is set (unbounded otherwise)

    Not a request-coalescing cache by default: two callers racing on a
    cold key both run their producer. Pass coalesce=True to with_cache()
    to share one in-flight producer per key.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache

        Args:
            default_ttl: TTL in seconds used when set() gets no ttl
            max_entries: Maximum number of entries, None for unbounded
            clock: Time source, injectable for tests
        """
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive or None")

        self._store: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._inflight: Dict[str, "asyncio.Future[Any]"] = {}
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._clock = clock

        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Optional[Any]:
        """
        Get a live value

        Returns:
            The stored value, or None if absent or expired.
            Expired entries are deleted on the way out.
        """
        entry = self._live_entry(key)
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Insert or overwrite an entry

        Args:
            key: Cache key
            value: Payload (JSON-able object or bytes)
            ttl: Time to live in seconds, defaults to default_ttl
        """
        if ttl is None:
            ttl = self._default_ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        if key in self._store:
            del self._store[key]
        elif self._max_entries is not None and len(self._store) >= self._max_entries:
            self._make_room()

        self._store[key] = CacheEntry(
            key=key,
            value=value,
            stored_at=self._clock(),
            ttl=ttl,
        )

    def delete(self, key: str) -> bool:
        """
        Remove an entry

        Returns:
            True if an entry was removed, False if the key was absent
        """
        return self._store.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        """
        Remove every entry whose key starts with prefix

        Returns:
            Number of entries removed
        """
        keys = [k for k in self._store if k.startswith(prefix)]
        for k in keys:
            del self._store[k]
        return len(keys)

    def clear(self) -> int:
        """
        Remove all entries

        Returns:
            Number of entries removed
        """
        count = len(self._store)
        self._store.clear()
        return count

    def cleanup(self) -> int:
        """
        Remove every expired entry

        Returns:
            Number of entries removed
        """
        now = self._clock()
        expired = [k for k, v in self._store.items() if v.is_expired(now)]
        for k in expired:
            del self._store[k]
        if expired:
            logger.info(f"[TTLCache] Cleaned up {len(expired)} expired entries")
        return len(expired)

    async def with_cache(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any]],
        ttl: Optional[float] = None,
        coalesce: bool = False,
    ) -> Any:
        """
        Read-through helper

        On a hit the cached value is returned and producer is not called.
        On a miss producer() is awaited, its result stored under key and
        returned. Producer errors propagate unchanged and nothing is stored.

        Args:
            key: Cache key
            producer: Zero-argument callable returning an awaitable
            ttl: Time to live in seconds for the stored result
            coalesce: Share one in-flight producer between concurrent
                callers on the same key
        """
        entry = self._live_entry(key)
        if entry is not None:
            logger.debug(f"[TTLCache] Hit: {key}")
            return entry.value

        if not coalesce:
            value = await producer()
            self.set(key, value, ttl)
            return value

        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug(f"[TTLCache] Joining in-flight producer: {key}")
            return await asyncio.shield(pending)

        future: "asyncio.Future[Any]" = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await producer()
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unjoined future does not warn on GC
            future.exception()
            raise
        except BaseException:
            future.cancel()
            raise
        else:
            self.set(key, value, ttl)
            future.set_result(value)
            return value
        finally:
            self._inflight.pop(key, None)

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics
        """
        now = self._clock()
        live = sum(1 for e in self._store.values() if not e.is_expired(now))
        return {
            "total_entries": len(self._store),
            "live_entries": live,
            "max_entries": self._max_entries,
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "inflight": len(self._inflight),
            "default_ttl_seconds": self._default_ttl,
        }

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for e in self._store.values() if not e.is_expired(now))

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        entry = self._store.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def _live_entry(self, key: str) -> Optional[CacheEntry]:
        """Like get() but returns the entry, so stored falsy values still count as hits"""
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            return None
        if entry.is_expired(self._clock()):
            del self._store[key]
            self._misses += 1
            logger.debug(f"[TTLCache] Expired: {key}")
            return None
        self._store.move_to_end(key)
        self._hits += 1
        return entry

    def _make_room(self) -> None:
        """
        Drop expired entries, then the least recently used ones,
        until one slot is free
        """
        self.cleanup()
        while self._max_entries is not None and len(self._store) >= self._max_entries:
            oldest_key, _ = self._store.popitem(last=False)
            self._evictions += 1
            logger.debug(f"[TTLCache] LRU evicted: {oldest_key}")


class CacheSweeper:
    """
    Background task that calls cache.cleanup() on a fixed interval.

    Started and stopped by the application lifespan.
    """

    def __init__(self, cache: TTLCache, interval: float = DEFAULT_CLEANUP_INTERVAL_SECONDS):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.cache = cache
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="ttl-cache-sweeper")
        logger.info(f"[TTLCache] Sweeper started (every {self.interval:.0f}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[TTLCache] Sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                self.cache.cleanup()
            except Exception as e:
                logger.error(f"[TTLCache] Cleanup failed: {e}")
