"""
patchrun — bounded LRU cache in front of a byte source

File: src/patchrun/bytecode/cache.py
Last updated: 2026-10-18

Purpose
- Memoize class-byte lookups for the duration of a run. Engine workers call ``fetch``
  from many threads; a cold key is computed once and every concurrent caller receives
  that same result.

Functional requirements
- Capacity-bounded; the least recently accessed entry is evicted first.
- ``None`` (class not found) is a cacheable result.
- A lookup that raises is not cached; the error reaches every caller waiting on it.
- Invalidating a name while its lookup is running keeps that result out of the cache.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass

from patchrun.bytecode.layers import ByteSourceLayer, normalize_class_name
from patchrun.constants import BYTE_SOURCE_CACHE_SIZE


@dataclass(frozen=True, slots=True)
class CacheStats:
    hits: int
    misses: int
    size: int
    capacity: int
    evictions: int = 0


class CachingByteSource:
    """Thread-safe single-flight LRU over a ``ByteSourceLayer``."""

    def __init__(self, source: ByteSourceLayer, *, capacity: int = BYTE_SOURCE_CACHE_SIZE) -> None:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity <= 0:
            raise ValueError("capacity must be a positive integer")
        self._source = source
        self._capacity = capacity
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, bytes | None] = OrderedDict()
        self._in_flight: dict[str, Future[bytes | None]] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def source(self) -> ByteSourceLayer:
        return self._source

    def fetch(self, class_name: str) -> bytes | None:
        key = normalize_class_name(class_name)
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                self._hits += 1
                return self._entries[key]
            pending = self._in_flight.get(key)
            owner = pending is None
            if pending is None:
                pending = Future()
                self._in_flight[key] = pending
                self._misses += 1
            else:
                self._hits += 1

        if not owner:
            return pending.result()

        try:
            value = self._source.fetch(key)
        except BaseException as exc:
            with self._lock:
                self._release(key, pending)
            pending.set_exception(exc)
            raise

        with self._lock:
            # A lookup detached by invalidate() must not repopulate the cache.
            if self._release(key, pending):
                self._store(key, value)
        pending.set_result(value)
        return value

    __call__ = fetch

    def cached(self, class_name: str) -> bool:
        """Whether ``class_name`` currently has an entry; does not touch recency."""

        with self._lock:
            return normalize_class_name(class_name) in self._entries

    def invalidate(self, class_name: str | None = None) -> None:
        """Drop one entry, or every entry when no name is given.

        Lookups still running for a dropped name are detached: their callers get the
        value, but it is not stored, and the next ``fetch`` asks the source again.
        """

        with self._lock:
            if class_name is None:
                self._entries.clear()
                self._in_flight.clear()
            else:
                key = normalize_class_name(class_name)
                self._entries.pop(key, None)
                self._in_flight.pop(key, None)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                capacity=self._capacity,
                evictions=self._evictions,
            )

    def _release(self, key: str, pending: Future[bytes | None]) -> bool:
        if self._in_flight.get(key) is not pending:
            return False
        del self._in_flight[key]
        return True

    def _store(self, key: str, value: bytes | None) -> None:
        self._entries[key] = value
        self._entries.move_to_end(key)
        while len(self._entries) > self._capacity:
            self._entries.popitem(last=False)
            self._evictions += 1


__all__ = ["CacheStats", "CachingByteSource"]
