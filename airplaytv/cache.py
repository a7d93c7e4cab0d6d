"""In-memory cache with per-entry expiry."""

from __future__ import annotations

import threading
import time
from datetime import timedelta
from typing import Any, Callable, Hashable

_PURGE_THRESHOLD = 4096


def _seconds(ttl: float | timedelta | None) -> float | None:
    if ttl is None:
        return None
    if isinstance(ttl, timedelta):
        ttl = ttl.total_seconds()
    return ttl if ttl > 0 else None


class TTLCache:
    """A thread-safe mapping whose entries may expire after a time-to-live."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._items: dict[Hashable, tuple[Any, float | None]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            entry = self._items.get(key)
            if entry is None:
                return default
            value, expires = entry
            if expires is not None and self._clock() >= expires:
                del self._items[key]
                return default
            return value

    def set(self, key: Hashable, value: Any, ttl: float | timedelta | None = None) -> None:
        seconds = _seconds(ttl)
        with self._lock:
            now = self._clock()
            if len(self._items) >= _PURGE_THRESHOLD:
                self._purge(now)
            self._items[key] = (value, None if seconds is None else now + seconds)

    def delete(self, key: Hashable) -> None:
        with self._lock:
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def _purge(self, now: float) -> None:
        expired = [k for k, (_, exp) in self._items.items() if exp is not None and now >= exp]
        for key in expired:
            del self._items[key]

    def __contains__(self, key: Hashable) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def __len__(self) -> int:
        with self._lock:
            self._purge(self._clock())
            return len(self._items)


_SHARED = TTLCache()


def shared_cache() -> TTLCache:
    """The process-wide cache used by source handlers."""
    return _SHARED


def with_cache(key: Hashable, ttl: float | timedelta | None, compute: Callable[[], Any]) -> Any:
    """Return the cached value for key, computing and storing it when absent."""
    cache = shared_cache()
    value = cache.get(key)
    if value is not None:
        return value
    value = compute()
    cache.set(key, value, ttl)
    return value


def get_set_cache(key: Hashable, ttl: float | timedelta | None) -> bool:
    """Report whether key is already marked; mark it when it is not."""
    cache = shared_cache()
    if cache.get(key) is not None:
        return True
    cache.set(key, True, ttl)
    return False