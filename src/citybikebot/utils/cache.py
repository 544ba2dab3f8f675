from __future__ import annotations

from dataclasses import dataclass, field
import logging
import threading
import time
from typing import Any, Callable, Optional, TypeVar


from citybikebot.config.models import CacheSettings


logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


@dataclass
class _Entry:
    value: Any
    created_at: float


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    # Callers currently waiting on or holding `lock`; the entry is dropped when it reaches zero.
    users: int = 0


class MemoryCache:
    """
    Process-wide in-memory cache for expensive external lookups.

    `get_or_set` is single-flight per key: while one caller runs the factory for a key,
    concurrent callers for the same key wait for it and then read the cached value instead
    of issuing a duplicate call. A factory that raises leaves nothing behind, so the next
    caller retries the fetch.
    """

    def __init__(self, settings: CacheSettings, *, now_fn: Callable[[], float] = time.monotonic) -> None:
        self._ttl = settings.ttl_seconds
        self._max_entries = max(int(settings.max_entries), 1)
        self._now = now_fn
        self._entries: dict[str, _Entry] = {}
        self._key_locks: dict[str, _KeyLock] = {}
        # Guards `_entries` and `_key_locks`; never held while a factory runs.
        self._guard = threading.Lock()

    def make_key(self, namespace: str, key: str) -> str:
        return f"{namespace}:{key}"

    def _is_expired(self, entry: _Entry) -> bool:
        return self._ttl > 0 and (self._now() - entry.created_at) > self._ttl

    def _lookup(self, key: str) -> Any:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            if self._is_expired(entry):
                del self._entries[key]
                return _MISSING
            return entry.value

    def get(self, key: str) -> Optional[Any]:
        value = self._lookup(key)
        return None if value is _MISSING else value

    def set(self, key: str, value: Any) -> None:
        with self._guard:
            self._entries[key] = _Entry(value=value, created_at=self._now())
            while len(self._entries) > self._max_entries:
                # dicts keep insertion order, so the first key is the oldest write.
                oldest = next(iter(self._entries))
                del self._entries[oldest]

    def invalidate(self, key: str) -> None:
        with self._guard:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    @property
    def in_flight(self) -> int:
        """Number of keys with a caller currently inside `get_or_set`."""
        with self._guard:
            return len(self._key_locks)

    def _acquire_key_lock(self, key: str) -> _KeyLock:
        with self._guard:
            key_lock = self._key_locks.get(key)
            if key_lock is None:
                key_lock = _KeyLock()
                self._key_locks[key] = key_lock
            key_lock.users += 1
            return key_lock

    def _release_key_lock(self, key: str, key_lock: _KeyLock) -> None:
        with self._guard:
            key_lock.users -= 1
            if key_lock.users == 0:
                del self._key_locks[key]

    def get_or_set(self, key: str, factory: Callable[[], T]) -> T:
        value = self._lookup(key)
        if value is not _MISSING:
            return value

        key_lock = self._acquire_key_lock(key)
        try:
            with key_lock.lock:
                # Another caller may have filled the entry while we waited for the key lock.
                value = self._lookup(key)
                if value is not _MISSING:
                    return value

                logger.debug("Cache miss for %s", key)
                value = factory()
                # Only successful results are stored.
                self.set(key, value)
                return value
        finally:
            self._release_key_lock(key, key_lock)
