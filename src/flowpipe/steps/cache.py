"""
Cache Step

Memoizes the result of the rest of the chain per payload.

Author: flowpipe Team
Date: 2025-06-11
"""

import hashlib
import pickle
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from loguru import logger

from ..core.step import Continuation, Step

_MISSING = object()


def payload_digest(payload: Any) -> str:
    """md5 hex digest of a payload (pickled, falling back to its repr)."""
    try:
        data = pickle.dumps(payload)
    except (pickle.PicklingError, TypeError, AttributeError):
        data = repr(payload).encode("utf-8")
    return hashlib.md5(data).hexdigest()


class MemoryCacheStore:
    """
    In-memory key/value store with per-entry TTL (seconds).

    A ``ttl`` of ``None`` or ``0`` stores the value without expiry. Expired
    entries are dropped when read, and every ``sweep_every`` writes all
    expired entries are purged.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_every: int = 100):
        self._entries: Dict[str, Tuple[Any, Optional[float]]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_every = max(1, sweep_every)
        self._writes = 0

    def _lookup(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        value, expires_at = entry
        if expires_at is not None and self._clock() >= expires_at:
            del self._entries[key]
            return _MISSING
        return value

    def has(self, key: str) -> bool:
        with self._lock:
            return self._lookup(key) is not _MISSING

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            value = self._lookup(key)
        return default if value is _MISSING else value

    def put(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            self._entries[key] = (value, expires_at)
            self._writes += 1
            if self._writes % self._sweep_every == 0:
                self._purge()

    def _purge(self) -> int:
        now = self._clock()
        expired = [
            key for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Purged {len(expired)} expired cache entries")
        return len(expired)

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            return self._purge()

    def forget(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, _MISSING) is not _MISSING

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_default_store = MemoryCacheStore()


def default_store() -> MemoryCacheStore:
    """Process-wide store shared by cache steps built without one."""
    return _default_store


class CacheStep(Step):
    """
    Return a cached result for payloads seen before.

    On a miss the rest of the chain runs and its result is stored under
    ``flowpipe.{key}.{md5(payload)}`` for ``ttl`` seconds. On a hit the
    chain is short-circuited with the stored result.

    Example:
        CacheStep("exchange-rates", ttl=600)
    """

    def __init__(self, key: str, ttl: int = 3600, store: Optional[MemoryCacheStore] = None):
        self.key = key
        self.ttl = ttl
        self.store = store if store is not None else default_store()

    def cache_key(self, payload: Any) -> str:
        return f"flowpipe.{self.key}.{payload_digest(payload)}"

    def handle(self, payload: Any, next: Continuation) -> Any:
        cache_key = self.cache_key(payload)

        if self.store.has(cache_key):
            logger.debug(f"Cache hit: {cache_key}")
            return self.store.get(cache_key)

        logger.debug(f"Cache miss: {cache_key}")
        result = next(payload)
        self.store.put(cache_key, result, self.ttl)
        return result

    def __repr__(self) -> str:
        return f"CacheStep(key='{self.key}', ttl={self.ttl})"
