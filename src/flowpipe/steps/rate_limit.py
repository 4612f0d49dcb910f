"""
Rate Limit Step

Throttles the rest of the chain per key using an in-memory fixed-window
limiter.

Author: flowpipe Team
Date: 2025-06-11
"""

import math
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

from loguru import logger

from ..core.errors import RateLimitExceededError
from ..core.step import Continuation, Step
from .cache import payload_digest


class RateLimiter:
    """
    Thread-safe in-memory hit counter with per-key decay windows.

    A window opens on the first hit of a key and lasts ``decay_seconds``;
    the counter resets once the window has elapsed. Every ``sweep_every``
    hits, keys whose window has elapsed are purged.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_every: int = 100):
        self._hits: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_every = max(1, sweep_every)
        self._total_hits = 0

    def _current(self, key: str) -> Tuple[int, float]:
        count, expires_at = self._hits.get(key, (0, 0.0))
        if count and self._clock() >= expires_at:
            del self._hits[key]
            return 0, 0.0
        return count, expires_at

    def attempts(self, key: str) -> int:
        with self._lock:
            return self._current(key)[0]

    def too_many_attempts(self, key: str, max_attempts: int) -> bool:
        return self.attempts(key) >= max_attempts

    def hit(self, key: str, decay_seconds: int = 60) -> int:
        """Record a hit and return the hit count of the current window."""
        with self._lock:
            count, expires_at = self._current(key)
            if count == 0:
                expires_at = self._clock() + decay_seconds
            self._hits[key] = (count + 1, expires_at)
            self._total_hits += 1
            if self._total_hits % self._sweep_every == 0:
                self._purge()
            return count + 1

    def _purge(self) -> int:
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._hits.items() if now >= expires_at]
        for key in expired:
            del self._hits[key]
        return len(expired)

    def purge_expired(self) -> int:
        """Drop every key whose window has elapsed and return how many were removed."""
        with self._lock:
            return self._purge()

    def __len__(self) -> int:
        with self._lock:
            return len(self._hits)

    def available_in(self, key: str) -> int:
        """Seconds until the window of ``key`` resets (0 if it is open)."""
        with self._lock:
            count, expires_at = self._current(key)
            if count == 0:
                return 0
            return max(0, math.ceil(expires_at - self._clock()))

    def clear(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


_default_limiter = RateLimiter()


def default_limiter() -> RateLimiter:
    """Process-wide limiter shared by steps built without one."""
    return _default_limiter


class RateLimitStep(Step):
    """
    Reject payloads once a key has been hit ``max_attempts`` times within
    ``decay_minutes``.

    The limiter key is ``"{key}:{suffix}"`` where the suffix comes from
    ``key_generator(payload)`` or, without one, from an md5 digest of the
    payload. A hit is recorded only after the rest of the chain succeeds.

    Raises:
        RateLimitExceededError: When the key is over its limit
    """

    def __init__(
        self,
        key: str,
        max_attempts: int = 60,
        decay_minutes: int = 1,
        key_generator: Optional[Callable[[Any], Any]] = None,
        limiter: Optional[RateLimiter] = None
    ):
        self.key = key
        self.max_attempts = max_attempts
        self.decay_minutes = decay_minutes
        self.key_generator = key_generator
        self.limiter = limiter if limiter is not None else default_limiter()

    def limiter_key(self, payload: Any) -> str:
        if self.key_generator is not None:
            return f"{self.key}:{self.key_generator(payload)}"
        return f"{self.key}:{payload_digest(payload)}"

    def handle(self, payload: Any, next: Continuation) -> Any:
        limiter_key = self.limiter_key(payload)

        if self.limiter.too_many_attempts(limiter_key, self.max_attempts):
            seconds = self.limiter.available_in(limiter_key)
            logger.warning(f"Rate limit exceeded for '{limiter_key}' ({seconds}s remaining)")
            raise RateLimitExceededError(limiter_key, seconds)

        result = next(payload)
        self.limiter.hit(limiter_key, self.decay_minutes * 60)
        return result

    def __repr__(self) -> str:
        return (
            f"RateLimitStep(key='{self.key}', max_attempts={self.max_attempts}, "
            f"decay_minutes={self.decay_minutes})"
        )
