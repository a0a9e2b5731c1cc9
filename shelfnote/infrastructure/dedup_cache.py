"""Process-local TTL cache used to skip repeated fan-outs for one trigger key."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable


class TriggerDedupCache:
    """Remember trigger keys for ``ttl_seconds``.

    Expired keys are evicted lazily whenever the cache is touched; there is no
    background sweeper.
    """

    def __init__(
        self,
        ttl_seconds: float = 600.0,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = ttl_seconds
        self._clock = clock
        self._expires_at: dict[str, float] = {}
        self._lock = threading.Lock()

    def claim(self, key: str) -> bool:
        """Record ``key`` and return ``True`` unless it is already live."""

        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            if key in self._expires_at:
                return False
            self._expires_at[key] = now + self._ttl
            return True

    def release(self, key: str) -> None:
        with self._lock:
            self._expires_at.pop(key, None)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            self._evict_expired(self._clock())
            return key in self._expires_at

    def __len__(self) -> int:
        with self._lock:
            self._evict_expired(self._clock())
            return len(self._expires_at)

    def clear(self) -> None:
        with self._lock:
            self._expires_at.clear()

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, deadline in self._expires_at.items() if deadline <= now]
        for key in expired:
            del self._expires_at[key]


__all__ = ["TriggerDedupCache"]
