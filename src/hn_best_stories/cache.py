from __future__ import annotations

import threading
import time
from typing import Any, Callable

RANKED_IDS_KEY = "ranked-ids"
SWEEP_THRESHOLD = 1024


def item_cache_key(item_id: int) -> str:
    return f"item:{item_id}"


class MemoryCache:
    """Process-local key/value store with a per-entry time-to-live.

    Expired entries are evicted on read, and in bulk by ``set`` once the store
    grows past the sweep threshold. The lock only makes each get/set atomic;
    callers that race to populate the same key simply overwrite each other.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_threshold: int = SWEEP_THRESHOLD,
    ) -> None:
        if sweep_threshold <= 0:
            raise ValueError("sweep_threshold must be > 0")
        self._clock = clock
        self._sweep_threshold = sweep_threshold
        self._next_sweep_at = sweep_threshold
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def _sweep(self) -> None:
        now = self._clock()
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        # Next sweep once the store doubles past its live size.
        self._next_sweep_at = max(self._sweep_threshold, len(self._entries) * 2)

    def set(self, key: str, value: Any, ttl_sec: float) -> None:
        if ttl_sec <= 0:
            raise ValueError("ttl_sec must be > 0")
        with self._lock:
            self._entries[key] = (self._clock() + ttl_sec, value)
            if len(self._entries) > self._next_sweep_at:
                self._sweep()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._next_sweep_at = self._sweep_threshold

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
