"""
Short-lived read-through cache used to avoid duplicate resource fetches.

Entries expire after a fixed time-to-live; there is no other invalidation.
The cache is an optimisation only and may serve slightly stale data.
"""

from __future__ import annotations

import time
from typing import Any, Callable


class TTLCache:
    """In-memory key/value store with per-entry expiry."""

    __slots__ = ("_entries", "_ttl", "_clock")

    def __init__(self, ttl_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._ttl = float(ttl_seconds)
        self._clock = clock
        # key -> (expires_at, value)
        self._entries: dict[str, tuple[float, Any]] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def _live(self, key: str) -> tuple[float, Any] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry[0]:
            del self._entries[key]
            return None
        return entry

    def has(self, key: str) -> bool:
        return self._live(key) is not None

    def get(self, key: str, default: Any = None) -> Any:
        entry = self._live(key)
        return default if entry is None else entry[1]

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        lifetime = self._ttl if ttl is None else float(ttl)
        self._entries[key] = (self._clock() + lifetime, value)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        now = self._clock()
        expired = [k for k, (exp, _) in self._entries.items() if now >= exp]
        for k in expired:
            del self._entries[k]
        return len(self._entries)
