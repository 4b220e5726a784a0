from __future__ import annotations

import time
from typing import Any, Callable, Hashable, Optional


class TTLCache:
    """
    Small in-process cache with per-entry expiry.
    Created once per app and handed to the routes that need it, so tests can
    swap the clock and callers can invalidate a user's entry after a mutation.

    Entries are kept in expiry order (one TTL, monotonic clock), so every write drops
    whatever has expired from the front. ``max_entries`` bounds the live set; the entry
    closest to expiry goes first.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, tuple[float, Any]] = {}

    def get(self, key: Hashable, default: Any = None) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return default
        return value

    def set(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        self._entries.pop(key, None)
        self.purge_expired(now)
        if self.max_entries is not None:
            while len(self._entries) >= self.max_entries:
                del self._entries[next(iter(self._entries))]
        self._entries[key] = (now + self.ttl_seconds, value)

    def purge_expired(self, now: Optional[float] = None) -> int:
        now = self._clock() if now is None else now
        removed = 0
        while self._entries:
            oldest = next(iter(self._entries))
            if self._entries[oldest][0] > now:
                break
            del self._entries[oldest]
            removed += 1
        return removed

    def invalidate(self, key: Hashable) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        now = self._clock()
        return sum(1 for expires_at, _ in self._entries.values() if now < expires_at)
