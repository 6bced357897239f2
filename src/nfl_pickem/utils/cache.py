"""In-memory TTL cache for upstream API responses.

Each entry belongs to a *category* with its own time-to-live.  The cache is
owned by the object that creates it; there is no module-level instance.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping
from typing import Any

# Default TTLs in seconds, keyed by category.
DEFAULT_TTLS: dict[str, float] = {
    "scoreboard": 5 * 60,
    "season": 60 * 60,
    "schedule": 30 * 60,
}


def make_cache_key(endpoint: str, params: Mapping[str, Any] | None = None) -> str:
    """Build a stable key from an endpoint and its query parameters."""
    if not params:
        return endpoint
    query = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return f"{endpoint}?{query}"


class TTLCache:
    """Category-aware TTL cache.

    Args:
        ttls: Mapping of category name to TTL in seconds.  Unknown categories
            are not cached.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        ttls: Mapping[str, float] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttls = dict(DEFAULT_TTLS if ttls is None else ttls)
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, category: str) -> None:
        ttl = self._ttls.get(category)
        if not ttl:
            return
        self._entries[key] = (self._clock() + ttl, value)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
