"""In-memory cache backend with per-entry TTL."""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Dict, Optional

from pydantic import JsonValue

from api_aggregator.domain.interfaces import ICacheService


@dataclass(frozen=True)
class CacheEntry:
    """Serialized value plus its absolute expiry on the monotonic clock."""

    payload: str
    expires_at: float

    def expired(self, now: float) -> bool:
        return now >= self.expires_at


class InMemoryCacheService(ICacheService):
    """Thread-safe TTL cache storing JSON-serialized copies of values.

    Values are serialized on write so callers can never mutate a cached entry
    through a shared reference. Expired entries are dropped lazily on read and
    eagerly when ``max_entries`` is reached.
    """

    def __init__(
        self,
        *,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be greater than zero")
        self._entries: Dict[str, CacheEntry] = {}
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.RLock()

    async def get(self, key: str) -> Optional[JsonValue]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                return None
            payload = entry.payload
        return json.loads(payload)

    async def set(self, key: str, value: JsonValue, ttl: timedelta) -> None:
        seconds = ttl.total_seconds()
        if seconds <= 0:
            raise ValueError("ttl must be positive")
        payload = json.dumps(value)
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                self._evict_unlocked()
            self._entries[key] = CacheEntry(
                payload=payload, expires_at=self._clock() + seconds
            )

    async def remove(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def _evict_unlocked(self) -> None:
        now = self._clock()
        for key in [k for k, v in self._entries.items() if v.expired(now)]:
            del self._entries[key]
        if len(self._entries) >= self._max_entries:
            oldest = sorted(self._entries, key=lambda k: self._entries[k].expires_at)
            for key in oldest[: max(1, self._max_entries // 4)]:
                del self._entries[key]
