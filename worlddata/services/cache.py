"""
In-memory cache tier.

Entries carry an absolute wall-clock expiry so a value restored from the
durable tier keeps the deadline it was written with. Stored values are
deep-copied in and out, so a caller mutating a record it got back can never
corrupt what the next reader sees.
"""
from __future__ import annotations

import copy
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class MemoryEntry:
    value: Any
    expires_at: Optional[float] = None

    def expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class CacheService:
    """Bounded, lock-protected TTL map with hit/miss counters.

    Expired entries are dropped when read and swept in bulk at most once per
    SWEEP_INTERVAL. Past MAX_ENTRIES the entries closest to expiry are evicted
    first, a tenth of the map at a time.
    """

    DEFAULT_TTL = 60 * 60
    MAX_ENTRIES = 10_000
    SWEEP_INTERVAL = 5 * 60

    def __init__(self, max_entries: int = MAX_ENTRIES) -> None:
        self.max_entries = max_entries
        self._entries: Dict[str, MemoryEntry] = {}
        self._lock = threading.Lock()
        self._next_sweep = time.time() + self.SWEEP_INTERVAL
        self.hits = 0
        self.misses = 0

    def set(self, key: str, value: Any, ttl: Optional[int] = DEFAULT_TTL) -> None:
        """Store a copy of ``value``; ``ttl`` of None or 0 keeps it until evicted."""
        entry = MemoryEntry(copy.deepcopy(value), time.time() + ttl if ttl else None)
        with self._lock:
            self._entries[key] = entry
            if len(self._entries) > self.max_entries:
                self._evict()

    def get(self, key: str) -> Optional[Any]:
        now = time.time()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)
            entry = self._entries.get(key)
            if entry is not None and entry.expired(now):
                del self._entries[key]
                entry = None
            if entry is None:
                self.misses += 1
                return None
            self.hits += 1
            return copy.deepcopy(entry.value)

    def _sweep(self, now: float) -> None:
        # Caller holds the lock
        stale: List[str] = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in stale:
            del self._entries[key]
        self._next_sweep = now + self.SWEEP_INTERVAL

    def _evict(self) -> None:
        # Caller holds the lock
        count = max(1, len(self._entries) // 10)
        by_deadline = sorted(
            self._entries,
            key=lambda k: self._entries[k].expires_at if self._entries[k].expires_at is not None else float("inf"),
        )
        for key in by_deadline[:count]:
            del self._entries[key]

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self.hits + self.misses
            return {
                "keys": len(self._entries),
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": round(self.hits * 100 / lookups, 2) if lookups else 0,
                "max_entries": self.max_entries,
            }
