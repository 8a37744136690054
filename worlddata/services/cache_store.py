"""
Two-tier cache store.

Reads check the in-memory tier first and fall back to the durable tier; a
durable hit repopulates memory. Writes land in memory immediately and are
then upserted into the durable tier when one is attached. Without a durable
tier the store is memory-only. Durable failures are logged and never
propagate. Misses are never stored.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

from ..exceptions import CacheBackendError
from .cache import CacheService
from .redis_cache import RedisCacheBackend

logger = logging.getLogger(__name__)


class CacheStore:
    """Cache shared by the aggregator and every provider."""

    def __init__(
        self,
        memory: Optional[CacheService] = None,
        durable: Optional[RedisCacheBackend] = None,
    ) -> None:
        self.memory = memory or CacheService()
        self.durable = durable

    @property
    def has_durable(self) -> bool:
        return self.durable is not None and self.durable.connected

    def attach_durable(self, durable: RedisCacheBackend) -> None:
        self.durable = durable

    async def get(self, key: str) -> Optional[Any]:
        value = self.memory.get(key)
        if value is not None:
            return value
        if not self.has_durable:
            return None

        try:
            entry = await self.durable.get_entry(key)
        except CacheBackendError as e:
            logger.warning(f"Durable cache read failed, treating as miss: {e}")
            return None
        if entry is None:
            return None

        value, seconds_left = entry
        self.memory.set(key, value, math.ceil(seconds_left) if seconds_left else None)
        logger.debug(f"Durable cache hit: {key}")
        return value

    async def set(self, key: str, value: Any, ttl: Optional[int] = CacheService.DEFAULT_TTL) -> None:
        if value is None:
            return
        self.memory.set(key, value, ttl)
        if not self.has_durable:
            return
        try:
            await self.durable.set(key, value, ttl)
        except CacheBackendError as e:
            logger.warning(f"Durable cache write failed, kept in memory only: {e}")

    async def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {"memory": self.memory.get_stats(), "durable": None}
        if self.durable is not None:
            stats["durable"] = await self.durable.get_stats()
        return stats

    async def close(self) -> None:
        if self.durable is not None:
            await self.durable.disconnect()
            self.durable = None
