"""
Redis-backed durable cache tier.

Entries are stored as JSON envelopes ``{"value": ..., "expiresAt": ...}``
under the ``worlddata:`` namespace. Redis expires keys on its own, but a read
also checks ``expiresAt`` so an entry written by a process with a different
clock, or restored from a snapshot, is never served past its expiry.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import RedisError

from ..exceptions import CacheBackendError, ConfigurationError

logger = logging.getLogger(__name__)


class RedisCacheBackend:
    """Durable key/value tier shared across processes."""

    NAMESPACE = "worlddata"

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url or "redis://localhost:6379/0"
        self.redis_client: Optional[redis.Redis] = client
        self._connected = client is not None

    @property
    def connected(self) -> bool:
        return self._connected and self.redis_client is not None

    async def connect(self) -> bool:
        """
        Connect to Redis and test the connection.

        Returns:
            True if connected successfully, False otherwise

        Raises:
            ConfigurationError: If REDIS_URL is not a usable Redis URL
        """
        if self.connected:
            return True

        try:
            self.redis_client = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                retry=Retry(ExponentialBackoff(), 3),
                retry_on_timeout=True,
                socket_keepalive=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid REDIS_URL: {e}") from e

        try:
            await self.redis_client.ping()
            self._connected = True
            logger.info(f"Connected to Redis at {self.redis_url}")
            return True
        except (RedisError, OSError) as e:
            logger.warning(f"Failed to connect to Redis: {e}. Using in-memory cache only.")
            self.redis_client = None
            self._connected = False
            return False

    async def disconnect(self) -> None:
        client, self.redis_client = self.redis_client, None
        self._connected = False
        if client is None:
            return
        try:
            await client.aclose()
            logger.info("Redis connection closed")
        except RedisError as e:
            logger.warning(f"Closing Redis connection failed: {e}")

    def _key(self, key: str) -> str:
        return f"{self.NAMESPACE}:{key}"

    async def get_entry(self, key: str) -> Optional[Tuple[Any, Optional[float]]]:
        """
        Return ``(value, seconds_left)``, or None when missing or past ``expiresAt``.

        ``seconds_left`` is None for entries stored without a TTL.

        Raises:
            CacheBackendError: If Redis fails or the envelope cannot be decoded
        """
        if not self.connected:
            return None
        try:
            raw = await self.redis_client.get(self._key(key))
        except RedisError as e:
            raise CacheBackendError(f"Redis get failed for {key}: {e}") from e
        if raw is None:
            return None

        try:
            envelope = json.loads(raw)
            value = envelope["value"]
            expires_at = envelope.get("expiresAt")
            if expires_at:
                expires_at = datetime.fromisoformat(expires_at)
                if expires_at.tzinfo is None:
                    expires_at = expires_at.replace(tzinfo=timezone.utc)
        except (TypeError, ValueError, KeyError) as e:
            raise CacheBackendError(f"Undecodable cache entry for {key}: {e}") from e

        if not expires_at:
            return value, None
        seconds_left = (expires_at - datetime.now(timezone.utc)).total_seconds()
        if seconds_left <= 0:
            logger.debug(f"Durable cache entry expired: {key}")
            return None
        return value, seconds_left

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Upsert ``value`` under ``key``; last write wins.

        Raises:
            CacheBackendError: If the value cannot be serialized or Redis fails
        """
        if not self.connected:
            return
        expires_at = (datetime.now(timezone.utc) + timedelta(seconds=ttl)).isoformat() if ttl else None
        try:
            payload = json.dumps({"value": value, "expiresAt": expires_at})
        except (TypeError, ValueError) as e:
            raise CacheBackendError(f"Value for {key} is not JSON-serializable: {e}") from e

        try:
            await self.redis_client.set(self._key(key), payload, ex=ttl or None)
        except RedisError as e:
            raise CacheBackendError(f"Redis set failed for {key}: {e}") from e

    async def get_stats(self) -> Dict[str, Any]:
        """Connection state plus a few INFO fields; a failing INFO is reported, not raised."""
        if not self.connected:
            return {"connected": False, "namespace": self.NAMESPACE}
        try:
            info = await self.redis_client.info()
        except RedisError as e:
            logger.warning(f"Redis INFO failed: {e}")
            return {"connected": True, "namespace": self.NAMESPACE, "error": str(e)}
        return {
            "connected": True,
            "namespace": self.NAMESPACE,
            "usedMemory": info.get("used_memory_human"),
            "clients": info.get("connected_clients"),
            "hits": info.get("keyspace_hits", 0),
            "misses": info.get("keyspace_misses", 0),
        }
