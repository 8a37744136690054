"""
Outbound HTTP client shared by every provider.

One pooled ``httpx.AsyncClient`` (HTTP/2, keep-alive) carries all upstream
traffic with the configured User-Agent and timeout. The application
lifespan opens it at startup and closes it on shutdown; a provider asking
for it after it was closed gets a fresh one.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

MAX_CONNECTIONS = 50
MAX_KEEPALIVE = 20


def build_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        limits=httpx.Limits(
            max_connections=MAX_CONNECTIONS,
            max_keepalive_connections=MAX_KEEPALIVE,
            keepalive_expiry=5.0,
        ),
        # Providers pass their own per-request timeout on top of this bound
        timeout=httpx.Timeout(settings.http_timeout, connect=min(10.0, settings.http_timeout), pool=5.0),
        http2=True,
        follow_redirects=True,
        headers={"User-Agent": settings.user_agent},
    )


class HTTPClientPool:
    """Holder for the process-wide client."""

    _client: Optional[httpx.AsyncClient] = None

    @classmethod
    def open(cls) -> httpx.AsyncClient:
        if cls._client is None or cls._client.is_closed:
            settings = get_settings()
            cls._client = build_client(settings)
            logger.info(
                f"HTTP client opened: max_connections={MAX_CONNECTIONS}, timeout={settings.http_timeout}s"
            )
        return cls._client

    @classmethod
    async def close(cls) -> None:
        client, cls._client = cls._client, None
        if client is not None and not client.is_closed:
            await client.aclose()
            logger.info("HTTP client closed")

    @classmethod
    def get_stats(cls) -> Dict[str, Any]:
        if cls._client is None:
            return {"open": False}
        return {"open": not cls._client.is_closed, "timeout": cls._client.timeout.read}


def get_http_client() -> httpx.AsyncClient:
    """The shared client; providers never build their own."""
    return HTTPClientPool.open()


async def close_http_pool() -> None:
    await HTTPClientPool.close()
