from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx
from redis.exceptions import ConnectionError as RedisConnectionError


class MockAsyncResponse:
    def __init__(
        self,
        json_data: Any = None,
        *,
        text: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        request_url: Optional[str] = None,
        status_code: int = 200,
    ) -> None:
        self._json = json_data
        self.text = text if text is not None else json.dumps(json_data)
        self.headers = headers or {}
        self.request = httpx.Request("GET", request_url or "https://example.com/mock")
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise httpx.HTTPStatusError(
                f"HTTP {self.status_code}",
                request=self.request,
                response=self,  # type: ignore[arg-type]
            )

    def json(self) -> Any:
        if self._json is None:
            return json.loads(self.text)
        return self._json


class MockAsyncClient:
    """Hands out queued responses in order; a queued exception is raised instead."""

    def __init__(self, responses: Iterable[Union[MockAsyncResponse, Exception]]) -> None:
        self._responses: List[Union[MockAsyncResponse, Exception]] = list(responses)
        self.calls: List[Dict[str, Any]] = []

    async def __aenter__(self) -> "MockAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        return False

    async def get(self, url: str, *, params: Optional[Dict[str, Any]] = None, **kwargs) -> MockAsyncResponse:
        self.calls.append({"url": str(url), "params": params or {}, **kwargs})
        if not self._responses:
            raise AssertionError("No more mock responses available")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        response.request = httpx.Request("GET", str(url))
        return response


class FakeRedis:
    """Minimal async stand-in for ``redis.asyncio.Redis``."""

    def __init__(self, fail: bool = False) -> None:
        self.store: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}
        self.fail = fail
        self.closed = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("connection refused")

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str) -> Optional[str]:
        self._check()
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        self._check()
        self.store[key] = value
        self.ttls[key] = ex
        return True

    async def info(self) -> Dict[str, Any]:
        self._check()
        return {"used_memory_human": "1M", "connected_clients": 1}

    async def aclose(self) -> None:
        self.closed = True


def run(coro):
    """Helper to run async functions in synchronous tests."""
    return asyncio.run(coro)
