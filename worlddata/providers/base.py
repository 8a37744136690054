"""Base provider class with common HTTP and fail-closed error handling logic."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from ..exceptions import (
    DataNotAvailableError,
    DataProviderError,
    MalformedPayloadError,
    ProviderTimeoutError,
)
from ..services.cache_store import CacheStore
from ..services.http_pool import get_http_client

logger = logging.getLogger(__name__)

T = TypeVar("T")


def normalize_country_code(code: Optional[str]) -> str:
    """Trim and upper-case a country code; None becomes an empty string."""
    return (code or "").strip().upper()


class BaseProvider(ABC):
    """Base class for all upstream data providers.

    Provides common functionality:
    - Single-attempt GET against the shared HTTP pool with a bounded timeout
    - Translation of transport failures into DataProviderError subclasses
    - A fail-closed boundary (``_guarded``) that logs any failure and hands
      back the provider's neutral value instead of raising
    - Access to the injected two-tier cache store

    There is no retry: a timed-out or failed call is an empty result for that
    call only.
    """

    DEFAULT_TIMEOUT = 15.0

    def __init__(
        self,
        cache: CacheStore,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize base provider.

        Args:
            cache: Shared cache store
            base_url: Provider base URL, defaults to the provider's setting
            timeout: Request timeout in seconds
        """
        self.cache = cache
        self.base_url = (base_url or "").rstrip("/")
        self.timeout = timeout or self.DEFAULT_TIMEOUT

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the canonical provider name used in logs and errors."""
        pass

    async def _get(self, url: str, **kwargs) -> httpx.Response:
        """GET ``url`` once.

        Raises:
            ProviderTimeoutError: If the call exceeds ``self.timeout``
            DataNotAvailableError: On connection failure or non-success status
        """
        client = get_http_client()
        try:
            response = await client.get(url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"Request timed out after {self.timeout}s: {url}",
                provider=self.provider_name,
            ) from e
        except httpx.HTTPStatusError as e:
            raise DataNotAvailableError(
                f"API returned {e.response.status_code} for {url}",
                provider=self.provider_name,
            ) from e
        except httpx.HTTPError as e:
            raise DataNotAvailableError(
                f"Request failed for {url}: {e}",
                provider=self.provider_name,
            ) from e

    def _parse_json_safe(self, response: httpx.Response) -> Any:
        """Parse a JSON body.

        Raises:
            MalformedPayloadError: If the body is not JSON
        """
        try:
            return response.json()
        except ValueError as e:
            raise MalformedPayloadError(
                f"Failed to parse response: {e}",
                provider=self.provider_name,
            ) from e

    async def _guarded(self, description: str, call: Callable[[], Awaitable[T]], default: T) -> T:
        """Run ``call`` and return ``default`` on any failure.

        This is the only place provider errors stop.
        """
        try:
            return await call()
        except DataProviderError as e:
            logger.warning(f"{self.provider_name}: {description} unavailable: {e.message}")
        except Exception as e:
            logger.warning(
                f"{self.provider_name}: unexpected error during {description}: {e}",
                exc_info=True,
            )
        return default
