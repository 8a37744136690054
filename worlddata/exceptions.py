"""Errors raised inside the world-data backend.

    WorldDataError
    ├── ConfigurationError
    ├── ValidationError          rejected caller input (400, or 404 for unknown kinds)
    ├── DataProviderError        one upstream call failed
    │   ├── ProviderTimeoutError
    │   ├── DataNotAvailableError
    │   └── MalformedPayloadError
    └── CacheBackendError        durable tier unreachable or undecodable

Provider errors never leave the fetcher boundary: ``BaseProvider._guarded``
turns them into an empty series or identity. Cache backend errors stop at
``CacheStore``. Only ``ValidationError`` reaches HTTP callers on purpose.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class WorldDataError(Exception):
    """Base error; ``code`` defaults to the class name and ``details`` to {}."""

    status_code = 500

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code or type(self).__name__
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ConfigurationError(WorldDataError):
    """Settings that cannot be used, e.g. an unparseable REDIS_URL."""


class ValidationError(WorldDataError):
    """Rejected request input; ``field`` names the offending parameter."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.field = field
        if field:
            self.details["field"] = field
        if status_code:
            self.status_code = status_code


class DataProviderError(WorldDataError):
    """An upstream call failed; ``provider`` is recorded in ``details``."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.provider = provider
        if provider:
            self.details["provider"] = provider


class ProviderTimeoutError(DataProviderError):
    """The call exceeded the provider timeout."""


class DataNotAvailableError(DataProviderError):
    """Non-success status, connection failure, or an error document from the API."""


class MalformedPayloadError(DataProviderError):
    """The response body does not have the expected shape."""


class CacheBackendError(WorldDataError):
    pass


def get_error_response(error: Exception) -> Dict[str, Any]:
    """JSON body for an error response; unknown exceptions become ``InternalError``."""
    if isinstance(error, WorldDataError):
        return error.to_dict()
    return {"error": "InternalError", "message": str(error) or "Internal Server Error", "details": {}}
