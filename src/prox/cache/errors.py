"""Cache error types."""

from typing import Optional

from ..api_clients.errors import ProxError


class CacheError(ProxError):
    """Base exception for cache-related errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message, cause)

    @property
    def cause(self) -> Optional[Exception]:
        return self.original_error


class CacheRefreshError(CacheError):
    """Fetching a fresh value for a cache entry failed."""

    pass
