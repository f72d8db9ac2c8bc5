"""Factory that shares one authenticated client per principal and endpoint."""

import logging
from typing import Any, Callable, Dict, Optional, Union

from ..cache.entry import CacheEntry
from ..cache.resource_cache import DEFAULT_RESOURCES_TTL
from ..cache.rwlock import ReadWriteLock
from ..models import Credentials
from .client import DEFAULT_POOL_SIZE, DEFAULT_TIMEOUT, ProxmoxClient

logger = logging.getLogger(__name__)


class ClientFactory:
    """
    Creates and caches :class:`ProxmoxClient` instances.

    Clients are keyed by ``username@url`` and live as long as the factory.
    A factory is constructed explicitly and handed to whatever needs clients;
    tests simply build their own.
    """

    def __init__(
        self,
        verify_tls: bool = False,
        ca_bundle: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        pool_size: int = DEFAULT_POOL_SIZE,
        resources_ttl: float = DEFAULT_RESOURCES_TTL,
        reauthenticate_on_401: bool = True,
        profile_store: Optional[Any] = None,
        client_class: Callable[..., ProxmoxClient] = ProxmoxClient,
    ):
        """
        Initialize the factory.

        Args:
            verify_tls: Verify server certificates
            ca_bundle: CA bundle path for verification
            timeout: Per-request timeout handed to every client
            pool_size: Connection pool size per client
            resources_ttl: Inventory cache TTL per client
            reauthenticate_on_401: Retry once after a rejected ticket
            profile_store: ProfileStore used to resolve profile names
            client_class: Callable building a client, replaceable in tests
        """
        self._client_options: Dict[str, Any] = {
            "verify_tls": verify_tls,
            "ca_bundle": ca_bundle,
            "timeout": timeout,
            "pool_size": pool_size,
            "resources_ttl": resources_ttl,
            "reauthenticate_on_401": reauthenticate_on_401,
        }
        self.profile_store = profile_store
        self._client_class = client_class
        self._lock = ReadWriteLock()
        self._entries: Dict[str, CacheEntry[ProxmoxClient]] = {}

    @classmethod
    def from_config(cls, config: Any, profile_store: Optional[Any] = None) -> "ClientFactory":
        """
        Build a factory from the ``api`` and ``cache`` config sections.

        Args:
            config: Config instance
            profile_store: Optional ProfileStore for profile name lookups
        """
        return cls(
            verify_tls=bool(config.get("api.verify_tls", False)),
            ca_bundle=config.get("api.ca_bundle") or None,
            timeout=float(config.get("api.timeout", DEFAULT_TIMEOUT)),
            pool_size=int(config.get("api.pool_size", DEFAULT_POOL_SIZE)),
            resources_ttl=float(config.get("cache.resources_ttl", DEFAULT_RESOURCES_TTL)),
            reauthenticate_on_401=bool(config.get("api.reauthenticate_on_401", True)),
            profile_store=profile_store,
        )

    def _resolve(self, profile_or_credentials: Union[str, Credentials, None]) -> Credentials:
        if isinstance(profile_or_credentials, Credentials):
            return profile_or_credentials
        if self.profile_store is None:
            raise ValueError("a profile store is required to look up clients by profile name")
        return self.profile_store.read_profile(profile_or_credentials)

    def get_client(self, profile_or_credentials: Union[str, Credentials, None] = None) -> ProxmoxClient:
        """
        Return the shared client for a profile or a set of credentials.

        Concurrent callers asking for the same key receive the same instance.

        Args:
            profile_or_credentials: Credentials, a profile name, or None for
                the current profile

        Returns:
            ProxmoxClient instance
        """
        credentials = self._resolve(profile_or_credentials)
        key = credentials.cache_key

        with self._lock.read_locked():
            entry = self._entries.get(key)

        if entry is None:
            with self._lock.write_locked():
                entry = self._entries.get(key)
                if entry is None:
                    entry = CacheEntry(lambda: self._create(credentials), ttl=None, name=key)
                    self._entries[key] = entry

        return entry.get()

    def _create(self, credentials: Credentials) -> ProxmoxClient:
        logger.debug(f"Creating client for {credentials.cache_key}")
        return self._client_class(credentials, **self._client_options)

    def clear(self) -> None:
        """Close and forget every cached client."""
        with self._lock.write_locked():
            entries = list(self._entries.values())
            self._entries.clear()

        for entry in entries:
            client = entry.peek()
            if client is not None:
                client.close()

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._entries)
