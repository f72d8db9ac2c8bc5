"""Key managers for credential encryption."""

import base64
import getpass
import hashlib
import logging
import os
import platform
import secrets
import socket
import threading
import time
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from .provider import EncryptionError

logger = logging.getLogger(__name__)

KEY_SIZE = 32  # AES-256


def current_identity() -> Tuple[str, str, str, str]:
    """
    Return the ``(uid, username, hostname, os)`` tuple of this process.

    Raises:
        EncryptionError: If the identity cannot be determined
    """
    try:
        uid = str(os.getuid()) if hasattr(os, "getuid") else ""
        username = getpass.getuser()
        hostname = socket.gethostname()
    except Exception as e:
        raise EncryptionError(
            f"Failed to determine machine identity: {e}",
            encryption_type="key_management",
            original_error=e,
        )
    return uid, username, hostname, platform.system().lower()


class KeyManager(ABC):
    """Source of the 32-byte key used to seal profile secrets."""

    @abstractmethod
    def get_key(self) -> bytes:
        """
        Return the encryption key.

        Raises:
            EncryptionError: If the key cannot be produced
        """
        pass

    @property
    def source(self) -> str:
        return "unknown"


class IdentityKeyManager(KeyManager):
    """
    Derives the key from the identity of the current user and machine.

    The key is SHA-256 of ``uid:username:hostname:os``. It needs no storage,
    but anybody able to reproduce that tuple can reproduce the key. Values
    encrypted on one machine or under one account do not decrypt elsewhere.
    """

    def __init__(self, identity: Optional[Tuple[str, str, str, str]] = None):
        """
        Args:
            identity: Fixed identity tuple; the live one is used when None
        """
        self._identity = identity
        self._key: Optional[bytes] = None

    @property
    def source(self) -> str:
        return "identity"

    def key_material(self) -> str:
        identity = self._identity or current_identity()
        return ":".join(identity)

    def get_key(self) -> bytes:
        if self._key is None:
            self._key = hashlib.sha256(self.key_material().encode("utf-8")).digest()
        return self._key


class KeyringKeyManager(KeyManager):
    """
    Keeps a random key in the operating system keyring.

    The key is generated on first use and cached in memory for a few minutes
    so repeated profile reads do not hit the keyring backend every time.
    """

    def __init__(
        self,
        service_name: str = "prox",
        username: str = "credential-key",
        cache_ttl: float = 300,
    ):
        """
        Initialize key manager.

        Args:
            service_name: Service name for keyring storage
            username: Username for keyring storage
            cache_ttl: Seconds the key is cached in memory
        """
        self.service_name = service_name
        self.username = username
        self._cache_ttl = cache_ttl
        self._cached_key: Optional[bytes] = None
        self._key_cache_time: Optional[float] = None
        self._lock = threading.Lock()

    @property
    def source(self) -> str:
        return "keyring"

    def get_key(self) -> bytes:
        """
        Get or generate the encryption key.

        Returns:
            32-byte AES-256 encryption key

        Raises:
            EncryptionError: If key retrieval or generation fails
        """
        with self._lock:
            if self._is_key_cache_valid():
                return self._cached_key  # type: ignore[return-value]

            key_str = self._get_key_from_keyring()
            if key_str:
                key = self._decode_key(key_str)
            else:
                key = secrets.token_bytes(KEY_SIZE)
                self._store_key(key)
                logger.info("Generated new credential encryption key and stored it in the keyring")

            self._cached_key = key
            self._key_cache_time = time.monotonic()
            return key

    def delete_key(self) -> bool:
        """
        Delete the key from the keyring.

        Returns:
            True if the key was deleted or did not exist, False on failure
        """
        with self._lock:
            self._cached_key = None
            self._key_cache_time = None
        try:
            keyring.delete_password(self.service_name, self.username)
            logger.info("Deleted credential encryption key from keyring")
            return True
        except PasswordDeleteError:
            return True
        except KeyringError as e:
            logger.error(f"Failed to delete encryption key: {e}")
            return False

    def key_exists(self) -> bool:
        try:
            return self._get_key_from_keyring() is not None
        except EncryptionError:
            return False

    def _is_key_cache_valid(self) -> bool:
        if self._cached_key is None or self._key_cache_time is None:
            return False
        return time.monotonic() - self._key_cache_time < self._cache_ttl

    def _decode_key(self, key_str: str) -> bytes:
        try:
            key = base64.b64decode(key_str.encode("ascii"), validate=True)
        except Exception as e:
            raise EncryptionError(
                f"Failed to decode encryption key: {e}",
                encryption_type="key_management",
                original_error=e,
            )
        if len(key) != KEY_SIZE:
            raise EncryptionError(
                f"Invalid key length: expected {KEY_SIZE} bytes, got {len(key)}",
                encryption_type="key_management",
            )
        return key

    def _get_key_from_keyring(self) -> Optional[str]:
        try:
            return keyring.get_password(self.service_name, self.username)
        except KeyringError as e:
            raise EncryptionError(
                f"Failed to access keyring: {e}",
                encryption_type="key_management",
                original_error=e,
            )

    def _store_key(self, key: bytes) -> None:
        try:
            keyring.set_password(
                self.service_name, self.username, base64.b64encode(key).decode("ascii")
            )
        except KeyringError as e:
            raise EncryptionError(
                f"Failed to store encryption key in keyring: {e}",
                encryption_type="key_management",
                original_error=e,
            )
