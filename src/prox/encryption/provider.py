"""Encryption provider interface and error type for credential encryption."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class EncryptionProvider(ABC):
    """
    Abstract base class for credential encryption providers.

    Providers turn a secret string into an opaque text blob that is safe to
    write into the profile file, and back.
    """

    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a string.

        Args:
            plaintext: Secret to protect

        Returns:
            Text-safe encrypted blob

        Raises:
            EncryptionError: If encryption fails
        """
        pass

    @abstractmethod
    def decrypt(self, blob: str) -> str:
        """
        Decrypt a blob produced by :meth:`encrypt`.

        Args:
            blob: Encrypted blob, or a legacy plaintext value

        Returns:
            The original plaintext
        """
        pass

    @abstractmethod
    def get_encryption_type(self) -> str:
        """
        Get the encryption type identifier.

        Returns:
            String identifier for the encryption type
        """
        pass

    def is_available(self) -> bool:
        """
        Check if the provider can currently encrypt and decrypt.

        Returns:
            True if a round trip succeeds, False otherwise
        """
        try:
            return self.decrypt(self.encrypt("availability-check")) == "availability-check"
        except EncryptionError:
            return False


class EncryptionError(Exception):
    """
    Exception raised when encryption operations fail.

    This exception provides a consistent error interface across
    different encryption provider implementations.
    """

    def __init__(
        self,
        message: str,
        encryption_type: str = "unknown",
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize encryption error.

        Args:
            message: Error message
            encryption_type: Type of encryption that failed
            original_error: Original exception that caused this error
        """
        super().__init__(message)
        self.encryption_type = encryption_type
        self.original_error = original_error

        if original_error:
            logger.error(
                f"Encryption error in {encryption_type}: {message} (caused by: {original_error})"
            )
        else:
            logger.error(f"Encryption error in {encryption_type}: {message}")

    def __str__(self) -> str:
        """Return string representation of the error."""
        base_msg = super().__str__()
        if self.original_error:
            return f"{base_msg} (caused by: {self.original_error})"
        return base_msg
