"""AES-256-GCM encryption of profile credentials."""

import base64
import binascii
import hashlib
import logging
import os
from typing import Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .key_manager import IdentityKeyManager, KeyManager, KeyringKeyManager
from .provider import EncryptionError, EncryptionProvider

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
FINGERPRINT_BYTES = 8

KEY_SOURCES = ("identity", "keyring")


class CredentialCipher(EncryptionProvider):
    """
    AES-256-GCM cipher for secrets stored in the profile file.

    Output is ``base64(nonce || ciphertext || tag)`` with a fresh random
    12-byte nonce per call. Decryption never raises: anything that does not
    decode and open under the current key is returned unchanged, which is how
    profiles written before encryption keep working.
    """

    def __init__(self, key_manager: Optional[KeyManager] = None):
        """
        Args:
            key_manager: Key source; identity derived when None
        """
        self.key_manager = key_manager or IdentityKeyManager()
        self._key_unavailable = False

    def get_encryption_type(self) -> str:
        return "aes256-gcm"

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a secret.

        Args:
            plaintext: Secret to protect

        Returns:
            Base64 blob, or an empty string for empty input

        Raises:
            EncryptionError: If the key is unavailable or sealing fails
        """
        if not plaintext:
            return ""

        key = self.key_manager.get_key()
        try:
            nonce = os.urandom(NONCE_SIZE)
            sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        except Exception as e:
            raise EncryptionError(
                f"Failed to encrypt value: {e}",
                encryption_type=self.get_encryption_type(),
                original_error=e,
            )
        return base64.b64encode(nonce + sealed).decode("ascii")

    def _open(self, blob: str) -> Optional[str]:
        # None means the blob is not something this key sealed
        try:
            data = base64.b64decode(blob.encode("ascii"), validate=True)
        except (binascii.Error, ValueError, UnicodeEncodeError):
            return None
        if len(data) <= NONCE_SIZE:
            return None

        key = self._decryption_key()
        if key is None:
            return None

        try:
            plaintext = AESGCM(key).decrypt(data[:NONCE_SIZE], data[NONCE_SIZE:], None)
            return plaintext.decode("utf-8")
        except (InvalidTag, ValueError, UnicodeDecodeError):
            return None

    def _decryption_key(self) -> Optional[bytes]:
        # A key source that failed once is not asked again by decrypt
        if self._key_unavailable:
            return None
        try:
            return self.key_manager.get_key()
        except EncryptionError as e:
            self._key_unavailable = True
            logger.warning(f"Encryption key unavailable, stored values are read as plaintext: {e}")
            return None

    def decrypt(self, blob: str) -> str:
        """
        Decrypt a blob, passing legacy plaintext through unchanged.

        Args:
            blob: Value read from the profile file

        Returns:
            Decrypted secret, or ``blob`` itself if it could not be opened
        """
        if not blob:
            return ""

        plaintext = self._open(blob)
        if plaintext is None:
            logger.debug("Value did not decrypt, treating it as plaintext")
            return blob
        return plaintext

    def is_encrypted(self, value: str) -> bool:
        """Whether ``value`` opens under the current key."""
        return bool(value) and self._open(value) is not None

    def migrate_to_encrypted(self, value: str) -> Tuple[str, bool]:
        """
        Encrypt a value unless it is already encrypted.

        Args:
            value: Stored value, encrypted or plaintext

        Returns:
            Tuple of (stored value, whether it changed)
        """
        if not value or self.is_encrypted(value):
            return value, False
        return self.encrypt(value), True

    def fingerprint(self) -> str:
        """Hex of the first 8 bytes of SHA-256 of the key. For diagnostics only."""
        digest = hashlib.sha256(self.key_manager.get_key()).digest()
        return digest[:FINGERPRINT_BYTES].hex()


def create_cipher(key_source: str = "identity") -> CredentialCipher:
    """
    Build a cipher for the configured key source.

    Args:
        key_source: ``identity`` or ``keyring``

    Raises:
        EncryptionError: If the key source is unknown
    """
    source = (key_source or "identity").lower()
    if source == "identity":
        return CredentialCipher(IdentityKeyManager())
    if source == "keyring":
        return CredentialCipher(KeyringKeyManager())
    raise EncryptionError(
        f"Unknown key source '{key_source}'. Supported sources: {', '.join(KEY_SOURCES)}",
        encryption_type="aes256-gcm",
    )


def encrypt(plaintext: str) -> str:
    """Encrypt with the identity-derived key."""
    return CredentialCipher().encrypt(plaintext)


def decrypt(blob: str) -> str:
    """Decrypt with the identity-derived key; never raises on bad input."""
    return CredentialCipher().decrypt(blob)


def key_fingerprint() -> str:
    """Fingerprint of the identity-derived key."""
    return CredentialCipher().fingerprint()


def migrate_to_encrypted(value: str) -> Tuple[str, bool]:
    return CredentialCipher().migrate_to_encrypted(value)
