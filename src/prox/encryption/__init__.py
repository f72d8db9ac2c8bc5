"""Encryption of credentials kept in the profile store."""

from .aes import (
    KEY_SOURCES,
    CredentialCipher,
    create_cipher,
    decrypt,
    encrypt,
    key_fingerprint,
    migrate_to_encrypted,
)
from .key_manager import IdentityKeyManager, KeyManager, KeyringKeyManager, current_identity
from .provider import EncryptionError, EncryptionProvider

__all__ = [
    "KEY_SOURCES",
    "CredentialCipher",
    "EncryptionError",
    "EncryptionProvider",
    "IdentityKeyManager",
    "KeyManager",
    "KeyringKeyManager",
    "create_cipher",
    "current_identity",
    "decrypt",
    "encrypt",
    "key_fingerprint",
    "migrate_to_encrypted",
]
