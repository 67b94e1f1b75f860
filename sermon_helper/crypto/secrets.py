"""AES-256-GCM secret storage.

Stored format is ``base64(iv || tag || ciphertext)`` with a 12-byte IV and a
16-byte tag. Errors never carry the ciphertext or plaintext.
"""

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from sermon_helper.config.settings import Settings

logger = logging.getLogger("shg.crypto")

IV_LENGTH = 12
TAG_LENGTH = 16


class SecretDecryptionError(Exception):
    """Raised when a stored secret cannot be decrypted."""


class AesGcmSecretCipher:
    def __init__(self, key: bytes):
        if len(key) != 32:
            raise ValueError("AES-256-GCM key must be 32 bytes")
        self._aead = AESGCM(key)

    @classmethod
    def from_hex(cls, key_hex: str) -> "AesGcmSecretCipher":
        return cls(bytes.fromhex(key_hex.strip()))

    def encrypt(self, plaintext: str) -> str:
        iv = os.urandom(IV_LENGTH)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return base64.b64encode(iv + tag + ciphertext).decode("ascii")

    def decrypt(self, encoded: str) -> str:
        try:
            combined = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise SecretDecryptionError("stored secret is not valid base64") from None
        if len(combined) < IV_LENGTH + TAG_LENGTH + 1:
            raise SecretDecryptionError("stored secret is too short")

        iv = combined[:IV_LENGTH]
        tag = combined[IV_LENGTH : IV_LENGTH + TAG_LENGTH]
        ciphertext = combined[IV_LENGTH + TAG_LENGTH :]
        try:
            plaintext = self._aead.decrypt(iv, ciphertext + tag, None)
        except InvalidTag:
            raise SecretDecryptionError("stored secret failed authentication") from None
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise SecretDecryptionError("stored secret is not valid UTF-8") from None


def cipher_from_settings(settings: Settings) -> AesGcmSecretCipher | None:
    """Return a cipher, or ``None`` when no usable encryption key is configured."""
    if not settings.encryption_key:
        return None
    if not settings.encryption_configured:
        logger.error("encryption_key_invalid", extra={"error": "expected 64 hex characters"})
        return None
    return AesGcmSecretCipher.from_hex(settings.encryption_key)
