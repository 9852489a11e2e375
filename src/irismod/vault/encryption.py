"""
ChaCha20-Poly1305 token format for secrets at rest.

A token is ``base64(nonce):base64(ciphertext):base64(tag)`` with a 12-byte
nonce and a 16-byte tag. Every call to :meth:`SecretCipher.encrypt` draws a
fresh random nonce; decryption checks part count and part lengths before the
cipher is touched, and never returns data when the tag does not verify.
"""

from __future__ import annotations

import base64
import binascii
import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305

from irismod.util.logger import get_logger

logger = get_logger("vault_encryption")

KEY_LENGTH = 32
NONCE_LENGTH = 12
TAG_LENGTH = 16

_BASE64_SEGMENT = re.compile(r"^[A-Za-z0-9+/=]+$")


class VaultError(Exception):
    """Base class for credential vault failures."""


class EncryptionError(VaultError):
    """Raised when a value cannot be encrypted (empty or non-string input)."""


class DecryptionError(VaultError):
    """Raised when a token is malformed, truncated, tampered or from another key."""


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _b64decode(value: str) -> bytes:
    return base64.b64decode(value.encode("ascii"), validate=True)


class SecretCipher:
    """Encrypts and decrypts vault tokens with a single 256-bit master key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_LENGTH:
            raise ValueError(f"Vault key must be {KEY_LENGTH} bytes, got {len(key)}")
        self._aead = ChaCha20Poly1305(key)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a secret into a vault token.

        Args:
            plaintext: Non-empty secret string.

        Returns:
            str: ``nonce:ciphertext:tag``, each part base64-encoded.

        Raises:
            EncryptionError: If ``plaintext`` is empty or not a string.
        """
        if not plaintext or not isinstance(plaintext, str):
            raise EncryptionError("Invalid secret provided for encryption")

        nonce = os.urandom(NONCE_LENGTH)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{_b64encode(nonce)}:{_b64encode(ciphertext)}:{_b64encode(tag)}"

    def decrypt(self, token: str) -> str:
        """
        Decrypt a vault token.

        Raises:
            DecryptionError: If the token does not have three parts, a part is
                not valid base64, the nonce or tag has the wrong length, or the
                authentication tag does not verify.
        """
        if not token or not isinstance(token, str):
            raise DecryptionError("Invalid encrypted data provided")

        parts = token.split(":")
        if len(parts) != 3:
            raise DecryptionError("Invalid encrypted data format")

        try:
            nonce, ciphertext, tag = (_b64decode(part) for part in parts)
        except (binascii.Error, ValueError) as exc:
            raise DecryptionError("Encrypted data is not valid base64") from exc

        if len(nonce) != NONCE_LENGTH:
            raise DecryptionError("Invalid nonce length")
        if len(tag) != TAG_LENGTH:
            raise DecryptionError("Invalid tag length")

        try:
            plaintext = self._aead.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as exc:
            logger.warning("[VAULT] Authentication tag verification failed")
            raise DecryptionError("Failed to decrypt secret - data may be corrupted") from exc

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decrypted secret is not valid UTF-8") from exc

    @staticmethod
    def is_encrypted(value: object) -> bool:
        """Return True if ``value`` has the shape of a vault token (three base64 segments)."""
        if not value or not isinstance(value, str):
            return False
        parts = value.split(":")
        return len(parts) == 3 and all(_BASE64_SEGMENT.match(part) for part in parts)
