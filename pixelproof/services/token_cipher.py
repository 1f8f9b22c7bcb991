"""Authenticated symmetric encryption for OAuth tokens stored at rest."""

from __future__ import annotations

import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from pixelproof.core.config import ConfigurationError

KEY_LENGTH = 32  # AES-256
IV_LENGTH = 16
AUTH_TAG_LENGTH = 16


class TokenCipherError(ValueError):
    """Raised when an envelope cannot be parsed or fails authentication."""


def generate_encryption_key() -> str:
    """Return a fresh random key suitable for the ``ENCRYPTION_KEY`` setting."""
    return os.urandom(KEY_LENGTH).hex()


class TokenCipherService:
    """Encrypt and decrypt strings with AES-256-GCM.

    Envelopes have the form ``iv:tag:ciphertext`` with every field hex
    encoded independently.
    """

    def __init__(self, *, key_hex: str | None) -> None:
        if not key_hex:
            raise ConfigurationError(
                "ENCRYPTION_KEY not configured. Generate one with "
                "pixelproof.services.token_cipher.generate_encryption_key()."
            )
        try:
            key = bytes.fromhex(key_hex)
        except ValueError as exc:
            raise ConfigurationError("ENCRYPTION_KEY must be a hex string.") from exc
        if len(key) != KEY_LENGTH:
            raise ConfigurationError(
                f"ENCRYPTION_KEY must be {KEY_LENGTH} bytes "
                f"({KEY_LENGTH * 2} hex characters). Got {len(key)} bytes."
            )
        self._aead = AESGCM(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string and return the hex envelope."""
        iv = os.urandom(IV_LENGTH)
        sealed = self._aead.encrypt(iv, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
        return f"{iv.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, envelope: str) -> str:
        """Decrypt an envelope produced by :meth:`encrypt`."""
        parts = envelope.split(":")
        if len(parts) != 3:
            raise TokenCipherError(
                "Invalid encrypted data format. Expected: iv:authTag:ciphertext"
            )
        iv_hex, tag_hex, ciphertext_hex = parts
        try:
            iv = bytes.fromhex(iv_hex)
            tag = bytes.fromhex(tag_hex)
            ciphertext = bytes.fromhex(ciphertext_hex)
        except ValueError as exc:
            raise TokenCipherError("Encrypted data is not valid hex.") from exc

        if len(iv) != IV_LENGTH:
            raise TokenCipherError(
                f"Invalid IV length: expected {IV_LENGTH} bytes, got {len(iv)}"
            )
        if len(tag) != AUTH_TAG_LENGTH:
            raise TokenCipherError(
                f"Invalid auth tag length: expected {AUTH_TAG_LENGTH} bytes, got {len(tag)}"
            )

        try:
            plaintext = self._aead.decrypt(iv, ciphertext + tag, None)
        except InvalidTag as exc:
            raise TokenCipherError(
                "Failed to decrypt token; authentication tag mismatch."
            ) from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:  # pragma: no cover - authenticated input
            raise TokenCipherError("Decrypted token is not valid UTF-8.") from exc


__all__ = [
    "TokenCipherError",
    "TokenCipherService",
    "generate_encryption_key",
]
