"""
Versioned envelopes for secrets persisted in the credential store.

Encrypted values carry a format marker so rows written before encryption was
enabled are recognised by their shape, never by a failed decryption.
"""

from __future__ import annotations

import logging
import re

from pixelproof.core.config import ConfigurationError
from pixelproof.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

ENVELOPE_MARKER = "v1:"

# iv:tag:ciphertext written before the marker existed.
_UNMARKED_ENVELOPE = re.compile(r"^[0-9a-f]{32}:[0-9a-f]{32}:[0-9a-f]*$")


class TokenSealer:
    """Seal and open stored tokens, tolerating legacy plaintext rows."""

    def __init__(self, cipher: TokenCipherService | None) -> None:
        self._cipher = cipher

    @property
    def encryption_enabled(self) -> bool:
        return self._cipher is not None

    def seal(self, value: str) -> str:
        """Return the value to persist for a plaintext secret."""
        if self._cipher is None:
            logger.warning(
                "Encryption key not configured; storing OAuth token without encryption"
            )
            return value
        return f"{ENVELOPE_MARKER}{self._cipher.encrypt(value)}"

    def open(self, stored: str) -> str:
        """Return the plaintext for a stored value.

        Raises ``TokenCipherError`` for tampered or corrupted envelopes and
        ``ConfigurationError`` when an envelope is found but no key is set.
        """
        if not self.is_sealed(stored):
            logger.warning("Stored OAuth token is not encrypted; using legacy value")
            return stored

        cipher = self._require_cipher()
        envelope = stored[len(ENVELOPE_MARKER):] if stored.startswith(ENVELOPE_MARKER) else stored
        return cipher.decrypt(envelope)

    @staticmethod
    def is_sealed(stored: str) -> bool:
        return stored.startswith(ENVELOPE_MARKER) or bool(_UNMARKED_ENVELOPE.match(stored))

    def _require_cipher(self) -> TokenCipherService:
        if self._cipher is None:
            raise ConfigurationError(
                "Found an encrypted OAuth token but ENCRYPTION_KEY is not configured."
            )
        return self._cipher


__all__ = ["ENVELOPE_MARKER", "TokenSealer"]
