"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

import logging
from functools import lru_cache

from pixelproof.clients import FigmaApiClient, FigmaOAuthClient, OAuthStateEncoder, SQLiteStore
from pixelproof.core.config import get_settings
from pixelproof.services import (
    BaselineSnapshotService,
    FigmaOAuthCoordinator,
    FigmaTokenService,
    TokenCipherService,
    TokenSealer,
)

logger = logging.getLogger(__name__)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide shared SQLite record store."""
    settings = _settings()
    return SQLiteStore(settings.database_path)


@lru_cache()
def get_oauth_state_encoder() -> OAuthStateEncoder:
    return OAuthStateEncoder()


@lru_cache()
def get_figma_oauth_client() -> FigmaOAuthClient:
    """Create a singleton Figma OAuth client."""
    settings = _settings()
    return FigmaOAuthClient(settings.figma)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService | None:
    """Provide the token cipher, or ``None`` when no encryption key is configured."""
    settings = _settings()
    if not settings.security.encryption_key:
        logger.error(
            "ENCRYPTION_KEY is not set; Figma OAuth tokens will be stored unencrypted"
        )
        return None
    return TokenCipherService(key_hex=settings.security.encryption_key)


@lru_cache()
def get_token_sealer() -> TokenSealer:
    """Provide the versioned envelope used for stored tokens."""
    return TokenSealer(get_token_cipher_service())


@lru_cache()
def get_figma_token_service() -> FigmaTokenService:
    """Provide helper for managing Figma OAuth tokens."""
    return FigmaTokenService(
        store=get_sqlite_store(),
        oauth_client=get_figma_oauth_client(),
        sealer=get_token_sealer(),
    )


@lru_cache()
def get_figma_api_client() -> FigmaApiClient:
    """Provide Figma REST client instance."""
    settings = _settings()
    return FigmaApiClient(get_figma_token_service(), settings.figma)


def get_baseline_service() -> BaselineSnapshotService:
    """Build a baseline snapshot service using configured clients."""
    return BaselineSnapshotService(
        store=get_sqlite_store(),
        api_client=get_figma_api_client(),
    )


def get_oauth_coordinator() -> FigmaOAuthCoordinator:
    """Build the OAuth flow coordinator."""
    settings = _settings()
    return FigmaOAuthCoordinator(
        store=get_sqlite_store(),
        oauth_client=get_figma_oauth_client(),
        state_encoder=get_oauth_state_encoder(),
        sealer=get_token_sealer(),
        oauth_settings=settings.oauth,
    )


__all__ = [
    "get_baseline_service",
    "get_figma_api_client",
    "get_figma_oauth_client",
    "get_figma_token_service",
    "get_oauth_coordinator",
    "get_oauth_state_encoder",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_token_sealer",
]
