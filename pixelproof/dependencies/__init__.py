"""Expose dependency helpers for FastAPI routers."""

from .auth import get_current_user_id
from .clients import (
    get_baseline_service,
    get_figma_api_client,
    get_figma_oauth_client,
    get_figma_token_service,
    get_oauth_coordinator,
    get_oauth_state_encoder,
    get_sqlite_store,
    get_token_cipher_service,
    get_token_sealer,
)
from .config import get_app_settings

__all__ = [
    "get_app_settings",
    "get_baseline_service",
    "get_current_user_id",
    "get_figma_api_client",
    "get_figma_oauth_client",
    "get_figma_token_service",
    "get_oauth_coordinator",
    "get_oauth_state_encoder",
    "get_sqlite_store",
    "get_token_cipher_service",
    "get_token_sealer",
]
