"""Expose constructed client wrappers."""

from .figma_api import FigmaApiClient, FigmaApiError, FigmaNotConnectedError, FigmaTimeoutError
from .figma_auth import FigmaOAuthClient, OAuthStateEncoder
from .sqlite_store import SQLiteStore

__all__ = [
    "FigmaApiClient",
    "FigmaApiError",
    "FigmaNotConnectedError",
    "FigmaOAuthClient",
    "FigmaTimeoutError",
    "OAuthStateEncoder",
    "SQLiteStore",
]
