"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from pathlib import Path

import pytest

from pixelproof.clients.sqlite_store import SQLiteStore
from pixelproof.core.config import FigmaSettings
from pixelproof.services.token_cipher import TokenCipherService
from pixelproof.services.token_sealer import TokenSealer

TEST_KEY = "00112233445566778899aabbccddeeff" * 2


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def store(tmp_path: Path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "pixelproof.db"))


@pytest.fixture
def sealer() -> TokenSealer:
    return TokenSealer(TokenCipherService(key_hex=TEST_KEY))


@pytest.fixture
def figma_settings() -> FigmaSettings:
    return FigmaSettings(
        FIGMA_CLIENT_ID="client-id",
        FIGMA_CLIENT_SECRET="client-secret",
        FIGMA_REDIRECT_URI="https://app.example.com/api/oauth/callback",
        FIGMA_API_BASE_URL="https://api.figma.test",
        FIGMA_TOKEN_URL="https://www.figma.test/api/oauth/token",
    )
