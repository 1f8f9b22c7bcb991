"""
Helpers for retrieving and refreshing Figma OAuth tokens.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from pixelproof.clients.figma_api import FigmaApiError, FigmaNotConnectedError
from pixelproof.clients.figma_auth import TOKEN_ENDPOINT, FigmaOAuthClient, OAuthTokenExchangeError
from pixelproof.clients.sqlite_store import SQLiteStore
from pixelproof.models.oauth import StoredFigmaCredential
from pixelproof.services.token_sealer import TokenSealer

logger = logging.getLogger(__name__)


class FigmaTokenService:
    """Manages access to persisted Figma OAuth tokens."""

    REFRESH_WINDOW = timedelta(minutes=2)

    def __init__(
        self,
        store: SQLiteStore,
        oauth_client: FigmaOAuthClient,
        sealer: TokenSealer,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._sealer = sealer

    def has_credentials(self, project_id: str) -> bool:
        return self._store.has_credential(project_id)

    async def get_access_token(self, *, project_id: str) -> str:
        """Return a usable access token for the project, refreshing when close to expiry."""
        credential = self._store.get_credential(project_id)
        if credential is None:
            raise FigmaNotConnectedError(project_id)

        credential = await self.refresh_if_needed(credential)
        return self._sealer.open(credential.access_token)

    async def refresh_if_needed(
        self, credential: StoredFigmaCredential
    ) -> StoredFigmaCredential:
        """Refresh the credential when it expires within the refresh window."""
        expires_at = credential.access_token_expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        now = datetime.now(timezone.utc)
        if expires_at - now >= self.REFRESH_WINDOW:
            return credential

        logger.info(
            "Refreshing Figma access token",
            extra={"project_id": credential.project_id, "credential_id": credential.id},
        )
        refresh_token = self._sealer.open(credential.refresh_token)
        try:
            refreshed = await self._oauth.refresh_access_token(refresh_token)
        except OAuthTokenExchangeError as exc:
            logger.error(
                "Figma token refresh failed",
                extra={"project_id": credential.project_id, "status": exc.status_code},
            )
            raise FigmaApiError(
                "Failed to refresh Figma access token.",
                status_code=exc.status_code or 502,
                endpoint=exc.endpoint,
            ) from exc

        if refreshed.expires_in <= self.REFRESH_WINDOW.total_seconds():
            # Storing it would leave the credential inside the window for good.
            logger.warning(
                "Figma returned an access token that expires within the refresh window",
                extra={"project_id": credential.project_id, "expires_in": refreshed.expires_in},
            )
            raise FigmaApiError(
                "Figma returned an access token that expires too soon.",
                status_code=502,
                endpoint=TOKEN_ENDPOINT,
            )

        refreshed_at = datetime.now(timezone.utc)
        next_refresh_token = refreshed.refresh_token or refresh_token
        return self._store.update_credential_tokens(
            credential.id,
            access_token=self._sealer.seal(refreshed.access_token),
            refresh_token=self._sealer.seal(next_refresh_token),
            expires_at=refreshed_at + timedelta(seconds=refreshed.expires_in),
        )


__all__ = ["FigmaTokenService"]
