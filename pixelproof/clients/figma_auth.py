"""
Figma OAuth utilities.

These helpers build the consent URL, carry the CSRF state through Figma, and
talk to the token endpoint for both the authorization-code and refresh grants.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Dict
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ValidationError

from pixelproof.core.config import FigmaSettings
from pixelproof.schemas.auth import (
    FigmaRefreshResponse,
    FigmaTokenResponse,
    OAuthStatePayload,
)

logger = logging.getLogger(__name__)

TOKEN_ENDPOINT = "/api/oauth/token"


class InvalidOAuthStateError(ValueError):
    """Raised when the ``state`` parameter cannot be decoded or validated."""


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error or cannot be reached."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = TOKEN_ENDPOINT


class InvalidTokenResponseError(OAuthTokenExchangeError):
    """Raised when the token endpoint answers 2xx with an unexpected body."""


class OAuthStateEncoder:
    """Encode and decode the OAuth ``state`` value as unpadded base64url JSON."""

    def encode(self, payload: OAuthStatePayload) -> str:
        serialized = payload.model_dump_json(by_alias=True, exclude_none=True)
        encoded = base64.urlsafe_b64encode(serialized.encode("utf-8"))
        return encoded.decode("ascii").rstrip("=")

    def decode(self, token: str) -> OAuthStatePayload:
        padded = token + "=" * (-len(token) % 4)
        try:
            raw = base64.urlsafe_b64decode(padded.encode("ascii"))
            parsed = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeError, ValueError) as exc:
            raise InvalidOAuthStateError("State parameter is not valid base64url JSON.") from exc
        if not isinstance(parsed, dict):
            raise InvalidOAuthStateError("State parameter must encode a JSON object.")
        try:
            return OAuthStatePayload.model_validate(parsed)
        except ValidationError as exc:
            raise InvalidOAuthStateError("Invalid state payload structure.") from exc


class FigmaOAuthClient:
    """Build Figma authorization URLs and call the token endpoint."""

    def __init__(
        self,
        figma_settings: FigmaSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._figma = figma_settings
        self._transport = transport

    def build_authorization_url(self, state: str) -> str:
        """Construct the Figma OAuth consent URL."""
        params = {
            "client_id": self._figma.client_id,
            "redirect_uri": str(self._figma.redirect_uri),
            "scope": self._figma.scope,
            "response_type": "code",
            "state": state,
        }
        return f"{self._figma.authorization_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> FigmaTokenResponse:
        """Exchange an authorization code for an access/refresh token pair."""
        payload = {
            "client_id": self._figma.client_id,
            "client_secret": self._figma.client_secret,
            "redirect_uri": str(self._figma.redirect_uri),
            "code": code,
            "grant_type": "authorization_code",
        }
        body = await self._post_token(payload, grant="authorization_code")
        return self._parse(body, FigmaTokenResponse)

    async def refresh_access_token(self, refresh_token: str) -> FigmaRefreshResponse:
        """Refresh the access token using a stored refresh token."""
        payload = {
            "client_id": self._figma.client_id,
            "client_secret": self._figma.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        body = await self._post_token(payload, grant="refresh_token")
        return self._parse(body, FigmaRefreshResponse)

    async def _post_token(self, payload: Dict[str, str], *, grant: str) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self._figma.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(self._figma.token_url, data=payload)
        except httpx.TimeoutException as exc:
            logger.error("Figma token request timed out", extra={"grant_type": grant})
            raise OAuthTokenExchangeError("Figma token endpoint timed out.", status_code=504) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "Figma token request failed: %s", exc.__class__.__name__, extra={"grant_type": grant}
            )
            raise OAuthTokenExchangeError("Figma token endpoint unreachable.") from exc

        if not response.is_success:
            logger.error(
                "Figma token exchange failed",
                extra={
                    "grant_type": grant,
                    "status": response.status_code,
                    "error_body": response.text,
                    "client_id": self._figma.client_id[:8] + "...",
                },
            )
            raise OAuthTokenExchangeError(
                f"Figma token endpoint returned {response.status_code}.",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise InvalidTokenResponseError(
                "Figma token endpoint returned a non-JSON body.",
                status_code=response.status_code,
            ) from exc

    @staticmethod
    def _parse(body: Any, model: type[BaseModel]) -> Any:
        try:
            return model.model_validate(body)
        except ValidationError as exc:
            logger.error(
                "Invalid token response from Figma",
                extra={"errors": [error["loc"] for error in exc.errors()]},
            )
            raise InvalidTokenResponseError("Incomplete token payload returned from Figma.") from exc


__all__ = [
    "FigmaOAuthClient",
    "InvalidOAuthStateError",
    "InvalidTokenResponseError",
    "OAuthStateEncoder",
    "OAuthTokenExchangeError",
]
