"""
Figma OAuth authorization-code flow.

``start`` prepares the consent redirect and the values the HTTP layer stores in
cookies; ``complete`` validates the callback and persists the credential. Both
return plain values so cookie handling stays in the router.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode

from pixelproof.clients.figma_auth import (
    FigmaOAuthClient,
    InvalidOAuthStateError,
    InvalidTokenResponseError,
    OAuthStateEncoder,
    OAuthTokenExchangeError,
)
from pixelproof.clients.sqlite_store import SQLiteStore
from pixelproof.core.config import OAuthSettings
from pixelproof.schemas.auth import OAuthStatePayload
from pixelproof.services.token_sealer import TokenSealer

logger = logging.getLogger(__name__)

EXCHANGE_FAILED_MESSAGE = "Failed to exchange authorization code"
INVALID_RESPONSE_MESSAGE = "Invalid response from Figma"
UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred"
CONNECTED_MESSAGE = "Figma connected successfully"
PROJECT_NOT_FOUND_MESSAGE = "Project not found"
ACCESS_DENIED_MESSAGE = "Access denied to this project"


class OAuthCallbackError(Exception):
    """Raised for callbacks that must be answered with a JSON error, not a redirect."""

    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class InvalidReturnPathError(ValueError):
    """Raised when ``returnTo`` is not a same-site relative path."""


@dataclass(frozen=True)
class OAuthStart:
    authorization_url: str
    csrf: str
    return_to: str


def is_safe_return_path(path: Optional[str]) -> bool:
    """Accept only absolute-path references on this site (``/x``, never ``//x``)."""
    if not path or not path.startswith("/") or path.startswith("//"):
        return False
    return "\\" not in path and not any(ord(char) < 0x20 for char in path)


def with_status(path: str, status: str, message: Optional[str] = None) -> str:
    """Append the ``status``/``message`` indicator to a redirect path."""
    params = {"status": status}
    if message:
        params["message"] = message
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}{urlencode(params)}"


class FigmaOAuthCoordinator:
    """Drive the Figma OAuth flow and store the resulting credential."""

    def __init__(
        self,
        *,
        store: SQLiteStore,
        oauth_client: FigmaOAuthClient,
        state_encoder: OAuthStateEncoder,
        sealer: TokenSealer,
        oauth_settings: OAuthSettings,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._encoder = state_encoder
        self._sealer = sealer
        self._settings = oauth_settings

    def default_return_path(self, project_id: Optional[str]) -> str:
        if project_id:
            return f"/projects/{project_id}/settings"
        return self._settings.default_return_path

    def start(
        self, *, project_id: Optional[str] = None, return_to: Optional[str] = None
    ) -> OAuthStart:
        """Build the consent URL plus the nonce and return path to store in cookies."""
        if return_to is not None and not is_safe_return_path(return_to):
            raise InvalidReturnPathError("returnTo must be a relative path on this site.")

        csrf = secrets.token_hex(32)
        state = self._encoder.encode(OAuthStatePayload(csrf=csrf, project_id=project_id))
        logger.info("Starting Figma OAuth flow", extra={"project_id": project_id})
        return OAuthStart(
            authorization_url=self._oauth.build_authorization_url(state),
            csrf=csrf,
            return_to=return_to or self.default_return_path(project_id),
        )

    async def complete(
        self,
        *,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str],
        error_description: Optional[str],
        csrf_cookie: Optional[str],
        return_to_cookie: Optional[str],
        user_id: Optional[str],
    ) -> str:
        """Handle the provider callback and return the redirect location.

        Raises ``OAuthCallbackError`` for malformed or forged callbacks and for
        unauthenticated callers.
        """
        return_to = (
            return_to_cookie
            if is_safe_return_path(return_to_cookie)
            else self._settings.default_return_path
        )
        try:
            return await self._complete(
                code=code,
                state=state,
                error=error,
                error_description=error_description,
                csrf_cookie=csrf_cookie,
                return_to=return_to,
                user_id=user_id,
            )
        except OAuthCallbackError:
            raise
        except Exception:  # pylint: disable=broad-except
            logger.exception("Error in Figma OAuth callback")
            return with_status(return_to, "error", UNEXPECTED_ERROR_MESSAGE)

    async def _complete(
        self,
        *,
        code: Optional[str],
        state: Optional[str],
        error: Optional[str],
        error_description: Optional[str],
        csrf_cookie: Optional[str],
        return_to: str,
        user_id: Optional[str],
    ) -> str:
        if error:
            reason = error_description or error
            logger.info("User denied Figma OAuth", extra={"reason": reason})
            return with_status(return_to, "error", reason)

        if not code or not state:
            raise OAuthCallbackError(400, "Invalid callback parameters")

        try:
            payload = self._encoder.decode(state)
        except InvalidOAuthStateError as exc:
            logger.warning("Failed to decode state parameter: %s", exc)
            raise OAuthCallbackError(400, "Invalid state parameter format") from exc

        if not csrf_cookie or not hmac.compare_digest(
            payload.csrf.encode("utf-8"), csrf_cookie.encode("utf-8")
        ):
            logger.error("CSRF token mismatch on Figma OAuth callback")
            raise OAuthCallbackError(400, "Invalid state parameter (CSRF protection failed)")

        if not user_id:
            raise OAuthCallbackError(401, "User not authenticated. Please sign in.")

        project_id = payload.project_id
        if project_id:
            if self._store.get_project(project_id) is None:
                return with_status("/projects", "error", PROJECT_NOT_FOUND_MESSAGE)
            if not self._store.user_has_project_access(project_id=project_id, user_id=user_id):
                logger.warning(
                    "Caller has no access to project",
                    extra={"project_id": project_id, "user_id": user_id},
                )
                return with_status("/projects", "error", ACCESS_DENIED_MESSAGE)

        try:
            tokens = await self._oauth.exchange_authorization_code(code)
        except InvalidTokenResponseError:
            return with_status(return_to, "error", INVALID_RESPONSE_MESSAGE)
        except OAuthTokenExchangeError:
            return with_status(return_to, "error", EXCHANGE_FAILED_MESSAGE)

        if not project_id:
            logger.info(
                "Figma OAuth completed without project association", extra={"user_id": user_id}
            )
            return with_status(return_to, "connected", CONNECTED_MESSAGE)

        expires_at = datetime.now(timezone.utc) + timedelta(seconds=tokens.expires_in)
        self._store.upsert_credential(
            project_id=project_id,
            access_token=self._sealer.seal(tokens.access_token),
            refresh_token=self._sealer.seal(tokens.refresh_token),
            expires_at=expires_at,
        )
        logger.info(
            "Figma credentials stored",
            extra={
                "project_id": project_id,
                "user_id": user_id,
                "expires_at": expires_at.isoformat(),
            },
        )
        return with_status(f"/projects/{project_id}/settings", "connected")


__all__ = [
    "FigmaOAuthCoordinator",
    "InvalidReturnPathError",
    "OAuthCallbackError",
    "OAuthStart",
    "is_safe_return_path",
    "with_status",
]
