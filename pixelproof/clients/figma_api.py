"""
Thin async wrapper over the Figma REST API.

Every request resolves a fresh access token through the token service, so
callers never handle credentials directly.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, Tuple
from urllib.parse import quote

import httpx

from pixelproof.core.config import FigmaSettings

if TYPE_CHECKING:
    from pixelproof.services.figma_tokens import FigmaTokenService

logger = logging.getLogger(__name__)


class FigmaApiError(Exception):
    """Raised when Figma answers with a non-success status or cannot be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        endpoint: str,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint
        self.retryable = retryable


class FigmaTimeoutError(FigmaApiError):
    """Raised when a Figma request exceeds the configured timeout."""

    def __init__(self, endpoint: str) -> None:
        super().__init__(
            "Figma request timed out.",
            status_code=504,
            endpoint=endpoint,
            retryable=True,
        )


class FigmaNotConnectedError(Exception):
    """Raised when a project has no stored Figma credential."""

    def __init__(self, project_id: str) -> None:
        super().__init__(f"Figma is not connected for project {project_id}.")
        self.project_id = project_id


def _redact_key(file_key: str) -> str:
    return f"{file_key[:6]}..." if len(file_key) > 6 else file_key


class FigmaApiClient:
    """Fetch files, node subsets and local variables from Figma."""

    def __init__(
        self,
        token_service: "FigmaTokenService",
        figma_settings: FigmaSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._tokens = token_service
        self._figma = figma_settings
        self._transport = transport

    async def fetch_file(self, *, project_id: str, file_key: str) -> Dict[str, Any]:
        """Return the full document JSON for a file."""
        token = await self._tokens.get_access_token(project_id=project_id)
        return await self._get(f"/v1/files/{quote(file_key, safe='')}", token=token)

    async def fetch_file_nodes(
        self, *, project_id: str, file_key: str, node_ids: Iterable[str]
    ) -> Dict[str, Any]:
        """Return only the requested nodes of a file."""
        ids = [node_id for node_id in node_ids if node_id]
        if not ids:
            raise ValueError("At least one node id is required.")
        token = await self._tokens.get_access_token(project_id=project_id)
        return await self._get(
            f"/v1/files/{quote(file_key, safe='')}/nodes",
            token=token,
            params={"ids": ",".join(ids)},
        )

    async def fetch_variables(self, *, project_id: str, file_key: str) -> Dict[str, Any]:
        """Return the file's local variables and collections."""
        token = await self._tokens.get_access_token(project_id=project_id)
        return await self._get(
            f"/v1/files/{quote(file_key, safe='')}/variables/local", token=token
        )

    async def fetch_file_with_variables(
        self, *, project_id: str, file_key: str
    ) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """Fetch the file and its variables concurrently.

        The access token is resolved once for both requests. The first failure
        propagates and the other request is cancelled.
        """
        logger.debug(
            "Fetching Figma file with variables",
            extra={"project_id": project_id, "file_key": _redact_key(file_key)},
        )
        token = await self._tokens.get_access_token(project_id=project_id)
        encoded = quote(file_key, safe="")
        file_task = asyncio.ensure_future(self._get(f"/v1/files/{encoded}", token=token))
        variables_task = asyncio.ensure_future(
            self._get(f"/v1/files/{encoded}/variables/local", token=token)
        )
        try:
            file_data, variables = await asyncio.gather(file_task, variables_task)
        except BaseException:
            for task in (file_task, variables_task):
                task.cancel()
            raise
        return file_data, variables

    def has_credentials(self, project_id: str) -> bool:
        return self._tokens.has_credentials(project_id)

    async def _get(
        self,
        path: str,
        *,
        token: str,
        params: Mapping[str, str] | None = None,
    ) -> Dict[str, Any]:
        url = f"{self._figma.api_base_url.rstrip('/')}{path}"
        headers = {"Authorization": f"Bearer {token}"}
        try:
            async with httpx.AsyncClient(
                timeout=self._figma.request_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(url, headers=headers, params=params)
        except httpx.TimeoutException as exc:
            logger.warning("Figma request timed out", extra={"endpoint": path})
            raise FigmaTimeoutError(path) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "Figma request failed: %s", exc.__class__.__name__, extra={"endpoint": path}
            )
            raise FigmaApiError(
                "Unable to reach Figma.", status_code=502, endpoint=path, retryable=True
            ) from exc

        if not response.is_success:
            logger.error(
                "Figma API error",
                extra={
                    "endpoint": path,
                    "status": response.status_code,
                    "error_body": response.text[:500],
                },
            )
            raise FigmaApiError(
                f"Figma API returned {response.status_code}.",
                status_code=response.status_code,
                endpoint=path,
                retryable=response.status_code == 429 or response.status_code >= 500,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise FigmaApiError(
                "Figma returned a non-JSON body.", status_code=502, endpoint=path
            ) from exc
        if not isinstance(payload, dict):
            raise FigmaApiError(
                "Unexpected Figma response shape.", status_code=502, endpoint=path
            )
        return payload


__all__ = [
    "FigmaApiClient",
    "FigmaApiError",
    "FigmaNotConnectedError",
    "FigmaTimeoutError",
]
