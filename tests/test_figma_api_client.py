from __future__ import annotations

import httpx
import pytest

from pixelproof.clients.figma_api import (
    FigmaApiClient,
    FigmaApiError,
    FigmaNotConnectedError,
    FigmaTimeoutError,
)


class DummyTokenService:
    def __init__(self, token: str = "access-123", *, connected: bool = True) -> None:
        self.token = token
        self.connected = connected
        self.calls: list[str] = []

    async def get_access_token(self, *, project_id: str) -> str:
        self.calls.append(project_id)
        if not self.connected:
            raise FigmaNotConnectedError(project_id)
        return self.token

    def has_credentials(self, project_id: str) -> bool:
        return self.connected


def _client(figma_settings, handler, tokens: DummyTokenService | None = None) -> FigmaApiClient:
    return FigmaApiClient(
        tokens or DummyTokenService(),
        figma_settings,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_fetch_file_sends_bearer_token(figma_settings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"name": "Design", "document": {"id": "0:0"}})

    data = await _client(figma_settings, handler).fetch_file(project_id="p1", file_key="abc123")

    assert data["name"] == "Design"
    assert seen[0].url == httpx.URL("https://api.figma.test/v1/files/abc123")
    assert seen[0].headers["Authorization"] == "Bearer access-123"


@pytest.mark.asyncio
async def test_non_success_raises_typed_error(figma_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"status": 404, "err": "Not found"})

    with pytest.raises(FigmaApiError) as exc_info:
        await _client(figma_settings, handler).fetch_file(project_id="p1", file_key="missing")

    error = exc_info.value
    assert error.status_code == 404
    assert error.endpoint == "/v1/files/missing"
    assert error.retryable is False
    assert "Not found" not in str(error)


@pytest.mark.asyncio
async def test_server_errors_are_retryable(figma_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="upstream down")

    with pytest.raises(FigmaApiError) as exc_info:
        await _client(figma_settings, handler).fetch_variables(project_id="p1", file_key="abc")

    assert exc_info.value.status_code == 503
    assert exc_info.value.retryable is True


@pytest.mark.asyncio
async def test_timeout_raises_retryable_timeout_error(figma_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(FigmaTimeoutError) as exc_info:
        await _client(figma_settings, handler).fetch_file(project_id="p1", file_key="abc")

    assert exc_info.value.status_code == 504
    assert exc_info.value.retryable is True
    assert isinstance(exc_info.value, FigmaApiError)


@pytest.mark.asyncio
async def test_fetch_file_nodes_joins_ids(figma_settings) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"nodes": {}})

    await _client(figma_settings, handler).fetch_file_nodes(
        project_id="p1", file_key="abc", node_ids=["1:2", "3:4"]
    )

    assert seen[0].url.path == "/v1/files/abc/nodes"
    assert seen[0].url.params["ids"] == "1:2,3:4"


@pytest.mark.asyncio
async def test_fetch_file_nodes_rejects_empty_ids(figma_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        return httpx.Response(200, json={})

    with pytest.raises(ValueError):
        await _client(figma_settings, handler).fetch_file_nodes(
            project_id="p1", file_key="abc", node_ids=[]
        )


@pytest.mark.asyncio
async def test_fetch_file_with_variables_resolves_token_once(figma_settings) -> None:
    tokens = DummyTokenService()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/variables/local"):
            return httpx.Response(200, json={"meta": {"variables": {}}})
        return httpx.Response(200, json={"name": "Design"})

    file_data, variables = await _client(figma_settings, handler, tokens).fetch_file_with_variables(
        project_id="p1", file_key="abc"
    )

    assert file_data == {"name": "Design"}
    assert variables == {"meta": {"variables": {}}}
    assert tokens.calls == ["p1"]


@pytest.mark.asyncio
async def test_fetch_file_with_variables_fails_fast(figma_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/variables/local"):
            return httpx.Response(403, json={"err": "Forbidden"})
        return httpx.Response(200, json={"name": "Design"})

    with pytest.raises(FigmaApiError) as exc_info:
        await _client(figma_settings, handler).fetch_file_with_variables(
            project_id="p1", file_key="abc"
        )
    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
async def test_not_connected_propagates(figma_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:  # pragma: no cover - never called
        return httpx.Response(200, json={})

    client = _client(figma_settings, handler, DummyTokenService(connected=False))
    assert client.has_credentials("p1") is False
    with pytest.raises(FigmaNotConnectedError):
        await client.fetch_file(project_id="p1", file_key="abc")
