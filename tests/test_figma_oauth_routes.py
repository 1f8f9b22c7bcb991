try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from pixelproof.clients.figma_auth import (
    InvalidTokenResponseError,
    OAuthStateEncoder,
    OAuthTokenExchangeError,
)
from pixelproof.core.config import OAuthSettings
from pixelproof.main import app
from pixelproof.schemas.auth import FigmaTokenResponse, OAuthStatePayload
from pixelproof.services.oauth_flow import FigmaOAuthCoordinator

USER_HEADERS = {"X-User-Id": "user-1"}


class DummyOAuthClient:
    def __init__(self) -> None:
        self.states: list[str] = []
        self.codes: list[str] = []
        self.error: Exception | None = None

    def build_authorization_url(self, state: str) -> str:
        self.states.append(state)
        return f"https://www.figma.com/oauth?state={state}"

    async def exchange_authorization_code(self, code: str) -> FigmaTokenResponse:
        self.codes.append(code)
        if self.error is not None:
            raise self.error
        return FigmaTokenResponse(
            access_token="access-token", refresh_token="refresh-token", expires_in=3600
        )


@pytest.fixture()
def oauth_overrides(store, sealer):
    from pixelproof import dependencies

    dummy_client = DummyOAuthClient()
    coordinator = FigmaOAuthCoordinator(
        store=store,
        oauth_client=dummy_client,
        state_encoder=OAuthStateEncoder(),
        sealer=sealer,
        oauth_settings=OAuthSettings(),
    )
    app.dependency_overrides.update(
        {
            dependencies.get_oauth_coordinator: lambda: coordinator,
            dependencies.get_sqlite_store: lambda: store,
        }
    )

    yield dummy_client, store

    app.dependency_overrides.clear()


@pytest.fixture()
def member_project(store):
    project = store.create_project(org_id="org-1", name="Marketing site")
    store.add_membership(org_id="org-1", user_id="user-1")
    return project


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")


def _state(csrf: str, project_id: str | None = None) -> str:
    return OAuthStateEncoder().encode(OAuthStatePayload(csrf=csrf, project_id=project_id))


def _cookie_header(csrf: str | None = "nonce", return_to: str | None = None) -> dict:
    parts = []
    if csrf is not None:
        parts.append(f"oauth_csrf={csrf}")
    if return_to is not None:
        parts.append(f"oauth_return_to={return_to}")
    return {"Cookie": "; ".join(parts)} if parts else {}


def _assert_cookies_cleared(response: httpx.Response) -> None:
    set_cookies = response.headers.get_list("set-cookie")
    for name in ("oauth_csrf", "oauth_return_to"):
        cleared = [c for c in set_cookies if c.startswith(f"{name}=")]
        assert cleared, f"{name} was not cleared"
        assert "Max-Age=0" in cleared[0]


@pytest.mark.anyio
async def test_start_sets_cookies_and_redirects(oauth_overrides):
    dummy_client, _ = oauth_overrides
    async with _client() as client:
        response = await client.get("/api/oauth/start", params={"projectId": "p-1"})

    assert response.status_code == 302
    assert response.headers["location"].startswith("https://www.figma.com/oauth?state=")
    set_cookies = response.headers.get_list("set-cookie")
    csrf_cookie = next(c for c in set_cookies if c.startswith("oauth_csrf="))
    return_cookie = next(c for c in set_cookies if c.startswith("oauth_return_to="))
    assert "HttpOnly" in csrf_cookie
    assert "Max-Age=600" in csrf_cookie
    assert "/projects/p-1/settings" in return_cookie

    payload = OAuthStateEncoder().decode(dummy_client.states[0])
    assert payload.project_id == "p-1"
    assert csrf_cookie.split(";")[0] == f"oauth_csrf={payload.csrf}"
    assert len(payload.csrf) == 64


@pytest.mark.anyio
@pytest.mark.parametrize("return_to", ["https://evil.example.com", "//evil.example.com", "/\\evil"])
async def test_start_rejects_unsafe_return_path(oauth_overrides, return_to):
    async with _client() as client:
        response = await client.get("/api/oauth/start", params={"returnTo": return_to})

    assert response.status_code == 400


@pytest.mark.anyio
async def test_callback_stores_sealed_credential(oauth_overrides, member_project, sealer):
    dummy_client, store = oauth_overrides
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"code": "auth-code", "state": _state("nonce", member_project.id)},
            headers={**USER_HEADERS, **_cookie_header("nonce")},
        )

    assert response.status_code == 302
    assert response.headers["location"] == (
        f"/projects/{member_project.id}/settings?status=connected"
    )
    _assert_cookies_cleared(response)
    assert dummy_client.codes == ["auth-code"]

    credential = store.get_credential(member_project.id)
    assert credential is not None
    assert credential.access_token.startswith("v1:")
    assert sealer.open(credential.access_token) == "access-token"
    assert sealer.open(credential.refresh_token) == "refresh-token"


@pytest.mark.anyio
async def test_callback_rejects_csrf_mismatch(oauth_overrides, member_project):
    dummy_client, store = oauth_overrides
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"code": "auth-code", "state": _state("nonce", member_project.id)},
            headers={**USER_HEADERS, **_cookie_header("other-nonce")},
        )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid state parameter (CSRF protection failed)"}
    _assert_cookies_cleared(response)
    assert dummy_client.codes == []
    assert store.get_credential(member_project.id) is None


@pytest.mark.anyio
async def test_callback_rejects_missing_csrf_cookie(oauth_overrides, member_project):
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"code": "auth-code", "state": _state("nonce", member_project.id)},
            headers=USER_HEADERS,
        )

    assert response.status_code == 400


@pytest.mark.anyio
async def test_callback_rejects_malformed_state(oauth_overrides):
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"code": "auth-code", "state": "not-a-state"},
            headers={**USER_HEADERS, **_cookie_header("nonce")},
        )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid state parameter format"}


@pytest.mark.anyio
async def test_callback_requires_code_and_state(oauth_overrides):
    async with _client() as client:
        response = await client.get("/api/oauth/callback", headers=USER_HEADERS)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid callback parameters"}


@pytest.mark.anyio
async def test_callback_requires_signed_in_user(oauth_overrides, member_project):
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"code": "auth-code", "state": _state("nonce", member_project.id)},
            headers=_cookie_header("nonce"),
        )

    assert response.status_code == 401


@pytest.mark.anyio
async def test_callback_redirects_on_provider_error(oauth_overrides):
    dummy_client, _ = oauth_overrides
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"error": "access_denied", "error_description": "User cancelled"},
            headers={**USER_HEADERS, **_cookie_header("nonce", "/projects/p-1/settings")},
        )

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert location.path == "/projects/p-1/settings"
    assert parse_qs(location.query) == {"status": ["error"], "message": ["User cancelled"]}
    assert dummy_client.codes == []
    _assert_cookies_cleared(response)


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("error", "message"),
    [
        (OAuthTokenExchangeError("boom", status_code=400), "Failed to exchange authorization code"),
        (InvalidTokenResponseError("bad payload"), "Invalid response from Figma"),
    ],
)
async def test_callback_redirects_when_exchange_fails(
    oauth_overrides, member_project, error, message
):
    dummy_client, store = oauth_overrides
    dummy_client.error = error
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"code": "auth-code", "state": _state("nonce", member_project.id)},
            headers={**USER_HEADERS, **_cookie_header("nonce", "/projects/x/settings")},
        )

    assert response.status_code == 302
    query = parse_qs(urlparse(response.headers["location"]).query)
    assert query == {"status": ["error"], "message": [message]}
    assert store.get_credential(member_project.id) is None


@pytest.mark.anyio
async def test_callback_redirects_when_caller_is_not_a_member(oauth_overrides, store):
    dummy_client, _ = oauth_overrides
    project = store.create_project(org_id="org-2", name="Someone else's site")
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"code": "auth-code", "state": _state("nonce", project.id)},
            headers={**USER_HEADERS, **_cookie_header("nonce")},
        )

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert location.path == "/projects"
    assert parse_qs(location.query) == {
        "status": ["error"],
        "message": ["Access denied to this project"],
    }
    assert dummy_client.codes == []
    assert store.get_credential(project.id) is None


@pytest.mark.anyio
async def test_callback_without_project_only_reports_success(oauth_overrides, store):
    dummy_client, _ = oauth_overrides
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"code": "auth-code", "state": _state("nonce")},
            headers={**USER_HEADERS, **_cookie_header("nonce", "/dashboard")},
        )

    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    assert location.path == "/dashboard"
    assert parse_qs(location.query) == {
        "status": ["connected"],
        "message": ["Figma connected successfully"],
    }
    assert dummy_client.codes == ["auth-code"]


@pytest.mark.anyio
async def test_callback_ignores_unsafe_return_cookie(oauth_overrides):
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"error": "access_denied"},
            headers={**USER_HEADERS, **_cookie_header("nonce", "//evil.example.com")},
        )

    assert response.status_code == 302
    assert urlparse(response.headers["location"]).path == "/projects"


@pytest.mark.anyio
async def test_callback_redirects_generically_on_unexpected_failure(
    oauth_overrides, member_project, monkeypatch
):
    _, store = oauth_overrides

    def broken_upsert(**kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(store, "upsert_credential", broken_upsert)
    async with _client() as client:
        response = await client.get(
            "/api/oauth/callback",
            params={"code": "auth-code", "state": _state("nonce", member_project.id)},
            headers={**USER_HEADERS, **_cookie_header("nonce", "/projects/x/settings")},
        )

    assert response.status_code == 302
    assert response.headers["location"] == (
        "/projects/x/settings?status=error&message=An+unexpected+error+occurred"
    )
    _assert_cookies_cleared(response)
