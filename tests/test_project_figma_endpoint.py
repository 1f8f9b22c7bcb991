try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

from pixelproof.main import app

USER_HEADERS = {"X-User-Id": "user-1"}


class RecordingBaselineService:
    def __init__(self, store) -> None:
        self.store = store
        self.builds: list[str] = []

    async def build_baseline(self, project_id: str):
        self.builds.append(project_id)
        snapshot, _ = self.store.upsert_baseline_snapshot(
            project_id=project_id,
            figma_file_key="FILEKEY",
            figma_frame_id="1:1",
            data={"components": []},
        )
        return snapshot

    def get_latest_baseline(self, project_id: str):
        return self.store.get_latest_baseline_snapshot(project_id)


@pytest.fixture()
def project_overrides(store):
    from pixelproof import dependencies

    baseline_service = RecordingBaselineService(store)
    app.dependency_overrides.update(
        {
            dependencies.get_sqlite_store: lambda: store,
            dependencies.get_baseline_service: lambda: baseline_service,
        }
    )
    yield baseline_service, store
    app.dependency_overrides.clear()


@pytest.fixture()
def linked_project(store):
    project = store.create_project(org_id="org-1", name="Site", figma_file_key="FILEKEY")
    store.add_membership(org_id="org-1", user_id="user-1")
    return project


async def _put(project_id: str, body: dict, headers=USER_HEADERS) -> httpx.Response:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        return await client.put(f"/api/projects/{project_id}/figma", json=body, headers=headers)


@pytest.mark.anyio
async def test_update_selects_frame_without_baseline(project_overrides, linked_project):
    baseline_service, store = project_overrides

    response = await _put(linked_project.id, {"figmaFrameId": "1:1"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Figma frame configuration updated successfully"
    assert body["project"]["figmaFrameId"] == "1:1"
    assert body["project"]["figmaFileKey"] == "FILEKEY"
    assert store.get_project(linked_project.id).figma_frame_id == "1:1"
    assert baseline_service.builds == []


@pytest.mark.anyio
async def test_update_schedules_baseline(project_overrides, linked_project):
    baseline_service, _ = project_overrides

    response = await _put(linked_project.id, {"figmaFrameId": "1:1", "createBaseline": True})

    assert response.status_code == 200
    assert baseline_service.builds == [linked_project.id]


@pytest.mark.anyio
async def test_update_links_file_from_url(project_overrides, store):
    project = store.create_project(org_id="org-1", name="Unlinked")
    store.add_membership(org_id="org-1", user_id="user-1")

    response = await _put(
        project.id,
        {
            "figmaFrameId": "1:1",
            "figmaFileUrl": "https://www.figma.com/design/NewKey42/Site?node-id=1-1",
        },
    )

    assert response.status_code == 200
    assert response.json()["project"]["figmaFileKey"] == "NewKey42"


@pytest.mark.anyio
async def test_update_rejects_invalid_file_url(project_overrides, linked_project):
    response = await _put(
        linked_project.id,
        {"figmaFrameId": "1:1", "figmaFileUrl": "https://example.com/file/abc"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid Figma file URL"


@pytest.mark.anyio
async def test_update_requires_linked_file(project_overrides, store):
    project = store.create_project(org_id="org-1", name="Unlinked")
    store.add_membership(org_id="org-1", user_id="user-1")

    response = await _put(project.id, {"figmaFrameId": "1:1"})

    assert response.status_code == 400
    assert store.get_project(project.id).figma_frame_id is None


@pytest.mark.anyio
async def test_update_requires_sign_in(project_overrides, linked_project):
    response = await _put(linked_project.id, {"figmaFrameId": "1:1"}, headers={})
    assert response.status_code == 401


@pytest.mark.anyio
async def test_update_unknown_project(project_overrides):
    response = await _put("missing", {"figmaFrameId": "1:1"})
    assert response.status_code == 404


@pytest.mark.anyio
async def test_update_forbidden_for_non_members(project_overrides, linked_project):
    response = await _put(linked_project.id, {"figmaFrameId": "1:1"}, headers={"X-User-Id": "x"})
    assert response.status_code == 403


@pytest.mark.anyio
@pytest.mark.parametrize("body", [{}, {"figmaFrameId": ""}, {"figmaFrameId": "1:1", "createBaseline": "maybe"}])
async def test_update_validates_body(project_overrides, linked_project, body):
    response = await _put(linked_project.id, body)
    assert response.status_code == 422


@pytest.mark.anyio
async def test_baseline_endpoint_returns_latest_snapshot(project_overrides, linked_project):
    baseline_service, _ = project_overrides
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        missing = await client.get(
            f"/api/projects/{linked_project.id}/baseline", headers=USER_HEADERS
        )
        await baseline_service.build_baseline(linked_project.id)
        found = await client.get(
            f"/api/projects/{linked_project.id}/baseline", headers=USER_HEADERS
        )

    assert missing.status_code == 404
    assert found.status_code == 200
    body = found.json()
    assert body["projectId"] == linked_project.id
    assert body["figmaFrameId"] == "1:1"
    assert body["data"] == {"components": []}


@pytest.mark.anyio
async def test_health(project_overrides):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        response = await client.get("/api/health")
    assert response.json() == {"status": "ok"}
