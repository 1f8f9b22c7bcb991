"""
FastAPI routes for the PixelProof Figma integration.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from pixelproof.clients.figma_api import FigmaApiError, FigmaNotConnectedError, FigmaTimeoutError
from pixelproof.core.config import AppSettings
from pixelproof.dependencies import (
    get_app_settings,
    get_baseline_service,
    get_current_user_id,
    get_figma_api_client,
    get_oauth_coordinator,
    get_sqlite_store,
)
from pixelproof.models.project import Project
from pixelproof.schemas import (
    BaselineSnapshotResponse,
    FigmaConnectionStatus,
    FramesMeta,
    FramesResponse,
    ProjectSummary,
    UpdateFigmaConfigRequest,
    UpdateFigmaConfigResponse,
)
from pixelproof.services.baseline_jobs import run_baseline_job
from pixelproof.services.frame_traversal import extract_frames_from_document
from pixelproof.services.oauth_flow import InvalidReturnPathError, OAuthCallbackError
from pixelproof.utils.figma_urls import extract_file_key_from_url

router = APIRouter()
logger = logging.getLogger(__name__)

NOT_CONNECTED_ERROR = "Figma not connected"
NOT_CONNECTED_DETAILS = (
    'Please connect your Figma account first by clicking "Connect Figma" on the project page.'
)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


# OAuth ----------------------------------------------------------------------


def _set_oauth_cookie(response: Response, key: str, value: str, settings: AppSettings) -> None:
    response.set_cookie(
        key,
        value,
        max_age=settings.oauth.state_ttl_seconds,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
        path="/",
    )


def _clear_oauth_cookies(response: Response, settings: AppSettings) -> None:
    for key in (settings.oauth.csrf_cookie_name, settings.oauth.return_to_cookie_name):
        response.delete_cookie(
            key,
            path="/",
            httponly=True,
            secure=settings.is_production,
            samesite="lax",
        )


@router.get("/oauth/start")
async def start_figma_oauth(
    coordinator: Annotated[Any, Depends(get_oauth_coordinator)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    project_id: Optional[str] = Query(None, alias="projectId", min_length=1),
    return_to: Optional[str] = Query(None, alias="returnTo"),
) -> Response:
    """Redirect the browser to Figma's consent screen."""
    try:
        start = coordinator.start(project_id=project_id, return_to=return_to)
    except InvalidReturnPathError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc

    response = RedirectResponse(url=start.authorization_url, status_code=HTTPStatus.FOUND)
    _set_oauth_cookie(response, settings.oauth.csrf_cookie_name, start.csrf, settings)
    _set_oauth_cookie(response, settings.oauth.return_to_cookie_name, start.return_to, settings)
    return response


@router.get("/oauth/callback")
async def figma_oauth_callback(
    request: Request,
    coordinator: Annotated[Any, Depends(get_oauth_coordinator)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    user_id: Annotated[Optional[str], Depends(get_current_user_id)],
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
) -> Response:
    """Complete the OAuth exchange, store tokens, and redirect back to the app.

    The CSRF and return-path cookies are single use and cleared on every outcome.
    """
    try:
        location = await coordinator.complete(
            code=code,
            state=state,
            error=error,
            error_description=error_description,
            csrf_cookie=request.cookies.get(settings.oauth.csrf_cookie_name),
            return_to_cookie=request.cookies.get(settings.oauth.return_to_cookie_name),
            user_id=user_id,
        )
        response: Response = RedirectResponse(url=location, status_code=HTTPStatus.FOUND)
    except OAuthCallbackError as exc:
        response = JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    _clear_oauth_cookies(response, settings)
    return response


# Projects -------------------------------------------------------------------


def _require_project_access(store: Any, project_id: str, user_id: Optional[str]) -> Project:
    if not user_id:
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED, detail="Unauthorized - Please sign in"
        )
    project = store.get_project(project_id)
    if project is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Project not found")
    if not store.user_has_project_access(project_id=project_id, user_id=user_id):
        raise HTTPException(
            status_code=HTTPStatus.FORBIDDEN, detail="You do not have access to this project"
        )
    return project


def _figma_error_to_http(exc: FigmaApiError) -> HTTPException:
    """Translate an upstream Figma failure into a user-facing HTTP error."""
    if isinstance(exc, FigmaTimeoutError):
        return HTTPException(
            status_code=HTTPStatus.GATEWAY_TIMEOUT,
            detail="Figma did not respond in time. Please try again later.",
        )
    if exc.status_code == HTTPStatus.NOT_FOUND:
        return HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail="Figma file not found. The file may have been deleted or moved.",
        )
    if exc.status_code == HTTPStatus.FORBIDDEN:
        return HTTPException(
            status_code=HTTPStatus.FORBIDDEN,
            detail="Access denied to Figma file. Please reconnect Figma integration.",
        )
    return HTTPException(
        status_code=HTTPStatus.BAD_GATEWAY,
        detail="Failed to fetch Figma file. Please try again later.",
    )


def _needs_oauth_response(details: str = NOT_CONNECTED_DETAILS) -> JSONResponse:
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={"error": NOT_CONNECTED_ERROR, "details": details, "needsOAuth": True},
    )


@router.get("/figma/frames", response_model=FramesResponse)
async def list_figma_frames(
    store: Annotated[Any, Depends(get_sqlite_store)],
    api_client: Annotated[Any, Depends(get_figma_api_client)],
    user_id: Annotated[Optional[str], Depends(get_current_user_id)],
    project_id: str = Query(..., alias="projectId", min_length=1),
) -> Any:
    """List selectable frames from the project's linked Figma file."""
    project = _require_project_access(store, project_id, user_id)
    if not project.figma_file_key:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=(
                "This project is not linked to a Figma file. "
                "Please configure Figma integration first."
            ),
        )
    if not api_client.has_credentials(project_id):
        return _needs_oauth_response()

    try:
        figma_file = await api_client.fetch_file(
            project_id=project_id, file_key=project.figma_file_key
        )
    except FigmaNotConnectedError:
        return _needs_oauth_response("Please connect your Figma account first.")
    except FigmaApiError as exc:
        logger.error(
            "Figma API error while fetching file",
            extra={
                "project_id": project_id,
                "file_key": project.figma_file_key[:8] + "...",
                "status": exc.status_code,
                "endpoint": exc.endpoint,
            },
        )
        raise _figma_error_to_http(exc) from exc

    document = figma_file.get("document")
    collection = extract_frames_from_document(document if isinstance(document, dict) else {})
    logger.info(
        "Frames extracted",
        extra={
            "project_id": project_id,
            "frame_count": len(collection.frames),
            "truncated": collection.truncated,
        },
    )
    return FramesResponse(
        frames=collection.frames,
        meta=FramesMeta(
            total=len(collection.frames),
            file_name=figma_file.get("name"),
            file_version=figma_file.get("version"),
            truncated=collection.truncated,
        ),
    )


@router.get("/figma/status", response_model=FigmaConnectionStatus)
async def figma_connection_status(
    store: Annotated[Any, Depends(get_sqlite_store)],
    user_id: Annotated[Optional[str], Depends(get_current_user_id)],
    project_id: str = Query(..., alias="projectId", min_length=1),
) -> Any:
    """Report whether the project has a stored Figma credential."""
    _require_project_access(store, project_id, user_id)
    return FigmaConnectionStatus(project_id=project_id, connected=store.has_credential(project_id))


@router.put("/projects/{project_id}/figma", response_model=UpdateFigmaConfigResponse)
async def update_project_figma_config(
    project_id: str,
    payload: UpdateFigmaConfigRequest,
    background_tasks: BackgroundTasks,
    store: Annotated[Any, Depends(get_sqlite_store)],
    baseline_service: Annotated[Any, Depends(get_baseline_service)],
    user_id: Annotated[Optional[str], Depends(get_current_user_id)],
) -> Any:
    """Select the tracked frame and optionally capture a baseline in the background."""
    project = _require_project_access(store, project_id, user_id)

    file_key: Optional[str] = None
    if payload.figma_file_url:
        file_key = extract_file_key_from_url(payload.figma_file_url)
        if file_key is None:
            raise HTTPException(
                status_code=HTTPStatus.BAD_REQUEST, detail="Invalid Figma file URL"
            )

    if not (file_key or project.figma_file_key):
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Project is not linked to a Figma file. Please connect Figma integration first.",
        )

    updated = store.update_project_frame(
        project_id, figma_frame_id=payload.figma_frame_id, figma_file_key=file_key
    )
    if updated is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="Project not found")

    logger.info(
        "Project Figma configuration updated",
        extra={
            "project_id": project_id,
            "figma_frame_id": payload.figma_frame_id,
            "user_id": user_id,
        },
    )

    if payload.create_baseline:
        background_tasks.add_task(run_baseline_job, baseline_service, project_id)
        logger.info(
            "Baseline snapshot creation scheduled", extra={"project_id": project_id}
        )

    return UpdateFigmaConfigResponse(
        project=ProjectSummary.model_validate(updated.model_dump()),
    )


@router.get("/projects/{project_id}/baseline", response_model=BaselineSnapshotResponse)
async def get_project_baseline(
    project_id: str,
    store: Annotated[Any, Depends(get_sqlite_store)],
    baseline_service: Annotated[Any, Depends(get_baseline_service)],
    user_id: Annotated[Optional[str], Depends(get_current_user_id)],
) -> Any:
    """Return the most recent baseline snapshot of a project."""
    _require_project_access(store, project_id, user_id)
    snapshot = baseline_service.get_latest_baseline(project_id)
    if snapshot is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND, detail="No baseline snapshot for this project"
        )
    return BaselineSnapshotResponse.model_validate(snapshot.model_dump())


__all__ = ["router"]
