"""Request and response bodies for project-level Figma endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from pixelproof.schemas.figma import CamelModel


class UpdateFigmaConfigRequest(CamelModel):
    """Body of ``PUT /projects/{id}/figma``."""

    figma_frame_id: str = Field(..., min_length=1, description="Frame selected in the picker.")
    create_baseline: bool = Field(
        False, description="Capture a baseline snapshot in the background."
    )
    figma_file_url: Optional[str] = Field(
        None, description="Share URL of a Figma file to link before selecting the frame."
    )


class ProjectSummary(CamelModel):
    id: str
    name: str
    url: Optional[str] = None
    figma_file_key: Optional[str] = None
    figma_frame_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class UpdateFigmaConfigResponse(CamelModel):
    success: bool = True
    project: ProjectSummary
    message: str = "Figma frame configuration updated successfully"


class BaselineSnapshotResponse(CamelModel):
    id: str
    project_id: str
    figma_file_key: str
    figma_frame_id: Optional[str] = None
    data: Dict[str, Any]
    created_at: datetime


class FigmaConnectionStatus(CamelModel):
    project_id: str
    connected: bool


__all__ = [
    "BaselineSnapshotResponse",
    "FigmaConnectionStatus",
    "ProjectSummary",
    "UpdateFigmaConfigRequest",
    "UpdateFigmaConfigResponse",
]
