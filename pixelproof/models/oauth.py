"""
Domain models for OAuth credential persistence.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class StoredFigmaCredential(BaseModel):
    """Represents the Figma credential row stored for a project."""

    id: str = Field(..., description="Stable identifier preserved across refreshes.")
    project_id: str = Field(..., description="Owning project; unique per credential.")
    access_token: str = Field(..., description="Sealed access token.")
    refresh_token: str = Field(..., description="Sealed refresh token.")
    access_token_expires_at: datetime
    created_at: datetime
    updated_at: datetime


__all__ = ["StoredFigmaCredential"]
