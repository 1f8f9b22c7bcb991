"""
Project records consumed by the Figma integration.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Project(BaseModel):
    """Subset of a project row needed to link it to a Figma file."""

    id: str
    org_id: str
    name: str
    url: Optional[str] = None
    figma_file_key: Optional[str] = None
    figma_frame_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


__all__ = ["Project"]
