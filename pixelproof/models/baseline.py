"""
Persisted baseline snapshot records.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel


class BaselineSnapshot(BaseModel):
    """A normalized capture of a tracked frame, one current row per frame."""

    id: str
    project_id: str
    figma_file_key: str
    figma_frame_id: Optional[str] = None
    data: Dict[str, Any]
    created_at: datetime


__all__ = ["BaselineSnapshot"]
