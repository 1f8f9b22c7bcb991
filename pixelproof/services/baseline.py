"""
Baseline snapshot construction for a project's tracked Figma frame.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from pixelproof.clients.figma_api import FigmaApiClient
from pixelproof.clients.sqlite_store import SQLiteStore
from pixelproof.models.baseline import BaselineSnapshot
from pixelproof.schemas.figma import BaselineData, BaselineMetadata
from pixelproof.services.component_extraction import extract_components, find_node_by_id
from pixelproof.services.token_extraction import extract_tokens

logger = logging.getLogger(__name__)


class BaselineError(RuntimeError):
    """Raised when a baseline cannot be built for a project."""


class BaselinePreconditionError(BaselineError):
    """Raised when the project is not linked to a file or has no frame selected."""


class BaselineSnapshotService:
    """Capture tokens and components of a project's selected frame."""

    def __init__(self, store: SQLiteStore, api_client: FigmaApiClient) -> None:
        self._store = store
        self._api = api_client

    async def build_baseline(self, project_id: str) -> BaselineSnapshot:
        """Create or refresh the snapshot for the project's current frame.

        Rebuilding the same frame updates the existing row in place, so the
        snapshot id is stable across rebuilds.
        """
        logger.info("Creating baseline snapshot", extra={"project_id": project_id})
        project = self._store.get_project(project_id)
        if project is None:
            raise BaselineError(f"Project not found: {project_id}")
        if not project.figma_file_key:
            raise BaselinePreconditionError(
                f"Project {project_id} is not linked to a Figma file"
            )
        if not project.figma_frame_id:
            raise BaselinePreconditionError(
                f"Project {project_id} has no Figma frame selected"
            )

        file_key = project.figma_file_key
        frame_id = project.figma_frame_id
        file_data, variables = await self._api.fetch_file_with_variables(
            project_id=project_id, file_key=file_key
        )

        document = file_data.get("document")
        frame = find_node_by_id(document, frame_id) if isinstance(document, dict) else None
        if frame is None:
            raise BaselineError(f"Frame {frame_id} not found in Figma file")

        meta = variables.get("meta") if isinstance(variables.get("meta"), dict) else {}
        tokens = extract_tokens(file_data.get("styles"), meta.get("variables"), document)
        components = extract_components(frame)
        logger.info(
            "Extracted components",
            extra={"project_id": project_id, "component_count": len(components)},
        )

        payload = BaselineData(
            tokens=tokens,
            components=components,
            version=file_data.get("version"),
            captured_at=datetime.now(timezone.utc).isoformat(),
            metadata=BaselineMetadata(
                file_name=file_data.get("name"),
                frame_name=frame.get("name"),
                last_modified=file_data.get("lastModified"),
            ),
        )

        snapshot, created = self._store.upsert_baseline_snapshot(
            project_id=project_id,
            figma_file_key=file_key,
            figma_frame_id=frame_id,
            data=payload.model_dump(mode="json", by_alias=True),
        )
        logger.info(
            "Baseline snapshot saved",
            extra={"project_id": project_id, "snapshot_id": snapshot.id, "created": created},
        )
        return snapshot

    def get_latest_baseline(self, project_id: str) -> Optional[BaselineSnapshot]:
        return self._store.get_latest_baseline_snapshot(project_id)

    def has_baseline(self, project_id: str) -> bool:
        return self._store.count_baseline_snapshots(project_id) > 0


__all__ = ["BaselineError", "BaselinePreconditionError", "BaselineSnapshotService"]
