"""
Detached baseline builds scheduled after a frame is selected.
"""

from __future__ import annotations

import logging

from pixelproof.clients.figma_api import FigmaApiError, FigmaNotConnectedError
from pixelproof.services.baseline import BaselineError, BaselineSnapshotService

logger = logging.getLogger(__name__)


async def run_baseline_job(service: BaselineSnapshotService, project_id: str) -> None:
    """Build a baseline, logging every failure instead of raising it.

    Runs after the triggering response has been sent, so nothing may escape.
    """
    logger.info("Starting baseline build", extra={"project_id": project_id})
    try:
        snapshot = await service.build_baseline(project_id)
    except (BaselineError, FigmaNotConnectedError) as exc:
        logger.warning(
            "Baseline build skipped: %s", exc, extra={"project_id": project_id}
        )
    except FigmaApiError as exc:
        logger.error(
            "Baseline build failed on Figma API",
            extra={
                "project_id": project_id,
                "status": exc.status_code,
                "endpoint": exc.endpoint,
            },
        )
    except Exception:  # pylint: disable=broad-except
        logger.exception("Failed to create baseline snapshot", extra={"project_id": project_id})
    else:
        logger.info(
            "Baseline build finished",
            extra={"project_id": project_id, "snapshot_id": snapshot.id},
        )


__all__ = ["run_baseline_job"]
