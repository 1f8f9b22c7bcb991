"""
Bounded frame discovery over Figma document trees.

Documents come from an external API and can be arbitrarily wide or deep, so
the walk uses an explicit stack and stops at fixed depth and count ceilings,
returning whatever was collected so far.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from pixelproof.schemas.figma import FrameSummary
from pixelproof.utils.figma_nodes import node_children, positive_bounds, round_half_up

logger = logging.getLogger(__name__)

MAX_TRAVERSAL_DEPTH = 10
MAX_FRAMES = 500

DEFAULT_FRAME_NAME = "Unnamed Frame"
DEFAULT_PAGE_NAME = "Unnamed Page"

# Exceptions a malformed node can raise while being summarised.
_NODE_ERRORS = (ArithmeticError, AttributeError, KeyError, TypeError, ValueError)


@dataclass
class FrameCollection:
    frames: List[FrameSummary] = field(default_factory=list)
    truncated: bool = False


def _summarize_frame(node: Mapping[str, Any], page_name: str, depth: int) -> Optional[FrameSummary]:
    if node.get("type") != "FRAME":
        return None
    bounds = positive_bounds(node)
    if bounds is None:
        logger.debug(
            "Skipping frame without a positive bounding box", extra={"node_id": node.get("id")}
        )
        return None
    width = round_half_up(bounds["width"])
    height = round_half_up(bounds["height"])
    if width < 1 or height < 1:
        logger.debug("Skipping sub-pixel frame", extra={"node_id": node.get("id")})
        return None
    return FrameSummary(
        id=str(node["id"]),
        name=node.get("name") or DEFAULT_FRAME_NAME,
        page_name=page_name,
        width=width,
        height=height,
        depth=depth,
    )


def collect_frames(
    node: Mapping[str, Any],
    page_name: str,
    *,
    depth: int = 0,
    frames: Optional[List[FrameSummary]] = None,
    max_depth: int = MAX_TRAVERSAL_DEPTH,
    max_frames: int = MAX_FRAMES,
) -> List[FrameSummary]:
    """Collect frames under ``node`` in document (pre-order) order.

    Nodes deeper than ``max_depth`` are not visited. Collection stops once
    ``frames`` holds ``max_frames`` entries. Passing an existing ``frames``
    list appends to it, which lets several pages share one ceiling.
    """
    collected: List[FrameSummary] = frames if frames is not None else []
    stack: List[Tuple[Mapping[str, Any], int, str]] = [(node, depth, page_name)]

    while stack:
        if len(collected) >= max_frames:
            logger.warning("Max frames limit reached", extra={"count": len(collected)})
            break

        current, current_depth, current_page = stack.pop()
        if current_depth > max_depth:
            logger.debug(
                "Max traversal depth reached",
                extra={"depth": current_depth, "node_id": current.get("id")},
            )
            continue

        children: List[Mapping[str, Any]] = []
        try:
            children = node_children(current)
            summary = _summarize_frame(current, current_page, current_depth)
        except _NODE_ERRORS as exc:
            logger.error(
                "Error processing node: %s",
                exc,
                extra={"node_id": current.get("id") if isinstance(current, dict) else None},
            )
            summary = None

        if summary is not None:
            collected.append(summary)

        for child in reversed(children):
            stack.append((child, current_depth + 1, current_page))

    return collected


def extract_frames_from_document(
    document: Mapping[str, Any],
    *,
    max_frames: int = MAX_FRAMES,
) -> FrameCollection:
    """Collect frames from every page (``CANVAS``) of a document."""
    frames: List[FrameSummary] = []
    pages = node_children(document)
    if not pages:
        logger.warning("Document has no children (no pages found)")
        return FrameCollection(frames=frames)

    for page in pages:
        if len(frames) >= max_frames:
            logger.warning("Stopped processing pages, max frames reached")
            break

        page_name = page.get("name") or DEFAULT_PAGE_NAME
        if page.get("type") != "CANVAS":
            logger.warning(
                "Skipping non-CANVAS top-level node",
                extra={"node_type": page.get("type"), "page_name": page_name},
            )
            continue

        collect_frames(page, page_name, depth=0, frames=frames, max_frames=max_frames)

    return FrameCollection(frames=frames, truncated=len(frames) >= max_frames)


__all__ = [
    "FrameCollection",
    "MAX_FRAMES",
    "MAX_TRAVERSAL_DEPTH",
    "collect_frames",
    "extract_frames_from_document",
]
