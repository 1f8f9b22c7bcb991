"""Small accessors shared by the Figma document walkers."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounding up (2.5 -> 3)."""
    return int(math.floor(float(value) + 0.5))


def node_children(node: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Return the node's child list, ignoring malformed ``children`` values."""
    children = node.get("children")
    if not isinstance(children, list):
        return []
    return [child for child in children if isinstance(child, dict)]


def positive_bounds(node: Mapping[str, Any]) -> Optional[Dict[str, float]]:
    """Return the absolute bounding box when it is finite with a strictly positive area."""
    box = node.get("absoluteBoundingBox")
    if not isinstance(box, dict):
        return None
    width = box.get("width")
    height = box.get("height")
    if not isinstance(width, (int, float)) or not isinstance(height, (int, float)):
        return None
    if width <= 0 or height <= 0:
        return None
    bounds = {
        "x": float(box.get("x") or 0),
        "y": float(box.get("y") or 0),
        "width": float(width),
        "height": float(height),
    }
    # json.loads maps overflowing literals such as 1e400 to inf.
    if not all(math.isfinite(value) for value in bounds.values()):
        return None
    return bounds


__all__ = ["node_children", "positive_bounds", "round_half_up"]
