"""
Component extraction and node lookup within a Figma frame.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pixelproof.schemas.figma import ComponentBounds, ComponentSummary
from pixelproof.utils.figma_nodes import node_children, positive_bounds, round_half_up

logger = logging.getLogger(__name__)

COMPONENT_NODE_TYPES = frozenset({"COMPONENT", "INSTANCE", "FRAME", "GROUP"})
MAX_COMPONENT_DEPTH = 10


def _summarize_component(node: Mapping[str, Any]) -> Optional[ComponentSummary]:
    node_type = node.get("type")
    if node_type not in COMPONENT_NODE_TYPES:
        return None
    bounds = positive_bounds(node)
    if bounds is None:
        return None
    return ComponentSummary(
        id=str(node["id"]),
        name=node.get("name") or "Unnamed",
        type=node_type,
        bounds=ComponentBounds(
            x=round_half_up(bounds["x"]),
            y=round_half_up(bounds["y"]),
            width=round_half_up(bounds["width"]),
            height=round_half_up(bounds["height"]),
        ),
    )


def extract_components(
    node: Mapping[str, Any], *, max_depth: int = MAX_COMPONENT_DEPTH
) -> List[ComponentSummary]:
    """Flatten component-like descendants of ``node`` (inclusive) in document order."""
    components: List[ComponentSummary] = []
    stack: List[Tuple[Mapping[str, Any], int]] = [(node, 0)]

    while stack:
        current, depth = stack.pop()
        if depth > max_depth:
            continue
        children: List[Dict[str, Any]] = []
        try:
            children = node_children(current)
            summary = _summarize_component(current)
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Error extracting component from node: %s",
                exc,
                extra={"node_id": current.get("id") if isinstance(current, dict) else None},
            )
            summary = None

        if summary is not None:
            components.append(summary)
        for child in reversed(children):
            stack.append((child, depth + 1))

    return components


def find_node_by_id(root: Mapping[str, Any], node_id: str) -> Optional[Mapping[str, Any]]:
    """Depth-first search for the node with ``node_id``."""
    stack: List[Mapping[str, Any]] = [root]
    while stack:
        node = stack.pop()
        if node.get("id") == node_id:
            return node
        stack.extend(reversed(node_children(node)))
    return None


__all__ = [
    "COMPONENT_NODE_TYPES",
    "MAX_COMPONENT_DEPTH",
    "extract_components",
    "find_node_by_id",
]
