"""
Design token extraction from Figma styles and local variables.

Each token family is extracted independently; a malformed entry in one family
is logged and never prevents the others from being captured.

Spacing and radius tokens are classified by name only, so a ``FLOAT``
variable called "Icon Size" is ignored even when it is used as spacing.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar

from pixelproof.schemas.figma import (
    ColorToken,
    ExtractedTokens,
    RgbColor,
    ShadowOffset,
    ShadowToken,
    TypographyToken,
)
from pixelproof.utils.figma_nodes import node_children, round_half_up

logger = logging.getLogger(__name__)

SPACING_KEYWORDS = ("spacing", "space", "gap", "margin", "padding")
RADIUS_KEYWORDS = ("radius", "corner", "rounded")
SHADOW_EFFECT_TYPES = ("DROP_SHADOW", "INNER_SHADOW")

# Upper bound on nodes visited while looking for style usages.
MAX_STYLE_SCAN_NODES = 20_000

DEFAULT_TYPOGRAPHY = TypographyToken(
    font_family="Unknown", font_size=16, font_weight=400, line_height=1.5
)
DEFAULT_SHADOW = ShadowToken(
    type="DROP_SHADOW",
    color=ColorToken(hex="#000000", rgb=RgbColor(r=0, g=0, b=0), opacity=0.25),
    offset=ShadowOffset(x=0, y=4),
    blur=8,
    spread=0,
)

T = TypeVar("T")


def _channel(value: Any) -> int:
    channel = float(value or 0)
    if not math.isfinite(channel):
        raise ValueError(f"Color channel is not finite: {value!r}")
    return max(0, min(255, round_half_up(channel * 255)))


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return "#" + "".join(f"{max(0, min(255, channel)):02x}" for channel in (r, g, b))


def color_token_from_rgba(color: Mapping[str, Any]) -> ColorToken:
    """Convert a Figma ``{r, g, b, a}`` color with 0..1 channels."""
    r, g, b = _channel(color.get("r")), _channel(color.get("g")), _channel(color.get("b"))
    alpha = color.get("a")
    return ColorToken(
        hex=rgb_to_hex(r, g, b),
        rgb=RgbColor(r=r, g=g, b=b),
        opacity=float(alpha) if alpha is not None else 1.0,
    )


def _first_mode_value(variable: Mapping[str, Any]) -> Any:
    values = variable.get("valuesByMode")
    if not isinstance(values, dict) or not values:
        return None
    return next(iter(values.values()))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_alias(value: Any) -> bool:
    return isinstance(value, dict) and value.get("type") == "VARIABLE_ALIAS"


def _entries(collection: Any) -> List[Tuple[str, Mapping[str, Any]]]:
    if not isinstance(collection, dict):
        return []
    return [(str(key), value) for key, value in collection.items() if isinstance(value, dict)]


def _isolated(
    family: str,
    build: Callable[[str, Mapping[str, Any]], Optional[Tuple[str, T]]],
    items: Iterable[Tuple[str, Mapping[str, Any]]],
) -> Dict[str, T]:
    """Apply ``build`` to each ``(id, item)``, skipping and logging bad entries."""
    tokens: Dict[str, T] = {}
    for item_id, item in items:
        try:
            result = build(item_id, item)
        except (ArithmeticError, AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Skipping malformed %s token: %s", family, exc, extra={"item_id": item_id}
            )
            continue
        if result is None:
            continue
        name, token = result
        tokens[name] = token
    return tokens


def extract_color_tokens(variables: Mapping[str, Any]) -> Dict[str, ColorToken]:
    """Build color tokens from ``COLOR`` variables using each variable's first mode."""

    def build(variable_id: str, variable: Mapping[str, Any]):
        if variable.get("resolvedType") != "COLOR":
            return None
        value = _first_mode_value(variable)
        if not isinstance(value, dict) or _is_alias(value):
            return None
        return variable.get("name") or f"color-{variable_id}", color_token_from_rgba(value)

    return _isolated("color", build, _entries(variables))


def _float_tokens(
    variables: Mapping[str, Any], keywords: Tuple[str, ...], prefix: str, family: str
) -> Dict[str, float]:
    def build(variable_id: str, variable: Mapping[str, Any]):
        if variable.get("resolvedType") != "FLOAT":
            return None
        name = variable.get("name") or f"{prefix}-{variable_id}"
        lowered = name.lower()
        if not any(keyword in lowered for keyword in keywords):
            return None
        value = _first_mode_value(variable)
        if not _is_number(value):
            return None
        return name, value

    return _isolated(family, build, _entries(variables))


def extract_spacing_tokens(variables: Mapping[str, Any]) -> Dict[str, float]:
    return _float_tokens(variables, SPACING_KEYWORDS, "spacing", "spacing")


def extract_radius_tokens(variables: Mapping[str, Any]) -> Dict[str, float]:
    return _float_tokens(variables, RADIUS_KEYWORDS, "radius", "radius")


def index_style_usages(
    document: Optional[Mapping[str, Any]], *, max_nodes: int = MAX_STYLE_SCAN_NODES
) -> Dict[str, Mapping[str, Any]]:
    """Map each style id to the first node (pre-order) that references it."""
    usages: Dict[str, Mapping[str, Any]] = {}
    if not isinstance(document, dict):
        return usages

    stack: List[Mapping[str, Any]] = [document]
    visited = 0
    while stack and visited < max_nodes:
        node = stack.pop()
        visited += 1
        styles = node.get("styles")
        if isinstance(styles, dict):
            for style_id in styles.values():
                if isinstance(style_id, str):
                    usages.setdefault(style_id, node)
        stack.extend(reversed(node_children(node)))

    if stack:
        logger.info("Style usage scan stopped early", extra={"visited": visited})
    return usages


def _typography_from_node(node: Mapping[str, Any]) -> TypographyToken:
    style = node.get("style")
    if not isinstance(style, dict):
        return DEFAULT_TYPOGRAPHY
    font_size = style.get("fontSize")
    if not _is_number(font_size) or font_size <= 0:
        font_size = DEFAULT_TYPOGRAPHY.font_size
    font_size = float(font_size)
    font_weight = style.get("fontWeight")
    line_height = DEFAULT_TYPOGRAPHY.line_height
    line_height_px = style.get("lineHeightPx")
    line_height_percent = style.get("lineHeightPercentFontSize")
    if _is_number(line_height_px) and line_height_px > 0:
        line_height = round(float(line_height_px) / font_size, 3)
    elif _is_number(line_height_percent) and line_height_percent > 0:
        line_height = round(float(line_height_percent) / 100, 3)
    return TypographyToken(
        font_family=style.get("fontFamily") or DEFAULT_TYPOGRAPHY.font_family,
        font_size=font_size,
        font_weight=float(font_weight) if _is_number(font_weight) else DEFAULT_TYPOGRAPHY.font_weight,
        line_height=line_height,
    )


def _shadow_from_node(node: Mapping[str, Any]) -> ShadowToken:
    effects = node.get("effects")
    if not isinstance(effects, list):
        return DEFAULT_SHADOW
    for effect in effects:
        if not isinstance(effect, dict) or effect.get("type") not in SHADOW_EFFECT_TYPES:
            continue
        if effect.get("visible") is False:
            continue
        color = effect.get("color")
        offset = effect.get("offset") if isinstance(effect.get("offset"), dict) else {}
        return ShadowToken(
            type=effect["type"],
            color=color_token_from_rgba(color) if isinstance(color, dict) else DEFAULT_SHADOW.color,
            offset=ShadowOffset(x=float(offset.get("x") or 0), y=float(offset.get("y") or 0)),
            blur=float(effect.get("radius") or 0),
            spread=float(effect.get("spread") or 0),
        )
    return DEFAULT_SHADOW


def extract_typography_tokens(
    styles: Mapping[str, Any], usages: Mapping[str, Mapping[str, Any]]
) -> Dict[str, TypographyToken]:
    """Build typography tokens for ``TEXT`` styles from the first node using each style."""

    def build(style_id: str, style: Mapping[str, Any]):
        if style.get("styleType") != "TEXT":
            return None
        node = usages.get(style_id)
        token = _typography_from_node(node) if node is not None else DEFAULT_TYPOGRAPHY
        return style.get("name") or f"text-{style_id}", token

    return _isolated("typography", build, _entries(styles))


def extract_shadow_tokens(
    styles: Mapping[str, Any], usages: Mapping[str, Mapping[str, Any]]
) -> Dict[str, ShadowToken]:
    """Build shadow tokens for ``EFFECT`` styles from the first node using each style."""

    def build(style_id: str, style: Mapping[str, Any]):
        if style.get("styleType") != "EFFECT":
            return None
        node = usages.get(style_id)
        token = _shadow_from_node(node) if node is not None else DEFAULT_SHADOW
        return style.get("name") or f"shadow-{style_id}", token

    return _isolated("shadow", build, _entries(styles))


def _family(name: str, extractor: Callable[[], Dict[str, T]]) -> Dict[str, T]:
    try:
        return extractor()
    except Exception:  # pylint: disable=broad-except
        logger.exception("Token family extraction failed", extra={"family": name})
        return {}


def extract_tokens(
    styles: Optional[Mapping[str, Any]],
    variables: Optional[Mapping[str, Any]],
    document: Optional[Mapping[str, Any]] = None,
) -> ExtractedTokens:
    """Extract every token family.

    ``styles`` is the file's ``styles`` map and ``variables`` the
    ``meta.variables`` map of the local variables response.
    """
    styles = styles or {}
    variables = variables or {}
    usages = _family("style-usages", lambda: index_style_usages(document))

    tokens = ExtractedTokens(
        typography=_family("typography", lambda: extract_typography_tokens(styles, usages)),
        colors=_family("colors", lambda: extract_color_tokens(variables)),
        spacing=_family("spacing", lambda: extract_spacing_tokens(variables)),
        radii=_family("radii", lambda: extract_radius_tokens(variables)),
        shadows=_family("shadows", lambda: extract_shadow_tokens(styles, usages)),
    )
    logger.info(
        "Extracted tokens",
        extra={
            "typography_count": len(tokens.typography),
            "color_count": len(tokens.colors),
            "spacing_count": len(tokens.spacing),
            "radius_count": len(tokens.radii),
            "shadow_count": len(tokens.shadows),
        },
    )
    return tokens


__all__ = [
    "DEFAULT_SHADOW",
    "DEFAULT_TYPOGRAPHY",
    "color_token_from_rgba",
    "extract_color_tokens",
    "extract_radius_tokens",
    "extract_shadow_tokens",
    "extract_spacing_tokens",
    "extract_tokens",
    "extract_typography_tokens",
    "index_style_usages",
    "rgb_to_hex",
]
