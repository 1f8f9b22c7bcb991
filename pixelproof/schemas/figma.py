"""Schemas for data derived from Figma documents."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys for the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrameSummary(CamelModel):
    """A selectable frame shown in the frame picker."""

    id: str
    name: str
    page_name: str
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    depth: int = Field(..., ge=0)


class FramesMeta(CamelModel):
    total: int
    file_name: Optional[str] = None
    file_version: Optional[str] = None
    truncated: bool = False


class FramesResponse(CamelModel):
    frames: List[FrameSummary]
    meta: FramesMeta


class ComponentBounds(CamelModel):
    x: int
    y: int
    width: int
    height: int


class ComponentSummary(CamelModel):
    """A component-like node captured with its rounded bounding box."""

    id: str
    name: str
    type: str
    bounds: ComponentBounds


class RgbColor(CamelModel):
    r: int = Field(..., ge=0, le=255)
    g: int = Field(..., ge=0, le=255)
    b: int = Field(..., ge=0, le=255)


class ColorToken(CamelModel):
    hex: str
    rgb: RgbColor
    opacity: float


class TypographyToken(CamelModel):
    font_family: str
    font_size: float
    font_weight: float
    line_height: float


class ShadowOffset(CamelModel):
    x: float
    y: float


class ShadowToken(CamelModel):
    type: str
    color: ColorToken
    offset: ShadowOffset
    blur: float
    spread: float


class ExtractedTokens(CamelModel):
    """Design tokens keyed by their human-readable names."""

    typography: Dict[str, TypographyToken] = Field(default_factory=dict)
    colors: Dict[str, ColorToken] = Field(default_factory=dict)
    spacing: Dict[str, float] = Field(default_factory=dict)
    radii: Dict[str, float] = Field(default_factory=dict)
    shadows: Dict[str, ShadowToken] = Field(default_factory=dict)


class BaselineMetadata(CamelModel):
    file_name: Optional[str] = None
    frame_name: Optional[str] = None
    last_modified: Optional[str] = None


class BaselineData(CamelModel):
    """Versioned payload stored in a baseline snapshot."""

    tokens: ExtractedTokens
    components: List[ComponentSummary]
    version: Optional[str] = None
    captured_at: str
    metadata: BaselineMetadata


__all__ = [
    "BaselineData",
    "BaselineMetadata",
    "CamelModel",
    "ColorToken",
    "ComponentBounds",
    "ComponentSummary",
    "ExtractedTokens",
    "FrameSummary",
    "FramesMeta",
    "FramesResponse",
    "RgbColor",
    "ShadowOffset",
    "ShadowToken",
    "TypographyToken",
]
