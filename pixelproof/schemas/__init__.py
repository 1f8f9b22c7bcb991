"""Public schema exports."""

from .auth import FigmaRefreshResponse, FigmaTokenResponse, OAuthStatePayload
from .figma import (
    BaselineData,
    BaselineMetadata,
    ColorToken,
    ComponentBounds,
    ComponentSummary,
    ExtractedTokens,
    FrameSummary,
    FramesMeta,
    FramesResponse,
    RgbColor,
    ShadowOffset,
    ShadowToken,
    TypographyToken,
)
from .project import (
    BaselineSnapshotResponse,
    FigmaConnectionStatus,
    ProjectSummary,
    UpdateFigmaConfigRequest,
    UpdateFigmaConfigResponse,
)

__all__ = [
    "BaselineData",
    "BaselineMetadata",
    "BaselineSnapshotResponse",
    "ColorToken",
    "ComponentBounds",
    "ComponentSummary",
    "ExtractedTokens",
    "FigmaConnectionStatus",
    "FigmaRefreshResponse",
    "FigmaTokenResponse",
    "FrameSummary",
    "FramesMeta",
    "FramesResponse",
    "OAuthStatePayload",
    "ProjectSummary",
    "RgbColor",
    "ShadowOffset",
    "ShadowToken",
    "TypographyToken",
    "UpdateFigmaConfigRequest",
    "UpdateFigmaConfigResponse",
]
