"""Service layer exports."""

from .baseline import BaselineError, BaselinePreconditionError, BaselineSnapshotService
from .baseline_jobs import run_baseline_job
from .figma_tokens import FigmaTokenService
from .frame_traversal import FrameCollection, collect_frames, extract_frames_from_document
from .oauth_flow import FigmaOAuthCoordinator, OAuthCallbackError
from .token_cipher import TokenCipherService
from .token_sealer import TokenSealer

__all__ = [
    "BaselineError",
    "BaselinePreconditionError",
    "BaselineSnapshotService",
    "FigmaOAuthCoordinator",
    "FigmaTokenService",
    "FrameCollection",
    "OAuthCallbackError",
    "TokenCipherService",
    "TokenSealer",
    "collect_frames",
    "extract_frames_from_document",
    "run_baseline_job",
]
