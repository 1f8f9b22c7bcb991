"""
FastAPI application entrypoint for the PixelProof Figma integration.
"""

from __future__ import annotations

from fastapi import FastAPI

from pixelproof.api.routes import router as api_router
from pixelproof.core.config import get_settings
from pixelproof.core.logging import configure_logging


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="PixelProof Figma Integration",
        version="0.1.0",
        description="Figma OAuth, frame discovery and baseline snapshot capture.",
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app"]
