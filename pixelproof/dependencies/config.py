"""
Settings dependency for routers.
"""

from pixelproof.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning the process-wide settings; override in tests."""
    return get_settings()


__all__ = ["get_app_settings"]
