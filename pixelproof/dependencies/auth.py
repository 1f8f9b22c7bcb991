"""
Caller identity seam.

Session handling lives in front of this service; it forwards the signed-in
user's id in a header. Tests and alternative deployments override
``get_current_user_id`` through ``app.dependency_overrides``.
"""

from typing import Optional

from fastapi import Header

USER_ID_HEADER = "X-User-Id"


def get_current_user_id(
    user_id: Optional[str] = Header(None, alias=USER_ID_HEADER),
) -> Optional[str]:
    """Return the authenticated caller's id, or ``None`` when unauthenticated."""
    if user_id is None:
        return None
    user_id = user_id.strip()
    return user_id or None


__all__ = ["USER_ID_HEADER", "get_current_user_id"]
