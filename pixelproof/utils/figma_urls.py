"""Helpers for pulling identifiers out of Figma share URLs."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

# /file/KEY/..., /design/KEY/..., /proto/KEY/..., /board/KEY/...
_FILE_PATH_PATTERN = re.compile(r"^/(?:file|design|proto|board)/([A-Za-z0-9]+)(?:/|$)")


def extract_file_key_from_url(url: str) -> Optional[str]:
    """Return the file key of a Figma file URL, or ``None`` when it is not one."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https"):
        return None
    host = (parsed.hostname or "").lower()
    if host not in ("figma.com", "www.figma.com"):
        return None
    match = _FILE_PATH_PATTERN.match(parsed.path)
    return match.group(1) if match else None


def extract_node_id_from_url(url: str) -> Optional[str]:
    """Return the ``node-id`` query value, normalised to the API's ``1:2`` form."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    values = parse_qs(parsed.query).get("node-id")
    if not values or not values[0]:
        return None
    # Newer share links encode the separator as a dash.
    return values[0].replace("-", ":")


__all__ = ["extract_file_key_from_url", "extract_node_id_from_url"]
