"""Extension to MIME type table for embedded assets.

Inference is by extension only. Files with an unknown extension are embedded
as ``application/octet-stream`` and reported, never sniffed.
"""

from __future__ import annotations

import posixpath
from typing import Dict, Optional, Tuple

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES: Dict[str, str] = {
    ".svg": "image/svg+xml",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".ico": "image/x-icon",
    ".bmp": "image/bmp",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
    ".mp3": "audio/mpeg",
    ".ogg": "audio/ogg",
    ".wav": "audio/wav",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".json": "application/json",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".html": "text/html",
    ".xml": "application/xml",
    ".wasm": "application/wasm",
    ".pdf": "application/pdf",
}


def lookup(path: str) -> Optional[str]:
    """Return the MIME type registered for ``path``'s extension, if any."""
    suffix = posixpath.splitext(path.lower())[1]
    return MIME_TYPES.get(suffix)


def infer(path: str) -> Tuple[str, bool]:
    """Return ``(mime_type, known)`` for ``path``."""
    mime_type = lookup(path)
    if mime_type is None:
        return DEFAULT_MIME_TYPE, False
    return mime_type, True


__all__ = ["DEFAULT_MIME_TYPE", "MIME_TYPES", "infer", "lookup"]
