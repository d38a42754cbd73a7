from __future__ import annotations

import mimetypes

DEFAULT_MIME: str = "application/octet-stream"
JSON_MIME: str = "application/json"

IMAGE_EXTENSIONS: set[str] = {
    ".jpg",
    ".jpeg",
    ".png",
    ".webp",
    ".heic",
    ".heif",
    ".gif",
    ".bmp",
    ".tif",
    ".tiff",
}


def guess_content_type(filename: str) -> str:
    """Return a MIME type for filename, falling back to octet-stream."""
    lowered = filename.lower()
    if lowered.endswith((".heic", ".heif")):
        return "image/heic"
    guessed, _ = mimetypes.guess_type(lowered)
    return guessed or DEFAULT_MIME


def is_image(filename: str) -> bool:
    dot = filename.rfind(".")
    if dot == -1:
        return False
    return filename[dot:].lower() in IMAGE_EXTENSIONS
