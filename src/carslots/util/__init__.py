from .ids import new_link_id, new_lock_token, new_uuid
from .mime import DEFAULT_MIME, IMAGE_EXTENSIONS, JSON_MIME, guess_content_type, is_image
from .time import (
    age_seconds,
    expires_at,
    is_older_than,
    normalize_dt,
    now_iso,
    now_utc,
    parse_iso,
    to_iso,
)

__all__ = [
    "new_uuid",
    "new_link_id",
    "new_lock_token",
    "DEFAULT_MIME",
    "JSON_MIME",
    "IMAGE_EXTENSIONS",
    "guess_content_type",
    "is_image",
    "now_utc",
    "now_iso",
    "parse_iso",
    "to_iso",
    "normalize_dt",
    "age_seconds",
    "is_older_than",
    "expires_at",
]
