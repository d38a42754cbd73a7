"""Canonicalization and validation of remote disk paths."""

from __future__ import annotations

import re

from carslots.errors import PathValidationError

MAX_SEGMENT_LENGTH: int = 255

_SCHEME_PREFIX_RE = re.compile(r"^/?disk:", re.IGNORECASE)
_SLASH_WHITESPACE_RE = re.compile(r"\s*/\s*")
_REPEATED_SLASH_RE = re.compile(r"/{2,}")
_ILLEGAL_SEGMENT_CHARS_RE = re.compile(r'[/\\:*?"<>|]')
_MULTI_DOT_RE = re.compile(r"\.{2,}")
_EDGE_DOTS_WHITESPACE_RE = re.compile(r"^[\s.]+|[\s.]+$")


def normalize_path(raw: str) -> str:
    """
    Return the canonical form of a remote path.

    Rules, in order:
        1. trim surrounding whitespace
        2. convert backslashes to forward slashes
        3. strip a leading ``disk:`` / ``/disk:`` scheme prefix
        4. remove whitespace adjacent to ``/``
        5. collapse repeated slashes
        6. guarantee exactly one leading slash (and no trailing slash)

    Raises:
        PathValidationError: if raw is not a string or is blank.
    """
    return _normalize(raw, "normalize")


def assert_valid_path(path: str, stage: str) -> str:
    """
    Normalize path and reject forbidden segments.

    Args:
        path: Raw or canonical path.
        stage: Name of the calling stage; carried in the raised error.

    Returns:
        The canonical path.

    Raises:
        PathValidationError: tagged with `stage` when a segment contains ``:``
            or is a ``..`` traversal segment.
    """
    canonical = _normalize(path, stage)
    for segment in canonical.split("/")[1:]:
        if ":" in segment:
            raise PathValidationError(
                f"path segment contains ':': {segment!r}",
                stage=stage,
                details={"path": canonical},
            )
        if segment == "..":
            raise PathValidationError(
                "path traversal segment '..' is not allowed",
                stage=stage,
                details={"path": canonical},
            )
    return canonical


def join_path(base: str, *segments: str) -> str:
    """Join already-sanitized segments onto a canonical base path."""
    parts = [base.rstrip("/")]
    parts.extend(s.strip("/") for s in segments if s)
    return normalize_path("/".join(parts))


def parent_path(path: str) -> str:
    canonical = normalize_path(path)
    head, _, _ = canonical.rpartition("/")
    return head or "/"


def basename(path: str) -> str:
    return normalize_path(path).rpartition("/")[2]


def sanitize_segment(segment: str) -> str:
    """
    Make a single path component safe.

    - replaces ``/ \\ : * ? " < > |`` with ``_``
    - collapses runs of dots to one dot
    - strips leading/trailing dots and whitespace
    - truncates to 255 characters
    """
    s = _ILLEGAL_SEGMENT_CHARS_RE.sub("_", segment)
    s = _MULTI_DOT_RE.sub(".", s)
    s = _EDGE_DOTS_WHITESPACE_RE.sub("", s)
    return s[:MAX_SEGMENT_LENGTH]


def sanitize_filename(filename: str) -> str:
    """Sanitize a filename while keeping its extension."""
    # Dotfile without extension (".gitignore"): the whole name is the basename.
    if filename.startswith(".") and filename.find(".", 1) == -1:
        return sanitize_segment(filename)

    dot = filename.rfind(".")
    if dot <= 0:
        return sanitize_segment(filename)

    safe_name = sanitize_segment(filename[:dot])
    safe_ext = sanitize_segment(filename[dot + 1:])

    if not safe_name:
        return f"file.{safe_ext}" if safe_ext else "file"
    return f"{safe_name}.{safe_ext}" if safe_ext else safe_name


def _normalize(raw: str, stage: str) -> str:
    if not isinstance(raw, str):
        raise PathValidationError(
            f"invalid path: expected a string, got {type(raw).__name__}",
            stage=stage,
        )

    s = raw.strip()
    if not s:
        raise PathValidationError("invalid path: empty after trimming", stage=stage)

    s = s.replace("\\", "/")
    s = _SCHEME_PREFIX_RE.sub("", s, count=1)
    s = _SLASH_WHITESPACE_RE.sub("/", s)
    s = _REPEATED_SLASH_RE.sub("/", s)
    s = s.strip()

    if not s.startswith("/"):
        s = "/" + s
    if len(s) > 1:
        s = s.rstrip("/")
    return s
