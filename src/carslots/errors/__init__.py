"""Public error exports for carslots."""

from __future__ import annotations

from .exceptions import (
    ApiError,
    ArchiveError,
    AuthError,
    CarSlotsError,
    ConflictError,
    DataCommitError,
    HttpErrorInfo,
    InvalidArgumentError,
    LimitExceededError,
    LockHeldError,
    NetworkError,
    NotFoundError,
    PathValidationError,
    PermissionError,
    QuotaExceededError,
    RateLimitError,
    SlotLockedError,
    is_transient,
    map_http_error,
)

__all__ = [
    "CarSlotsError",
    "InvalidArgumentError",
    "PathValidationError",
    "LimitExceededError",
    "AuthError",
    "PermissionError",
    "QuotaExceededError",
    "ConflictError",
    "LockHeldError",
    "SlotLockedError",
    "NotFoundError",
    "RateLimitError",
    "NetworkError",
    "ApiError",
    "DataCommitError",
    "ArchiveError",
    "HttpErrorInfo",
    "map_http_error",
    "is_transient",
]
