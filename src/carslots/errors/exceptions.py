"""Exception hierarchy and HTTP error mapping for carslots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class CarSlotsError(Exception):
    """
    Base exception for carslots.

    Attributes:
        code: Machine-readable error code (stable across releases).
        details: Optional structured information (e.g., HTTP status, path).
        cause: Optional original exception that triggered this error.
    """

    code: str = "error"

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}
        self.cause = cause


# ----------------------------
# Input / validation
# ----------------------------
class InvalidArgumentError(CarSlotsError):
    """Raised when arguments are invalid (bad VIN, slot, HTTP 400, etc.)."""

    code = "invalid_argument"


class PathValidationError(InvalidArgumentError):
    """Raised when a remote path is malformed or contains a forbidden segment."""

    code = "invalid_path"

    def __init__(
        self,
        message: str,
        *,
        stage: str,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        merged = {"stage": stage}
        if details:
            merged.update(details)
        super().__init__(f"[{stage}] {message}", details=merged, cause=cause)
        self.stage = stage


class LimitExceededError(InvalidArgumentError):
    """Raised by preflight when a write would exceed slot count/size limits."""

    code = "limit_exceeded"


# ----------------------------
# Authorization
# ----------------------------
class AuthError(CarSlotsError):
    """Raised when the storage token is missing or rejected (HTTP 401)."""

    code = "auth_failed"


class PermissionError(CarSlotsError):
    """Raised when access is denied (HTTP 403 non-quota, region mismatch)."""

    code = "forbidden"


class QuotaExceededError(CarSlotsError):
    """Raised when storage quota is exhausted (HTTP 403 quota / 507)."""

    code = "quota_exceeded"


# ----------------------------
# Concurrency
# ----------------------------
class ConflictError(CarSlotsError):
    """Raised when a conflict occurs (HTTP 409/412, duplicate car, etc.)."""

    code = "conflict"


class LockHeldError(ConflictError):
    """Raised when another writer holds a live lock marker on the target."""

    code = "lock_held"


class SlotLockedError(ConflictError):
    """Raised when uploading into a slot that already holds photos."""

    code = "slot_locked"


# ----------------------------
# Infrastructure
# ----------------------------
class NotFoundError(CarSlotsError):
    """Raised when a remote resource or car is not found (HTTP 404)."""

    code = "not_found"


class RateLimitError(CarSlotsError):
    """Raised when rate-limited (HTTP 429)."""

    code = "rate_limited"


class NetworkError(CarSlotsError):
    """Raised when network/timeout issues prevent the request."""

    code = "network_error"


class ApiError(CarSlotsError):
    """Raised for unclassified API errors (5xx, unknown 4xx, etc.)."""

    code = "api_error"


# ----------------------------
# Write failures
# ----------------------------
class DataCommitError(CarSlotsError):
    """Raised when uploading bytes failed and the operation was rolled back."""

    code = "data_commit_failed"


class ArchiveError(CarSlotsError):
    """Raised when moving a car into the archive failed after all attempts."""

    code = "archive_failed"


@dataclass(frozen=True)
class HttpErrorInfo:
    """Lightweight HTTP error information for mapping to carslots exceptions."""

    status_code: int
    reason: str | None = None
    message: str | None = None
    details: dict[str, Any] | None = None


_QUOTA_REASON_KEYWORDS: tuple[str, ...] = (
    "quota",
    "DiskStorageQuotaExhaustedError",
    "InsufficientStorage",
)


def _is_quota_reason(reason: str | None) -> bool:
    if not reason:
        return False
    return any(key.lower() in reason.lower() for key in _QUOTA_REASON_KEYWORDS)


def map_http_error(
    info: HttpErrorInfo,
    *,
    cause: Optional[BaseException] = None,
) -> CarSlotsError:
    """
    Map an HTTP error to a carslots exception.

    Policy:
        - 400 -> InvalidArgumentError
        - 401 -> AuthError
        - 403 -> PermissionError (default), but QuotaExceededError if quota-related
        - 404 -> NotFoundError
        - 409/412 -> ConflictError
        - 429 -> RateLimitError
        - 507 -> QuotaExceededError
        - 5xx -> ApiError
        - otherwise -> ApiError
    """
    details: dict[str, Any] = {
        "status_code": info.status_code,
        "reason": info.reason,
    }
    if info.details:
        details.update(info.details)

    message = info.message or f"HTTP error {info.status_code}"

    if info.status_code == 400:
        return InvalidArgumentError(message, details=details, cause=cause)
    if info.status_code == 401:
        return AuthError(message, details=details, cause=cause)
    if info.status_code == 403:
        if _is_quota_reason(info.reason):
            return QuotaExceededError(message, details=details, cause=cause)
        return PermissionError(message, details=details, cause=cause)
    if info.status_code == 404:
        return NotFoundError(message, details=details, cause=cause)
    if info.status_code in (409, 412):
        return ConflictError(message, details=details, cause=cause)
    if info.status_code == 429:
        return RateLimitError(message, details=details, cause=cause)
    if info.status_code == 507:
        return QuotaExceededError(message, details=details, cause=cause)
    if 500 <= info.status_code <= 599:
        return ApiError(message, details=details, cause=cause)

    return ApiError(message, details=details, cause=cause)


def is_transient(exc: BaseException) -> bool:
    """Return True for errors worth retrying (429, 5xx, network)."""
    if isinstance(exc, (RateLimitError, NetworkError)):
        return True
    if isinstance(exc, ApiError):
        status_code = exc.details.get("status_code")
        return isinstance(status_code, int) and 500 <= status_code <= 599
    return False
