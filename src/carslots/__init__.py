"""carslots public API."""

from __future__ import annotations

from carslots.auth import AuthInfo
from carslots.cache import RelationalCache
from carslots.config import Settings, load_settings
from carslots.controller import RetryPolicy, YandexDiskController
from carslots.errors import (
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
    map_http_error,
)
from carslots.index import IndexKind, PhotoIndex, deserialize_document, serialize_document, validate_document
from carslots.local import InMemoryDisk
from carslots.manager import CarSlotsManager
from carslots.models import (
    CallResult,
    CarDetails,
    PhotoUpload,
    ReconcileResult,
    RegionListing,
    ResourceInfo,
    Slot,
    SlotStats,
    WriteResult,
    call_safely,
)
from carslots.paths import (
    SlotType,
    assert_valid_path,
    get_all_slot_paths,
    normalize_path,
    sanitize_filename,
    sanitize_segment,
)
from carslots.pipeline import ReadPipeline, WritePipeline
from carslots.reconcile import Reconciler

__all__ = [
    # High-level
    "CarSlotsManager",
    "Settings",
    "load_settings",
    # Store clients
    "AuthInfo",
    "YandexDiskController",
    "InMemoryDisk",
    "RetryPolicy",
    "RelationalCache",
    # Pipelines
    "ReadPipeline",
    "WritePipeline",
    "Reconciler",
    # Paths
    "SlotType",
    "normalize_path",
    "assert_valid_path",
    "sanitize_segment",
    "sanitize_filename",
    "get_all_slot_paths",
    # Index / models
    "IndexKind",
    "PhotoIndex",
    "validate_document",
    "serialize_document",
    "deserialize_document",
    "ResourceInfo",
    "CallResult",
    "call_safely",
    "ReconcileResult",
    "WriteResult",
    "PhotoUpload",
    "RegionListing",
    "CarDetails",
    "Slot",
    "SlotStats",
    # Errors
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
]
