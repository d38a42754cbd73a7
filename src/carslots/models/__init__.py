"""Public model exports for carslots."""

from __future__ import annotations

from .domain import (
    CarDetails,
    CountSource,
    ListingSource,
    PhotoUpload,
    RegionListing,
    Slot,
    SlotStats,
)
from .resource import ResourceInfo, ResourceType
from .results import (
    CallResult,
    PreflightResult,
    ReconcileDepth,
    ReconcileResult,
    WriteOperation,
    WriteResult,
    call_safely,
)

__all__ = [
    "ResourceInfo",
    "ResourceType",
    "CallResult",
    "call_safely",
    "ReconcileDepth",
    "ReconcileResult",
    "PreflightResult",
    "WriteOperation",
    "WriteResult",
    "CountSource",
    "ListingSource",
    "SlotStats",
    "Slot",
    "CarDetails",
    "PhotoUpload",
    "RegionListing",
]
