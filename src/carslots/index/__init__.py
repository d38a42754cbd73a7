"""Index document exports for carslots."""

from __future__ import annotations

from .codec import (
    DOCUMENT_TYPES,
    IndexKind,
    ValidationResult,
    deserialize_document,
    serialize_document,
    validate_document,
)
from .documents import (
    PHOTO_SLOT_CAPACITY,
    CarEntry,
    CarMetadata,
    DirtyMarker,
    Link,
    LinksDocument,
    LockMarker,
    PhotoIndex,
    PhotoItem,
    RegionIndex,
    SlotSummary,
    build_photo_index,
    summarize,
)
from .store import DocumentState, IndexStore, LoadedDocument

__all__ = [
    "PHOTO_SLOT_CAPACITY",
    "CarEntry",
    "CarMetadata",
    "RegionIndex",
    "PhotoItem",
    "PhotoIndex",
    "SlotSummary",
    "build_photo_index",
    "summarize",
    "LockMarker",
    "DirtyMarker",
    "Link",
    "LinksDocument",
    "IndexKind",
    "DOCUMENT_TYPES",
    "ValidationResult",
    "validate_document",
    "serialize_document",
    "deserialize_document",
    "DocumentState",
    "LoadedDocument",
    "IndexStore",
]
