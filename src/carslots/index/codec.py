"""Validation and (de)serialization of index documents."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ValidationError

from .documents import (
    CarMetadata,
    DirtyMarker,
    LinksDocument,
    LockMarker,
    PhotoIndex,
    RegionIndex,
    SlotSummary,
)


class IndexKind(str, Enum):
    REGION = "region"
    CAR = "car"
    PHOTOS = "photos"
    SLOT = "slot"
    LOCK = "lock"
    DIRTY = "dirty"
    LINKS = "links"


DOCUMENT_TYPES: dict[IndexKind, type[BaseModel]] = {
    IndexKind.REGION: RegionIndex,
    IndexKind.CAR: CarMetadata,
    IndexKind.PHOTOS: PhotoIndex,
    IndexKind.SLOT: SlotSummary,
    IndexKind.LOCK: LockMarker,
    IndexKind.DIRTY: DirtyMarker,
    IndexKind.LINKS: LinksDocument,
}


@dataclass(slots=True)
class ValidationResult:
    """Outcome of validating raw data against a document kind. Never raised."""

    ok: bool
    document: Optional[BaseModel] = None
    errors: list[str] = field(default_factory=list)


def validate_document(kind: IndexKind, data: Any) -> ValidationResult:
    model = DOCUMENT_TYPES[IndexKind(kind)]
    if not isinstance(data, dict):
        return ValidationResult(ok=False, errors=[f"expected an object, got {type(data).__name__}"])
    try:
        return ValidationResult(ok=True, document=model.model_validate(data))
    except ValidationError as exc:
        return ValidationResult(ok=False, errors=_format_errors(exc))


def serialize_document(document: BaseModel) -> str:
    return document.model_dump_json(indent=2)


def deserialize_document(kind: IndexKind, text: str | bytes) -> ValidationResult:
    """Parse JSON text; malformed JSON yields an invalid result like a schema error."""
    try:
        data = json.loads(text)
    except (ValueError, TypeError) as exc:
        return ValidationResult(ok=False, errors=[f"malformed JSON: {exc}"])
    return validate_document(kind, data)


def _format_errors(exc: ValidationError) -> list[str]:
    errors: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
        errors.append(f"{loc}: {err.get('msg')}")
    return errors
