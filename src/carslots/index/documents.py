"""Versioned JSON documents stored next to the data they describe."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator

from carslots.paths import normalize_path, normalize_region
from carslots.util.time import now_utc, parse_iso

PHOTO_SLOT_CAPACITY: int = 40


def _iso_timestamp(value: str) -> str:
    parse_iso(value)
    return value


Timestamp = Annotated[str, AfterValidator(_iso_timestamp)]


class _Document(BaseModel):
    model_config = ConfigDict(extra="ignore")


class CarEntry(_Document):
    """One car as listed in a region index."""

    model_config = ConfigDict(extra="allow")

    region: str
    make: str
    model: str
    vin: str
    disk_root_path: str
    created_at: Optional[str] = None

    @field_validator("region")
    @classmethod
    def _region(cls, value: str) -> str:
        return normalize_region(value)

    @field_validator("vin")
    @classmethod
    def _vin(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("disk_root_path")
    @classmethod
    def _root(cls, value: str) -> str:
        return normalize_path(value)


class RegionIndex(_Document):
    """_REGION.json: the cars of one region, rebuilt when older than its TTL."""

    version: int = Field(default=1, ge=1)
    region: str
    cars: list[CarEntry] = Field(default_factory=list)
    updated_at: Timestamp


class CarMetadata(CarEntry):
    """_CAR.json at a car root."""

    version: Literal[1] = 1
    created_by: Optional[str] = None
    deleted: bool = False
    archived_at: Optional[str] = None
    archived_by: Optional[str] = None
    archive_path: Optional[str] = None
    restored_at: Optional[str] = None
    restored_by: Optional[str] = None

    def to_entry(self) -> CarEntry:
        return CarEntry(
            region=self.region,
            make=self.make,
            model=self.model,
            vin=self.vin,
            disk_root_path=self.disk_root_path,
            created_at=self.created_at,
        )


class PhotoItem(_Document):
    name: str = Field(min_length=1)
    size: int = Field(ge=0)
    modified: Optional[str] = None


class PhotoIndex(_Document):
    """
    _PHOTOS.json: the authoritative list of photos in a slot.

    Invariants:
        - count == len(items)
        - limit == 40 and len(items) <= limit
    """

    version: Literal[1] = 1
    count: int = Field(ge=0)
    limit: int = PHOTO_SLOT_CAPACITY
    updated_at: Timestamp
    cover: Optional[str] = None
    items: list[PhotoItem] = Field(default_factory=list)
    used: bool = False
    public_url: Optional[str] = None

    @model_validator(mode="after")
    def _check_counts(self) -> "PhotoIndex":
        if self.limit != PHOTO_SLOT_CAPACITY:
            raise ValueError(f"limit must be {PHOTO_SLOT_CAPACITY}")
        if self.count != len(self.items):
            raise ValueError(f"count ({self.count}) does not match items ({len(self.items)})")
        if len(self.items) > self.limit:
            raise ValueError(f"slot holds more than {self.limit} photos")
        return self

    @property
    def total_size(self) -> int:
        return sum(item.size for item in self.items)

    @property
    def names(self) -> list[str]:
        return [item.name for item in self.items]


class SlotSummary(_Document):
    """_SLOT.json: a cheap summary derived from the photo index."""

    version: Literal[1] = 1
    count: int = Field(ge=0)
    cover: Optional[str] = None
    total_size_mb: float = Field(ge=0)
    updated_at: Timestamp
    used: bool = False


class LockMarker(_Document):
    """
    _LOCK.json: a create-if-absent mutex with an expiry.

    Older writers also stored file_count / total_size_mb here; readers may use
    them as a last-resort count.
    """

    version: Literal[1] = 1
    locked_by: str
    locked_at: str
    expires_at: str
    operation: str
    slot_path: str
    token: Optional[str] = None
    file_count: Optional[int] = Field(default=None, ge=0)
    total_size_mb: Optional[float] = Field(default=None, ge=0)

    def is_expired(self, *, now: Optional[datetime] = None) -> bool:
        """Expired (or unparseable expiry) locks may be taken over."""
        try:
            return parse_iso(self.expires_at) <= (now or now_utc())
        except ValueError:
            return True


class DirtyMarker(_Document):
    """_DIRTY.json: the index of this slot must be rebuilt on next read."""

    version: Literal[1] = 1
    marked_at: Timestamp
    reason: str
    slot_path: str


class Link(_Document):
    id: str
    title: str = Field(min_length=1)
    url: str
    created_at: Timestamp
    created_by: Optional[str] = None

    @field_validator("url")
    @classmethod
    def _http_url(cls, value: str) -> str:
        value = value.strip()
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("link url must start with http:// or https://")
        return value


class LinksDocument(_Document):
    """_LINKS.json at a car root."""

    version: Literal[1] = 1
    links: list[Link] = Field(default_factory=list)
    updated_at: Timestamp


def build_photo_index(
    items: list[PhotoItem],
    *,
    updated_at: str,
    used: bool = False,
    public_url: Optional[str] = None,
) -> PhotoIndex:
    """PhotoIndex for items in the given order; the first item is the cover."""
    return PhotoIndex(
        count=len(items),
        updated_at=updated_at,
        cover=items[0].name if items else None,
        items=list(items),
        used=used,
        public_url=public_url,
    )


def summarize(index: PhotoIndex) -> SlotSummary:
    return SlotSummary(
        count=index.count,
        cover=index.cover,
        total_size_mb=round(index.total_size / (1024 * 1024), 2),
        updated_at=index.updated_at,
        used=index.used,
    )
