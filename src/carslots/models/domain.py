"""Read-side views of regions, cars and slots."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional

from carslots.paths import SlotType

CountSource = Literal["index", "summary", "lock", "reconcile"]
ListingSource = Literal["index", "reconcile", "cache"]


@dataclass(slots=True)
class SlotStats:
    """Photo statistics of one slot and where they were read from."""

    count: int
    total_size_bytes: int = 0
    cover: Optional[str] = None
    updated_at: Optional[str] = None
    used: bool = False
    public_url: Optional[str] = None
    source: CountSource = "index"

    @property
    def locked(self) -> bool:
        return self.count > 0

    @property
    def total_size_mb(self) -> float:
        return round(self.total_size_bytes / (1024 * 1024), 2)


@dataclass(slots=True)
class Slot:
    slot_type: SlotType
    slot_index: int
    path: str
    stats: Optional[SlotStats] = None


@dataclass(slots=True)
class CarDetails:
    """A car's metadata plus its full 14-slot catalog."""

    region: str
    make: str
    model: str
    vin: str
    disk_root_path: str
    metadata: dict[str, Any] = field(default_factory=dict)
    slots: list[Slot] = field(default_factory=list)


@dataclass(slots=True)
class RegionListing:
    region: str
    cars: list[Any]
    source: ListingSource
    updated_at: Optional[str] = None


@dataclass(slots=True)
class PhotoUpload:
    """One incoming photo for the write pipeline."""

    name: str
    data: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)
