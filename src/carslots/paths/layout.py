"""
Deterministic layout of cars and slots on the remote disk.

    {base}/{REGION}/{Make} {Model} {VIN}/
        _CAR.json, _LINKS.json
        1. Дилер фото/{Make} {Model} {VIN}/            (1 dealer slot)
        2. Выкуп фото/{i}. {Make} {Model} {VIN}/       (8 buyout slots)
        3. Муляги фото/{i}. {Make} {Model} {VIN}/      (5 dummies slots)

Archived cars live under {base}/ALL/{REGION}_{Make}_{Model}_{VIN}.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from carslots.errors import InvalidArgumentError

from .canonical import assert_valid_path, join_path, normalize_path, sanitize_segment
from .region import ARCHIVE_REGION, normalize_region

VIN_LENGTH: int = 17

REGION_INDEX_FILE: str = "_REGION.json"
CAR_METADATA_FILE: str = "_CAR.json"
LINKS_FILE: str = "_LINKS.json"
PHOTO_INDEX_FILE: str = "_PHOTOS.json"
SLOT_SUMMARY_FILE: str = "_SLOT.json"
LOCK_MARKER_FILE: str = "_LOCK.json"
DIRTY_MARKER_FILE: str = "_DIRTY.json"

METADATA_PREFIX: str = "_"
METADATA_SUFFIXES: tuple[str, ...] = (".json", ".tmp")

_VIN_RE = re.compile(r"^[A-Z0-9]{17}$")
_CAR_FOLDER_VIN_RE = re.compile(r"([A-HJ-NPR-Z0-9]{17})$", re.IGNORECASE)


class SlotType(str, Enum):
    """Slot categories: one primary, eight secondary and five filler slots."""

    DEALER = "dealer"
    BUYOUT = "buyout"
    DUMMIES = "dummies"


@dataclass(frozen=True)
class _SlotCategory:
    folder: str
    count: int
    indexed_names: bool


_CATEGORIES: dict[SlotType, _SlotCategory] = {
    SlotType.DEALER: _SlotCategory(folder="1. Дилер фото", count=1, indexed_names=False),
    SlotType.BUYOUT: _SlotCategory(folder="2. Выкуп фото", count=8, indexed_names=True),
    SlotType.DUMMIES: _SlotCategory(folder="3. Муляги фото", count=5, indexed_names=True),
}

TOTAL_SLOTS: int = sum(c.count for c in _CATEGORIES.values())


@dataclass(frozen=True, slots=True)
class SlotRef:
    """One entry of a car's fixed slot catalog."""

    slot_type: SlotType
    slot_index: int
    path: str


# ----------------------------
# Identity helpers
# ----------------------------
def normalize_vin(vin: str) -> str:
    """
    Upper-case and validate a VIN.

    Raises:
        InvalidArgumentError: if the VIN is not 17 alphanumeric characters.
    """
    if not isinstance(vin, str):
        raise InvalidArgumentError("VIN must be a string")
    normalized = vin.strip().upper()
    if len(normalized) != VIN_LENGTH or not _VIN_RE.match(normalized):
        raise InvalidArgumentError(
            f"Invalid VIN: must be exactly {VIN_LENGTH} alphanumeric characters",
            details={"vin": vin},
        )
    return normalized


def parse_slot_type(value: str | SlotType) -> SlotType:
    try:
        return SlotType(value)
    except ValueError as exc:
        raise InvalidArgumentError(
            f"Unknown slot type: {value}",
            details={"slot_type": value},
            cause=exc,
        ) from exc


def validate_slot(slot_type: str | SlotType, slot_index: int) -> bool:
    try:
        category = _CATEGORIES[SlotType(slot_type)]
    except ValueError:
        return False
    return isinstance(slot_index, int) and 1 <= slot_index <= category.count


def slot_count(slot_type: SlotType) -> int:
    return _CATEGORIES[slot_type].count


def is_metadata_name(name: str) -> bool:
    """True for index/marker files that are not photos."""
    return name.startswith(METADATA_PREFIX) or name.lower().endswith(METADATA_SUFFIXES)


def parse_car_folder_name(folder_name: str) -> Optional[tuple[str, str, str]]:
    """
    Parse "<Make> <Model> <VIN>" into (make, model, vin).

    The VIN is the trailing 17 characters; the make is the first word and the
    model is everything in between. Returns None when the name does not fit.
    """
    name = folder_name.strip()
    match = _CAR_FOLDER_VIN_RE.search(name)
    if not match:
        return None

    vin = match.group(1).upper()
    make_model = name[: len(name) - VIN_LENGTH].strip()
    make, sep, model = make_model.partition(" ")
    if not sep or not make or not model.strip():
        return None
    return make, model.strip(), vin


# ----------------------------
# Path builders
# ----------------------------
def region_path(base_dir: str, region: str) -> str:
    segment = sanitize_segment(normalize_region(region))
    if not segment:
        raise InvalidArgumentError("Region must not be empty", details={"region": region})
    return assert_valid_path(join_path(normalize_path(base_dir), segment), "region_path")


def archive_path(base_dir: str, archive_region: str = ARCHIVE_REGION) -> str:
    return region_path(base_dir, archive_region)


def car_folder_name(make: str, model: str, vin: str) -> str:
    parts = [sanitize_segment(make), sanitize_segment(model), sanitize_segment(vin.upper())]
    if not all(parts):
        raise InvalidArgumentError(
            "Make, model and VIN must not be empty after sanitization",
            details={"make": make, "model": model, "vin": vin},
        )
    return " ".join(parts)


def car_root(base_dir: str, region: str, make: str, model: str, vin: str) -> str:
    """Root folder of a car: {base}/{REGION}/{Make} {Model} {VIN}."""
    return assert_valid_path(
        join_path(region_path(base_dir, region), car_folder_name(make, model, vin)),
        "car_root",
    )


def car_archive_path(
    base_dir: str,
    region: str,
    make: str,
    model: str,
    vin: str,
    *,
    archive_region: str = ARCHIVE_REGION,
) -> str:
    """Archive destination: {base}/ALL/{REGION}_{Make}_{Model}_{VIN}."""
    raw = f"{normalize_region(region)}_{make}_{model}_{vin.upper()}"
    name = sanitize_segment(re.sub(r"\s+", "_", raw))
    return assert_valid_path(join_path(archive_path(base_dir, archive_region), name), "car_archive_path")


def slot_path(car_root_path: str, slot_type: str | SlotType, slot_index: int) -> str:
    """
    Path of a single slot folder under a car root.

    Raises:
        InvalidArgumentError: for an unknown type or out-of-range index.
    """
    kind = parse_slot_type(slot_type)
    if not validate_slot(kind, slot_index):
        raise InvalidArgumentError(
            f"Invalid {kind.value} slot index: {slot_index}. Must be 1-{slot_count(kind)}.",
            details={"slot_type": kind.value, "slot_index": slot_index},
        )

    root = normalize_path(car_root_path)
    car_name = root.rpartition("/")[2]
    category = _CATEGORIES[kind]
    leaf = f"{slot_index}. {car_name}" if category.indexed_names else car_name
    return assert_valid_path(join_path(root, category.folder, leaf), "slot_path")


def slot_refs_for_root(car_root_path: str) -> list[SlotRef]:
    """All 14 slots of a car root, in catalog order (dealer, buyout, dummies)."""
    refs: list[SlotRef] = []
    for kind, category in _CATEGORIES.items():
        for index in range(1, category.count + 1):
            refs.append(SlotRef(kind, index, slot_path(car_root_path, kind, index)))
    return refs


def get_all_slot_paths(base_dir: str, region: str, make: str, model: str, vin: str) -> list[SlotRef]:
    """The fixed slot catalog of a car, computed purely from its identity."""
    return slot_refs_for_root(car_root(base_dir, region, make, model, vin))


# ----------------------------
# Reserved file paths
# ----------------------------
def region_index_path(region_root: str) -> str:
    return join_path(region_root, REGION_INDEX_FILE)


def car_metadata_path(car_root_path: str) -> str:
    return join_path(car_root_path, CAR_METADATA_FILE)


def links_path(car_root_path: str) -> str:
    return join_path(car_root_path, LINKS_FILE)


def photo_index_path(slot_folder: str) -> str:
    return join_path(slot_folder, PHOTO_INDEX_FILE)


def slot_summary_path(slot_folder: str) -> str:
    return join_path(slot_folder, SLOT_SUMMARY_FILE)


def lock_marker_path(folder: str) -> str:
    return join_path(folder, LOCK_MARKER_FILE)


def dirty_marker_path(slot_folder: str) -> str:
    return join_path(slot_folder, DIRTY_MARKER_FILE)
