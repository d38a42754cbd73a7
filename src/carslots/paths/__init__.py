"""Public path exports for carslots."""

from __future__ import annotations

from .canonical import (
    MAX_SEGMENT_LENGTH,
    assert_valid_path,
    basename,
    join_path,
    normalize_path,
    parent_path,
    sanitize_filename,
    sanitize_segment,
)
from .layout import (
    CAR_METADATA_FILE,
    DIRTY_MARKER_FILE,
    LINKS_FILE,
    LOCK_MARKER_FILE,
    PHOTO_INDEX_FILE,
    REGION_INDEX_FILE,
    SLOT_SUMMARY_FILE,
    TOTAL_SLOTS,
    VIN_LENGTH,
    SlotRef,
    SlotType,
    archive_path,
    car_archive_path,
    car_folder_name,
    car_metadata_path,
    car_root,
    dirty_marker_path,
    get_all_slot_paths,
    is_metadata_name,
    links_path,
    lock_marker_path,
    normalize_vin,
    parse_car_folder_name,
    parse_slot_type,
    photo_index_path,
    region_index_path,
    region_path,
    slot_count,
    slot_path,
    slot_refs_for_root,
    slot_summary_path,
    validate_slot,
)
from .region import (
    ARCHIVE_REGION,
    has_region_access,
    is_valid_region,
    normalize_region,
    normalize_region_list,
)

__all__ = [
    "MAX_SEGMENT_LENGTH",
    "normalize_path",
    "assert_valid_path",
    "join_path",
    "parent_path",
    "basename",
    "sanitize_segment",
    "sanitize_filename",
    "SlotType",
    "SlotRef",
    "VIN_LENGTH",
    "TOTAL_SLOTS",
    "REGION_INDEX_FILE",
    "CAR_METADATA_FILE",
    "LINKS_FILE",
    "PHOTO_INDEX_FILE",
    "SLOT_SUMMARY_FILE",
    "LOCK_MARKER_FILE",
    "DIRTY_MARKER_FILE",
    "normalize_vin",
    "parse_slot_type",
    "validate_slot",
    "slot_count",
    "is_metadata_name",
    "parse_car_folder_name",
    "region_path",
    "archive_path",
    "car_folder_name",
    "car_root",
    "car_archive_path",
    "slot_path",
    "slot_refs_for_root",
    "get_all_slot_paths",
    "region_index_path",
    "car_metadata_path",
    "links_path",
    "photo_index_path",
    "slot_summary_path",
    "lock_marker_path",
    "dirty_marker_path",
    "ARCHIVE_REGION",
    "normalize_region",
    "normalize_region_list",
    "has_region_access",
    "is_valid_region",
]
