"""Stage A of the write pipeline: limit checks before any byte is sent."""

from __future__ import annotations

from typing import Optional

from carslots.config import Settings
from carslots.index import PHOTO_SLOT_CAPACITY, PhotoIndex
from carslots.models import PhotoUpload, PreflightResult


def preflight(
    index: Optional[PhotoIndex],
    files: list[PhotoUpload],
    settings: Settings,
) -> PreflightResult:
    """
    Check an upload against the slot and request limits.

    A file whose name is already in the slot replaces the existing photo and
    does not add to the count.
    """
    existing = {item.name: item.size for item in index.items} if index else {}
    current_count = len(existing)
    current_size = sum(existing.values())

    new_names = [f.name for f in files if f.name not in existing]
    replaced_size = sum(existing[f.name] for f in files if f.name in existing)
    incoming_size = sum(f.size for f in files)

    result = PreflightResult(
        allowed=True,
        current_count=current_count,
        incoming_count=len(new_names),
        current_size_bytes=current_size,
        incoming_size_bytes=incoming_size - replaced_size,
    )
    limit = index.limit if index else PHOTO_SLOT_CAPACITY

    if not files:
        return _reject(result, "No files to upload")
    if len(files) > settings.max_files_per_upload:
        return _reject(result, f"Too many files in one upload: {len(files)} > {settings.max_files_per_upload}")

    too_big = [f.name for f in files if f.size > settings.max_file_size_bytes]
    if too_big:
        return _reject(result, f"Files exceed {settings.max_file_size_mb} MB: {', '.join(too_big)}")

    if result.projected_count > limit:
        return _reject(
            result,
            f"Slot photo limit exceeded: {current_count} existing + {len(new_names)} new > {limit}",
        )
    if result.projected_size_bytes > settings.max_slot_size_bytes:
        return _reject(result, f"Slot size limit of {settings.max_slot_size_mb} MB exceeded")

    return result


def _reject(result: PreflightResult, reason: str) -> PreflightResult:
    result.allowed = False
    result.reason = reason
    return result
