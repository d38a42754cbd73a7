"""Region code rules."""

from __future__ import annotations

from typing import Iterable

ARCHIVE_REGION: str = "ALL"


def normalize_region(region: str) -> str:
    """Trim and upper-case a region code."""
    return region.strip().upper()


def normalize_region_list(regions: Iterable[str]) -> list[str]:
    normalized = [normalize_region(r) for r in regions]
    return [r for r in normalized if r]


def has_region_access(user_region: str, target_region: str) -> bool:
    """The archive region grants access everywhere; otherwise regions must match."""
    user = normalize_region(user_region)
    if user == ARCHIVE_REGION:
        return True
    return user == normalize_region(target_region)


def is_valid_region(region: str, allowed_regions: Iterable[str]) -> bool:
    return normalize_region(region) in set(normalize_region_list(allowed_regions))
