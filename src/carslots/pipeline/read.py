"""Read pipeline: region listings, car details and slot counts."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from carslots.cache import RelationalCache
from carslots.config import Settings
from carslots.errors import ConflictError, InvalidArgumentError, NotFoundError, is_transient
from carslots.index import CarEntry, CarMetadata, IndexKind, IndexStore, PhotoIndex, RegionIndex
from carslots.models import CarDetails, RegionListing, Slot, SlotStats
from carslots.paths import (
    SlotType,
    car_metadata_path,
    dirty_marker_path,
    normalize_region,
    normalize_vin,
    photo_index_path,
    region_index_path,
    region_path,
    slot_refs_for_root,
)
from carslots.reconcile import Reconciler
from carslots.util.time import is_older_than

from .strategies import DEFAULT_COUNT_STRATEGIES, CountStrategy, StrategyContext, resolve_slot_stats

log = logging.getLogger(__name__)


class ReadPipeline:
    """
    Region index lifecycle:

        MISSING --reconcile--> FRESH --ttl elapsed--> STALE --reconcile--> FRESH

    An invalid index is handled exactly like a missing one. A fresh index is
    served without listing any folder.
    """

    def __init__(
        self,
        disk: Any,
        settings: Settings,
        *,
        store: Optional[IndexStore] = None,
        reconciler: Optional[Reconciler] = None,
        cache: Optional[RelationalCache] = None,
        strategies: Sequence[CountStrategy] = DEFAULT_COUNT_STRATEGIES,
    ) -> None:
        self._disk = disk
        self._settings = settings
        self._store = store or IndexStore(disk)
        self._reconciler = reconciler or Reconciler(disk, settings, store=self._store)
        self._cache = cache
        self._strategies = tuple(strategies)

    # ----------------------------
    # Region
    # ----------------------------
    def get_region(self, region: str) -> RegionListing:
        code = self._check_region(region)
        try:
            listing = self._region_from_disk(code)
        except Exception as exc:
            if self._cache is None or not is_transient(exc):
                raise
            cars = self._cache.region_cars(code)
            if cars is None:
                raise
            log.warning("Disk unreachable for region %s (%s); serving cached listing", code, exc)
            return RegionListing(
                region=code,
                cars=cars,
                source="cache",
                updated_at=self._cache.region_synced_at(code),
            )

        if self._cache is not None:
            self._cache.sync_region(code, listing.cars)
        return listing

    def refresh_region(self, region: str) -> RegionListing:
        """Rebuild the region index regardless of its age."""
        code = self._check_region(region)
        index = self._reconciler.reconcile_region(region_path(self._settings.disk_base_dir, code)).document
        if self._cache is not None:
            self._cache.sync_region(code, index.cars)
        return RegionListing(region=code, cars=list(index.cars), source="reconcile", updated_at=index.updated_at)

    # ----------------------------
    # Car
    # ----------------------------
    def find_car(self, region: str, vin: str, *, origin: Optional[str] = None) -> CarEntry:
        """
        Locate a car in its region index.

        A fresh index that does not list the car is rebuilt once before giving up.
        The archive region may list the same VIN once per original region;
        `origin` picks one of them.

        Raises:
            NotFoundError: if the car is not in the region.
            ConflictError: several cars match and origin was not given.
        """
        key = normalize_vin(vin)
        source = normalize_region(origin) if origin else None
        listing = self.get_region(region)
        matches = _find_entries(listing.cars, key, source)
        if not matches and listing.source == "index":
            log.info("Car %s not in fresh index of %s; rebuilding", key, listing.region)
            listing = self.refresh_region(listing.region)
            matches = _find_entries(listing.cars, key, source)
        if not matches:
            raise NotFoundError(
                f"Car {key} not found in region {listing.region}",
                details={"region": listing.region, "vin": key, "origin": source},
            )
        if len(matches) > 1:
            raise ConflictError(
                f"Car {key} is listed in {listing.region} for several regions; pass the original region",
                details={"region": listing.region, "vin": key, "origins": [c.region for c in matches]},
            )
        return matches[0]


    def get_car(self, region: str, vin: str) -> CarDetails:
        """Car metadata plus the 14-slot catalog (no per-slot reads)."""
        entry = self.find_car(region, vin)
        metadata = self._store.read(IndexKind.CAR, car_metadata_path(entry.disk_root_path))
        if not isinstance(metadata, CarMetadata):
            log.warning("Car metadata missing or invalid at %s; using region index entry", entry.disk_root_path)
            metadata = CarMetadata(**entry.model_dump())

        return CarDetails(
            region=entry.region,
            make=metadata.make,
            model=metadata.model,
            vin=metadata.vin,
            disk_root_path=entry.disk_root_path,
            metadata=metadata.model_dump(),
            slots=[
                Slot(slot_type=ref.slot_type, slot_index=ref.slot_index, path=ref.path)
                for ref in slot_refs_for_root(entry.disk_root_path)
            ],
        )

    # ----------------------------
    # Slots
    # ----------------------------
    def get_slot_counts(
        self,
        region: str,
        vin: str,
        *,
        slot_type: Optional[SlotType] = None,
    ) -> list[Slot]:
        """Slots of a car with photo statistics, optionally filtered by type."""
        details = self.get_car(region, vin)
        slots = [s for s in details.slots if slot_type is None or s.slot_type == slot_type]
        for slot in slots:
            slot.stats = self.slot_stats(slot.path)

        if self._cache is not None:
            self._cache.sync_slots(details.region, details.vin, slots)
        return slots

    def slot_stats(self, slot_path: str) -> SlotStats:
        return resolve_slot_stats(self._context(), slot_path, self._strategies)

    def photo_index(self, slot_path: str, *, repair: bool = True) -> PhotoIndex:
        """
        The slot's Photo Index, rebuilt from a listing if dirty, missing or invalid.

        Args:
            slot_path: Canonical slot folder.
            repair: Persist the rebuilt index (reconcile). With repair=False the
                rebuilt index is only computed, which is what writers use outside
                the slot lock.
        """
        dirty = self._disk.exists(dirty_marker_path(slot_path))
        if not dirty:
            index = self._store.read(IndexKind.PHOTOS, photo_index_path(slot_path))
            if isinstance(index, PhotoIndex):
                return index
        if repair:
            return self._reconciler.reconcile_slot(slot_path).document
        return self._reconciler.scan_slot(slot_path)

    # ----------------------------
    # Internals
    # ----------------------------
    def _region_from_disk(self, code: str) -> RegionListing:
        root = region_path(self._settings.disk_base_dir, code)
        loaded = self._store.load(IndexKind.REGION, region_index_path(root))

        if loaded.state == "ok":
            index: RegionIndex = loaded.document
            if not is_older_than(index.updated_at, self._settings.region_index_ttl_seconds):
                return RegionListing(region=code, cars=list(index.cars), source="index", updated_at=index.updated_at)
            log.info("Region index %s is stale; reconciling", code)
        else:
            log.info("Region index %s is %s; reconciling", code, loaded.state)

        index = self._reconciler.reconcile_region(root).document
        return RegionListing(region=code, cars=list(index.cars), source="reconcile", updated_at=index.updated_at)

    def _check_region(self, region: str) -> str:
        code = normalize_region(region)
        if not code:
            raise InvalidArgumentError("Region must not be empty")
        allowed = self._settings.region_list
        if allowed and code not in allowed and code != self._settings.archive_region:
            raise InvalidArgumentError(f"Unknown region: {code}", details={"region": code, "allowed": allowed})
        return code

    def _context(self) -> StrategyContext:
        return StrategyContext(disk=self._disk, store=self._store, reconciler=self._reconciler)


def _find_entries(cars: list[CarEntry], vin: str, origin: Optional[str]) -> list[CarEntry]:
    return [car for car in cars if car.vin == vin and (origin is None or car.region == origin)]
