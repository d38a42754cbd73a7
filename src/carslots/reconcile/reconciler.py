"""Rebuild indexes from actual folder contents."""

from __future__ import annotations

import logging
from typing import Any, Optional

from carslots.config import Settings
from carslots.errors import CarSlotsError, InvalidArgumentError, NotFoundError
from carslots.index import (
    PHOTO_SLOT_CAPACITY,
    CarEntry,
    CarMetadata,
    IndexKind,
    IndexStore,
    PhotoIndex,
    PhotoItem,
    RegionIndex,
    build_photo_index,
    summarize,
)
from carslots.models import ReconcileDepth, ReconcileResult, ResourceInfo
from carslots.paths import (
    DIRTY_MARKER_FILE,
    LOCK_MARKER_FILE,
    PHOTO_INDEX_FILE,
    assert_valid_path,
    basename,
    car_metadata_path,
    dirty_marker_path,
    is_metadata_name,
    lock_marker_path,
    normalize_region,
    parent_path,
    parse_car_folder_name,
    photo_index_path,
    region_index_path,
    slot_refs_for_root,
    slot_summary_path,
)
from carslots.util.time import now_iso

log = logging.getLogger(__name__)


class Reconciler:
    """
    Rebuilds Photo Indexes, Slot Summaries and Region Indexes from listings.

    Reconciliation is idempotent: running it twice over an unchanged folder
    yields the same items, count and cover.
    """

    def __init__(self, disk: Any, settings: Settings, *, store: Optional[IndexStore] = None) -> None:
        self._disk = disk
        self._settings = settings
        self._store = store or IndexStore(disk)

    def reconcile(self, path: str, depth: ReconcileDepth) -> ReconcileResult:
        p = assert_valid_path(path, "reconcile")
        if depth == "slot":
            return self.reconcile_slot(p)
        if depth == "car":
            return self.reconcile_car(p)
        if depth == "region":
            return self.reconcile_region(p)
        raise InvalidArgumentError(f"Unknown reconcile depth: {depth}", details={"depth": depth})

    # ----------------------------
    # Slot
    # ----------------------------
    def reconcile_slot(self, slot_path: str) -> ReconcileResult:
        p = assert_valid_path(slot_path, "reconcile_slot")
        result = ReconcileResult(path=p, depth="slot")

        try:
            listing = self._disk.list_folder(p)
        except NotFoundError:
            self._disk.ensure_dir(p)
            result.actions.append(f"created missing slot folder {p}")
            listing = []

        index = self._index_from_listing(p, listing, result)
        self._store.write(photo_index_path(p), index)
        self._store.write(slot_summary_path(p), summarize(index))
        result.repaired_files.extend([photo_index_path(p), slot_summary_path(p)])
        result.actions.append(f"rebuilt photo index ({index.count} photo(s))")

        names = {r.name for r in listing}
        if DIRTY_MARKER_FILE in names:
            self._store.remove(dirty_marker_path(p))
            result.actions.append("cleared dirty marker")

        if LOCK_MARKER_FILE in names:
            self._drop_expired_lock(p, result)

        result.document = index
        log.info("Reconciled slot %s: %d photo(s)", p, index.count)
        return result

    def scan_slot(self, slot_path: str) -> PhotoIndex:
        """Build the Photo Index a reconcile would write, without writing anything."""
        p = assert_valid_path(slot_path, "scan_slot")
        try:
            listing = self._disk.list_folder(p)
        except NotFoundError:
            listing = []
        return self._index_from_listing(p, listing, ReconcileResult(path=p, depth="slot"))

    # ----------------------------
    # Car
    # ----------------------------
    def reconcile_car(self, car_root: str) -> ReconcileResult:
        root = assert_valid_path(car_root, "reconcile_car")
        result = ReconcileResult(path=root, depth="car")

        loaded = self._store.load(IndexKind.CAR, car_metadata_path(root))
        metadata = loaded.document
        if metadata is None:
            metadata = self._metadata_from_folder(root)
            if metadata is None:
                result.errors.append(f"cannot derive car identity from folder name {basename(root)!r}")
            else:
                self._store.write(car_metadata_path(root), metadata)
                result.repaired_files.append(car_metadata_path(root))
                result.actions.append(f"rebuilt {loaded.state} car metadata")

        for ref in slot_refs_for_root(root):
            try:
                result.merge(self.reconcile_slot(ref.path))
            except CarSlotsError as exc:
                log.warning("Reconcile of slot %s failed: %s", ref.path, exc)
                result.errors.append(f"{ref.path}: {exc}")

        result.document = metadata
        log.info("Reconciled car %s (%d error(s))", root, len(result.errors))
        return result

    # ----------------------------
    # Region
    # ----------------------------
    def reconcile_region(self, region_root: str) -> ReconcileResult:
        root = assert_valid_path(region_root, "reconcile_region")
        region = normalize_region(basename(root))
        result = ReconcileResult(path=root, depth="region")

        try:
            listing = self._disk.list_folder(root)
        except NotFoundError:
            self._disk.ensure_dir(root)
            result.actions.append(f"created missing region folder {root}")
            listing = []

        cars: list[CarEntry] = []
        for folder in sorted((r for r in listing if r.is_dir), key=lambda r: r.name):
            entry = self._car_entry(folder, region, result)
            if entry is not None:
                cars.append(entry)

        index = RegionIndex(region=region, cars=cars, updated_at=now_iso())
        self._store.write(region_index_path(root), index)
        result.repaired_files.append(region_index_path(root))
        result.actions.append(f"rebuilt region index ({len(cars)} car(s))")
        result.document = index
        log.info("Reconciled region %s: %d car(s)", region, len(cars))
        return result

    # ----------------------------
    # Internals
    # ----------------------------
    def _index_from_listing(
        self,
        slot_path: str,
        listing: list[ResourceInfo],
        result: ReconcileResult,
    ) -> PhotoIndex:
        photos = sorted(
            (r for r in listing if r.is_file and not is_metadata_name(r.name)),
            key=lambda r: r.name,
        )
        if len(photos) > PHOTO_SLOT_CAPACITY:
            result.errors.append(
                f"slot holds {len(photos)} photos; only the first {PHOTO_SLOT_CAPACITY} are indexed"
            )
            photos = photos[:PHOTO_SLOT_CAPACITY]

        used, public_url = False, None
        if any(r.name == PHOTO_INDEX_FILE for r in listing):
            prior = self._store.read(IndexKind.PHOTOS, photo_index_path(slot_path))
            if isinstance(prior, PhotoIndex):
                used, public_url = prior.used, prior.public_url

        return build_photo_index(
            [_photo_item(r) for r in photos],
            updated_at=now_iso(),
            used=used,
            public_url=public_url,
        )

    def _car_entry(self, folder: ResourceInfo, region: str, result: ReconcileResult) -> Optional[CarEntry]:
        meta_path = car_metadata_path(folder.path)
        loaded = self._store.load(IndexKind.CAR, meta_path)
        metadata = loaded.document

        if isinstance(metadata, CarMetadata):
            if metadata.deleted and region != self._settings.archive_region:
                return None
            if metadata.disk_root_path != folder.path:
                metadata = metadata.model_copy(update={"disk_root_path": folder.path})
            return metadata.to_entry()

        metadata = self._metadata_from_folder(folder.path, region=region)
        if metadata is None:
            result.errors.append(f"skipped folder {folder.name!r}: not a car folder")
            return None

        self._store.write(meta_path, metadata)
        result.repaired_files.append(meta_path)
        result.actions.append(f"rebuilt {loaded.state} car metadata for {folder.name}")
        return metadata.to_entry()

    def _metadata_from_folder(self, car_root: str, *, region: Optional[str] = None) -> Optional[CarMetadata]:
        parsed = parse_car_folder_name(basename(car_root))
        if parsed is None:
            return None
        make, model, vin = parsed
        return CarMetadata(
            region=region or basename(parent_path(car_root)),
            make=make,
            model=model,
            vin=vin,
            disk_root_path=car_root,
            created_at=now_iso(),
        )

    def _drop_expired_lock(self, slot_path: str, result: ReconcileResult) -> None:
        marker = self._store.load(IndexKind.LOCK, lock_marker_path(slot_path))
        if marker.state == "missing":
            return
        if marker.state == "ok" and not marker.document.is_expired():
            return
        self._store.remove(lock_marker_path(slot_path))
        result.actions.append(f"removed {'expired' if marker.state == 'ok' else marker.state} lock marker")


def _photo_item(resource: ResourceInfo) -> PhotoItem:
    return PhotoItem(name=resource.name, size=resource.size or 0, modified=resource.modified)
