"""CarSlotsManager: car lifecycle, slot photos and links on the remote disk."""

from __future__ import annotations

import io
import logging
import zipfile
from typing import Any, Callable, Optional, Sequence

from pydantic import ValidationError

from carslots.cache import RelationalCache
from carslots.config import Settings
from carslots.controller import RetryPolicy, YandexDiskController
from carslots.errors import (
    ArchiveError,
    AuthError,
    CarSlotsError,
    ConflictError,
    InvalidArgumentError,
    LimitExceededError,
    NotFoundError,
    PermissionError,
    QuotaExceededError,
)
from carslots.index import (
    CarEntry,
    CarMetadata,
    IndexKind,
    IndexStore,
    Link,
    LinksDocument,
    PhotoIndex,
    build_photo_index,
    summarize,
)
from carslots.models import CarDetails, PhotoUpload, ReconcileDepth, ReconcileResult, RegionListing, Slot, WriteResult
from carslots.paths import (
    SlotType,
    car_archive_path,
    car_metadata_path,
    car_root,
    join_path,
    links_path,
    normalize_region,
    normalize_vin,
    parse_slot_type,
    photo_index_path,
    region_index_path,
    region_path,
    slot_path,
    slot_refs_for_root,
    slot_summary_path,
)
from carslots.pipeline import ReadPipeline, SlotLock, WritePipeline
from carslots.reconcile import Reconciler
from carslots.util.ids import new_link_id
from carslots.util.time import now_iso

log = logging.getLogger(__name__)

CarsMutation = Callable[[list[CarEntry]], list[CarEntry]]

_PERMANENT_ERRORS = (NotFoundError, InvalidArgumentError, PermissionError, AuthError, QuotaExceededError)


class CarSlotsManager:
    """
    High-level entry point used by the route layer.

    Callers pass already authorized (region, vin, slot) tuples; this class
    never checks user permissions.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        disk: Any = None,
        cache: Optional[RelationalCache] = None,
        owner: str = "carslots",
    ) -> None:
        self._settings = settings
        self._disk = disk if disk is not None else YandexDiskController.from_settings(settings)
        self._cache = cache if cache is not None else RelationalCache.from_settings(settings)
        self._store = IndexStore(self._disk)
        self._reconciler = Reconciler(self._disk, settings, store=self._store)
        self._reader = ReadPipeline(
            self._disk,
            settings,
            store=self._store,
            reconciler=self._reconciler,
            cache=self._cache,
        )
        self._writer = WritePipeline(
            self._disk,
            settings,
            store=self._store,
            reconciler=self._reconciler,
            reader=self._reader,
            owner=owner,
        )
        self._lock = SlotLock(self._store, settings, owner=owner)

    @classmethod
    def from_disk(
        cls,
        disk: Any,
        settings: Settings,
        *,
        cache: Optional[RelationalCache] = None,
        owner: str = "carslots",
    ) -> "CarSlotsManager":
        """Create manager over an injected disk client (useful for tests)."""
        return cls(settings, disk=disk, cache=cache, owner=owner)

    @property
    def reader(self) -> ReadPipeline:
        return self._reader

    @property
    def writer(self) -> WritePipeline:
        return self._writer

    # ----------------------------
    # Reads
    # ----------------------------
    def get_region(self, region: str) -> RegionListing:
        return self._reader.get_region(region)

    def get_car(self, region: str, vin: str) -> CarDetails:
        return self._reader.get_car(region, vin)

    def get_slot_counts(
        self,
        region: str,
        vin: str,
        *,
        slot_type: Optional[str | SlotType] = None,
    ) -> list[Slot]:
        kind = parse_slot_type(slot_type) if slot_type is not None else None
        return self._reader.get_slot_counts(region, vin, slot_type=kind)

    def resolve_slot(self, region: str, vin: str, slot_type: str | SlotType, slot_index: int) -> str:
        """Slot folder of a car found in its region index."""
        entry = self._reader.find_car(region, vin)
        return slot_path(entry.disk_root_path, slot_type, slot_index)

    def reconcile(self, path: str, depth: ReconcileDepth) -> ReconcileResult:
        return self._reconciler.reconcile(path, depth)

    # ----------------------------
    # Car lifecycle
    # ----------------------------
    def create_car(
        self,
        region: str,
        make: str,
        model: str,
        vin: str,
        *,
        actor: Optional[str] = None,
    ) -> CarDetails:
        """
        Create the car folder, its metadata and all 14 slot folders.

        Raises:
            InvalidArgumentError: bad VIN, empty make/model or archive region.
            ConflictError: the VIN already exists in the region.
        """
        code = normalize_region(region)
        if code == self._settings.archive_region:
            raise InvalidArgumentError("Cars cannot be created in the archive region", details={"region": code})
        key = normalize_vin(vin)
        make, model = make.strip(), model.strip()
        if not make or not model:
            raise InvalidArgumentError("Make and model are required")

        listing = self._reader.get_region(code)
        if any(car.vin == key for car in listing.cars):
            raise ConflictError(f"Car {key} already exists in region {code}", details={"region": code, "vin": key})

        root = car_root(self._settings.disk_base_dir, code, make, model, key)
        if self._disk.exists(root):
            raise ConflictError(f"Car folder already exists: {root}", details={"path": root})

        metadata = CarMetadata(
            region=code,
            make=make,
            model=model,
            vin=key,
            disk_root_path=root,
            created_at=now_iso(),
            created_by=actor,
        )
        self._disk.ensure_dir(root)
        self._store.create(car_metadata_path(root), metadata)

        empty = build_photo_index([], updated_at=now_iso())
        for ref in slot_refs_for_root(root):
            self._disk.ensure_dir(ref.path)
            self._store.write(photo_index_path(ref.path), empty)
            self._store.write(slot_summary_path(ref.path), summarize(empty))

        self._update_region_index(code, lambda cars: _upsert(cars, metadata.to_entry()))
        log.info("Created car %s in %s at %s", key, code, root)

        return CarDetails(
            region=code,
            make=make,
            model=model,
            vin=key,
            disk_root_path=root,
            metadata=metadata.model_dump(),
            slots=[Slot(ref.slot_type, ref.slot_index, ref.path) for ref in slot_refs_for_root(root)],
        )

    def archive_car(self, region: str, vin: str, *, actor: Optional[str] = None) -> str:
        """
        Move a car into the archive region.

        The car metadata and both region indexes change only after the move
        succeeded.

        Returns:
            The archive path.

        Raises:
            ArchiveError: the move failed after all attempts.
        """
        entry = self._reader.find_car(region, vin)
        code = normalize_region(region)
        src = entry.disk_root_path
        dst = car_archive_path(
            self._settings.disk_base_dir,
            entry.region,
            entry.make,
            entry.model,
            entry.vin,
            archive_region=self._settings.archive_region,
        )

        self._move_car(src, dst, overwrite_on_conflict=True)

        now = now_iso()
        metadata = self._metadata_at(dst, entry).model_copy(
            update={
                "deleted": True,
                "archived_at": now,
                "archived_by": actor,
                "archive_path": dst,
                "disk_root_path": dst,
            }
        )
        self._store.write(car_metadata_path(dst), metadata)

        self._update_region_index(code, lambda cars: _without(cars, entry))
        self._update_region_index(self._settings.archive_region, lambda cars: _upsert(cars, metadata.to_entry()))
        if self._cache is not None:
            self._cache.remove_car(code, entry.vin)

        log.info("Archived car %s from %s to %s", entry.vin, code, dst)
        return dst

    def restore_car(
        self,
        vin: str,
        *,
        origin: Optional[str] = None,
        target_region: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> str:
        """
        Move an archived car back into a region (its original one by default).

        origin names the region the car was archived from; it is required
        when cars from several regions share the VIN.

        Returns:
            The restored car root.

        Raises:
            ConflictError: the VIN is ambiguous without origin, or taken in the target region.
        """
        archive = self._settings.archive_region
        entry = self._reader.find_car(archive, vin, origin=origin)
        code = normalize_region(target_region or entry.region)
        if code == archive:
            raise InvalidArgumentError("Cannot restore into the archive region")

        target = self._reader.get_region(code)
        if any(car.vin == entry.vin for car in target.cars):
            raise ConflictError(f"Car {entry.vin} already exists in region {code}", details={"region": code})

        dst = car_root(self._settings.disk_base_dir, code, entry.make, entry.model, entry.vin)
        self._move_car(entry.disk_root_path, dst, overwrite_on_conflict=False)

        metadata = self._metadata_at(dst, entry).model_copy(
            update={
                "region": code,
                "deleted": False,
                "disk_root_path": dst,
                "archive_path": None,
                "restored_at": now_iso(),
                "restored_by": actor,
            }
        )
        self._store.write(car_metadata_path(dst), metadata)

        self._update_region_index(archive, lambda cars: _without(cars, entry))
        self._update_region_index(code, lambda cars: _upsert(cars, metadata.to_entry()))
        log.info("Restored car %s from archive to %s", entry.vin, dst)
        return dst

    # ----------------------------
    # Slot photos
    # ----------------------------
    def upload_photos(
        self,
        region: str,
        vin: str,
        slot_type: str | SlotType,
        slot_index: int,
        files: Sequence[PhotoUpload],
        *,
        append: bool = False,
    ) -> WriteResult:
        """
        Upload photos into a slot.

        Raises:
            SlotLockedError: the slot already holds photos and append is False.
        """
        return self._writer.upload(self.resolve_slot(region, vin, slot_type, slot_index), files, append=append)

    def delete_photos(
        self,
        region: str,
        vin: str,
        slot_type: str | SlotType,
        slot_index: int,
        names: Sequence[str],
    ) -> WriteResult:
        return self._writer.delete(self.resolve_slot(region, vin, slot_type, slot_index), names)

    def rename_photo(
        self,
        region: str,
        vin: str,
        slot_type: str | SlotType,
        slot_index: int,
        old_name: str,
        new_name: str,
    ) -> WriteResult:
        return self._writer.rename(self.resolve_slot(region, vin, slot_type, slot_index), old_name, new_name)

    def publish_slot(self, region: str, vin: str, slot_type: str | SlotType, slot_index: int) -> str:
        """Publish the slot folder and store its public URL in the Photo Index."""
        path = self.resolve_slot(region, vin, slot_type, slot_index)
        url = self._disk.publish(path)
        self._writer.update_flags(path, public_url=url)
        return url

    def set_slot_used(
        self,
        region: str,
        vin: str,
        slot_type: str | SlotType,
        slot_index: int,
        used: bool,
    ) -> PhotoIndex:
        return self._writer.update_flags(self.resolve_slot(region, vin, slot_type, slot_index), used=used)

    def download_slot(self, region: str, vin: str, slot_type: str | SlotType, slot_index: int) -> bytes:
        """
        ZIP archive of a slot's photos.

        Raises:
            LimitExceededError: the slot exceeds zip_max_files or zip_max_total_mb.
        """
        path = self.resolve_slot(region, vin, slot_type, slot_index)
        index = self._reader.photo_index(path)
        if index.count > self._settings.zip_max_files:
            raise LimitExceededError(
                f"Too many files for an archive: {index.count} > {self._settings.zip_max_files}",
                details={"slot_path": path},
            )
        if index.total_size > self._settings.zip_max_total_bytes:
            raise LimitExceededError(
                f"Slot is too large for an archive (limit {self._settings.zip_max_total_mb} MB)",
                details={"slot_path": path},
            )

        buffer = io.BytesIO()
        missing: list[str] = []
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for item in index.items:
                try:
                    data = self._disk.download_file(join_path(path, item.name))
                except NotFoundError:
                    missing.append(item.name)
                    continue
                archive.writestr(item.name, data)

        if missing:
            self._writer.mark_dirty(path, f"{len(missing)} indexed photo(s) missing during download")
        return buffer.getvalue()

    # ----------------------------
    # Links
    # ----------------------------
    def list_links(self, region: str, vin: str) -> list[Link]:
        entry = self._reader.find_car(region, vin)
        document = self._store.read(IndexKind.LINKS, links_path(entry.disk_root_path))
        links = list(document.links) if isinstance(document, LinksDocument) else []
        if self._cache is not None:
            self._cache.sync_links(entry.region, entry.vin, links)
        return links

    def create_link(
        self,
        region: str,
        vin: str,
        title: str,
        url: str,
        *,
        actor: Optional[str] = None,
    ) -> Link:
        """
        Add a link to a car.

        Raises:
            InvalidArgumentError: empty title or a non-http(s) URL.
        """
        try:
            link = Link(id=new_link_id(), title=title.strip(), url=url, created_at=now_iso(), created_by=actor)
        except ValidationError as exc:
            raise InvalidArgumentError(f"Invalid link: {exc.errors()[0]['msg']}", cause=exc) from exc

        entry = self._reader.find_car(region, vin)
        self._update_links(entry, lambda links: links + [link])
        return link

    def delete_link(self, region: str, vin: str, link_id: str) -> None:
        entry = self._reader.find_car(region, vin)

        def _remove(links: list[Link]) -> list[Link]:
            remaining = [link for link in links if link.id != link_id]
            if len(remaining) == len(links):
                raise NotFoundError(f"Link not found: {link_id}", details={"link_id": link_id})
            return remaining

        self._update_links(entry, _remove)

    # ----------------------------
    # Internals
    # ----------------------------
    def _update_links(self, entry: CarEntry, mutate: Callable[[list[Link]], list[Link]]) -> None:
        path = links_path(entry.disk_root_path)
        with self._lock.hold(entry.disk_root_path, operation="links"):
            document = self._store.read(IndexKind.LINKS, path)
            links = list(document.links) if isinstance(document, LinksDocument) else []
            updated = LinksDocument(links=mutate(links), updated_at=now_iso())
            self._store.write(path, updated)
        if self._cache is not None:
            self._cache.sync_links(entry.region, entry.vin, updated.links)

    def _update_region_index(self, region: str, mutate: CarsMutation) -> None:
        """Read-modify-write a region index under its lock; rebuild it if unreadable."""
        root = region_path(self._settings.disk_base_dir, region)
        with self._lock.hold(root, operation="region_index"):
            loaded = self._store.load(IndexKind.REGION, region_index_path(root))
            if loaded.state != "ok":
                self._reconciler.reconcile_region(root)
                return
            index = loaded.document
            self._store.write(region_index_path(root), index.model_copy(update={"cars": mutate(list(index.cars))}))

    def _move_car(self, src: str, dst: str, *, overwrite_on_conflict: bool) -> None:
        def _attempt() -> None:
            try:
                self._disk.move(src, dst, overwrite=False, retry=False)
            except ConflictError:
                if not overwrite_on_conflict:
                    raise
                log.warning("Destination %s exists; retrying move with overwrite", dst)
                self._disk.move(src, dst, overwrite=True, retry=False)

        policy = RetryPolicy(
            max_attempts=self._settings.archive_max_attempts,
            base_delay=self._settings.archive_retry_delay_seconds,
            retryable=_is_retryable_move_error,
        )
        try:
            policy.call(_attempt, label=f"move {src}")
        except CarSlotsError as exc:
            if isinstance(exc, ConflictError) and not overwrite_on_conflict:
                raise
            raise ArchiveError(
                f"Failed to move {src} -> {dst}: {exc}",
                details={"from": src, "path": dst, "attempts": self._settings.archive_max_attempts},
                cause=exc,
            ) from exc

    def _metadata_at(self, root: str, entry: CarEntry) -> CarMetadata:
        metadata = self._store.read(IndexKind.CAR, car_metadata_path(root))
        if isinstance(metadata, CarMetadata):
            return metadata
        return CarMetadata(**entry.model_dump())


def _is_retryable_move_error(exc: BaseException) -> bool:
    return isinstance(exc, CarSlotsError) and not isinstance(exc, _PERMANENT_ERRORS + (ConflictError,))


def _same_car(a: CarEntry, b: CarEntry) -> bool:
    # the archive region lists cars of every region, so VIN alone is not a key
    return a.region == b.region and a.vin == b.vin


def _upsert(cars: list[CarEntry], entry: CarEntry) -> list[CarEntry]:
    return [car for car in cars if not _same_car(car, entry)] + [entry]


def _without(cars: list[CarEntry], entry: CarEntry) -> list[CarEntry]:
    return [car for car in cars if not _same_car(car, entry)]
