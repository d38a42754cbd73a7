"""
Write pipeline for slot photos.

Every write runs four stages in order:

    A. preflight      limits checked against the current index, no writes
    B. commit_data    photo bytes uploaded/deleted/moved; rolled back on failure
    C. commit_index   under the slot lock: re-read, merge by filename, write
                      Photo Index + Slot Summary, release the lock
    D. verify         Photo Index re-read and compared with the result;
                      mismatches leave a Dirty Marker instead of raising
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Sequence

from carslots.config import Settings
from carslots.errors import (
    CarSlotsError,
    ConflictError,
    DataCommitError,
    InvalidArgumentError,
    LimitExceededError,
    NotFoundError,
    SlotLockedError,
)
from carslots.index import (
    PHOTO_SLOT_CAPACITY,
    DirtyMarker,
    IndexKind,
    IndexStore,
    PhotoIndex,
    PhotoItem,
    build_photo_index,
    summarize,
)
from carslots.models import PhotoUpload, PreflightResult, WriteOperation, WriteResult
from carslots.paths import (
    assert_valid_path,
    dirty_marker_path,
    is_metadata_name,
    join_path,
    photo_index_path,
    sanitize_filename,
    slot_summary_path,
)
from carslots.reconcile import Reconciler
from carslots.util.mime import guess_content_type
from carslots.util.time import now_iso

from .lock import SlotLock
from .preflight import preflight
from .read import ReadPipeline

log = logging.getLogger(__name__)

IndexMutation = Callable[[PhotoIndex], PhotoIndex]


class WritePipeline:
    def __init__(
        self,
        disk: Any,
        settings: Settings,
        *,
        store: Optional[IndexStore] = None,
        reconciler: Optional[Reconciler] = None,
        reader: Optional[ReadPipeline] = None,
        owner: str = "carslots",
    ) -> None:
        self._disk = disk
        self._settings = settings
        self._store = store or IndexStore(disk)
        self._reconciler = reconciler or Reconciler(disk, settings, store=self._store)
        self._reader = reader or ReadPipeline(disk, settings, store=self._store, reconciler=self._reconciler)
        self._lock = SlotLock(self._store, settings, owner=owner)

    # ----------------------------
    # Operations
    # ----------------------------
    def upload(
        self,
        slot_path: str,
        files: Sequence[PhotoUpload],
        *,
        append: bool = True,
    ) -> WriteResult:
        """
        Upload photos into a slot.

        Args:
            slot_path: Slot folder.
            files: Photos; names are sanitized and later duplicates win.
            append: If False, a slot that already holds photos is rejected.

        Raises:
            SlotLockedError: append is False and the slot is not empty.
            LimitExceededError: count/size limits would be exceeded.
            DataCommitError: an upload failed (already uploaded files removed).
            LockHeldError: another writer kept the slot lock too long.
        """
        p = assert_valid_path(slot_path, "upload")
        batch = _prepare_uploads(files)

        # Stage A
        self._disk.ensure_dir(p)
        current = self._reader.photo_index(p, repair=False)
        if not append and current.count > 0:
            raise SlotLockedError(
                f"Slot already holds {current.count} photo(s)",
                details={"slot_path": p, "count": current.count},
            )
        self.preflight(current, batch)

        # Stage B
        known = set(current.names)
        self.commit_data(p, batch, existing=known)

        # Stage C
        def _merge(index: PhotoIndex) -> PhotoIndex:
            items = _merge_items(index.items, batch)
            if len(items) > PHOTO_SLOT_CAPACITY:
                raise LimitExceededError(
                    f"Slot photo limit of {PHOTO_SLOT_CAPACITY} exceeded by concurrent writes",
                    details={"slot_path": p, "new_names": [f.name for f in batch if f.name not in index.names]},
                )
            return _with_items(index, items)

        try:
            index, lost = self.commit_index(p, "upload", _merge)
        except LimitExceededError as exc:
            self._rollback(p, exc.details.get("new_names", []))
            raise

        # Stage D
        names = [f.name for f in batch]
        return self.verify(p, "upload", index, present=names, absent=[], lock_lost=lost)

    def delete(self, slot_path: str, names: Sequence[str]) -> WriteResult:
        """
        Delete photos from a slot.

        Raises:
            NotFoundError: a name is not in the slot.
            DataCommitError: some deletions failed; the slot is marked dirty.
        """
        p = assert_valid_path(slot_path, "delete")
        targets = list(dict.fromkeys(n.strip() for n in names if n and n.strip()))
        if not targets:
            raise InvalidArgumentError("No photos to delete")

        # Stage A
        current = self._reader.photo_index(p, repair=False)
        unknown = [n for n in targets if n not in current.names]
        if unknown:
            raise NotFoundError(
                f"Photos not found in slot: {', '.join(unknown)}",
                details={"slot_path": p, "names": unknown},
            )

        # Stage B
        log.info("Deleting %d photo(s) from %s", len(targets), p)
        failed: dict[str, str] = {}
        for name in targets:
            try:
                self._disk.delete(join_path(p, name))
            except CarSlotsError as exc:
                log.warning("Delete of %s in %s failed: %s", name, p, exc)
                failed[name] = str(exc)
        deleted = [n for n in targets if n not in failed]

        # Stage C
        index, lost = self.commit_index(
            p,
            "delete",
            lambda idx: _with_items(idx, [i for i in idx.items if i.name not in deleted]),
        )
        if failed:
            self.mark_dirty(p, f"delete failed for {len(failed)} photo(s)")
            raise DataCommitError(
                f"Failed to delete: {', '.join(failed)}",
                details={"slot_path": p, "failed": failed, "deleted": deleted},
            )

        # Stage D
        return self.verify(p, "delete", index, present=[], absent=deleted, lock_lost=lost)

    def rename(self, slot_path: str, old_name: str, new_name: str) -> WriteResult:
        """
        Rename one photo; the cover follows the photo.

        Raises:
            NotFoundError: old_name is not in the slot.
            ConflictError: new_name is already taken.
        """
        p = assert_valid_path(slot_path, "rename")
        target = sanitize_filename(new_name)
        if not target or is_metadata_name(target):
            raise InvalidArgumentError(f"Invalid photo name: {new_name!r}", details={"name": new_name})

        # Stage A
        current = self._reader.photo_index(p, repair=False)
        if old_name not in current.names:
            raise NotFoundError(f"Photo not found in slot: {old_name}", details={"slot_path": p, "name": old_name})
        if target == old_name:
            return WriteResult(slot_path=p, operation="rename", names=[target], count=current.count)
        if target in current.names:
            raise ConflictError(f"A photo named {target} already exists", details={"slot_path": p, "name": target})

        # Stage B
        self._disk.move(join_path(p, old_name), join_path(p, target), overwrite=False)

        # Stage C
        def _rename(index: PhotoIndex) -> PhotoIndex:
            items = [
                PhotoItem(name=target, size=i.size, modified=i.modified) if i.name == old_name else i
                for i in index.items
            ]
            return _with_items(index, items)

        index, lost = self.commit_index(p, "rename", _rename)

        # Stage D
        return self.verify(p, "rename", index, present=[target], absent=[old_name], lock_lost=lost)

    def update_flags(
        self,
        slot_path: str,
        *,
        used: Optional[bool] = None,
        public_url: Optional[str] = None,
    ) -> PhotoIndex:
        """Set the used flag and/or public URL of a slot under its lock."""
        p = assert_valid_path(slot_path, "update_flags")
        changes: dict[str, Any] = {}
        if used is not None:
            changes["used"] = used
        if public_url is not None:
            changes["public_url"] = public_url

        def _flag(index: PhotoIndex) -> PhotoIndex:
            return index.model_copy(update={**changes, "updated_at": now_iso()})

        index, _ = self.commit_index(p, "flags", _flag)
        return index

    # ----------------------------
    # Stages
    # ----------------------------
    def preflight(self, current: Optional[PhotoIndex], files: Sequence[PhotoUpload]) -> PreflightResult:
        """
        Stage A.

        Raises:
            LimitExceededError: if the upload would break a limit.
        """
        result = preflight(current, list(files), self._settings)
        if not result.allowed:
            log.info("Preflight rejected upload: %s", result.reason)
            raise LimitExceededError(
                result.reason or "Upload rejected",
                details={
                    "current_count": result.current_count,
                    "incoming_count": result.incoming_count,
                    "limit": current.limit if current else PHOTO_SLOT_CAPACITY,
                },
            )
        return result

    def commit_data(self, slot_path: str, files: Sequence[PhotoUpload], *, existing: set[str]) -> list[str]:
        """
        Stage B: upload bytes.

        On failure, files that did not exist before are deleted again and a
        slot whose existing photos were overwritten is marked dirty.
        """
        uploaded: list[str] = []
        log.info("Uploading %d photo(s) to %s", len(files), slot_path)
        for f in files:
            try:
                self._disk.upload_bytes(
                    join_path(slot_path, f.name),
                    f.data,
                    content_type=f.content_type or guess_content_type(f.name),
                    overwrite=True,
                )
            except CarSlotsError as exc:
                log.warning("Upload of %s failed, rolling back %d file(s)", f.name, len(uploaded))
                self._rollback(slot_path, [n for n in uploaded if n not in existing])
                if any(n in existing for n in uploaded):
                    self.mark_dirty(slot_path, "upload rolled back after overwriting existing photos")
                raise DataCommitError(
                    f"Upload failed for {f.name}: {exc}",
                    details={"slot_path": slot_path, "file": f.name, "uploaded": uploaded},
                    cause=exc,
                ) from exc
            uploaded.append(f.name)
        return uploaded

    def commit_index(self, slot_path: str, operation: str, mutate: IndexMutation) -> tuple[PhotoIndex, bool]:
        """
        Stage C: read-modify-write of the Photo Index under the slot lock.

        Returns:
            (written index, lock_lost)
        """
        with self._lock.hold(slot_path, operation=operation) as handle:
            current = self._reader.photo_index(slot_path, repair=True)
            index = mutate(current)
            self._store.write(photo_index_path(slot_path), index)
            self._store.write(slot_summary_path(slot_path), summarize(index))
            log.debug("Wrote photo index of %s (%d photo(s))", slot_path, index.count)
        return index, handle.lost

    def verify(
        self,
        slot_path: str,
        operation: WriteOperation,
        index: PhotoIndex,
        *,
        present: Sequence[str],
        absent: Sequence[str],
        lock_lost: bool = False,
    ) -> WriteResult:
        """
        Stage D: re-read the Photo Index and compare it with the expected
        outcome. Never raises on mismatch; a Dirty Marker is left instead.
        """
        loaded = self._store.load(IndexKind.PHOTOS, photo_index_path(slot_path))
        if loaded.state != "ok":
            missing = list(present)
            lingering: list[str] = []
            reason = "index missing after commit"
            count = index.count
        else:
            indexed = set(loaded.document.names)
            missing = [n for n in present if n not in indexed]
            lingering = [n for n in absent if n in indexed]
            reason = f"{operation} verification failed"
            count = loaded.document.count
        verified = loaded.state == "ok" and not missing and not lingering

        dirty = False
        if not verified or lock_lost:
            self.mark_dirty(slot_path, reason if not verified else "lock lost during write")
            dirty = True

        return WriteResult(
            slot_path=slot_path,
            operation=operation,
            names=list(present) or list(absent),
            count=count,
            verified=verified,
            dirty=dirty,
            lock_lost=lock_lost,
            missing=missing + lingering,
        )

    def mark_dirty(self, slot_path: str, reason: str) -> None:
        log.warning("Marking slot %s dirty: %s", slot_path, reason)
        marker = DirtyMarker(marked_at=now_iso(), reason=reason, slot_path=slot_path)
        self._store.write(dirty_marker_path(slot_path), marker)

    def _rollback(self, slot_path: str, names: Sequence[str]) -> None:
        for name in names:
            try:
                self._disk.delete(join_path(slot_path, name))
            except CarSlotsError as exc:
                log.warning("Rollback of %s in %s failed: %s", name, slot_path, exc)
                self.mark_dirty(slot_path, "rollback incomplete")


def _prepare_uploads(files: Sequence[PhotoUpload]) -> list[PhotoUpload]:
    by_name: dict[str, PhotoUpload] = {}
    for f in files:
        name = sanitize_filename(f.name)
        if not name or is_metadata_name(name):
            raise InvalidArgumentError(f"Invalid photo name: {f.name!r}", details={"name": f.name})
        by_name[name] = PhotoUpload(name=name, data=f.data, content_type=f.content_type)
    return list(by_name.values())


def _merge_items(items: Sequence[PhotoItem], files: Sequence[PhotoUpload]) -> list[PhotoItem]:
    merged = list(items)
    positions = {item.name: i for i, item in enumerate(merged)}
    stamp = now_iso()
    for f in files:
        item = PhotoItem(name=f.name, size=f.size, modified=stamp)
        if f.name in positions:
            merged[positions[f.name]] = item
        else:
            positions[f.name] = len(merged)
            merged.append(item)
    return merged


def _with_items(index: PhotoIndex, items: list[PhotoItem]) -> PhotoIndex:
    return build_photo_index(items, updated_at=now_iso(), used=index.used, public_url=index.public_url)
