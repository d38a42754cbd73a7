"""Remote lock markers: the only cross-process mutex."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from carslots.config import Settings
from carslots.errors import ConflictError, LockHeldError
from carslots.index import IndexKind, IndexStore, LoadedDocument, LockMarker
from carslots.paths import lock_marker_path
from carslots.util.ids import new_lock_token
from carslots.util.time import expires_at, now_iso

log = logging.getLogger(__name__)


@dataclass(slots=True)
class LockHandle:
    folder: str
    path: str
    token: str
    lost: bool = False


class SlotLock:
    """
    Create-if-absent lock marker on a folder (a slot or a car root).

    A live marker makes other writers poll until lock_wait_seconds elapse.
    An expired or unreadable marker is taken over.
    """

    def __init__(self, store: IndexStore, settings: Settings, *, owner: str = "carslots") -> None:
        self._store = store
        self._settings = settings
        self._owner = owner

    def acquire(self, folder: str, *, operation: str) -> LockHandle:
        path = lock_marker_path(folder)
        token = new_lock_token()
        deadline = time.monotonic() + self._settings.lock_wait_seconds

        while True:
            marker = LockMarker(
                locked_by=self._owner,
                locked_at=now_iso(),
                expires_at=expires_at(self._settings.lock_ttl_seconds),
                operation=operation,
                slot_path=folder,
                token=token,
            )
            try:
                self._store.create(path, marker)
                log.debug("Acquired %s lock on %s", operation, folder)
                return LockHandle(folder=folder, path=path, token=token)
            except ConflictError:
                pass

            existing = self._store.load(IndexKind.LOCK, path)
            if existing.state == "missing":
                continue
            if existing.state == "invalid" or existing.document.is_expired():
                if self._unchanged(path, existing):
                    kind = "invalid" if existing.state == "invalid" else "expired"
                    log.warning("Taking over %s lock marker on %s", kind, folder)
                    self._store.remove(path)
                continue

            if time.monotonic() >= deadline:
                held = existing.document
                raise LockHeldError(
                    f"Folder is locked by {held.locked_by} ({held.operation})",
                    details={"path": folder, "locked_by": held.locked_by, "expires_at": held.expires_at},
                )
            time.sleep(self._settings.lock_poll_interval_seconds)

    def release(self, handle: LockHandle) -> bool:
        """
        Remove the marker if it is still ours.

        Returns:
            False (and marks the handle lost) if another writer took it over.
        """
        current = self._store.load(IndexKind.LOCK, handle.path)
        if current.state == "ok" and current.document.token == handle.token:
            self._store.remove(handle.path)
            log.debug("Released lock on %s", handle.folder)
            return True

        handle.lost = True
        log.warning("Lock on %s was lost before release", handle.folder)
        return False

    @contextmanager
    def hold(self, folder: str, *, operation: str) -> Iterator[LockHandle]:
        handle = self.acquire(folder, operation=operation)
        try:
            yield handle
        finally:
            self.release(handle)

    def _unchanged(self, path: str, seen: LoadedDocument) -> bool:
        """True if the marker at path is still the one a takeover was decided on."""
        current = self._store.load(IndexKind.LOCK, path)
        if current.state != seen.state:
            return False
        if current.state != "ok":
            return True
        return _marker_key(current.document) == _marker_key(seen.document)


def _marker_key(marker: LockMarker) -> tuple:
    return (marker.token, marker.locked_by, marker.locked_at, marker.expires_at)

