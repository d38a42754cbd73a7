"""InMemoryDisk: an in-process remote store with the controller's contract."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from carslots.errors import CarSlotsError, ConflictError, InvalidArgumentError, NotFoundError
from carslots.models import ResourceInfo
from carslots.paths import assert_valid_path, basename, parent_path
from carslots.util.ids import new_uuid
from carslots.util.mime import guess_content_type
from carslots.util.time import now_iso

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _Entry:
    type: str
    data: Optional[bytes] = None
    modified: Optional[str] = None
    content_type: Optional[str] = None
    public_url: Optional[str] = None


@dataclass(slots=True)
class _Failure:
    method: str
    path: Optional[str]
    exc: CarSlotsError
    remaining: int


class InMemoryDisk:
    """
    Thread-safe in-memory remote store.

    Mirrors YandexDiskController: same method names, same path validation,
    create-if-absent uploads (overwrite=False), idempotent folder creation and
    NotFoundError/ConflictError semantics. Every call is recorded in `calls`
    as (method, path) so tests can count remote operations.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {"/": _Entry(type="dir", modified=now_iso())}
        self._failures: list[_Failure] = []
        self.calls: list[tuple[str, str]] = []

    # ----------------------------
    # Test helpers
    # ----------------------------
    def inject_failure(
        self,
        method: str,
        exc: CarSlotsError,
        *,
        path: Optional[str] = None,
        times: int = 1,
    ) -> None:
        """Make the next `times` calls of method (optionally on path) raise exc."""
        target = assert_valid_path(path, "inject_failure") if path is not None else None
        with self._lock:
            self._failures.append(_Failure(method=method, path=target, exc=exc, remaining=times))

    def count_calls(self, method: str, path: Optional[str] = None) -> int:
        with self._lock:
            return sum(1 for m, p in self.calls if m == method and (path is None or p == path))

    def reset_calls(self) -> None:
        with self._lock:
            self.calls.clear()

    def paths(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)

    # ----------------------------
    # Read
    # ----------------------------
    def get_resource(self, path: str) -> ResourceInfo:
        p = assert_valid_path(path, "get_resource")
        with self._lock:
            self._record("get_resource", p)
            return self._info(p, self._require(p))

    def exists(self, path: str) -> bool:
        p = assert_valid_path(path, "exists")
        with self._lock:
            self._record("exists", p)
            return p in self._entries

    def list_folder(self, path: str) -> list[ResourceInfo]:
        p = assert_valid_path(path, "list_folder")
        with self._lock:
            self._record("list_folder", p)
            entry = self._require(p)
            if entry.type != "dir":
                raise InvalidArgumentError("Not a folder", details={"path": p})
            return [self._info(child, self._entries[child]) for child in self._children(p)]

    def get_download_link(self, path: str) -> str:
        p = assert_valid_path(path, "download")
        with self._lock:
            self._record("get_download_link", p)
            self._require_file(p)
            return f"memory://{p}"

    def download_file(self, path: str) -> bytes:
        p = assert_valid_path(path, "download")
        with self._lock:
            self._record("download_file", p)
            return bytes(self._require_file(p).data or b"")

    def download_text(self, path: str) -> str:
        p = assert_valid_path(path, "download")
        with self._lock:
            self._record("download_text", p)
            data = bytes(self._require_file(p).data or b"")
        return data.decode("utf-8")

    # ----------------------------
    # Write
    # ----------------------------
    def create_folder(self, path: str) -> bool:
        p = assert_valid_path(path, "create_folder")
        with self._lock:
            self._record("create_folder", p)
            existing = self._entries.get(p)
            if existing is not None:
                if existing.type != "dir":
                    raise ConflictError("A file exists at folder path", details={"path": p})
                return False
            parent = self._entries.get(parent_path(p))
            if parent is None or parent.type != "dir":
                raise ConflictError("Parent folder does not exist", details={"path": p})
            self._entries[p] = _Entry(type="dir", modified=now_iso())
            return True

    def ensure_dir(self, path: str) -> None:
        p = assert_valid_path(path, "ensure_dir")
        with self._lock:
            current = ""
            for segment in p.split("/")[1:]:
                current = f"{current}/{segment}"
                if current not in self._entries:
                    self.create_folder(current)

    def upload_bytes(
        self,
        path: str,
        data: bytes,
        *,
        content_type: Optional[str] = None,
        overwrite: bool = True,
    ) -> None:
        p = assert_valid_path(path, "upload")
        with self._lock:
            self.ensure_dir(parent_path(p))
            self._record("upload_bytes", p)
            existing = self._entries.get(p)
            if existing is not None:
                if existing.type == "dir":
                    raise ConflictError("A folder exists at file path", details={"path": p})
                if not overwrite:
                    raise ConflictError("Resource already exists", details={"path": p})
            self._entries[p] = _Entry(
                type="file",
                data=bytes(data),
                modified=now_iso(),
                content_type=content_type or guess_content_type(p),
            )

    def upload_text(self, path: str, text: str, *, overwrite: bool = True) -> None:
        self.upload_bytes(path, text.encode("utf-8"), content_type="application/json", overwrite=overwrite)

    def delete(self, path: str, *, permanently: bool = True) -> bool:
        p = assert_valid_path(path, "delete")
        with self._lock:
            self._record("delete", p)
            if p == "/":
                raise InvalidArgumentError("Cannot delete the disk root")
            if p not in self._entries:
                return False
            for key in self._subtree(p):
                del self._entries[key]
            return True

    def move(self, src: str, dst: str, *, overwrite: bool = False, retry: bool = True) -> None:
        s = assert_valid_path(src, "move")
        d = assert_valid_path(dst, "move")
        with self._lock:
            self._record("move", s)
            self._require(s)
            if d == s or d.startswith(s + "/"):
                raise InvalidArgumentError("Cannot move a resource into itself", details={"from": s, "path": d})
            if d in self._entries:
                if not overwrite:
                    raise ConflictError("Destination already exists", details={"path": d})
                for key in self._subtree(d):
                    del self._entries[key]

            self.ensure_dir(parent_path(d))
            for key in self._subtree(s):
                entry = self._entries.pop(key)
                self._entries[d + key[len(s):]] = entry

    move_folder = move

    def publish(self, path: str) -> str:
        p = assert_valid_path(path, "publish")
        with self._lock:
            self._record("publish", p)
            entry = self._require(p)
            if not entry.public_url:
                entry.public_url = f"https://disk.local/public/{new_uuid()}"
            return entry.public_url

    # ----------------------------
    # Internals
    # ----------------------------
    def _record(self, method: str, path: str) -> None:
        self.calls.append((method, path))
        for failure in self._failures:
            if failure.method != method or failure.remaining <= 0:
                continue
            if failure.path is not None and failure.path != path:
                continue
            failure.remaining -= 1
            log.debug("Injected failure for %s %s: %s", method, path, failure.exc)
            raise failure.exc

    def _require(self, path: str) -> _Entry:
        entry = self._entries.get(path)
        if entry is None:
            raise NotFoundError("Resource not found", details={"path": path, "status_code": 404})
        return entry

    def _require_file(self, path: str) -> _Entry:
        entry = self._require(path)
        if entry.type != "file":
            raise InvalidArgumentError("Not a file", details={"path": path})
        return entry

    def _children(self, path: str) -> list[str]:
        prefix = "/" if path == "/" else path + "/"
        return sorted(
            key
            for key in self._entries
            if key != path and key.startswith(prefix) and "/" not in key[len(prefix):]
        )

    def _subtree(self, path: str) -> list[str]:
        return [key for key in self._entries if key == path or key.startswith(path + "/")]

    def _info(self, path: str, entry: _Entry) -> ResourceInfo:
        is_file = entry.type == "file"
        return ResourceInfo(
            name=basename(path) if path != "/" else "",
            path=path,
            type="file" if is_file else "dir",
            size=len(entry.data or b"") if is_file else None,
            modified=entry.modified,
            mime_type=entry.content_type if is_file else None,
            public_url=entry.public_url,
        )
