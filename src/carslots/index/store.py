"""Reading and writing index documents on the remote disk."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional

from pydantic import BaseModel

from carslots.errors import NotFoundError

from .codec import IndexKind, deserialize_document, serialize_document

log = logging.getLogger(__name__)

DocumentState = Literal["ok", "missing", "invalid"]


@dataclass(slots=True)
class LoadedDocument:
    state: DocumentState
    document: Optional[Any] = None


class IndexStore:
    """
    Document access on top of a disk client.

    An invalid document is reported as such by load() and treated exactly like
    a missing one by read(); neither raises.
    """

    def __init__(self, disk: Any) -> None:
        self._disk = disk

    @property
    def disk(self) -> Any:
        return self._disk

    def load(self, kind: IndexKind, path: str) -> LoadedDocument:
        try:
            text = self._disk.download_text(path)
        except NotFoundError:
            return LoadedDocument(state="missing")
        except UnicodeDecodeError as exc:
            log.warning("Invalid %s document at %s: not UTF-8 (%s)", IndexKind(kind).value, path, exc)
            return LoadedDocument(state="invalid")

        result = deserialize_document(kind, text)
        if not result.ok:
            log.warning("Invalid %s document at %s: %s", IndexKind(kind).value, path, "; ".join(result.errors))
            return LoadedDocument(state="invalid")
        return LoadedDocument(state="ok", document=result.document)

    def read(self, kind: IndexKind, path: str) -> Optional[Any]:
        return self.load(kind, path).document

    def write(self, path: str, document: BaseModel) -> None:
        self._disk.upload_text(path, serialize_document(document), overwrite=True)

    def create(self, path: str, document: BaseModel) -> None:
        """
        Write only if absent.

        Raises:
            ConflictError: if a document already exists at path.
        """
        self._disk.upload_text(path, serialize_document(document), overwrite=False)

    def remove(self, path: str) -> bool:
        return self._disk.delete(path)
