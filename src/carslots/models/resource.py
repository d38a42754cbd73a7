"""Data model for remote disk resources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

ResourceType = Literal["dir", "file"]


@dataclass(slots=True)
class ResourceInfo:
    """
    A file or folder on the remote disk.

    Notes:
        - `path` is always canonical (no ``disk:`` prefix).
        - `size` is None for folders.
    """

    name: str
    path: str
    type: ResourceType

    size: Optional[int] = None
    modified: Optional[str] = None
    mime_type: Optional[str] = None
    public_url: Optional[str] = None
    md5: Optional[str] = None

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"

    @property
    def is_file(self) -> bool:
        return self.type == "file"
