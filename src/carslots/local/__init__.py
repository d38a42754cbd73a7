"""In-process store exports."""

from __future__ import annotations

from .memory_disk import InMemoryDisk

__all__ = ["InMemoryDisk"]
