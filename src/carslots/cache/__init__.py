"""Relational cache exports."""

from __future__ import annotations

from .relational import RelationalCache

__all__ = ["RelationalCache"]
