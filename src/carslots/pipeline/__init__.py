"""Read/write pipeline exports."""

from __future__ import annotations

from .lock import LockHandle, SlotLock
from .preflight import preflight
from .read import ReadPipeline
from .strategies import (
    DEFAULT_COUNT_STRATEGIES,
    CountStrategy,
    StrategyContext,
    dirty_marker_strategy,
    legacy_lock_strategy,
    photo_index_strategy,
    reconcile_strategy,
    resolve_slot_stats,
    slot_summary_strategy,
)
from .write import WritePipeline

__all__ = [
    "LockHandle",
    "SlotLock",
    "preflight",
    "ReadPipeline",
    "WritePipeline",
    "CountStrategy",
    "StrategyContext",
    "DEFAULT_COUNT_STRATEGIES",
    "dirty_marker_strategy",
    "photo_index_strategy",
    "slot_summary_strategy",
    "legacy_lock_strategy",
    "reconcile_strategy",
    "resolve_slot_stats",
]
