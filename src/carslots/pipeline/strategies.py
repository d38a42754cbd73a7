"""Ordered strategies for reading slot photo counts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from carslots.index import IndexKind, IndexStore, LockMarker, PhotoIndex, SlotSummary
from carslots.models import CountSource, SlotStats
from carslots.paths import dirty_marker_path, lock_marker_path, photo_index_path, slot_summary_path
from carslots.reconcile import Reconciler

log = logging.getLogger(__name__)

_MB = 1024 * 1024


@dataclass(slots=True)
class StrategyContext:
    disk: Any
    store: IndexStore
    reconciler: Reconciler


CountStrategy = Callable[[StrategyContext, str], Optional[SlotStats]]


def stats_from_index(index: PhotoIndex, source: CountSource) -> SlotStats:
    return SlotStats(
        count=index.count,
        total_size_bytes=index.total_size,
        cover=index.cover,
        updated_at=index.updated_at,
        used=index.used,
        public_url=index.public_url,
        source=source,
    )


def dirty_marker_strategy(ctx: StrategyContext, slot_path: str) -> Optional[SlotStats]:
    """A dirty slot is always reconciled before its index is trusted."""
    if not ctx.disk.exists(dirty_marker_path(slot_path)):
        return None
    log.info("Slot %s is marked dirty; reconciling", slot_path)
    return reconcile_strategy(ctx, slot_path)


def photo_index_strategy(ctx: StrategyContext, slot_path: str) -> Optional[SlotStats]:
    index = ctx.store.read(IndexKind.PHOTOS, photo_index_path(slot_path))
    if isinstance(index, PhotoIndex):
        return stats_from_index(index, "index")
    return None


def slot_summary_strategy(ctx: StrategyContext, slot_path: str) -> Optional[SlotStats]:
    summary = ctx.store.read(IndexKind.SLOT, slot_summary_path(slot_path))
    if not isinstance(summary, SlotSummary):
        return None
    return SlotStats(
        count=summary.count,
        total_size_bytes=int(summary.total_size_mb * _MB),
        cover=summary.cover,
        updated_at=summary.updated_at,
        used=summary.used,
        source="summary",
    )


def legacy_lock_strategy(ctx: StrategyContext, slot_path: str) -> Optional[SlotStats]:
    marker = ctx.store.read(IndexKind.LOCK, lock_marker_path(slot_path))
    if not isinstance(marker, LockMarker) or marker.file_count is None:
        return None
    return SlotStats(
        count=marker.file_count,
        total_size_bytes=int((marker.total_size_mb or 0) * _MB),
        updated_at=marker.locked_at,
        source="lock",
    )


def reconcile_strategy(ctx: StrategyContext, slot_path: str) -> SlotStats:
    result = ctx.reconciler.reconcile_slot(slot_path)
    return stats_from_index(result.document, "reconcile")


DEFAULT_COUNT_STRATEGIES: tuple[CountStrategy, ...] = (
    dirty_marker_strategy,
    photo_index_strategy,
    slot_summary_strategy,
    legacy_lock_strategy,
    reconcile_strategy,
)


def resolve_slot_stats(
    ctx: StrategyContext,
    slot_path: str,
    strategies: Sequence[CountStrategy] = DEFAULT_COUNT_STRATEGIES,
) -> SlotStats:
    """Run strategies in order; the first non-None answer wins, reconcile is the fallback."""
    for strategy in strategies:
        stats = strategy(ctx, slot_path)
        if stats is not None:
            log.debug("Slot %s count %d from %s", slot_path, stats.count, stats.source)
            return stats
    return reconcile_strategy(ctx, slot_path)
