"""Result models for store calls, reconciliation and writes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Literal, Optional, TypeVar

from carslots.errors import CarSlotsError

log = logging.getLogger(__name__)

T = TypeVar("T")

ReconcileDepth = Literal["slot", "car", "region"]
WriteOperation = Literal["upload", "delete", "rename"]


@dataclass(slots=True)
class CallResult(Generic[T]):
    """Structured outcome of a store call for callers that avoid exceptions."""

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, value: Optional[T] = None) -> "CallResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, exc: BaseException) -> "CallResult[T]":
        code = exc.code if isinstance(exc, CarSlotsError) else type(exc).__name__
        return cls(success=False, error=str(exc), error_code=code)


def call_safely(fn: Callable[..., T], *args: Any, **kwargs: Any) -> CallResult[T]:
    """
    Run fn and wrap its outcome in a CallResult.

    Only carslots errors are converted; programming errors still propagate.
    """
    try:
        return CallResult.ok(fn(*args, **kwargs))
    except CarSlotsError as exc:
        log.debug("call_safely: %s failed: %s", getattr(fn, "__name__", fn), exc)
        return CallResult.fail(exc)


@dataclass(slots=True)
class ReconcileResult:
    """Summary of one reconcile run."""

    path: str
    depth: ReconcileDepth
    actions: list[str] = field(default_factory=list)
    repaired_files: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    # The rebuilt document (PhotoIndex for a slot, RegionIndex for a region).
    document: Any = None

    @property
    def success(self) -> bool:
        return not self.errors

    def merge(self, other: "ReconcileResult") -> None:
        self.actions.extend(other.actions)
        self.repaired_files.extend(other.repaired_files)
        self.errors.extend(other.errors)


@dataclass(slots=True)
class PreflightResult:
    """Outcome of the write pipeline preflight stage."""

    allowed: bool
    current_count: int
    incoming_count: int
    current_size_bytes: int = 0
    incoming_size_bytes: int = 0
    reason: Optional[str] = None

    @property
    def projected_count(self) -> int:
        return self.current_count + self.incoming_count

    @property
    def projected_size_bytes(self) -> int:
        return self.current_size_bytes + self.incoming_size_bytes


@dataclass(slots=True)
class WriteResult:
    """Outcome of a write pipeline run (upload/delete/rename)."""

    slot_path: str
    operation: WriteOperation
    names: list[str] = field(default_factory=list)
    count: int = 0
    verified: bool = True
    dirty: bool = False
    lock_lost: bool = False
    missing: list[str] = field(default_factory=list)
