"""Reconciliation exports."""

from __future__ import annotations

from .reconciler import Reconciler

__all__ = ["Reconciler"]
