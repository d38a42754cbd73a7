"""Remote store controller exports."""

from __future__ import annotations

from .disk_controller import YandexDiskController
from .retry import RetryPolicy

__all__ = ["YandexDiskController", "RetryPolicy"]
