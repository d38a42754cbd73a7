"""Endpoints and paging constants for the Yandex Disk REST API."""

from __future__ import annotations

RESOURCES: str = "/resources"
UPLOAD: str = "/resources/upload"
DOWNLOAD: str = "/resources/download"
MOVE: str = "/resources/move"
PUBLISH: str = "/resources/publish"

LIST_PAGE_SIZE: int = 1000

OPERATION_POLL_INTERVAL_SEC: float = 0.5
OPERATION_POLL_MAX: int = 120
