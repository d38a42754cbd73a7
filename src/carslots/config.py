"""
carslots configuration

Settings are read from two sources, in order of precedence:
- Environment variables (prefixed with CARSLOTS_)
- A .env file, loaded with python-dotenv when given to load_settings()

The Settings object is built once and passed explicitly to every component.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Annotated, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from carslots.paths import normalize_path, normalize_region, normalize_region_list

ENV_PREFIX = "carslots_"

DEFAULT_API_BASE = "https://cloud-api.yandex.net/v1/disk"

_WINDOWS_DRIVE_RE = re.compile(r"^/?[A-Za-z]:[/\\]")


class Settings(BaseSettings):
    disk_token: Annotated[
        str,
        Field(description="OAuth token for the remote disk API"),
    ] = ""
    disk_api_base: Annotated[
        str,
        Field(description="Base URL of the remote disk REST API"),
    ] = DEFAULT_API_BASE
    disk_base_dir: Annotated[
        str,
        Field(description="Root folder on the disk that holds all regions"),
    ] = "/Фото"

    regions: Annotated[
        str,
        Field(description="Comma-separated list of region codes"),
    ] = ""
    archive_region: Annotated[
        str,
        Field(description="Pseudo-region that holds archived cars"),
    ] = "ALL"

    max_slot_size_mb: Annotated[float, Field(gt=0)] = 20
    max_file_size_mb: Annotated[float, Field(gt=0)] = 50
    max_files_per_upload: Annotated[int, Field(gt=0)] = 50

    region_index_ttl_seconds: Annotated[
        float,
        Field(ge=0, description="Region index older than this is rebuilt on read"),
    ] = 300
    lock_ttl_seconds: Annotated[
        float,
        Field(gt=0, description="Lock markers older than this may be taken over"),
    ] = 300
    lock_wait_seconds: Annotated[float, Field(ge=0)] = 10
    lock_poll_interval_seconds: Annotated[float, Field(gt=0)] = 0.5

    retry_max_attempts: Annotated[int, Field(ge=1)] = 3
    retry_base_delay_seconds: Annotated[float, Field(ge=0)] = 1.0
    request_timeout_seconds: Annotated[float, Field(gt=0)] = 30

    archive_max_attempts: Annotated[int, Field(ge=1)] = 3
    archive_retry_delay_seconds: Annotated[float, Field(ge=0)] = 1.0

    zip_max_files: Annotated[int, Field(gt=0)] = 500
    zip_max_total_mb: Annotated[float, Field(gt=0)] = 1500

    database_url: Annotated[
        Optional[str],
        Field(description="SQLAlchemy URL of the optional relational cache"),
    ] = None

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX)

    @field_validator("disk_base_dir")
    @classmethod
    def _canonical_base_dir(cls, value: str) -> str:
        if _WINDOWS_DRIVE_RE.match(value.strip()):
            raise ValueError(
                f"disk_base_dir must be a remote disk path, not a Windows path: {value!r}"
            )
        return normalize_path(value)

    @field_validator("archive_region")
    @classmethod
    def _upper_archive_region(cls, value: str) -> str:
        return normalize_region(value)

    @field_validator("disk_api_base")
    @classmethod
    def _strip_api_base(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def region_list(self) -> list[str]:
        """Configured regions, trimmed and upper-cased."""
        return normalize_region_list(self.regions.split(","))

    @property
    def max_slot_size_bytes(self) -> int:
        return int(self.max_slot_size_mb * 1024 * 1024)

    @property
    def max_file_size_bytes(self) -> int:
        return int(self.max_file_size_mb * 1024 * 1024)

    @property
    def zip_max_total_bytes(self) -> int:
        return int(self.zip_max_total_mb * 1024 * 1024)


def load_settings(env_file: Optional[str | Path] = None, **overrides) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env_file: Optional .env file; its values never override variables that
            are already set in the environment.
        **overrides: Explicit values that win over every other source.
    """
    if env_file is not None:
        load_dotenv(env_file, override=False)
    return Settings(**overrides)
