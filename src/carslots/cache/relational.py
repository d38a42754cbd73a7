"""Optional relational mirror of region, slot and link data."""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from carslots.config import Settings
from carslots.index import CarEntry, Link
from carslots.models import Slot, SlotStats
from carslots.paths import SlotType, normalize_region
from carslots.util.time import now_iso

from .models import Base, CarRow, LinkRow, RegionRow, SlotRow

log = logging.getLogger(__name__)


class RelationalCache:
    """
    Last-known-good copy of what the disk indexes say.

    The disk stays the source of truth: the cache is written after successful
    reads and consulted only when the disk is unreachable.
    """

    def __init__(self, database_url: str = "sqlite://", *, engine: Optional[Engine] = None) -> None:
        self._engine = engine or _make_engine(database_url)
        Base.metadata.create_all(self._engine)
        self._session = sessionmaker(bind=self._engine, expire_on_commit=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["RelationalCache"]:
        if not settings.database_url:
            return None
        return cls(settings.database_url)

    # ----------------------------
    # Cars
    # ----------------------------
    def sync_region(self, region: str, cars: list[CarEntry]) -> None:
        code = normalize_region(region)
        stamp = now_iso()
        with self._session.begin() as session:
            session.execute(delete(CarRow).where(CarRow.region == code))
            session.add_all(
                CarRow(
                    region=code,
                    car_region=car.region,
                    make=car.make,
                    model=car.model,
                    vin=car.vin,
                    disk_root_path=car.disk_root_path,
                    created_at=car.created_at,
                    synced_at=stamp,
                )
                for car in cars
            )
            session.merge(RegionRow(region=code, synced_at=stamp))
        log.debug("Cached %d car(s) for region %s", len(cars), code)

    def region_cars(self, region: str) -> Optional[list[CarEntry]]:
        """Cars of a region, or None if the region was never synced."""
        code = normalize_region(region)
        with self._session() as session:
            if session.get(RegionRow, code) is None:
                return None
            rows = session.scalars(select(CarRow).where(CarRow.region == code).order_by(CarRow.id)).all()
            return [
                CarEntry(
                    region=row.car_region,
                    make=row.make,
                    model=row.model,
                    vin=row.vin,
                    disk_root_path=row.disk_root_path,
                    created_at=row.created_at,
                )
                for row in rows
            ]

    def region_synced_at(self, region: str) -> Optional[str]:
        with self._session() as session:
            row = session.get(RegionRow, normalize_region(region))
            return row.synced_at if row else None

    def remove_car(self, region: str, vin: str) -> None:
        code, key = normalize_region(region), vin.upper()
        with self._session.begin() as session:
            session.execute(delete(CarRow).where(CarRow.region == code, CarRow.vin == key))
            session.execute(delete(SlotRow).where(SlotRow.region == code, SlotRow.vin == key))
            session.execute(delete(LinkRow).where(LinkRow.region == code, LinkRow.vin == key))

    # ----------------------------
    # Slots
    # ----------------------------
    def sync_slots(self, region: str, vin: str, slots: list[Slot]) -> None:
        code, key = normalize_region(region), vin.upper()
        stamp = now_iso()
        with self._session.begin() as session:
            for slot in slots:
                if slot.stats is None:
                    continue
                row = session.scalars(
                    select(SlotRow).where(
                        SlotRow.region == code,
                        SlotRow.vin == key,
                        SlotRow.slot_type == slot.slot_type.value,
                        SlotRow.slot_index == slot.slot_index,
                    )
                ).first()
                if row is None:
                    row = SlotRow(region=code, vin=key, slot_type=slot.slot_type.value, slot_index=slot.slot_index)
                    session.add(row)
                row.disk_slot_path = slot.path
                row.photo_count = slot.stats.count
                row.total_size_bytes = slot.stats.total_size_bytes
                row.cover = slot.stats.cover
                row.locked = slot.stats.locked
                row.used = slot.stats.used
                row.updated_at = slot.stats.updated_at
                row.synced_at = stamp

    def car_slots(self, region: str, vin: str) -> list[Slot]:
        code, key = normalize_region(region), vin.upper()
        with self._session() as session:
            rows = session.scalars(
                select(SlotRow)
                .where(SlotRow.region == code, SlotRow.vin == key)
                .order_by(SlotRow.id)
            ).all()
            return [
                Slot(
                    slot_type=SlotType(row.slot_type),
                    slot_index=row.slot_index,
                    path=row.disk_slot_path,
                    stats=SlotStats(
                        count=row.photo_count,
                        total_size_bytes=row.total_size_bytes,
                        cover=row.cover,
                        updated_at=row.updated_at,
                        used=row.used,
                        source="index",
                    ),
                )
                for row in rows
            ]

    # ----------------------------
    # Links
    # ----------------------------
    def sync_links(self, region: str, vin: str, links: list[Link]) -> None:
        code, key = normalize_region(region), vin.upper()
        with self._session.begin() as session:
            session.execute(delete(LinkRow).where(LinkRow.region == code, LinkRow.vin == key))
            session.add_all(
                LinkRow(
                    id=link.id,
                    region=code,
                    vin=key,
                    title=link.title,
                    url=link.url,
                    created_at=link.created_at,
                    created_by=link.created_by,
                )
                for link in links
            )

    def car_links(self, region: str, vin: str) -> list[Link]:
        code, key = normalize_region(region), vin.upper()
        with self._session() as session:
            rows = session.scalars(
                select(LinkRow).where(LinkRow.region == code, LinkRow.vin == key).order_by(LinkRow.created_at)
            ).all()
            return [
                Link(id=r.id, title=r.title, url=r.url, created_at=r.created_at, created_by=r.created_by)
                for r in rows
            ]

    def clear(self) -> None:
        with self._session.begin() as session:
            for model in (LinkRow, SlotRow, CarRow, RegionRow):
                session.execute(delete(model))

    def dispose(self) -> None:
        self._engine.dispose()


def _make_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite") and (database_url in ("sqlite://", "sqlite:///:memory:")):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url)
