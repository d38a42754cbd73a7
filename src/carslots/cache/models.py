"""SQLAlchemy tables of the relational cache."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class RegionRow(Base):
    __tablename__ = "regions"

    region = Column(String(64), primary_key=True)
    synced_at = Column(String(32), nullable=False)


class CarRow(Base):
    __tablename__ = "cars"

    id = Column(Integer, primary_key=True, autoincrement=True)
    region = Column(String(64), nullable=False)
    # region the car belongs to; differs from `region` for archived cars
    car_region = Column(String(64), nullable=False)
    make = Column(String(255), nullable=False)
    model = Column(String(255), nullable=False)
    vin = Column(String(17), nullable=False)
    disk_root_path = Column(String(1024), nullable=False)
    created_at = Column(String(32), nullable=True)
    synced_at = Column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint("region", "car_region", "vin", name="uq_cars_region_car"),
        Index("ix_cars_region", "region"),
    )


class SlotRow(Base):
    __tablename__ = "slots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    region = Column(String(64), nullable=False)
    vin = Column(String(17), nullable=False)
    slot_type = Column(String(16), nullable=False)
    slot_index = Column(Integer, nullable=False)
    disk_slot_path = Column(Text, nullable=False)
    photo_count = Column(Integer, default=0, nullable=False)
    total_size_bytes = Column(Integer, default=0, nullable=False)
    cover = Column(Text, nullable=True)
    locked = Column(Boolean, default=False, nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    updated_at = Column(String(32), nullable=True)
    synced_at = Column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint("region", "vin", "slot_type", "slot_index", name="uq_slots_car_slot"),
        Index("ix_slots_region_vin", "region", "vin"),
    )


class LinkRow(Base):
    __tablename__ = "links"

    id = Column(String(36), primary_key=True)
    region = Column(String(64), nullable=False)
    vin = Column(String(17), nullable=False)
    title = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    created_at = Column(String(32), nullable=False)
    created_by = Column(String(255), nullable=True)

    __table_args__ = (Index("ix_links_region_vin", "region", "vin"),)
