"""
SQLAlchemy ORM models  (maps to PostgreSQL + PostGIS).

Tables
------
* ``stops``        -- bus stops with a PostGIS point and plain lat/lng
* ``buses``        -- bus services (status, AC, coach type)
* ``route_stops``  -- ordered stop sequence per bus and direction; each row
  carries the precomputed distance / duration to the next stop

Indexes
-------
* **GIST** on ``stops.location``.
* **Unique** on ``(bus_id, direction, stop_order)``: one row per position.
* **B-Tree** on ``route_stops.stop_id`` and ``buses.status`` for the
  bus-between-stops search.
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship
from geoalchemy2 import Geometry

from .database import Base
from transit_planner.domain.enums import BusStatus, CoachType, Direction


def _uuid() -> str:
    return str(uuid.uuid4())


def value_enum(enum_cls, name: str) -> Enum:
    # persist the lower-case values ("outbound"), not the member names
    return Enum(
        enum_cls, name=name, values_callable=lambda e: [m.value for m in e]
    )


class StopModel(Base):
    __tablename__ = "stops"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)

    # Stored as PostGIS geometry for spatial indexing
    location = Column(
        Geometry("POINT", srid=4326, spatial_index=False), nullable=True
    )

    # Also stored as plain floats for fast reads (avoids ST_X / ST_Y)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)

    accessible = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("idx_stops_location", "location", postgresql_using="gist"),
    )


class BusModel(Base):
    __tablename__ = "buses"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(200), nullable=False)
    status = Column(value_enum(BusStatus, "busstatus"), default=BusStatus.ACTIVE)
    is_ac = Column(Boolean, default=False, nullable=False)
    coach_type = Column(value_enum(CoachType, "coachtype"), default=CoachType.STANDARD)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (Index("idx_buses_status", "status"),)


class RouteStopModel(Base):
    __tablename__ = "route_stops"

    id = Column(String(36), primary_key=True, default=_uuid)
    bus_id = Column(String(36), ForeignKey("buses.id"), nullable=False)
    stop_id = Column(String(36), ForeignKey("stops.id"), nullable=False)
    stop_order = Column(Integer, nullable=False)
    direction = Column(value_enum(Direction, "direction"), nullable=False)
    distance_to_next = Column(Float, nullable=True)  # km
    duration_to_next = Column(Float, nullable=True)  # seconds

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    bus = relationship(BusModel, lazy="joined")
    stop = relationship(StopModel, lazy="joined")

    __table_args__ = (
        UniqueConstraint(
            "bus_id", "direction", "stop_order", name="uq_route_stops_position"
        ),
        Index("idx_route_stops_stop", "stop_id"),
        Index("idx_route_stops_bus_dir", "bus_id", "direction", "stop_order"),
    )
