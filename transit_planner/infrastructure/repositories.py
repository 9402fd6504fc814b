"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work), exposes
domain-relevant queries only, and returns domain entities rather than ORM
rows.  The ORM classes are looked up through class attributes so the
SQLite test suite can swap in PostGIS-free mirrors.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from .models import BusModel, RouteStopModel, StopModel
from transit_planner.domain.entities import Bus, Coordinate, RouteSegment, Stop
from transit_planner.domain.enums import BusStatus, CoachType, Direction


# ── Row -> entity mapping ─────────────────────────────────────────────


def to_stop(row) -> Stop:
    return Stop(
        id=row.id,
        name=row.name,
        coordinate=Coordinate(row.latitude, row.longitude),
        accessible=bool(row.accessible),
    )


def to_bus(row) -> Bus:
    return Bus(
        id=row.id,
        name=row.name,
        status=BusStatus(row.status),
        is_ac=bool(row.is_ac),
        coach_type=CoachType(row.coach_type),
    )


def to_segment(row) -> RouteSegment:
    stop = to_stop(row.stop) if row.stop is not None else None
    coordinate = None
    if stop is not None and row.stop.latitude is not None and row.stop.longitude is not None:
        coordinate = stop.coordinate
    return RouteSegment(
        id=row.id,
        bus_id=row.bus_id,
        stop_id=row.stop_id,
        stop_order=row.stop_order,
        direction=Direction(row.direction),
        distance_to_next=row.distance_to_next,
        duration_to_next=row.duration_to_next,
        coordinate=coordinate,
        stop=stop,
        bus=to_bus(row.bus) if row.bus is not None else None,
    )


# ── Repositories ──────────────────────────────────────────────────────


class StopRepository:
    model = StopModel

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_all(self) -> list[Stop]:
        result = await self.session.execute(select(self.model))
        return [to_stop(row) for row in result.scalars().all()]

class RouteStopRepository:
    model = RouteStopModel
    bus_model = BusModel

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_segments(
        self,
        bus_id: str,
        direction: Direction,
        from_order: int,
        to_order: int,
    ) -> list[RouteSegment]:
        """Rows with ``from_order <= stop_order <= to_order``, ascending."""
        m = self.model
        result = await self.session.execute(
            select(m)
            .where(m.bus_id == bus_id)
            .where(m.direction == Direction(direction))
            .where(m.stop_order >= from_order)
            .where(m.stop_order <= to_order)
            .order_by(m.stop_order)
        )
        return [to_segment(row) for row in result.scalars().unique().all()]

    async def find_on_active_buses(self, stop_ids: list[str]) -> list[RouteSegment]:
        """Route stops at any of *stop_ids* served by an active bus."""
        m, b = self.model, self.bus_model
        result = await self.session.execute(
            select(m)
            .join(b, m.bus_id == b.id)
            .where(m.stop_id.in_(stop_ids))
            .where(b.status == BusStatus.ACTIVE)
            .order_by(m.bus_id, m.direction, m.stop_order)
        )
        return [to_segment(row) for row in result.scalars().unique().all()]

    async def update_segment_distance(
        self,
        bus_id: str,
        direction: Direction,
        stop_order: int,
        distance_km: float,
        duration_seconds: Optional[float] = None,
    ) -> int:
        """Write the distance (and duration) to next stop.  Returns rows hit.

        Runs in a savepoint: a failed write rolls back alone and leaves the
        surrounding transaction (and earlier writes) usable.
        """
        m = self.model
        values: dict = {"distance_to_next": distance_km}
        if duration_seconds is not None:
            values["duration_to_next"] = duration_seconds
        async with self.session.begin_nested():
            result = await self.session.execute(
                update(m)
                .where(m.bus_id == bus_id)
                .where(m.direction == Direction(direction))
                .where(m.stop_order == stop_order)
                .values(**values)
            )
        return result.rowcount

    async def get_missing_distance_pairs(
        self, limit: int = 50
    ) -> list[tuple[RouteSegment, RouteSegment]]:
        """(current, next) pairs where ``current.distance_to_next`` is NULL."""
        m = self.model
        nxt = aliased(m)
        result = await self.session.execute(
            select(m, nxt)
            .join(
                nxt,
                and_(
                    nxt.bus_id == m.bus_id,
                    nxt.direction == m.direction,
                    nxt.stop_order == m.stop_order + 1,
                ),
            )
            .where(m.distance_to_next.is_(None))
            .order_by(m.bus_id, m.direction, m.stop_order)
            .limit(limit)
        )
        return [(to_segment(cur), to_segment(n)) for cur, n in result.unique().all()]
