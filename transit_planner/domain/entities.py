"""
Domain entities and value objects.

Patterns used
-------------
- ``Coordinate`` and ``DistanceResult`` are immutable value objects; a
  ``DistanceMatrix`` is indexed ``[origin][destination]``.
- ``Stop``, ``Bus`` and ``RouteSegment`` mirror rows owned by the data
  store and are read-only to the distance layer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Optional

from .enums import BusStatus, CoachType, Direction


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class DistanceResult:
    distance: float  # km
    method: str
    duration: Optional[float] = None  # seconds


DistanceMatrix = list[list[DistanceResult]]


class JourneyKey(NamedTuple):
    bus_id: str
    boarding_order: int
    alighting_order: int
    direction: Direction


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Stop:
    id: str
    name: str
    coordinate: Coordinate
    accessible: bool = False


@dataclass
class StopWithDistance:
    stop: Stop
    distance: float  # metres from the reference point
    distance_method: str

    @property
    def id(self) -> str:
        return self.stop.id


@dataclass
class Bus:
    id: str
    name: str
    status: BusStatus = BusStatus.ACTIVE
    is_ac: bool = False
    coach_type: CoachType = CoachType.STANDARD


@dataclass
class RouteSegment:
    """One row of a bus's ordered stop sequence (stop -> next stop)."""

    id: str
    bus_id: str
    stop_id: str
    stop_order: int
    direction: Direction
    distance_to_next: Optional[float] = None  # km
    duration_to_next: Optional[float] = None  # seconds
    coordinate: Optional[Coordinate] = None
    stop: Optional[Stop] = None
    bus: Optional[Bus] = None


@dataclass
class BusRoute:
    bus: Bus
    boarding_stop: Stop
    alighting_stop: Stop
    boarding_order: int
    alighting_order: int
    direction: Direction
    route_stops: list[RouteSegment] = field(default_factory=list)

    @property
    def bus_id(self) -> str:
        return self.bus.id
