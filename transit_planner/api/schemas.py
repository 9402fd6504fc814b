"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from transit_planner.domain.entities import (
    BusRoute,
    DistanceResult,
    RouteSegment,
    Stop,
    StopWithDistance,
)


# ── Requests ──────────────────────────────────────────────────────────


class CoordinateIn(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class DistanceMatrixRequest(BaseModel):
    origins: list[CoordinateIn] = Field(..., min_length=1, max_length=100)
    destinations: list[CoordinateIn] = Field(..., min_length=1, max_length=100)
    use_fallback: bool = True


# ── Responses ─────────────────────────────────────────────────────────


class StopResponse(BaseModel):
    id: str
    name: str
    latitude: float
    longitude: float
    accessible: bool

    @classmethod
    def from_entity(cls, stop: Stop) -> "StopResponse":
        return cls(
            id=stop.id,
            name=stop.name,
            latitude=stop.coordinate.latitude,
            longitude=stop.coordinate.longitude,
            accessible=stop.accessible,
        )


class StopWithDistanceResponse(StopResponse):
    distance: float = Field(..., description="Metres from the reference point")
    distance_method: str

    @classmethod
    def from_discovery(cls, item: StopWithDistance) -> "StopWithDistanceResponse":
        base = StopResponse.from_entity(item.stop)
        return cls(
            **base.model_dump(),
            distance=item.distance,
            distance_method=item.distance_method,
        )


class NearbyStopsResponse(BaseModel):
    stops: list[StopWithDistanceResponse]
    count: int
    threshold: float
    location: CoordinateIn


class RouteStopResponse(BaseModel):
    id: str
    bus_id: str
    stop_id: str
    stop_order: int
    direction: str
    distance_to_next: Optional[float] = None
    duration_to_next: Optional[float] = None
    stop: Optional[StopResponse] = None

    @classmethod
    def from_entity(cls, seg: RouteSegment) -> "RouteStopResponse":
        return cls(
            id=seg.id,
            bus_id=seg.bus_id,
            stop_id=seg.stop_id,
            stop_order=seg.stop_order,
            direction=seg.direction.value,
            distance_to_next=seg.distance_to_next,
            duration_to_next=seg.duration_to_next,
            stop=StopResponse.from_entity(seg.stop) if seg.stop else None,
        )


class BusResponse(BaseModel):
    id: str
    name: str
    status: str
    is_ac: bool
    coach_type: str


class BusRouteResponse(BaseModel):
    bus_id: str
    bus: BusResponse
    boarding_stop: StopResponse
    alighting_stop: StopResponse
    boarding_order: int
    alighting_order: int
    direction: str
    route_stops: list[RouteStopResponse] = []

    @classmethod
    def from_entity(cls, route: BusRoute) -> "BusRouteResponse":
        bus = route.bus
        return cls(
            bus_id=bus.id,
            bus=BusResponse(
                id=bus.id,
                name=bus.name,
                status=bus.status.value,
                is_ac=bus.is_ac,
                coach_type=bus.coach_type.value,
            ),
            boarding_stop=StopResponse.from_entity(route.boarding_stop),
            alighting_stop=StopResponse.from_entity(route.alighting_stop),
            boarding_order=route.boarding_order,
            alighting_order=route.alighting_order,
            direction=route.direction.value,
            route_stops=[RouteStopResponse.from_entity(s) for s in route.route_stops],
        )


class BusRoutesResponse(BaseModel):
    routes: list[BusRouteResponse]
    count: int
    boarding_stop_id: str
    alighting_stop_id: str


class JourneyLengthResponse(BaseModel):
    journey_length_km: float
    journey_length_meters: float
    bus_id: str
    boarding_order: int
    alighting_order: int
    direction: str


class DistanceCell(BaseModel):
    distance: float = Field(..., description="Kilometres")
    duration: Optional[float] = Field(None, description="Seconds")
    method: str

    @classmethod
    def from_result(cls, result: DistanceResult) -> "DistanceCell":
        return cls(
            distance=result.distance, duration=result.duration, method=result.method
        )


class DistanceMatrixResponse(BaseModel):
    rows: list[list[DistanceCell]]


class StrategyStatus(BaseModel):
    role: str
    name: str
    available: bool


class BackfillResponse(BaseModel):
    updated: int


class CacheClearedResponse(BaseModel):
    cleared: int


class HealthResponse(BaseModel):
    status: str = "ok"


class ErrorResponse(BaseModel):
    detail: str
