"""
Stop endpoints
==============

GET /api/v1/stops/within-threshold -- stops near a location, nearest first
"""

from fastapi import APIRouter, Depends, Query, Request

from transit_planner.api.dependencies import get_stop_discovery_service
from transit_planner.api.middleware import limiter
from transit_planner.api.schemas import (
    CoordinateIn,
    NearbyStopsResponse,
    StopWithDistanceResponse,
)
from transit_planner.config import settings
from transit_planner.domain.entities import Coordinate
from transit_planner.services.stop_discovery import StopDiscoveryService

router = APIRouter(prefix="/stops", tags=["stops"])


@router.get(
    "/within-threshold",
    response_model=NearbyStopsResponse,
    summary="Discover stops within a threshold distance",
)
@limiter.limit(settings.rate_limit)
async def stops_within_threshold(
    request: Request,
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    threshold: float = Query(
        ...,
        ge=settings.stop_threshold_min_meters,
        le=settings.stop_threshold_max_meters,
        description="Maximum distance in metres",
    ),
    service: StopDiscoveryService = Depends(get_stop_discovery_service),
):
    stops = await service.discover_stops(Coordinate(lat, lng), threshold)
    return NearbyStopsResponse(
        stops=[StopWithDistanceResponse.from_discovery(s) for s in stops],
        count=len(stops),
        threshold=threshold,
        location=CoordinateIn(lat=lat, lng=lng),
    )
