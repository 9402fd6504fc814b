"""
Bus endpoints
=============

GET /api/v1/buses/between-stops -- buses visiting boarding before alighting
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from transit_planner.api.dependencies import get_bus_route_service
from transit_planner.api.middleware import limiter
from transit_planner.api.schemas import BusRouteResponse, BusRoutesResponse
from transit_planner.config import settings
from transit_planner.services.bus_routes import BusRouteService

router = APIRouter(prefix="/buses", tags=["buses"])


@router.get(
    "/between-stops",
    response_model=BusRoutesResponse,
    summary="Find buses travelling between two stops in order",
)
@limiter.limit(settings.rate_limit)
async def buses_between_stops(
    request: Request,
    boarding: str = Query(..., min_length=1),
    alighting: str = Query(..., min_length=1),
    service: BusRouteService = Depends(get_bus_route_service),
):
    try:
        routes = await service.find_bus_routes(boarding, alighting)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return BusRoutesResponse(
        routes=[BusRouteResponse.from_entity(r) for r in routes],
        count=len(routes),
        boarding_stop_id=boarding,
        alighting_stop_id=alighting,
    )
