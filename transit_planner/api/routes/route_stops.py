"""
Route-stop endpoints
====================

GET /api/v1/route-stops/journey-length -- km between two stop orders
"""

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from transit_planner.api.dependencies import get_bus_route_service
from transit_planner.api.middleware import limiter
from transit_planner.api.schemas import JourneyLengthResponse
from transit_planner.config import settings
from transit_planner.domain.enums import Direction
from transit_planner.services.bus_routes import BusRouteService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/route-stops", tags=["route-stops"])


@router.get(
    "/journey-length",
    response_model=JourneyLengthResponse,
    summary="Journey length between two stops on one bus route",
)
@limiter.limit(settings.rate_limit)
async def journey_length(
    request: Request,
    bus_id: str = Query(..., min_length=1),
    boarding_order: int = Query(..., ge=0),
    alighting_order: int = Query(..., ge=0),
    direction: Direction = Query(...),
    service: BusRouteService = Depends(get_bus_route_service),
):
    if boarding_order >= alighting_order:
        raise HTTPException(
            status_code=400,
            detail="Boarding stop must come before alighting stop in the route",
        )

    started = time.perf_counter()
    km = await service.calculate_journey_length(
        bus_id, boarding_order, alighting_order, direction
    )
    logger.info(
        "Journey length bus=%s %d->%d (%s): %.3fkm in %.1fms",
        bus_id,
        boarding_order,
        alighting_order,
        direction.value,
        km,
        (time.perf_counter() - started) * 1000,
    )
    return JourneyLengthResponse(
        journey_length_km=km,
        journey_length_meters=km * 1000,
        bus_id=bus_id,
        boarding_order=boarding_order,
        alighting_order=alighting_order,
        direction=direction.value,
    )
