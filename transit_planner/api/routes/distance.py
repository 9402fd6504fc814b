"""
Distance endpoint
=================

POST /api/v1/distance -- origin x destination matrix (km / s / method)
"""

from fastapi import APIRouter, Depends, Request

from transit_planner.api.dependencies import get_distance_calculator
from transit_planner.api.middleware import limiter
from transit_planner.api.schemas import (
    DistanceCell,
    DistanceMatrixRequest,
    DistanceMatrixResponse,
)
from transit_planner.config import settings
from transit_planner.domain.distance import DistanceCalculator
from transit_planner.domain.entities import Coordinate

router = APIRouter(prefix="/distance", tags=["distance"])


@router.post(
    "",
    response_model=DistanceMatrixResponse,
    summary="Calculate a distance matrix",
    responses={502: {"description": "Routing failed and no fallback succeeded."}},
)
@limiter.limit(settings.rate_limit)
async def distance_matrix(
    request: Request,
    body: DistanceMatrixRequest,
    calculator: DistanceCalculator = Depends(get_distance_calculator),
):
    matrix = await calculator.calculate_distances(
        [Coordinate(c.lat, c.lng) for c in body.origins],
        [Coordinate(c.lat, c.lng) for c in body.destinations],
        use_fallback_on_error=body.use_fallback,
    )
    return DistanceMatrixResponse(
        rows=[[DistanceCell.from_result(cell) for cell in row] for row in matrix]
    )
