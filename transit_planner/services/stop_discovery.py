"""
Stop Discovery
==============

Ranks every known stop by distance from a reference point and keeps those
within a threshold.

1. Fetch all stops (retried with exponential backoff).
2. One 1 x N calculator call: origin = the location, destinations = stops.
3. Convert km -> m, keep the method tag, filter ``distance <= threshold``.
4. Stable ascending sort (ties keep the original stop order).

Complexity: O(N log N) after the single matrix call.
"""

from __future__ import annotations

import logging

from transit_planner.domain.distance import DistanceCalculator
from transit_planner.domain.entities import Coordinate, Stop, StopWithDistance
from transit_planner.infrastructure.repositories import StopRepository
from transit_planner.infrastructure.retry import with_retry

logger = logging.getLogger(__name__)


class StopDiscoveryService:
    def __init__(
        self,
        distance_calculator: DistanceCalculator,
        stop_repo: StopRepository,
    ):
        self.distance_calculator = distance_calculator
        self.stop_repo = stop_repo

    async def fetch_all_stops(self) -> list[Stop]:
        return await with_retry(
            self.stop_repo.list_all, description="Failed to fetch stops"
        )

    async def discover_stops(
        self, location: Coordinate, threshold_meters: float
    ) -> list[StopWithDistance]:
        stops = await self.fetch_all_stops()
        if not stops:
            return []

        matrix = await self.distance_calculator.calculate_distances(
            [location], [s.coordinate for s in stops]
        )
        row = matrix[0]

        nearby = [
            StopWithDistance(
                stop=stop,
                distance=cell.distance * 1000,
                distance_method=cell.method,
            )
            for stop, cell in zip(stops, row)
            if cell.distance * 1000 <= threshold_meters
        ]
        # list.sort is stable: equal distances keep the stop order
        nearby.sort(key=lambda s: s.distance)

        logger.info(
            "Discovered %d/%d stops within %.0fm of (%.5f,%.5f)",
            len(nearby),
            len(stops),
            threshold_meters,
            location.latitude,
            location.longitude,
        )
        return nearby
