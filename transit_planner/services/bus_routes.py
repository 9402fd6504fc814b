"""
Bus Routes & Journey Length
===========================

Journey length
--------------
A journey on one bus/direction covers the stop-order range
``[boarding, alighting)``.  Its length is the sum of each segment's
``distance_to_next``:

* present  -> added as is;
* missing  -> computed on demand for (this stop -> next stop) and added.
  When the road-routing method produced it, the value is written back to
  the segment (cache-fill).  Geometric approximations are never written
  back.  A failed write is logged; the journey still returns.

The row at ``alighting`` is fetched too, but only to supply the next-stop
coordinates of the last segment.

Complete results are memoised per ``JourneyKey`` for the lifetime of the
cache.  A total with a skipped segment is returned but not memoised, so a
later request retries the missing segment.  There is no single-flight
guard: two concurrent misses for the same key both compute.

Bus search
----------
``find_bus_routes`` returns every (bus, direction) whose stop sequence
visits the boarding stop strictly before the alighting stop.  A group
whose stop sequence cannot be read after retries is logged and skipped.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Optional

from transit_planner.domain.distance import DistanceCalculator
from transit_planner.domain.entities import BusRoute, JourneyKey, RouteSegment
from transit_planner.domain.enums import OSRM_METHOD, Direction
from transit_planner.domain.errors import DataStoreError
from transit_planner.infrastructure.repositories import RouteStopRepository
from transit_planner.infrastructure.retry import with_retry

logger = logging.getLogger(__name__)


class BusRouteService:
    def __init__(
        self,
        route_stop_repo: RouteStopRepository,
        distance_calculator: DistanceCalculator,
        cache: Optional[dict[JourneyKey, float]] = None,
    ):
        self.route_stop_repo = route_stop_repo
        self.distance_calculator = distance_calculator
        self._journey_cache: dict[JourneyKey, float] = cache if cache is not None else {}

    # ── Cache management ──────────────────────────────────────────

    @property
    def cache_size(self) -> int:
        return len(self._journey_cache)

    def invalidate_journey(
        self,
        bus_id: str,
        boarding_order: int,
        alighting_order: int,
        direction: Direction,
    ) -> bool:
        key = JourneyKey(bus_id, boarding_order, alighting_order, Direction(direction))
        return self._journey_cache.pop(key, None) is not None

    def clear_cache(self) -> None:
        self._journey_cache.clear()

    # ── Journey length ────────────────────────────────────────────

    async def calculate_journey_length(
        self,
        bus_id: str,
        boarding_order: int,
        alighting_order: int,
        direction: Direction,
    ) -> float:
        """Return the journey length in **km**."""
        direction = Direction(direction)
        key = JourneyKey(bus_id, boarding_order, alighting_order, direction)
        cached = self._journey_cache.get(key)
        if cached is not None:
            return cached

        rows = await with_retry(
            lambda: self.route_stop_repo.get_segments(
                bus_id, direction, boarding_order, alighting_order
            ),
            description="Failed to fetch route segments",
        )
        segments = [r for r in rows if r.stop_order < alighting_order]
        if not segments:
            self._journey_cache[key] = 0.0
            return 0.0

        total = 0.0
        complete = True
        for i, segment in enumerate(segments):
            if segment.distance_to_next is not None:
                total += segment.distance_to_next
                continue

            next_row = rows[i + 1] if i + 1 < len(rows) else None
            computed = await self._compute_missing_segment(segment, next_row)
            if computed is None:
                complete = False
            else:
                total += computed

        # partial totals are answered but not memoised
        if complete:
            self._journey_cache[key] = total
        return total

    async def _compute_missing_segment(
        self, segment: RouteSegment, next_row: Optional[RouteSegment]
    ) -> Optional[float]:
        logger.warning(
            "Missing distance_to_next for bus %s (%s) stop_order %d; "
            "calculating on demand",
            segment.bus_id,
            segment.direction.value,
            segment.stop_order,
        )
        if (
            next_row is None
            or segment.coordinate is None
            or next_row.coordinate is None
        ):
            logger.error(
                "Cannot compute segment bus %s (%s) stop_order %d: "
                "missing stop coordinates; skipping",
                segment.bus_id,
                segment.direction.value,
                segment.stop_order,
            )
            return None

        try:
            matrix = await self.distance_calculator.calculate_distances(
                [segment.coordinate], [next_row.coordinate]
            )
        except Exception as exc:
            logger.error(
                "Failed to calculate distance for segment %d: %s",
                segment.stop_order,
                exc,
            )
            return None

        result = matrix[0][0]
        if result.method == OSRM_METHOD:
            await self._persist_segment(segment, result.distance, result.duration)
        return result.distance

    async def _persist_segment(
        self,
        segment: RouteSegment,
        distance_km: float,
        duration_seconds: Optional[float],
    ) -> None:
        try:
            await self.route_stop_repo.update_segment_distance(
                segment.bus_id,
                segment.direction,
                segment.stop_order,
                distance_km,
                duration_seconds,
            )
            logger.info(
                "Stored distance_to_next=%.3fkm for bus %s stop_order %d",
                distance_km,
                segment.bus_id,
                segment.stop_order,
            )
        except Exception:
            logger.exception(
                "Could not store distance for bus %s stop_order %d",
                segment.bus_id,
                segment.stop_order,
            )

    # ── Bus search ────────────────────────────────────────────────

    async def find_bus_routes(
        self, boarding_stop_id: str, alighting_stop_id: str
    ) -> list[BusRoute]:
        if boarding_stop_id == alighting_stop_id:
            raise ValueError("Boarding and alighting stops must be different")

        rows = await with_retry(
            lambda: self.route_stop_repo.find_on_active_buses(
                [boarding_stop_id, alighting_stop_id]
            ),
            description="Failed to fetch bus routes",
        )

        grouped: dict[tuple[str, Direction], list[RouteSegment]] = defaultdict(list)
        for row in rows:
            grouped[(row.bus_id, row.direction)].append(row)

        routes: list[BusRoute] = []
        for (bus_id, direction), stops in grouped.items():
            boarding = next((r for r in stops if r.stop_id == boarding_stop_id), None)
            alighting = next((r for r in stops if r.stop_id == alighting_stop_id), None)
            if (
                boarding is None
                or alighting is None
                or boarding.stop_order >= alighting.stop_order
                or boarding.bus is None
                or boarding.stop is None
                or alighting.stop is None
            ):
                continue

            try:
                route_stops = await with_retry(
                    lambda: self.route_stop_repo.get_segments(
                        bus_id, direction, boarding.stop_order, alighting.stop_order
                    ),
                    description=f"Failed to fetch route stops for {bus_id}-{direction.value}",
                )
            except DataStoreError as exc:
                logger.error("%s; skipping", exc)
                continue

            routes.append(
                BusRoute(
                    bus=boarding.bus,
                    boarding_stop=boarding.stop,
                    alighting_stop=alighting.stop,
                    boarding_order=boarding.stop_order,
                    alighting_order=alighting.stop_order,
                    direction=direction,
                    route_stops=route_stops,
                )
            )
        return routes
