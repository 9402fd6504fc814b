"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 10 stops along the Dhaka airport road / Gulshan / Badda corridor
  - 3 buses (one inactive)
  - outbound and inbound stop sequences for each bus; a few segments are
    left without ``distance_to_next`` so the on-demand calculation and the
    backfill worker have something to do
"""

import asyncio

from sqlalchemy import text
from geoalchemy2.functions import ST_MakePoint, ST_SetSRID

from transit_planner.domain.distance import haversine_km
from transit_planner.domain.enums import BusStatus, CoachType, Direction
from transit_planner.infrastructure.database import async_session_factory, engine
from transit_planner.infrastructure.models import (
    BusModel,
    RouteStopModel,
    StopModel,
)


STOPS = [
    {"name": "Airport", "lat": 23.8513, "lng": 90.4081, "accessible": True},
    {"name": "Khilkhet", "lat": 23.8297, "lng": 90.4197, "accessible": False},
    {"name": "Kuril Bishwa Road", "lat": 23.8196, "lng": 90.4217, "accessible": True},
    {"name": "Notun Bazar", "lat": 23.7980, "lng": 90.4240, "accessible": False},
    {"name": "Uttar Badda", "lat": 23.7869, "lng": 90.4260, "accessible": False},
    {"name": "Madhya Badda", "lat": 23.7801, "lng": 90.4262, "accessible": True},
    {"name": "Rampura Bridge", "lat": 23.7660, "lng": 90.4220, "accessible": False},
    {"name": "Gulshan 1", "lat": 23.7806, "lng": 90.4163, "accessible": True},
    {"name": "Mohakhali", "lat": 23.7778, "lng": 90.4051, "accessible": True},
    {"name": "Banani", "lat": 23.7937, "lng": 90.4066, "accessible": False},
]

BUSES = [
    {
        "name": "Raida",
        "status": BusStatus.ACTIVE,
        "is_ac": False,
        "coach_type": CoachType.STANDARD,
        "route": ["Airport", "Khilkhet", "Kuril Bishwa Road", "Notun Bazar",
                  "Uttar Badda", "Madhya Badda", "Rampura Bridge"],
    },
    {
        "name": "Turag",
        "status": BusStatus.ACTIVE,
        "is_ac": True,
        "coach_type": CoachType.EXPRESS,
        "route": ["Airport", "Banani", "Mohakhali", "Gulshan 1",
                  "Madhya Badda", "Rampura Bridge"],
    },
    {
        "name": "Anabil",
        "status": BusStatus.INACTIVE,
        "is_ac": False,
        "coach_type": CoachType.STANDARD,
        "route": ["Kuril Bishwa Road", "Notun Bazar", "Uttar Badda", "Madhya Badda"],
    },
]

# (bus name, direction, stop_order) left NULL on purpose
MISSING_SEGMENTS = {
    ("Raida", Direction.OUTBOUND, 3),
    ("Turag", Direction.INBOUND, 2),
}

# Rough road factor over the straight line for seeded distances
ROAD_FACTOR = 1.3
AVERAGE_SPEED_KMH = 20.0


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM stops"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Stops ─────────────────────────────────────────────────────
        stop_models: dict[str, StopModel] = {}
        for s in STOPS:
            m = StopModel(
                name=s["name"],
                latitude=s["lat"],
                longitude=s["lng"],
                location=ST_SetSRID(ST_MakePoint(s["lng"], s["lat"]), 4326),
                accessible=s["accessible"],
            )
            session.add(m)
            stop_models[s["name"]] = m
        await session.flush()
        print(f"  Created {len(stop_models)} stops")

        # ── Buses & route stops ───────────────────────────────────────
        segments = 0
        for b in BUSES:
            bus = BusModel(
                name=b["name"],
                status=b["status"],
                is_ac=b["is_ac"],
                coach_type=b["coach_type"],
            )
            session.add(bus)
            await session.flush()

            for direction, names in (
                (Direction.OUTBOUND, b["route"]),
                (Direction.INBOUND, list(reversed(b["route"]))),
            ):
                for order, name in enumerate(names, start=1):
                    stop = stop_models[name]
                    distance = duration = None
                    if order < len(names) and (b["name"], direction, order) not in MISSING_SEGMENTS:
                        nxt = stop_models[names[order]]
                        distance = round(
                            haversine_km(
                                stop.latitude, stop.longitude,
                                nxt.latitude, nxt.longitude,
                            ) * ROAD_FACTOR,
                            3,
                        )
                        duration = round(distance / AVERAGE_SPEED_KMH * 3600)
                    session.add(
                        RouteStopModel(
                            bus_id=bus.id,
                            stop_id=stop.id,
                            stop_order=order,
                            direction=direction,
                            distance_to_next=distance,
                            duration_to_next=duration,
                        )
                    )
                    segments += 1
        await session.flush()
        print(f"  Created {len(BUSES)} buses with {segments} route stops")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
