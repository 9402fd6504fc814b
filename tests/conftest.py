"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  PostGIS-specific features (Geometry columns)
are mocked by using plain String columns in the mirror models, and the
repositories are subclassed to point at those mirrors.
"""

from typing import AsyncGenerator

import pytest_asyncio
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    event,
    func,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.pool import StaticPool

from transit_planner.domain.enums import BusStatus, CoachType, Direction
from transit_planner.infrastructure.models import value_enum
from transit_planner.infrastructure.repositories import (
    RouteStopRepository,
    StopRepository,
)


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class SQLiteBase(DeclarativeBase):
    pass


# Mirror the production models but without PostGIS Geometry columns
# (SQLite doesn't support them).

class SQLiteStopModel(SQLiteBase):
    __tablename__ = "stops"
    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False)
    location = Column(String, nullable=True)  # stub for Geometry
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accessible = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class SQLiteBusModel(SQLiteBase):
    __tablename__ = "buses"
    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False)
    status = Column(value_enum(BusStatus, "busstatus"), default=BusStatus.ACTIVE)
    is_ac = Column(Boolean, default=False, nullable=False)
    coach_type = Column(value_enum(CoachType, "coachtype"), default=CoachType.STANDARD)
    created_at = Column(DateTime, server_default=func.now())


class SQLiteRouteStopModel(SQLiteBase):
    __tablename__ = "route_stops"
    id = Column(String(36), primary_key=True)
    bus_id = Column(String(36), ForeignKey("buses.id"), nullable=False)
    stop_id = Column(String(36), ForeignKey("stops.id"), nullable=False)
    stop_order = Column(Integer, nullable=False)
    direction = Column(value_enum(Direction, "direction"), nullable=False)
    distance_to_next = Column(Float, nullable=True)
    duration_to_next = Column(Float, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    bus = relationship(SQLiteBusModel, lazy="joined")
    stop = relationship(SQLiteStopModel, lazy="joined")

    __table_args__ = (UniqueConstraint("bus_id", "direction", "stop_order"),)


class SQLiteStopRepository(StopRepository):
    model = SQLiteStopModel


class SQLiteRouteStopRepository(RouteStopRepository):
    model = SQLiteRouteStopModel
    bus_model = SQLiteBusModel


# ── Sample network ────────────────────────────────────────────────────
#
# Bus "bus-1" (active), outbound:  s1 -> s2 -> s3 -> s4
#   distances: 1.5, 2.3, NULL (s3 -> s4), last stop NULL
# Bus "bus-2" (active), outbound:  s4 -> s3 -> s2   (reverse order)
# Bus "bus-3" (inactive), outbound: s1 -> s2

STOPS = [
    ("s1", "Airport", 23.8513, 90.4081, True),
    ("s2", "Khilkhet", 23.8297, 90.4197, False),
    ("s3", "Kuril", 23.8196, 90.4217, True),
    ("s4", "Notun Bazar", 23.7980, 90.4240, False),
]


async def seed_network(session: AsyncSession) -> None:
    for sid, name, lat, lng, accessible in STOPS:
        session.add(
            SQLiteStopModel(
                id=sid, name=name, latitude=lat, longitude=lng, accessible=accessible
            )
        )
    session.add_all(
        [
            SQLiteBusModel(id="bus-1", name="Raida", status=BusStatus.ACTIVE),
            SQLiteBusModel(
                id="bus-2", name="Turag", status=BusStatus.ACTIVE,
                is_ac=True, coach_type=CoachType.EXPRESS,
            ),
            SQLiteBusModel(id="bus-3", name="Anabil", status=BusStatus.INACTIVE),
        ]
    )
    await session.flush()

    rows = [
        ("rs-1", "bus-1", "s1", 1, 1.5, 300.0),
        ("rs-2", "bus-1", "s2", 2, 2.3, 420.0),
        ("rs-3", "bus-1", "s3", 3, None, None),
        ("rs-4", "bus-1", "s4", 4, None, None),
        ("rs-5", "bus-2", "s4", 1, 2.0, 360.0),
        ("rs-6", "bus-2", "s3", 2, 1.4, 250.0),
        ("rs-7", "bus-2", "s2", 3, None, None),
        ("rs-8", "bus-3", "s1", 1, 3.0, 500.0),
        ("rs-9", "bus-3", "s2", 2, None, None),
    ]
    for rid, bus_id, stop_id, order, dist, dur in rows:
        session.add(
            SQLiteRouteStopModel(
                id=rid,
                bus_id=bus_id,
                stop_id=stop_id,
                stop_order=order,
                direction=Direction.OUTBOUND,
                distance_to_next=dist,
                duration_to_next=dur,
            )
        )
    await session.commit()


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh in-memory database per test; tables created then dropped."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # let SQLAlchemy emit BEGIN itself so SAVEPOINT nests in a real transaction
    @event.listens_for(engine.sync_engine, "connect")
    def _no_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(SQLiteBase.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(SQLiteBase.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session over the seeded sample network."""
    async with session_factory() as session:
        await seed_network(session)
        yield session
