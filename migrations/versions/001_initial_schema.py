"""Initial schema: PostGIS extension, stops, buses and route_stops.

Revision ID: 001
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa
from geoalchemy2 import Geometry


revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Enable PostGIS extension
    op.execute("CREATE EXTENSION IF NOT EXISTS postgis")

    # ── stops ─────────────────────────────────────────────────────────
    op.create_table(
        "stops",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column(
            "location",
            Geometry("POINT", srid=4326, spatial_index=False),
            nullable=True,
        ),
        sa.Column("latitude", sa.Float, nullable=False),
        sa.Column("longitude", sa.Float, nullable=False),
        sa.Column("accessible", sa.Boolean, default=False, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "latitude BETWEEN -90 AND 90", name="ck_stops_latitude"
        ),
        sa.CheckConstraint(
            "longitude BETWEEN -180 AND 180", name="ck_stops_longitude"
        ),
    )
    op.create_index(
        "idx_stops_location", "stops", ["location"], postgresql_using="gist"
    )

    # ── buses ─────────────────────────────────────────────────────────
    op.create_table(
        "buses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", name="busstatus"),
            default="active",
        ),
        sa.Column("is_ac", sa.Boolean, default=False, nullable=False),
        sa.Column(
            "coach_type",
            sa.Enum("standard", "express", "luxury", name="coachtype"),
            default="standard",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_buses_status", "buses", ["status"])

    # ── route_stops ───────────────────────────────────────────────────
    op.create_table(
        "route_stops",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "bus_id", sa.String(36), sa.ForeignKey("buses.id"), nullable=False
        ),
        sa.Column(
            "stop_id", sa.String(36), sa.ForeignKey("stops.id"), nullable=False
        ),
        sa.Column("stop_order", sa.Integer, nullable=False),
        sa.Column(
            "direction",
            sa.Enum("outbound", "inbound", name="direction"),
            nullable=False,
        ),
        sa.Column("distance_to_next", sa.Float, nullable=True),
        sa.Column("duration_to_next", sa.Float, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint(
            "bus_id", "direction", "stop_order", name="uq_route_stops_position"
        ),
    )
    op.create_index("idx_route_stops_stop", "route_stops", ["stop_id"])
    op.create_index(
        "idx_route_stops_bus_dir",
        "route_stops",
        ["bus_id", "direction", "stop_order"],
    )


def downgrade() -> None:
    op.drop_table("route_stops")
    op.drop_table("buses")
    op.drop_table("stops")
    op.execute("DROP TYPE IF EXISTS direction")
    op.execute("DROP TYPE IF EXISTS coachtype")
    op.execute("DROP TYPE IF EXISTS busstatus")
