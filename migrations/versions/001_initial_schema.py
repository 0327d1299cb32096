"""Initial schema: users, drivers, vehicles and bookings.

Revision ID: 001
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

VEHICLE_TYPES = ("pickup", "small_truck", "medium_truck", "large_truck", "van")
BOOKING_STATUSES = (
    "pending",
    "accepted",
    "driver_en_route",
    "arrived_pickup",
    "loading",
    "in_transit",
    "arrived_destination",
    "unloading",
    "completed",
    "cancelled",
)


def upgrade() -> None:
    vehicle_type = sa.Enum(*VEHICLE_TYPES, name="vehicle_type")

    # ── users ─────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(60), nullable=False),
        sa.Column("last_name", sa.String(60), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column(
            "role",
            sa.Enum("customer", "driver", "admin", name="user_role"),
            nullable=False,
            server_default="customer",
        ),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer,
            sa.ForeignKey("users.id"),
            unique=True,
            nullable=False,
        ),
        sa.Column("license_number", sa.String(50), unique=True, nullable=False),
        sa.Column("is_approved", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("approval_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_location_lat", sa.Float, nullable=True),
        sa.Column("current_location_lng", sa.Float, nullable=True),
        sa.Column("current_address", sa.Text, nullable=True),
        sa.Column(
            "availability_status",
            sa.Enum("available", "busy", "offline", name="driver_availability"),
            nullable=False,
            server_default="offline",
        ),
        sa.Column("rating", sa.Float, nullable=False, server_default="0"),
        sa.Column("total_ratings", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_trips", sa.Integer, nullable=False, server_default="0"),
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
    op.create_index("idx_drivers_availability", "drivers", ["availability_status"])

    # ── vehicles ──────────────────────────────────────────────────────
    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=False
        ),
        sa.Column("vehicle_type", vehicle_type, nullable=False),
        sa.Column("make", sa.String(50), nullable=False),
        sa.Column("model", sa.String(50), nullable=False),
        sa.Column("license_plate", sa.String(20), unique=True, nullable=False),
        sa.Column("capacity_weight", sa.Float, nullable=True),
        sa.Column("capacity_volume", sa.Float, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("idx_vehicles_driver", "vehicles", ["driver_id"])

    # ── bookings ──────────────────────────────────────────────────────
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("booking_number", sa.String(20), unique=True, nullable=False),
        sa.Column(
            "customer_id", sa.Integer, sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True
        ),
        sa.Column(
            "vehicle_id", sa.Integer, sa.ForeignKey("vehicles.id"), nullable=True
        ),
        sa.Column("pickup_address", sa.Text, nullable=False),
        sa.Column("pickup_lat", sa.Float, nullable=False),
        sa.Column("pickup_lng", sa.Float, nullable=False),
        sa.Column("pickup_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("pickup_time", sa.String(5), nullable=False),
        sa.Column("dropoff_address", sa.Text, nullable=False),
        sa.Column("dropoff_lat", sa.Float, nullable=False),
        sa.Column("dropoff_lng", sa.Float, nullable=False),
        sa.Column(
            "load_type",
            sa.Enum(
                "furniture",
                "appliances",
                "boxes",
                "electronics",
                "fragile",
                "other",
                name="load_type",
            ),
            nullable=False,
        ),
        sa.Column("load_description", sa.Text, nullable=True),
        sa.Column("estimated_weight", sa.Float, nullable=True),
        sa.Column(
            "vehicle_type_required",
            # created with the vehicles table
            postgresql.ENUM(*VEHICLE_TYPES, name="vehicle_type", create_type=False),
            nullable=False,
        ),
        sa.Column("estimated_distance", sa.Float, nullable=False),
        sa.Column("estimated_duration", sa.Integer, nullable=False),
        sa.Column("base_price", sa.Integer, nullable=False),
        sa.Column("distance_price", sa.Integer, nullable=False),
        sa.Column("time_price", sa.Integer, nullable=False),
        sa.Column("additional_charges", sa.Integer, nullable=False, server_default="0"),
        sa.Column("load_multiplier", sa.Float, nullable=False, server_default="1"),
        sa.Column("time_multiplier", sa.Float, nullable=False, server_default="1"),
        sa.Column("total_price", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="KES"),
        sa.Column(
            "status",
            sa.Enum(*BOOKING_STATUSES, name="booking_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column(
            "payment_status",
            sa.Enum("pending", "paid", "failed", "refunded", name="payment_status"),
            nullable=False,
            server_default="pending",
        ),
        sa.Column("requires_helpers", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("helpers_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("special_instructions", sa.Text, nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancellation_reason", sa.Text, nullable=True),
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
    op.create_index("idx_bookings_status", "bookings", ["status"])
    op.create_index("idx_bookings_driver", "bookings", ["driver_id"])
    op.create_index("idx_bookings_customer", "bookings", ["customer_id"])
    op.create_index("idx_bookings_pickup", "bookings", ["pickup_lat", "pickup_lng"])
    op.create_index("idx_bookings_pickup_date", "bookings", ["pickup_date"])


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("vehicles")
    op.drop_table("drivers")
    op.drop_table("users")
    for enum_name in (
        "payment_status",
        "booking_status",
        "load_type",
        "vehicle_type",
        "driver_availability",
        "user_role",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
