"""
SQLAlchemy ORM models.

Tables
------
* ``users``     -- customers, drivers and admins (auth lives elsewhere)
* ``drivers``   -- driver profile, 1:1 with a user
* ``vehicles``  -- vehicles owned by a driver
* ``bookings``  -- moving jobs with their frozen pricing snapshot

Indexes
-------
* **B-Tree** on ``bookings.status``, ``driver_id``, ``customer_id`` and the
  pickup lat/lng pair used by the job board's bounding-box filter.

Timestamps use Python-side defaults so the values are known after a flush
without a round-trip.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)

from .database import Base
from movenow.domain.clock import utc_now
from movenow.domain.enums import (
    BookingStatus,
    DriverAvailability,
    LoadType,
    PaymentStatus,
    UserRole,
    VehicleType,
)


def _enum(enum_cls, name: str) -> Enum:
    """Persist enum *values* (``"in_transit"``), not member names."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
    )


_vehicle_type = _enum(VehicleType, "vehicle_type")


class UserModel(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(60), nullable=False)
    last_name = Column(String(60), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(20), nullable=True)
    role = Column(_enum(UserRole, "user_role"), default=UserRole.CUSTOMER, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    license_number = Column(String(50), unique=True, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    approval_date = Column(DateTime(timezone=True), nullable=True)
    current_location_lat = Column(Float, nullable=True)
    current_location_lng = Column(Float, nullable=True)
    current_address = Column(Text, nullable=True)
    availability_status = Column(
        _enum(DriverAvailability, "driver_availability"),
        default=DriverAvailability.OFFLINE,
        nullable=False,
    )
    rating = Column(Float, default=0.0, nullable=False)
    total_ratings = Column(Integer, default=0, nullable=False)
    total_trips = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("idx_drivers_availability", "availability_status"),
    )

    @property
    def has_location(self) -> bool:
        return (
            self.current_location_lat is not None
            and self.current_location_lng is not None
        )


class VehicleModel(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False)
    vehicle_type = Column(_vehicle_type, nullable=False)
    make = Column(String(50), nullable=False)
    model = Column(String(50), nullable=False)
    license_plate = Column(String(20), unique=True, nullable=False)
    capacity_weight = Column(Float, nullable=True)  # kg
    capacity_volume = Column(Float, nullable=True)  # m3
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index("idx_vehicles_driver", "driver_id"),
    )


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_number = Column(String(20), unique=True, nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True)

    pickup_address = Column(Text, nullable=False)
    pickup_lat = Column(Float, nullable=False)
    pickup_lng = Column(Float, nullable=False)
    pickup_date = Column(DateTime(timezone=True), nullable=False)
    pickup_time = Column(String(5), nullable=False)

    dropoff_address = Column(Text, nullable=False)
    dropoff_lat = Column(Float, nullable=False)
    dropoff_lng = Column(Float, nullable=False)

    load_type = Column(_enum(LoadType, "load_type"), nullable=False)
    load_description = Column(Text, nullable=True)
    estimated_weight = Column(Float, nullable=True)  # kg
    vehicle_type_required = Column(_vehicle_type, nullable=False)

    # Pricing snapshot, frozen at creation
    estimated_distance = Column(Float, nullable=False)
    estimated_duration = Column(Integer, nullable=False)
    base_price = Column(Integer, nullable=False)
    distance_price = Column(Integer, nullable=False)
    time_price = Column(Integer, nullable=False)
    additional_charges = Column(Integer, default=0, nullable=False)
    load_multiplier = Column(Float, default=1.0, nullable=False)
    time_multiplier = Column(Float, default=1.0, nullable=False)
    total_price = Column(Integer, nullable=False)
    currency = Column(String(3), default="KES", nullable=False)

    status = Column(
        _enum(BookingStatus, "booking_status"),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    payment_status = Column(
        _enum(PaymentStatus, "payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
    )

    requires_helpers = Column(Boolean, default=False, nullable=False)
    helpers_count = Column(Integer, default=0, nullable=False)
    special_instructions = Column(Text, nullable=True)

    accepted_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_driver", "driver_id"),
        Index("idx_bookings_customer", "customer_id"),
        Index("idx_bookings_pickup", "pickup_lat", "pickup_lng"),
        Index("idx_bookings_pickup_date", "pickup_date"),
    )
