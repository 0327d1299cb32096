"""Domain enumerations and state-transition rules."""

import enum


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DRIVER_EN_ROUTE = "driver_en_route"
    ARRIVED_PICKUP = "arrived_pickup"
    LOADING = "loading"
    IN_TRANSIT = "in_transit"
    ARRIVED_DESTINATION = "arrived_destination"
    UNLOADING = "unloading"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: the linear transport chain, with CANCELLED reachable from
# every non-terminal status.
BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.ACCEPTED, BookingStatus.CANCELLED},
    BookingStatus.ACCEPTED: {BookingStatus.DRIVER_EN_ROUTE, BookingStatus.CANCELLED},
    BookingStatus.DRIVER_EN_ROUTE: {BookingStatus.ARRIVED_PICKUP, BookingStatus.CANCELLED},
    BookingStatus.ARRIVED_PICKUP: {BookingStatus.LOADING, BookingStatus.CANCELLED},
    BookingStatus.LOADING: {BookingStatus.IN_TRANSIT, BookingStatus.CANCELLED},
    BookingStatus.IN_TRANSIT: {BookingStatus.ARRIVED_DESTINATION, BookingStatus.CANCELLED},
    BookingStatus.ARRIVED_DESTINATION: {BookingStatus.UNLOADING, BookingStatus.CANCELLED},
    BookingStatus.UNLOADING: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

# Bookings that hold a driver: assigned and not yet terminal.
ACTIVE_JOB_STATUSES = frozenset(
    s for s in BookingStatus
    if s not in TERMINAL_STATUSES and s is not BookingStatus.PENDING
)


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class DriverAvailability(str, enum.Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"


class VehicleType(str, enum.Enum):
    PICKUP = "pickup"
    SMALL_TRUCK = "small_truck"
    MEDIUM_TRUCK = "medium_truck"
    LARGE_TRUCK = "large_truck"
    VAN = "van"


class LoadType(str, enum.Enum):
    FURNITURE = "furniture"
    APPLIANCES = "appliances"
    BOXES = "boxes"
    ELECTRONICS = "electronics"
    FRAGILE = "fragile"
    OTHER = "other"


class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    DRIVER = "driver"
    ADMIN = "admin"
