"""
Geographic rules: distance, coordinate validation and trip constraints.

Assumption
----------
We use great-circle (Haversine) distance instead of a real routing engine
(OSRM / Google Maps) to keep the project self-contained and runnable
locally without external API keys.  Durations are estimated from a fixed
average city speed.

Complexity: O(1) per call.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Optional

from .entities import BoundingBox, Coordinate, ServiceArea
from .errors import (
    InvalidAddress,
    InvalidCoordinate,
    InvalidPickupTime,
    PickupTimeTooFarOut,
    PickupTimeTooSoon,
    TripTooLong,
    TripTooShort,
)

EARTH_RADIUS_KM = 6_371.0
KM_PER_DEGREE = 111.0
MAX_ADDRESS_LENGTH = 500


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a till does: halves go up, not to the nearest even."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def distance_km(a: Coordinate, b: Coordinate) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def validate_coordinate(lat: Any, lng: Any) -> Coordinate:
    """Coerce *lat*/*lng* to floats and range-check them."""
    try:
        latitude = float(lat)
        longitude = float(lng)
    except (TypeError, ValueError):
        raise InvalidCoordinate("Invalid coordinates: must be valid numbers")

    if math.isnan(latitude) or math.isnan(longitude):
        raise InvalidCoordinate("Invalid coordinates: must be valid numbers")
    if not -90 <= latitude <= 90:
        raise InvalidCoordinate("Invalid latitude: must be between -90 and 90")
    if not -180 <= longitude <= 180:
        raise InvalidCoordinate("Invalid longitude: must be between -180 and 180")

    return Coordinate(latitude, longitude)


def is_within_service_area(point: Coordinate, area: ServiceArea) -> bool:
    return area.contains(point)


def validate_trip_distance(
    pickup: Coordinate,
    dropoff: Coordinate,
    min_km: float = 0.5,
    max_km: float = 100.0,
) -> float:
    """Return the trip distance, or raise if it is outside [min_km, max_km]."""
    distance = distance_km(pickup, dropoff)
    if distance < min_km:
        raise TripTooShort(f"Trip too short: minimum distance is {min_km} km")
    if distance > max_km:
        raise TripTooLong(f"Trip too long: maximum distance is {max_km:g} km")
    return distance


def estimated_duration_minutes(
    distance: float,
    average_speed_kmh: float = 25.0,
    minimum_minutes: int = 30,
) -> int:
    minutes = int(round_half_up(distance / average_speed_kmh * 60))
    return max(minutes, minimum_minutes)


def bounding_box(center: Coordinate, radius_km: float) -> BoundingBox:
    """
    Rectangle approximating a circle of *radius_km* around *center*.

    Points in the corners of the box lie outside the true radius; callers
    accept that in exchange for an index-friendly BETWEEN filter.
    """
    lat_delta = radius_km / KM_PER_DEGREE
    lng_delta = radius_km / (
        KM_PER_DEGREE * math.cos(center.latitude * math.pi / 180)
    )
    return BoundingBox(
        min_lat=center.latitude - lat_delta,
        max_lat=center.latitude + lat_delta,
        min_lng=center.longitude - lng_delta,
        max_lng=center.longitude + lng_delta,
    )


def format_address(address: Any) -> str:
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddress("Address is required and must be a string")
    return address.strip()[:MAX_ADDRESS_LENGTH]


def combine_pickup_datetime(
    pickup_date: str, pickup_time: str, tz: tzinfo
) -> datetime:
    """Join an ISO date and an ``HH:MM`` time into an aware local instant."""
    try:
        day = date.fromisoformat(pickup_date)
        hour, minute = (int(part) for part in pickup_time.split(":"))
        clock = time(hour, minute)
    except (AttributeError, TypeError, ValueError):
        raise InvalidPickupTime(
            "Pickup date must be YYYY-MM-DD and time must be HH:MM"
        )
    return datetime.combine(day, clock, tzinfo=tz)


def validate_pickup_time(
    pickup_date: str,
    pickup_time: str,
    tz: tzinfo,
    now: Optional[datetime] = None,
    lead_minutes: int = 30,
    max_advance_days: int = 7,
) -> datetime:
    """Return the pickup instant if it falls inside the bookable window."""
    pickup = combine_pickup_datetime(pickup_date, pickup_time, tz)
    now = now or datetime.now(timezone.utc)

    if pickup < now + timedelta(minutes=lead_minutes):
        raise PickupTimeTooSoon(
            f"Pickup time must be at least {lead_minutes} minutes from now"
        )
    if pickup > now + timedelta(days=max_advance_days):
        raise PickupTimeTooFarOut(
            f"Pickup time cannot be more than {max_advance_days} days in advance"
        )
    return pickup
