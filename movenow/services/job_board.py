"""
Job board
=========

Lists pending, unassigned, future bookings a driver is able to take.

Proximity
---------
When the driver has reported a location the store is asked only for bookings
whose pickup lies inside a bounding box around it; the exact great-circle
distance is then computed for each candidate and the list is sorted nearest
first before the requested page is sliced out.  The box is an approximation:
its corners reach past the nominal radius.

Without a location no proximity filter applies and the store pages the
results by pickup time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from movenow.config import settings
from movenow.domain.clock import utc_now
from movenow.domain.entities import Coordinate
from movenow.domain.enums import DriverAvailability, VehicleType
from movenow.domain.errors import DriverNotApproved, NoActiveVehicle
from movenow.domain.geo import bounding_box, distance_km, round_half_up
from movenow.infrastructure.models import BookingModel
from movenow.infrastructure.repositories import (
    BookingRepository,
    VehicleRepository,
)
from movenow.services.job_lifecycle import get_driver

logger = logging.getLogger(__name__)


@dataclass
class CandidateJob:
    booking: BookingModel
    distance_from_driver: Optional[float] = None  # km
    estimated_travel_time: Optional[int] = None  # minutes


@dataclass
class JobSearchResult:
    jobs: list[CandidateJob] = field(default_factory=list)
    total: int = 0
    message: Optional[str] = None
    driver_location: Optional[Coordinate] = None
    search_radius: Optional[float] = None
    limit: int = 20
    offset: int = 0

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total


def travel_minutes(distance: float) -> int:
    return int(round_half_up(distance / settings.average_speed_kmh * 60))


async def find_available_jobs(
    session: AsyncSession,
    driver_id: int,
    radius_km: Optional[float] = None,
    vehicle_types: Optional[Iterable[VehicleType]] = None,
    limit: int = 20,
    offset: int = 0,
    now: Optional[datetime] = None,
) -> JobSearchResult:
    now = now or utc_now()
    radius = radius_km if radius_km is not None else settings.default_search_radius_km

    driver = await get_driver(session, driver_id)
    if not driver.is_approved:
        raise DriverNotApproved("Driver account not approved")

    vehicles = await VehicleRepository(session).get_active_for_driver(driver.id)
    if not vehicles:
        raise NoActiveVehicle("No active vehicles linked to this driver")

    availability = DriverAvailability(driver.availability_status)
    if availability is not DriverAvailability.AVAILABLE:
        return JobSearchResult(
            message=(
                f"Driver status is {availability.value}. "
                "Set status to 'available' to see jobs."
            ),
            limit=limit,
            offset=offset,
        )

    driver_types = {VehicleType(v.vehicle_type) for v in vehicles}
    if vehicle_types:
        allowed = driver_types & {VehicleType(t) for t in vehicle_types}
    else:
        allowed = driver_types
    if not allowed:
        return JobSearchResult(
            message="None of the requested vehicle types match your active vehicles.",
            limit=limit,
            offset=offset,
        )

    repo = BookingRepository(session)

    if not driver.has_location:
        rows, total = await repo.find_open_jobs(
            allowed, now, limit=limit, offset=offset
        )
        return JobSearchResult(
            jobs=[CandidateJob(booking) for booking in rows],
            total=total,
            limit=limit,
            offset=offset,
        )

    here = Coordinate(driver.current_location_lat, driver.current_location_lng)
    rows, total = await repo.find_open_jobs(
        allowed, now, box=bounding_box(here, radius)
    )

    candidates = []
    for booking in rows:
        distance = round_half_up(
            distance_km(here, Coordinate(booking.pickup_lat, booking.pickup_lng)), 2
        )
        candidates.append(
            CandidateJob(booking, distance, travel_minutes(distance))
        )
    candidates.sort(key=lambda job: job.distance_from_driver)

    logger.debug(
        "Driver %s: %d jobs within %.1f km box", driver.id, total, radius
    )
    return JobSearchResult(
        jobs=candidates[offset:offset + limit],
        total=total,
        driver_location=here,
        search_radius=radius,
        limit=limit,
        offset=offset,
    )
