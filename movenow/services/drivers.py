"""Driver self-service: location, availability and earnings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from movenow.config import settings
from movenow.domain.clock import utc_now
from movenow.domain.enums import DriverAvailability
from movenow.domain.errors import DriverHasActiveJob, InvalidAvailabilityStatus
from movenow.domain.geo import round_half_up, validate_coordinate
from movenow.infrastructure.models import BookingModel, DriverModel
from movenow.infrastructure.repositories import BookingRepository, DriverRepository
from movenow.services.job_lifecycle import get_driver
from movenow.services.pricing import service_timezone

logger = logging.getLogger(__name__)

PLATFORM_FEE_RATE = 0.2
SELF_SERVICE_STATUSES = (DriverAvailability.AVAILABLE, DriverAvailability.OFFLINE)


async def update_location(
    session: AsyncSession,
    driver_id: int,
    latitude: float,
    longitude: float,
    address: Optional[str] = None,
) -> DriverModel:
    point = validate_coordinate(latitude, longitude)
    driver = await get_driver(session, driver_id)
    driver.current_location_lat = point.latitude
    driver.current_location_lng = point.longitude
    driver.current_address = (address or "").strip() or None
    await session.flush()
    return driver


async def update_availability(
    session: AsyncSession, driver_id: int, status: DriverAvailability | str
) -> DriverModel:
    """Drivers toggle available/offline; busy belongs to the job lifecycle."""
    try:
        status = DriverAvailability(status)
    except ValueError:
        raise InvalidAvailabilityStatus(f"Unknown availability status: {status}")
    if status not in SELF_SERVICE_STATUSES:
        raise InvalidAvailabilityStatus(
            "Drivers can only set their status to 'available' or 'offline'"
        )

    driver = await get_driver(session, driver_id)
    bookings = BookingRepository(session)
    drivers = DriverRepository(session)

    active = await bookings.find_active_for_driver(driver.id)
    if active is None:
        if await drivers.set_availability_if_idle(driver.id, status) == 1:
            await drivers.refresh(driver)
            logger.info("Driver %s is now %s", driver.id, status.value)
            return driver
        # a job was accepted after the check above
        logger.warning(
            "Driver %s accepted a job while going %s", driver.id, status.value
        )
        active = await bookings.find_active_for_driver(driver.id)

    job = f" {active.booking_number}" if active is not None else ""
    raise DriverHasActiveJob(f"Cannot change availability during active job{job}")


@dataclass
class Earnings:
    period: str
    total_jobs: int = 0
    total_revenue: int = 0
    total_earnings: int = 0
    platform_fees: int = 0
    average_per_job: int = 0
    currency: str = "KES"
    jobs: list[BookingModel] = field(default_factory=list)


async def get_earnings(
    session: AsyncSession,
    driver_id: int,
    period: str = "week",
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Earnings:
    """
    Completed-job totals for one period.

    ``week`` is the trailing seven days, ``month`` the current calendar month
    and anything else the explicit ``start_date``/``end_date`` range (or all
    time when those are missing).
    """
    now = now or utc_now()
    await get_driver(session, driver_id)

    since: Optional[datetime] = None
    until: Optional[datetime] = None
    if period == "week":
        since = now - timedelta(days=7)
    elif period == "month":
        local = now.astimezone(service_timezone())
        since = local.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        since = since.astimezone(timezone.utc)
    elif start_date is not None and end_date is not None:
        since, until = start_date, end_date

    jobs = await BookingRepository(session).completed_for_driver(
        driver_id, since=since, until=until
    )
    revenue = sum(job.total_price for job in jobs)
    earnings = revenue * (1 - PLATFORM_FEE_RATE)

    return Earnings(
        period=period,
        total_jobs=len(jobs),
        total_revenue=int(round_half_up(revenue)),
        total_earnings=int(round_half_up(earnings)),
        platform_fees=int(round_half_up(revenue * PLATFORM_FEE_RATE)),
        average_per_job=int(round_half_up(earnings / len(jobs))) if jobs else 0,
        currency=settings.currency,
        jobs=jobs,
    )
