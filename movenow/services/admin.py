"""
Admin operations
================

Status override
---------------
Admins may put a booking in any status, skipping the transition table:

* completed / cancelled  -- same side effects as a driver reaching them
  (timestamp, driver released, trip counted on completion).  Overriding to
  the status the booking already has changes nothing.
* pending               -- the job goes back on the board: driver and
  vehicle are cleared and the driver is released.
* any active status     -- only for a booking that has a driver assigned.
  Reviving a finished booking marks its driver busy again, unless the
  driver is already on another job.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from movenow.domain.clock import utc_now
from movenow.domain.enums import (
    ACTIVE_JOB_STATUSES,
    BookingStatus,
    DriverAvailability,
)
from movenow.domain.errors import (
    BookingNotFound,
    DriverHasActiveJob,
    InvalidTransition,
)
from movenow.infrastructure.models import BookingModel, DriverModel
from movenow.infrastructure.repositories import BookingRepository, DriverRepository
from movenow.services.job_lifecycle import (
    CANCELLED_BY_ADMIN,
    apply_status_change,
    get_driver,
)
from movenow.services.pagination import Page

logger = logging.getLogger(__name__)


async def set_driver_approval(
    session: AsyncSession,
    driver_id: int,
    approved: bool,
    admin_id: Optional[int] = None,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> DriverModel:
    driver = await get_driver(session, driver_id)
    driver.is_approved = approved
    driver.approval_date = (now or utc_now()) if approved else None
    await session.flush()
    logger.info(
        "Driver %s %s by admin %s%s",
        driver.id,
        "approved" if approved else "rejected",
        admin_id,
        f": {reason}" if reason else "",
    )
    return driver


async def override_booking_status(
    session: AsyncSession,
    booking_id: int,
    new_status: BookingStatus,
    admin_id: Optional[int] = None,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BookingModel:
    new_status = BookingStatus(new_status)
    bookings = BookingRepository(session)
    drivers = DriverRepository(session)

    booking = await bookings.get_by_id(booking_id)
    if booking is None:
        raise BookingNotFound()

    current = BookingStatus(booking.status)
    if current is new_status:
        return booking

    driver_id = booking.driver_id
    held_driver = current in ACTIVE_JOB_STATUSES
    extra: dict[str, Any] = {}

    if new_status is BookingStatus.PENDING:
        extra = {
            "driver_id": None,
            "vehicle_id": None,
            "accepted_at": None,
            "started_at": None,
        }
    elif new_status in ACTIVE_JOB_STATUSES:
        if driver_id is None:
            raise InvalidTransition(
                f"Cannot set status {new_status.value} on a booking without a driver"
            )
        if not held_driver:
            other = await bookings.find_active_for_driver(
                driver_id, exclude_id=booking.id
            )
            if other is not None:
                raise DriverHasActiveJob(
                    f"Driver {driver_id} is already on booking {other.booking_number}"
                )

    booking = await apply_status_change(
        session,
        booking,
        new_status,
        now=now,
        cancellation_reason=reason,
        default_reason=CANCELLED_BY_ADMIN,
        extra_values=extra,
    )

    if driver_id is not None:
        if new_status is BookingStatus.PENDING and held_driver:
            await drivers.release(driver_id)
        elif new_status in ACTIVE_JOB_STATUSES and not held_driver:
            await drivers.set_availability(driver_id, DriverAvailability.BUSY)

    logger.info(
        "Admin %s overrode booking %s: %s -> %s%s",
        admin_id,
        booking.booking_number,
        current.value,
        new_status.value,
        f" ({reason})" if reason else "",
    )
    return booking


async def list_bookings(
    session: AsyncSession,
    status: Optional[BookingStatus] = None,
    customer_id: Optional[int] = None,
    driver_id: Optional[int] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    sort_by: str = "created_at",
    sort_order: str = "DESC",
) -> Page[BookingModel]:
    rows, total = await BookingRepository(session).search(
        status=status,
        customer_id=customer_id,
        driver_id=driver_id,
        text=search,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return Page(items=rows, total=total, limit=limit, offset=offset)
