"""
Job lifecycle
=============

Driver-side operations on a booking once it is on the job board.

Acceptance
----------
``accept_job`` runs its guards against the current rows, then claims the
booking with a single conditional UPDATE (``status = pending AND driver_id IS
NULL``).  Of two drivers racing for the same job only one UPDATE affects a
row; the loser gets ``JobAlreadyTaken``.  The driver is then flipped to busy
with a second conditional UPDATE in the same transaction; if that one misses
the transaction is rolled back so booking and driver change together or not
at all.

Terminal statuses
-----------------
``apply_status_change`` is the single place where a booking lands on a new
status.  It stamps the matching timestamp and, for completed/cancelled,
releases the driver when the booking was holding one.  Drivers, customers
and admins all go through it, each with its own default cancellation reason.
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
    DriverHasActiveJob,
    DriverNotApproved,
    DriverNotAvailable,
    DriverNotFound,
    InvalidTransition,
    JobAlreadyTaken,
    JobNotFound,
    JobNotPending,
    VehicleTypeMismatch,
)
from movenow.domain.lifecycle import ensure_transition, is_terminal
from movenow.infrastructure.models import BookingModel, DriverModel
from movenow.infrastructure.repositories import (
    BookingRepository,
    DriverRepository,
    VehicleRepository,
)
from movenow.services.pagination import Page

logger = logging.getLogger(__name__)

STATUS_TIMESTAMPS = {
    BookingStatus.DRIVER_EN_ROUTE: "started_at",
    BookingStatus.COMPLETED: "completed_at",
    BookingStatus.CANCELLED: "cancelled_at",
}

CANCELLED_BY_DRIVER = "Cancelled by driver"
CANCELLED_BY_CUSTOMER = "Cancelled by customer"
CANCELLED_BY_ADMIN = "Cancelled by admin"


async def get_driver(session: AsyncSession, driver_id: int) -> DriverModel:
    driver = await DriverRepository(session).get_by_id(driver_id)
    if driver is None:
        raise DriverNotFound()
    return driver


# ── Status changes ────────────────────────────────────────────────────


async def apply_status_change(
    session: AsyncSession,
    booking: BookingModel,
    new_status: BookingStatus,
    *,
    now: Optional[datetime] = None,
    cancellation_reason: Optional[str] = None,
    default_reason: str = CANCELLED_BY_DRIVER,
    extra_values: Optional[dict[str, Any]] = None,
) -> BookingModel:
    """
    Move *booking* to *new_status* and apply the status side effects.

    Transition rules are the caller's business; this only guarantees the
    booking is still in the status the caller saw.  On completed/cancelled the
    assigned driver goes back to available (and gains a trip on completion).
    """
    now = now or utc_now()
    previous = BookingStatus(booking.status)
    assigned_driver = booking.driver_id

    values: dict[str, Any] = {"status": new_status}
    stamp = STATUS_TIMESTAMPS.get(new_status)
    if stamp:
        values[stamp] = now
    if new_status is BookingStatus.CANCELLED:
        values["cancellation_reason"] = (
            (cancellation_reason or "").strip() or default_reason
        )
    values.update(extra_values or {})

    bookings = BookingRepository(session)
    if await bookings.transition(booking.id, previous, **values) != 1:
        await bookings.refresh(booking)
        raise InvalidTransition(
            f"Cannot change status from {BookingStatus(booking.status).value} "
            f"to {new_status.value}"
        )

    holds_driver = previous in ACTIVE_JOB_STATUSES and assigned_driver is not None
    if is_terminal(new_status) and holds_driver:
        await DriverRepository(session).release(
            assigned_driver,
            completed_trip=new_status is BookingStatus.COMPLETED,
        )

    await bookings.refresh(booking)
    logger.info(
        "Booking %s: %s -> %s", booking.booking_number, previous.value, new_status.value
    )
    return booking


# ── Driver operations ─────────────────────────────────────────────────


async def accept_job(
    session: AsyncSession,
    driver_id: int,
    booking_id: int,
    now: Optional[datetime] = None,
) -> BookingModel:
    now = now or utc_now()
    bookings = BookingRepository(session)
    drivers = DriverRepository(session)

    driver = await get_driver(session, driver_id)
    if not driver.is_approved:
        raise DriverNotApproved("Driver account not approved")
    availability = DriverAvailability(driver.availability_status)
    if availability is not DriverAvailability.AVAILABLE:
        raise DriverNotAvailable(
            f"Cannot accept job. Driver status is {availability.value}"
        )
    if await bookings.find_active_for_driver(driver.id) is not None:
        raise DriverHasActiveJob(
            "Driver already has an active job. Complete current job first."
        )

    booking = await bookings.get_by_id(booking_id)
    if booking is None:
        raise JobNotFound()
    if booking.status != BookingStatus.PENDING:
        raise JobNotPending(
            "Job is no longer available. Current status: "
            f"{BookingStatus(booking.status).value}"
        )
    if booking.driver_id is not None:
        raise JobAlreadyTaken()

    required = booking.vehicle_type_required
    vehicles = await VehicleRepository(session).get_active_for_driver(driver.id)
    vehicle = next((v for v in vehicles if v.vehicle_type == required), None)
    if vehicle is None:
        raise VehicleTypeMismatch(
            "Driver does not have required vehicle type: "
            f"{getattr(required, 'value', required)}"
        )

    # ── Critical section: conditional claims ──────────────────────────
    claimed = await bookings.assign_driver(booking.id, driver.id, vehicle.id, now)
    if claimed != 1:
        logger.warning(
            "Driver %s lost the race for booking %s", driver.id, booking.id
        )
        raise JobAlreadyTaken()

    if await drivers.mark_busy(driver.id) != 1:
        await session.rollback()
        logger.warning(
            "Driver %s stopped being available while accepting booking %s",
            driver_id,
            booking_id,
        )
        raise DriverNotAvailable("Cannot accept job. Driver is no longer available")

    await bookings.refresh(booking)
    await drivers.refresh(driver)
    logger.info(
        "Driver %s accepted booking %s with vehicle %s",
        driver.id,
        booking.booking_number,
        vehicle.id,
    )
    return booking


async def update_job_status(
    session: AsyncSession,
    driver_id: int,
    booking_id: int,
    new_status: BookingStatus,
    cancellation_reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BookingModel:
    booking = await BookingRepository(session).find_one(
        BookingModel.id == booking_id,
        BookingModel.driver_id == driver_id,
    )
    if booking is None:
        raise JobNotFound("Job not found or not assigned to this driver")

    new_status = BookingStatus(new_status)
    ensure_transition(booking.status, new_status)
    return await apply_status_change(
        session,
        booking,
        new_status,
        now=now,
        cancellation_reason=cancellation_reason,
        default_reason=CANCELLED_BY_DRIVER,
    )


async def get_current_job(
    session: AsyncSession, driver_id: int
) -> Optional[BookingModel]:
    await get_driver(session, driver_id)
    return await BookingRepository(session).find_active_for_driver(driver_id)


async def get_job_history(
    session: AsyncSession,
    driver_id: int,
    status: Optional[BookingStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = 20,
    offset: int = 0,
) -> Page[BookingModel]:
    await get_driver(session, driver_id)

    criteria: list[Any] = [BookingModel.driver_id == driver_id]
    if status is not None:
        criteria.append(BookingModel.status == status)
    if start_date is not None:
        criteria.append(BookingModel.created_at >= start_date)
    if end_date is not None:
        criteria.append(BookingModel.created_at <= end_date)

    rows, total = await BookingRepository(session).find_all(
        *criteria, limit=limit, offset=offset
    )
    return Page(items=rows, total=total, limit=limit, offset=offset)
