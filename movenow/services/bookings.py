"""
Customer bookings
=================

Booking numbers
---------------
``MN`` + the last six digits of the millisecond clock + four random digits.
Two bookings created in the same millisecond collide one time in ten
thousand, so creation checks the candidate, inserts it inside a savepoint
and retries with a fresh candidate when the unique constraint still fires.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from movenow.config import settings
from movenow.domain.clock import utc_now
from movenow.domain.enums import BookingStatus, LoadType, VehicleType
from movenow.domain.errors import (
    BookingNotFound,
    BookingNumberGenerationExhausted,
    CustomerNotFound,
    OutOfServiceArea,
)
from movenow.domain.geo import (
    format_address,
    validate_coordinate,
    validate_pickup_time,
    validate_trip_distance,
)
from movenow.domain.lifecycle import ensure_transition
from movenow.domain.pricing import PricingConfig, PricingQuote
from movenow.infrastructure.models import BookingModel
from movenow.infrastructure.repositories import (
    BookingRepository,
    DriverRepository,
    UserRepository,
)
from movenow.services.job_lifecycle import CANCELLED_BY_CUSTOMER, apply_status_change
from movenow.services.pagination import Page
from movenow.services.pricing import (
    build_pricing_engine,
    service_area,
    service_timezone,
)

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    pickup_address: str
    pickup_lat: float
    pickup_lng: float
    dropoff_address: str
    dropoff_lat: float
    dropoff_lng: float
    pickup_date: str
    pickup_time: str
    vehicle_type_required: VehicleType
    load_type: LoadType
    load_description: Optional[str] = None
    estimated_weight: Optional[float] = None
    requires_helpers: bool = False
    helpers_count: int = 0
    special_instructions: Optional[str] = None


@dataclass
class BookingResult:
    booking: BookingModel
    quote: PricingQuote


# ── Booking numbers ───────────────────────────────────────────────────


def candidate_booking_number(now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return f"MN{str(now_ms)[-6:]}{random.randint(0, 9999):04d}"


async def insert_with_unique_number(
    session: AsyncSession,
    booking: BookingModel,
    attempts: Optional[int] = None,
) -> BookingModel:
    """Give *booking* a fresh booking number and insert it."""
    attempts = attempts or settings.booking_number_attempts
    repo = BookingRepository(session)

    for attempt in range(1, attempts + 1):
        candidate = candidate_booking_number()
        if await repo.number_exists(candidate):
            logger.debug("Booking number %s taken (attempt %d)", candidate, attempt)
            continue

        booking.booking_number = candidate
        try:
            async with session.begin_nested():
                await repo.create(booking)
            return booking
        except IntegrityError:
            # Another request inserted the same number after our check.
            if not await repo.number_exists(candidate):
                raise
            logger.debug("Booking number %s collided on insert", candidate)

    logger.warning("Gave up generating a booking number after %d attempts", attempts)
    raise BookingNumberGenerationExhausted(
        "Failed to generate unique booking number. Please try again."
    )


# ── Operations ────────────────────────────────────────────────────────


async def create_booking(
    session: AsyncSession,
    customer_id: int,
    request: BookingRequest,
    pricing_config: PricingConfig,
    now: Optional[datetime] = None,
) -> BookingResult:
    now = now or utc_now()

    pickup_address = format_address(request.pickup_address)
    dropoff_address = format_address(request.dropoff_address)
    pickup = validate_coordinate(request.pickup_lat, request.pickup_lng)
    dropoff = validate_coordinate(request.dropoff_lat, request.dropoff_lng)

    area = service_area()
    if not area.contains(pickup):
        raise OutOfServiceArea("Pickup location is outside our service area")
    if not area.contains(dropoff):
        raise OutOfServiceArea("Dropoff location is outside our service area")

    validate_trip_distance(
        pickup, dropoff, settings.min_trip_km, settings.max_trip_km
    )
    pickup_at = validate_pickup_time(
        request.pickup_date,
        request.pickup_time,
        service_timezone(),
        now=now,
        lead_minutes=settings.pickup_lead_minutes,
        max_advance_days=settings.pickup_max_advance_days,
    )

    if await UserRepository(session).get_by_id(customer_id) is None:
        raise CustomerNotFound()

    quote = build_pricing_engine(pricing_config).quote(
        pickup,
        dropoff,
        request.vehicle_type_required,
        request.load_type,
        pickup_at,
        request.requires_helpers,
        request.helpers_count,
    )

    booking = BookingModel(
        customer_id=customer_id,
        pickup_address=pickup_address,
        pickup_lat=pickup.latitude,
        pickup_lng=pickup.longitude,
        pickup_date=pickup_at.astimezone(timezone.utc),
        pickup_time=pickup_at.strftime("%H:%M"),
        dropoff_address=dropoff_address,
        dropoff_lat=dropoff.latitude,
        dropoff_lng=dropoff.longitude,
        load_type=LoadType(request.load_type),
        load_description=request.load_description,
        estimated_weight=request.estimated_weight,
        vehicle_type_required=VehicleType(request.vehicle_type_required),
        estimated_distance=quote.distance_km,
        estimated_duration=quote.duration_min,
        base_price=quote.base_price,
        distance_price=quote.distance_price,
        time_price=quote.time_price,
        additional_charges=quote.helper_charges,
        load_multiplier=quote.load_multiplier,
        time_multiplier=quote.time_multiplier,
        total_price=quote.total_price,
        currency=quote.currency,
        status=BookingStatus.PENDING,
        requires_helpers=request.requires_helpers,
        helpers_count=request.helpers_count if request.requires_helpers else 0,
        special_instructions=request.special_instructions,
    )
    await insert_with_unique_number(session, booking)

    logger.info(
        "Booking %s created for customer %s: %s, %.2f km, %d %s",
        booking.booking_number,
        customer_id,
        booking.vehicle_type_required.value,
        quote.distance_km,
        quote.total_price,
        quote.currency,
    )
    return BookingResult(booking=booking, quote=quote)


async def list_customer_bookings(
    session: AsyncSession,
    customer_id: int,
    status: Optional[BookingStatus] = None,
    limit: int = 10,
    offset: int = 0,
    sort_by: str = "created_at",
    sort_order: str = "DESC",
) -> Page[BookingModel]:
    criteria: list[Any] = [BookingModel.customer_id == customer_id]
    if status is not None:
        criteria.append(BookingModel.status == status)
    rows, total = await BookingRepository(session).find_all(
        *criteria,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return Page(items=rows, total=total, limit=limit, offset=offset)


async def get_booking(
    session: AsyncSession,
    booking_id: int,
    customer_id: Optional[int] = None,
) -> BookingModel:
    """Booking by id, scoped to *customer_id* when one is given."""
    criteria: list[Any] = [BookingModel.id == booking_id]
    if customer_id is not None:
        criteria.append(BookingModel.customer_id == customer_id)
    booking = await BookingRepository(session).find_one(*criteria)
    if booking is None:
        raise BookingNotFound()
    return booking


async def cancel_booking(
    session: AsyncSession,
    booking_id: int,
    customer_id: int,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BookingModel:
    booking = await get_booking(session, booking_id, customer_id)
    ensure_transition(booking.status, BookingStatus.CANCELLED)
    return await apply_status_change(
        session,
        booking,
        BookingStatus.CANCELLED,
        now=now,
        cancellation_reason=reason,
        default_reason=CANCELLED_BY_CUSTOMER,
    )


async def get_tracking(
    session: AsyncSession,
    booking_id: int,
    customer_id: Optional[int] = None,
) -> dict[str, Any]:
    booking = await get_booking(session, booking_id, customer_id)

    driver_location = None
    if booking.driver_id is not None:
        driver = await DriverRepository(session).get_by_id(booking.driver_id)
        if driver is not None and driver.has_location:
            driver_location = {
                "lat": driver.current_location_lat,
                "lng": driver.current_location_lng,
                "address": driver.current_address,
            }

    estimated_completion = None
    if booking.accepted_at is not None:
        estimated_completion = booking.accepted_at + timedelta(
            minutes=booking.estimated_duration
        )

    return {
        "booking_number": booking.booking_number,
        "status": BookingStatus(booking.status).value,
        "pickup_location": {
            "address": booking.pickup_address,
            "lat": booking.pickup_lat,
            "lng": booking.pickup_lng,
        },
        "dropoff_location": {
            "address": booking.dropoff_address,
            "lat": booking.dropoff_lat,
            "lng": booking.dropoff_lng,
        },
        "scheduled_pickup": booking.pickup_date,
        "estimated_completion": estimated_completion,
        "driver_location": driver_location,
        "timeline": {
            "created_at": booking.created_at,
            "accepted_at": booking.accepted_at,
            "started_at": booking.started_at,
            "completed_at": booking.completed_at,
            "cancelled_at": booking.cancelled_at,
        },
    }
