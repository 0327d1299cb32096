"""
Booking endpoints
=================

POST /api/v1/bookings                 -- create a booking (priced on creation)
GET  /api/v1/bookings?customer_id=    -- a customer's bookings
GET  /api/v1/bookings/{id}            -- booking detail
PUT  /api/v1/bookings/{id}/cancel     -- customer cancellation
GET  /api/v1/bookings/{id}/track      -- live tracking
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from movenow.api.dependencies import get_db, get_pricing_store
from movenow.api.middleware import limiter
from movenow.api.schemas import (
    BookingCreateRequest,
    BookingCreateResponse,
    BookingPageResponse,
    BookingResponse,
    CancelRequest,
    QuoteResponse,
    TrackingResponse,
)
from movenow.config import settings
from movenow.domain.enums import BookingStatus
from movenow.infrastructure.pricing_store import PricingConfigStore
from movenow.services import bookings as booking_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post(
    "",
    status_code=201,
    response_model=BookingCreateResponse,
    summary="Create a booking",
)
@limiter.limit(settings.rate_limit)
async def create_booking(
    request: Request,
    body: BookingCreateRequest,
    db: AsyncSession = Depends(get_db),
    store: PricingConfigStore = Depends(get_pricing_store),
):
    data = body.model_dump(exclude={"customer_id"})
    data["pickup_date"] = body.pickup_date.isoformat()
    result = await booking_service.create_booking(
        db,
        body.customer_id,
        booking_service.BookingRequest(**data),
        await store.get(),
    )
    return BookingCreateResponse(
        booking=BookingResponse.model_validate(result.booking),
        pricing_breakdown=QuoteResponse(**result.quote.to_dict()),
    )


@router.get(
    "",
    response_model=BookingPageResponse,
    summary="List a customer's bookings",
)
@limiter.limit(settings.rate_limit)
async def list_bookings(
    request: Request,
    customer_id: int,
    status: Optional[BookingStatus] = None,
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    sort_by: Literal["created_at", "pickup_date", "total_price", "status"] = "created_at",
    sort_order: Literal["ASC", "DESC"] = "DESC",
    db: AsyncSession = Depends(get_db),
):
    page = await booking_service.list_customer_bookings(
        db, customer_id, status, limit, offset, sort_by, sort_order
    )
    return BookingPageResponse(
        bookings=[BookingResponse.model_validate(b) for b in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


@router.get(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Get a booking",
)
@limiter.limit(settings.rate_limit)
async def get_booking(
    request: Request,
    booking_id: int,
    customer_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_booking(db, booking_id, customer_id)


@router.put(
    "/{booking_id}/cancel",
    response_model=BookingResponse,
    summary="Cancel a booking",
    description=(
        "Allowed from any non-terminal status.  An assigned driver is "
        "released back to available."
    ),
)
@limiter.limit(settings.rate_limit)
async def cancel_booking(
    request: Request,
    booking_id: int,
    body: CancelRequest,
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.cancel_booking(
        db, booking_id, body.customer_id, body.reason
    )


@router.get(
    "/{booking_id}/track",
    response_model=TrackingResponse,
    summary="Track a booking",
)
@limiter.limit(settings.rate_limit)
async def track_booking(
    request: Request,
    booking_id: int,
    customer_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    return await booking_service.get_tracking(db, booking_id, customer_id)
