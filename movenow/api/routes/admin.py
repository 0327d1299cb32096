"""
Admin / observability endpoints
===============================

PUT  /api/v1/admin/drivers/{driver_id}/approval -- approve or reject a driver
GET  /api/v1/admin/bookings                     -- search all bookings
PUT  /api/v1/admin/bookings/{id}/status         -- force a booking status
GET  /api/v1/admin/pricing                      -- current pricing config
PUT  /api/v1/admin/pricing                      -- partial pricing update
POST /api/v1/admin/pricing/reset                -- restore default pricing
GET  /api/v1/admin/health                       -- simple health check
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from movenow.api.dependencies import get_db, get_pricing_store
from movenow.api.middleware import limiter
from movenow.api.schemas import (
    BookingPageResponse,
    BookingResponse,
    DriverApprovalRequest,
    DriverResponse,
    HealthResponse,
    PricingConfigResponse,
    PricingConfigUpdateRequest,
    PricingResetRequest,
    StatusOverrideRequest,
)
from movenow.config import settings
from movenow.domain.clock import utc_now
from movenow.domain.enums import BookingStatus
from movenow.domain.pricing import PricingConfig
from movenow.infrastructure.pricing_store import PricingConfigStore
from movenow.services import admin as admin_service

router = APIRouter(prefix="/admin", tags=["admin"])


def _pricing_response(config: PricingConfig) -> PricingConfigResponse:
    return PricingConfigResponse(currency=settings.currency, **config.to_dict())


@router.put(
    "/drivers/{driver_id}/approval",
    response_model=DriverResponse,
    summary="Approve or reject a driver",
)
@limiter.limit(settings.rate_limit)
async def set_driver_approval(
    request: Request,
    driver_id: int,
    body: DriverApprovalRequest,
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.set_driver_approval(
        db, driver_id, body.approved, body.admin_id, body.reason
    )


@router.get(
    "/bookings",
    response_model=BookingPageResponse,
    summary="Search all bookings",
)
@limiter.limit(settings.rate_limit)
async def list_bookings(
    request: Request,
    status: Optional[BookingStatus] = None,
    customer_id: Optional[int] = None,
    driver_id: Optional[int] = None,
    search: Optional[str] = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    sort_by: Literal["created_at", "pickup_date", "total_price", "status"] = "created_at",
    sort_order: Literal["ASC", "DESC"] = "DESC",
    db: AsyncSession = Depends(get_db),
):
    page = await admin_service.list_bookings(
        db, status, customer_id, driver_id, search, limit, offset, sort_by, sort_order
    )
    return BookingPageResponse(
        bookings=[BookingResponse.model_validate(b) for b in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


@router.put(
    "/bookings/{booking_id}/status",
    response_model=BookingResponse,
    summary="Force a booking status",
    description=(
        "Skips the transition table.  Completing or cancelling still stamps "
        "the booking and releases its driver."
    ),
)
@limiter.limit(settings.rate_limit)
async def override_booking_status(
    request: Request,
    booking_id: int,
    body: StatusOverrideRequest,
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.override_booking_status(
        db, booking_id, body.status, body.admin_id, body.reason
    )


@router.get(
    "/pricing",
    response_model=PricingConfigResponse,
    summary="Current pricing configuration",
)
@limiter.limit(settings.rate_limit)
async def get_pricing(
    request: Request,
    store: PricingConfigStore = Depends(get_pricing_store),
):
    return _pricing_response(await store.get())


@router.put(
    "/pricing",
    response_model=PricingConfigResponse,
    summary="Update pricing configuration",
    description="Only the supplied keys change; the result replaces the config atomically.",
)
@limiter.limit(settings.rate_limit)
async def update_pricing(
    request: Request,
    body: PricingConfigUpdateRequest,
    store: PricingConfigStore = Depends(get_pricing_store),
):
    patch = body.model_dump(exclude_unset=True, exclude={"admin_id"})
    return _pricing_response(await store.update(patch, body.admin_id))


@router.post(
    "/pricing/reset",
    response_model=PricingConfigResponse,
    summary="Restore the default pricing configuration",
)
@limiter.limit(settings.rate_limit)
async def reset_pricing(
    request: Request,
    body: Optional[PricingResetRequest] = None,
    store: PricingConfigStore = Depends(get_pricing_store),
):
    admin_id = body.admin_id if body else None
    return _pricing_response(await store.reset(admin_id))


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health():
    return HealthResponse(timestamp=utc_now())
