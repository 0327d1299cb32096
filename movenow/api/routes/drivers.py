"""
Driver endpoints
================

GET /api/v1/drivers/{driver_id}/jobs/available              -- job board
POST /api/v1/drivers/{driver_id}/jobs/{booking_id}/accept   -- claim a job
GET /api/v1/drivers/{driver_id}/jobs/current                -- active job
GET /api/v1/drivers/{driver_id}/jobs/history                -- past jobs
PUT /api/v1/drivers/{driver_id}/jobs/{booking_id}/status    -- advance a job
PUT /api/v1/drivers/{driver_id}/location                    -- report position
PUT /api/v1/drivers/{driver_id}/availability                -- available/offline
GET /api/v1/drivers/{driver_id}/earnings                    -- earnings summary
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from movenow.api.dependencies import get_db
from movenow.api.middleware import limiter
from movenow.api.schemas import (
    AvailabilityUpdateRequest,
    BookingPageResponse,
    BookingResponse,
    CandidateJobResponse,
    DriverResponse,
    EarningsResponse,
    JobSearchResponse,
    JobStatusUpdateRequest,
    LocationPoint,
    LocationUpdateRequest,
)
from movenow.config import settings
from movenow.domain.enums import BookingStatus, VehicleType
from movenow.services import drivers as driver_service
from movenow.services import job_board, job_lifecycle

router = APIRouter(prefix="/drivers/{driver_id}", tags=["drivers"])


# ── Jobs ──────────────────────────────────────────────────────────────


@router.get(
    "/jobs/available",
    response_model=JobSearchResponse,
    summary="Jobs this driver can take",
    description=(
        "Pending, unassigned future bookings matching the driver's active "
        "vehicles.  Sorted nearest first when the driver has a location.  A "
        "driver who is not available gets an empty list and a message."
    ),
)
@limiter.limit(settings.rate_limit)
async def available_jobs(
    request: Request,
    driver_id: int,
    radius: Optional[float] = Query(None, gt=0, le=100, description="km"),
    vehicle_types: Optional[list[VehicleType]] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    result = await job_board.find_available_jobs(
        db, driver_id, radius, vehicle_types, limit, offset
    )
    location = None
    if result.driver_location is not None:
        location = LocationPoint(
            lat=result.driver_location.latitude,
            lng=result.driver_location.longitude,
        )
    return JobSearchResponse(
        jobs=[CandidateJobResponse.model_validate(job) for job in result.jobs],
        total=result.total,
        message=result.message,
        driver_location=location,
        search_radius=result.search_radius,
        limit=result.limit,
        offset=result.offset,
        has_more=result.has_more,
    )


@router.post(
    "/jobs/{booking_id}/accept",
    response_model=BookingResponse,
    summary="Accept a job",
    responses={409: {"description": "Job taken, not pending, or driver busy."}},
)
@limiter.limit(settings.rate_limit)
async def accept_job(
    request: Request,
    driver_id: int,
    booking_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await job_lifecycle.accept_job(db, driver_id, booking_id)


@router.get(
    "/jobs/current",
    response_model=Optional[BookingResponse],
    summary="The driver's active job, if any",
)
@limiter.limit(settings.rate_limit)
async def current_job(
    request: Request,
    driver_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await job_lifecycle.get_current_job(db, driver_id)


@router.get(
    "/jobs/history",
    response_model=BookingPageResponse,
    summary="The driver's past and present jobs",
)
@limiter.limit(settings.rate_limit)
async def job_history(
    request: Request,
    driver_id: int,
    status: Optional[BookingStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    page = await job_lifecycle.get_job_history(
        db, driver_id, status, start_date, end_date, limit, offset
    )
    return BookingPageResponse(
        bookings=[BookingResponse.model_validate(b) for b in page.items],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
        has_more=page.has_more,
    )


@router.put(
    "/jobs/{booking_id}/status",
    response_model=BookingResponse,
    summary="Move a job to its next status",
)
@limiter.limit(settings.rate_limit)
async def update_job_status(
    request: Request,
    driver_id: int,
    booking_id: int,
    body: JobStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await job_lifecycle.update_job_status(
        db, driver_id, booking_id, body.status, body.cancellation_reason
    )


# ── Driver profile ────────────────────────────────────────────────────


@router.put(
    "/location",
    response_model=DriverResponse,
    summary="Report the driver's position",
)
@limiter.limit(settings.rate_limit)
async def update_location(
    request: Request,
    driver_id: int,
    body: LocationUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await driver_service.update_location(
        db, driver_id, body.latitude, body.longitude, body.address
    )


@router.put(
    "/availability",
    response_model=DriverResponse,
    summary="Go available or offline",
)
@limiter.limit(settings.rate_limit)
async def update_availability(
    request: Request,
    driver_id: int,
    body: AvailabilityUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    return await driver_service.update_availability(db, driver_id, body.status)


@router.get(
    "/earnings",
    response_model=EarningsResponse,
    summary="Earnings after the platform fee",
)
@limiter.limit(settings.rate_limit)
async def earnings(
    request: Request,
    driver_id: int,
    period: Literal["week", "month", "all"] = "week",
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    db: AsyncSession = Depends(get_db),
):
    result = await driver_service.get_earnings(
        db, driver_id, period, start_date, end_date
    )
    return EarningsResponse.model_validate(result)
