"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel, Field

from movenow.domain.enums import (
    BookingStatus,
    DriverAvailability,
    LoadType,
    PaymentStatus,
    VehicleType,
)

_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


# ── Requests ──────────────────────────────────────────────────────────


class EstimateRequest(BaseModel):
    pickup_lat: float = Field(..., ge=-90, le=90)
    pickup_lng: float = Field(..., ge=-180, le=180)
    dropoff_lat: float = Field(..., ge=-90, le=90)
    dropoff_lng: float = Field(..., ge=-180, le=180)
    pickup_date: date
    pickup_time: str = Field(..., pattern=_TIME_PATTERN, examples=["14:30"])
    vehicle_type: Optional[VehicleType] = Field(
        None, description="Omit to get a quote for every vehicle type."
    )
    load_type: LoadType = LoadType.OTHER
    requires_helpers: bool = False
    helpers_count: int = Field(0, ge=0, le=10)


class BookingCreateRequest(BaseModel):
    customer_id: int
    pickup_address: str = Field(..., min_length=1, max_length=500)
    pickup_lat: float = Field(..., ge=-90, le=90)
    pickup_lng: float = Field(..., ge=-180, le=180)
    dropoff_address: str = Field(..., min_length=1, max_length=500)
    dropoff_lat: float = Field(..., ge=-90, le=90)
    dropoff_lng: float = Field(..., ge=-180, le=180)
    pickup_date: date
    pickup_time: str = Field(..., pattern=_TIME_PATTERN, examples=["14:30"])
    vehicle_type_required: VehicleType
    load_type: LoadType
    load_description: Optional[str] = Field(None, max_length=1000)
    estimated_weight: Optional[float] = Field(None, gt=0)
    requires_helpers: bool = False
    helpers_count: int = Field(0, ge=0, le=10)
    special_instructions: Optional[str] = Field(None, max_length=1000)


class CancelRequest(BaseModel):
    customer_id: int
    reason: Optional[str] = Field(None, max_length=500)


class JobStatusUpdateRequest(BaseModel):
    status: BookingStatus
    cancellation_reason: Optional[str] = Field(None, max_length=500)


class LocationUpdateRequest(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    address: Optional[str] = Field(None, max_length=500)


class AvailabilityUpdateRequest(BaseModel):
    status: DriverAvailability


class DriverApprovalRequest(BaseModel):
    approved: bool
    admin_id: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=500)


class StatusOverrideRequest(BaseModel):
    status: BookingStatus
    admin_id: Optional[int] = None
    reason: Optional[str] = Field(None, max_length=500)


class VehicleRatesSchema(BaseModel):
    base: float
    per_km: float
    per_minute: float


class TimeMultipliersSchema(BaseModel):
    peak_hours: float
    weekend: float
    night: float


class PricingConfigUpdateRequest(BaseModel):
    """Partial update; only the supplied keys change."""

    admin_id: Optional[int] = None
    base_rates: Optional[dict[str, VehicleRatesSchema]] = None
    load_multipliers: Optional[dict[str, float]] = None
    time_multipliers: Optional[dict[str, float]] = None
    helper_rate: Optional[float] = None
    minimum_charge: Optional[float] = None


class PricingResetRequest(BaseModel):
    admin_id: Optional[int] = None


# ── Responses ─────────────────────────────────────────────────────────


class QuoteResponse(BaseModel):
    distance_km: float
    duration_min: int
    base_price: int
    distance_price: int
    time_price: int
    load_multiplier: float
    time_multiplier: float
    helper_charges: int
    subtotal: int
    total_price: int
    currency: str
    breakdown: dict[str, str]


class QuoteError(BaseModel):
    error: str
    code: str


class EstimateAllResponse(BaseModel):
    estimates: dict[str, Union[QuoteResponse, QuoteError]]


class BookingResponse(BaseModel):
    id: int
    booking_number: str
    customer_id: int
    driver_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    pickup_address: str
    pickup_lat: float
    pickup_lng: float
    pickup_date: datetime
    pickup_time: str
    dropoff_address: str
    dropoff_lat: float
    dropoff_lng: float
    load_type: LoadType
    load_description: Optional[str] = None
    estimated_weight: Optional[float] = None
    vehicle_type_required: VehicleType
    estimated_distance: float
    estimated_duration: int
    base_price: int
    distance_price: int
    time_price: int
    additional_charges: int
    load_multiplier: float
    time_multiplier: float
    total_price: int
    currency: str
    status: BookingStatus
    payment_status: PaymentStatus
    requires_helpers: bool
    helpers_count: int
    special_instructions: Optional[str] = None
    accepted_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BookingCreateResponse(BaseModel):
    booking: BookingResponse
    pricing_breakdown: QuoteResponse


class BookingPageResponse(BaseModel):
    bookings: list[BookingResponse]
    total: int
    limit: int
    offset: int
    has_more: bool


class LocationPoint(BaseModel):
    lat: float
    lng: float
    address: Optional[str] = None


class TrackingResponse(BaseModel):
    booking_number: str
    status: BookingStatus
    pickup_location: LocationPoint
    dropoff_location: LocationPoint
    scheduled_pickup: datetime
    estimated_completion: Optional[datetime] = None
    driver_location: Optional[LocationPoint] = None
    timeline: dict[str, Optional[datetime]]


class CandidateJobResponse(BaseModel):
    booking: BookingResponse
    distance_from_driver: Optional[float] = None
    estimated_travel_time: Optional[int] = None

    model_config = {"from_attributes": True}


class JobSearchResponse(BaseModel):
    jobs: list[CandidateJobResponse]
    total: int
    message: Optional[str] = None
    driver_location: Optional[LocationPoint] = None
    search_radius: Optional[float] = None
    limit: int
    offset: int
    has_more: bool


class DriverResponse(BaseModel):
    id: int
    user_id: int
    is_approved: bool
    approval_date: Optional[datetime] = None
    availability_status: DriverAvailability
    current_location_lat: Optional[float] = None
    current_location_lng: Optional[float] = None
    current_address: Optional[str] = None
    rating: float
    total_trips: int

    model_config = {"from_attributes": True}


class EarningJob(BaseModel):
    id: int
    booking_number: str
    total_price: int
    pickup_date: datetime
    completed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class EarningsResponse(BaseModel):
    period: str
    total_jobs: int
    total_revenue: int
    total_earnings: int
    platform_fees: int
    average_per_job: int
    currency: str
    jobs: list[EarningJob]

    model_config = {"from_attributes": True}


class PricingConfigResponse(BaseModel):
    base_rates: dict[str, VehicleRatesSchema]
    load_multipliers: dict[str, float]
    time_multipliers: TimeMultipliersSchema
    helper_rate: float
    minimum_charge: float
    currency: str


class HealthResponse(BaseModel):
    status: str = "ok"
    timestamp: Optional[datetime] = None


class ErrorResponse(BaseModel):
    detail: str
    code: str
