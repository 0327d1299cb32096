"""Pricing estimates for callers that have not booked yet."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional
from zoneinfo import ZoneInfo

from movenow.config import settings
from movenow.domain.entities import ServiceArea
from movenow.domain.enums import LoadType, VehicleType
from movenow.domain.errors import BusinessRuleError
from movenow.domain.geo import combine_pickup_datetime, validate_coordinate
from movenow.domain.pricing import PricingConfig, PricingEngine, PricingQuote


def service_timezone() -> tzinfo:
    return ZoneInfo(settings.timezone)


def service_area() -> ServiceArea:
    return ServiceArea(
        north=settings.service_area_north,
        south=settings.service_area_south,
        east=settings.service_area_east,
        west=settings.service_area_west,
    )


def build_pricing_engine(config: PricingConfig) -> PricingEngine:
    return PricingEngine(
        config,
        service_timezone(),
        currency=settings.currency,
        average_speed_kmh=settings.average_speed_kmh,
        minimum_duration_minutes=settings.min_duration_minutes,
    )


@dataclass
class EstimateRequest:
    pickup_lat: float
    pickup_lng: float
    dropoff_lat: float
    dropoff_lng: float
    pickup_date: str
    pickup_time: str
    vehicle_type: Optional[VehicleType] = None
    load_type: LoadType = LoadType.OTHER
    requires_helpers: bool = False
    helpers_count: int = 0


def estimate(
    request: EstimateRequest, config: PricingConfig
) -> PricingQuote | dict[str, PricingQuote | BusinessRuleError]:
    """One quote when a vehicle type is given, otherwise one per vehicle type."""
    pickup = validate_coordinate(request.pickup_lat, request.pickup_lng)
    dropoff = validate_coordinate(request.dropoff_lat, request.dropoff_lng)
    pickup_at = combine_pickup_datetime(
        request.pickup_date, request.pickup_time, service_timezone()
    )
    engine = build_pricing_engine(config)

    if request.vehicle_type is not None:
        return engine.quote(
            pickup, dropoff, request.vehicle_type, request.load_type, pickup_at,
            request.requires_helpers, request.helpers_count,
        )
    return engine.quote_all_vehicle_types(
        pickup, dropoff, request.load_type, pickup_at,
        request.requires_helpers, request.helpers_count,
    )
