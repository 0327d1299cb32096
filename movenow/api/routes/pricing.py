"""
Pricing endpoints
=================

POST /api/v1/pricing/estimate -- quote one vehicle type, or every type
"""

from typing import Union

from fastapi import APIRouter, Depends, Request

from movenow.api.dependencies import get_pricing_store
from movenow.api.middleware import limiter
from movenow.api.schemas import (
    EstimateAllResponse,
    EstimateRequest,
    QuoteError,
    QuoteResponse,
)
from movenow.config import settings
from movenow.domain.errors import BusinessRuleError
from movenow.infrastructure.pricing_store import PricingConfigStore
from movenow.services import pricing as pricing_service

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post(
    "/estimate",
    response_model=Union[QuoteResponse, EstimateAllResponse],
    summary="Estimate the price of a move",
    description=(
        "Returns a single quote when `vehicle_type` is given, otherwise one "
        "entry per vehicle type.  Nothing is stored."
    ),
)
@limiter.limit(settings.rate_limit)
async def estimate(
    request: Request,
    body: EstimateRequest,
    store: PricingConfigStore = Depends(get_pricing_store),
):
    result = pricing_service.estimate(
        pricing_service.EstimateRequest(
            pickup_lat=body.pickup_lat,
            pickup_lng=body.pickup_lng,
            dropoff_lat=body.dropoff_lat,
            dropoff_lng=body.dropoff_lng,
            pickup_date=body.pickup_date.isoformat(),
            pickup_time=body.pickup_time,
            vehicle_type=body.vehicle_type,
            load_type=body.load_type,
            requires_helpers=body.requires_helpers,
            helpers_count=body.helpers_count,
        ),
        await store.get(),
    )
    if not isinstance(result, dict):
        return QuoteResponse(**result.to_dict())

    estimates: dict[str, Union[QuoteResponse, QuoteError]] = {}
    for vehicle_type, quote in result.items():
        if isinstance(quote, BusinessRuleError):
            estimates[vehicle_type] = QuoteError(error=quote.message, code=quote.code)
        else:
            estimates[vehicle_type] = QuoteResponse(**quote.to_dict())
    return EstimateAllResponse(estimates=estimates)
