"""
Integration tests for the REST API endpoints.

Routes run against the per-test SQLite database through an overridden
``get_db`` dependency and an in-memory pricing store, so no PostgreSQL or
Redis is needed.  Rate limiting is switched off.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from movenow.api.app import create_app
from movenow.api.dependencies import get_db
from movenow.api.middleware import limiter
from movenow.domain.enums import BookingStatus, DriverAvailability, VehicleType
from movenow.infrastructure.pricing_store import (
    InMemoryPricingConfigStore,
    RedisPricingConfigStore,
)
from movenow.services import bookings as booking_service

from conftest import CBD, KILIMANI, Factory, fake_redis

NAIROBI_TZ = ZoneInfo("Africa/Nairobi")


def _tomorrow() -> str:
    return (datetime.now(NAIROBI_TZ) + timedelta(days=1)).date().isoformat()


def _booking_body(customer_id: int, **overrides) -> dict:
    body = {
        "customer_id": customer_id,
        "pickup_address": "Moi Avenue, Nairobi CBD",
        "pickup_lat": CBD[0],
        "pickup_lng": CBD[1],
        "dropoff_address": "Argwings Kodhek Rd, Kilimani",
        "dropoff_lat": KILIMANI[0],
        "dropoff_lng": KILIMANI[1],
        "pickup_date": _tomorrow(),
        "pickup_time": "12:00",
        "vehicle_type_required": "small_truck",
        "load_type": "furniture",
    }
    body.update(overrides)
    return body


# ── Fixtures ──────────────────────────────────────────────────────────


def _build_client(session_factory, pricing_store) -> AsyncClient:
    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app(pricing_store=pricing_store)
    app.dependency_overrides[get_db] = _test_db
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client(session_factory, monkeypatch):
    monkeypatch.setattr(limiter, "enabled", False)
    async with _build_client(session_factory, InMemoryPricingConfigStore()) as ac:
        yield ac


@pytest_asyncio.fixture
async def world(session_factory):
    """One customer, two available drivers at the CBD and one pending job."""
    async with session_factory() as session:
        factory = Factory(session)
        customer = await factory.customer()
        first = await factory.driver(location=CBD)
        second = await factory.driver(location=CBD)
        booking = await factory.booking(customer.id)
        await session.commit()
    return SimpleNamespace(
        customer_id=customer.id,
        driver_id=first.id,
        other_driver_id=second.id,
        booking_id=booking.id,
    )


# ── Health / pricing ─────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_estimate_single_vehicle(client: AsyncClient):
    resp = await client.post(
        "/api/v1/pricing/estimate",
        json={
            "pickup_lat": -1.28,
            "pickup_lng": 36.80,
            "dropoff_lat": -1.30,
            "dropoff_lng": 36.82,
            "pickup_date": "2026-03-03",
            "pickup_time": "11:00",
            "vehicle_type": "small_truck",
            "load_type": "boxes",
        },
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["distance_km"] == 3.14
    assert data["total_price"] == 1260
    assert data["currency"] == "KES"


@pytest.mark.asyncio
async def test_estimate_every_vehicle(client: AsyncClient):
    resp = await client.post(
        "/api/v1/pricing/estimate",
        json={
            "pickup_lat": -1.28,
            "pickup_lng": 36.80,
            "dropoff_lat": -1.30,
            "dropoff_lng": 36.82,
            "pickup_date": "2026-03-03",
            "pickup_time": "11:00",
        },
    )
    assert resp.status_code == 200
    estimates = resp.json()["estimates"]
    assert set(estimates) == {v.value for v in VehicleType}
    assert estimates["pickup"]["total_price"] < estimates["large_truck"]["total_price"]


@pytest.mark.asyncio
async def test_estimate_rejects_bad_time(client: AsyncClient):
    resp = await client.post(
        "/api/v1/pricing/estimate",
        json={
            "pickup_lat": -1.28,
            "pickup_lng": 36.80,
            "dropoff_lat": -1.30,
            "dropoff_lng": 36.82,
            "pickup_date": "2026-03-03",
            "pickup_time": "25:00",
        },
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_pricing_update_and_reset(client: AsyncClient):
    resp = await client.get("/api/v1/admin/pricing")
    assert resp.json()["minimum_charge"] == 800

    resp = await client.put(
        "/api/v1/admin/pricing", json={"admin_id": 1, "minimum_charge": 1000}
    )
    assert resp.status_code == 200
    assert resp.json()["minimum_charge"] == 1000
    assert resp.json()["base_rates"]["van"]["base"] == 700

    resp = await client.post("/api/v1/admin/pricing/reset", json={"admin_id": 1})
    assert resp.status_code == 200
    assert resp.json()["minimum_charge"] == 800


@pytest.mark.asyncio
async def test_pricing_update_rejects_invalid(client: AsyncClient):
    resp = await client.put(
        "/api/v1/admin/pricing", json={"load_multipliers": {"furniture": 5}}
    )
    assert resp.status_code == 422
    assert resp.json()["code"] == "InvalidPricingConfig"


@pytest.mark.asyncio
async def test_pricing_update_while_locked_returns_503(session_factory, monkeypatch):
    monkeypatch.setattr(limiter, "enabled", False)
    redis = fake_redis()
    redis.data["lock:pricing:config"] = "another-admin"
    store = RedisPricingConfigStore(redis, lock_wait_seconds=0)

    async with _build_client(session_factory, store) as ac:
        resp = await ac.put("/api/v1/admin/pricing", json={"minimum_charge": 1000})

    assert resp.status_code == 503
    assert resp.json()["code"] == "LockNotAcquired"


# ── Bookings ──────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_booking_returns_201(client: AsyncClient, world):
    resp = await client.post("/api/v1/bookings", json=_booking_body(world.customer_id))
    assert resp.status_code == 201
    data = resp.json()
    assert data["booking"]["status"] == "pending"
    assert data["booking"]["booking_number"].startswith("MN")
    assert data["booking"]["pickup_time"] == "12:00"
    assert data["booking"]["total_price"] == data["pricing_breakdown"]["total_price"]
    assert data["pricing_breakdown"]["load_multiplier"] == 1.2


@pytest.mark.asyncio
async def test_create_booking_unknown_customer(client: AsyncClient):
    resp = await client.post("/api/v1/bookings", json=_booking_body(9999))
    assert resp.status_code == 404
    assert resp.json()["code"] == "CustomerNotFound"


@pytest.mark.asyncio
async def test_create_booking_out_of_area(client: AsyncClient, world):
    body = _booking_body(world.customer_id, dropoff_lat=-4.0435, dropoff_lng=39.6682)
    resp = await client.post("/api/v1/bookings", json=body)
    assert resp.status_code == 400
    assert resp.json()["code"] == "OutOfServiceArea"


@pytest.mark.asyncio
async def test_create_booking_same_point(client: AsyncClient, world):
    body = _booking_body(world.customer_id, dropoff_lat=CBD[0], dropoff_lng=CBD[1])
    resp = await client.post("/api/v1/bookings", json=body)
    assert resp.status_code == 400
    assert resp.json()["code"] == "TripTooShort"


@pytest.mark.asyncio
async def test_list_and_get_bookings(client: AsyncClient, world):
    resp = await client.get(
        "/api/v1/bookings", params={"customer_id": world.customer_id}
    )
    assert resp.status_code == 200
    page = resp.json()
    assert page["total"] == 1
    assert page["has_more"] is False

    resp = await client.get(f"/api/v1/bookings/{world.booking_id}")
    assert resp.status_code == 200
    assert resp.json()["id"] == world.booking_id


@pytest.mark.asyncio
async def test_get_booking_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/bookings/9999")
    assert resp.status_code == 404
    assert resp.json()["code"] == "BookingNotFound"


@pytest.mark.asyncio
async def test_cancel_booking(client: AsyncClient, world):
    url = f"/api/v1/bookings/{world.booking_id}/cancel"
    resp = await client.put(url, json={"customer_id": world.customer_id})
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"
    assert resp.json()["cancellation_reason"] == "Cancelled by customer"

    resp = await client.put(url, json={"customer_id": world.customer_id})
    assert resp.status_code == 409
    assert resp.json()["code"] == "InvalidTransition"


@pytest.mark.asyncio
async def test_track_booking(client: AsyncClient, world):
    resp = await client.get(f"/api/v1/bookings/{world.booking_id}/track")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "pending"
    assert data["pickup_location"]["lat"] == CBD[0]
    assert data["driver_location"] is None


# ── Drivers ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_job_board(client: AsyncClient, world):
    resp = await client.get(f"/api/v1/drivers/{world.driver_id}/jobs/available")
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    job = data["jobs"][0]
    assert job["booking"]["id"] == world.booking_id
    assert job["distance_from_driver"] == 0.0
    assert data["driver_location"]["lat"] == CBD[0]
    assert data["search_radius"] == 10.0


@pytest.mark.asyncio
async def test_job_board_offline_driver(client: AsyncClient, world):
    resp = await client.put(
        f"/api/v1/drivers/{world.driver_id}/availability", json={"status": "offline"}
    )
    assert resp.status_code == 200
    assert resp.json()["availability_status"] == "offline"

    resp = await client.get(f"/api/v1/drivers/{world.driver_id}/jobs/available")
    assert resp.status_code == 200
    assert resp.json()["jobs"] == []
    assert "offline" in resp.json()["message"]


@pytest.mark.asyncio
async def test_job_board_vehicle_filter(client: AsyncClient, world):
    resp = await client.get(
        f"/api/v1/drivers/{world.driver_id}/jobs/available",
        params={"vehicle_types": ["van"]},
    )
    assert resp.status_code == 200
    assert resp.json()["jobs"] == []


@pytest.mark.asyncio
async def test_accept_and_progress_job(client: AsyncClient, world):
    base = f"/api/v1/drivers/{world.driver_id}/jobs"

    resp = await client.post(f"{base}/{world.booking_id}/accept")
    assert resp.status_code == 200
    assert resp.json()["status"] == "accepted"
    assert resp.json()["driver_id"] == world.driver_id

    resp = await client.get(f"{base}/current")
    assert resp.json()["id"] == world.booking_id

    resp = await client.put(
        f"{base}/{world.booking_id}/status", json={"status": "driver_en_route"}
    )
    assert resp.status_code == 200
    assert resp.json()["started_at"] is not None

    resp = await client.put(
        f"{base}/{world.booking_id}/status", json={"status": "completed"}
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "InvalidTransition"

    resp = await client.get(f"{base}/history")
    assert resp.json()["total"] == 1


@pytest.mark.asyncio
async def test_second_driver_gets_409(client: AsyncClient, world):
    await client.post(
        f"/api/v1/drivers/{world.driver_id}/jobs/{world.booking_id}/accept"
    )
    resp = await client.post(
        f"/api/v1/drivers/{world.other_driver_id}/jobs/{world.booking_id}/accept"
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "JobNotPending"


@pytest.mark.asyncio
async def test_concurrent_accepts(client: AsyncClient, world):
    responses = await asyncio.gather(
        client.post(f"/api/v1/drivers/{world.driver_id}/jobs/{world.booking_id}/accept"),
        client.post(
            f"/api/v1/drivers/{world.other_driver_id}/jobs/{world.booking_id}/accept"
        ),
    )
    codes = sorted(r.status_code for r in responses)
    assert codes == [200, 409]


@pytest.mark.asyncio
async def test_driver_cannot_set_busy(client: AsyncClient, world):
    resp = await client.put(
        f"/api/v1/drivers/{world.driver_id}/availability", json={"status": "busy"}
    )
    assert resp.status_code == 400
    assert resp.json()["code"] == "InvalidAvailabilityStatus"


@pytest.mark.asyncio
async def test_update_location(client: AsyncClient, world):
    resp = await client.put(
        f"/api/v1/drivers/{world.driver_id}/location",
        json={"latitude": KILIMANI[0], "longitude": KILIMANI[1], "address": "Kilimani"},
    )
    assert resp.status_code == 200
    assert resp.json()["current_location_lat"] == KILIMANI[0]


@pytest.mark.asyncio
async def test_earnings(client: AsyncClient, world):
    resp = await client.get(f"/api/v1/drivers/{world.driver_id}/earnings")
    assert resp.status_code == 200
    data = resp.json()
    assert data["period"] == "week"
    assert data["total_jobs"] == 0
    assert data["jobs"] == []


@pytest.mark.asyncio
async def test_unknown_driver(client: AsyncClient):
    resp = await client.get("/api/v1/drivers/9999/jobs/available")
    assert resp.status_code == 404
    assert resp.json()["code"] == "DriverNotFound"


# ── Admin ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_admin_override_and_search(client: AsyncClient, world):
    await client.post(
        f"/api/v1/drivers/{world.driver_id}/jobs/{world.booking_id}/accept"
    )

    resp = await client.put(
        f"/api/v1/admin/bookings/{world.booking_id}/status",
        json={"status": "completed", "admin_id": 1},
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == BookingStatus.COMPLETED.value

    resp = await client.get(
        "/api/v1/admin/bookings", params={"status": "completed"}
    )
    assert [b["id"] for b in resp.json()["bookings"]] == [world.booking_id]

    resp = await client.put(
        f"/api/v1/drivers/{world.driver_id}/location",
        json={"latitude": CBD[0], "longitude": CBD[1]},
    )
    assert resp.json()["availability_status"] == DriverAvailability.AVAILABLE.value
    assert resp.json()["total_trips"] == 1


@pytest.mark.asyncio
async def test_admin_driver_approval(client: AsyncClient, world):
    resp = await client.put(
        f"/api/v1/admin/drivers/{world.driver_id}/approval",
        json={"approved": False, "admin_id": 1, "reason": "Documents expired"},
    )
    assert resp.status_code == 200
    assert resp.json()["is_approved"] is False

    resp = await client.post(
        f"/api/v1/drivers/{world.driver_id}/jobs/{world.booking_id}/accept"
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "DriverNotApproved"


@pytest.mark.asyncio
async def test_persistence_failure_returns_500(client: AsyncClient, monkeypatch):
    async def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is gone"))

    monkeypatch.setattr(booking_service, "get_booking", broken)

    resp = await client.get("/api/v1/bookings/1")
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal server error", "code": "InternalError"}
