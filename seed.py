"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates:
  - 1 admin, 4 customers and 5 driver users
  - 5 drivers around Nairobi (4 approved), each with one vehicle
  - 6 pending bookings over the next few days, priced with the default config
"""

import asyncio
import random
from datetime import timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import text

from movenow.config import settings
from movenow.domain.clock import utc_now
from movenow.domain.entities import Coordinate
from movenow.domain.enums import (
    BookingStatus,
    DriverAvailability,
    LoadType,
    UserRole,
    VehicleType,
)
from movenow.domain.pricing import PricingEngine, default_pricing_config
from movenow.infrastructure.database import async_session_factory, engine
from movenow.infrastructure.models import (
    BookingModel,
    DriverModel,
    UserModel,
    VehicleModel,
)
from movenow.services.bookings import insert_with_unique_number

NAIROBI = ZoneInfo(settings.timezone)

CUSTOMERS = [
    ("Wanjiku", "Kamau", "wanjiku@example.com"),
    ("Otieno", "Odhiambo", "otieno@example.com"),
    ("Achieng", "Atieno", "achieng@example.com"),
    ("Kipchoge", "Rotich", "kipchoge@example.com"),
]

DRIVERS = [
    # first, last, email, licence, approved, (lat, lng), vehicle type, plate
    ("Mwangi", "Njoroge", "mwangi@example.com", "DL-0001", True, (-1.2864, 36.8172), VehicleType.PICKUP, "KDA 101A"),
    ("Juma", "Hassan", "juma@example.com", "DL-0002", True, (-1.3000, 36.7800), VehicleType.SMALL_TRUCK, "KDB 202B"),
    ("Njeri", "Wambui", "njeri@example.com", "DL-0003", True, (-1.2650, 36.8030), VehicleType.MEDIUM_TRUCK, "KDC 303C"),
    ("Barasa", "Wekesa", "barasa@example.com", "DL-0004", True, (-1.3190, 36.8270), VehicleType.VAN, "KDD 404D"),
    ("Chebet", "Koech", "chebet@example.com", "DL-0005", False, None, VehicleType.LARGE_TRUCK, "KDE 505E"),
]

BOOKINGS = [
    # pickup, dropoff, vehicle, load, days ahead, hour
    (("CBD, Moi Avenue", -1.2833, 36.8233), ("Kilimani, Argwings Kodhek Rd", -1.2921, 36.7856), VehicleType.PICKUP, LoadType.BOXES, 1, 10),
    (("Westlands, Waiyaki Way", -1.2676, 36.8108), ("Karen, Langata Rd", -1.3194, 36.7073), VehicleType.SMALL_TRUCK, LoadType.FURNITURE, 1, 8),
    (("South B, Mombasa Rd", -1.3101, 36.8376), ("Kasarani, Thika Rd", -1.2219, 36.8969), VehicleType.MEDIUM_TRUCK, LoadType.APPLIANCES, 2, 14),
    (("Lavington, James Gichuru Rd", -1.2769, 36.7697), ("Parklands, 3rd Avenue", -1.2597, 36.8190), VehicleType.VAN, LoadType.ELECTRONICS, 2, 18),
    (("Embakasi, Outer Ring Rd", -1.3232, 36.8943), ("Ngong Rd, Adams Arcade", -1.3005, 36.7800), VehicleType.SMALL_TRUCK, LoadType.FRAGILE, 3, 11),
    (("Runda, Kiambu Rd", -1.2180, 36.8100), ("Upper Hill, Ralph Bunche Rd", -1.2980, 36.8140), VehicleType.LARGE_TRUCK, LoadType.FURNITURE, 4, 9),
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(text("SELECT count(*) FROM users"))
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

        # ── Users ─────────────────────────────────────────────────────
        admin = UserModel(
            first_name="Ada", last_name="Admin", email="admin@example.com",
            role=UserRole.ADMIN,
        )
        session.add(admin)
        customers = []
        for first, last, email in CUSTOMERS:
            m = UserModel(first_name=first, last_name=last, email=email)
            session.add(m)
            customers.append(m)
        await session.flush()
        print(f"  Created {len(customers) + 1} users")

        # ── Drivers & vehicles ────────────────────────────────────────
        now = utc_now()
        for first, last, email, licence, approved, location, vtype, plate in DRIVERS:
            user = UserModel(
                first_name=first, last_name=last, email=email, role=UserRole.DRIVER
            )
            session.add(user)
            await session.flush()
            driver = DriverModel(
                user_id=user.id,
                license_number=licence,
                is_approved=approved,
                approval_date=now if approved else None,
                current_location_lat=location[0] if location else None,
                current_location_lng=location[1] if location else None,
                availability_status=(
                    DriverAvailability.AVAILABLE if approved else DriverAvailability.OFFLINE
                ),
            )
            session.add(driver)
            await session.flush()
            session.add(
                VehicleModel(
                    driver_id=driver.id,
                    vehicle_type=vtype,
                    make="Isuzu",
                    model=vtype.value.replace("_", " ").title(),
                    license_plate=plate,
                )
            )
        await session.flush()
        print(f"  Created {len(DRIVERS)} drivers with vehicles")

        # ── Bookings ──────────────────────────────────────────────────
        engine_ = PricingEngine(
            default_pricing_config(), NAIROBI, currency=settings.currency
        )
        today = now.astimezone(NAIROBI).replace(minute=0, second=0, microsecond=0)
        for pickup, dropoff, vtype, load, days, hour in BOOKINGS:
            pickup_at = (today + timedelta(days=days)).replace(hour=hour)
            quote = engine_.quote(
                Coordinate(pickup[1], pickup[2]),
                Coordinate(dropoff[1], dropoff[2]),
                vtype,
                load,
                pickup_at,
            )
            booking = BookingModel(
                customer_id=random.choice(customers).id,
                pickup_address=pickup[0],
                pickup_lat=pickup[1],
                pickup_lng=pickup[2],
                pickup_date=pickup_at.astimezone(timezone.utc),
                pickup_time=pickup_at.strftime("%H:%M"),
                dropoff_address=dropoff[0],
                dropoff_lat=dropoff[1],
                dropoff_lng=dropoff[2],
                load_type=load,
                vehicle_type_required=vtype,
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
            )
            await insert_with_unique_number(session, booking)
        print(f"  Created {len(BOOKINGS)} bookings")

        await session.commit()
        print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
