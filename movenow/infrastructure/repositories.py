"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.  Writes that race with other requests are
expressed as *conditional* UPDATEs returning the affected-row count, so the
caller can tell whether it won.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import BookingModel, DriverModel, UserModel, VehicleModel
from movenow.domain.entities import BoundingBox
from movenow.domain.enums import (
    ACTIVE_JOB_STATUSES,
    BookingStatus,
    DriverAvailability,
    VehicleType,
)

BOOKING_SORT_FIELDS = {
    "created_at": BookingModel.created_at,
    "pickup_date": BookingModel.pickup_date,
    "total_price": BookingModel.total_price,
    "status": BookingModel.status,
}


def _order(field: str, direction: str):
    column = BOOKING_SORT_FIELDS.get(field, BookingModel.created_at)
    return column.asc() if direction.upper() == "ASC" else column.desc()


class BookingRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: BookingModel) -> BookingModel:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_by_id(self, booking_id: int) -> Optional[BookingModel]:
        return await self.session.get(BookingModel, booking_id)

    async def refresh(self, booking: BookingModel) -> BookingModel:
        await self.session.refresh(booking)
        return booking

    async def number_exists(self, booking_number: str) -> bool:
        result = await self.session.execute(
            select(BookingModel.id).where(
                BookingModel.booking_number == booking_number
            )
        )
        return result.first() is not None

    async def find_one(self, *criteria: Any) -> Optional[BookingModel]:
        result = await self.session.execute(
            select(BookingModel).where(*criteria).limit(1)
        )
        return result.scalar_one_or_none()

    async def find_all(
        self,
        *criteria: Any,
        limit: int = 20,
        offset: int = 0,
        sort_by: str = "created_at",
        sort_order: str = "DESC",
    ) -> tuple[list[BookingModel], int]:
        """Page of bookings matching *criteria* plus the unpaged total."""
        total = await self.session.scalar(
            select(func.count()).select_from(BookingModel).where(*criteria)
        )
        result = await self.session.execute(
            select(BookingModel)
            .where(*criteria)
            .order_by(_order(sort_by, sort_order), BookingModel.id)
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def find_active_for_driver(
        self, driver_id: int, exclude_id: Optional[int] = None
    ) -> Optional[BookingModel]:
        criteria = [
            BookingModel.driver_id == driver_id,
            BookingModel.status.in_(list(ACTIVE_JOB_STATUSES)),
        ]
        if exclude_id is not None:
            criteria.append(BookingModel.id != exclude_id)
        result = await self.session.execute(
            select(BookingModel)
            .where(*criteria)
            .order_by(BookingModel.accepted_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_open_jobs(
        self,
        vehicle_types: Iterable[VehicleType],
        now: datetime,
        box: Optional[BoundingBox] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> tuple[list[BookingModel], int]:
        """Pending, unassigned, future bookings a driver could take."""
        criteria = [
            BookingModel.status == BookingStatus.PENDING,
            BookingModel.driver_id.is_(None),
            BookingModel.pickup_date >= now,
            BookingModel.vehicle_type_required.in_(list(vehicle_types)),
        ]
        if box is not None:
            criteria += [
                BookingModel.pickup_lat.between(box.min_lat, box.max_lat),
                BookingModel.pickup_lng.between(box.min_lng, box.max_lng),
            ]

        total = await self.session.scalar(
            select(func.count()).select_from(BookingModel).where(*criteria)
        )
        query = (
            select(BookingModel)
            .where(*criteria)
            .order_by(BookingModel.pickup_date.asc(), BookingModel.id)
        )
        if limit is not None:
            query = query.limit(limit).offset(offset)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total or 0

    async def search(
        self,
        *,
        status: Optional[BookingStatus] = None,
        customer_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        text: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        sort_by: str = "created_at",
        sort_order: str = "DESC",
    ) -> tuple[list[BookingModel], int]:
        criteria: list[Any] = []
        if status is not None:
            criteria.append(BookingModel.status == status)
        if customer_id is not None:
            criteria.append(BookingModel.customer_id == customer_id)
        if driver_id is not None:
            criteria.append(BookingModel.driver_id == driver_id)
        if text:
            pattern = f"%{text}%"
            criteria.append(
                or_(
                    BookingModel.booking_number.like(pattern),
                    BookingModel.pickup_address.like(pattern),
                    BookingModel.dropoff_address.like(pattern),
                )
            )
        return await self.find_all(
            *criteria,
            limit=limit,
            offset=offset,
            sort_by=sort_by,
            sort_order=sort_order,
        )

    async def completed_for_driver(
        self,
        driver_id: int,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> list[BookingModel]:
        query = select(BookingModel).where(
            BookingModel.driver_id == driver_id,
            BookingModel.status == BookingStatus.COMPLETED,
        )
        if since is not None:
            query = query.where(BookingModel.completed_at >= since)
        if until is not None:
            query = query.where(BookingModel.completed_at <= until)
        result = await self.session.execute(
            query.order_by(BookingModel.completed_at.desc())
        )
        return list(result.scalars().all())

    async def assign_driver(
        self,
        booking_id: int,
        driver_id: int,
        vehicle_id: int,
        accepted_at: datetime,
    ) -> int:
        """
        Claim a pending job for *driver_id*.

        Single conditional UPDATE: matches only while the booking is still
        pending and unassigned, so of two concurrent claims at most one
        affects a row.  Returns the affected-row count (0 or 1).
        """
        result = await self.session.execute(
            update(BookingModel)
            .where(
                BookingModel.id == booking_id,
                BookingModel.status == BookingStatus.PENDING,
                BookingModel.driver_id.is_(None),
            )
            .values(
                driver_id=driver_id,
                vehicle_id=vehicle_id,
                status=BookingStatus.ACCEPTED,
                accepted_at=accepted_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def transition(
        self,
        booking_id: int,
        from_status: BookingStatus,
        **values: Any,
    ) -> int:
        """Apply *values* only if the booking is still in *from_status*."""
        result = await self.session.execute(
            update(BookingModel)
            .where(
                BookingModel.id == booking_id,
                BookingModel.status == from_status,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, driver_id: int) -> Optional[DriverModel]:
        return await self.session.get(DriverModel, driver_id)

    async def refresh(self, driver: DriverModel) -> DriverModel:
        await self.session.refresh(driver)
        return driver

    async def mark_busy(self, driver_id: int) -> int:
        """available -> busy; returns 0 if the driver was not available."""
        result = await self.session.execute(
            update(DriverModel)
            .where(
                DriverModel.id == driver_id,
                DriverModel.availability_status == DriverAvailability.AVAILABLE,
            )
            .values(availability_status=DriverAvailability.BUSY)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def release(self, driver_id: int, completed_trip: bool = False) -> int:
        """Back to available regardless of the prior status."""
        values: dict[str, Any] = {
            "availability_status": DriverAvailability.AVAILABLE,
        }
        if completed_trip:
            values["total_trips"] = DriverModel.total_trips + 1
        result = await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def set_availability(
        self, driver_id: int, status: DriverAvailability
    ) -> int:
        result = await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id)
            .values(availability_status=status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def set_availability_if_idle(
        self, driver_id: int, status: DriverAvailability
    ) -> int:
        """Self-service status change; matches no row while the driver holds an active booking."""
        active_job = (
            select(BookingModel.id)
            .where(
                BookingModel.driver_id == driver_id,
                BookingModel.status.in_(list(ACTIVE_JOB_STATUSES)),
            )
            .exists()
        )
        result = await self.session.execute(
            update(DriverModel)
            .where(DriverModel.id == driver_id, ~active_job)
            .values(availability_status=status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount


class VehicleRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_for_driver(self, driver_id: int) -> Sequence[VehicleModel]:
        result = await self.session.execute(
            select(VehicleModel)
            .where(
                VehicleModel.driver_id == driver_id,
                VehicleModel.is_active.is_(True),
            )
            .order_by(VehicleModel.id)
        )
        return list(result.scalars().all())


class UserRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[UserModel]:
        return await self.session.get(UserModel, user_id)
