"""FastAPI dependency injection helpers."""

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from movenow.infrastructure.database import async_session_factory
from movenow.infrastructure.pricing_store import PricingConfigStore


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_pricing_store(request: Request) -> PricingConfigStore:
    """The process-wide pricing store installed by ``create_app``."""
    return request.app.state.pricing_store
