"""Common API dependencies."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.db.session import get_session
from app.services.reservation_service import ReservationDefaults


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def get_reservation_defaults() -> ReservationDefaults:
    """Return the time zone and fallback values from configuration."""
    return ReservationDefaults.from_settings(get_settings())
