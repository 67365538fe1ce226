"""Reservation management API."""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.config import get_settings
from app.schemas.reservation import (
    AvailabilitySummary,
    DayAvailability,
    ReservationCreate,
    ReservationRead,
    ReservationUpdate,
)
from app.services import reservation_service
from app.services.availability_service import summarize_availability
from app.services.reservation_service import (
    ReservationDefaults,
    ReservationNotFoundError,
    ReservationValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _not_found(exc: ReservationNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.get("", response_model=list[ReservationRead], summary="List reservations")
async def list_reservations(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    defaults: Annotated[ReservationDefaults, Depends(deps.get_reservation_defaults)],
    event_type: Annotated[str | None, Query(alias="type")] = None,
    from_date: Annotated[date | None, Query(alias="fromDate")] = None,
    to_date: Annotated[date | None, Query(alias="toDate")] = None,
) -> list[ReservationRead]:
    if get_settings().cleanup_expired_on_list:
        await reservation_service.cleanup_expired_reservations(
            session, tz=defaults.timezone
        )
    reservations = await reservation_service.list_reservations(
        session,
        event_type=event_type,
        from_date=from_date,
        to_date=to_date,
    )
    return [ReservationRead.model_validate(obj) for obj in reservations]


@router.post(
    "",
    response_model=ReservationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create reservation",
)
async def create_reservation(
    payload: ReservationCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    defaults: Annotated[ReservationDefaults, Depends(deps.get_reservation_defaults)],
) -> ReservationRead:
    try:
        reservation = await reservation_service.create_reservation(
            session, payload=payload, defaults=defaults
        )
    except IntegrityError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unable to create reservation",
        ) from exc
    except ReservationValidationError as exc:
        logger.info("Rejected reservation %r: %s", payload.event_name, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return ReservationRead.model_validate(reservation)


@router.get(
    "/{reservation_id}", response_model=ReservationRead, summary="Get reservation"
)
async def get_reservation(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> ReservationRead:
    try:
        reservation = await reservation_service.get_reservation(
            session, reservation_id=reservation_id
        )
    except ReservationNotFoundError as exc:
        raise _not_found(exc) from exc
    return ReservationRead.model_validate(reservation)


@router.put(
    "/{reservation_id}", response_model=ReservationRead, summary="Update reservation"
)
@router.patch(
    "/{reservation_id}",
    response_model=ReservationRead,
    summary="Partially update reservation",
)
async def update_reservation(
    reservation_id: uuid.UUID,
    payload: ReservationUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    defaults: Annotated[ReservationDefaults, Depends(deps.get_reservation_defaults)],
) -> ReservationRead:
    try:
        updated = await reservation_service.update_reservation(
            session,
            reservation_id=reservation_id,
            payload=payload,
            defaults=defaults,
        )
    except ReservationNotFoundError as exc:
        raise _not_found(exc) from exc
    except ReservationValidationError as exc:
        logger.info("Rejected update for reservation %s: %s", reservation_id, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return ReservationRead.model_validate(updated)


@router.delete(
    "/{reservation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete reservation",
)
async def delete_reservation(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
) -> None:
    try:
        await reservation_service.delete_reservation(
            session, reservation_id=reservation_id
        )
    except ReservationNotFoundError as exc:
        raise _not_found(exc) from exc
    return None


@router.get(
    "/{reservation_id}/availability",
    response_model=AvailabilitySummary,
    summary="Remaining capacity per day and slot",
)
async def get_reservation_availability(
    reservation_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    defaults: Annotated[ReservationDefaults, Depends(deps.get_reservation_defaults)],
) -> AvailabilitySummary:
    try:
        reservation = await reservation_service.get_reservation(
            session, reservation_id=reservation_id
        )
    except ReservationNotFoundError as exc:
        raise _not_found(exc) from exc
    ledger = [
        DayAvailability.model_validate(entry)
        for entry in reservation.daily_availability or []
    ]
    return AvailabilitySummary(
        reservation_id=reservation.id,
        timezone=defaults.timezone,
        days=summarize_availability(ledger),
    )
