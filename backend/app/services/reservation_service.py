"""Reservation document store and lifecycle helpers."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from pydantic import ValidationError
from pydantic_core import to_jsonable_python
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings
from app.models.reservation import Reservation, TimeType
from app.schemas.reservation import (
    CustomTime,
    DayAvailability,
    ReservationCreate,
    ReservationDates,
    ReservationDocument,
    ReservationTime,
    ReservationUpdate,
)
from app.services.availability_service import (
    TimeSlotConfig,
    build_daily_availability,
    resolve_timezone,
    to_local_date,
)

logger = logging.getLogger(__name__)

_JSON_FIELDS = frozenset(
    {"dates", "time", "custom_times", "daily_availability", "options", "discount"}
)


class ReservationError(Exception):
    """Base class for reservation service failures."""


class ReservationNotFoundError(ReservationError, LookupError):
    """Raised when a reservation id does not resolve to a stored record."""


class ReservationValidationError(ReservationError, ValueError):
    """Raised when a reservation document fails validation."""


@dataclass(slots=True, frozen=True)
class ReservationDefaults:
    """Time zone and fallback values used when building availability."""

    timezone: str = "America/New_York"
    slot_duration_minutes: int = 60
    max_participants_per_slot: int = 1
    max_participants_per_day: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> ReservationDefaults:
        return cls(
            timezone=settings.local_timezone,
            slot_duration_minutes=settings.default_slot_duration_minutes,
            max_participants_per_slot=settings.default_max_participants_per_slot,
            max_participants_per_day=settings.default_max_participants_per_day,
        )


def _describe_validation_error(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(messages)


def _document_from_record(reservation: Reservation) -> dict[str, Any]:
    return {
        field: getattr(reservation, field) for field in ReservationDocument.model_fields
    }


def _column_values(document: ReservationDocument, fields: Sequence[str]) -> dict[str, Any]:
    python_values = document.model_dump()
    json_values = document.model_dump(mode="json")
    return {
        field: json_values[field] if field in _JSON_FIELDS else python_values[field]
        for field in fields
    }


async def find_by_id(
    session: AsyncSession, reservation_id: uuid.UUID
) -> Reservation | None:
    """Return the stored reservation or ``None``."""
    return await session.get(Reservation, reservation_id)


async def find_by_id_and_update(
    session: AsyncSession,
    reservation_id: uuid.UUID,
    patch: Mapping[str, Any],
    *,
    validate: bool = True,
) -> Reservation | None:
    """Apply ``patch`` to the stored document and return the updated record.

    With ``validate`` the merged document is checked against
    ``ReservationDocument`` before anything is written. Keys that are not
    document fields are ignored.
    """
    reservation = await session.get(Reservation, reservation_id)
    if reservation is None:
        return None

    fields = [field for field in patch if field in ReservationDocument.model_fields]
    if validate:
        merged = _document_from_record(reservation)
        merged.update({field: patch[field] for field in fields})
        try:
            document = ReservationDocument.model_validate(merged)
        except ValidationError as exc:
            raise ReservationValidationError(_describe_validation_error(exc)) from exc
        updates = _column_values(document, fields)
    else:
        updates = {
            field: to_jsonable_python(patch[field]) if field in _JSON_FIELDS else patch[field]
            for field in fields
        }

    for field, value in updates.items():
        setattr(reservation, field, value)
    reservation.enable_time_slots = TimeType(reservation.time_type) is TimeType.SAME
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(reservation)
    return reservation


def _stored_ledger(reservation: Reservation) -> list[DayAvailability]:
    return [
        DayAvailability.model_validate(entry)
        for entry in reservation.daily_availability or []
    ]


def _require_custom_times(ledger: Sequence[DayAvailability]) -> None:
    if any(not day.start_time or not day.end_time for day in ledger):
        raise ReservationValidationError(
            "All days must have start and end times when using custom times"
        )


async def create_reservation(
    session: AsyncSession,
    *,
    payload: ReservationCreate,
    defaults: ReservationDefaults,
) -> Reservation:
    """Create a reservation and materialize its availability ledger."""
    zone = resolve_timezone(defaults.timezone)
    time_type = payload.time_type
    slots_enabled = time_type is TimeType.SAME

    max_per_day = payload.max_participants_per_day
    if max_per_day is None and slots_enabled:
        max_per_day = payload.max_participants_per_slot or defaults.max_participants_per_slot
    if max_per_day is None:
        raise ReservationValidationError("maxParticipantsPerDay is required")
    if slots_enabled and not payload.time.start_time:
        raise ReservationValidationError(
            "Start time is required when using same time for all days"
        )

    start_date = to_local_date(payload.dates.start_date, zone)
    end_date = (
        to_local_date(payload.dates.end_date, zone)
        if payload.dates.end_date is not None
        else None
    )
    exclude_dates = sorted(
        {to_local_date(value, zone) for value in payload.dates.exclude_dates}
    )

    slot_duration = None
    per_slot = None
    if slots_enabled:
        slot_duration = payload.slot_duration_minutes or defaults.slot_duration_minutes
        per_slot = payload.max_participants_per_slot or defaults.max_participants_per_slot

    ledger = build_daily_availability(
        start_date,
        end_date,
        exclude_dates,
        max_per_day,
        (),
        time_type,
        payload.custom_times,
        TimeSlotConfig(
            enable_time_slots=slots_enabled,
            slot_duration_minutes=slot_duration,
            max_participants_per_slot=per_slot,
            operating_start_time=payload.time.start_time,
            operating_end_time=payload.time.end_time,
        ),
        tz=zone,
    )
    if time_type is TimeType.CUSTOM:
        _require_custom_times(ledger)

    try:
        document = ReservationDocument(
            event_name=payload.event_name,
            event_type=payload.event_type,
            description=payload.description,
            price_per_day_per_participant=payload.price_per_day_per_participant,
            image=payload.image,
            dates=ReservationDates(
                start_date=start_date, end_date=end_date, exclude_dates=exclude_dates
            ),
            time_type=time_type,
            time=payload.time,
            custom_times=payload.custom_times if not slots_enabled else [],
            slot_duration_minutes=slot_duration,
            max_participants_per_slot=per_slot,
            daily_availability=ledger,
            options=payload.options,
            is_discount_available=payload.is_discount_available,
            discount=payload.discount,
        )
    except ValidationError as exc:
        raise ReservationValidationError(_describe_validation_error(exc)) from exc

    reservation = Reservation(
        **_column_values(document, list(ReservationDocument.model_fields)),
        enable_time_slots=slots_enabled,
    )
    session.add(reservation)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        raise
    await session.refresh(reservation)
    logger.info(
        "Created reservation %s with %d available days", reservation.id, len(ledger)
    )
    return reservation


def is_reservation_expired(
    reservation: Reservation, *, tz: str, now: datetime | None = None
) -> bool:
    """Return True once the reservation's final day has ended in ``tz``.

    The final day ends at ``time.endTime`` when set, otherwise at midnight
    after it.
    """
    zone = resolve_timezone(tz)
    dates = ReservationDates.model_validate(reservation.dates)
    operating = ReservationTime.model_validate(reservation.time or {})
    last_day: date = dates.end_date or dates.start_date
    if operating.end_time:
        hours, minutes = (int(part) for part in operating.end_time.split(":"))
        ends_at = datetime.combine(last_day, time(hours, minutes), tzinfo=zone)
    else:
        ends_at = datetime.combine(last_day + timedelta(days=1), time.min, tzinfo=zone)
    current = now or datetime.now(zone)
    return current > ends_at


async def cleanup_expired_reservations(
    session: AsyncSession, *, tz: str, now: datetime | None = None
) -> int:
    """Delete reservations whose final day has passed; return how many."""
    result = await session.execute(select(Reservation))
    expired = [
        reservation
        for reservation in result.scalars().all()
        if is_reservation_expired(reservation, tz=tz, now=now)
    ]
    if not expired:
        return 0
    for reservation in expired:
        await session.delete(reservation)
    await session.commit()
    logger.info("Removed %d expired reservations", len(expired))
    return len(expired)


async def list_reservations(
    session: AsyncSession,
    *,
    event_type: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[Reservation]:
    """Return reservations newest first, optionally filtered by start date."""
    stmt = select(Reservation).order_by(Reservation.created_at.desc())
    stmt = stmt.where(Reservation.event_type == (event_type or "reservation"))
    start_key = Reservation.dates["start_date"].as_string()
    if from_date is not None:
        stmt = stmt.where(start_key >= from_date.isoformat())
    if to_date is not None:
        stmt = stmt.where(start_key <= to_date.isoformat())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_reservation(
    session: AsyncSession, *, reservation_id: uuid.UUID
) -> Reservation:
    reservation = await find_by_id(session, reservation_id)
    if reservation is None:
        raise ReservationNotFoundError("Reservation not found")
    return reservation


async def delete_reservation(
    session: AsyncSession, *, reservation_id: uuid.UUID
) -> None:
    reservation = await get_reservation(session, reservation_id=reservation_id)
    await session.delete(reservation)
    await session.commit()
    logger.info("Deleted reservation %s", reservation_id)


def requires_regeneration(payload: ReservationUpdate) -> bool:
    """Return True when the update touches the dates or per-day capacity."""
    return payload.touches_dates() or payload.max_participants_per_day is not None


def _regenerated_fields(
    existing: Reservation,
    payload: ReservationUpdate,
    defaults: ReservationDefaults,
) -> dict[str, Any]:
    zone = resolve_timezone(defaults.timezone)
    stored_dates = ReservationDates.model_validate(existing.dates)
    requested = payload.dates

    start_date = stored_dates.start_date
    end_date = stored_dates.end_date
    exclude_dates: list[date] = list(stored_dates.exclude_dates)
    if requested is not None:
        if requested.start_date is not None:
            start_date = to_local_date(requested.start_date, zone)
        if requested.end_date is not None:
            end_date = to_local_date(requested.end_date, zone)
        if requested.exclude_dates is not None:
            exclude_dates = [to_local_date(value, zone) for value in requested.exclude_dates]
    exclude_dates = sorted(set(exclude_dates))

    previous_ledger = _stored_ledger(existing)
    max_per_day = payload.max_participants_per_day or (
        previous_ledger[0].max_participants
        if previous_ledger
        else defaults.max_participants_per_day
    )

    time_type = payload.time_type or TimeType(existing.time_type)
    stored_time = ReservationTime.model_validate(existing.time or {})
    requested_time = payload.time or ReservationTime()
    custom_times = (
        payload.custom_times
        if payload.custom_times is not None
        else [CustomTime.model_validate(entry) for entry in existing.custom_times or []]
    )
    config = TimeSlotConfig(
        enable_time_slots=time_type is TimeType.SAME,
        slot_duration_minutes=payload.slot_duration_minutes
        or existing.slot_duration_minutes
        or defaults.slot_duration_minutes,
        max_participants_per_slot=payload.max_participants_per_slot
        or existing.max_participants_per_slot
        or defaults.max_participants_per_slot,
        operating_start_time=requested_time.start_time or stored_time.start_time,
        operating_end_time=requested_time.end_time or stored_time.end_time,
    )

    ledger = build_daily_availability(
        start_date,
        end_date,
        exclude_dates,
        max_per_day,
        previous_ledger,
        time_type,
        custom_times,
        config,
        tz=zone,
    )
    if time_type is TimeType.CUSTOM:
        _require_custom_times(ledger)
    return {
        "dates": ReservationDates(
            start_date=start_date, end_date=end_date, exclude_dates=exclude_dates
        ),
        "daily_availability": ledger,
    }


async def update_reservation(
    session: AsyncSession,
    *,
    reservation_id: uuid.UUID,
    payload: ReservationUpdate,
    defaults: ReservationDefaults,
) -> Reservation:
    """Patch a reservation, regenerating its ledger when dates or capacity change.

    Regeneration keeps ``currentBookings``/``isAvailable`` per day and per
    slot from the stored ledger. ``maxParticipantsPerDay`` only feeds the
    ledger and is never persisted on its own.
    """
    existing = await find_by_id(session, reservation_id)
    if existing is None:
        raise ReservationNotFoundError("Reservation not found")

    patch: dict[str, Any] = {
        field: getattr(payload, field)
        for field in payload.model_fields_set
        if field not in {"dates", "max_participants_per_day"}
    }
    if requires_regeneration(payload):
        patch.update(_regenerated_fields(existing, payload, defaults))
        logger.info(
            "Regenerated availability for reservation %s (%d days)",
            reservation_id,
            len(patch["daily_availability"]),
        )

    updated = await find_by_id_and_update(session, reservation_id, patch, validate=True)
    if updated is None:
        raise ReservationNotFoundError("Reservation not found")
    return updated
