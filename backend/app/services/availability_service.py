"""Daily availability ledger and time-slot generation for reservations.

Everything in this module is a pure function over its inputs. The local time
zone is always passed in explicitly; callers resolve it from settings.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.models.reservation import TimeType
from app.schemas.reservation import (
    CustomTime,
    DayAvailability,
    DaySummary,
    SlotSummary,
    TimeSlot,
)

_TIME_FORMAT = "%H:%M"


@dataclass(slots=True, frozen=True)
class TimeSlotConfig:
    """Slot subdivision settings applied to every day of a ``same`` reservation."""

    enable_time_slots: bool
    slot_duration_minutes: int | None = None
    max_participants_per_slot: int | None = None
    operating_start_time: str | None = None
    operating_end_time: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(
            self.enable_time_slots
            and self.slot_duration_minutes
            and self.max_participants_per_slot
            and self.operating_start_time
            and self.operating_end_time
        )


def resolve_timezone(name: str | ZoneInfo) -> ZoneInfo:
    """Return the zone for ``name``; unknown names raise ``ValueError``."""
    if isinstance(name, ZoneInfo):
        return name
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name!r}") from exc


def to_local_date(value: date | datetime | str, tz: ZoneInfo) -> date:
    """Return the calendar day ``value`` falls on in ``tz``.

    Plain dates and ``YYYY-MM-DD`` strings are already calendar days. Aware
    datetimes are converted into ``tz`` first; naive datetimes are taken as
    wall-clock time in ``tz``.
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz).date()
    return value


def date_key(value: date | datetime | str, tz: ZoneInfo) -> str:
    """Return the ``YYYY-MM-DD`` key used to match ledger days."""
    return to_local_date(value, tz).isoformat()


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from ``start`` through ``end`` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def _minutes_of_day(value: str) -> int:
    parsed = datetime.strptime(value.strip(), _TIME_FORMAT)
    return parsed.hour * 60 + parsed.minute


def _format_minutes(total: int) -> str:
    return f"{total // 60:02d}:{total % 60:02d}"


def build_time_slots(
    operating_start: str | None,
    operating_end: str | None,
    slot_duration_minutes: int,
    max_participants_per_slot: int,
    existing_slots: Iterable[TimeSlot] | None = None,
) -> list[TimeSlot]:
    """Split one operating window into back-to-back slots.

    A slot is only emitted when it ends on or before ``operating_end``; a
    trailing partial interval is dropped. Booking counters are carried over
    from ``existing_slots`` by matching ``start_time``.
    """
    if not operating_start or not operating_end:
        return []
    if slot_duration_minutes <= 0:
        raise ValueError("slot_duration_minutes must be positive")

    previous_by_start = {slot.start_time: slot for slot in existing_slots or ()}
    cursor = _minutes_of_day(operating_start)
    window_end = _minutes_of_day(operating_end)

    slots: list[TimeSlot] = []
    while cursor + slot_duration_minutes <= window_end:
        start_label = _format_minutes(cursor)
        previous = previous_by_start.get(start_label)
        slots.append(
            TimeSlot(
                start_time=start_label,
                end_time=_format_minutes(cursor + slot_duration_minutes),
                max_participants=max_participants_per_slot,
                current_bookings=previous.current_bookings if previous else 0,
                is_available=previous.is_available if previous else True,
            )
        )
        cursor += slot_duration_minutes
    return slots


def build_daily_availability(
    start_date: date | datetime | str,
    end_date: date | datetime | str | None,
    exclude_dates: Iterable[date | datetime | str] = (),
    max_participants_per_day: int = 1,
    existing_availability: Sequence[DayAvailability] = (),
    time_type: TimeType | str = TimeType.SAME,
    custom_times: Sequence[CustomTime] = (),
    time_slot_config: TimeSlotConfig | None = None,
    *,
    tz: ZoneInfo | str,
) -> list[DayAvailability]:
    """Expand a reservation's date range into one ledger entry per active day.

    ``current_bookings`` and ``is_available`` survive regeneration: they are
    copied from the ``existing_availability`` entry with the same date key.
    """
    zone = resolve_timezone(tz)
    kind = TimeType(time_type)
    first_day = to_local_date(start_date, zone)
    last_day = to_local_date(end_date, zone) if end_date is not None else first_day

    excluded = {date_key(value, zone) for value in exclude_dates}
    previous_by_day = {
        date_key(entry.date, zone): entry for entry in existing_availability
    }
    custom_by_day: dict[str, CustomTime] = {}
    if kind is TimeType.CUSTOM:
        custom_by_day = {date_key(entry.date, zone): entry for entry in custom_times}

    slot_config = None
    if (
        kind is TimeType.SAME
        and time_slot_config is not None
        and time_slot_config.is_complete
    ):
        slot_config = time_slot_config

    ledger: list[DayAvailability] = []
    for day in iter_days(first_day, last_day):
        key = day.isoformat()
        if key in excluded:
            continue
        previous = previous_by_day.get(key)
        fields: dict[str, object] = {
            "date": day,
            "max_participants": max_participants_per_day,
            "current_bookings": previous.current_bookings if previous else 0,
            "is_available": previous.is_available if previous else True,
        }
        custom = custom_by_day.get(key)
        if custom is not None:
            fields["start_time"] = custom.start_time
            fields["end_time"] = custom.end_time
        if slot_config is not None:
            slots = build_time_slots(
                slot_config.operating_start_time,
                slot_config.operating_end_time,
                slot_config.slot_duration_minutes or 0,
                slot_config.max_participants_per_slot or 0,
                existing_slots=previous.time_slots if previous else None,
            )
            if slots:
                fields["time_slots"] = slots
        ledger.append(DayAvailability.model_validate(fields))
    return ledger


def _remaining(max_participants: int, current_bookings: int) -> int:
    return max(max_participants - current_bookings, 0)


def summarize_availability(ledger: Sequence[DayAvailability]) -> list[DaySummary]:
    """Return remaining capacity per day (and per slot) for booking screens."""
    summaries: list[DaySummary] = []
    for day in ledger:
        day_remaining = _remaining(day.max_participants, day.current_bookings)
        slot_summaries = None
        if day.time_slots is not None:
            slot_summaries = [
                SlotSummary(
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                    max_participants=slot.max_participants,
                    current_bookings=slot.current_bookings,
                    remaining=_remaining(slot.max_participants, slot.current_bookings),
                    is_bookable=slot.is_available
                    and day.is_available
                    and slot.current_bookings < slot.max_participants,
                )
                for slot in day.time_slots
            ]
        summaries.append(
            DaySummary(
                date=day.date,
                max_participants=day.max_participants,
                current_bookings=day.current_bookings,
                remaining=day_remaining,
                is_bookable=day.is_available and day_remaining > 0,
                start_time=day.start_time,
                end_time=day.end_time,
                time_slots=slot_summaries,
            )
        )
    return summaries
