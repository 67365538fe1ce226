"""Tests for daily availability and time-slot generation."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from app.models.reservation import TimeType
from app.schemas.reservation import CustomTime, DayAvailability, TimeSlot
from app.services.availability_service import (
    TimeSlotConfig,
    build_daily_availability,
    build_time_slots,
    date_key,
    resolve_timezone,
    summarize_availability,
    to_local_date,
)

NEW_YORK = ZoneInfo("America/New_York")


def _slot_config(start: str = "09:00", end: str = "12:00", duration: int = 60) -> TimeSlotConfig:
    return TimeSlotConfig(
        enable_time_slots=True,
        slot_duration_minutes=duration,
        max_participants_per_slot=4,
        operating_start_time=start,
        operating_end_time=end,
    )


def test_range_without_exclusions_has_one_entry_per_day() -> None:
    ledger = build_daily_availability(
        date(2024, 6, 1), date(2024, 6, 3), [], 8, tz=NEW_YORK
    )

    assert [day.date for day in ledger] == [
        date(2024, 6, 1),
        date(2024, 6, 2),
        date(2024, 6, 3),
    ]
    assert all(day.max_participants == 8 for day in ledger)
    assert all(day.current_bookings == 0 and day.is_available for day in ledger)


def test_excluded_dates_are_skipped() -> None:
    ledger = build_daily_availability(
        "2024-06-01", "2024-06-03", ["2024-06-02"], 8, tz="America/New_York"
    )

    assert [day.date.isoformat() for day in ledger] == ["2024-06-01", "2024-06-03"]


def test_missing_end_date_means_single_day() -> None:
    ledger = build_daily_availability(date(2024, 6, 1), None, tz=NEW_YORK)
    assert [day.date for day in ledger] == [date(2024, 6, 1)]


def test_excluded_start_date_yields_no_entry_for_it() -> None:
    ledger = build_daily_availability(
        date(2024, 6, 1), None, [date(2024, 6, 1)], 5, tz=NEW_YORK
    )
    assert ledger == []


def test_range_coverage_matches_calendar() -> None:
    start = date(2024, 2, 25)
    end = date(2024, 3, 5)
    excluded = {date(2024, 2, 29), date(2024, 3, 3)}

    ledger = build_daily_availability(start, end, excluded, 3, tz=NEW_YORK)

    expected = [
        start + timedelta(days=offset)
        for offset in range((end - start).days + 1)
        if start + timedelta(days=offset) not in excluded
    ]
    assert [day.date for day in ledger] == expected


def test_instants_are_normalized_in_the_given_zone() -> None:
    # 02:00 UTC on June 2nd is still June 1st in New York.
    instant = datetime(2024, 6, 2, 2, 0, tzinfo=UTC)

    new_york = build_daily_availability(instant, instant, tz=NEW_YORK)
    utc = build_daily_availability(instant, instant, tz="UTC")

    assert [day.date for day in new_york] == [date(2024, 6, 1)]
    assert [day.date for day in utc] == [date(2024, 6, 2)]


def test_carry_forward_keeps_bookings_and_closed_days() -> None:
    previous = [
        DayAvailability(date=date(2024, 6, 1), max_participants=5, current_bookings=4),
        DayAvailability(
            date=date(2024, 6, 2),
            max_participants=5,
            current_bookings=1,
            is_available=False,
        ),
    ]

    ledger = build_daily_availability(
        date(2024, 6, 1), date(2024, 6, 4), [], 5, previous, tz=NEW_YORK
    )

    by_day = {day.date: day for day in ledger}
    assert by_day[date(2024, 6, 1)].current_bookings == 4
    assert by_day[date(2024, 6, 2)].current_bookings == 1
    assert by_day[date(2024, 6, 2)].is_available is False
    assert by_day[date(2024, 6, 3)].current_bookings == 0
    assert by_day[date(2024, 6, 3)].is_available is True


def test_regenerating_with_same_inputs_is_idempotent() -> None:
    first = build_daily_availability(
        date(2024, 6, 1),
        date(2024, 6, 5),
        [date(2024, 6, 3)],
        6,
        time_slot_config=_slot_config(),
        tz=NEW_YORK,
    )
    first[0].current_bookings = 2
    first[1].is_available = False
    first[0].time_slots[1].current_bookings = 3  # type: ignore[index]

    second = build_daily_availability(
        date(2024, 6, 1),
        date(2024, 6, 5),
        [date(2024, 6, 3)],
        6,
        first,
        time_slot_config=_slot_config(),
        tz=NEW_YORK,
    )

    assert [day.model_dump() for day in second] == [day.model_dump() for day in first]


def test_custom_times_are_attached_per_day() -> None:
    custom = [
        CustomTime(date=date(2024, 6, 1), start_time="10:00", end_time="14:00"),
        CustomTime(date=date(2024, 6, 3), start_time="12:00", end_time="16:00"),
    ]

    ledger = build_daily_availability(
        date(2024, 6, 1),
        date(2024, 6, 3),
        [],
        4,
        time_type=TimeType.CUSTOM,
        custom_times=custom,
        time_slot_config=_slot_config(),
        tz=NEW_YORK,
    )

    assert (ledger[0].start_time, ledger[0].end_time) == ("10:00", "14:00")
    assert ledger[1].start_time is None and ledger[1].end_time is None
    assert (ledger[2].start_time, ledger[2].end_time) == ("12:00", "16:00")
    # Slots only apply to reservations sharing one operating window.
    assert all(day.time_slots is None for day in ledger)


def test_custom_times_ignored_for_same_time_type() -> None:
    custom = [CustomTime(date=date(2024, 6, 1), start_time="10:00", end_time="14:00")]
    ledger = build_daily_availability(
        date(2024, 6, 1), None, [], 4, time_type="same", custom_times=custom, tz=NEW_YORK
    )
    assert ledger[0].start_time is None


def test_same_time_type_attaches_slots_to_every_day() -> None:
    ledger = build_daily_availability(
        date(2024, 6, 1),
        date(2024, 6, 2),
        [],
        4,
        time_slot_config=_slot_config(),
        tz=NEW_YORK,
    )

    for day in ledger:
        assert [slot.start_time for slot in day.time_slots or []] == [
            "09:00",
            "10:00",
            "11:00",
        ]
    ledger[0].time_slots[0].current_bookings = 1  # type: ignore[index]
    assert ledger[1].time_slots[0].current_bookings == 0  # type: ignore[index]


def test_incomplete_slot_config_skips_slots() -> None:
    config = TimeSlotConfig(
        enable_time_slots=True,
        slot_duration_minutes=60,
        max_participants_per_slot=2,
        operating_start_time="09:00",
        operating_end_time=None,
    )
    ledger = build_daily_availability(
        date(2024, 6, 1), None, [], 4, time_slot_config=config, tz=NEW_YORK
    )
    assert ledger[0].time_slots is None


def test_slots_for_three_hour_window() -> None:
    slots = build_time_slots("09:00", "12:00", 60, 5)

    assert [(slot.start_time, slot.end_time) for slot in slots] == [
        ("09:00", "10:00"),
        ("10:00", "11:00"),
        ("11:00", "12:00"),
    ]
    assert all(slot.max_participants == 5 for slot in slots)
    assert all(slot.current_bookings == 0 and slot.is_available for slot in slots)


@pytest.mark.parametrize(
    ("start", "end", "duration", "expected"),
    [
        ("09:00", "17:00", 120, 4),
        ("09:00", "17:30", 120, 4),
        ("09:00", "12:59", 240, 0),
        ("08:00", "20:00", 240, 3),
        ("10:00", "10:30", 60, 0),
        ("13:00", "09:00", 60, 0),
    ],
)
def test_slot_count_is_floor_of_window(start: str, end: str, duration: int, expected: int) -> None:
    slots = build_time_slots(start, end, duration, 1)

    assert len(slots) == expected
    if slots:
        assert slots[-1].end_time <= end
        assert all(slot.start_time < end for slot in slots)


def test_missing_bounds_give_no_slots() -> None:
    assert build_time_slots(None, "12:00", 60, 1) == []
    assert build_time_slots("09:00", "", 60, 1) == []


def test_slot_carry_forward_matches_on_start_time() -> None:
    existing = [
        TimeSlot(start_time="10:00", end_time="11:00", max_participants=2, current_bookings=2),
        TimeSlot(
            start_time="11:00",
            end_time="12:00",
            max_participants=2,
            current_bookings=1,
            is_available=False,
        ),
        TimeSlot(start_time="16:00", end_time="17:00", max_participants=2, current_bookings=2),
    ]

    slots = build_time_slots("09:00", "13:00", 60, 6, existing_slots=existing)

    by_start = {slot.start_time: slot for slot in slots}
    assert set(by_start) == {"09:00", "10:00", "11:00", "12:00"}
    assert by_start["09:00"].current_bookings == 0
    assert by_start["10:00"].current_bookings == 2
    assert by_start["10:00"].max_participants == 6
    assert by_start["11:00"].is_available is False
    assert by_start["12:00"].current_bookings == 0


def test_non_positive_duration_is_rejected() -> None:
    with pytest.raises(ValueError):
        build_time_slots("09:00", "12:00", 0, 1)


def test_date_helpers() -> None:
    assert to_local_date("2024-06-01", NEW_YORK) == date(2024, 6, 1)
    assert to_local_date("2024-06-01T03:30:00Z", NEW_YORK) == date(2024, 5, 31)
    assert to_local_date(datetime(2024, 6, 1, 23, 0), NEW_YORK) == date(2024, 6, 1)
    assert date_key(datetime(2024, 6, 1, 4, 0, tzinfo=UTC), NEW_YORK) == "2024-06-01"


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(ValueError):
        resolve_timezone("Mars/Olympus_Mons")


def test_summary_reports_remaining_capacity() -> None:
    ledger = [
        DayAvailability(
            date=date(2024, 6, 1),
            max_participants=3,
            current_bookings=3,
            time_slots=[
                TimeSlot(start_time="09:00", end_time="10:00", max_participants=2, current_bookings=1),
                TimeSlot(start_time="10:00", end_time="11:00", max_participants=2, current_bookings=2),
            ],
        ),
        DayAvailability(date=date(2024, 6, 2), max_participants=3, current_bookings=1),
        DayAvailability(
            date=date(2024, 6, 3), max_participants=3, current_bookings=0, is_available=False
        ),
    ]

    summary = summarize_availability(ledger)

    assert [day.remaining for day in summary] == [0, 2, 3]
    assert [day.is_bookable for day in summary] == [False, True, False]
    slots = summary[0].time_slots or []
    assert [slot.remaining for slot in slots] == [1, 0]
    assert [slot.is_bookable for slot in slots] == [True, False]
    assert summary[1].time_slots is None
