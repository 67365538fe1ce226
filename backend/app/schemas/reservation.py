"""Pydantic schemas for reservations and their availability ledger.

All models serialize with camelCase aliases (``startDate``, ``dailyAvailability``)
and accept either the alias or the Python field name on input.
"""
from __future__ import annotations

import re
import uuid
from datetime import date, datetime, time
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from app.models.reservation import TimeType

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _coerce_calendar_value(value: Any) -> Any:
    """Turn bare calendar dates into naive midnight datetimes.

    Naive values are read as local wall-clock time; ISO instants keep their
    offset so the service can move them into the local zone.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str) and _DATE_ONLY.match(value.strip()):
        return datetime.combine(date.fromisoformat(value.strip()), time.min)
    return value


CalendarValue = Annotated[datetime, BeforeValidator(_coerce_calendar_value)]
TimeOfDay = Annotated[str, Field(pattern=r"^([01]?\d|2[0-3]):[0-5]\d$")]
SlotDuration = Literal[60, 120, 240]


class ApiModel(BaseModel):
    """Base model using camelCase names on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeSlot(ApiModel):
    """A bookable block within a day."""

    start_time: str
    end_time: str
    max_participants: int = Field(ge=1)
    current_bookings: int = Field(default=0, ge=0)
    is_available: bool = True


class DayAvailability(ApiModel):
    """One ledger entry per active calendar day."""

    date: date
    max_participants: int = Field(ge=1)
    current_bookings: int = Field(default=0, ge=0)
    is_available: bool = True
    start_time: str | None = None
    end_time: str | None = None
    time_slots: list[TimeSlot] | None = None


class ReservationDates(ApiModel):
    """Stored calendar range, in the local time zone."""

    start_date: date
    end_date: date | None = None
    exclude_dates: list[date] = Field(default_factory=list)


class ReservationTime(ApiModel):
    start_time: TimeOfDay | None = None
    end_time: TimeOfDay | None = None


class CustomTime(ApiModel):
    date: date
    start_time: TimeOfDay
    end_time: TimeOfDay


class OptionChoice(ApiModel):
    name: str
    price: Decimal = Field(default=Decimal("0"), ge=Decimal("0"))


class ReservationOption(ApiModel):
    category_name: str
    category_description: str | None = None
    choices: list[OptionChoice]


class Discount(ApiModel):
    type: Literal["percentage", "fixed"]
    value: Decimal = Field(ge=Decimal("0"))
    min_days: int = Field(ge=2)
    name: str
    description: str | None = None


class ReservationFields(ApiModel):
    """Fields shared by the stored document and its read model."""

    event_name: str = Field(min_length=1, max_length=255)
    event_type: Literal["reservation"] = "reservation"
    description: str
    price_per_day_per_participant: Decimal = Field(ge=Decimal("0"))
    image: str | None = None
    dates: ReservationDates
    time_type: TimeType = TimeType.SAME
    time: ReservationTime = Field(default_factory=ReservationTime)
    custom_times: list[CustomTime] = Field(default_factory=list)
    slot_duration_minutes: SlotDuration | None = None
    max_participants_per_slot: int | None = Field(default=None, ge=1)
    daily_availability: list[DayAvailability] = Field(default_factory=list)
    options: list[ReservationOption] | None = None
    is_discount_available: bool = False
    discount: Discount | None = None

    @field_validator("event_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("eventName must not be blank")
        return stripped


class ReservationDocument(ReservationFields):
    """Full stored document, validated before every write."""


class ReservationRead(ReservationFields):
    """Serialized reservation representation."""

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field(alias="enableTimeSlots")  # type: ignore[prop-decorator]
    @property
    def enable_time_slots(self) -> bool:
        return self.time_type == TimeType.SAME


class ReservationDatesCreate(ApiModel):
    start_date: CalendarValue
    end_date: CalendarValue | None = None
    exclude_dates: list[CalendarValue] = Field(default_factory=list)


class ReservationCreate(ApiModel):
    """Payload for creating reservations."""

    event_name: str = Field(min_length=1, max_length=255)
    event_type: Literal["reservation"] = "reservation"
    description: str
    price_per_day_per_participant: Decimal = Field(ge=Decimal("0"))
    image: str | None = None
    dates: ReservationDatesCreate
    time_type: TimeType = TimeType.SAME
    time: ReservationTime = Field(default_factory=ReservationTime)
    custom_times: list[CustomTime] = Field(default_factory=list)
    slot_duration_minutes: SlotDuration | None = None
    max_participants_per_slot: int | None = Field(default=None, ge=1)
    max_participants_per_day: int | None = Field(default=None, ge=1)
    options: list[ReservationOption] | None = None
    is_discount_available: bool = False
    discount: Discount | None = None


class ReservationDatesUpdate(ApiModel):
    start_date: CalendarValue | None = None
    end_date: CalendarValue | None = None
    exclude_dates: list[CalendarValue] | None = None


class ReservationUpdate(ApiModel):
    """Mutable reservation fields; omitted fields keep their stored value."""

    event_name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    price_per_day_per_participant: Decimal | None = Field(
        default=None, ge=Decimal("0")
    )
    image: str | None = None
    dates: ReservationDatesUpdate | None = None
    time_type: TimeType | None = None
    time: ReservationTime | None = None
    custom_times: list[CustomTime] | None = None
    slot_duration_minutes: SlotDuration | None = None
    max_participants_per_slot: int | None = Field(default=None, ge=1)
    max_participants_per_day: int | None = Field(default=None, ge=1)
    daily_availability: list[DayAvailability] | None = None
    options: list[ReservationOption] | None = None
    is_discount_available: bool | None = None
    discount: Discount | None = None

    def touches_dates(self) -> bool:
        """Return True when any of start, end or excluded dates was supplied."""
        return self.dates is not None and any(
            getattr(self.dates, name) is not None
            for name in ("start_date", "end_date", "exclude_dates")
        )


class SlotSummary(ApiModel):
    start_time: str
    end_time: str
    max_participants: int
    current_bookings: int
    remaining: int
    is_bookable: bool


class DaySummary(ApiModel):
    """Remaining capacity for one ledger day."""

    date: date
    max_participants: int
    current_bookings: int
    remaining: int
    is_bookable: bool
    start_time: str | None = None
    end_time: str | None = None
    time_slots: list[SlotSummary] | None = None


class AvailabilitySummary(ApiModel):
    reservation_id: uuid.UUID
    timezone: str
    days: list[DaySummary]
