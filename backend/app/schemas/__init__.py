"""Schema exports."""

from app.schemas.reservation import (
    AvailabilitySummary,
    CustomTime,
    DayAvailability,
    DaySummary,
    Discount,
    OptionChoice,
    ReservationCreate,
    ReservationDates,
    ReservationDatesCreate,
    ReservationDatesUpdate,
    ReservationDocument,
    ReservationOption,
    ReservationRead,
    ReservationTime,
    ReservationUpdate,
    SlotSummary,
    TimeSlot,
)

__all__ = [
    "AvailabilitySummary",
    "CustomTime",
    "DayAvailability",
    "DaySummary",
    "Discount",
    "OptionChoice",
    "ReservationCreate",
    "ReservationDates",
    "ReservationDatesCreate",
    "ReservationDatesUpdate",
    "ReservationDocument",
    "ReservationOption",
    "ReservationRead",
    "ReservationTime",
    "ReservationUpdate",
    "SlotSummary",
    "TimeSlot",
]
