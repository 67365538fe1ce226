"""ORM models package export."""

from app.models.reservation import Reservation, TimeType

__all__ = ["Reservation", "TimeType"]
