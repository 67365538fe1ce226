"""Reservation documents and their availability ledger."""
from __future__ import annotations

import enum
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base
from app.models.mixins import TimestampMixin


class TimeType(str, enum.Enum):
    """Whether every day shares one operating window or each day has its own."""

    SAME = "same"
    CUSTOM = "custom"


class Reservation(TimestampMixin, Base):
    """A bookable multi-day reservation product.

    Nested structures (dates, operating window, custom times, options,
    discount and the daily availability ledger) are stored as JSON documents
    shaped by the schemas in ``app.schemas.reservation``.
    """

    __tablename__ = "reservations"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_type: Mapped[str] = mapped_column(
        String(32), nullable=False, default="reservation", index=True
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price_per_day_per_participant: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False
    )
    image: Mapped[str | None] = mapped_column(String(1024))

    dates: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    time_type: Mapped[TimeType] = mapped_column(
        Enum(TimeType), nullable=False, default=TimeType.SAME
    )
    time: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    custom_times: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )

    # Denormalized copy of ``time_type == SAME``; written by the reservation service only.
    enable_time_slots: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    slot_duration_minutes: Mapped[int | None] = mapped_column(Integer)
    max_participants_per_slot: Mapped[int | None] = mapped_column(Integer)

    daily_availability: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )

    options: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON)
    is_discount_available: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    discount: Mapped[dict[str, Any] | None] = mapped_column(JSON)
