"""Service layer exports."""
from app.services import availability_service, reservation_service

__all__ = [
    "availability_service",
    "reservation_service",
]
