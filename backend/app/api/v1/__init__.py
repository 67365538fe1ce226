"""Versioned API router."""

from fastapi import APIRouter

from . import health, reservations

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(
    reservations.router, prefix="/reservations", tags=["reservations"]
)
