"""API version 1 routes."""

from fastapi import APIRouter

from app.api.v1 import calendar

router = APIRouter(prefix="/api/v1")

# Include routers
router.include_router(calendar.router)
