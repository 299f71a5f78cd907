"""
API v1 Router - Main Entry Point
Aggregates all v1 API endpoints for the spa booking engine
"""
from fastapi import APIRouter

from app.api.v1.endpoints import availability, bookings, staff
from app.core.logging import get_logger
from app.schemas.common.response import ERROR_RESPONSES

logger = get_logger(__name__)

# Create main API v1 router with proper configuration
router = APIRouter(responses=ERROR_RESPONSES)

router.include_router(availability.router, prefix="/availability", tags=["Availability"])
router.include_router(bookings.router, prefix="/bookings", tags=["Booking Management"])
router.include_router(staff.router, prefix="/staff", tags=["Staff Schedules"])

logger.debug(f"API v1 router initialized with {len(router.routes)} routes")
