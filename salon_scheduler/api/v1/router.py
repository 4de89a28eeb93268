"""
API v1 router setup
Organized into: public (no auth), booking engine, and business-scoped routes
"""
from fastapi import APIRouter

from salon_scheduler.api.v1 import availability, bookings, appointments
from salon_scheduler.api.v1.public import booking as public_booking

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required)
# ============================================================================
api_v1_router.include_router(
    public_booking.router,
    prefix="/public",
    tags=["Public"]
)

# ============================================================================
# BOOKING ENGINE ROUTES
# GET/PATCH/DELETE /bookings/{id} and /appointments/* need a JWT business context
# ============================================================================
api_v1_router.include_router(availability.router, tags=["Availability"])
api_v1_router.include_router(bookings.router, tags=["Bookings"])
api_v1_router.include_router(appointments.router, tags=["Appointments"])


@api_v1_router.get("/health", tags=["Info"])
async def health_check():
    return {
        "status": "healthy",
        "version": "1.0",
        "service": "Salon Scheduler API"
    }
