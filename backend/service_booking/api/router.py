"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter

from service_booking.api.routes import audit, bookings, providers, reviews

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings.router)
api_router.include_router(reviews.router)
api_router.include_router(providers.router)
api_router.include_router(audit.router)
