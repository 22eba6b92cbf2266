"""
Routes package - organized API routes.

This package provides modular route definitions.
Import the combined router for use in main.py.
"""
from fastapi import APIRouter

from .auth_routes import router as auth_router
from .activity_routes import router as activity_router
from .slot_routes import router as slot_router
from .booking_routes import router as booking_router
from .market_routes import router as market_router
from .wallet_routes import router as wallet_router
from .user_routes import router as user_router
from .report_routes import router as report_router
from .health_routes import router as health_router

# Combined router that includes all sub-routers
combined_router = APIRouter()
combined_router.include_router(auth_router, tags=["auth"])
combined_router.include_router(activity_router, tags=["activities"])
combined_router.include_router(slot_router, tags=["slots"])
combined_router.include_router(booking_router, tags=["bookings"])
combined_router.include_router(market_router, tags=["market"])
combined_router.include_router(wallet_router, tags=["wallet"])
combined_router.include_router(user_router, tags=["users"])
combined_router.include_router(report_router, tags=["reports"])
combined_router.include_router(health_router, tags=["health"])

__all__ = [
    'combined_router', 'auth_router', 'activity_router', 'slot_router', 'booking_router',
    'market_router', 'wallet_router', 'user_router', 'report_router', 'health_router'
]
