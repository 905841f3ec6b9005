"""
API v1 package.

Contains versioned API routes for the Vendor Lifecycle API.
"""

from fastapi import APIRouter

from src.api.v1.navigation import router as navigation_router
from src.api.v1.routes import router as registration_router

router = APIRouter()
router.include_router(registration_router)
router.include_router(navigation_router)

__all__ = ["router"]
