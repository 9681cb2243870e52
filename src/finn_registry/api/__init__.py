"""
API modules for Finn Registry.

This package contains all API endpoints and routing logic.
"""

from __future__ import annotations

from fastapi import APIRouter

from . import auth, me
from .dependencies import Services, build_services, get_services

# Create main API router
router = APIRouter(prefix="/api")

# Include sub-routers
router.include_router(auth.router)
router.include_router(me.router)

__all__ = ["router", "Services", "build_services", "get_services"]
