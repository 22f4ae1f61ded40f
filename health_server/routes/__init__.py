"""API routes for the health reminder server."""

from fastapi import APIRouter

from .health import router as health_router
from .reminders import router as reminders_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(reminders_router)

__all__ = ["api_router"]
