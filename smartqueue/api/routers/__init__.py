"""
API Routers

Exports all routers for the FastAPI application.
"""
from .health import router as health_router
from .tickets import router as tickets_router

__all__ = [
    "health_router",
    "tickets_router",
]
