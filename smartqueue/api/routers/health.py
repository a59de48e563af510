"""
Health Check Endpoints Router

Provides health check endpoints for monitoring and load balancers.
"""
from fastapi import APIRouter, Request

from smartqueue.core.database import ping
from smartqueue.core.utils import utcnow
from smartqueue.middleware.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(
    tags=["health"],
    responses={404: {"description": "Not found"}},
)


@router.get("/health")
async def health_check(request: Request):
    """
    Basic health check endpoint.

    Always 200 while the process is up; reports whether smart sort is active
    and, when a database is configured, whether it answers.
    """
    services = getattr(request.app.state, "smart_sort", None)
    store = services.store if services is not None else None

    engine = getattr(store, "engine", None)
    if engine is None:
        database = "not_configured"
    else:
        database = "connected" if await ping(engine) else "disconnected"

    return {
        "status": "healthy",
        "database": database,
        "features": {
            "smart_sort": {
                "store_configured": store is not None,
                "scheduler_running": bool(services and services.scheduler.running),
                "recompute_in_flight": bool(services and services.coordinator and services.coordinator.in_flight),
            }
        },
        "timestamp": utcnow().isoformat()
    }
