"""
Smart Ticket Queue API

FastAPI application providing:
1. Admin ticket queue listing with chronological or smart ordering
2. Periodic and on-demand recomputation of ticket urgency scores
3. Per-ticket smart score lookup

Built with FastAPI for async operations on a SQLAlchemy asyncio store.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from smartqueue import __version__
from smartqueue.api.routers import health_router, tickets_router
from smartqueue.core.config import Settings, settings as default_settings
from smartqueue.core.database import close_db, create_engine_from_settings
from smartqueue.middleware.error_handling import register_exception_handlers
from smartqueue.middleware.logging_config import configure_logging, correlation_id_middleware, get_logger
from smartqueue.services.container import build_services
from smartqueue.store import build_ticket_store

logger = get_logger(__name__)


# ==================== Application Factory ====================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; services are wired by the lifespan handler."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown."""
        logger.info("application_starting", version=__version__, environment=settings.environment)

        engine = create_engine_from_settings(settings)
        services = build_services(build_ticket_store(engine), settings)
        app.state.smart_sort = services
        services.scheduler.start()

        yield

        logger.info("application_stopping")
        services.scheduler.shutdown()
        if services.coordinator is not None:
            await services.coordinator.aclose()
        await close_db(engine)

    app = FastAPI(
        title="Smart Ticket Queue",
        description="Urgency scoring and smart ordering for the support admin queue",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(correlation_id_middleware)

    app.include_router(health_router)
    app.include_router(tickets_router)
    return app


configure_logging(log_level=default_settings.log_level, json_logs=default_settings.json_logs)

app = create_app()


if __name__ == "__main__":
    uvicorn.run("smartqueue.main:app", host="0.0.0.0", port=8000)
