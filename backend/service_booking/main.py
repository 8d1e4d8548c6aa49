"""
Service Booking API - Main Application Entry Point

HTTP surface over the booking consistency engine:
- Provider double-booking prevention under concurrent writers
- Cross-entity validation before any booking write
- Booking lifecycle state machine
- Transactional, attributable audit trail of every mutation
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from service_booking.api.errors import register_error_handlers
from service_booking.api.middleware import RequestLoggingMiddleware
from service_booking.api.router import api_router
from service_booking.core.config import get_settings
from service_booking.core.logging import get_logger, setup_logging
from service_booking.core.metrics import metrics_endpoint
from service_booking.db.session import engine
from service_booking.services.strategy_factory import get_interval_index

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        interval_index=type(get_interval_index()).__name__,
    )

    yield

    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Booking consistency engine for a multi-provider service marketplace",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(RequestLoggingMiddleware)
register_error_handlers(app)
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    database = "ok"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        database = f"error: {e.__class__.__name__}"
    return {
        "status": "healthy" if database == "ok" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics():
    return metrics_endpoint()
