"""
FastAPI Application Entry Point.

This is the main application file for the FleetFlow Operations Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fleetflow.app.core.config import settings
from fleetflow.app.api.v1.router import router as api_v1_router
from fleetflow.app.db.session import engine, Base
from fleetflow.app.core.observability import configure_logging, ObservabilityMiddleware
from fleetflow.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.models.driver import Driver
from fleetflow.app.models.trip import Trip
from fleetflow.app.models.maintenance import Maintenance
from fleetflow.app.models.fuel_log import FuelLog
from fleetflow.app.models.audit_log import AuditLog
from fleetflow.app.models.dlq import DeadLetterQueue

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    Creates database tables on startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Fleet operations backend: vehicles, drivers, trips, maintenance and fuel",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status and application information
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to FleetFlow Operations Backend API",
        "docs": "/docs",
        "health": "/health",
    }
