"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fleetflow.app.api.v1.endpoints import vehicles, drivers, trips, maintenance, fuel

router = APIRouter()

# Fleet registry
router.include_router(vehicles.router)
router.include_router(drivers.router)

# Trip lifecycle
router.include_router(trips.router)

# Maintenance scheduling
router.include_router(maintenance.router)

# Fuel attribution
router.include_router(fuel.router)
