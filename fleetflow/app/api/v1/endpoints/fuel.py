"""
Fuel Log API Endpoints.
"""

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.db.session import get_db
from fleetflow.app.core.clock import Clock, get_clock
from fleetflow.app.core.dependencies import get_current_user
from fleetflow.app.core.guards import require_role, OPERATIONS, MANAGERS
from fleetflow.app.schemas.fuel_log import (
    FuelLogCreate,
    FuelLogUpdate,
    FuelLogResponse,
    FuelLogListItem,
    FuelLogListResponse,
)
from fleetflow.app.services.fuel_attribution import FuelService
from fleetflow.app.services.audit import log_user_event, AuditAction

router = APIRouter(prefix="/fuel", tags=["Fuel"])


@router.get("", response_model=FuelLogListResponse)
async def list_fuel_logs(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    logs, total = await FuelService.list_logs(db, page=page, page_size=page_size)

    return FuelLogListResponse(
        fuel_logs=[FuelLogListItem.model_validate(log) for log in logs],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=FuelLogResponse, status_code=status.HTTP_201_CREATED)
async def create_fuel_log(
    fuel_data: FuelLogCreate,
    current_user: dict = Depends(require_role(OPERATIONS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Record a fuel purchase, optionally attributed to a trip."""
    log = await FuelService.log(db, fuel_data, clock.now())

    await log_user_event(
        db, current_user, AuditAction.FUEL_LOGGED, "fuel_log", log.id,
        metadata={"vehicle_id": log.vehicle_id, "trip_id": log.trip_id, "liters": log.liters, "cost": log.cost}
    )

    return FuelLogResponse.model_validate(log)


@router.put("/{fuel_log_id}", response_model=FuelLogResponse)
async def update_fuel_log(
    fuel_log_id: int = Path(..., description="Fuel log ID"),
    fuel_data: FuelLogUpdate = ...,
    current_user: dict = Depends(require_role(OPERATIONS)),
    db: AsyncSession = Depends(get_db)
):
    log = await FuelService.update(db, fuel_log_id, fuel_data)

    await log_user_event(
        db, current_user, AuditAction.FUEL_UPDATED, "fuel_log", log.id,
        metadata={"updated_fields": list(fuel_data.model_dump(exclude_unset=True).keys())}
    )

    return FuelLogResponse.model_validate(log)


@router.delete("/{fuel_log_id}", response_model=FuelLogResponse)
async def delete_fuel_log(
    fuel_log_id: int = Path(..., description="Fuel log ID"),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    """Delete a fuel log (Fleet Manager only)."""
    log = await FuelService.delete(db, fuel_log_id)

    await log_user_event(
        db, current_user, AuditAction.FUEL_DELETED, "fuel_log", fuel_log_id,
        metadata={"vehicle_id": log.vehicle_id, "trip_id": log.trip_id}
    )

    return FuelLogResponse.model_validate(log)
