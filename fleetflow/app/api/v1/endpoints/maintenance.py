"""
Maintenance API Endpoints.

Logging maintenance dated today puts the vehicle IN_SHOP; removing or
re-dating the last such record releases it.
"""

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.db.session import get_db
from fleetflow.app.core.clock import Clock, get_clock
from fleetflow.app.core.dependencies import get_current_user
from fleetflow.app.core.guards import require_role, OPERATIONS, MANAGERS
from fleetflow.app.schemas.maintenance import (
    MaintenanceCreate,
    MaintenanceUpdate,
    MaintenanceResponse,
    MaintenanceListItem,
    MaintenanceListResponse,
    MaintenanceDeleteResponse,
)
from fleetflow.app.services.maintenance_scheduling import MaintenanceService
from fleetflow.app.services.audit import log_user_event, AuditAction

router = APIRouter(prefix="/maintenances", tags=["Maintenance"])


@router.get("", response_model=MaintenanceListResponse)
async def list_maintenances(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    records, total = await MaintenanceService.list_records(db, page=page, page_size=page_size)

    return MaintenanceListResponse(
        maintenances=[MaintenanceListItem.model_validate(r) for r in records],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=MaintenanceResponse, status_code=status.HTTP_201_CREATED)
async def create_maintenance(
    maintenance_data: MaintenanceCreate,
    current_user: dict = Depends(require_role(OPERATIONS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Log maintenance for a vehicle. Dates before today are rejected."""
    record = await MaintenanceService.create(db, maintenance_data, clock.now())

    await log_user_event(
        db, current_user, AuditAction.MAINTENANCE_LOGGED, "maintenance", record.id,
        metadata={"vehicle_id": record.vehicle_id, "date": record.date.isoformat(), "cost": record.cost}
    )

    return MaintenanceResponse.model_validate(record)


@router.put("/{maintenance_id}", response_model=MaintenanceResponse)
async def update_maintenance(
    maintenance_id: int = Path(..., description="Maintenance record ID"),
    maintenance_data: MaintenanceUpdate = ...,
    current_user: dict = Depends(require_role(OPERATIONS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    record = await MaintenanceService.update(db, maintenance_id, maintenance_data, clock.now())

    await log_user_event(
        db, current_user, AuditAction.MAINTENANCE_UPDATED, "maintenance", record.id,
        metadata={"updated_fields": list(maintenance_data.model_dump(exclude_unset=True).keys())}
    )

    return MaintenanceResponse.model_validate(record)


@router.delete("/{maintenance_id}", response_model=MaintenanceDeleteResponse)
async def delete_maintenance(
    maintenance_id: int = Path(..., description="Maintenance record ID"),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Delete a maintenance record (Fleet Manager only)."""
    record, released = await MaintenanceService.delete(db, maintenance_id, clock.now())

    await log_user_event(
        db, current_user, AuditAction.MAINTENANCE_DELETED, "maintenance", maintenance_id,
        metadata={"vehicle_id": record.vehicle_id, "vehicle_released": released}
    )

    return MaintenanceDeleteResponse(
        maintenance_id=maintenance_id,
        vehicle_id=record.vehicle_id,
        vehicle_released=released
    )
