"""
Vehicle API Endpoints.

Fleet managers register, edit and retire vehicles; every authenticated
role may read them.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.db.session import get_db
from fleetflow.app.core.clock import Clock, get_clock
from fleetflow.app.core.dependencies import get_current_user
from fleetflow.app.core.guards import require_role, MANAGERS
from fleetflow.app.models.fleet_enums import VehicleStatus, VehicleType
from fleetflow.app.schemas.vehicle import VehicleCreate, VehicleUpdate, VehicleResponse, VehicleListResponse
from fleetflow.app.services.fleet_registry import VehicleService
from fleetflow.app.services.maintenance_scheduling import MaintenanceService
from fleetflow.app.services.audit import log_user_event, AuditAction

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


@router.get("", response_model=VehicleListResponse)
async def list_vehicles(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    status_filter: Optional[VehicleStatus] = Query(None, alias="status"),
    vehicle_type: Optional[VehicleType] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    List vehicles.

    Maintenance locks are reconciled with today's date first, so a record
    whose day has arrived shows its vehicle IN_SHOP.
    """
    await MaintenanceService.reconcile(db, clock.now())

    vehicles, total = await VehicleService.list_vehicles(
        db, page=page, page_size=page_size, status=status_filter, vehicle_type=vehicle_type
    )

    return VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    vehicle = await VehicleService.get(db, vehicle_id)
    return VehicleResponse.model_validate(vehicle)


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db)
):
    """Register a vehicle (Fleet Manager only)."""
    vehicle = await VehicleService.create(db, vehicle_data)

    await log_user_event(
        db, current_user, AuditAction.VEHICLE_CREATED, "vehicle", vehicle.id,
        metadata={"uid": vehicle.uid, "license_plate": vehicle.license_plate}
    )

    return VehicleResponse.model_validate(vehicle)


@router.put("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    vehicle_data: VehicleUpdate = ...,
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Edit a vehicle (Fleet Manager only).

    Status may only be toggled between AVAILABLE and RETIRED here; ON_TRIP
    and IN_SHOP are driven by trips and maintenance. A reactivated vehicle
    with maintenance dated today goes straight to IN_SHOP.
    """
    vehicle = await VehicleService.update(db, vehicle_id, vehicle_data, clock.now())

    await log_user_event(
        db, current_user, AuditAction.VEHICLE_UPDATED, "vehicle", vehicle.id,
        metadata={"updated_fields": list(vehicle_data.model_dump(exclude_unset=True).keys())}
    )

    return VehicleResponse.model_validate(vehicle)


@router.delete("/{vehicle_id}", response_model=VehicleResponse)
async def delete_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    current_user: dict = Depends(require_role(MANAGERS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Soft delete (retire) a vehicle (Fleet Manager only)."""
    vehicle = await VehicleService.soft_delete(db, vehicle_id, clock.now())

    await log_user_event(
        db, current_user, AuditAction.VEHICLE_RETIRED, "vehicle", vehicle.id,
        metadata={"uid": vehicle.uid}
    )

    return VehicleResponse.model_validate(vehicle)
