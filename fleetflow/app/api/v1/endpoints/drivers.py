"""
Driver API Endpoints.

Fleet managers and safety officers maintain the driver roster.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.db.session import get_db
from fleetflow.app.core.dependencies import get_current_user
from fleetflow.app.core.guards import require_role, SAFETY
from fleetflow.app.models.fleet_enums import DriverStatus
from fleetflow.app.schemas.driver import DriverCreate, DriverUpdate, DriverResponse, DriverListResponse
from fleetflow.app.services.fleet_registry import DriverService
from fleetflow.app.services.audit import log_user_event, AuditAction

router = APIRouter(prefix="/drivers", tags=["Drivers"])


@router.get("", response_model=DriverListResponse)
async def list_drivers(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    status_filter: Optional[DriverStatus] = Query(None, alias="status"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    drivers, total = await DriverService.list_drivers(db, page=page, page_size=page_size, status=status_filter)

    return DriverListResponse(
        drivers=[DriverResponse.model_validate(d) for d in drivers],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    driver = await DriverService.get(db, driver_id)
    return DriverResponse.model_validate(driver)


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    current_user: dict = Depends(require_role(SAFETY)),
    db: AsyncSession = Depends(get_db)
):
    """Register a driver (Fleet Manager or Safety Officer)."""
    driver = await DriverService.create(db, driver_data)

    await log_user_event(
        db, current_user, AuditAction.DRIVER_CREATED, "driver", driver.id,
        metadata={"uid": driver.uid, "license_number": driver.license_number}
    )

    return DriverResponse.model_validate(driver)


@router.put("/{driver_id}", response_model=DriverResponse)
async def update_driver(
    driver_id: int = Path(..., description="Driver ID"),
    driver_data: DriverUpdate = ...,
    current_user: dict = Depends(require_role(SAFETY)),
    db: AsyncSession = Depends(get_db)
):
    """Edit a driver, including duty status (Fleet Manager or Safety Officer)."""
    driver = await DriverService.update(db, driver_id, driver_data)

    await log_user_event(
        db, current_user, AuditAction.DRIVER_UPDATED, "driver", driver.id,
        metadata={
            "updated_fields": list(driver_data.model_dump(exclude_unset=True).keys()),
            "status": driver.status.value
        }
    )

    return DriverResponse.model_validate(driver)


@router.delete("/{driver_id}", response_model=DriverResponse)
async def delete_driver(
    driver_id: int = Path(..., description="Driver ID"),
    current_user: dict = Depends(require_role(SAFETY)),
    db: AsyncSession = Depends(get_db)
):
    """
    Remove a driver (Fleet Manager or Safety Officer).

    Refused while the driver is on a trip or still referenced by trips.
    """
    driver = await DriverService.delete(db, driver_id)

    await log_user_event(
        db, current_user, AuditAction.DRIVER_DELETED, "driver", driver_id,
        metadata={"uid": driver.uid, "license_number": driver.license_number}
    )

    return DriverResponse.model_validate(driver)
