"""
Trip API Endpoints.

Dispatchers and fleet managers draft, dispatch and complete trips.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.db.session import get_db
from fleetflow.app.core.clock import Clock, get_clock
from fleetflow.app.core.dependencies import get_current_user
from fleetflow.app.core.guards import require_role, OPERATIONS
from fleetflow.app.models.trip_enums import TripStatus
from fleetflow.app.schemas.trip import (
    TripCreate,
    TripUpdate,
    TripComplete,
    TripResponse,
    TripListItem,
    TripListResponse,
    TripDeleteResponse,
)
from fleetflow.app.services.trip_lifecycle import TripService
from fleetflow.app.services.audit import log_user_event, AuditAction

router = APIRouter(prefix="/trips", tags=["Trips"])


@router.get("", response_model=TripListResponse)
async def list_trips(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    status_filter: Optional[TripStatus] = Query(None, alias="status"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List trips, newest first, with vehicle and driver summaries."""
    trips, total = await TripService.list_trips(db, page=page, page_size=page_size, status=status_filter)

    return TripListResponse(
        trips=[TripListItem.model_validate(t) for t in trips],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    trip = await TripService.get(db, trip_id)
    return TripResponse.model_validate(trip)


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    trip_data: TripCreate,
    current_user: dict = Depends(require_role(OPERATIONS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Draft a trip.

    The vehicle must be AVAILABLE with enough capacity and the driver ON_DUTY
    with a valid licence. Neither is reserved until dispatch.
    """
    trip = await TripService.create(db, trip_data, clock.now())

    await log_user_event(
        db, current_user, AuditAction.TRIP_CREATED, "trip", trip.id,
        metadata={
            "uid": trip.uid,
            "vehicle_id": trip.vehicle_id,
            "driver_id": trip.driver_id,
            "cargo_weight": trip.cargo_weight
        }
    )

    return TripResponse.model_validate(trip)


@router.put("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: int = Path(..., description="Trip ID"),
    trip_data: TripUpdate = ...,
    current_user: dict = Depends(require_role(OPERATIONS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """Edit a DRAFT trip."""
    trip = await TripService.update(db, trip_id, trip_data, clock.now())

    await log_user_event(
        db, current_user, AuditAction.TRIP_UPDATED, "trip", trip.id,
        metadata={"updated_fields": list(trip_data.model_dump(exclude_unset=True).keys())}
    )

    return TripResponse.model_validate(trip)


@router.patch("/{trip_id}/dispatch", response_model=TripResponse)
async def dispatch_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(OPERATIONS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Dispatch a DRAFT trip.

    Vehicle and driver move to ON_TRIP in the same transaction as the trip.
    """
    trip = await TripService.dispatch(db, trip_id, clock.now())

    await log_user_event(
        db, current_user, AuditAction.TRIP_DISPATCHED, "trip", trip.id,
        metadata={"vehicle_id": trip.vehicle_id, "driver_id": trip.driver_id}
    )

    return TripResponse.model_validate(trip)


@router.patch("/{trip_id}/complete", response_model=TripResponse)
async def complete_trip(
    trip_id: int = Path(..., description="Trip ID"),
    completion: TripComplete = ...,
    current_user: dict = Depends(require_role(OPERATIONS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Complete a DISPATCHED trip.

    Frees vehicle and driver and records the end odometer on the vehicle.
    When fuel_liters and fuel_cost are both given, a fuel log is attached
    to the trip; if that write fails the trip is still completed.
    """
    trip = await TripService.complete(db, trip_id, completion, clock.now())

    await log_user_event(
        db, current_user, AuditAction.TRIP_COMPLETED, "trip", trip.id,
        metadata={
            "end_odometer": trip.end_odometer,
            "revenue": trip.revenue,
            "distance": trip.end_odometer - trip.start_odometer
        }
    )

    return TripResponse.model_validate(trip)


@router.delete("/{trip_id}", response_model=TripDeleteResponse)
async def delete_trip(
    trip_id: int = Path(..., description="Trip ID"),
    current_user: dict = Depends(require_role(OPERATIONS)),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock)
):
    """
    Delete a trip and its fuel logs.

    A dispatched trip releases its vehicle and driver first.
    """
    trip, released, fuel_logs_deleted = await TripService.delete(db, trip_id, clock.now())

    await log_user_event(
        db, current_user, AuditAction.TRIP_DELETED, "trip", trip_id,
        metadata={
            "uid": trip.uid,
            "status": trip.status.value,
            "resources_released": released,
            "fuel_logs_deleted": fuel_logs_deleted
        }
    )

    return TripDeleteResponse(
        trip_id=trip_id,
        resources_released=released,
        fuel_logs_deleted=fuel_logs_deleted
    )
