"""
Status guard for vehicles and drivers.

Vehicle.status and Driver.status are shared by the trip lifecycle and
maintenance scheduling. Every write to either column goes through this
module: the transition tables below are the single source of which moves
are legal, and each write is a compare-and-swap UPDATE so a concurrent
writer can never be silently overwritten.
"""

import logging
from typing import Iterable, Optional, Union

from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.core.exceptions import InvalidTransitionError
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.models.driver import Driver
from fleetflow.app.models.trip import Trip
from fleetflow.app.models.fleet_enums import VehicleStatus, DriverStatus
from fleetflow.app.models.trip_enums import TripStatus

logger = logging.getLogger("fleetflow.status")


VEHICLE_TRANSITIONS = {
    VehicleStatus.AVAILABLE: {VehicleStatus.ON_TRIP, VehicleStatus.IN_SHOP, VehicleStatus.RETIRED},
    VehicleStatus.ON_TRIP: {VehicleStatus.AVAILABLE, VehicleStatus.IN_SHOP},
    VehicleStatus.IN_SHOP: {VehicleStatus.AVAILABLE, VehicleStatus.RETIRED},
    VehicleStatus.RETIRED: {VehicleStatus.AVAILABLE},
}

DRIVER_TRANSITIONS = {
    DriverStatus.OFF_DUTY: {DriverStatus.ON_DUTY, DriverStatus.SUSPENDED},
    DriverStatus.ON_DUTY: {DriverStatus.OFF_DUTY, DriverStatus.SUSPENDED, DriverStatus.ON_TRIP},
    DriverStatus.SUSPENDED: {DriverStatus.OFF_DUTY, DriverStatus.ON_DUTY},
    DriverStatus.ON_TRIP: {DriverStatus.ON_DUTY},
}


def _sources_for(transitions: dict, new_status) -> set:
    """Statuses a record may currently hold to move to `new_status` (self-loops are no-ops)."""
    return {current for current, targets in transitions.items() if new_status in targets or current == new_status}


def _resolve_sources(transitions: dict, new_status, expected_current) -> set:
    allowed = _sources_for(transitions, new_status)
    if expected_current is None:
        return allowed

    if isinstance(expected_current, (VehicleStatus, DriverStatus)):
        expected = {expected_current}
    else:
        expected = set(expected_current)

    sources = allowed & expected
    if not sources:
        raise InvalidTransitionError(
            f"Cannot move status from {sorted(s.value for s in expected)} to {new_status.value}",
            details={"from": sorted(s.value for s in expected), "to": new_status.value}
        )
    return sources


async def set_vehicle_status(
    db: AsyncSession,
    vehicle_id: int,
    new_status: VehicleStatus,
    expected_current: Optional[Union[VehicleStatus, Iterable[VehicleStatus]]] = None,
    **values
) -> bool:
    """
    Move a non-deleted vehicle to `new_status`.

    Args:
        db: Database session (caller owns the transaction)
        vehicle_id: Vehicle to update
        new_status: Target status
        expected_current: Status (or statuses) the vehicle must hold right now;
            defaults to every status the transition table allows
        **values: Extra columns written in the same UPDATE (odometer, deleted_at)

    Returns:
        True if the row matched and was written, False if the vehicle was
        missing, deleted, or held a different status

    Raises:
        InvalidTransitionError: If no expected status may legally move to new_status
    """
    sources = _resolve_sources(VEHICLE_TRANSITIONS, new_status, expected_current)

    result = await db.execute(
        update(Vehicle)
        .where(
            Vehicle.id == vehicle_id,
            Vehicle.deleted_at.is_(None),
            Vehicle.status.in_(sorted(sources))
        )
        .values(status=new_status, **values)
    )
    changed = result.rowcount > 0

    if changed:
        logger.debug("Vehicle %s -> %s", vehicle_id, new_status.value)
    else:
        logger.debug("Vehicle %s not moved to %s (expected one of %s)",
                     vehicle_id, new_status.value, sorted(s.value for s in sources))
    return changed


async def bulk_set_vehicle_status(
    db: AsyncSession,
    vehicle_ids: Iterable[int],
    new_status: VehicleStatus,
    expected_current: Union[VehicleStatus, Iterable[VehicleStatus]]
) -> int:
    """
    Move many vehicles in one UPDATE. Returns the number of rows changed.
    """
    ids = list(vehicle_ids)
    if not ids:
        return 0

    sources = _resolve_sources(VEHICLE_TRANSITIONS, new_status, expected_current)

    result = await db.execute(
        update(Vehicle)
        .where(
            Vehicle.id.in_(ids),
            Vehicle.deleted_at.is_(None),
            Vehicle.status.in_(sorted(sources))
        )
        .values(status=new_status)
    )
    return result.rowcount


async def set_driver_status(
    db: AsyncSession,
    driver_id: int,
    new_status: DriverStatus,
    expected_current: Optional[Union[DriverStatus, Iterable[DriverStatus]]] = None
) -> bool:
    """
    Move a driver to `new_status` with the same compare-and-swap contract
    as set_vehicle_status.
    """
    sources = _resolve_sources(DRIVER_TRANSITIONS, new_status, expected_current)

    result = await db.execute(
        update(Driver)
        .where(Driver.id == driver_id, Driver.status.in_(sorted(sources)))
        .values(status=new_status)
    )
    changed = result.rowcount > 0

    if changed:
        logger.debug("Driver %s -> %s", driver_id, new_status.value)
    return changed


async def count_dispatched_trips(
    db: AsyncSession,
    vehicle_id: Optional[int] = None,
    driver_id: Optional[int] = None
) -> int:
    """
    Count DISPATCHED trips for a vehicle and/or driver.

    Should be 0 or 1: a vehicle or driver is ON_TRIP for exactly one
    dispatched trip.
    """
    query = select(func.count(Trip.id)).where(Trip.status == TripStatus.DISPATCHED)
    if vehicle_id is not None:
        query = query.where(Trip.vehicle_id == vehicle_id)
    if driver_id is not None:
        query = query.where(Trip.driver_id == driver_id)

    result = await db.execute(query)
    return result.scalar()
