"""
Trip lifecycle service.

Handles the DRAFT -> DISPATCHED -> COMPLETED flow and keeps the assigned
vehicle and driver in step with the trip:

- DRAFT trips hold no resources
- dispatch commits vehicle and driver (ON_TRIP) in the same transaction
  that moves the trip
- completion frees them again and carries the end odometer onto the vehicle

Each multi-record write runs in one unit of work; status moves are
compare-and-swap updates through the status guard.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleetflow.app.core.exceptions import (
    ResourceNotFoundError,
    InvalidTransitionError,
    ResourceUnavailableError,
    CapacityExceededError,
    DriverUnavailableError,
    LicenseExpiredError,
    OdometerRegressionError,
)
from fleetflow.app.core.identifiers import generate_uid, TRIP_PREFIX
from fleetflow.app.db.transaction import unit_of_work
from fleetflow.app.models.trip import Trip
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.models.driver import Driver
from fleetflow.app.models.fleet_enums import VehicleStatus, DriverStatus
from fleetflow.app.models.trip_enums import TripStatus
from fleetflow.app.schemas.trip import TripCreate, TripUpdate, TripComplete
from fleetflow.app.services.availability import (
    can_assign_vehicle,
    can_assign_driver,
    fits_capacity,
    CAPACITY_EXCEEDED,
    LICENSE_EXPIRED,
)
from fleetflow.app.services.fuel_attribution import FuelService, delete_trip_fuel_logs
from fleetflow.app.services.maintenance_scheduling import vehicle_has_maintenance_today
from fleetflow.app.services.status_guard import set_vehicle_status, set_driver_status

logger = logging.getLogger("fleetflow.trips")


def _check_vehicle(vehicle: Vehicle, cargo_weight: float) -> None:
    verdict = can_assign_vehicle(vehicle, cargo_weight)
    if verdict:
        return
    if verdict.reason == CAPACITY_EXCEEDED:
        raise CapacityExceededError(cargo_weight, vehicle.max_capacity)
    raise ResourceUnavailableError(
        verdict.message,
        details={"vehicle_id": vehicle.id, "status": vehicle.status.value}
    )


def _check_driver(driver: Driver, now: datetime) -> None:
    verdict = can_assign_driver(driver, now)
    if verdict:
        return
    if verdict.reason == LICENSE_EXPIRED:
        raise LicenseExpiredError(verdict.message, details={"driver_id": driver.id})
    raise DriverUnavailableError(
        verdict.message,
        details={"driver_id": driver.id, "status": driver.status.value}
    )


async def _get_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise ResourceNotFoundError("Vehicle", vehicle_id)
    return vehicle


async def _get_driver(db: AsyncSession, driver_id: int) -> Driver:
    driver = await db.get(Driver, driver_id)
    if not driver:
        raise ResourceNotFoundError("Driver", driver_id)
    return driver


async def _get_trip(db: AsyncSession, trip_id: int) -> Trip:
    result = await db.execute(select(Trip).where(Trip.id == trip_id))
    trip = result.scalar_one_or_none()
    if not trip:
        raise ResourceNotFoundError("Trip", trip_id)
    return trip


async def _move_trip(db: AsyncSession, trip_id: int, source: TripStatus, target: TripStatus, **values) -> None:
    """Compare-and-swap the trip status; a concurrent writer wins and this call fails."""
    result = await db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.status == source)
        .values(status=target, **values)
    )
    if result.rowcount == 0:
        raise InvalidTransitionError(
            f"Trip is no longer {source.value.lower()}",
            details={"trip_id": trip_id, "expected": source.value, "to": target.value}
        )


class TripService:

    @staticmethod
    async def create(db: AsyncSession, data: TripCreate, now: datetime) -> Trip:
        """
        Create a DRAFT trip.

        Vehicle and driver must be assignable right now, but neither is
        touched: they stay free until dispatch.

        Raises:
            ResourceNotFoundError: Vehicle or driver missing
            ResourceUnavailableError: Vehicle not AVAILABLE or soft-deleted
            CapacityExceededError: Cargo heavier than the vehicle allows
            DriverUnavailableError: Driver not ON_DUTY
            LicenseExpiredError: Driver licence expired
        """
        async with unit_of_work(db, "trip.create"):
            vehicle = await _get_vehicle(db, data.vehicle_id)
            driver = await _get_driver(db, data.driver_id)

            _check_vehicle(vehicle, data.cargo_weight)
            _check_driver(driver, now)

            trip = Trip(
                uid=generate_uid(TRIP_PREFIX),
                vehicle_id=vehicle.id,
                driver_id=driver.id,
                origin=data.origin,
                destination=data.destination,
                cargo_weight=data.cargo_weight,
                start_odometer=data.start_odometer if data.start_odometer is not None else vehicle.odometer,
                revenue=0.0,
                status=TripStatus.DRAFT
            )
            db.add(trip)

        await db.refresh(trip)
        logger.info("Trip %s drafted: vehicle %s, driver %s, %skg",
                    trip.uid, trip.vehicle_id, trip.driver_id, trip.cargo_weight)
        return trip

    @staticmethod
    async def get(db: AsyncSession, trip_id: int) -> Trip:
        return await _get_trip(db, trip_id)

    @staticmethod
    async def list_trips(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 50,
        status: Optional[TripStatus] = None
    ) -> tuple[list[Trip], int]:
        """List trips newest first with vehicle and driver loaded."""
        count_query = select(func.count(Trip.id))
        query = select(Trip).options(selectinload(Trip.vehicle), selectinload(Trip.driver))

        if status:
            count_query = count_query.where(Trip.status == status)
            query = query.where(Trip.status == status)

        total = (await db.execute(count_query)).scalar()

        offset = (page - 1) * page_size
        result = await db.execute(
            query.order_by(Trip.created_at.desc(), Trip.id.desc()).offset(offset).limit(page_size)
        )
        return result.scalars().all(), total

    @staticmethod
    async def dispatch(db: AsyncSession, trip_id: int, now: datetime) -> Trip:
        """
        Dispatch a DRAFT trip.

        Flow:
        1. Trip must be DRAFT
        2. Re-check vehicle and driver; either may have changed since drafting
        3. In one transaction: trip DRAFT -> DISPATCHED, vehicle
           AVAILABLE -> ON_TRIP, driver ON_DUTY -> ON_TRIP

        Each status write only matches the expected current status, so if
        another request commits the same vehicle or driver first, this one
        rolls back entirely.
        """
        async with unit_of_work(db, "trip.dispatch"):
            trip = await _get_trip(db, trip_id)
            if trip.status != TripStatus.DRAFT:
                raise InvalidTransitionError(
                    f"Only draft trips can be dispatched (status: {trip.status.value})",
                    details={"trip_id": trip.id, "status": trip.status.value}
                )

            vehicle = await _get_vehicle(db, trip.vehicle_id)
            driver = await _get_driver(db, trip.driver_id)
            _check_vehicle(vehicle, trip.cargo_weight)
            _check_driver(driver, now)

            await _move_trip(db, trip.id, TripStatus.DRAFT, TripStatus.DISPATCHED, dispatched_at=now)

            if not await set_vehicle_status(
                db, vehicle.id, VehicleStatus.ON_TRIP, expected_current=VehicleStatus.AVAILABLE
            ):
                raise ResourceUnavailableError(details={"vehicle_id": vehicle.id})

            if not await set_driver_status(
                db, driver.id, DriverStatus.ON_TRIP, expected_current=DriverStatus.ON_DUTY
            ):
                raise DriverUnavailableError(details={"driver_id": driver.id})

        await db.refresh(trip)
        logger.info("Trip %s dispatched: vehicle %s and driver %s on trip",
                    trip.uid, trip.vehicle_id, trip.driver_id)
        return trip

    @staticmethod
    async def complete(db: AsyncSession, trip_id: int, data: TripComplete, now: datetime) -> Trip:
        """
        Complete a DISPATCHED trip.

        In one transaction the trip records its end odometer and revenue,
        the vehicle takes the end odometer and goes back to AVAILABLE (or
        straight to IN_SHOP when maintenance is dated today), and the driver
        returns to ON_DUTY.

        Fuel reported with the completion is logged afterwards in its own
        transaction; a failure there does not undo the completion.
        """
        async with unit_of_work(db, "trip.complete"):
            trip = await _get_trip(db, trip_id)
            if trip.status != TripStatus.DISPATCHED:
                raise InvalidTransitionError(
                    f"Only dispatched trips can be completed (status: {trip.status.value})",
                    details={"trip_id": trip.id, "status": trip.status.value}
                )

            if data.end_odometer < trip.start_odometer:
                raise OdometerRegressionError(data.end_odometer, trip.start_odometer)

            await _move_trip(
                db, trip.id, TripStatus.DISPATCHED, TripStatus.COMPLETED,
                end_odometer=data.end_odometer,
                revenue=data.revenue,
                completed_at=now
            )

            next_status = VehicleStatus.AVAILABLE
            if await vehicle_has_maintenance_today(db, trip.vehicle_id, now):
                next_status = VehicleStatus.IN_SHOP

            if not await set_vehicle_status(
                db, trip.vehicle_id, next_status,
                expected_current=VehicleStatus.ON_TRIP,
                odometer=data.end_odometer
            ):
                raise InvalidTransitionError(
                    "Vehicle is not on this trip",
                    details={"trip_id": trip.id, "vehicle_id": trip.vehicle_id}
                )

            if not await set_driver_status(
                db, trip.driver_id, DriverStatus.ON_DUTY, expected_current=DriverStatus.ON_TRIP
            ):
                raise InvalidTransitionError(
                    "Driver is not on this trip",
                    details={"trip_id": trip.id, "driver_id": trip.driver_id}
                )

        logger.info("Trip %s completed at %s km, vehicle %s -> %s",
                    trip.uid, data.end_odometer, trip.vehicle_id, next_status.value)

        if data.fuel_liters is not None and data.fuel_cost is not None:
            await FuelService.record_completion_fuel(
                db, trip.id, trip.vehicle_id, data.fuel_liters, data.fuel_cost, now
            )

        await db.refresh(trip)
        return trip

    @staticmethod
    async def update(db: AsyncSession, trip_id: int, data: TripUpdate, now: datetime) -> Trip:
        """
        Edit a DRAFT trip.

        A new vehicle must be assignable with the trip's cargo; a cargo
        change alone only re-checks capacity. A new driver must be
        assignable.
        """
        update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}

        async with unit_of_work(db, "trip.update"):
            trip = await _get_trip(db, trip_id)
            if trip.status != TripStatus.DRAFT:
                raise InvalidTransitionError(
                    "Only draft trips can be edited",
                    details={"trip_id": trip.id, "status": trip.status.value}
                )

            cargo_weight = update_data.get("cargo_weight", trip.cargo_weight)
            new_vehicle_id = update_data.get("vehicle_id", trip.vehicle_id)

            if new_vehicle_id != trip.vehicle_id:
                vehicle = await _get_vehicle(db, new_vehicle_id)
                _check_vehicle(vehicle, cargo_weight)
                if "start_odometer" not in update_data:
                    update_data["start_odometer"] = vehicle.odometer
            elif "cargo_weight" in update_data:
                vehicle = await _get_vehicle(db, trip.vehicle_id)
                if not fits_capacity(vehicle, cargo_weight):
                    raise CapacityExceededError(cargo_weight, vehicle.max_capacity)

            if update_data.get("driver_id", trip.driver_id) != trip.driver_id:
                driver = await _get_driver(db, update_data["driver_id"])
                _check_driver(driver, now)

            for field, value in update_data.items():
                setattr(trip, field, value)

        await db.refresh(trip)
        logger.info("Trip %s updated: %s", trip.uid, ", ".join(update_data) or "no changes")
        return trip

    @staticmethod
    async def delete(db: AsyncSession, trip_id: int, now: datetime) -> tuple[Trip, bool, int]:
        """
        Delete a trip with its fuel logs.

        A DISPATCHED trip frees its driver (ON_DUTY) and its vehicle in the
        same transaction. The vehicle goes to IN_SHOP instead of AVAILABLE
        when it has maintenance dated today.

        Returns:
            (deleted trip, whether resources were released, fuel logs deleted)
        """
        async with unit_of_work(db, "trip.delete"):
            trip = await _get_trip(db, trip_id)

            released = False
            if trip.status == TripStatus.DISPATCHED:
                next_status = VehicleStatus.AVAILABLE
                if await vehicle_has_maintenance_today(db, trip.vehicle_id, now):
                    next_status = VehicleStatus.IN_SHOP

                vehicle_freed = await set_vehicle_status(
                    db, trip.vehicle_id, next_status, expected_current=VehicleStatus.ON_TRIP
                )
                driver_freed = await set_driver_status(
                    db, trip.driver_id, DriverStatus.ON_DUTY, expected_current=DriverStatus.ON_TRIP
                )
                released = vehicle_freed or driver_freed

            fuel_logs_deleted = await delete_trip_fuel_logs(db, trip.id)
            await db.delete(trip)

        logger.info("Trip %s deleted (released=%s, fuel logs=%s)", trip.uid, released, fuel_logs_deleted)
        return trip, released, fuel_logs_deleted
