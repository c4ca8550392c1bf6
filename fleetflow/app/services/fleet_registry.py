"""
Fleet registry service.

Registration and edits for vehicles and drivers. Status columns are only
touched through the status guard, and only for the manual moves a person
may make: AVAILABLE <-> RETIRED for vehicles, OFF_DUTY / ON_DUTY /
SUSPENDED for drivers.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetflow.app.core.clock import to_local_naive
from fleetflow.app.core.exceptions import (
    ResourceNotFoundError,
    DuplicateKeyError,
    InvalidTransitionError,
    OdometerRegressionError,
    DependentResourceActiveError,
)
from fleetflow.app.core.identifiers import generate_uid, VEHICLE_PREFIX, DRIVER_PREFIX
from fleetflow.app.db.transaction import unit_of_work
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.models.driver import Driver
from fleetflow.app.models.trip import Trip
from fleetflow.app.models.fleet_enums import VehicleStatus, VehicleType, DriverStatus
from fleetflow.app.schemas.vehicle import VehicleCreate, VehicleUpdate
from fleetflow.app.schemas.driver import DriverCreate, DriverUpdate
from fleetflow.app.services.status_guard import set_vehicle_status, set_driver_status
from fleetflow.app.services.maintenance_scheduling import reevaluate_vehicle_lock

logger = logging.getLogger("fleetflow.registry")

MANUAL_VEHICLE_STATUSES = {VehicleStatus.AVAILABLE, VehicleStatus.RETIRED}
MANUAL_DRIVER_STATUSES = {DriverStatus.OFF_DUTY, DriverStatus.ON_DUTY, DriverStatus.SUSPENDED}


async def _ensure_unique_plate(db: AsyncSession, plate: str, exclude_id: Optional[int] = None) -> None:
    query = select(Vehicle.id).where(Vehicle.license_plate == plate)
    if exclude_id is not None:
        query = query.where(Vehicle.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none() is not None:
        raise DuplicateKeyError("License plate already exists", field="license_plate", value=plate)


async def _ensure_unique_license(db: AsyncSession, number: str, exclude_id: Optional[int] = None) -> None:
    query = select(Driver.id).where(Driver.license_number == number)
    if exclude_id is not None:
        query = query.where(Driver.id != exclude_id)
    if (await db.execute(query)).scalar_one_or_none() is not None:
        raise DuplicateKeyError("License number already exists", field="license_number", value=number)


async def get_active_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    """Fetch a vehicle that has not been soft-deleted."""
    result = await db.execute(
        select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.deleted_at.is_(None))
    )
    vehicle = result.scalar_one_or_none()
    if not vehicle:
        raise ResourceNotFoundError("Vehicle", vehicle_id)
    return vehicle


async def get_driver(db: AsyncSession, driver_id: int) -> Driver:
    result = await db.execute(select(Driver).where(Driver.id == driver_id))
    driver = result.scalar_one_or_none()
    if not driver:
        raise ResourceNotFoundError("Driver", driver_id)
    return driver


class VehicleService:

    @staticmethod
    async def create(db: AsyncSession, data: VehicleCreate) -> Vehicle:
        """Register a vehicle. New vehicles start AVAILABLE."""
        async with unit_of_work(db, "vehicle.create"):
            await _ensure_unique_plate(db, data.license_plate)

            vehicle = Vehicle(
                uid=generate_uid(VEHICLE_PREFIX),
                name=data.name,
                license_plate=data.license_plate,
                vehicle_type=data.vehicle_type,
                max_capacity=data.max_capacity,
                odometer=data.odometer,
                acquisition_cost=data.acquisition_cost,
                status=VehicleStatus.AVAILABLE
            )
            db.add(vehicle)
            try:
                await db.flush()
            except IntegrityError:
                # Lost a race with another registration of the same plate
                raise DuplicateKeyError("License plate already exists", field="license_plate", value=data.license_plate)

        await db.refresh(vehicle)
        logger.info("Vehicle %s registered (%s)", vehicle.uid, vehicle.license_plate)
        return vehicle

    @staticmethod
    async def get(db: AsyncSession, vehicle_id: int) -> Vehicle:
        return await get_active_vehicle(db, vehicle_id)

    @staticmethod
    async def list_vehicles(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 50,
        status: Optional[VehicleStatus] = None,
        vehicle_type: Optional[VehicleType] = None
    ) -> tuple[list[Vehicle], int]:
        """List vehicles that have not been soft-deleted, newest first."""
        filters = [Vehicle.deleted_at.is_(None)]
        if status:
            filters.append(Vehicle.status == status)
        if vehicle_type:
            filters.append(Vehicle.vehicle_type == vehicle_type)

        total = (await db.execute(select(func.count(Vehicle.id)).where(*filters))).scalar()

        offset = (page - 1) * page_size
        result = await db.execute(
            select(Vehicle)
            .where(*filters)
            .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        return result.scalars().all(), total

    @staticmethod
    async def update(db: AsyncSession, vehicle_id: int, data: VehicleUpdate, now: datetime) -> Vehicle:
        """
        Edit a vehicle.

        Reactivating a RETIRED vehicle re-applies the maintenance lock, so a
        vehicle with a service dated today lands in IN_SHOP.

        Raises:
            DuplicateKeyError: New plate belongs to another vehicle
            OdometerRegressionError: Odometer would go backwards
            InvalidTransitionError: Status change other than AVAILABLE <-> RETIRED
        """
        update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        new_status = update_data.pop("status", None)

        async with unit_of_work(db, "vehicle.update"):
            vehicle = await get_active_vehicle(db, vehicle_id)

            if "license_plate" in update_data and update_data["license_plate"] != vehicle.license_plate:
                await _ensure_unique_plate(db, update_data["license_plate"], exclude_id=vehicle.id)

            if "odometer" in update_data and update_data["odometer"] < vehicle.odometer:
                raise OdometerRegressionError(
                    update_data["odometer"], vehicle.odometer,
                    message=f"Odometer cannot be decreased (current: {vehicle.odometer})"
                )

            if new_status is not None and new_status != vehicle.status:
                if {vehicle.status, new_status} != MANUAL_VEHICLE_STATUSES:
                    raise InvalidTransitionError(
                        f"Vehicle status can only be toggled between AVAILABLE and RETIRED "
                        f"(current: {vehicle.status.value})",
                        details={"from": vehicle.status.value, "to": new_status.value}
                    )

            for field, value in update_data.items():
                setattr(vehicle, field, value)
            await db.flush()

            if new_status is not None and new_status != vehicle.status:
                if not await set_vehicle_status(db, vehicle.id, new_status, expected_current=vehicle.status):
                    raise InvalidTransitionError(
                        "Vehicle status changed concurrently",
                        details={"vehicle_id": vehicle.id, "to": new_status.value}
                    )
                if new_status == VehicleStatus.AVAILABLE:
                    await reevaluate_vehicle_lock(db, vehicle.id, now)

        await db.refresh(vehicle)
        return vehicle

    @staticmethod
    async def soft_delete(db: AsyncSession, vehicle_id: int, now: datetime) -> Vehicle:
        """
        Retire and hide a vehicle. Trips and logs that reference it are kept.

        Raises:
            DependentResourceActiveError: Vehicle is on a trip
        """
        async with unit_of_work(db, "vehicle.delete"):
            vehicle = await get_active_vehicle(db, vehicle_id)

            if vehicle.status == VehicleStatus.ON_TRIP:
                raise DependentResourceActiveError(
                    "Cannot remove a vehicle that is currently on a trip",
                    details={"vehicle_id": vehicle.id}
                )

            if not await set_vehicle_status(
                db, vehicle.id, VehicleStatus.RETIRED,
                expected_current=vehicle.status,
                deleted_at=to_local_naive(now)
            ):
                raise InvalidTransitionError(
                    "Vehicle status changed concurrently",
                    details={"vehicle_id": vehicle.id}
                )

        await db.refresh(vehicle)
        logger.info("Vehicle %s retired and removed", vehicle.uid)
        return vehicle


class DriverService:

    @staticmethod
    async def create(db: AsyncSession, data: DriverCreate) -> Driver:
        if data.status not in MANUAL_DRIVER_STATUSES:
            raise InvalidTransitionError(
                f"A new driver cannot start as {data.status.value}",
                details={"status": data.status.value}
            )

        async with unit_of_work(db, "driver.create"):
            await _ensure_unique_license(db, data.license_number)

            driver = Driver(
                uid=generate_uid(DRIVER_PREFIX),
                name=data.name,
                license_number=data.license_number,
                license_expiry=to_local_naive(data.license_expiry),
                category=data.category,
                status=data.status,
                safety_score=data.safety_score
            )
            db.add(driver)
            try:
                await db.flush()
            except IntegrityError:
                raise DuplicateKeyError("License number already exists", field="license_number", value=data.license_number)

        await db.refresh(driver)
        logger.info("Driver %s registered (%s)", driver.uid, driver.license_number)
        return driver

    @staticmethod
    async def get(db: AsyncSession, driver_id: int) -> Driver:
        return await get_driver(db, driver_id)

    @staticmethod
    async def list_drivers(
        db: AsyncSession,
        page: int = 1,
        page_size: int = 50,
        status: Optional[DriverStatus] = None
    ) -> tuple[list[Driver], int]:
        count_query = select(func.count(Driver.id))
        query = select(Driver)
        if status:
            count_query = count_query.where(Driver.status == status)
            query = query.where(Driver.status == status)

        total = (await db.execute(count_query)).scalar()

        offset = (page - 1) * page_size
        result = await db.execute(
            query.order_by(Driver.created_at.desc(), Driver.id.desc()).offset(offset).limit(page_size)
        )
        return result.scalars().all(), total

    @staticmethod
    async def update(db: AsyncSession, driver_id: int, data: DriverUpdate) -> Driver:
        """
        Edit a driver.

        ON_TRIP is owned by the trip lifecycle: it can neither be set here
        nor left while the driver is on a trip.
        """
        update_data = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        new_status = update_data.pop("status", None)

        async with unit_of_work(db, "driver.update"):
            driver = await get_driver(db, driver_id)

            if "license_number" in update_data and update_data["license_number"] != driver.license_number:
                await _ensure_unique_license(db, update_data["license_number"], exclude_id=driver.id)

            status_changes = new_status is not None and new_status != driver.status
            if status_changes:
                if driver.status == DriverStatus.ON_TRIP:
                    raise InvalidTransitionError(
                        "Driver is on a trip; status returns to ON_DUTY when the trip completes",
                        details={"from": driver.status.value, "to": new_status.value}
                    )
                if new_status not in MANUAL_DRIVER_STATUSES:
                    raise InvalidTransitionError(
                        f"Driver status cannot be set to {new_status.value} manually",
                        details={"from": driver.status.value, "to": new_status.value}
                    )

            if "license_expiry" in update_data:
                update_data["license_expiry"] = to_local_naive(update_data["license_expiry"])

            for field, value in update_data.items():
                setattr(driver, field, value)
            await db.flush()

            if status_changes:
                if not await set_driver_status(db, driver.id, new_status, expected_current=driver.status):
                    raise InvalidTransitionError(
                        "Driver status changed concurrently",
                        details={"driver_id": driver.id, "to": new_status.value}
                    )

        await db.refresh(driver)
        return driver

    @staticmethod
    async def delete(db: AsyncSession, driver_id: int) -> Driver:
        """
        Remove a driver.

        Raises:
            DependentResourceActiveError: Driver is on a trip or trips still reference them
        """
        async with unit_of_work(db, "driver.delete"):
            driver = await get_driver(db, driver_id)

            if driver.status == DriverStatus.ON_TRIP:
                raise DependentResourceActiveError(
                    "Cannot remove a driver who is currently on a trip",
                    details={"driver_id": driver.id}
                )

            trip_count = (await db.execute(
                select(func.count(Trip.id)).where(Trip.driver_id == driver.id)
            )).scalar()
            if trip_count:
                raise DependentResourceActiveError(
                    f"Cannot remove a driver referenced by {trip_count} trip(s)",
                    details={"driver_id": driver.id, "trips": trip_count}
                )

            await db.delete(driver)

        logger.info("Driver %s removed", driver.uid)
        return driver
