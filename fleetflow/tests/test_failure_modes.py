"""
Failure Injection Tests.

Validates that storage failures roll a unit of work back and surface as
StorageError (HTTP 500) without leaving partial writes.
"""

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from fleetflow.app.core.exceptions import StorageError, ResourceNotFoundError
from fleetflow.app.db.transaction import unit_of_work
from fleetflow.app.models.fleet_enums import VehicleStatus, DriverStatus
from fleetflow.app.models.trip_enums import TripStatus
from fleetflow.app.schemas.vehicle import VehicleUpdate
from fleetflow.app.services.fleet_registry import VehicleService


async def test_storage_failure_becomes_storage_error(db_session):
    with pytest.raises(StorageError) as exc_info:
        async with unit_of_work(db_session, "test.op"):
            raise OperationalError("UPDATE vehicles", {}, Exception("disk I/O error"))

    assert exc_info.value.status_code == 500
    assert exc_info.value.details == {"operation": "test.op"}


async def test_constraint_failure_becomes_storage_error(db_session):
    with pytest.raises(StorageError) as exc_info:
        async with unit_of_work(db_session, "test.op"):
            raise IntegrityError("INSERT INTO trips", {}, Exception("FOREIGN KEY constraint failed"))

    assert "no changes were applied" in exc_info.value.message


async def test_application_errors_pass_through(db_session):
    with pytest.raises(ResourceNotFoundError):
        async with unit_of_work(db_session, "test.op"):
            raise ResourceNotFoundError("Trip", 1)


async def test_partial_write_is_rolled_back(db_session, make_vehicle):
    vehicle = await make_vehicle(odometer=10.0)
    vehicle_id = vehicle.id

    with pytest.raises(StorageError):
        async with unit_of_work(db_session, "test.op"):
            vehicle.odometer = 99.0
            await db_session.flush()
            raise OperationalError("UPDATE drivers", {}, Exception("database is locked"))

    await db_session.refresh(vehicle)
    assert vehicle.id == vehicle_id
    assert vehicle.odometer == 10.0


async def test_dispatch_storage_failure_is_500_and_atomic(
    client, db_session, mocker, dispatcher_headers, make_vehicle, make_driver, make_trip
):
    vehicle = await make_vehicle()
    driver = await make_driver()
    trip = await make_trip(vehicle, driver)

    mocker.patch(
        "fleetflow.app.services.trip_lifecycle.set_driver_status",
        side_effect=OperationalError("UPDATE drivers", {}, Exception("database is locked"))
    )

    response = await client.patch(f"/v1/trips/{trip.id}/dispatch", headers=dispatcher_headers)

    assert response.status_code == 500
    assert response.json()["error_code"] == "ERR_STORAGE_001"

    for record in (trip, vehicle, driver):
        await db_session.refresh(record)
    assert trip.status == TripStatus.DRAFT
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert driver.status == DriverStatus.ON_DUTY


async def test_vehicle_update_rollback_keeps_previous_values(db_session, clock, mocker, make_vehicle):
    vehicle = await make_vehicle(name="Before")
    vehicle_id = vehicle.id
    mocker.patch(
        "fleetflow.app.services.fleet_registry.set_vehicle_status",
        side_effect=OperationalError("UPDATE vehicles", {}, Exception("database is locked"))
    )

    with pytest.raises(StorageError):
        await VehicleService.update(db_session, vehicle_id, VehicleUpdate(name="After", status=VehicleStatus.RETIRED), clock.now())

    refreshed = await VehicleService.get(db_session, vehicle_id)
    assert refreshed.name == "Before"
    assert refreshed.status == VehicleStatus.AVAILABLE
