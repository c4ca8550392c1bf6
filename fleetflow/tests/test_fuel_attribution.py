"""
Fuel attribution tests, including the best-effort fuel log written when a
trip completes.
"""

import logging
from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from fleetflow.app.core.exceptions import ResourceNotFoundError
from fleetflow.app.models.dlq import DeadLetterQueue, DLQStatus
from fleetflow.app.models.fleet_enums import VehicleStatus, DriverStatus
from fleetflow.app.models.fuel_log import FuelLog
from fleetflow.app.models.trip_enums import TripStatus
from fleetflow.app.schemas.fuel_log import FuelLogCreate, FuelLogUpdate
from fleetflow.app.schemas.trip import TripComplete
from fleetflow.app.services.dead_letter import capture_failure
from fleetflow.app.services.fuel_attribution import FuelService, COMPLETION_FUEL_TASK
from fleetflow.app.services.trip_lifecycle import TripService


async def test_log_fuel_for_vehicle(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()

    log = await FuelService.log(db_session, FuelLogCreate(vehicle_id=vehicle.id, liters=50.0, cost=75.0), clock.now())

    assert log.uid.startswith("FUE-")
    assert log.trip_id is None
    assert log.date == clock.now()


async def test_log_fuel_for_trip_of_same_vehicle(db_session, clock, make_vehicle, make_driver, make_trip):
    vehicle = await make_vehicle()
    trip = await make_trip(vehicle, await make_driver())

    log = await FuelService.log(
        db_session,
        FuelLogCreate(vehicle_id=vehicle.id, trip_id=trip.id, liters=10.0, cost=15.0, date=clock.now() - timedelta(days=2)),
        clock.now()
    )

    assert log.trip_id == trip.id
    assert log.date == clock.now() - timedelta(days=2)


async def test_log_fuel_rejects_unknown_vehicle_or_trip(db_session, clock, make_vehicle):
    vehicle_id = (await make_vehicle()).id

    with pytest.raises(ResourceNotFoundError):
        await FuelService.log(db_session, FuelLogCreate(vehicle_id=999, liters=1.0, cost=1.0), clock.now())
    with pytest.raises(ResourceNotFoundError):
        await FuelService.log(db_session, FuelLogCreate(vehicle_id=vehicle_id, trip_id=999, liters=1.0, cost=1.0), clock.now())


async def test_log_fuel_rejects_trip_run_by_other_vehicle(db_session, clock, make_vehicle, make_driver, make_trip):
    other = await make_vehicle()
    trip = await make_trip(await make_vehicle(), await make_driver())

    with pytest.raises(ResourceNotFoundError):
        await FuelService.log(
            db_session, FuelLogCreate(vehicle_id=other.id, trip_id=trip.id, liters=1.0, cost=1.0), clock.now()
        )


async def test_update_and_delete(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()
    log = await FuelService.log(db_session, FuelLogCreate(vehicle_id=vehicle.id, liters=50.0, cost=75.0), clock.now())

    log = await FuelService.update(db_session, log.id, FuelLogUpdate(cost=80.0))
    assert log.cost == 80.0
    assert log.liters == 50.0

    await FuelService.delete(db_session, log.id)
    logs, total = await FuelService.list_logs(db_session)
    assert total == 0


async def test_update_missing_log(db_session):
    with pytest.raises(ResourceNotFoundError):
        await FuelService.update(db_session, 31337, FuelLogUpdate(cost=1.0))


async def test_completion_with_zero_fuel_cost_still_logs_fuel(db_session, clock, make_vehicle, make_driver, make_trip):
    vehicle = await make_vehicle()
    trip = await make_trip(vehicle, await make_driver())
    await TripService.dispatch(db_session, trip.id, clock.now())

    await TripService.complete(
        db_session, trip.id, TripComplete(end_odometer=1100.0, fuel_liters=12.0, fuel_cost=0.0), clock.now()
    )

    attached = (await db_session.execute(select(FuelLog).where(FuelLog.trip_id == trip.id))).scalars().all()
    assert len(attached) == 1
    assert attached[0].liters == 12.0
    assert attached[0].cost == 0.0
    assert attached[0].vehicle_id == vehicle.id


async def test_failed_completion_fuel_does_not_fail_the_trip(
    db_session, clock, make_vehicle, make_driver, make_trip, mocker, caplog
):
    vehicle = await make_vehicle()
    driver = await make_driver()
    trip = await make_trip(vehicle, driver)
    await TripService.dispatch(db_session, trip.id, clock.now())

    # Reusing an existing uid makes the completion fuel insert hit the unique constraint
    existing = await FuelService.log(db_session, FuelLogCreate(vehicle_id=vehicle.id, liters=5.0, cost=5.0), clock.now())
    mocker.patch("fleetflow.app.services.fuel_attribution.generate_uid", return_value=existing.uid)

    with caplog.at_level(logging.WARNING, logger="fleetflow.fuel"):
        completed = await TripService.complete(
            db_session, trip.id,
            TripComplete(end_odometer=1200.0, revenue=900.0, fuel_liters=30.0, fuel_cost=45.0),
            clock.now()
        )

    assert completed.status == TripStatus.COMPLETED
    await db_session.refresh(vehicle)
    await db_session.refresh(driver)
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert vehicle.odometer == 1200.0
    assert driver.status == DriverStatus.ON_DUTY

    attached = (await db_session.execute(select(FuelLog).where(FuelLog.trip_id == trip.id))).scalars().all()
    assert attached == []

    entries = (await db_session.execute(select(DeadLetterQueue))).scalars().all()
    assert len(entries) == 1
    assert entries[0].task_name == COMPLETION_FUEL_TASK
    assert entries[0].reference == f"trip:{trip.id}"
    assert entries[0].status == DLQStatus.FAILED
    assert entries[0].payload["liters"] == 30.0

    assert any("FuelLog creation failed" in r.getMessage() for r in caplog.records)


async def test_dead_letter_capture_survives_its_own_failure(db_session, mocker):
    mocker.patch.object(db_session, "commit", side_effect=OperationalError("COMMIT", {}, Exception("db down")))

    entry = await capture_failure(db_session, "some_task", RuntimeError("boom"), reference="trip:1")

    assert entry is None
