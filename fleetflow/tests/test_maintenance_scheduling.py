"""
Maintenance scheduling tests.

A vehicle is IN_SHOP exactly while one of its records is dated today.
"""

from datetime import timedelta

import pytest

from fleetflow.app.core.exceptions import PastServiceDateError, ResourceNotFoundError
from fleetflow.app.models.fleet_enums import VehicleStatus
from fleetflow.app.schemas.maintenance import MaintenanceCreate, MaintenanceUpdate
from fleetflow.app.schemas.vehicle import VehicleUpdate
from fleetflow.app.services.fleet_registry import VehicleService
from fleetflow.app.services.maintenance_scheduling import MaintenanceService, vehicle_has_maintenance_today
from fleetflow.app.services.trip_lifecycle import TripService


def record_for(vehicle_id, when, description="Service", cost=100.0):
    return MaintenanceCreate(vehicle_id=vehicle_id, description=description, cost=cost, date=when)


async def status_of(db_session, vehicle):
    await db_session.refresh(vehicle)
    return vehicle.status


async def test_record_dated_today_locks_vehicle(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()

    record = await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now()), clock.now())

    assert record.uid.startswith("MNT-")
    assert await status_of(db_session, vehicle) == VehicleStatus.IN_SHOP


async def test_past_service_date_is_rejected(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()
    vehicle_id = vehicle.id

    with pytest.raises(PastServiceDateError) as exc_info:
        await MaintenanceService.create(db_session, record_for(vehicle_id, clock.now() - timedelta(days=1)), clock.now())

    assert exc_info.value.message == "Service date cannot be in the past"
    assert await status_of(db_session, vehicle) == VehicleStatus.AVAILABLE


async def test_earlier_today_is_not_in_the_past(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()

    await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now() - timedelta(hours=3)), clock.now())

    assert await status_of(db_session, vehicle) == VehicleStatus.IN_SHOP


async def test_unknown_vehicle(db_session, clock):
    with pytest.raises(ResourceNotFoundError):
        await MaintenanceService.create(db_session, record_for(777, clock.now()), clock.now())


async def test_future_record_locks_once_its_day_arrives(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()

    await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now() + timedelta(days=1)), clock.now())
    assert await status_of(db_session, vehicle) == VehicleStatus.AVAILABLE

    clock.advance(days=1)
    result = await MaintenanceService.reconcile(db_session, clock.now())

    assert result.locked == 1
    assert await status_of(db_session, vehicle) == VehicleStatus.IN_SHOP


async def test_lock_lifts_when_its_day_passes(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()
    await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now()), clock.now())

    clock.advance(days=1)
    result = await MaintenanceService.reconcile(db_session, clock.now())

    assert result.released == 1
    assert await status_of(db_session, vehicle) == VehicleStatus.AVAILABLE


async def test_reconcile_is_idempotent(db_session, clock, make_vehicle):
    due = await make_vehicle()
    stale = await make_vehicle()
    await MaintenanceService.create(db_session, record_for(due.id, clock.now() + timedelta(days=1)), clock.now())
    await MaintenanceService.create(db_session, record_for(stale.id, clock.now()), clock.now())

    clock.advance(days=1)
    first = await MaintenanceService.reconcile(db_session, clock.now())
    second = await MaintenanceService.reconcile(db_session, clock.now())

    assert (first.locked, first.released) == (1, 1)
    assert (second.locked, second.released) == (0, 0)
    assert await status_of(db_session, due) == VehicleStatus.IN_SHOP
    assert await status_of(db_session, stale) == VehicleStatus.AVAILABLE


async def test_two_records_same_day_release_only_after_both_are_gone(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()
    first = await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now(), "Tyres"), clock.now())
    second = await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now(), "Lights"), clock.now())

    _, released = await MaintenanceService.delete(db_session, first.id, clock.now())
    assert released is False
    assert await status_of(db_session, vehicle) == VehicleStatus.IN_SHOP

    _, released = await MaintenanceService.delete(db_session, second.id, clock.now())
    assert released is True
    assert await status_of(db_session, vehicle) == VehicleStatus.AVAILABLE


async def test_redating_last_record_to_future_releases_vehicle(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()
    record = await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now()), clock.now())

    record = await MaintenanceService.update(
        db_session, record.id, MaintenanceUpdate(date=clock.now() + timedelta(days=3)), clock.now()
    )

    assert record.date == clock.now() + timedelta(days=3)
    assert await status_of(db_session, vehicle) == VehicleStatus.AVAILABLE


async def test_redating_to_today_locks_vehicle(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()
    record = await MaintenanceService.create(
        db_session, record_for(vehicle.id, clock.now() + timedelta(days=2)), clock.now()
    )

    await MaintenanceService.update(db_session, record.id, MaintenanceUpdate(date=clock.now()), clock.now())

    assert await status_of(db_session, vehicle) == VehicleStatus.IN_SHOP


async def test_moving_record_to_another_vehicle_reevaluates_both(db_session, clock, make_vehicle):
    old = await make_vehicle()
    new = await make_vehicle()
    record = await MaintenanceService.create(db_session, record_for(old.id, clock.now()), clock.now())

    await MaintenanceService.update(db_session, record.id, MaintenanceUpdate(vehicle_id=new.id), clock.now())

    assert await status_of(db_session, old) == VehicleStatus.AVAILABLE
    assert await status_of(db_session, new) == VehicleStatus.IN_SHOP


async def test_update_rejects_past_date(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()
    record = await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now()), clock.now())
    record_id = record.id

    with pytest.raises(PastServiceDateError):
        await MaintenanceService.update(
            db_session, record_id, MaintenanceUpdate(date=clock.now() - timedelta(days=2)), clock.now()
        )


async def test_update_of_missing_record_is_not_found_before_date_check(db_session, clock):
    with pytest.raises(ResourceNotFoundError):
        await MaintenanceService.update(
            db_session, 9999, MaintenanceUpdate(date=clock.now() - timedelta(days=3)), clock.now()
        )


async def test_lock_leaves_vehicle_on_trip_alone(db_session, clock, make_vehicle, make_driver, make_trip):
    vehicle = await make_vehicle()
    trip = await make_trip(vehicle, await make_driver())
    await TripService.dispatch(db_session, trip.id, clock.now())

    await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now()), clock.now())
    result = await MaintenanceService.reconcile(db_session, clock.now())

    assert result.locked == 0
    assert await status_of(db_session, vehicle) == VehicleStatus.ON_TRIP
    assert await vehicle_has_maintenance_today(db_session, vehicle.id, clock.now())


async def test_lock_leaves_retired_vehicle_alone(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()
    await VehicleService.update(db_session, vehicle.id, VehicleUpdate(status=VehicleStatus.RETIRED), clock.now())

    await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now()), clock.now())

    assert await status_of(db_session, vehicle) == VehicleStatus.RETIRED


async def test_list_records_newest_date_first(db_session, clock, make_vehicle):
    vehicle = await make_vehicle()
    soon = await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now() + timedelta(days=1)), clock.now())
    later = await MaintenanceService.create(db_session, record_for(vehicle.id, clock.now() + timedelta(days=5)), clock.now())

    records, total = await MaintenanceService.list_records(db_session)

    assert total == 2
    assert [r.id for r in records] == [later.id, soon.id]
    assert records[0].vehicle.id == vehicle.id
