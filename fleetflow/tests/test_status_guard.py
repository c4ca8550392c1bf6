"""
Status guard tests.

Covers the transition tables and the compare-and-swap contract of the
status writers.
"""

import pytest

from fleetflow.app.core.exceptions import InvalidTransitionError
from fleetflow.app.models.fleet_enums import VehicleStatus, DriverStatus
from fleetflow.app.services.status_guard import (
    set_vehicle_status,
    set_driver_status,
    bulk_set_vehicle_status,
)


async def test_illegal_vehicle_moves_are_refused(db_session, make_vehicle):
    vehicle_id = (await make_vehicle()).id
    illegal = [
        (VehicleStatus.RETIRED, VehicleStatus.ON_TRIP),
        (VehicleStatus.ON_TRIP, VehicleStatus.RETIRED),
    ]

    for current, target in illegal:
        with pytest.raises(InvalidTransitionError):
            await set_vehicle_status(db_session, vehicle_id, target, expected_current=current)


async def test_illegal_driver_moves_are_refused(db_session, make_driver):
    driver_id = (await make_driver()).id

    for current, target in [(DriverStatus.OFF_DUTY, DriverStatus.ON_TRIP), (DriverStatus.ON_TRIP, DriverStatus.SUSPENDED)]:
        with pytest.raises(InvalidTransitionError):
            await set_driver_status(db_session, driver_id, target, expected_current=current)


async def test_vehicle_write_matches_expected_status(db_session, make_vehicle):
    vehicle = await make_vehicle()

    assert await set_vehicle_status(db_session, vehicle.id, VehicleStatus.IN_SHOP,
                                    expected_current=VehicleStatus.AVAILABLE)
    await db_session.commit()
    await db_session.refresh(vehicle)
    assert vehicle.status == VehicleStatus.IN_SHOP


async def test_vehicle_write_misses_when_status_differs(db_session, make_vehicle):
    vehicle = await make_vehicle()

    changed = await set_vehicle_status(db_session, vehicle.id, VehicleStatus.AVAILABLE,
                                       expected_current=VehicleStatus.ON_TRIP)
    await db_session.commit()
    await db_session.refresh(vehicle)

    assert changed is False
    assert vehicle.status == VehicleStatus.AVAILABLE


async def test_illegal_expected_status_raises(db_session, make_vehicle):
    vehicle = await make_vehicle()

    with pytest.raises(InvalidTransitionError):
        await set_vehicle_status(db_session, vehicle.id, VehicleStatus.ON_TRIP,
                                 expected_current=VehicleStatus.IN_SHOP)


async def test_extra_values_are_written_with_status(db_session, make_vehicle):
    vehicle = await make_vehicle(odometer=100.0)
    await set_vehicle_status(db_session, vehicle.id, VehicleStatus.ON_TRIP)
    await db_session.commit()

    await set_vehicle_status(db_session, vehicle.id, VehicleStatus.AVAILABLE,
                             expected_current=VehicleStatus.ON_TRIP, odometer=250.0)
    await db_session.commit()
    await db_session.refresh(vehicle)

    assert vehicle.status == VehicleStatus.AVAILABLE
    assert vehicle.odometer == 250.0


async def test_bulk_write_skips_non_matching_rows(db_session, make_vehicle):
    free = await make_vehicle()
    busy = await make_vehicle()
    await set_vehicle_status(db_session, busy.id, VehicleStatus.ON_TRIP)
    await db_session.commit()

    changed = await bulk_set_vehicle_status(
        db_session, [free.id, busy.id], VehicleStatus.IN_SHOP, expected_current=VehicleStatus.AVAILABLE
    )
    await db_session.commit()

    assert changed == 1
    await db_session.refresh(busy)
    assert busy.status == VehicleStatus.ON_TRIP


async def test_bulk_write_with_no_ids_is_noop(db_session):
    assert await bulk_set_vehicle_status(db_session, [], VehicleStatus.IN_SHOP, VehicleStatus.AVAILABLE) == 0


async def test_driver_write_compare_and_swap(db_session, make_driver):
    driver = await make_driver(status=DriverStatus.OFF_DUTY)

    assert not await set_driver_status(db_session, driver.id, DriverStatus.ON_TRIP,
                                       expected_current=DriverStatus.ON_DUTY)
    assert await set_driver_status(db_session, driver.id, DriverStatus.ON_DUTY,
                                   expected_current=DriverStatus.OFF_DUTY)
    await db_session.commit()
    await db_session.refresh(driver)
    assert driver.status == DriverStatus.ON_DUTY
