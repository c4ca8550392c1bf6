"""
Availability rule tests.

The rules are pure functions, so plain namespaces stand in for records.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from fleetflow.app.models.fleet_enums import VehicleStatus, DriverStatus
from fleetflow.app.services.availability import (
    can_assign_vehicle,
    can_assign_driver,
    fits_capacity,
    is_maintenance_today,
    is_past_service_date,
    VEHICLE_UNAVAILABLE,
    CAPACITY_EXCEEDED,
    DRIVER_NOT_ON_DUTY,
    LICENSE_EXPIRED,
)

NOW = datetime(2025, 3, 10, 10, 0, 0)


def vehicle(status=VehicleStatus.AVAILABLE, max_capacity=5000.0, deleted_at=None):
    return SimpleNamespace(
        status=status, max_capacity=max_capacity, deleted_at=deleted_at, is_deleted=deleted_at is not None
    )


def driver(status=DriverStatus.ON_DUTY, license_expiry=NOW + timedelta(days=30)):
    return SimpleNamespace(status=status, license_expiry=license_expiry)


def test_available_vehicle_with_room_is_assignable():
    verdict = can_assign_vehicle(vehicle(), 4999.0)
    assert verdict
    assert verdict.reason is None


def test_cargo_equal_to_capacity_fits():
    assert can_assign_vehicle(vehicle(max_capacity=5000.0), 5000.0)
    assert fits_capacity(vehicle(max_capacity=5000.0), 5000.0)


def test_overweight_cargo_is_rejected_with_values_in_message():
    verdict = can_assign_vehicle(vehicle(max_capacity=5000.0), 6000.0)
    assert not verdict
    assert verdict.reason == CAPACITY_EXCEEDED
    assert "6000.0kg" in verdict.message
    assert "5000.0kg" in verdict.message


def test_busy_vehicle_is_unavailable():
    for status in (VehicleStatus.ON_TRIP, VehicleStatus.IN_SHOP, VehicleStatus.RETIRED):
        verdict = can_assign_vehicle(vehicle(status=status), 10.0)
        assert not verdict
        assert verdict.reason == VEHICLE_UNAVAILABLE


def test_unavailability_is_reported_before_capacity():
    verdict = can_assign_vehicle(vehicle(status=VehicleStatus.IN_SHOP, max_capacity=10.0), 6000.0)
    assert verdict.reason == VEHICLE_UNAVAILABLE


def test_soft_deleted_vehicle_is_unavailable():
    verdict = can_assign_vehicle(vehicle(deleted_at=NOW), 10.0)
    assert verdict.reason == VEHICLE_UNAVAILABLE


def test_on_duty_driver_with_valid_license_is_assignable():
    assert can_assign_driver(driver(), NOW)


def test_driver_must_be_on_duty():
    for status in (DriverStatus.OFF_DUTY, DriverStatus.SUSPENDED, DriverStatus.ON_TRIP):
        verdict = can_assign_driver(driver(status=status), NOW)
        assert verdict.reason == DRIVER_NOT_ON_DUTY


def test_expired_license_is_rejected():
    verdict = can_assign_driver(driver(license_expiry=NOW - timedelta(seconds=1)), NOW)
    assert not verdict
    assert verdict.reason == LICENSE_EXPIRED


def test_license_expiring_exactly_now_is_still_valid():
    assert can_assign_driver(driver(license_expiry=NOW), NOW)


def test_maintenance_today_window():
    assert is_maintenance_today(datetime(2025, 3, 10, 0, 0), NOW)
    assert is_maintenance_today(datetime(2025, 3, 10, 23, 59, 59), NOW)
    assert not is_maintenance_today(datetime(2025, 3, 11, 0, 0), NOW)
    assert not is_maintenance_today(datetime(2025, 3, 9, 23, 59, 59), NOW)


def test_aware_dates_are_compared_in_local_time():
    aware = NOW.astimezone(timezone.utc)
    assert is_maintenance_today(aware, NOW)


def test_past_service_date_is_by_calendar_day():
    assert is_past_service_date(datetime(2025, 3, 9, 23, 59), NOW)
    assert not is_past_service_date(datetime(2025, 3, 10, 0, 0), NOW)
    # Earlier today still counts as today
    assert not is_past_service_date(NOW - timedelta(hours=9), NOW)
    assert not is_past_service_date(datetime(2025, 4, 1), NOW)
