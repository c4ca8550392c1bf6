"""
Availability rules for committing vehicles and drivers to trips.

Pure functions over already-fetched records: no queries, no writes. Each
assignment check returns a Verdict whose `reason` tells the caller which
rule failed so it can raise the matching error.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fleetflow.app.core.clock import day_bounds, start_of_day, to_local_naive
from fleetflow.app.models.fleet_enums import VehicleStatus, DriverStatus


# Verdict reasons
VEHICLE_UNAVAILABLE = "VEHICLE_UNAVAILABLE"
CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
DRIVER_NOT_ON_DUTY = "DRIVER_NOT_ON_DUTY"
LICENSE_EXPIRED = "LICENSE_EXPIRED"


@dataclass(frozen=True)
class Verdict:
    allowed: bool
    reason: Optional[str] = None
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = Verdict(True)


def can_assign_vehicle(vehicle, cargo_weight: float) -> Verdict:
    """
    Check a vehicle can take a new trip with `cargo_weight` kg.

    The vehicle must be AVAILABLE, not soft-deleted, and the cargo must fit
    its max capacity.
    """
    if vehicle.is_deleted or vehicle.status != VehicleStatus.AVAILABLE:
        return Verdict(
            False,
            VEHICLE_UNAVAILABLE,
            f"Vehicle is not available (status: {vehicle.status.value})"
        )

    if cargo_weight > vehicle.max_capacity:
        return Verdict(
            False,
            CAPACITY_EXCEEDED,
            f"Cargo weight ({cargo_weight}kg) exceeds vehicle max capacity ({vehicle.max_capacity}kg)"
        )

    return ALLOWED


def fits_capacity(vehicle, cargo_weight: float) -> bool:
    return cargo_weight <= vehicle.max_capacity


def can_assign_driver(driver, now: datetime) -> Verdict:
    """Check a driver is ON_DUTY with a licence valid at `now`."""
    if driver.status != DriverStatus.ON_DUTY:
        return Verdict(
            False,
            DRIVER_NOT_ON_DUTY,
            f"Driver is not on duty (status: {driver.status.value})"
        )

    if to_local_naive(driver.license_expiry) < to_local_naive(now):
        return Verdict(
            False,
            LICENSE_EXPIRED,
            f"Driver license expired on {driver.license_expiry:%Y-%m-%d}"
        )

    return ALLOWED


def is_maintenance_today(date: datetime, now: datetime) -> bool:
    """True when `date` falls inside the calendar day of `now`."""
    today_start, tomorrow_start = day_bounds(now)
    return today_start <= to_local_naive(date) < tomorrow_start


def is_past_service_date(date: datetime, now: datetime) -> bool:
    """True when `date` is on a calendar day before today."""
    return start_of_day(date) < start_of_day(now)
