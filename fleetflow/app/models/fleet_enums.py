"""
Vehicle and driver enumerations.
"""

import enum


class VehicleType(str, enum.Enum):
    """Vehicle type enumeration."""
    TRUCK = "TRUCK"
    VAN = "VAN"
    BIKE = "BIKE"


class VehicleStatus(str, enum.Enum):
    """Vehicle status enumeration."""
    AVAILABLE = "AVAILABLE"  # Free to be assigned
    ON_TRIP = "ON_TRIP"  # Locked by a dispatched trip
    IN_SHOP = "IN_SHOP"  # Locked by maintenance dated today
    RETIRED = "RETIRED"  # Out of service (manual or soft-deleted)


class DriverStatus(str, enum.Enum):
    """Driver status enumeration."""
    OFF_DUTY = "OFF_DUTY"
    ON_DUTY = "ON_DUTY"  # Assignable to new trips
    SUSPENDED = "SUSPENDED"
    ON_TRIP = "ON_TRIP"  # Owned by the trip lifecycle
