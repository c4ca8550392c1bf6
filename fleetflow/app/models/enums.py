"""
User roles enumeration.

Defines the role types carried in access tokens for the fleet backend.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        FLEET_MANAGER: Manages vehicles, drivers and all operations
        DISPATCHER: Creates and moves trips, logs maintenance and fuel
        SAFETY_OFFICER: Manages driver records and duty status
        FINANCIAL_ANALYST: Read-only access to operational data
    """
    FLEET_MANAGER = "FLEET_MANAGER"
    DISPATCHER = "DISPATCHER"
    SAFETY_OFFICER = "SAFETY_OFFICER"
    FINANCIAL_ANALYST = "FINANCIAL_ANALYST"
