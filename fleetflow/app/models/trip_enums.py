"""
Trip-related enumerations.
"""

import enum


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    DRAFT = "DRAFT"  # Created, only editable state
    DISPATCHED = "DISPATCHED"  # Vehicle and driver locked
    COMPLETED = "COMPLETED"  # Odometer recorded, resources freed
    CANCELLED = "CANCELLED"  # Reserved, no operation transitions here yet
