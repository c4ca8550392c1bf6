"""
Human-readable record identifiers.

Format: PREFIX-XXXXXX (e.g. TRP-7KQ2MX), drawn from an alphabet without
look-alike characters.
"""

import secrets

UID_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
UID_LENGTH = 6

VEHICLE_PREFIX = "VEH"
DRIVER_PREFIX = "DRV"
TRIP_PREFIX = "TRP"
MAINTENANCE_PREFIX = "MNT"
FUEL_PREFIX = "FUE"


def generate_uid(prefix: str) -> str:
    suffix = "".join(secrets.choice(UID_ALPHABET) for _ in range(UID_LENGTH))
    return f"{prefix}-{suffix}"
