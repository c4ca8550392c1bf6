"""
Database seeding script for a development fleet.

Registers a few vehicles and drivers and prints a bearer token per role,
since tokens are issued outside this service.
Run this script after the database is set up but before first use.
"""

import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from fleetflow.app.db.session import AsyncSessionLocal, engine, Base
from fleetflow.app.core.jwt import create_access_token
from fleetflow.app.models.driver import Driver
from fleetflow.app.models.enums import UserRole
from fleetflow.app.models.fleet_enums import VehicleType, DriverStatus
from fleetflow.app.schemas.vehicle import VehicleCreate
from fleetflow.app.schemas.driver import DriverCreate
from fleetflow.app.services.fleet_registry import VehicleService, DriverService

VEHICLES = [
    VehicleCreate(name="Volvo FH16", license_plate="MH-12-AB-1001", vehicle_type=VehicleType.TRUCK,
                  max_capacity=18000.0, odometer=120500.0, acquisition_cost=95000.0),
    VehicleCreate(name="Ford Transit", license_plate="MH-12-CD-2002", vehicle_type=VehicleType.VAN,
                  max_capacity=1500.0, odometer=40210.0, acquisition_cost=32000.0),
    VehicleCreate(name="Honda Cargo", license_plate="MH-12-EF-3003", vehicle_type=VehicleType.BIKE,
                  max_capacity=40.0, odometer=8800.0, acquisition_cost=1800.0),
]


def _drivers(now: datetime) -> list[DriverCreate]:
    return [
        DriverCreate(name="Arjun Mehta", license_number="DL-HGV-0001", license_expiry=now + timedelta(days=700),
                     category="HGV", status=DriverStatus.ON_DUTY),
        DriverCreate(name="Priya Nair", license_number="DL-LMV-0002", license_expiry=now + timedelta(days=400),
                     category="LMV", status=DriverStatus.ON_DUTY),
        DriverCreate(name="Kiran Rao", license_number="DL-MC-0003", license_expiry=now + timedelta(days=90),
                     category="MC", status=DriverStatus.OFF_DUTY),
    ]


async def seed_fleet():
    """
    Seed a small fleet.

    Creates:
    - 3 vehicles (truck, van, bike)
    - 3 drivers (two on duty)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print("🌱 Starting fleet seeding...")

        result = await db.execute(select(Driver).where(Driver.license_number == "DL-HGV-0001"))
        if result.scalar_one_or_none():
            print("ℹ️  Fleet already seeded, skipping")
        else:
            for data in VEHICLES:
                vehicle = await VehicleService.create(db, data)
                print(f"✅ Created vehicle {vehicle.uid} ({vehicle.license_plate})")

            for data in _drivers(datetime.now()):
                driver = await DriverService.create(db, data)
                print(f"✅ Created driver {driver.uid} ({driver.license_number}, {driver.status.value})")

            print("\n🎉 Fleet seeding completed successfully!")

    print("\nDevelopment tokens:")
    for user_id, role in enumerate(UserRole, start=1):
        token = create_access_token(
            data={"sub": role.value.lower(), "user_id": user_id, "role": role.value},
            expires_delta=timedelta(days=1)
        )
        print(f"  - {role.value}: {token}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_fleet())
