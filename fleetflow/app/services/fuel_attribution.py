"""
Fuel attribution service.

Records fuel purchases against a vehicle and, optionally, a trip so cost
rollups can attribute fuel spend per trip.
"""

import logging
from datetime import datetime

from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleetflow.app.core.clock import to_local_naive
from fleetflow.app.core.exceptions import ResourceNotFoundError
from fleetflow.app.core.identifiers import generate_uid, FUEL_PREFIX
from fleetflow.app.db.transaction import unit_of_work
from fleetflow.app.models.fuel_log import FuelLog
from fleetflow.app.models.trip import Trip
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.schemas.fuel_log import FuelLogCreate, FuelLogUpdate
from fleetflow.app.services.dead_letter import capture_failure

logger = logging.getLogger("fleetflow.fuel")

COMPLETION_FUEL_TASK = "trip_completion_fuel_log"


async def _get_fuel_log(db: AsyncSession, fuel_log_id: int) -> FuelLog:
    result = await db.execute(select(FuelLog).where(FuelLog.id == fuel_log_id))
    log = result.scalar_one_or_none()
    if not log:
        raise ResourceNotFoundError("Fuel log", fuel_log_id)
    return log


async def delete_trip_fuel_logs(db: AsyncSession, trip_id: int) -> int:
    """Delete every fuel log attributed to a trip. Caller owns the transaction."""
    result = await db.execute(delete(FuelLog).where(FuelLog.trip_id == trip_id))
    return result.rowcount


class FuelService:

    @staticmethod
    async def log(db: AsyncSession, data: FuelLogCreate, now: datetime) -> FuelLog:
        """
        Record a fuel purchase.

        The vehicle must exist; a referenced trip must exist and belong to
        the same vehicle.
        """
        async with unit_of_work(db, "fuel.log"):
            vehicle = await db.get(Vehicle, data.vehicle_id)
            if not vehicle:
                raise ResourceNotFoundError("Vehicle", data.vehicle_id)

            if data.trip_id is not None:
                trip = await db.get(Trip, data.trip_id)
                if not trip:
                    raise ResourceNotFoundError("Trip", data.trip_id)
                if trip.vehicle_id != data.vehicle_id:
                    raise ResourceNotFoundError(f"Trip for vehicle {data.vehicle_id}", data.trip_id)

            log = FuelLog(
                uid=generate_uid(FUEL_PREFIX),
                vehicle_id=data.vehicle_id,
                trip_id=data.trip_id,
                liters=data.liters,
                cost=data.cost,
                date=to_local_naive(data.date) if data.date else now
            )
            db.add(log)

        await db.refresh(log)
        return log

    @staticmethod
    async def update(db: AsyncSession, fuel_log_id: int, data: FuelLogUpdate) -> FuelLog:
        update_data = data.model_dump(exclude_unset=True)

        async with unit_of_work(db, "fuel.update"):
            log = await _get_fuel_log(db, fuel_log_id)
            for field, value in update_data.items():
                if value is None:
                    continue
                if field == "date":
                    value = to_local_naive(value)
                setattr(log, field, value)

        await db.refresh(log)
        return log

    @staticmethod
    async def delete(db: AsyncSession, fuel_log_id: int) -> FuelLog:
        async with unit_of_work(db, "fuel.delete"):
            log = await _get_fuel_log(db, fuel_log_id)
            await db.delete(log)
        return log

    @staticmethod
    async def list_logs(db: AsyncSession, page: int = 1, page_size: int = 50) -> tuple[list[FuelLog], int]:
        total = (await db.execute(select(func.count(FuelLog.id)))).scalar()

        offset = (page - 1) * page_size
        result = await db.execute(
            select(FuelLog)
            .options(selectinload(FuelLog.vehicle))
            .order_by(FuelLog.date.desc(), FuelLog.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        return result.scalars().all(), total

    @staticmethod
    async def record_completion_fuel(
        db: AsyncSession,
        trip_id: int,
        vehicle_id: int,
        liters: float,
        cost: float,
        now: datetime
    ) -> FuelLog | None:
        """
        Attach the fuel reported at trip completion to the trip.

        Runs after the completion has committed, in its own transaction.
        Any failure is logged and dead-lettered, never raised: the trip
        stays completed either way.
        """
        log = FuelLog(
            uid=generate_uid(FUEL_PREFIX),
            vehicle_id=vehicle_id,
            trip_id=trip_id,
            liters=liters,
            cost=cost,
            date=now
        )
        # Nothing raised here may reach the completion response
        try:
            db.add(log)
            await db.commit()
        except Exception as exc:
            await db.rollback()
            logger.warning("FuelLog creation failed for trip %s: %s", trip_id, exc)
            await capture_failure(
                db,
                COMPLETION_FUEL_TASK,
                exc,
                reference=f"trip:{trip_id}",
                payload={"trip_id": trip_id, "vehicle_id": vehicle_id, "liters": liters, "cost": cost}
            )
            return None

        logger.info("Fuel log %s attached to trip %s", log.uid, trip_id)
        return log
