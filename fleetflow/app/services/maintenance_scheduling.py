"""
Maintenance scheduling service.

A vehicle is IN_SHOP exactly while at least one of its maintenance records
is dated today. Every create/update/delete re-checks the full set of
records for the vehicle instead of assuming it holds the only one, and
vehicle listings run `reconcile` first so records whose day has arrived
since the last write take effect.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func, exists
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fleetflow.app.core.clock import day_bounds, to_local_naive
from fleetflow.app.core.exceptions import ResourceNotFoundError, PastServiceDateError
from fleetflow.app.core.identifiers import generate_uid, MAINTENANCE_PREFIX
from fleetflow.app.db.transaction import unit_of_work
from fleetflow.app.models.maintenance import Maintenance
from fleetflow.app.models.vehicle import Vehicle
from fleetflow.app.models.fleet_enums import VehicleStatus
from fleetflow.app.schemas.maintenance import MaintenanceCreate, MaintenanceUpdate
from fleetflow.app.services.availability import is_maintenance_today, is_past_service_date
from fleetflow.app.services.status_guard import set_vehicle_status, bulk_set_vehicle_status

logger = logging.getLogger("fleetflow.maintenance")

# Statuses the maintenance lock may take over; ON_TRIP and RETIRED are left alone
LOCKABLE_STATUSES = (VehicleStatus.AVAILABLE, VehicleStatus.IN_SHOP)


@dataclass
class ReconcileResult:
    locked: int
    released: int


async def vehicle_has_maintenance_today(
    db: AsyncSession,
    vehicle_id: int,
    now: datetime,
    exclude_id: Optional[int] = None
) -> bool:
    """Check whether any maintenance record for the vehicle is dated today."""
    today_start, tomorrow_start = day_bounds(now)
    query = select(Maintenance.id).where(
        Maintenance.vehicle_id == vehicle_id,
        Maintenance.date >= today_start,
        Maintenance.date < tomorrow_start
    )
    if exclude_id is not None:
        query = query.where(Maintenance.id != exclude_id)

    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def reevaluate_vehicle_lock(db: AsyncSession, vehicle_id: int, now: datetime) -> Optional[VehicleStatus]:
    """
    Bring one vehicle's maintenance lock in line with its records.

    Locks the vehicle when a record is dated today, otherwise releases an
    IN_SHOP vehicle. Pending changes must be flushed before calling.

    Returns:
        The status written, or None when nothing changed
    """
    if await vehicle_has_maintenance_today(db, vehicle_id, now):
        if await set_vehicle_status(db, vehicle_id, VehicleStatus.IN_SHOP, expected_current=LOCKABLE_STATUSES):
            return VehicleStatus.IN_SHOP
        return None

    if await set_vehicle_status(db, vehicle_id, VehicleStatus.AVAILABLE, expected_current=VehicleStatus.IN_SHOP):
        return VehicleStatus.AVAILABLE
    return None


async def _get_active_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    result = await db.execute(
        select(Vehicle).where(Vehicle.id == vehicle_id, Vehicle.deleted_at.is_(None))
    )
    vehicle = result.scalar_one_or_none()
    if not vehicle:
        raise ResourceNotFoundError("Vehicle", vehicle_id)
    return vehicle


async def _get_maintenance(db: AsyncSession, maintenance_id: int) -> Maintenance:
    result = await db.execute(select(Maintenance).where(Maintenance.id == maintenance_id))
    record = result.scalar_one_or_none()
    if not record:
        raise ResourceNotFoundError("Maintenance record", maintenance_id)
    return record


class MaintenanceService:

    @staticmethod
    async def create(db: AsyncSession, data: MaintenanceCreate, now: datetime) -> Maintenance:
        """
        Log maintenance for a vehicle.

        Flow:
        1. Reject service dates before today
        2. Validate vehicle exists and is not deleted
        3. Persist the record
        4. Lock the vehicle (IN_SHOP) if the record is dated today

        Future-dated records leave the vehicle untouched until their day
        arrives (see reconcile).
        """
        service_date = to_local_naive(data.date)
        if is_past_service_date(service_date, now):
            raise PastServiceDateError(service_date)

        async with unit_of_work(db, "maintenance.create"):
            await _get_active_vehicle(db, data.vehicle_id)

            record = Maintenance(
                uid=generate_uid(MAINTENANCE_PREFIX),
                vehicle_id=data.vehicle_id,
                description=data.description,
                cost=data.cost,
                date=service_date
            )
            db.add(record)
            await db.flush()

            if is_maintenance_today(service_date, now):
                locked = await set_vehicle_status(
                    db, data.vehicle_id, VehicleStatus.IN_SHOP, expected_current=LOCKABLE_STATUSES
                )
                logger.info("Maintenance %s dated today, vehicle %s locked=%s",
                            record.uid, data.vehicle_id, locked)

        await db.refresh(record)
        return record

    @staticmethod
    async def update(
        db: AsyncSession,
        maintenance_id: int,
        data: MaintenanceUpdate,
        now: datetime
    ) -> Maintenance:
        """
        Edit a maintenance record and re-evaluate the vehicle lock.

        If the record moves to another vehicle, the previous vehicle is
        re-evaluated too.
        """
        update_data = data.model_dump(exclude_unset=True)

        async with unit_of_work(db, "maintenance.update"):
            record = await _get_maintenance(db, maintenance_id)

            if update_data.get("date") is not None:
                update_data["date"] = to_local_naive(update_data["date"])
                if is_past_service_date(update_data["date"], now):
                    raise PastServiceDateError(update_data["date"])

            previous_vehicle_id = record.vehicle_id

            if update_data.get("vehicle_id") not in (None, previous_vehicle_id):
                await _get_active_vehicle(db, update_data["vehicle_id"])

            for field, value in update_data.items():
                if value is not None:
                    setattr(record, field, value)
            await db.flush()

            outcome = await reevaluate_vehicle_lock(db, record.vehicle_id, now)
            if previous_vehicle_id != record.vehicle_id:
                await reevaluate_vehicle_lock(db, previous_vehicle_id, now)

            logger.info("Maintenance %s updated (%s), vehicle %s -> %s",
                        record.uid, ", ".join(update_data), record.vehicle_id,
                        outcome.value if outcome else "unchanged")

        await db.refresh(record)
        return record

    @staticmethod
    async def delete(db: AsyncSession, maintenance_id: int, now: datetime) -> tuple[Maintenance, bool]:
        """
        Delete a maintenance record.

        Returns:
            (deleted record, whether the vehicle was released from the shop)
        """
        async with unit_of_work(db, "maintenance.delete"):
            record = await _get_maintenance(db, maintenance_id)
            vehicle_id = record.vehicle_id

            await db.delete(record)
            await db.flush()

            # Only an IN_SHOP vehicle is released; the guard skips any other status
            released = False
            if not await vehicle_has_maintenance_today(db, vehicle_id, now):
                released = await set_vehicle_status(
                    db, vehicle_id, VehicleStatus.AVAILABLE, expected_current=VehicleStatus.IN_SHOP
                )

        logger.info("Maintenance %s deleted, vehicle %s released=%s", record.uid, vehicle_id, released)
        return record, released

    @staticmethod
    async def list_records(db: AsyncSession, page: int = 1, page_size: int = 50) -> tuple[list[Maintenance], int]:
        """List maintenance records, latest service date first, with vehicle summaries."""
        total = (await db.execute(select(func.count(Maintenance.id)))).scalar()

        offset = (page - 1) * page_size
        result = await db.execute(
            select(Maintenance)
            .options(selectinload(Maintenance.vehicle))
            .order_by(Maintenance.date.desc(), Maintenance.id.desc())
            .offset(offset)
            .limit(page_size)
        )
        return result.scalars().all(), total

    @staticmethod
    async def reconcile(db: AsyncSession, now: datetime) -> ReconcileResult:
        """
        Catch vehicle locks up with the calendar.

        One batch UPDATE locks every AVAILABLE vehicle with a record dated
        today; a second releases IN_SHOP vehicles with none. Running it
        twice in a row changes nothing the second time.
        """
        today_start, tomorrow_start = day_bounds(now)
        dated_today = (
            Maintenance.date >= today_start,
            Maintenance.date < tomorrow_start
        )

        async with unit_of_work(db, "maintenance.reconcile"):
            due_result = await db.execute(
                select(Maintenance.vehicle_id).where(*dated_today).distinct()
            )
            due_ids = due_result.scalars().all()

            locked = await bulk_set_vehicle_status(
                db, due_ids, VehicleStatus.IN_SHOP, expected_current=VehicleStatus.AVAILABLE
            )

            stale_result = await db.execute(
                select(Vehicle.id).where(
                    Vehicle.status == VehicleStatus.IN_SHOP,
                    Vehicle.deleted_at.is_(None),
                    ~exists().where(Maintenance.vehicle_id == Vehicle.id, *dated_today)
                )
            )
            released = await bulk_set_vehicle_status(
                db, stale_result.scalars().all(), VehicleStatus.AVAILABLE, expected_current=VehicleStatus.IN_SHOP
            )

        if locked or released:
            logger.info("Maintenance reconcile: %s locked, %s released", locked, released)
        return ReconcileResult(locked=locked, released=released)
