"""
Audit logging service for tracking fleet operations.

Provides centralized logging of who changed which record.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from fleetflow.app.models.audit_log import AuditLog


class AuditAction:
    """Standardized audit action constants."""
    # Fleet registry
    VEHICLE_CREATED = "VEHICLE_CREATED"
    VEHICLE_UPDATED = "VEHICLE_UPDATED"
    VEHICLE_RETIRED = "VEHICLE_RETIRED"
    DRIVER_CREATED = "DRIVER_CREATED"
    DRIVER_UPDATED = "DRIVER_UPDATED"
    DRIVER_DELETED = "DRIVER_DELETED"

    # Trip lifecycle
    TRIP_CREATED = "TRIP_CREATED"
    TRIP_UPDATED = "TRIP_UPDATED"
    TRIP_DISPATCHED = "TRIP_DISPATCHED"
    TRIP_COMPLETED = "TRIP_COMPLETED"
    TRIP_DELETED = "TRIP_DELETED"

    # Maintenance scheduling
    MAINTENANCE_LOGGED = "MAINTENANCE_LOGGED"
    MAINTENANCE_UPDATED = "MAINTENANCE_UPDATED"
    MAINTENANCE_DELETED = "MAINTENANCE_DELETED"

    # Fuel attribution
    FUEL_LOGGED = "FUEL_LOGGED"
    FUEL_UPDATED = "FUEL_UPDATED"
    FUEL_DELETED = "FUEL_DELETED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Log a fleet event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        entity_type: Kind of record acted upon ("trip", "vehicle", ...)
        entity_id: ID of the record acted upon
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_user_event(
    db: AsyncSession,
    current_user: dict,
    action: str,
    entity_type: str,
    entity_id: int,
    metadata: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """Log an event performed by the authenticated user from a token payload."""
    return await log_event(
        db=db,
        action=action,
        actor_id=current_user.get("user_id"),
        actor_username=current_user.get("sub"),
        entity_type=entity_type,
        entity_id=entity_id,
        metadata=metadata
    )


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering.

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)

    if entity_id:
        query = query.where(AuditLog.entity_id == entity_id)

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return result.scalars().all()
