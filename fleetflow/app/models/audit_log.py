"""
Audit Log Database Model.

Tracks who changed which fleet record and how, for operational review.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking fleet operations.

    Events logged:
    - VEHICLE_* / DRIVER_* registry changes
    - TRIP_CREATED / TRIP_DISPATCHED / TRIP_COMPLETED / TRIP_DELETED
    - MAINTENANCE_* and FUEL_* entries
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_username = Column(String(100), nullable=True)

    # What action was performed, on which record
    action = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=True, index=True)
    entity_id = Column(Integer, nullable=True, index=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', entity={self.entity_type}:{self.entity_id})>"
