"""
Vehicle database model.

Vehicles are registered with capacity and identification details and are
never hard-deleted.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base
from fleetflow.app.models.fleet_enums import VehicleType, VehicleStatus


class Vehicle(Base):
    """
    Vehicle model.

    `status` is only written through the status guard service: ON_TRIP by
    the trip lifecycle, IN_SHOP by maintenance scheduling, RETIRED by the
    manual toggle or soft delete.
    """
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    uid = Column(String(20), unique=True, nullable=False, index=True)

    # Identification
    name = Column(String(100), nullable=False)
    license_plate = Column(String(50), unique=True, nullable=False, index=True)
    vehicle_type = Column(Enum(VehicleType), nullable=False)

    # Capacity and usage
    max_capacity = Column(Float, nullable=False)  # kg
    odometer = Column(Float, nullable=False, default=0.0)  # km
    acquisition_cost = Column(Float, nullable=False, default=0.0)

    # Status
    status = Column(Enum(VehicleStatus), default=VehicleStatus.AVAILABLE, nullable=False, index=True)
    deleted_at = Column(DateTime, nullable=True, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self):
        return f"<Vehicle(id={self.id}, plate='{self.license_plate}', status='{self.status.value}')>"
