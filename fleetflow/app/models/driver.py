"""
Driver database model.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, Enum
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base
from fleetflow.app.models.fleet_enums import DriverStatus


class Driver(Base):
    """
    Driver model.

    ON_TRIP is set and cleared only by the trip lifecycle. A driver whose
    licence has expired cannot be assigned to a new trip.
    """
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    uid = Column(String(20), unique=True, nullable=False, index=True)

    name = Column(String(100), nullable=False)
    license_number = Column(String(50), unique=True, nullable=False, index=True)
    license_expiry = Column(DateTime, nullable=False)
    category = Column(String(50), nullable=False)

    status = Column(Enum(DriverStatus), default=DriverStatus.OFF_DUTY, nullable=False, index=True)
    safety_score = Column(Float, default=100.0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, license='{self.license_number}', status='{self.status.value}')>"
