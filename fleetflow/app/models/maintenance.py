"""
Maintenance database model.

The service `date` drives the vehicle's IN_SHOP lock: a record dated
today keeps its vehicle in the shop.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base


class Maintenance(Base):
    """Maintenance log entry for a vehicle."""
    __tablename__ = "maintenances"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    uid = Column(String(20), unique=True, nullable=False, index=True)

    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    description = Column(String(500), nullable=False)
    cost = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    vehicle = relationship("Vehicle")

    def __repr__(self):
        return f"<Maintenance(id={self.id}, vehicle_id={self.vehicle_id}, date='{self.date}')>"
