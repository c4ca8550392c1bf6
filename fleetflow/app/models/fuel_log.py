"""
Fuel log database model.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base


class FuelLog(Base):
    """
    Fuel purchase, optionally attributed to a trip.

    Rows with a trip_id are removed together with their trip.
    """
    __tablename__ = "fuel_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    uid = Column(String(20), unique=True, nullable=False, index=True)

    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    trip_id = Column(Integer, ForeignKey('trips.id'), nullable=True, index=True)

    liters = Column(Float, nullable=False)
    cost = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    vehicle = relationship("Vehicle")
    trip = relationship("Trip")

    def __repr__(self):
        return f"<FuelLog(id={self.id}, vehicle_id={self.vehicle_id}, trip_id={self.trip_id})>"
