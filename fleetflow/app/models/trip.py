"""
Trip database model.

Trips move DRAFT -> DISPATCHED -> COMPLETED under the trip lifecycle
service.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from fleetflow.app.db.session import Base
from fleetflow.app.models.trip_enums import TripStatus


class Trip(Base):
    """
    Trip model.

    A trip pairs one vehicle with one driver for a cargo run. Vehicle and
    driver are only committed (ON_TRIP) once the trip is dispatched.
    """
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    uid = Column(String(20), unique=True, nullable=False, index=True)

    # Assignment
    vehicle_id = Column(Integer, ForeignKey('vehicles.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)

    # Route description
    origin = Column(String(255), nullable=True)
    destination = Column(String(255), nullable=True)

    # Load and readings
    cargo_weight = Column(Float, nullable=False)  # kg
    start_odometer = Column(Float, nullable=False)
    end_odometer = Column(Float, nullable=True)
    revenue = Column(Float, default=0.0, nullable=False)

    # Status
    status = Column(Enum(TripStatus), default=TripStatus.DRAFT, nullable=False, index=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    dispatched_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    vehicle = relationship("Vehicle")
    driver = relationship("Driver")

    def __repr__(self):
        return f"<Trip(id={self.id}, vehicle_id={self.vehicle_id}, status='{self.status.value}')>"
