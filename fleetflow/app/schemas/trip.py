"""
Trip schemas.

Schemas for the trip lifecycle: creation, draft edits, completion and
listing.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from fleetflow.app.models.trip_enums import TripStatus
from fleetflow.app.schemas.vehicle import VehicleSummary
from fleetflow.app.schemas.driver import DriverSummary


class TripCreate(BaseModel):
    """Schema for creating a DRAFT trip."""
    vehicle_id: int
    driver_id: int
    cargo_weight: float = Field(..., gt=0, description="Cargo weight in kg")
    start_odometer: Optional[float] = Field(None, ge=0, description="Defaults to the vehicle's odometer")
    origin: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, max_length=255)


class TripUpdate(BaseModel):
    """Schema for editing a DRAFT trip."""
    vehicle_id: Optional[int] = None
    driver_id: Optional[int] = None
    cargo_weight: Optional[float] = Field(None, gt=0)
    start_odometer: Optional[float] = Field(None, ge=0)
    origin: Optional[str] = Field(None, max_length=255)
    destination: Optional[str] = Field(None, max_length=255)


class TripComplete(BaseModel):
    """
    Schema for completing a dispatched trip.

    A fuel log is attached to the trip when both fuel fields are given.
    """
    end_odometer: float = Field(..., ge=0)
    revenue: float = Field(0.0, ge=0)
    fuel_liters: Optional[float] = Field(None, gt=0)
    fuel_cost: Optional[float] = Field(None, ge=0)


class TripResponse(BaseModel):
    """Schema for trip response."""
    id: int
    uid: str
    vehicle_id: int
    driver_id: int
    origin: Optional[str]
    destination: Optional[str]
    cargo_weight: float
    start_odometer: float
    end_odometer: Optional[float]
    revenue: float
    status: TripStatus
    created_at: datetime
    updated_at: datetime
    dispatched_at: Optional[datetime]
    completed_at: Optional[datetime]

    class Config:
        from_attributes = True


class TripListItem(TripResponse):
    """Trip with vehicle and driver summaries for display."""
    vehicle: Optional[VehicleSummary] = None
    driver: Optional[DriverSummary] = None


class TripListResponse(BaseModel):
    """Schema for paginated trip list."""
    trips: List[TripListItem]
    total: int
    page: int
    page_size: int


class TripDeleteResponse(BaseModel):
    """Response after deleting a trip."""
    trip_id: int
    resources_released: bool
    fuel_logs_deleted: int
