"""
Vehicle Pydantic schemas.

Defines request and response models for vehicle registration and edits.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from fleetflow.app.models.fleet_enums import VehicleType, VehicleStatus


class VehicleCreate(BaseModel):
    """Schema for registering a new vehicle."""
    name: str = Field(..., min_length=1, max_length=100)
    license_plate: str = Field(..., min_length=1, max_length=50, description="Unique registration plate")
    vehicle_type: VehicleType
    max_capacity: float = Field(..., gt=0, description="Maximum load in kg")
    odometer: float = Field(0.0, ge=0, description="Current odometer reading in km")
    acquisition_cost: float = Field(0.0, ge=0)


class VehicleUpdate(BaseModel):
    """
    Schema for editing a vehicle.

    `status` only accepts the manual AVAILABLE <-> RETIRED toggle.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    license_plate: Optional[str] = Field(None, min_length=1, max_length=50)
    vehicle_type: Optional[VehicleType] = None
    max_capacity: Optional[float] = Field(None, gt=0)
    odometer: Optional[float] = Field(None, ge=0)
    acquisition_cost: Optional[float] = Field(None, ge=0)
    status: Optional[VehicleStatus] = None


class VehicleSummary(BaseModel):
    """Compact vehicle view embedded in trip, maintenance and fuel listings."""
    id: int
    uid: str
    name: str
    license_plate: str
    vehicle_type: VehicleType

    class Config:
        from_attributes = True


class VehicleResponse(BaseModel):
    """Schema for vehicle response."""
    id: int
    uid: str
    name: str
    license_plate: str
    vehicle_type: VehicleType
    max_capacity: float
    odometer: float
    acquisition_cost: float
    status: VehicleStatus
    deleted_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class VehicleListResponse(BaseModel):
    """Schema for paginated vehicle list."""
    vehicles: List[VehicleResponse]
    total: int
    page: int
    page_size: int
