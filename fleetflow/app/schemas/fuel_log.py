"""
Fuel log schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from fleetflow.app.schemas.vehicle import VehicleSummary


class FuelLogCreate(BaseModel):
    """Schema for recording a fuel purchase, optionally tied to a trip."""
    vehicle_id: int
    trip_id: Optional[int] = None
    liters: float = Field(..., gt=0)
    cost: float = Field(..., ge=0)
    date: Optional[datetime] = Field(None, description="Defaults to now")


class FuelLogUpdate(BaseModel):
    liters: Optional[float] = Field(None, gt=0)
    cost: Optional[float] = Field(None, ge=0)
    date: Optional[datetime] = None


class FuelLogResponse(BaseModel):
    id: int
    uid: str
    vehicle_id: int
    trip_id: Optional[int]
    liters: float
    cost: float
    date: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class FuelLogListItem(FuelLogResponse):
    vehicle: Optional[VehicleSummary] = None


class FuelLogListResponse(BaseModel):
    fuel_logs: List[FuelLogListItem]
    total: int
    page: int
    page_size: int
