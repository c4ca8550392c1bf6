"""
Maintenance schemas.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from fleetflow.app.schemas.vehicle import VehicleSummary


class MaintenanceCreate(BaseModel):
    """Schema for logging maintenance. The date may not be before today."""
    vehicle_id: int
    description: str = Field(..., min_length=1, max_length=500)
    cost: float = Field(..., ge=0)
    date: datetime


class MaintenanceUpdate(BaseModel):
    vehicle_id: Optional[int] = None
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    cost: Optional[float] = Field(None, ge=0)
    date: Optional[datetime] = None


class MaintenanceResponse(BaseModel):
    id: int
    uid: str
    vehicle_id: int
    description: str
    cost: float
    date: datetime
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class MaintenanceListItem(MaintenanceResponse):
    vehicle: Optional[VehicleSummary] = None


class MaintenanceListResponse(BaseModel):
    maintenances: List[MaintenanceListItem]
    total: int
    page: int
    page_size: int


class MaintenanceDeleteResponse(BaseModel):
    """Response after deleting a maintenance record."""
    maintenance_id: int
    vehicle_id: int
    vehicle_released: bool
