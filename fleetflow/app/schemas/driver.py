"""
Driver Pydantic schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List

from fleetflow.app.models.fleet_enums import DriverStatus


class DriverCreate(BaseModel):
    """Schema for registering a driver."""
    name: str = Field(..., min_length=1, max_length=100)
    license_number: str = Field(..., min_length=1, max_length=50)
    license_expiry: datetime
    category: str = Field(..., min_length=1, max_length=50, description="Licence category, e.g. HGV")
    status: DriverStatus = DriverStatus.OFF_DUTY
    safety_score: float = Field(100.0, ge=0, le=100)


class DriverUpdate(BaseModel):
    """Schema for editing a driver. ON_TRIP cannot be set or cleared here."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    license_number: Optional[str] = Field(None, min_length=1, max_length=50)
    license_expiry: Optional[datetime] = None
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    status: Optional[DriverStatus] = None
    safety_score: Optional[float] = Field(None, ge=0, le=100)


class DriverSummary(BaseModel):
    id: int
    uid: str
    name: str
    license_number: str

    class Config:
        from_attributes = True


class DriverResponse(BaseModel):
    """Schema for driver response."""
    id: int
    uid: str
    name: str
    license_number: str
    license_expiry: datetime
    category: str
    status: DriverStatus
    safety_score: float
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DriverListResponse(BaseModel):
    drivers: List[DriverResponse]
    total: int
    page: int
    page_size: int
