from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckInRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_type: str
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    photos: Optional[List[str]] = None
    is_blog: bool = False
    technician_id: int
    company_id: int
    created_at: Optional[datetime] = None


class CheckInCreate(BaseModel):
    technician_id: int = Field(..., ge=1)
    job_type: str = Field(..., min_length=1, max_length=200)
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    photos: Optional[List[str]] = None
    is_blog: bool = False


class CheckInUpdate(BaseModel):
    job_type: Optional[str] = Field(None, min_length=1, max_length=200)
    notes: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    is_blog: Optional[bool] = None
