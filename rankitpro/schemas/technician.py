from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class TechnicianRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    specialty: Optional[str] = None
    location: Optional[str] = None
    company_id: int
    user_id: Optional[int] = None
    active: bool
    created_at: Optional[datetime] = None


class TechnicianWithStats(TechnicianRead):
    check_ins_count: int = 0
    review_requests_count: int = 0


class TechnicianCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = None
    specialty: Optional[str] = None
    location: Optional[str] = None
    user_id: Optional[int] = None
    # Só super_admin informa; os demais usam a própria empresa.
    company_id: Optional[int] = Field(None, ge=1)


class TechnicianUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    specialty: Optional[str] = None
    location: Optional[str] = None
    active: Optional[bool] = None
