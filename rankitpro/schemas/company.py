from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from rankitpro.schemas.user import UserRead

CompanyPlan = Literal["starter", "pro", "agency"]


class CompanyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    plan: str
    usage_limit: int
    is_active: bool
    features_enabled: Optional[Dict[str, Any]] = None
    trial_end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    plan: CompanyPlan = "starter"
    usage_limit: Optional[int] = Field(None, ge=0)
    features_enabled: Optional[Dict[str, Any]] = None


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    plan: Optional[CompanyPlan] = None
    usage_limit: Optional[int] = Field(None, ge=0)
    features_enabled: Optional[Dict[str, Any]] = None


class CompanyStatusUpdate(BaseModel):
    is_active: bool


class SessionPayload(BaseModel):
    user: UserRead
    company: Optional[CompanyRead] = None
