from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SalesPersonRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: Optional[int] = None
    name: str
    email: str
    phone: Optional[str] = None
    commission_rate: Decimal
    is_active: bool
    created_at: Optional[datetime] = None


class SalesPersonCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, min_length=7, max_length=32)
    commission_rate: Decimal = Field(Decimal("0.10"), ge=0, le=1)
    user_id: Optional[int] = Field(None, ge=1)


class AssignmentCreate(BaseModel):
    sales_person_id: int = Field(..., ge=1)
    company_id: int = Field(..., ge=1)
    billing_period: Literal["monthly", "yearly"] = "monthly"


class AssignmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sales_person_id: int
    company_id: int
    subscription_plan: str
    plan_price: Decimal
    billing_period: str
    status: str
    created_at: Optional[datetime] = None


class CommissionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sales_person_id: int
    company_id: int
    period: str
    base_amount: Decimal
    commission_rate: Decimal
    amount: Decimal
    billing_period: str
    is_paid: bool
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class CommissionRun(BaseModel):
    month: str = Field(..., pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
