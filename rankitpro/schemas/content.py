from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class BlogPostRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    excerpt: Optional[str] = None
    status: str
    check_in_id: Optional[int] = None
    company_id: int
    wordpress_post_id: Optional[int] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BlogPostCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    excerpt: Optional[str] = None
    check_in_id: Optional[int] = Field(None, ge=1)


class BlogPostUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = None


class BlogPublishRequest(BaseModel):
    categories: List[int] = Field(default_factory=list)
    status: Literal["publish", "draft"] = "publish"


class ReviewRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    method: str
    job_type: Optional[str] = None
    status: str
    token: str
    technician_id: int
    company_id: int
    created_at: Optional[datetime] = None


class ReviewRequestCreate(BaseModel):
    technician_id: int = Field(..., ge=1)
    customer_name: str = Field(..., min_length=1, max_length=200)
    method: Literal["email", "sms"]
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, min_length=7, max_length=32)
    job_type: Optional[str] = None

    @model_validator(mode="after")
    def _contact_for_method(self):
        if self.method == "email" and not self.email:
            raise ValueError("email is required when method is email")
        if self.method == "sms" and not self.phone:
            raise ValueError("phone is required when method is sms")
        return self


class ReviewResponseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    review_request_id: int
    rating: int
    feedback: Optional[str] = None
    customer_name: str
    public_display: bool
    technician_id: int
    company_id: int
    created_at: Optional[datetime] = None


class ReviewSubmission(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    feedback: Optional[str] = Field(None, max_length=5000)
    public_display: bool = True


class SubscriptionPlanRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    tier: str
    price: Decimal
    billing_period: str
    max_technicians: int
    max_check_ins: int
    features: Optional[List[str]] = None
    is_active: bool


class SubscriptionPlanCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    tier: Literal["starter", "pro", "agency"]
    price: Decimal = Field(..., ge=0)
    billing_period: Literal["monthly", "yearly"] = "monthly"
    max_technicians: int = Field(..., ge=1)
    max_check_ins: int = Field(..., ge=1)
    features: Optional[List[str]] = None
    is_active: bool = True


class SubscriptionPlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[Decimal] = Field(None, ge=0)
    billing_period: Optional[Literal["monthly", "yearly"]] = None
    max_technicians: Optional[int] = Field(None, ge=1)
    max_check_ins: Optional[int] = Field(None, ge=1)
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None


class WordPressConfigRead(BaseModel):
    site_url: Optional[str] = None
    username: Optional[str] = None
    application_password_set: bool = False
    default_category_id: Optional[int] = None


class WordPressConfigUpdate(BaseModel):
    site_url: str = Field(..., min_length=8, pattern=r"^https?://")
    username: str = Field(..., min_length=1)
    application_password: Optional[str] = Field(None, min_length=1)
    default_category_id: Optional[int] = Field(None, ge=1)

    def to_storage(self, existing: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        stored = dict(existing or {})
        stored["site_url"] = self.site_url.rstrip("/")
        stored["username"] = self.username
        stored["default_category_id"] = self.default_category_id
        if self.application_password:
            stored["application_password"] = self.application_password
        return stored
