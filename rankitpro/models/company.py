from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String

from rankitpro.core.database import Base

PLAN_STARTER = "starter"
PLAN_PRO = "pro"
PLAN_AGENCY = "agency"

COMPANY_PLANS = (PLAN_STARTER, PLAN_PRO, PLAN_AGENCY)

PLAN_USAGE_LIMITS = {
    PLAN_STARTER: 50,
    PLAN_PRO: 200,
    PLAN_AGENCY: 1000,
}


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    plan = Column(String, nullable=False, default=PLAN_STARTER)
    usage_limit = Column(Integer, nullable=False, default=PLAN_USAGE_LIMITS[PLAN_STARTER])
    is_active = Column(Boolean, nullable=False, default=True)
    features_enabled = Column(JSON, nullable=True)
    wordpress_config = Column(JSON, nullable=True)
    trial_end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
