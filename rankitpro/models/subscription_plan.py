from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, Numeric, String

from rankitpro.core.database import Base


class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    # Tier de Company.plan que este plano representa.
    tier = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    billing_period = Column(String, nullable=False, default="monthly")
    max_technicians = Column(Integer, nullable=False)
    max_check_ins = Column(Integer, nullable=False)
    features = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
