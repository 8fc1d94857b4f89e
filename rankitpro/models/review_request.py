import secrets
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from rankitpro.core.database import Base


def new_review_token() -> str:
    return secrets.token_urlsafe(24)


class ReviewRequest(Base):
    __tablename__ = "review_requests"

    id = Column(Integer, primary_key=True, index=True)
    customer_name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    method = Column(String, nullable=False)
    job_type = Column(String, nullable=True)
    status = Column(String, nullable=False, default="pending")
    # Link público enviado ao cliente; quem tem o token pode responder uma vez.
    token = Column(String, nullable=False, unique=True, index=True, default=new_review_token)
    technician_id = Column(Integer, ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class ReviewResponse(Base):
    __tablename__ = "review_responses"

    id = Column(Integer, primary_key=True, index=True)
    review_request_id = Column(
        Integer,
        ForeignKey("review_requests.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    rating = Column(Integer, nullable=False)
    feedback = Column(Text, nullable=True)
    customer_name = Column(String, nullable=False)
    public_display = Column(Boolean, nullable=False, default=False)
    technician_id = Column(Integer, ForeignKey("technicians.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
