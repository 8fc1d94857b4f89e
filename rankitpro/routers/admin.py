from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from rankitpro.core.metrics import request_metrics
from rankitpro.deps import get_directory, get_session_store, require_super_admin
from rankitpro.models.company import Company
from rankitpro.schemas.company import CompanyRead, CompanyStatusUpdate
from rankitpro.schemas.user import UserRead
from rankitpro.services.audit import list_audit_events, log_audit_event
from rankitpro.services.directory import Directory, public_company, public_user
from rankitpro.services.gates import AuthContext
from rankitpro.services.passwords import hash_password
from rankitpro.services.session_store import SessionStore

router = APIRouter(prefix="/api/admin", tags=["admin"])


class AdminCompanyRead(CompanyRead):
    status: str


class AdminUserListRead(UserRead):
    status: str
    company_name: Optional[str] = None


class ChangeUserPasswordPayload(BaseModel):
    user_id: int = Field(..., ge=1)
    new_password: str = Field(..., min_length=8)


class AuditEntryRead(BaseModel):
    id: int
    company_id: Optional[int]
    user_id: int
    action: str
    entity_type: Optional[str]
    entity_id: Optional[int]
    meta: Optional[Dict[str, Any]]
    created_at: datetime


def company_status(company: Company, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    if not company.is_active:
        return "Inactive"
    if company.trial_end_date is not None and company.trial_end_date > now:
        return "Trial"
    return "Active"


@router.get("/companies", response_model=List[AdminCompanyRead])
def list_companies_with_status(
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    now = datetime.utcnow()
    return [
        {**public_company(company), "status": company_status(company, now)}
        for company in directory.list_companies()
    ]


@router.patch("/companies/{company_id}/status", response_model=AdminCompanyRead)
def set_company_status(
    company_id: int,
    payload: CompanyStatusUpdate,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    company = directory.set_company_active(company_id, payload.is_active)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    log_audit_event(
        directory.db,
        company_id=company.id,
        user_id=context.user_id,
        action="activate_company" if payload.is_active else "deactivate_company",
        entity_type="company",
        entity_id=company.id,
    )
    directory.commit()
    return {**public_company(company), "status": company_status(company)}


@router.get("/users", response_model=List[AdminUserListRead])
def list_all_users(
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    company_names = {company.id: company.name for company in directory.list_companies()}
    return [
        {
            **public_user(user),
            "status": "Active" if user.active else "Inactive",
            "company_name": company_names.get(user.company_id),
        }
        for user in directory.list_users()
    ]


@router.post("/change-user-password")
def change_user_password(
    payload: ChangeUserPasswordPayload,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
    store: SessionStore = Depends(get_session_store),
):
    target = directory.get_user(payload.user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    directory.update_user(target, password_hash=hash_password(payload.new_password))
    log_audit_event(
        directory.db,
        company_id=target.company_id,
        user_id=context.user_id,
        action="change_user_password",
        entity_type="user",
        entity_id=target.id,
    )
    directory.commit()

    # a senha antiga não pode manter sessões abertas
    if target.id != context.user_id:
        store.destroy_for_user(target.id)
    return {"message": "Password updated"}


@router.get("/system-stats")
def system_stats(
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    return {
        "total_companies": directory.count_companies(),
        "active_companies": directory.count_active_companies(),
        "total_users": directory.count_users(),
        "total_technicians": directory.count_technicians(),
        "total_check_ins": directory.count_check_ins(),
    }


@router.get("/audit", response_model=List[AuditEntryRead])
def list_audit(
    company_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    rows = list_audit_events(directory.db, company_id=company_id, action=action, limit=limit)
    return [
        {
            "id": row.id,
            "company_id": row.company_id,
            "user_id": row.user_id,
            "action": row.action,
            "entity_type": row.entity_type,
            "entity_id": row.entity_id,
            "meta": json.loads(row.meta_json) if row.meta_json else None,
            "created_at": row.created_at,
        }
        for row in rows
    ]


@router.get("/metrics")
def request_metrics_snapshot(_context: AuthContext = Depends(require_super_admin)):
    return {"endpoints": request_metrics.snapshot()}
