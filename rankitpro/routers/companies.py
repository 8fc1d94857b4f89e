from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from rankitpro.deps import (
    get_directory,
    get_session_store,
    require_company_admin_member,
    require_company_member,
    require_super_admin,
)
from rankitpro.models.company import PLAN_USAGE_LIMITS
from rankitpro.schemas.company import CompanyCreate, CompanyRead, CompanyUpdate
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory
from rankitpro.services.gates import AuthContext, ensure_super_admin
from rankitpro.services.session_store import SessionStore

router = APIRouter(prefix="/api/companies", tags=["companies"])


@router.get("", response_model=List[CompanyRead])
def list_companies(
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    return directory.list_companies()


@router.post("", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
def create_company(
    payload: CompanyCreate,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    usage_limit = payload.usage_limit if payload.usage_limit is not None else PLAN_USAGE_LIMITS[payload.plan]
    company = directory.create_company(
        name=payload.name.strip(),
        plan=payload.plan,
        usage_limit=usage_limit,
        features_enabled=payload.features_enabled,
        is_active=True,
    )
    log_audit_event(
        directory.db,
        company_id=company.id,
        user_id=context.user_id,
        action="create_company",
        entity_type="company",
        entity_id=company.id,
        meta={"plan": company.plan},
    )
    directory.commit()
    return company


@router.get("/{company_id}", response_model=CompanyRead)
def get_company(
    company_id: int,
    _context: AuthContext = Depends(require_company_member),
    directory: Directory = Depends(get_directory),
):
    company = directory.get_company(company_id)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


@router.put("/{company_id}", response_model=CompanyRead)
def update_company(
    company_id: int,
    payload: CompanyUpdate,
    request: Request,
    context: AuthContext = Depends(require_company_admin_member),
    directory: Directory = Depends(get_directory),
):
    company = directory.get_company(company_id)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    changes = payload.model_dump(exclude_unset=True)
    if "plan" in changes or "usage_limit" in changes:
        # plano e limite de uso são decisões de billing
        ensure_super_admin(request, context)
    if changes.get("name"):
        changes["name"] = changes["name"].strip()

    directory.update_company(company, **changes)
    log_audit_event(
        directory.db,
        company_id=company.id,
        user_id=context.user_id,
        action="update_company",
        entity_type="company",
        entity_id=company.id,
        meta={"fields": sorted(changes)},
    )
    directory.commit()
    return company


@router.delete("/{company_id}")
def delete_company(
    company_id: int,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
    store: SessionStore = Depends(get_session_store),
):
    company = directory.get_company(company_id)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    removed_user_ids = directory.delete_company(company)
    log_audit_event(
        directory.db,
        company_id=None,
        user_id=context.user_id,
        action="delete_company",
        entity_type="company",
        entity_id=company_id,
        meta={"removed_users": len(removed_user_ids)},
    )
    directory.commit()
    for user_id in removed_user_ids:
        store.destroy_for_user(user_id)
    return {"message": "Company deleted"}
