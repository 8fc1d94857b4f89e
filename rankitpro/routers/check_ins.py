from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from rankitpro.deps import get_directory, require_authenticated, require_company_admin
from rankitpro.models.check_in import CheckIn
from rankitpro.models.user import ROLE_TECHNICIAN
from rankitpro.schemas.check_in import CheckInCreate, CheckInRead, CheckInUpdate
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory
from rankitpro.services.gates import (
    AuthContext,
    ensure_company_access,
    forbid,
    resolve_company_scope,
)

router = APIRouter(prefix="/api/check-ins", tags=["check-ins"])
logger = logging.getLogger(__name__)


def _load_check_in(request: Request, directory: Directory, context: AuthContext, check_in_id: int) -> CheckIn:
    check_in = directory.get_check_in(check_in_id)
    if check_in is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Check-in not found")
    ensure_company_access(request, context, check_in.company_id)
    return check_in


@router.get("", response_model=List[CheckInRead])
def list_check_ins(
    request: Request,
    company_id: Optional[int] = None,
    limit: Optional[int] = Query(None, ge=1, le=500),
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    scope = resolve_company_scope(request, context, company_id)
    return directory.list_check_ins_by_company(scope, limit=limit)


@router.post("", response_model=CheckInRead, status_code=status.HTTP_201_CREATED)
def create_check_in(
    payload: CheckInCreate,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    technician = directory.get_technician(payload.technician_id)
    if technician is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician not found")
    # empresa vem do técnico, que precisa ser do mesmo tenant do usuário
    ensure_company_access(request, context, technician.company_id)
    if context.role == ROLE_TECHNICIAN and technician.user_id != context.user_id:
        forbid(request, context, "Technicians can only record their own check-ins")

    company = directory.get_company(technician.company_id)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    # contagem e insert na mesma transação (um único commit)
    used = directory.count_check_ins_by_company(company.id)
    if used >= company.usage_limit:
        logger.info("usage limit reached company_id=%s used=%s limit=%s", company.id, used, company.usage_limit)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Check-in limit reached for the current plan",
        )

    check_in = directory.create_check_in(company_id=company.id, **payload.model_dump())
    log_audit_event(
        directory.db,
        company_id=company.id,
        user_id=context.user_id,
        action="create_check_in",
        entity_type="check_in",
        entity_id=check_in.id,
        meta={"technician_id": technician.id},
    )
    directory.commit()
    return check_in


@router.get("/{check_in_id}", response_model=CheckInRead)
def get_check_in(
    check_in_id: int,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    return _load_check_in(request, directory, context, check_in_id)


@router.patch("/{check_in_id}", response_model=CheckInRead)
def update_check_in(
    check_in_id: int,
    payload: CheckInUpdate,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    check_in = _load_check_in(request, directory, context, check_in_id)
    if context.role == ROLE_TECHNICIAN:
        technician = directory.get_technician(check_in.technician_id)
        if technician is None or technician.user_id != context.user_id:
            forbid(request, context, "Technicians can only edit their own check-ins")

    changes = payload.model_dump(exclude_unset=True)
    directory.update_check_in(check_in, **changes)
    log_audit_event(
        directory.db,
        company_id=check_in.company_id,
        user_id=context.user_id,
        action="update_check_in",
        entity_type="check_in",
        entity_id=check_in.id,
        meta={"fields": sorted(changes)},
    )
    directory.commit()
    return check_in


@router.delete("/{check_in_id}")
def delete_check_in(
    check_in_id: int,
    request: Request,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
):
    check_in = _load_check_in(request, directory, context, check_in_id)
    company_id = check_in.company_id
    directory.delete_check_in(check_in)
    log_audit_event(
        directory.db,
        company_id=company_id,
        user_id=context.user_id,
        action="delete_check_in",
        entity_type="check_in",
        entity_id=check_in_id,
    )
    directory.commit()
    return {"message": "Check-in deleted"}
