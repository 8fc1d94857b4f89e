from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from rankitpro.deps import (
    get_directory,
    require_authenticated,
    require_company_admin,
    require_company_admin_member,
    require_company_member,
    require_super_admin,
)
from rankitpro.models.technician import Technician
from rankitpro.schemas.technician import (
    TechnicianCreate,
    TechnicianRead,
    TechnicianUpdate,
    TechnicianWithStats,
)
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory
from rankitpro.services.gates import (
    AuthContext,
    ensure_company_access,
    ensure_company_admin,
    resolve_company_scope,
)

router = APIRouter(prefix="/api/technicians", tags=["technicians"])


def _load_technician(request: Request, directory: Directory, context: AuthContext, technician_id: int) -> Technician:
    technician = directory.get_technician(technician_id)
    if technician is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician not found")
    ensure_company_access(request, context, technician.company_id)
    return technician


@router.get("", response_model=List[TechnicianRead])
def list_technicians(
    request: Request,
    company_id: Optional[int] = None,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
):
    if context.is_super_admin:
        if company_id is None:
            return directory.list_technicians()
        return directory.list_technicians_by_company(company_id)

    # o query param passa pelo mesmo teste de tenant
    if company_id is not None:
        ensure_company_access(request, context, company_id)
    return directory.list_technicians_by_company(int(context.company_id))


@router.get("/all", response_model=List[TechnicianRead])
def list_all_technicians(
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    return directory.list_technicians()


@router.get("/company/{company_id}", response_model=List[TechnicianRead])
def list_company_technicians(
    company_id: int,
    _context: AuthContext = Depends(require_company_member),
    directory: Directory = Depends(get_directory),
):
    return directory.list_technicians_by_company(company_id)


@router.get("/company/{company_id}/stats", response_model=List[TechnicianWithStats])
def company_technician_stats(
    company_id: int,
    _context: AuthContext = Depends(require_company_admin_member),
    directory: Directory = Depends(get_directory),
):
    return [
        {
            **TechnicianRead.model_validate(row["technician"]).model_dump(),
            "check_ins_count": row["check_ins_count"],
            "review_requests_count": row["review_requests_count"],
        }
        for row in directory.technicians_with_stats(company_id)
    ]


@router.get("/{technician_id}", response_model=TechnicianRead)
def get_technician(
    technician_id: int,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    return _load_technician(request, directory, context, technician_id)


@router.post("", response_model=TechnicianRead, status_code=status.HTTP_201_CREATED)
def create_technician(
    payload: TechnicianCreate,
    request: Request,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
):
    company_id = resolve_company_scope(request, context, payload.company_id)
    if directory.get_company(company_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    if directory.get_technician_by_email_in_company(payload.email, company_id) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Technician with this email already exists",
        )
    if payload.user_id is not None:
        linked_user = directory.get_user(payload.user_id)
        if linked_user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        ensure_company_access(request, context, linked_user.company_id)
        if linked_user.company_id != company_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Linked user belongs to another company",
            )

    fields = payload.model_dump(exclude={"company_id"})
    technician = directory.create_technician(company_id=company_id, active=True, **fields)
    log_audit_event(
        directory.db,
        company_id=company_id,
        user_id=context.user_id,
        action="create_technician",
        entity_type="technician",
        entity_id=technician.id,
        meta={"email": technician.email},
    )
    directory.commit()
    return technician


@router.put("/{technician_id}", response_model=TechnicianRead)
def update_technician(
    technician_id: int,
    payload: TechnicianUpdate,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    technician = _load_technician(request, directory, context, technician_id)
    # técnico pode editar apenas o próprio cadastro
    if not context.is_company_admin and technician.user_id != context.user_id:
        ensure_company_admin(request, context)

    changes = payload.model_dump(exclude_unset=True)
    if "active" in changes and not context.is_company_admin:
        ensure_company_admin(request, context)
    new_email = changes.get("email")
    if new_email and new_email.strip().lower() != technician.email:
        existing = directory.get_technician_by_email_in_company(new_email, technician.company_id)
        if existing is not None and existing.id != technician.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Technician with this email already exists",
            )

    directory.update_technician(technician, **changes)
    log_audit_event(
        directory.db,
        company_id=technician.company_id,
        user_id=context.user_id,
        action="update_technician",
        entity_type="technician",
        entity_id=technician.id,
        meta={"fields": sorted(changes)},
    )
    directory.commit()
    return technician


@router.delete("/{technician_id}")
def delete_technician(
    technician_id: int,
    request: Request,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
):
    technician = _load_technician(request, directory, context, technician_id)
    company_id = technician.company_id
    directory.delete_technician(technician)
    log_audit_event(
        directory.db,
        company_id=company_id,
        user_id=context.user_id,
        action="delete_technician",
        entity_type="technician",
        entity_id=technician_id,
    )
    directory.commit()
    return {"message": "Technician deleted"}
