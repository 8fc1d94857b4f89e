from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from rankitpro.deps import get_directory, require_authenticated
from rankitpro.schemas.content import ReviewRequestCreate, ReviewRequestRead
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory
from rankitpro.services.gates import AuthContext, ensure_company_access, resolve_company_scope

router = APIRouter(prefix="/api/review-requests", tags=["review-requests"])


@router.get("", response_model=List[ReviewRequestRead])
def list_review_requests(
    request: Request,
    company_id: Optional[int] = None,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    scope = resolve_company_scope(request, context, company_id)
    return directory.list_review_requests_by_company(scope)


@router.post("", response_model=ReviewRequestRead, status_code=status.HTTP_201_CREATED)
def create_review_request(
    payload: ReviewRequestCreate,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    technician = directory.get_technician(payload.technician_id)
    if technician is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician not found")
    ensure_company_access(request, context, technician.company_id)

    # envio de email/SMS fica fora deste serviço; o pedido nasce pendente
    review_request = directory.create_review_request(
        company_id=technician.company_id,
        status="pending",
        **payload.model_dump(),
    )
    log_audit_event(
        directory.db,
        company_id=technician.company_id,
        user_id=context.user_id,
        action="create_review_request",
        entity_type="review_request",
        entity_id=review_request.id,
        meta={"method": review_request.method},
    )
    directory.commit()
    return review_request


@router.get("/{review_request_id}", response_model=ReviewRequestRead)
def get_review_request(
    review_request_id: int,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    review_request = directory.get_review_request(review_request_id)
    if review_request is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review request not found")
    ensure_company_access(request, context, review_request.company_id)
    return review_request
