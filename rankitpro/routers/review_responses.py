from __future__ import annotations

import logging
from typing import Any, List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from rankitpro.deps import get_directory, require_company_admin, require_company_admin_member
from rankitpro.models.review_request import ReviewRequest
from rankitpro.schemas.content import ReviewResponseRead, ReviewSubmission
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory
from rankitpro.services.gates import AuthContext, ensure_company_access

router = APIRouter(prefix="/api/review-responses", tags=["review-responses"])
logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Review request not found or has expired."
ALREADY_SUBMITTED_MESSAGE = "This review has already been submitted."


def _open_request(directory: Directory, token: str) -> ReviewRequest:
    # Rotas públicas: o token é a única credencial do cliente.
    review_request = directory.get_review_request_by_token(token)
    if review_request is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)
    if directory.get_review_response_for_request(review_request.id) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=ALREADY_SUBMITTED_MESSAGE)
    return review_request


@router.get("/request/{token}")
def get_review_form(token: str, directory: Directory = Depends(get_directory)):
    review_request = _open_request(directory, token)
    company = directory.get_company(review_request.company_id)
    technician = directory.get_technician(review_request.technician_id)
    if company is None or technician is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Company or technician information not found.",
        )
    return {
        "request_id": review_request.id,
        "company_id": company.id,
        "company_name": company.name,
        "technician_id": technician.id,
        "technician_name": technician.name,
        "job_type": review_request.job_type,
        "customer_name": review_request.customer_name,
    }


@router.post("/submit/{token}", response_model=ReviewResponseRead, status_code=status.HTTP_201_CREATED)
def submit_review(
    token: str,
    payload: ReviewSubmission,
    directory: Directory = Depends(get_directory),
):
    review_request = _open_request(directory, token)
    response = directory.create_review_response(
        review_request_id=review_request.id,
        company_id=review_request.company_id,
        technician_id=review_request.technician_id,
        customer_name=review_request.customer_name,
        rating=payload.rating,
        feedback=payload.feedback,
        public_display=payload.public_display,
    )
    log_audit_event(
        directory.db,
        company_id=review_request.company_id,
        user_id=0,
        action="review_submitted",
        entity_type="review_response",
        entity_id=response.id,
        meta={"review_request_id": review_request.id, "rating": payload.rating},
    )
    directory.commit()
    logger.info(
        "review submitted review_request_id=%s company_id=%s rating=%s",
        review_request.id,
        review_request.company_id,
        payload.rating,
    )
    return response


def _with_technician_names(directory: Directory, responses) -> List[dict[str, Any]]:
    names: dict[int, str] = {}
    items = []
    for response in responses:
        if response.technician_id not in names:
            technician = directory.get_technician(response.technician_id)
            names[response.technician_id] = technician.name if technician else "Unknown Technician"
        item = ReviewResponseRead.model_validate(response).model_dump()
        item["technician_name"] = names[response.technician_id]
        items.append(item)
    return items


@router.get("/company/{company_id}")
def list_company_reviews(
    company_id: int,
    _context: AuthContext = Depends(require_company_admin_member),
    directory: Directory = Depends(get_directory),
):
    return _with_technician_names(directory, directory.list_review_responses_by_company(company_id))


@router.get("/stats/{company_id}")
def company_review_stats(
    company_id: int,
    _context: AuthContext = Depends(require_company_admin_member),
    directory: Directory = Depends(get_directory),
):
    return directory.review_stats(company_id)


@router.get("/technician/{technician_id}", response_model=List[ReviewResponseRead])
def list_technician_reviews(
    technician_id: int,
    request: Request,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
):
    technician = directory.get_technician(technician_id)
    if technician is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technician not found")
    ensure_company_access(request, context, technician.company_id)
    return directory.list_review_responses_by_technician(technician_id)
