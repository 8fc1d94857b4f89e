from __future__ import annotations

from datetime import datetime
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from rankitpro.deps import get_directory, require_authenticated, require_super_admin
from rankitpro.models.user import ROLE_SALES_STAFF
from rankitpro.schemas.sales import (
    AssignmentCreate,
    AssignmentRead,
    CommissionRead,
    CommissionRun,
    SalesPersonCreate,
    SalesPersonRead,
)
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory
from rankitpro.services.gates import AuthContext, forbid
from rankitpro.services.sales import calculate_monthly_commissions, plan_price, sales_dashboard

router = APIRouter(prefix="/api/sales", tags=["sales"])


def _commission_rows(commissions) -> list[dict]:
    return [CommissionRead.model_validate(commission).model_dump(mode="json") for commission in commissions]


@router.get("/people", response_model=List[SalesPersonRead])
def list_sales_people(
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    return directory.list_sales_people()


@router.post("/people", response_model=SalesPersonRead, status_code=status.HTTP_201_CREATED)
def create_sales_person(
    payload: SalesPersonCreate,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    if directory.get_sales_person_by_email(payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Sales person already exists")
    if payload.user_id is not None:
        user = directory.get_user(payload.user_id)
        if user is None or user.role != ROLE_SALES_STAFF:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Linked user must be a sales_staff account",
            )
        if directory.get_sales_person_by_user(user.id) is not None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already a sales person")

    person = directory.create_sales_person(**payload.model_dump())
    log_audit_event(
        directory.db,
        company_id=None,
        user_id=context.user_id,
        action="create_sales_person",
        entity_type="sales_person",
        entity_id=person.id,
        meta={"email": person.email},
    )
    directory.commit()
    return person


@router.post("/assignments", response_model=AssignmentRead, status_code=status.HTTP_201_CREATED)
def assign_company(
    payload: AssignmentCreate,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    person = directory.get_sales_person(payload.sales_person_id)
    if person is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales person not found")
    company = directory.get_company(payload.company_id)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    assignment = directory.save_assignment(
        company.id,
        sales_person_id=person.id,
        subscription_plan=company.plan,
        plan_price=plan_price(directory, company, payload.billing_period),
        billing_period=payload.billing_period,
        status="active",
    )
    log_audit_event(
        directory.db,
        company_id=company.id,
        user_id=context.user_id,
        action="assign_company",
        entity_type="company_assignment",
        entity_id=assignment.id,
        meta={"sales_person_id": person.id},
    )
    directory.commit()
    return assignment


@router.get("/people/{sales_person_id}/commissions", response_model=List[CommissionRead])
def list_commissions(
    sales_person_id: int,
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    if directory.get_sales_person(sales_person_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales person not found")
    return directory.list_commissions(sales_person_id)


@router.post("/commissions/calculate")
def calculate_commissions(
    payload: CommissionRun,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    result = calculate_monthly_commissions(directory, payload.month)
    log_audit_event(
        directory.db,
        company_id=None,
        user_id=context.user_id,
        action="calculate_commissions",
        meta={"month": payload.month, "created": len(result["created"])},
    )
    directory.commit()
    return {
        "month": result["month"],
        "created": _commission_rows(result["created"]),
        "existing": _commission_rows(result["existing"]),
    }


@router.patch("/commissions/{commission_id}/paid", response_model=CommissionRead)
def mark_commission_paid(
    commission_id: int,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    commission = directory.get_commission(commission_id)
    if commission is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Commission not found")
    if commission.is_paid:
        return commission

    directory.update_commission(commission, is_paid=True, paid_at=datetime.utcnow())
    log_audit_event(
        directory.db,
        company_id=commission.company_id,
        user_id=context.user_id,
        action="commission_paid",
        entity_type="sales_commission",
        entity_id=commission.id,
        meta={"amount": commission.amount},
    )
    directory.commit()
    return commission


@router.get("/dashboard")
def commission_dashboard(
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    return sales_dashboard(directory)


@router.get("/me")
def my_sales_summary(
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    if context.role != ROLE_SALES_STAFF:
        forbid(request, context, "Sales staff access required")
    person = directory.get_sales_person_by_user(context.user_id)
    if person is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Sales person not found")
    return {
        "sales_person": SalesPersonRead.model_validate(person).model_dump(mode="json"),
        "commissions": _commission_rows(directory.list_commissions(person.id)),
        "summary": sales_dashboard(directory, person.id)["by_sales_person"][0],
    }
