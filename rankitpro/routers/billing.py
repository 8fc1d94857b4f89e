from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from rankitpro.deps import get_directory, require_authenticated, require_company_admin
from rankitpro.schemas.content import SubscriptionPlanRead
from rankitpro.services.directory import Directory
from rankitpro.services.gates import AuthContext, resolve_company_scope

router = APIRouter(prefix="/api/billing", tags=["billing"])


@router.get("/usage")
def usage(
    request: Request,
    company_id: Optional[int] = None,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
):
    scope = resolve_company_scope(request, context, company_id)
    company = directory.get_company(scope)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    used = directory.count_check_ins_by_company(company.id)
    return {
        "company_id": company.id,
        "plan": company.plan,
        "usage_limit": company.usage_limit,
        "check_ins_used": used,
        "remaining": max(0, company.usage_limit - used),
        "technicians": directory.count_technicians_by_company(company.id),
    }


@router.get("/plans", response_model=List[SubscriptionPlanRead])
def active_plans(
    _context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    return directory.list_subscription_plans(active_only=True)
