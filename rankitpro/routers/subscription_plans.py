from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from rankitpro.deps import get_directory, require_super_admin
from rankitpro.models.subscription_plan import SubscriptionPlan
from rankitpro.schemas.content import SubscriptionPlanCreate, SubscriptionPlanRead, SubscriptionPlanUpdate
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory
from rankitpro.services.gates import AuthContext

router = APIRouter(prefix="/api/admin/subscription-plans", tags=["subscription-plans"])


def _get_plan_or_404(directory: Directory, plan_id: int) -> SubscriptionPlan:
    plan = directory.get_subscription_plan(plan_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subscription plan not found")
    return plan


def _ensure_unique_name(directory: Directory, name: str, *, exclude_id: int | None = None) -> None:
    for plan in directory.list_subscription_plans():
        if plan.name == name and plan.id != exclude_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Plan name already exists")


@router.get("", response_model=List[SubscriptionPlanRead])
def list_plans(
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    return directory.list_subscription_plans()


@router.post("", response_model=SubscriptionPlanRead, status_code=status.HTTP_201_CREATED)
def create_plan(
    payload: SubscriptionPlanCreate,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    _ensure_unique_name(directory, payload.name)
    plan = directory.create_subscription_plan(**payload.model_dump())
    log_audit_event(
        directory.db,
        company_id=None,
        user_id=context.user_id,
        action="create_subscription_plan",
        entity_type="subscription_plan",
        entity_id=plan.id,
        meta={"name": plan.name, "tier": plan.tier},
    )
    directory.commit()
    return plan


@router.put("/{plan_id}", response_model=SubscriptionPlanRead)
def update_plan(
    plan_id: int,
    payload: SubscriptionPlanUpdate,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    plan = _get_plan_or_404(directory, plan_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name"):
        _ensure_unique_name(directory, changes["name"], exclude_id=plan.id)
    directory.update_subscription_plan(plan, **changes)
    log_audit_event(
        directory.db,
        company_id=None,
        user_id=context.user_id,
        action="update_subscription_plan",
        entity_type="subscription_plan",
        entity_id=plan.id,
        meta={"fields": sorted(changes)},
    )
    directory.commit()
    return plan


@router.delete("/{plan_id}")
def delete_plan(
    plan_id: int,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    plan = _get_plan_or_404(directory, plan_id)
    if directory.list_companies_by_plan(plan.tier):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete plan with active subscribers. Please migrate subscribers first.",
        )

    directory.delete_subscription_plan(plan)
    log_audit_event(
        directory.db,
        company_id=None,
        user_id=context.user_id,
        action="delete_subscription_plan",
        entity_type="subscription_plan",
        entity_id=plan_id,
    )
    directory.commit()
    return {"message": "Subscription plan deleted successfully"}
