"""Sales attribution: which sales person brought each company in, and what they earn for it.

Commissions are computed per calendar month from the company's current
assignment. A month is only ever computed once per (sales person, company);
re-running a month returns what is already recorded.
"""
from __future__ import annotations

import calendar
import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from rankitpro.models.company import Company
from rankitpro.models.sales import CompanyAssignment, SalesCommission
from rankitpro.services.directory import Directory

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def month_bounds(month: str) -> tuple[datetime, datetime]:
    """First and last instant of a ``YYYY-MM`` month."""
    year, number = (int(part) for part in month.split("-"))
    last_day = calendar.monthrange(year, number)[1]
    return datetime(year, number, 1), datetime(year, number, last_day, 23, 59, 59, 999999)


def plan_price(directory: Directory, company: Company, billing_period: str) -> Decimal:
    """Price of the active plan matching the company tier, zero when none is configured."""
    candidates = [
        plan
        for plan in directory.list_subscription_plans(active_only=True)
        if plan.tier == company.plan
    ]
    for plan in candidates:
        if plan.billing_period == billing_period:
            return Decimal(plan.price)
    if candidates:
        return Decimal(candidates[0].price)
    return Decimal("0.00")


def monthly_base(assignment: CompanyAssignment) -> Decimal:
    price = Decimal(assignment.plan_price)
    if assignment.billing_period == "yearly":
        return _money(price / 12)
    return _money(price)


def calculate_monthly_commissions(directory: Directory, month: str) -> dict[str, Any]:
    _, month_end = month_bounds(month)
    created: list[SalesCommission] = []
    existing: list[SalesCommission] = []

    for assignment in directory.list_assignments(status="active"):
        if assignment.created_at and assignment.created_at > month_end:
            continue
        person = directory.get_sales_person(assignment.sales_person_id)
        company = directory.get_company(assignment.company_id)
        if person is None or not person.is_active or company is None or not company.is_active:
            continue

        recorded = directory.find_commission(person.id, company.id, month)
        if recorded is not None:
            existing.append(recorded)
            continue

        base = monthly_base(assignment)
        rate = Decimal(person.commission_rate)
        created.append(
            directory.create_commission(
                sales_person_id=person.id,
                company_id=company.id,
                period=month,
                base_amount=base,
                commission_rate=rate,
                amount=_money(base * rate),
                billing_period=assignment.billing_period,
            )
        )

    logger.info("commissions calculated month=%s created=%s existing=%s", month, len(created), len(existing))
    return {"month": month, "created": created, "existing": existing}


def _summary(commissions: list[SalesCommission]) -> dict[str, Decimal]:
    paid = sum((Decimal(c.amount) for c in commissions if c.is_paid), Decimal("0.00"))
    pending = sum((Decimal(c.amount) for c in commissions if not c.is_paid), Decimal("0.00"))
    return {"total_earned": _money(paid + pending), "paid": _money(paid), "pending": _money(pending)}


def sales_dashboard(directory: Directory, sales_person_id: Optional[int] = None) -> dict[str, Any]:
    people = directory.list_sales_people()
    if sales_person_id is not None:
        people = [person for person in people if person.id == sales_person_id]
    assignments = directory.list_assignments(status="active")
    commissions = directory.list_commissions(sales_person_id)

    rows = []
    for person in people:
        own = [c for c in commissions if c.sales_person_id == person.id]
        rows.append(
            {
                "sales_person_id": person.id,
                "name": person.name,
                "active_companies": sum(1 for a in assignments if a.sales_person_id == person.id),
                **_summary(own),
            }
        )

    return {
        "sales_people": len(people),
        "active_assignments": sum(row["active_companies"] for row in rows),
        **_summary(commissions),
        "by_sales_person": rows,
    }
