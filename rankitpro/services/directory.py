from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from rankitpro.models.blog_post import BlogPost
from rankitpro.models.check_in import CheckIn
from rankitpro.models.company import Company
from rankitpro.models.review_request import ReviewRequest, ReviewResponse
from rankitpro.models.sales import CompanyAssignment, SalesCommission, SalesPerson
from rankitpro.models.subscription_plan import SubscriptionPlan
from rankitpro.models.technician import Technician
from rankitpro.models.user import ROLE_COMPANY_ADMIN, ROLE_SUPER_ADMIN, USER_ROLES, User


class DirectoryError(ValueError):
    """Invalid write rejected at the directory boundary."""


def _apply(entity: Any, changes: dict[str, Any]) -> Any:
    for field, value in changes.items():
        if not hasattr(entity, field):
            raise DirectoryError(f"Unknown field: {field}")
        setattr(entity, field, value)
    return entity


def _check_user_invariants(role: str, company_id: Optional[int]) -> None:
    if role not in USER_ROLES:
        raise DirectoryError(f"Invalid role: {role}")
    if role != ROLE_SUPER_ADMIN and company_id is None:
        raise DirectoryError("Only super admins may exist without a company")


def public_user(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "role": user.role,
        "company_id": user.company_id,
        "active": bool(user.active),
        "created_at": user.created_at,
        "last_login_at": user.last_login_at,
    }


class Directory:
    """Id-indexed access to users, companies and every tenant-owned record."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()

    # -------- users --------
    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        normalized = (email or "").strip().lower()
        return self.db.query(User).filter(func.lower(User.email) == normalized).first()

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == (username or "").strip()).first()

    def list_users(self) -> list[User]:
        return self.db.query(User).order_by(User.id.asc()).all()

    def list_users_by_company(self, company_id: int) -> list[User]:
        return self.db.query(User).filter(User.company_id == company_id).order_by(User.id.asc()).all()

    def list_admin_users(self) -> list[User]:
        return (
            self.db.query(User)
            .filter(User.role.in_([ROLE_SUPER_ADMIN, ROLE_COMPANY_ADMIN]))
            .order_by(User.id.asc())
            .all()
        )

    def create_user(
        self,
        *,
        email: str,
        username: str,
        password_hash: str,
        role: str,
        company_id: Optional[int],
        active: bool = True,
    ) -> User:
        _check_user_invariants(role, company_id)
        user = User(
            email=email.strip().lower(),
            username=username.strip(),
            password_hash=password_hash,
            role=role,
            company_id=company_id,
            active=active,
        )
        self.db.add(user)
        self.db.flush()
        return user

    def update_user(self, user: User, **changes: Any) -> User:
        role = changes.get("role", user.role)
        company_id = changes.get("company_id", user.company_id)
        _check_user_invariants(role, company_id)
        if "email" in changes and changes["email"] is not None:
            changes["email"] = changes["email"].strip().lower()
        _apply(user, changes)
        self.db.flush()
        return user

    def touch_last_login(self, user: User) -> None:
        user.last_login_at = datetime.utcnow()
        self.db.flush()

    def delete_user(self, user: User) -> None:
        self.db.query(SalesPerson).filter(SalesPerson.user_id == user.id).update(
            {SalesPerson.user_id: None}, synchronize_session="auto"
        )
        self.db.delete(user)
        self.db.flush()

    def count_users(self) -> int:
        return self.db.query(func.count(User.id)).scalar() or 0

    # -------- companies --------
    def get_company(self, company_id: int) -> Optional[Company]:
        return self.db.get(Company, company_id)

    def list_companies(self) -> list[Company]:
        return self.db.query(Company).order_by(Company.id.asc()).all()

    def list_companies_by_plan(self, plan: str) -> list[Company]:
        return self.db.query(Company).filter(Company.plan == plan).all()

    def create_company(self, **fields: Any) -> Company:
        company = Company(**fields)
        self.db.add(company)
        self.db.flush()
        return company

    def update_company(self, company: Company, **changes: Any) -> Company:
        _apply(company, changes)
        self.db.flush()
        return company

    def set_company_active(self, company_id: int, is_active: bool) -> Optional[Company]:
        # Um único UPDATE: chamadas concorrentes terminam com um dos valores pedidos.
        result = self.db.execute(
            update(Company).where(Company.id == company_id).values(is_active=is_active)
        )
        if result.rowcount == 0:
            return None
        company = self.db.get(Company, company_id)
        self.db.refresh(company)
        return company

    def delete_company(self, company: Company) -> list[int]:
        """Delete the company and everything it owns; return the removed user ids."""
        user_ids = [row[0] for row in self.db.query(User.id).filter(User.company_id == company.id).all()]
        self.db.query(SalesPerson).filter(SalesPerson.user_id.in_(user_ids)).update(
            {SalesPerson.user_id: None}, synchronize_session="auto"
        )
        owned = (
            BlogPost,
            ReviewResponse,
            ReviewRequest,
            CheckIn,
            Technician,
            SalesCommission,
            CompanyAssignment,
            User,
        )
        for model in owned:
            self.db.query(model).filter(model.company_id == company.id).delete()
        self.db.delete(company)
        self.db.flush()
        return user_ids

    def count_companies(self) -> int:
        return self.db.query(func.count(Company.id)).scalar() or 0

    def count_active_companies(self) -> int:
        return self.db.query(func.count(Company.id)).filter(Company.is_active.is_(True)).scalar() or 0

    # -------- technicians --------
    def get_technician(self, technician_id: int) -> Optional[Technician]:
        return self.db.get(Technician, technician_id)

    def get_technician_by_email_in_company(self, email: str, company_id: int) -> Optional[Technician]:
        normalized = (email or "").strip().lower()
        return (
            self.db.query(Technician)
            .filter(Technician.company_id == company_id, func.lower(Technician.email) == normalized)
            .first()
        )

    def get_technician_by_user(self, user_id: int) -> Optional[Technician]:
        return self.db.query(Technician).filter(Technician.user_id == user_id).first()

    def list_technicians(self) -> list[Technician]:
        return self.db.query(Technician).order_by(Technician.id.asc()).all()

    def list_technicians_by_company(self, company_id: int) -> list[Technician]:
        return (
            self.db.query(Technician)
            .filter(Technician.company_id == company_id)
            .order_by(Technician.id.asc())
            .all()
        )

    def technicians_with_stats(self, company_id: int) -> list[dict[str, Any]]:
        check_in_counts = dict(
            self.db.query(CheckIn.technician_id, func.count(CheckIn.id))
            .filter(CheckIn.company_id == company_id)
            .group_by(CheckIn.technician_id)
            .all()
        )
        review_counts = dict(
            self.db.query(ReviewRequest.technician_id, func.count(ReviewRequest.id))
            .filter(ReviewRequest.company_id == company_id)
            .group_by(ReviewRequest.technician_id)
            .all()
        )
        return [
            {
                "technician": technician,
                "check_ins_count": check_in_counts.get(technician.id, 0),
                "review_requests_count": review_counts.get(technician.id, 0),
            }
            for technician in self.list_technicians_by_company(company_id)
        ]

    def create_technician(self, **fields: Any) -> Technician:
        fields["email"] = fields["email"].strip().lower()
        technician = Technician(**fields)
        self.db.add(technician)
        self.db.flush()
        return technician

    def update_technician(self, technician: Technician, **changes: Any) -> Technician:
        if changes.get("email"):
            changes["email"] = changes["email"].strip().lower()
        _apply(technician, changes)
        self.db.flush()
        return technician

    def delete_technician(self, technician: Technician) -> None:
        for model in (ReviewResponse, ReviewRequest, CheckIn):
            self.db.query(model).filter(model.technician_id == technician.id).delete()
        self.db.delete(technician)
        self.db.flush()

    def count_technicians(self) -> int:
        return self.db.query(func.count(Technician.id)).scalar() or 0

    def count_technicians_by_company(self, company_id: int) -> int:
        return (
            self.db.query(func.count(Technician.id)).filter(Technician.company_id == company_id).scalar() or 0
        )

    # -------- check-ins --------
    def get_check_in(self, check_in_id: int) -> Optional[CheckIn]:
        return self.db.get(CheckIn, check_in_id)

    def list_check_ins_by_company(self, company_id: int, limit: Optional[int] = None) -> list[CheckIn]:
        query = (
            self.db.query(CheckIn)
            .filter(CheckIn.company_id == company_id)
            .order_by(CheckIn.created_at.desc(), CheckIn.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def list_check_ins_by_technician(self, technician_id: int, limit: Optional[int] = None) -> list[CheckIn]:
        query = (
            self.db.query(CheckIn)
            .filter(CheckIn.technician_id == technician_id)
            .order_by(CheckIn.created_at.desc(), CheckIn.id.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count_check_ins_by_company(self, company_id: int) -> int:
        return self.db.query(func.count(CheckIn.id)).filter(CheckIn.company_id == company_id).scalar() or 0

    def count_check_ins(self) -> int:
        return self.db.query(func.count(CheckIn.id)).scalar() or 0

    def create_check_in(self, **fields: Any) -> CheckIn:
        check_in = CheckIn(**fields)
        self.db.add(check_in)
        self.db.flush()
        return check_in

    def update_check_in(self, check_in: CheckIn, **changes: Any) -> CheckIn:
        _apply(check_in, changes)
        self.db.flush()
        return check_in

    def delete_check_in(self, check_in: CheckIn) -> None:
        self.db.query(BlogPost).filter(BlogPost.check_in_id == check_in.id).update(
            {BlogPost.check_in_id: None}
        )
        self.db.delete(check_in)
        self.db.flush()

    # -------- blog posts --------
    def get_blog_post(self, post_id: int) -> Optional[BlogPost]:
        return self.db.get(BlogPost, post_id)

    def list_blog_posts_by_company(self, company_id: int) -> list[BlogPost]:
        return (
            self.db.query(BlogPost)
            .filter(BlogPost.company_id == company_id)
            .order_by(BlogPost.created_at.desc(), BlogPost.id.desc())
            .all()
        )

    def create_blog_post(self, **fields: Any) -> BlogPost:
        post = BlogPost(**fields)
        self.db.add(post)
        self.db.flush()
        return post

    def update_blog_post(self, post: BlogPost, **changes: Any) -> BlogPost:
        _apply(post, changes)
        self.db.flush()
        return post

    def delete_blog_post(self, post: BlogPost) -> None:
        self.db.delete(post)
        self.db.flush()

    # -------- review requests --------
    def get_review_request(self, review_request_id: int) -> Optional[ReviewRequest]:
        return self.db.get(ReviewRequest, review_request_id)

    def list_review_requests_by_company(self, company_id: int) -> list[ReviewRequest]:
        return (
            self.db.query(ReviewRequest)
            .filter(ReviewRequest.company_id == company_id)
            .order_by(ReviewRequest.created_at.desc(), ReviewRequest.id.desc())
            .all()
        )

    def create_review_request(self, **fields: Any) -> ReviewRequest:
        review_request = ReviewRequest(**fields)
        self.db.add(review_request)
        self.db.flush()
        return review_request

    def update_review_request(self, review_request: ReviewRequest, **changes: Any) -> ReviewRequest:
        _apply(review_request, changes)
        self.db.flush()
        return review_request

    def get_review_request_by_token(self, token: str) -> Optional[ReviewRequest]:
        if not token:
            return None
        return self.db.query(ReviewRequest).filter(ReviewRequest.token == token).first()

    # -------- review responses --------
    def get_review_response_for_request(self, review_request_id: int) -> Optional[ReviewResponse]:
        return (
            self.db.query(ReviewResponse)
            .filter(ReviewResponse.review_request_id == review_request_id)
            .first()
        )

    def list_review_responses_by_company(self, company_id: int) -> list[ReviewResponse]:
        return (
            self.db.query(ReviewResponse)
            .filter(ReviewResponse.company_id == company_id)
            .order_by(ReviewResponse.created_at.desc(), ReviewResponse.id.desc())
            .all()
        )

    def list_review_responses_by_technician(self, technician_id: int) -> list[ReviewResponse]:
        return (
            self.db.query(ReviewResponse)
            .filter(ReviewResponse.technician_id == technician_id)
            .order_by(ReviewResponse.created_at.desc(), ReviewResponse.id.desc())
            .all()
        )

    def create_review_response(self, **fields: Any) -> ReviewResponse:
        response = ReviewResponse(**fields)
        self.db.add(response)
        self.db.flush()
        return response

    def review_stats(self, company_id: int) -> dict[str, Any]:
        rows = (
            self.db.query(ReviewResponse.rating, func.count(ReviewResponse.id))
            .filter(ReviewResponse.company_id == company_id)
            .group_by(ReviewResponse.rating)
            .all()
        )
        distribution = {str(rating): 0 for rating in range(1, 6)}
        total = 0
        weighted = 0
        for rating, count in rows:
            distribution[str(rating)] = count
            total += count
            weighted += rating * count
        return {
            "total_responses": total,
            "average_rating": round(weighted / total, 2) if total else 0.0,
            "rating_distribution": distribution,
        }

    # -------- sales --------
    def get_sales_person(self, sales_person_id: int) -> Optional[SalesPerson]:
        return self.db.get(SalesPerson, sales_person_id)

    def get_sales_person_by_email(self, email: str) -> Optional[SalesPerson]:
        normalized = (email or "").strip().lower()
        return self.db.query(SalesPerson).filter(SalesPerson.email == normalized).first()

    def get_sales_person_by_user(self, user_id: int) -> Optional[SalesPerson]:
        return self.db.query(SalesPerson).filter(SalesPerson.user_id == user_id).first()

    def list_sales_people(self) -> list[SalesPerson]:
        return self.db.query(SalesPerson).order_by(SalesPerson.id.asc()).all()

    def create_sales_person(self, **fields: Any) -> SalesPerson:
        fields["email"] = fields["email"].strip().lower()
        person = SalesPerson(**fields)
        self.db.add(person)
        self.db.flush()
        return person

    def get_assignment_for_company(self, company_id: int) -> Optional[CompanyAssignment]:
        return self.db.query(CompanyAssignment).filter(CompanyAssignment.company_id == company_id).first()

    def list_assignments(self, *, status: Optional[str] = None) -> list[CompanyAssignment]:
        query = self.db.query(CompanyAssignment)
        if status is not None:
            query = query.filter(CompanyAssignment.status == status)
        return query.order_by(CompanyAssignment.id.asc()).all()

    def save_assignment(self, company_id: int, **fields: Any) -> CompanyAssignment:
        """Create the company's assignment, or move the existing one."""
        assignment = self.get_assignment_for_company(company_id)
        if assignment is None:
            assignment = CompanyAssignment(company_id=company_id, **fields)
            self.db.add(assignment)
        else:
            _apply(assignment, fields)
        self.db.flush()
        return assignment

    def get_commission(self, commission_id: int) -> Optional[SalesCommission]:
        return self.db.get(SalesCommission, commission_id)

    def find_commission(self, sales_person_id: int, company_id: int, period: str) -> Optional[SalesCommission]:
        return (
            self.db.query(SalesCommission)
            .filter(
                SalesCommission.sales_person_id == sales_person_id,
                SalesCommission.company_id == company_id,
                SalesCommission.period == period,
            )
            .first()
        )

    def list_commissions(self, sales_person_id: Optional[int] = None) -> list[SalesCommission]:
        query = self.db.query(SalesCommission)
        if sales_person_id is not None:
            query = query.filter(SalesCommission.sales_person_id == sales_person_id)
        return query.order_by(SalesCommission.period.desc(), SalesCommission.id.asc()).all()

    def create_commission(self, **fields: Any) -> SalesCommission:
        commission = SalesCommission(**fields)
        self.db.add(commission)
        self.db.flush()
        return commission

    def update_commission(self, commission: SalesCommission, **changes: Any) -> SalesCommission:
        _apply(commission, changes)
        self.db.flush()
        return commission

    # -------- subscription plans --------
    def get_subscription_plan(self, plan_id: int) -> Optional[SubscriptionPlan]:
        return self.db.get(SubscriptionPlan, plan_id)

    def list_subscription_plans(self, *, active_only: bool = False) -> list[SubscriptionPlan]:
        query = self.db.query(SubscriptionPlan)
        if active_only:
            query = query.filter(SubscriptionPlan.is_active.is_(True))
        return query.order_by(SubscriptionPlan.price.asc(), SubscriptionPlan.id.asc()).all()

    def create_subscription_plan(self, **fields: Any) -> SubscriptionPlan:
        plan = SubscriptionPlan(**fields)
        self.db.add(plan)
        self.db.flush()
        return plan

    def update_subscription_plan(self, plan: SubscriptionPlan, **changes: Any) -> SubscriptionPlan:
        _apply(plan, changes)
        self.db.flush()
        return plan

    def delete_subscription_plan(self, plan: SubscriptionPlan) -> None:
        self.db.delete(plan)
        self.db.flush()


def public_company(company: Optional[Company]) -> Optional[dict[str, Any]]:
    if company is None:
        return None
    return {
        "id": company.id,
        "name": company.name,
        "plan": company.plan,
        "usage_limit": company.usage_limit,
        "is_active": bool(company.is_active),
        "features_enabled": company.features_enabled,
        "trial_end_date": company.trial_end_date,
        "created_at": company.created_at,
    }
