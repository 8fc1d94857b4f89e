from __future__ import annotations

from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, Field, model_validator

from rankitpro.core.logging_setup import get_audit_logger
from rankitpro.deps import get_directory, get_session_store, require_super_admin
from rankitpro.models.user import ROLE_SUPER_ADMIN, User
from rankitpro.schemas.user import UserRead, UserStatusUpdate
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory, public_user
from rankitpro.services.gates import AuthContext, forbid
from rankitpro.services.passwords import hash_password
from rankitpro.services.session_store import SessionStore

router = APIRouter(prefix="/api/admin/admin-users", tags=["admin-users"])
audit_logger = get_audit_logger()


class AdminAccountCreate(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=8)
    role: Literal["super_admin", "company_admin"]
    company_id: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def _company_for_company_admin(self):
        if self.role == "company_admin" and self.company_id is None:
            raise ValueError("company_id is required for company_admin accounts")
        if self.role == "super_admin" and self.company_id is not None:
            raise ValueError("super_admin accounts cannot belong to a company")
        return self


def _load_target(request: Request, directory: Directory, context: AuthContext, user_id: int, verb: str) -> User:
    target = directory.get_user(user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    if target.id == context.user_id:
        audit_logger.warning(
            "super admin attempted to %s own account user_id=%s",
            verb,
            context.user_id,
            extra={
                "event": "self_action_blocked",
                "user_id": context.user_id,
                "role": context.role,
                "endpoint": request.url.path,
                "method": request.method,
                "status_code": status.HTTP_400_BAD_REQUEST,
            },
        )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Cannot {verb} your own account")
    if target.role == ROLE_SUPER_ADMIN:
        forbid(request, context, "Cannot modify super admin accounts", target_company_id=target.company_id)
    return target


@router.get("", response_model=List[UserRead])
def list_admin_accounts(
    _context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    return [public_user(user) for user in directory.list_admin_users()]


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_admin_account(
    payload: AdminAccountCreate,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
):
    if directory.get_user_by_email(payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email address already registered")
    if directory.get_user_by_username(payload.username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")
    if payload.company_id is not None and directory.get_company(payload.company_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    account = directory.create_user(
        email=payload.email,
        username=payload.username,
        password_hash=hash_password(payload.password),
        role=payload.role,
        company_id=payload.company_id,
    )
    log_audit_event(
        directory.db,
        company_id=account.company_id,
        user_id=context.user_id,
        action="create_admin_user",
        entity_type="user",
        entity_id=account.id,
        meta={"email": account.email, "role": account.role},
    )
    directory.commit()
    return public_user(account)


@router.patch("/{user_id}/status", response_model=UserRead)
def set_admin_account_status(
    user_id: int,
    request: Request,
    payload: UserStatusUpdate,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
    store: SessionStore = Depends(get_session_store),
):
    target = _load_target(request, directory, context, user_id, "modify")
    directory.update_user(target, active=payload.active)
    log_audit_event(
        directory.db,
        company_id=target.company_id,
        user_id=context.user_id,
        action="activate_user" if payload.active else "deactivate_user",
        entity_type="user",
        entity_id=target.id,
    )
    directory.commit()
    if not payload.active:
        store.destroy_for_user(target.id)
    return public_user(target)


@router.delete("/{user_id}")
def delete_admin_account(
    user_id: int,
    request: Request,
    context: AuthContext = Depends(require_super_admin),
    directory: Directory = Depends(get_directory),
    store: SessionStore = Depends(get_session_store),
):
    target = _load_target(request, directory, context, user_id, "delete")
    directory.delete_user(target)
    log_audit_event(
        directory.db,
        company_id=target.company_id,
        user_id=context.user_id,
        action="delete_user",
        entity_type="user",
        entity_id=user_id,
    )
    directory.commit()
    store.destroy_for_user(user_id)
    return {"message": "User deleted successfully"}
