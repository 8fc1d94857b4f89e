from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, EmailStr, Field

from rankitpro.core.config import JWT_EXPIRE_MINUTES
from rankitpro.core.logging_setup import get_audit_logger
from rankitpro.deps import get_directory, get_mobile_user
from rankitpro.models.user import ROLE_TECHNICIAN
from rankitpro.schemas.check_in import CheckInRead
from rankitpro.schemas.user import UserRead
from rankitpro.services.auth import create_access_token
from rankitpro.services.directory import Directory, public_user
from rankitpro.services.gates import AuthContext, resolve_company_scope
from rankitpro.services.login_attempts import check_login_lock, clear_login_attempts, register_failed_login
from rankitpro.services.passwords import verify_password

router = APIRouter(prefix="/api/mobile", tags=["mobile"])
audit_logger = get_audit_logger()


class MobileLoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class MobileLoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


def _log_mobile_login_failure(request: Request, reason: str) -> None:
    audit_logger.warning(
        "mobile login failed",
        extra={
            "event": "login_failed",
            "reason": reason,
            "endpoint": request.url.path,
            "method": request.method,
            "client_ip": request.client.host if request.client else None,
        },
    )


@router.post("/auth/login", response_model=MobileLoginResponse)
def mobile_login(
    payload: MobileLoginPayload,
    request: Request,
    directory: Directory = Depends(get_directory),
):
    db = directory.db
    email = payload.email.strip().lower()

    locked, _ = check_login_lock(db, email)
    if locked:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many failed login attempts. Try again in a few minutes.",
        )

    user = directory.get_user_by_email(email)
    if user is None or not verify_password(payload.password, user.password_hash):
        register_failed_login(db, email)
        directory.commit()
        _log_mobile_login_failure(request, "invalid_credentials")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # senha certa numa conta desativada não conta como tentativa falha
    if not user.active:
        _log_mobile_login_failure(request, "account_disabled")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled",
            headers={"WWW-Authenticate": "Bearer"},
        )

    clear_login_attempts(db, email)
    directory.touch_last_login(user)
    directory.commit()

    token = create_access_token(user.id, extra={"role": user.role, "company_id": user.company_id})
    return {
        "access_token": token,
        "token_type": "bearer",
        "expires_in": JWT_EXPIRE_MINUTES * 60,
        "user": public_user(user),
    }


@router.get("/check-ins", response_model=List[CheckInRead])
def mobile_check_ins(
    request: Request,
    company_id: Optional[int] = None,
    limit: Optional[int] = Query(50, ge=1, le=500),
    context: AuthContext = Depends(get_mobile_user),
    directory: Directory = Depends(get_directory),
):
    if context.role == ROLE_TECHNICIAN:
        technician = directory.get_technician_by_user(context.user_id)
        if technician is None:
            return []
        return directory.list_check_ins_by_technician(technician.id, limit=limit)

    scope = resolve_company_scope(request, context, company_id)
    return directory.list_check_ins_by_company(scope, limit=limit)
