from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.exc import IntegrityError

from rankitpro.core import config
from rankitpro.core.logging_setup import get_audit_logger
from rankitpro.deps import get_directory, get_session_store, require_authenticated
from rankitpro.models.company import PLAN_USAGE_LIMITS
from rankitpro.models.user import ROLE_COMPANY_ADMIN, User
from rankitpro.schemas.company import CompanyPlan, SessionPayload
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory, public_company, public_user
from rankitpro.services.gates import AuthContext
from rankitpro.services.login_attempts import (
    check_login_lock,
    clear_login_attempts,
    register_failed_login,
)
from rankitpro.services.passwords import hash_password, verify_password
from rankitpro.services.session_store import (
    SessionStore,
    build_session_cookie_options,
    clear_session_cookie,
    read_session_cookie,
    set_session_cookie,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)
audit_logger = get_audit_logger()

LOCKED_MESSAGE = "Too many failed login attempts. Try again in a few minutes."


class LoginPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    remember_me: bool = False


class RegisterPayload(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=8)
    company_name: str = Field(..., min_length=1, max_length=200)
    plan: CompanyPlan = "starter"


def _session_payload(directory: Directory, user: User) -> dict:
    company = directory.get_company(user.company_id) if user.company_id is not None else None
    return {"user": public_user(user), "company": public_company(company)}


def _drop_previous_session(request: Request, store: SessionStore) -> None:
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    if not token:
        return
    previous = read_session_cookie(token)
    if previous.session_id:
        store.destroy(previous.session_id)


def _start_session(
    request: Request,
    response: Response,
    store: SessionStore,
    user: User,
    *,
    remember_me: bool = False,
) -> None:
    _drop_previous_session(request, store)
    max_age = config.REMEMBER_ME_MAX_AGE_SECONDS if remember_me else config.SESSION_MAX_AGE_SECONDS
    record = store.create(user.id, ttl_seconds=max_age)
    cookie_options = build_session_cookie_options(request)
    logger.info(
        "[AUTH_COOKIE] setting session user_id=%s samesite=%s secure=%s",
        user.id,
        cookie_options["samesite"],
        cookie_options["secure"],
    )
    set_session_cookie(response, record.session_id, max_age=max_age, request=request)


def _log_login_failure(request: Request, reason: str) -> None:
    audit_logger.warning(
        "login failed reason=%s",
        reason,
        extra={
            "event": "login_failed",
            "reason": reason,
            "endpoint": request.url.path,
            "method": request.method,
            "client_ip": request.client.host if request.client else None,
        },
    )


@router.post("/login", response_model=SessionPayload)
def login(
    payload: LoginPayload,
    request: Request,
    response: Response,
    directory: Directory = Depends(get_directory),
    store: SessionStore = Depends(get_session_store),
):
    db = directory.db
    normalized_email = payload.email.strip().lower()

    locked, _ = check_login_lock(db, normalized_email)
    if locked:
        _log_login_failure(request, "locked")
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=LOCKED_MESSAGE)

    user = directory.get_user_by_email(normalized_email)
    if user is None or not verify_password(payload.password, user.password_hash):
        _, locked_after = register_failed_login(db, normalized_email)
        log_audit_event(
            db,
            company_id=user.company_id if user else None,
            user_id=user.id if user else 0,
            action="login_failed",
            entity_type="user",
            entity_id=user.id if user else None,
            meta={"email": normalized_email},
        )
        if locked_after:
            log_audit_event(
                db,
                company_id=user.company_id if user else None,
                user_id=user.id if user else 0,
                action="login_locked",
                entity_type="user",
                entity_id=user.id if user else None,
                meta={"email": normalized_email},
            )
        directory.commit()
        _log_login_failure(request, "locked" if locked_after else "invalid_credentials")
        if locked_after:
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=LOCKED_MESSAGE)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    if not user.active:
        _log_login_failure(request, "account_disabled")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Account is disabled")

    clear_login_attempts(db, normalized_email)
    directory.touch_last_login(user)
    log_audit_event(db, company_id=user.company_id, user_id=user.id, action="login_success")
    directory.commit()

    _start_session(request, response, store, user, remember_me=payload.remember_me)
    return _session_payload(directory, user)


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
):
    _drop_previous_session(request, store)
    clear_session_cookie(response, request)
    return {"message": "Logged out"}


@router.get("/me", response_model=SessionPayload)
def me(
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    return _session_payload(directory, context.user)


@router.post("/register", response_model=SessionPayload, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterPayload,
    request: Request,
    response: Response,
    directory: Directory = Depends(get_directory),
    store: SessionStore = Depends(get_session_store),
):
    email = payload.email.strip().lower()
    username = payload.username.strip()
    if directory.get_user_by_email(email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
    if directory.get_user_by_username(username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")

    company = directory.create_company(
        name=payload.company_name.strip(),
        plan=payload.plan,
        usage_limit=PLAN_USAGE_LIMITS[payload.plan],
        is_active=True,
    )
    user = directory.create_user(
        email=email,
        username=username,
        password_hash=hash_password(payload.password),
        role=ROLE_COMPANY_ADMIN,
        company_id=company.id,
    )
    log_audit_event(
        directory.db,
        company_id=company.id,
        user_id=user.id,
        action="register",
        entity_type="company",
        entity_id=company.id,
        meta={"plan": company.plan},
    )
    try:
        directory.commit()
    except IntegrityError as exc:
        directory.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email or username already in use",
        ) from exc

    _start_session(request, response, store, user)
    return _session_payload(directory, user)
