# rankitpro/deps.py
from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from rankitpro.core.database import get_db
from rankitpro.core.request_context import set_request_context
from rankitpro.services.auth import decode_access_token, extract_user_id
from rankitpro.services.directory import Directory
from rankitpro.services.gates import (
    AuthContext,
    DenialReason,
    authenticate,
    belongs_to_company,
    deny,
    is_company_admin,
    is_super_admin,
    log_denial,
    run_gates,
)
from rankitpro.services.session_store import SessionStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_directory(db: Session = Depends(get_db)) -> Directory:
    return Directory(db)


def get_session_store(request: Request) -> SessionStore:
    store = getattr(request.app.state, "session_store", None)
    if store is None:
        raise RuntimeError("Session store not configured on app.state")
    return store


def require_authenticated(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    directory: Directory = Depends(get_directory),
) -> AuthContext:
    return run_gates(request, [authenticate], store=store, directory=directory)


def require_super_admin(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    directory: Directory = Depends(get_directory),
) -> AuthContext:
    return run_gates(request, [is_super_admin], store=store, directory=directory)


def require_company_admin(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    directory: Directory = Depends(get_directory),
) -> AuthContext:
    return run_gates(request, [is_company_admin], store=store, directory=directory)


def _target_company_param(request: Request) -> str | None:
    for name in ("company_id", "id"):
        value = request.path_params.get(name)
        if value is not None:
            return value
    return None


def require_company_member(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    directory: Directory = Depends(get_directory),
) -> AuthContext:
    """Authenticated user of the company named in the path (super admins pass)."""
    target = _target_company_param(request)
    return run_gates(request, [belongs_to_company(target)], store=store, directory=directory)


def require_company_admin_member(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    directory: Directory = Depends(get_directory),
) -> AuthContext:
    target = _target_company_param(request)
    return run_gates(
        request,
        [is_company_admin, belongs_to_company(target)],
        store=store,
        directory=directory,
    )


def get_mobile_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    directory: Directory = Depends(get_directory),
) -> AuthContext:
    """Bearer-token identity for the mobile app, with the same directory checks as sessions."""
    unauthorized_headers = {"WWW-Authenticate": "Bearer"}

    if credentials is None or not credentials.credentials:
        log_denial(request, deny(DenialReason.NO_SESSION))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers=unauthorized_headers,
        )

    try:
        payload = decode_access_token(credentials.credentials)
    except ValueError:
        log_denial(request, deny(DenialReason.SESSION_EXPIRED))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers=unauthorized_headers,
        )

    user_id = extract_user_id(payload)
    user = directory.get_user(user_id) if user_id is not None else None
    if user is None:
        log_denial(request, deny(DenialReason.USER_NOT_FOUND))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers=unauthorized_headers,
        )

    context = AuthContext(user=user)
    if not user.active:
        log_denial(request, deny(DenialReason.ACCOUNT_DISABLED, context=context))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled",
            headers=unauthorized_headers,
        )

    request.state.auth_context = context
    set_request_context(
        user_id=str(user.id),
        company_id=str(user.company_id) if user.company_id is not None else None,
    )
    return context
