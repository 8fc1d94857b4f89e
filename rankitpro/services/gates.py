"""Access gates for session-authenticated requests.

Every gate is a plain function ``(request, store, directory) -> Allowed | Denied``.
Gates never raise and never mutate the request; ``run_gates`` is the only place
where a denial becomes an HTTP error and an audit log record.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, Union

from fastapi import HTTPException, Request, status

from rankitpro.core import config
from rankitpro.core.logging_setup import get_audit_logger
from rankitpro.core.request_context import set_request_context
from rankitpro.models.user import ROLE_COMPANY_ADMIN, ROLE_SUPER_ADMIN, User
from rankitpro.services.directory import Directory
from rankitpro.services.session_store import SessionStore, read_session_cookie

audit_logger = get_audit_logger()


class DenialReason(str, enum.Enum):
    NO_SESSION = "no_session"
    SESSION_EXPIRED = "session_expired"
    USER_NOT_FOUND = "user_not_found"
    ACCOUNT_DISABLED = "account_disabled"
    ROLE_REQUIRED = "role_required"
    TENANT_MISMATCH = "tenant_mismatch"
    NO_COMPANY = "no_company"


_DENIAL_STATUS = {
    DenialReason.NO_SESSION: status.HTTP_401_UNAUTHORIZED,
    DenialReason.SESSION_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    DenialReason.USER_NOT_FOUND: status.HTTP_401_UNAUTHORIZED,
    DenialReason.ACCOUNT_DISABLED: status.HTTP_401_UNAUTHORIZED,
    DenialReason.ROLE_REQUIRED: status.HTTP_403_FORBIDDEN,
    DenialReason.TENANT_MISMATCH: status.HTTP_403_FORBIDDEN,
    DenialReason.NO_COMPANY: status.HTTP_403_FORBIDDEN,
}

_DENIAL_MESSAGES = {
    DenialReason.NO_SESSION: "Authentication required",
    DenialReason.SESSION_EXPIRED: "Session expired, please log in again",
    DenialReason.USER_NOT_FOUND: "User not found",
    DenialReason.ACCOUNT_DISABLED: "Account is disabled",
    DenialReason.ROLE_REQUIRED: "Insufficient permissions",
    DenialReason.TENANT_MISMATCH: "Access denied to this company",
    DenialReason.NO_COMPANY: "User is not associated with a company",
}


@dataclass(frozen=True)
class AuthContext:
    user: User
    session_id: Optional[str] = None

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def role(self) -> str:
        return self.user.role

    @property
    def company_id(self) -> Optional[int]:
        return self.user.company_id

    @property
    def is_super_admin(self) -> bool:
        return self.user.role == ROLE_SUPER_ADMIN

    @property
    def is_company_admin(self) -> bool:
        return self.user.role in (ROLE_COMPANY_ADMIN, ROLE_SUPER_ADMIN)


@dataclass(frozen=True)
class Allowed:
    context: AuthContext


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
    status_code: int
    message: str
    context: Optional[AuthContext] = None
    target_company_id: Optional[int] = None


GateResult = Union[Allowed, Denied]
Gate = Callable[[Request, SessionStore, Directory], GateResult]


def deny(
    reason: DenialReason,
    *,
    context: Optional[AuthContext] = None,
    target_company_id: Optional[int] = None,
) -> Denied:
    return Denied(
        reason=reason,
        status_code=_DENIAL_STATUS[reason],
        message=_DENIAL_MESSAGES[reason],
        context=context,
        target_company_id=target_company_id,
    )


def _parse_company_id(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


# =========================
# Gates
# =========================
def authenticate(request: Request, store: SessionStore, directory: Directory) -> GateResult:
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    if not token:
        return deny(DenialReason.NO_SESSION)

    cookie = read_session_cookie(token)
    if cookie.expired:
        return deny(DenialReason.SESSION_EXPIRED)
    if cookie.session_id is None:
        return deny(DenialReason.NO_SESSION)

    record = store.get(cookie.session_id)
    if record is None:
        return deny(DenialReason.SESSION_EXPIRED)

    user = directory.get_user(record.user_id)
    if user is None:
        return deny(DenialReason.USER_NOT_FOUND)
    context = AuthContext(user=user, session_id=record.session_id)
    if not user.active:
        return deny(DenialReason.ACCOUNT_DISABLED, context=context)
    return Allowed(context)


def check_super_admin(context: AuthContext) -> GateResult:
    if context.is_super_admin:
        return Allowed(context)
    return deny(DenialReason.ROLE_REQUIRED, context=context)


def check_company_admin(context: AuthContext) -> GateResult:
    if context.is_company_admin:
        return Allowed(context)
    return deny(DenialReason.ROLE_REQUIRED, context=context)


def check_company_access(context: AuthContext, company_id: Any) -> GateResult:
    target = _parse_company_id(company_id)
    if context.is_super_admin:
        return Allowed(context)
    if context.company_id is None:
        return deny(DenialReason.NO_COMPANY, context=context, target_company_id=target)
    if target is None or int(context.company_id) != target:
        return deny(DenialReason.TENANT_MISMATCH, context=context, target_company_id=target)
    return Allowed(context)


def _then(result: GateResult, check: Callable[[AuthContext], GateResult]) -> GateResult:
    if isinstance(result, Denied):
        return result
    return check(result.context)


def is_super_admin(request: Request, store: SessionStore, directory: Directory) -> GateResult:
    return _then(authenticate(request, store, directory), check_super_admin)


def is_company_admin(request: Request, store: SessionStore, directory: Directory) -> GateResult:
    return _then(authenticate(request, store, directory), check_company_admin)


def belongs_to_company(company_id: Any) -> Gate:
    def _gate(request: Request, store: SessionStore, directory: Directory) -> GateResult:
        return _then(
            authenticate(request, store, directory),
            lambda context: check_company_access(context, company_id),
        )

    return _gate


# =========================
# Dispatcher
# =========================
def log_denial(request: Request, denied: Denied) -> None:
    client_ip = request.client.host if request.client else None
    extra: dict[str, Any] = {
        "event": "access_denied",
        "reason": denied.reason.value,
        "endpoint": request.url.path,
        "method": request.method,
        "status_code": denied.status_code,
        "client_ip": client_ip,
    }
    if denied.status_code == status.HTTP_401_UNAUTHORIZED:
        # só os nomes; valores de cookie nunca vão para o log
        extra["cookies_present"] = sorted(request.cookies.keys())
    if denied.context is None:
        audit_logger.warning("authentication failed reason=%s", denied.reason.value, extra=extra)
        return

    extra.update(
        {
            "user_id": denied.context.user_id,
            "company_id": denied.context.company_id,
            "role": denied.context.role,
            "target_company_id": denied.target_company_id,
        }
    )
    audit_logger.warning(
        "access denied reason=%s user_id=%s role=%s company_id=%s target_company_id=%s",
        denied.reason.value,
        denied.context.user_id,
        denied.context.role,
        denied.context.company_id,
        denied.target_company_id,
        extra=extra,
    )


def raise_denied(request: Request, denied: Denied) -> None:
    log_denial(request, denied)
    raise HTTPException(status_code=denied.status_code, detail=denied.message)


def run_gates(
    request: Request,
    gates: Sequence[Gate],
    *,
    store: SessionStore,
    directory: Directory,
) -> AuthContext:
    """Run ``gates`` in order and return the context of the last one.

    The first denial is audit-logged and raised as an HTTPException; later
    gates are not evaluated.
    """
    if not gates:
        raise ValueError("run_gates needs at least one gate")

    context: Optional[AuthContext] = None
    for gate in gates:
        result = gate(request, store, directory)
        if isinstance(result, Denied):
            raise_denied(request, result)
        context = result.context

    request.state.auth_context = context
    set_request_context(
        user_id=str(context.user_id),
        company_id=str(context.company_id) if context.company_id is not None else None,
    )
    return context


def ensure_company_access(request: Request, context: AuthContext, company_id: Any) -> AuthContext:
    """Tenant check for a company id derived from a loaded entity."""
    result = check_company_access(context, company_id)
    if isinstance(result, Denied):
        raise_denied(request, result)
    return context


def ensure_company_admin(request: Request, context: AuthContext) -> AuthContext:
    result = check_company_admin(context)
    if isinstance(result, Denied):
        raise_denied(request, result)
    return context


def ensure_super_admin(request: Request, context: AuthContext) -> AuthContext:
    result = check_super_admin(context)
    if isinstance(result, Denied):
        raise_denied(request, result)
    return context


def resolve_company_scope(request: Request, context: AuthContext, requested_company_id: Optional[int]) -> int:
    """Company a write should land in.

    Non super admins always write into their own company; a different
    requested id is a tenant mismatch. Super admins must name the company.
    """
    if context.is_super_admin:
        if requested_company_id is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Unable to determine company")
        return requested_company_id

    target = requested_company_id if requested_company_id is not None else context.company_id
    ensure_company_access(request, context, target)
    return int(context.company_id)


def forbid(request: Request, context: AuthContext, message: str, *, target_company_id: Optional[int] = None) -> None:
    """Role-rule denial decided inside a handler; logged like any gate denial."""
    raise_denied(
        request,
        Denied(
            reason=DenialReason.ROLE_REQUIRED,
            status_code=status.HTTP_403_FORBIDDEN,
            message=message,
            context=context,
            target_company_id=target_company_id,
        ),
    )
