from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from rankitpro.deps import get_directory, get_session_store, require_authenticated
from rankitpro.models.user import ROLE_COMPANY_ADMIN, ROLE_SUPER_ADMIN, User
from rankitpro.schemas.user import UserCreate, UserRead, UserStatusUpdate, UserUpdate
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory, DirectoryError, public_user
from rankitpro.services.gates import AuthContext, ensure_company_access, forbid
from rankitpro.services.passwords import hash_password
from rankitpro.services.session_store import SessionStore

router = APIRouter(prefix="/api/users", tags=["users"])


def _load_user(directory: Directory, user_id: int) -> User:
    user = directory.get_user(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _check_can_manage(request: Request, context: AuthContext, target: User) -> None:
    """Rules shared by update and status change for non super admins."""
    if context.is_super_admin:
        return
    if target.role == ROLE_SUPER_ADMIN:
        forbid(request, context, "Only super admins can update super admin users")
    if context.role == ROLE_COMPANY_ADMIN:
        ensure_company_access(request, context, target.company_id)
        if target.role == ROLE_COMPANY_ADMIN and target.id != context.user_id:
            forbid(request, context, "Company admins cannot update other company admins")
        return
    if target.id != context.user_id:
        forbid(request, context, "You can only update your own profile")


@router.get("", response_model=List[UserRead])
def list_users(
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    if context.is_super_admin:
        return [public_user(user) for user in directory.list_users()]
    if context.role == ROLE_COMPANY_ADMIN:
        ensure_company_access(request, context, context.company_id)
        return [public_user(user) for user in directory.list_users_by_company(int(context.company_id))]
    forbid(request, context, "Not authorized to view users")


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    target = _load_user(directory, user_id)
    if context.is_super_admin or target.id == context.user_id:
        return public_user(target)
    if context.role != ROLE_COMPANY_ADMIN:
        forbid(request, context, "Not authorized to view this user")
    ensure_company_access(request, context, target.company_id)
    return public_user(target)


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    if not context.is_company_admin:
        forbid(request, context, "Not authorized to create users")
    if payload.role == ROLE_SUPER_ADMIN and not context.is_super_admin:
        forbid(request, context, "Only super admins can create super admin users")

    company_id = payload.company_id
    if not context.is_super_admin:
        if payload.role == ROLE_COMPANY_ADMIN:
            forbid(request, context, "Company admins cannot create other company admins")
        if company_id is not None:
            ensure_company_access(request, context, company_id)
        company_id = context.company_id
        ensure_company_access(request, context, company_id)
    elif payload.role == ROLE_SUPER_ADMIN:
        company_id = None

    if company_id is not None and directory.get_company(company_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    if directory.get_user_by_email(payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
    if directory.get_user_by_username(payload.username) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")

    try:
        user = directory.create_user(
            email=payload.email,
            username=payload.username,
            password_hash=hash_password(payload.password),
            role=payload.role,
            company_id=company_id,
        )
    except DirectoryError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    log_audit_event(
        directory.db,
        company_id=company_id,
        user_id=context.user_id,
        action="create_user",
        entity_type="user",
        entity_id=user.id,
        meta={"email": user.email, "role": user.role},
    )
    directory.commit()
    return public_user(user)


@router.put("/{user_id}", response_model=UserRead)
def update_user(
    user_id: int,
    payload: UserUpdate,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    target = _load_user(directory, user_id)
    _check_can_manage(request, context, target)

    changes = payload.model_dump(exclude_unset=True, exclude={"password"})
    new_role = changes.get("role")
    if new_role is not None and new_role != target.role and not context.is_super_admin:
        if new_role == ROLE_SUPER_ADMIN:
            forbid(request, context, "Only super admins can create super admin users")
        if context.role != ROLE_COMPANY_ADMIN or target.id == context.user_id:
            forbid(request, context, "You cannot change your own role")
        if new_role == ROLE_COMPANY_ADMIN:
            forbid(request, context, "Company admins cannot promote users to company admin")

    if changes.get("email"):
        other = directory.get_user_by_email(changes["email"])
        if other is not None and other.id != target.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
    if changes.get("username"):
        other = directory.get_user_by_username(changes["username"])
        if other is not None and other.id != target.id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")
    if payload.password:
        changes["password_hash"] = hash_password(payload.password)
    if new_role == ROLE_SUPER_ADMIN:
        changes["company_id"] = None

    try:
        directory.update_user(target, **changes)
    except DirectoryError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    log_audit_event(
        directory.db,
        company_id=target.company_id,
        user_id=context.user_id,
        action="update_user",
        entity_type="user",
        entity_id=target.id,
        meta={"fields": sorted(key for key in changes if key != "password_hash")},
    )
    directory.commit()
    return public_user(target)


@router.patch("/{user_id}/status", response_model=UserRead)
def set_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
    store: SessionStore = Depends(get_session_store),
):
    target = _load_user(directory, user_id)
    if target.id == context.user_id:
        forbid(request, context, "You cannot change your own active status")
    if not context.is_company_admin:
        forbid(request, context, "Not authorized to change user status")
    _check_can_manage(request, context, target)

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
