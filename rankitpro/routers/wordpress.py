from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from rankitpro.deps import get_directory, require_company_admin
from rankitpro.integrations.wordpress import (
    ClientFactory,
    WordPressClient,
    WordPressError,
    get_wordpress_client_factory,
)
from rankitpro.models.company import Company
from rankitpro.schemas.content import WordPressConfigRead, WordPressConfigUpdate
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory
from rankitpro.services.gates import AuthContext, resolve_company_scope

router = APIRouter(prefix="/api/wordpress", tags=["wordpress"])
logger = logging.getLogger(__name__)


def scoped_company(request: Request, context: AuthContext, directory: Directory, company_id: Optional[int]) -> Company:
    scope = resolve_company_scope(request, context, company_id)
    company = directory.get_company(scope)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


def open_client(factory: ClientFactory, company: Company) -> WordPressClient:
    try:
        return factory(company.wordpress_config)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="WordPress is not configured") from exc


def wordpress_failure(company: Company, exc: WordPressError) -> HTTPException:
    logger.warning("wordpress call failed company_id=%s status=%s", company.id, exc.status_code)
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"WordPress request failed (status {exc.status_code})",
    )


def _masked(config: Optional[dict]) -> dict:
    config = config or {}
    return {
        "site_url": config.get("site_url"),
        "username": config.get("username"),
        "application_password_set": bool(config.get("application_password")),
        "default_category_id": config.get("default_category_id"),
    }


@router.get("/config", response_model=WordPressConfigRead)
def get_config(
    request: Request,
    company_id: Optional[int] = None,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
):
    company = scoped_company(request, context, directory, company_id)
    return _masked(company.wordpress_config)


@router.put("/config", response_model=WordPressConfigRead)
def update_config(
    payload: WordPressConfigUpdate,
    request: Request,
    company_id: Optional[int] = None,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
):
    company = scoped_company(request, context, directory, company_id)
    directory.update_company(company, wordpress_config=payload.to_storage(company.wordpress_config))
    log_audit_event(
        directory.db,
        company_id=company.id,
        user_id=context.user_id,
        action="update_wordpress_config",
        entity_type="company",
        entity_id=company.id,
        meta={"site_url": payload.site_url},
    )
    directory.commit()
    return _masked(company.wordpress_config)


@router.post("/test-connection")
def test_connection(
    request: Request,
    company_id: Optional[int] = None,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
    factory: ClientFactory = Depends(get_wordpress_client_factory),
):
    company = scoped_company(request, context, directory, company_id)
    with open_client(factory, company) as client:
        try:
            return client.test_connection()
        except WordPressError as exc:
            raise wordpress_failure(company, exc) from exc


@router.get("/categories")
def list_categories(
    request: Request,
    company_id: Optional[int] = None,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
    factory: ClientFactory = Depends(get_wordpress_client_factory),
):
    company = scoped_company(request, context, directory, company_id)
    with open_client(factory, company) as client:
        try:
            return client.list_categories()
        except WordPressError as exc:
            raise wordpress_failure(company, exc) from exc
