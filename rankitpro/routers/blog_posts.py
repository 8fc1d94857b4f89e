from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status

from rankitpro.deps import get_directory, require_authenticated, require_company_admin
from rankitpro.integrations.wordpress import ClientFactory, WordPressError, get_wordpress_client_factory
from rankitpro.models.blog_post import BLOG_STATUS_DRAFT, BLOG_STATUS_PUBLISHED, BlogPost
from rankitpro.routers.wordpress import open_client, wordpress_failure
from rankitpro.schemas.content import BlogPostCreate, BlogPostRead, BlogPostUpdate, BlogPublishRequest
from rankitpro.services.audit import log_audit_event
from rankitpro.services.directory import Directory
from rankitpro.services.gates import AuthContext, ensure_company_access, resolve_company_scope

router = APIRouter(prefix="/api/blog-posts", tags=["blog-posts"])


def _load_post(request: Request, directory: Directory, context: AuthContext, post_id: int) -> BlogPost:
    post = directory.get_blog_post(post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog post not found")
    ensure_company_access(request, context, post.company_id)
    return post


@router.get("", response_model=List[BlogPostRead])
def list_blog_posts(
    request: Request,
    company_id: Optional[int] = None,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    scope = resolve_company_scope(request, context, company_id)
    return directory.list_blog_posts_by_company(scope)


@router.post("", response_model=BlogPostRead, status_code=status.HTTP_201_CREATED)
def create_blog_post(
    payload: BlogPostCreate,
    request: Request,
    company_id: Optional[int] = None,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    scope = resolve_company_scope(request, context, company_id)
    if payload.check_in_id is not None:
        check_in = directory.get_check_in(payload.check_in_id)
        if check_in is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Check-in not found")
        # id vindo do body também passa pelo teste de tenant
        ensure_company_access(request, context, check_in.company_id)
        if check_in.company_id != scope:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Check-in belongs to another company")

    post = directory.create_blog_post(company_id=scope, status=BLOG_STATUS_DRAFT, **payload.model_dump())
    log_audit_event(
        directory.db,
        company_id=scope,
        user_id=context.user_id,
        action="create_blog_post",
        entity_type="blog_post",
        entity_id=post.id,
    )
    directory.commit()
    return post


@router.get("/{post_id}", response_model=BlogPostRead)
def get_blog_post(
    post_id: int,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    return _load_post(request, directory, context, post_id)


@router.put("/{post_id}", response_model=BlogPostRead)
def update_blog_post(
    post_id: int,
    payload: BlogPostUpdate,
    request: Request,
    context: AuthContext = Depends(require_authenticated),
    directory: Directory = Depends(get_directory),
):
    post = _load_post(request, directory, context, post_id)
    changes = payload.model_dump(exclude_unset=True)
    directory.update_blog_post(post, **changes)
    log_audit_event(
        directory.db,
        company_id=post.company_id,
        user_id=context.user_id,
        action="update_blog_post",
        entity_type="blog_post",
        entity_id=post.id,
        meta={"fields": sorted(changes)},
    )
    directory.commit()
    return post


@router.delete("/{post_id}")
def delete_blog_post(
    post_id: int,
    request: Request,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
):
    post = _load_post(request, directory, context, post_id)
    company_id = post.company_id
    directory.delete_blog_post(post)
    log_audit_event(
        directory.db,
        company_id=company_id,
        user_id=context.user_id,
        action="delete_blog_post",
        entity_type="blog_post",
        entity_id=post_id,
    )
    directory.commit()
    return {"message": "Blog post deleted"}


@router.post("/{post_id}/publish", response_model=BlogPostRead)
def publish_blog_post(
    post_id: int,
    request: Request,
    payload: Optional[BlogPublishRequest] = None,
    context: AuthContext = Depends(require_company_admin),
    directory: Directory = Depends(get_directory),
    factory: ClientFactory = Depends(get_wordpress_client_factory),
):
    post = _load_post(request, directory, context, post_id)
    company = directory.get_company(post.company_id)
    if company is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")

    payload = payload or BlogPublishRequest()
    categories = list(payload.categories)
    default_category = (company.wordpress_config or {}).get("default_category_id")
    if not categories and default_category:
        categories = [default_category]

    with open_client(factory, company) as client:
        try:
            published = client.publish_post(
                title=post.title,
                content=post.content,
                status=payload.status,
                categories=categories,
                excerpt=post.excerpt,
            )
        except WordPressError as exc:
            raise wordpress_failure(company, exc) from exc

    changes = {"wordpress_post_id": published.get("id")}
    if payload.status == "publish":
        changes.update(status=BLOG_STATUS_PUBLISHED, published_at=datetime.utcnow())
    directory.update_blog_post(post, **changes)
    log_audit_event(
        directory.db,
        company_id=company.id,
        user_id=context.user_id,
        action="publish_blog_post",
        entity_type="blog_post",
        entity_id=post.id,
        meta={"wordpress_post_id": published.get("id"), "link": published.get("link")},
    )
    directory.commit()
    return post
