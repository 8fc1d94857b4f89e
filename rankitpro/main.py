import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from rankitpro.core import config
from rankitpro.core.database import Base, SessionLocal, engine
from rankitpro.core.errors import register_exception_handlers
from rankitpro.core.logging_setup import configure_logging
from rankitpro.core.rate_limiter import RateLimiterService
from rankitpro.core.startup_checks import (
    ensure_migrations_applied,
    validate_database_environment,
    validate_session_settings,
)
from rankitpro.middleware.observability import ObservabilityMiddleware
from rankitpro.middleware.rate_limit import IpRateLimitMiddleware
import rankitpro.models  # garante que os models são importados antes do create_all

from rankitpro.services.bootstrap import BOOTSTRAP_PREFIX, bootstrap_super_admin
from rankitpro.services.directory import DirectoryError
from rankitpro.services.session_store import SessionStore, build_session_store
from rankitpro.routers.admin import router as admin_router
from rankitpro.routers.admin_users import router as admin_users_router
from rankitpro.routers.auth import router as auth_router
from rankitpro.routers.billing import router as billing_router
from rankitpro.routers.blog_posts import router as blog_posts_router
from rankitpro.routers.check_ins import router as check_ins_router
from rankitpro.routers.companies import router as companies_router
from rankitpro.routers.mobile import router as mobile_router
from rankitpro.routers.review_requests import router as review_requests_router
from rankitpro.routers.review_responses import router as review_responses_router
from rankitpro.routers.sales import router as sales_router
from rankitpro.routers.subscription_plans import router as subscription_plans_router
from rankitpro.routers.technicians import router as technicians_router
from rankitpro.routers.users import router as users_router
from rankitpro.routers.wordpress import router as wordpress_router

configure_logging()

logger = logging.getLogger(__name__)
ENVIRONMENT = os.getenv("ENVIRONMENT", config.ENV).strip().lower()
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(
    os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini"))
)

ROUTERS = (
    auth_router,
    companies_router,
    admin_router,
    admin_users_router,
    subscription_plans_router,
    technicians_router,
    users_router,
    check_ins_router,
    blog_posts_router,
    review_requests_router,
    review_responses_router,
    billing_router,
    sales_router,
    wordpress_router,
    mobile_router,
)


async def directory_error_handler(request: Request, exc: DirectoryError) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"message": str(exc)})


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Record conflicts with an existing one"},
    )


def _bootstrap_initial_super_admin() -> None:
    db = SessionLocal()
    try:
        bootstrap_super_admin(
            db,
            email=config.BOOTSTRAP_SUPER_ADMIN_EMAIL,
            password=config.BOOTSTRAP_SUPER_ADMIN_PASSWORD,
            username=config.BOOTSTRAP_SUPER_ADMIN_USERNAME,
        )
    except Exception:
        logger.exception("%s ERROR bootstrap failed", BOOTSTRAP_PREFIX)
        raise
    finally:
        db.close()


def _purge_expired_sessions(store: SessionStore) -> None:
    removed = store.purge_expired()
    if removed:
        logger.info("purged expired sessions count=%s", removed)


def _startup_tasks(store: SessionStore) -> None:
    try:
        validate_database_environment()
        validate_session_settings()
        if config.DATABASE_URL.startswith("sqlite"):
            Base.metadata.create_all(bind=engine)
        ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
        _bootstrap_initial_super_admin()
        _purge_expired_sessions(store)
    except Exception:
        logger.exception("%s ERROR startup failed", BOOTSTRAP_PREFIX)
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    _startup_tasks(app.state.session_store)
    yield


def create_app(
    *,
    session_store: Optional[SessionStore] = None,
    rate_limiter: Optional[RateLimiterService] = None,
    auth_rate_limiter: Optional[RateLimiterService] = None,
    trusted_proxy_hops: Optional[int] = None,
) -> FastAPI:
    application = FastAPI(
        title="Rank It Pro API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    application.state.session_store = session_store or build_session_store(config.SESSION_STORE, SessionLocal)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(
        IpRateLimitMiddleware,
        rate_limiter=rate_limiter,
        auth_rate_limiter=auth_rate_limiter,
        trusted_proxy_hops=trusted_proxy_hops,
    )
    application.add_middleware(ObservabilityMiddleware)

    register_exception_handlers(application)
    application.add_exception_handler(DirectoryError, directory_error_handler)
    application.add_exception_handler(IntegrityError, integrity_error_handler)

    for router in ROUTERS:
        application.include_router(router)

    @application.get("/")
    def root():
        return {"status": "ok"}

    @application.get("/health")
    def health():
        return {"status": "healthy"}

    return application


app = create_app()
