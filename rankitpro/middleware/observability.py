from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from rankitpro.core.metrics import request_metrics
from rankitpro.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Request id, one structured log line and per-route metrics for every request."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        status_code = 500
        response = None

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            request_metrics.observe(
                endpoint=_route_template(request),
                method=request.method,
                status_code=status_code,
                duration_ms=duration_ms,
            )

            user_id, company_id = _authenticated_ids(request)
            logger.log(
                logging.ERROR if status_code >= 500 else logging.INFO,
                "request completed",
                extra={
                    "request_id": request_id,
                    "user_id": user_id,
                    "company_id": company_id,
                    "endpoint": request.url.path,
                    "method": request.method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                    "client_ip": request.client.host if request.client else None,
                },
            )

            if response is not None:
                response.headers["X-Request-ID"] = request_id

            clear_request_context()


def _authenticated_ids(request: Request) -> tuple[str | None, str | None]:
    # preenchido pelos gates; as dependências síncronas rodam em outra thread e não veem o contextvar
    context = getattr(request.state, "auth_context", None)
    if context is None:
        return None, None
    company_id = context.company_id
    return str(context.user_id), str(company_id) if company_id is not None else None


def _route_template(request: Request) -> str:
    # /api/companies/{id} em vez de /api/companies/7, para não explodir a cardinalidade
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or request.url.path
