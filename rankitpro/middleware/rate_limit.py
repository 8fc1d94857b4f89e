from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from rankitpro.core import config
from rankitpro.core.logging_setup import get_audit_logger
from rankitpro.core.rate_limiter import FixedWindowRateLimiter, RateLimiterService

audit_logger = get_audit_logger()

AUTH_PATHS = frozenset(
    {
        "/api/auth/login",
        "/api/auth/register",
        "/api/mobile/auth/login",
    }
)


class IpRateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP fixed window in front of every route, stricter on the login endpoints."""

    def __init__(
        self,
        app,
        *,
        rate_limiter: RateLimiterService | None = None,
        auth_rate_limiter: RateLimiterService | None = None,
        trusted_proxy_hops: int | None = None,
    ) -> None:
        super().__init__(app)
        self._trusted_proxy_hops = config.TRUSTED_PROXY_HOPS if trusted_proxy_hops is None else trusted_proxy_hops
        self._rate_limiter = rate_limiter or FixedWindowRateLimiter(
            limit=config.RATE_LIMIT_REQUESTS,
            window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
        )
        self._auth_rate_limiter = auth_rate_limiter or FixedWindowRateLimiter(
            limit=config.AUTH_RATE_LIMIT_REQUESTS,
            window_seconds=config.AUTH_RATE_LIMIT_WINDOW_SECONDS,
        )

    async def dispatch(self, request: Request, call_next):
        client_ip = client_ip_from_request(request, self._trusted_proxy_hops)
        path = request.url.path

        if request.method == "POST" and path in AUTH_PATHS:
            limiter = self._auth_rate_limiter
            message = "Too many login attempts, please try again later"
        else:
            limiter = self._rate_limiter
            message = "Too many requests, please try again later"

        decision = limiter.check(key=client_ip)
        if not decision.allowed:
            audit_logger.warning(
                "rate limit exceeded",
                extra={
                    "event": "rate_limited",
                    "endpoint": path,
                    "method": request.method,
                    "client_ip": client_ip,
                    "status_code": 429,
                },
            )
            return JSONResponse(
                status_code=429,
                content={"message": message},
                headers={
                    "Retry-After": str(decision.retry_after_seconds),
                    "X-RateLimit-Limit": str(decision.limit),
                    "X-RateLimit-Remaining": str(decision.remaining),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response


def client_ip_from_request(request: Request, trusted_proxy_hops: int = 0) -> str:
    """Socket peer, or the X-Forwarded-For entry appended by the outermost trusted proxy.

    Entries to the left of that one are client-supplied and never used as the key.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if trusted_proxy_hops > 0 and forwarded:
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        if hops:
            return hops[-min(trusted_proxy_hops, len(hops))]
    if request.client and request.client.host:
        return request.client.host
    return "unknown"
