"""FastAPI middleware stack — request ID, logging, metrics, rate limiting."""

from __future__ import annotations

import time
import uuid
from collections.abc import Awaitable, Callable, Iterable

import orjson
import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from chatapp.shared.observability.metrics import (
    HTTP_REQUEST_DURATION,
    HTTP_REQUESTS_TOTAL,
    RATE_LIMIT_REJECTIONS,
)
from chatapp.shared.providers.rate_limiter import FixedWindowRateLimiter, RateLimitConfig

logger = structlog.get_logger(__name__)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Injects a unique X-Request-ID header into every request/response."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request with method, path, status, and duration."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration = time.monotonic() - start

        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(float(duration * 1000), 2),
            client=request.client.host if request.client else "unknown",
        )
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """Collects Prometheus HTTP metrics."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration = time.monotonic() - start

        # Route template keeps ids out of the label values
        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path

        HTTP_REQUESTS_TOTAL.labels(
            method=request.method,
            endpoint=path,
            status_code=response.status_code,
        ).inc()

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=path,
        ).observe(duration)

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window, per-client-IP limiter for selected paths.

    Counting happens in process memory through ``FixedWindowRateLimiter``.
    Refused requests get a 429 with ``Retry-After``; allowed ones carry the
    remaining budget and reset time as response headers.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        limiter: FixedWindowRateLimiter,
        max_requests: int = 20,
        window_seconds: float = 60.0,
        paths: Iterable[str] = (),
        methods: Iterable[str] = ("POST",),
    ) -> None:
        super().__init__(app)
        self._limiter = limiter
        self._config = RateLimitConfig(max_requests=max_requests, window_seconds=window_seconds)
        self._paths = frozenset(paths)
        self._methods = frozenset(m.upper() for m in methods)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path.rstrip("/") or "/"
        if path not in self._paths or request.method not in self._methods:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        result = self._limiter.check(client_ip, self._config)

        if not result.allowed:
            RATE_LIMIT_REJECTIONS.labels(endpoint=path).inc()
            logger.warning("rate_limit_exceeded", client_ip=client_ip, path=path)
            return Response(
                content=orjson.dumps(
                    {"code": "RATE_LIMITED", "message": "Too many requests. Please try again later."}
                ),
                status_code=429,
                media_type="application/json",
                headers={"Retry-After": str(result.retry_after(self._limiter.now())), **result.headers()},
            )

        response = await call_next(request)
        response.headers.update(result.headers())
        return response
