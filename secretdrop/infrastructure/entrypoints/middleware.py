"""
HTTP middleware stack for the FastAPI entry point.
See docs/CleanArchitecture.md (Phase 6) for the architectural rationale.

Applied outermost first: HTTPS redirect (optional), CORS, per-IP rate limit,
access log, security headers, body size limit.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.httpsredirect import HTTPSRedirectMiddleware
from starlette.datastructures import Headers
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from secretdrop.application.validation.request_validator import MAX_FILE_BYTES, MAX_MESSAGE_BYTES
from secretdrop.infrastructure.config.settings import Settings

access_logger = logging.getLogger("secretdrop.http")

# File plus message plus room for multipart framing.
MAX_BODY_BYTES = MAX_FILE_BYTES + MAX_MESSAGE_BYTES + 64 * 1024

SECURITY_HEADERS = {
    "X-XSS-Protection": "1; mode=block",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Content-Security-Policy": (
        "default-src 'self'; script-src 'self'; style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; font-src 'self'; frame-ancestors 'none'"
    ),
}
HSTS_HEADER = "max-age=31536000; includeSubDomains; preload"


@dataclass
class _Bucket:
    tokens: float
    updated_at: float


class RateLimiter:
    """Token bucket per client key: *rate* requests/s with bursts of *burst*.

    Buckets idle for longer than *expires_in* seconds are dropped.
    """

    def __init__(
        self,
        rate: float = 5.0,
        burst: int = 10,
        expires_in: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._rate = rate
        self._burst = burst
        self._expires_in = expires_in
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}

    def allow(self, key: str) -> bool:
        now = self._clock()
        self._evict_idle(now)
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = _Bucket(tokens=float(self._burst), updated_at=now)
        else:
            elapsed = now - bucket.updated_at
            bucket.tokens = min(float(self._burst), bucket.tokens + elapsed * self._rate)
            bucket.updated_at = now
        if bucket.tokens < 1:
            return False
        bucket.tokens -= 1
        return True

    def _evict_idle(self, now: float) -> None:
        idle = [k for k, b in self._buckets.items() if now - b.updated_at > self._expires_in]
        for key in idle:
            del self._buckets[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter) -> None:
        super().__init__(app)
        self._limiter = limiter

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        client = request.client.host if request.client else "unknown"
        if not self._limiter.allow(client):
            return JSONResponse(status_code=429, content={"error": "rate limit exceeded"})
        return await call_next(request)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One log line per request. Skips /health; never logs the query string."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/health":
            return await call_next(request)
        started = time.perf_counter()
        response = await call_next(request)
        access_logger.info(
            "%s %s %s %d %.1fms",
            request.client.host if request.client else "-",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = HSTS_HEADER
        return response


class _BodyTooLarge(Exception):
    pass


class BodyLimitMiddleware:
    """Reject bodies over *max_bytes* with 413.

    Plain ASGI rather than BaseHTTPMiddleware: a declared Content-Length is
    checked up front, and chunked bodies are counted as the app reads them.
    """

    def __init__(self, app: ASGIApp, max_bytes: int = MAX_BODY_BYTES) -> None:
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None and (not length.isdigit() or int(length) > self.max_bytes):
            await self._reject(scope, receive, send)
            return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    raise _BodyTooLarge()
            return message

        async def tracked_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracked_send)
        except _BodyTooLarge:
            if response_started:
                raise
            await self._reject(scope, receive, send)

    @staticmethod
    async def _reject(scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse(status_code=413, content={"detail": "request entity too large"})
        await response(scope, receive, send)


def install_middlewares(app: FastAPI, settings: Settings) -> None:
    # Starlette wraps in reverse order: the last one added runs first.
    app.add_middleware(BodyLimitMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RateLimitMiddleware, limiter=RateLimiter())
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["Origin", "Content-Type"],
        max_age=86400,
    )
    if settings.https_redirect_enabled:
        app.add_middleware(HTTPSRedirectMiddleware)
