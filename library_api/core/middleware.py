# library_api/core/middleware.py
import time
import uuid
import logging

from typing import Iterable, List, Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from starlette.middleware.gzip import GZipMiddleware

from library_api.core.config import settings
from library_api.core.exception_handler import (
    build_error_body,
    error_code_for_status,
    get_inbound_request_id,
)
from library_api.core.security import SecurityHeaders

logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """Best guess at the caller's address, honouring reverse proxy headers."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags each request with an id and writes one log line on the way in and one
    on the way out.

    The caller's ``X-Request-ID`` / ``X-Correlation-ID`` is reused when present,
    otherwise a UUID is generated. The id is always returned in the
    ``X-Request-ID`` response header.
    """

    def __init__(self, app, exclude_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.exclude_paths = set(exclude_paths or ())

    async def dispatch(self, request: Request, call_next):
        request_id = get_inbound_request_id(request) or str(uuid.uuid4())
        request.state.request_id = request_id
        quiet = request.url.path in self.exclude_paths
        started = time.perf_counter()

        if not quiet:
            logger.info(
                "Incoming request",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "client_ip": client_ip(request),
                    "user_agent": request.headers.get("user-agent", "unknown"),
                },
            )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        if not quiet:
            user = getattr(request.state, "user", None)
            logger.log(
                logging.WARNING if response.status_code >= 500 else logging.INFO,
                "Request completed",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                    "user_id": user.id if user is not None else None,
                },
            )

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Stamps the SecurityHeaders set (plus HSTS over https) on every response."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        headers = SecurityHeaders.get_headers()
        if request.url.scheme == "https":
            headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers.update(headers)

        return response


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Answers 413 before routing when the declared body exceeds ``max_size`` bytes."""

    def __init__(self, app, max_size: int):
        super().__init__(app)
        self.max_size = max_size

    async def dispatch(self, request: Request, call_next):
        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self.max_size:
            logger.info(
                "Request body too large",
                extra={"path": request.url.path, "content_length": int(declared)},
            )
            return JSONResponse(
                status_code=413,
                content=build_error_body(
                    request,
                    code=error_code_for_status(413),
                    message=f"Request body exceeds {self.max_size} bytes",
                ),
            )
        return await call_next(request)


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def register_middlewares(app: FastAPI) -> None:
    """
    Install the middleware stack. The last one added runs first, so request
    context wraps everything else.
    """
    app.add_middleware(BodySizeLimitMiddleware, max_size=settings.MAX_REQUEST_SIZE)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(SecurityHeadersMiddleware)

    allowed_hosts = _split_csv(settings.ALLOWED_HOSTS)
    if allowed_hosts and "*" not in allowed_hosts:
        app.add_middleware(TrustedHostMiddleware, allowed_hosts=allowed_hosts)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_split_csv(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID", "X-Correlation-ID"],
        expose_headers=["X-Request-ID"],
    )

    app.add_middleware(
        RequestContextMiddleware, exclude_paths=settings.LOGGING_EXCLUDE_PATHS
    )
