# library_api/core/exception_handler.py
"""
Exception handlers that normalise every failure into a single wire shape:

    {"error": {"code": ..., "message": ..., "details": ..., "requestId": ...}}

``details`` and ``requestId`` are omitted when empty. The request id is only
echoed when the client sent one.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from library_api.core.exceptions import BaseAppException

logger = logging.getLogger(__name__)

REQUEST_ID_HEADERS = ("X-Request-ID", "X-Correlation-ID")

HTTP_ERROR_CODES = {
    400: "VALIDATION_ERROR",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "PAYLOAD_TOO_LARGE",
    500: "INTERNAL_ERROR",
}


def error_code_for_status(status_code: int) -> str:
    """Wire code for a bare HTTP status. Unlisted 5xx collapse to INTERNAL_ERROR."""
    if status_code in HTTP_ERROR_CODES:
        return HTTP_ERROR_CODES[status_code]
    return "INTERNAL_ERROR" if status_code >= 500 else "HTTP_ERROR"


def get_inbound_request_id(request: Request) -> Optional[str]:
    for header in REQUEST_ID_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return None


def build_error_body(
    request: Request,
    *,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if details:
        error["details"] = details
    request_id = get_inbound_request_id(request)
    if request_id:
        error["requestId"] = request_id
    return {"error": error}


def format_validation_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Convert Pydantic error entries into ``{path, message}`` pairs."""
    formatted = []
    for err in errors:
        loc = list(err.get("loc", ()))
        if loc and loc[0] in {"body", "query", "path", "header"}:
            loc = loc[1:]
        formatted.append(
            {
                "path": ".".join(str(part) for part in loc),
                "message": err.get("msg", "Invalid value"),
            }
        )
    return formatted


async def app_exception_handler(request: Request, exc: BaseAppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Application error",
            exc_info=exc,
            extra={"path": request.url.path, "error_code": exc.error_code},
        )
    else:
        logger.info(
            f"Request rejected: {exc.error_code}",
            extra={
                "path": request.url.path,
                "status_code": exc.status_code,
                "detail": exc.detail,
            },
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_body(
            request, code=exc.error_code, message=exc.detail, details=exc.details
        ),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = format_validation_errors(exc.errors())
    logger.info(
        "Request validation failed",
        extra={"path": request.url.path, "errors": errors},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=build_error_body(
            request,
            code="VALIDATION_ERROR",
            message="Validation failed",
            details={"errors": errors},
        ),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = error_code_for_status(exc.status_code)
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_body(request, code=code, message=message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"path": request.url.path, "method": request.method},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=build_error_body(
            request, code="INTERNAL_ERROR", message="An unexpected error occurred"
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Registers all exception handlers for the FastAPI application."""
    app.add_exception_handler(BaseAppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
