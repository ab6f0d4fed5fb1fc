"""Render every failure as ``{"error": ..., "details": ...}``."""

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from contentdesk.errors import ContentDeskError, describe_validation_errors
from contentdesk.middleware import apply_security_headers

logger = structlog.get_logger(__name__)


def error_response(status_code: int, error: str, details: str, headers=None, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "details": details, **extra},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI, *, production: bool, security_headers: bool = True) -> None:
    @app.exception_handler(ContentDeskError)
    async def handle_contentdesk_error(request: Request, exc: ContentDeskError):
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.error, details=exc.details)
        else:
            logger.info("request_rejected", path=request.url.path, error=exc.error, status_code=exc.status_code)
        return error_response(exc.status_code, exc.error, exc.details)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        error, details = describe_validation_errors(list(exc.errors()))
        return error_response(400, error, details)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            if request.url.path.startswith("/uploads/"):
                return error_response(404, "File not found", request.url.path)
            return error_response(404, "Route not found", f"{request.method} {request.url.path}")
        if exc.status_code == 400:
            # Raised by FastAPI when the body itself cannot be parsed
            content_type = request.headers.get("content-type", "")
            error = "File upload error" if content_type.startswith("multipart/") else "Malformed request body"
            return error_response(400, error, str(exc.detail))
        return error_response(exc.status_code, str(exc.detail), str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("unhandled_exception", path=request.url.path, error_type=type(exc).__name__)
        if production:
            response = error_response(500, "Internal server error", "An unexpected error occurred")
        else:
            stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
            response = error_response(500, "Internal server error", str(exc) or type(exc).__name__, stack=stack)
        # Rendered by ServerErrorMiddleware, outside SecurityHeadersMiddleware
        if security_headers:
            apply_security_headers(response)
        return response
