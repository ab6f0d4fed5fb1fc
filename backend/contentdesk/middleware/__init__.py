"""Middleware package for the FastAPI application."""

from contentdesk.middleware.request_id import RequestIdMiddleware
from contentdesk.middleware.security_headers import SecurityHeadersMiddleware, apply_security_headers

__all__ = ["RequestIdMiddleware", "SecurityHeadersMiddleware", "apply_security_headers"]
