"""Security headers added to every response, including served uploads."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from contentdesk.config import Settings

logger = logging.getLogger(__name__)

# X-Content-Type-Options: uploaded files are served with their own type, never sniffed
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def apply_security_headers(response: Response) -> Response:
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds conservative HTTP security headers.

    Unhandled exceptions are rendered by Starlette's ServerErrorMiddleware,
    outside every user middleware, so the 500 handler applies the same
    headers itself.
    """

    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)

        if not self.settings.security_headers_enabled:
            return response
        return apply_security_headers(response)
