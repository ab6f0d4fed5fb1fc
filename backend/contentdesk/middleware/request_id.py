"""Request ID middleware: tags every request with an ID bound into the structlog context."""

import time
import uuid
from contextvars import ContextVar

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_INCOMING_ID_LENGTH = 128


def _incoming_request_id(request: Request) -> str | None:
    rid = request.headers.get(REQUEST_ID_HEADER)
    if rid and len(rid) <= _MAX_INCOMING_ID_LENGTH and rid.isprintable():
        return rid
    return None


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's X-Request-ID (or generate one), log the request, echo the ID back."""

    async def dispatch(self, request: Request, call_next):
        rid = _incoming_request_id(request) or str(uuid.uuid4())
        request_id_var.set(rid)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=rid)

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = round((time.perf_counter() - started) * 1000, 1)

        # Static downloads are noisy and already in the uvicorn access log
        if not request.url.path.startswith("/uploads/"):
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=elapsed_ms,
            )

        response.headers[REQUEST_ID_HEADER] = rid
        return response
