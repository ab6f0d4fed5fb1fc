import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from contentdesk.api.deps import get_services
from contentdesk.errors import StorageUnavailable
from contentdesk.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/test")
async def backend_test():
    """Trivial liveness check; touches nothing but the process."""
    return {"message": "Backend is working!", "timestamp": _timestamp()}


@router.get("/db-health")
async def db_health(services: Services = Depends(get_services)):
    """Health check endpoint that verifies storage connectivity."""
    try:
        await services.store.ping()
    except StorageUnavailable as e:
        logger.warning(f"Health check failed: {e.details}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "error": "Database connection failed", "details": e.details},
        )
    return {
        "status": "healthy",
        "message": "Database connection successful",
        "timestamp": _timestamp(),
    }
