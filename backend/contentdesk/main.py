from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from contentdesk.api import blogs, contact_submissions, health, newsletter, newsletter_uploads, testimonials
from contentdesk.bootstrap import bootstrap
from contentdesk.config import Settings, get_settings
from contentdesk.exception_handlers import register_exception_handlers
from contentdesk.logging_config import configure_logging
from contentdesk.middleware import RequestIdMiddleware, SecurityHeadersMiddleware
from contentdesk.services.container import Services, build_services

# Configure structured logging
configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services: Services = app.state.services

    # Startup: upload directories and storage schema
    await bootstrap(services)
    logger.info(
        "Startup complete",
        environment=services.settings.app_env,
        storage_backend=services.settings.storage_backend,
    )

    yield

    # Shutdown
    await services.close()
    logger.info("Shutting down...")


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or get_settings()
    services = services or build_services(settings)

    app = FastAPI(
        title="ContentDesk API",
        description="Blog, testimonials, contact form and newsletter backend",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json",
    )
    app.state.services = services

    # Public API without credentials, so a wildcard origin is allowed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(RequestIdMiddleware)
    # Outermost user middleware; unhandled 500s get the headers from their handler
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)

    register_exception_handlers(
        app,
        production=settings.is_production,
        security_headers=settings.security_headers_enabled,
    )

    app.include_router(health.router, prefix="/api")
    app.include_router(blogs.router, prefix="/api")
    app.include_router(contact_submissions.router, prefix="/api")
    app.include_router(testimonials.router, prefix="/api")
    app.include_router(newsletter.router, prefix="/api")
    app.include_router(newsletter_uploads.router, prefix="/api")

    # Attachment files; the more specific mount must come first
    app.mount(
        f"/uploads/{settings.newsletters_subdir}",
        StaticFiles(directory=settings.newsletters_dir, check_dir=False),
        name="newsletter-files",
    )
    app.mount("/uploads", StaticFiles(directory=settings.uploads_dir, check_dir=False), name="uploads")

    @app.get("/")
    async def root():
        if settings.is_production:
            return {"status": "ok"}
        return {
            "message": "ContentDesk API",
            "version": "0.1.0",
            "docs": "/docs",
        }

    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "contentdesk.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.app_debug,
    )
