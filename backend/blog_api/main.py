"""FastAPI application entry point."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware

from blog_api.api import (
    ai_router,
    auth_router,
    categories_router,
    comments_router,
    health_router,
    notifications_router,
    posts_router,
    users_router,
)
from blog_api.core.config import get_settings
from blog_api.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
)
from blog_api.core.logging import (
    REQUEST_ID_HEADER,
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from blog_api.db.session import close_db, init_db
from blog_api.services.container import ServiceContainer

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events.

    Startup:
    - Initialize database connections
    - Start services (key-value store connection, background cleanup)

    Shutdown:
    - Stop services and close their clients
    - Close database connections
    """
    settings = get_settings()
    services: ServiceContainer = app.state.services

    logger.info(
        "Starting application",
        app_name=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
    )

    # Initialize database with retry logic for transient connection failures
    for attempt in range(3):
        try:
            await init_db()
            break
        except Exception as exc:
            if attempt == 2:
                logger.error("Failed to initialize database after 3 attempts", error=str(exc))
                raise
            logger.warning(
                "Database init failed, retrying...",
                attempt=attempt + 1,
                error=str(exc),
            )
            await asyncio.sleep(2 ** attempt)
    logger.info("Database initialized")

    await services.startup()

    yield

    logger.info("Shutting down application")
    await services.shutdown()
    await close_db()


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to every log line and echo it back to the client."""

    async def dispatch(self, request: Any, call_next: Any) -> Any:
        request_id = bind_request_context(
            request.method,
            request.url.path,
            request.headers.get(REQUEST_ID_HEADER),
        )
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Any, call_next: Any) -> Any:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "camera=(), microphone=(), geolocation=()"
        if not get_settings().debug:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def create_app(services: ServiceContainer | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Blog API with response caching, rate limiting and an AI assistant",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
    )
    app.state.services = services or ServiceContainer()

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[
            REQUEST_ID_HEADER,
            "X-Cache",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=500)

    # Register exception handlers
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # Include routers
    app.include_router(health_router)
    for router in (
        auth_router,
        users_router,
        posts_router,
        comments_router,
        categories_router,
        notifications_router,
        ai_router,
    ):
        app.include_router(router, prefix=settings.api_prefix)

    return app


# Create application instance
app = create_app()
