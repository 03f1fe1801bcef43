"""Main FastAPI application entry point."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.exception_handlers import setup_exception_handlers
from api.middleware.logging import RequestLoggingMiddleware
from api.middleware.request_id import RequestIDMiddleware
from api.routes.health import router as health_router
from api.v1 import router as v1_router
from core.config import settings
from core.logging import setup_logging
from core.rate_limit import limiter, rate_limit_exceeded_handler
from infrastructure.database.session import engine

logger = structlog.get_logger()

# Initialize structured logging
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup/shutdown tasks.

    Expiry, reminder and purge sweeps are driven by an external scheduler
    through the /api/v1/maintenance endpoints, so nothing runs in-process.
    """
    logger.info("application_started", environment=settings.app_env)
    yield
    await engine.dispose()
    logger.info("application_stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        title=settings.app_name,
        description=(
            "## Invitation and Access Grant Service\n\n"
            "Issues, tracks and resolves invitations that grant a role on a "
            "workspace, space, folder, project, team or task.\n\n"
            "### Features\n"
            "- **Invitations**: Email and direct invitations with a full lifecycle\n"
            "- **Links**: Shareable links with domain policy, use limits and approval\n"
            "- **Access Requests**: Self-service requests reviewed by an approver\n"
            "- **Bulk Invites**: Batches with per-email outcomes\n"
            "- **Stats**: Acceptance rate and time to accept\n\n"
            "### Authentication\n"
            "Callers are authenticated upstream. The gateway forwards the "
            "caller's identity in headers:\n"
            "```\nX-User-Id: <uuid>\nX-User-Email: <email>\n```\n\n"
            "### Rate Limits\n"
            "- GET endpoints: 30 requests/minute\n"
            "- POST/PATCH/PUT/DELETE: 10 requests/minute\n"
            "- Bulk invites: 5 requests/minute"
        ),
        version=settings.app_version,
        debug=settings.debug,
        contact={
            "name": "Invitation Service Support",
        },
        license_info={
            "name": "MIT",
        },
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check endpoints",
            },
            {
                "name": "invitations",
                "description": "Invitation lifecycle, permissions, history and stats",
            },
            {
                "name": "links",
                "description": "Shareable invitation links",
            },
            {
                "name": "access-requests",
                "description": "Self-service access requests",
            },
            {
                "name": "maintenance",
                "description": "Expiry, reminder and purge sweeps for schedulers",
            },
        ],
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Tracking middleware (LIFO order - last added = outermost)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # GZip compression for responses > 1KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Setup exception handlers
    setup_exception_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )
