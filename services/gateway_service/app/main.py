"""FastAPI application entrypoint for the Noor API gateway.

Every service runs in this one process: the gateway mounts each service's
routers under ``/api`` and owns the cross-cutting middleware.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from libs.common.config import get_settings
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.accounts_service.app.main import include_accounts_routers
from services.communications_service.app.main import (
    include_communications_routers,
)
from services.store_service.app.main import include_store_routers

API_PREFIX = "/api"


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance."""
    settings = get_settings()
    app = FastAPI(
        title="Noor API",
        version="0.1.0",
        description="Storefront, accounts and notifications for Noor.",
    )

    # Add rate limiter state to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add observability (structured logging + request tracing)
    add_observability_middleware(app)

    # Add global exception handlers for consistent error responses
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Simple readiness endpoint."""
        return {"status": "ok"}

    include_store_routers(app, prefix=API_PREFIX)
    include_accounts_routers(app, prefix=API_PREFIX)
    include_communications_routers(app, prefix=API_PREFIX)

    return app


app = create_app()
