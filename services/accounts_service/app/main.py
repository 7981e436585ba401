"""FastAPI application for the Accounts Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.accounts_service.routers import ADMIN_ROUTERS, PUBLIC_ROUTERS
from slowapi.errors import RateLimitExceeded


def include_accounts_routers(app: FastAPI, prefix: str = "") -> None:
    """Mount profile, company and onboarding routes, admin routes under /admin."""
    for router in PUBLIC_ROUTERS:
        app.include_router(router, prefix=prefix)
    for router in ADMIN_ROUTERS:
        app.include_router(router, prefix=f"{prefix}/admin")


def create_app() -> FastAPI:
    """Create and configure the Accounts Service FastAPI app."""
    app = FastAPI(
        title="Noor Accounts Service",
        version="0.1.0",
        description="Profiles, company accounts, invitations and KYC onboarding.",
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "accounts"}

    include_accounts_routers(app)
    return app


app = create_app()
