"""FastAPI application for the Communications Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from services.communications_service.routers import (
    admin_router,
    preferences_router,
)
from services.communications_service.routers import router as notifications_router


def include_communications_routers(app: FastAPI, prefix: str = "") -> None:
    # Preferences first so /notifications/preferences is not read as an id
    app.include_router(preferences_router, prefix=prefix)
    app.include_router(notifications_router, prefix=prefix)
    app.include_router(admin_router, prefix=prefix)


def create_app() -> FastAPI:
    """Create and configure the Communications Service FastAPI app."""
    app = FastAPI(
        title="Noor Communications Service",
        version="0.1.0",
        description="In-app notifications and notification preferences for Noor.",
    )
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "communications"}

    include_communications_routers(app)

    return app


app = create_app()
