"""Communications service routers package."""

from services.communications_service.routers.notifications import (
    admin_router,
    router,
)
from services.communications_service.routers.preferences import (
    router as preferences_router,
)

__all__ = [
    "admin_router",
    "preferences_router",
    "router",
]
