"""Communications Service models package."""

from services.communications_service.models.core import (  # noqa: F401
    Notification,
    NotificationPreference,
)
from services.communications_service.models.enums import (  # noqa: F401
    NotificationPriority,
    NotificationStatus,
)

__all__ = [
    "Notification",
    "NotificationPreference",
    "NotificationPriority",
    "NotificationStatus",
]
