import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from services.communications_service.models import (
    NotificationPriority,
    NotificationStatus,
)
from services.communications_service.templates.notifications import (
    BODY_MAX_LENGTH,
    TITLE_MAX_LENGTH,
)


# ===== NOTIFICATION SCHEMAS =====
class NotificationAction(BaseModel):
    action: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    icon: Optional[str] = None


class NotificationPayload(BaseModel):
    """What the user sees. Mirrors the browser push payload."""

    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    body: str = Field(..., min_length=1, max_length=BODY_MAX_LENGTH)
    icon: Optional[str] = None
    badge: Optional[str] = None
    image: Optional[str] = None
    data: dict[str, Any] = {}
    actions: list[NotificationAction] = []
    tag: Optional[str] = None
    require_interaction: bool = False
    silent: bool = False
    ttl: Optional[int] = Field(None, gt=0)


class NotificationTarget(BaseModel):
    user_id: Optional[str] = None
    user_ids: Optional[list[str]] = None
    segment: Optional[str] = None
    role: Optional[str] = None
    all: bool = False

    @model_validator(mode="after")
    def exactly_one_target(self):
        chosen = [
            self.user_id,
            self.user_ids,
            self.segment,
            self.role,
            self.all or None,
        ]
        if sum(1 for value in chosen if value) != 1:
            raise ValueError("Exactly one target type must be specified")
        return self


class NotificationOptions(BaseModel):
    schedule_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    category: Optional[str] = Field(None, max_length=100)


class NotificationSendRequest(BaseModel):
    payload: NotificationPayload
    target: NotificationTarget
    options: NotificationOptions = NotificationOptions()


class NotificationSendResponse(BaseModel):
    success: bool = True
    notification_ids: list[uuid.UUID]
    target_count: int
    message: str = "Notification sent successfully"


class NotificationResponse(BaseModel):
    id: uuid.UUID
    user_id: str
    title: str
    body: str
    icon: Optional[str] = None
    badge: Optional[str] = None
    image: Optional[str] = None
    data: dict[str, Any] = {}
    actions: list[dict[str, Any]] = []
    tag: Optional[str] = None
    require_interaction: bool
    silent: bool
    ttl: Optional[int] = None
    schedule_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    priority: NotificationPriority
    category: str
    status: NotificationStatus
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int


class NotificationStatsResponse(BaseModel):
    total: int
    unread: int
    by_category: dict[str, int]
    by_status: dict[str, int]


# ===== PREFERENCE SCHEMAS =====
class NotificationPreferenceUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    order_updates: Optional[bool] = None
    promotional_offers: Optional[bool] = None
    price_alerts: Optional[bool] = None
    security_alerts: Optional[bool] = None
    system_notifications: Optional[bool] = None


class NotificationPreferenceResponse(BaseModel):
    """Stored preferences, or the defaults when the user has none yet."""

    user_id: str
    email_notifications: bool
    push_notifications: bool
    sms_notifications: bool
    order_updates: bool
    promotional_offers: bool
    price_alerts: bool
    security_alerts: bool
    system_notifications: bool

    model_config = ConfigDict(from_attributes=True)
