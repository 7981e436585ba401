import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.communications_service.models.enums import (
    NotificationPriority,
    NotificationStatus,
    enum_values,
)
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Notification(Base):
    """In-app notification addressed to a single user (auth subject)."""

    __tablename__ = "communications_notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    badge: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    image: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    data: Mapped[dict] = mapped_column(JSONType, default=dict)
    # [{"action": "view-cart", "title": "View Cart", "icon": "..."}]
    actions: Mapped[list] = mapped_column(JSONType, default=list)
    tag: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    require_interaction: Mapped[bool] = mapped_column(Boolean, default=False)
    silent: Mapped[bool] = mapped_column(Boolean, default=False)
    ttl: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    schedule_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    priority: Mapped[NotificationPriority] = mapped_column(
        SAEnum(
            NotificationPriority,
            values_callable=enum_values,
            name="communications_notification_priority_enum",
        ),
        default=NotificationPriority.NORMAL,
    )
    category: Mapped[str] = mapped_column(String(100), default="general")
    status: Mapped[NotificationStatus] = mapped_column(
        SAEnum(
            NotificationStatus,
            values_callable=enum_values,
            name="communications_notification_status_enum",
        ),
        default=NotificationStatus.PENDING,
    )
    sent_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("ix_communications_notifications_user_read", "user_id", "read_at"),
        Index("ix_communications_notifications_status_schedule", "status", "schedule_at"),
    )

    def __repr__(self):
        return f"<Notification {self.user_id} {self.title!r} {self.status.value}>"


class NotificationPreference(Base):
    """Per-user notification channel and topic switches."""

    __tablename__ = "communications_notification_preferences"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )

    # Channels
    email_notifications: Mapped[bool] = mapped_column(Boolean, default=True)
    push_notifications: Mapped[bool] = mapped_column(Boolean, default=True)
    sms_notifications: Mapped[bool] = mapped_column(Boolean, default=False)

    # Topics
    order_updates: Mapped[bool] = mapped_column(Boolean, default=True)
    promotional_offers: Mapped[bool] = mapped_column(Boolean, default=True)
    price_alerts: Mapped[bool] = mapped_column(Boolean, default=False)
    security_alerts: Mapped[bool] = mapped_column(Boolean, default=True)
    system_notifications: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<NotificationPreference {self.user_id}>"
