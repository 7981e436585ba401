"""
In-app notifications: targeting, templated sends, inbox operations and
per-user preferences.

Notifications are addressed by auth subject (``user_id``). Targets other
than explicit ids are resolved against accounts profiles in-process.
"""

import uuid
from typing import Any, Optional

from fastapi import HTTPException
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.accounts_service.models import AccountType, KYCStatus, User
from services.communications_service.models import (
    Notification,
    NotificationPreference,
    NotificationPriority,
    NotificationStatus,
)
from services.communications_service.schemas import (
    NotificationOptions,
    NotificationPayload,
    NotificationTarget,
)
from services.communications_service.templates.notifications import (
    NOTIFICATION_TEMPLATES,
    build_payload,
)
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

DEFAULT_LIST_LIMIT = 50

DEFAULT_PREFERENCES = {
    "email_notifications": True,
    "push_notifications": True,
    "sms_notifications": False,
    "order_updates": True,
    "promotional_offers": True,
    "price_alerts": False,
    "security_alerts": True,
    "system_notifications": True,
}

# Named audiences usable as a ``segment`` target
SEGMENT_FILTERS = {
    "business": (User.account_type == AccountType.BUSINESS,),
    "individual": (User.account_type == AccountType.INDIVIDUAL,),
    "verified": (User.kyc_status == KYCStatus.APPROVED,),
    "company_members": (User.company_id.is_not(None),),
}


# ============================================================================
# TARGETING & DELIVERY
# ============================================================================


async def resolve_target_users(
    db: AsyncSession, target: NotificationTarget
) -> list[str]:
    """Turn a target into auth ids. Unknown segments resolve to nobody."""
    if target.user_id:
        return [target.user_id]
    if target.user_ids:
        return list(dict.fromkeys(target.user_ids))

    query = select(User.auth_id).where(User.is_active.is_(True))
    if target.role:
        query = query.where(User.role == target.role)
    elif target.segment:
        filters = SEGMENT_FILTERS.get(target.segment)
        if filters is None:
            logger.warning("Unknown notification segment %s", target.segment)
            return []
        query = query.where(*filters)
    elif not target.all:
        return []

    result = await db.execute(query)
    return list(result.scalars().all())


def _deliver(notifications: list[Notification]) -> None:
    # In-app delivery: the inbox read is the delivery channel.
    now = utc_now()
    for notification in notifications:
        notification.status = NotificationStatus.SENT
        notification.sent_at = now


async def send_notification(
    db: AsyncSession,
    payload: NotificationPayload,
    target: NotificationTarget,
    options: Optional[NotificationOptions] = None,
) -> list[Notification]:
    """
    Create one notification per target user.

    Immediate sends are marked ``sent``; sends with ``schedule_at`` stay
    ``scheduled`` until the worker picks them up.
    """
    options = options or NotificationOptions()
    user_ids = await resolve_target_users(db, target)
    if not user_ids:
        raise HTTPException(status_code=400, detail="No target users found")

    fields = payload.model_dump()
    notifications = [
        Notification(
            user_id=user_id,
            **fields,
            schedule_at=options.schedule_at,
            expires_at=options.expires_at,
            priority=options.priority,
            category=options.category or "general",
            status=(
                NotificationStatus.SCHEDULED
                if options.schedule_at
                else NotificationStatus.PENDING
            ),
        )
        for user_id in user_ids
    ]
    db.add_all(notifications)
    if not options.schedule_at:
        _deliver(notifications)
    await db.commit()

    logger.info(
        "Created %s notification(s)",
        len(notifications),
        extra={
            "extra_fields": {
                "category": options.category or "general",
                "scheduled": bool(options.schedule_at),
            }
        },
    )
    return notifications


async def send_templated_notification(
    db: AsyncSession,
    template_key: str,
    *,
    user_id: str,
    variables: Optional[dict[str, Any]] = None,
    data: Optional[dict[str, Any]] = None,
    options: Optional[NotificationOptions] = None,
) -> Optional[Notification]:
    """
    Render a template and send it to one user.

    Returns None when the user's preferences mute this kind of notification.
    """
    template = NOTIFICATION_TEMPLATES.get(template_key)
    if template is None:
        raise ValueError(f"Template {template_key} not found")

    prefs = await get_preferences(db, user_id)
    topic = template.get("preference")
    if not prefs["push_notifications"] or (topic and not prefs[topic]):
        logger.info("Skipping %s for %s (muted by preferences)", template_key, user_id)
        return None

    options = options or NotificationOptions()
    fields = build_payload(template_key, variables)
    fields["data"] = {**fields["data"], **(data or {})}

    notification = Notification(
        user_id=user_id,
        **fields,
        schedule_at=options.schedule_at,
        expires_at=options.expires_at,
        priority=options.priority or NotificationPriority.NORMAL,
        category=options.category or template_key.lower(),
        status=(
            NotificationStatus.SCHEDULED
            if options.schedule_at
            else NotificationStatus.PENDING
        ),
    )
    db.add(notification)
    if not options.schedule_at:
        _deliver([notification])
    await db.commit()

    logger.info(
        "Sent %s notification to %s",
        template_key,
        user_id,
        extra={"extra_fields": {"template": template_key, "user_id": user_id}},
    )
    return notification


# ============================================================================
# INBOX
# ============================================================================


async def list_notifications(
    db: AsyncSession,
    user_id: str,
    *,
    limit: int = DEFAULT_LIST_LIMIT,
    offset: int = 0,
    unread_only: bool = False,
    category: Optional[str] = None,
) -> dict:
    conditions = [Notification.user_id == user_id]
    if unread_only:
        conditions.append(Notification.read_at.is_(None))
    if category:
        conditions.append(Notification.category == category)

    total = await db.scalar(select(func.count(Notification.id)).where(*conditions))
    result = await db.execute(
        select(Notification)
        .where(*conditions)
        .order_by(Notification.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    return {"notifications": result.scalars().all(), "total": total or 0}


async def _get_user_notification(
    db: AsyncSession, notification_id: uuid.UUID, user_id: str
) -> Notification:
    result = await db.execute(
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


async def mark_as_read(
    db: AsyncSession, notification_id: uuid.UUID, user_id: str
) -> Notification:
    notification = await _get_user_notification(db, notification_id, user_id)
    if notification.read_at is None:
        notification.read_at = utc_now()
        await db.commit()
    return notification


async def mark_all_as_read(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        .values(read_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0


async def delete_notification(
    db: AsyncSession, notification_id: uuid.UUID, user_id: str
) -> None:
    notification = await _get_user_notification(db, notification_id, user_id)
    await db.delete(notification)
    await db.commit()


async def get_notification_stats(
    db: AsyncSession, user_id: Optional[str] = None
) -> dict:
    """Counts for one user, or across everyone when ``user_id`` is None."""
    conditions = [Notification.user_id == user_id] if user_id else []

    total = await db.scalar(select(func.count(Notification.id)).where(*conditions))
    unread = await db.scalar(
        select(func.count(Notification.id)).where(
            *conditions, Notification.read_at.is_(None)
        )
    )
    by_category = await db.execute(
        select(Notification.category, func.count(Notification.id))
        .where(*conditions)
        .group_by(Notification.category)
    )
    by_status = await db.execute(
        select(Notification.status, func.count(Notification.id))
        .where(*conditions)
        .group_by(Notification.status)
    )
    return {
        "total": total or 0,
        "unread": unread or 0,
        "by_category": {category: count for category, count in by_category.all()},
        "by_status": {status.value: count for status, count in by_status.all()},
    }


# ============================================================================
# MAINTENANCE (worker)
# ============================================================================


async def process_scheduled_notifications(db: AsyncSession) -> int:
    """Deliver scheduled notifications whose time has come."""
    result = await db.execute(
        select(Notification).where(
            Notification.status == NotificationStatus.SCHEDULED,
            Notification.schedule_at <= utc_now(),
        )
    )
    due = list(result.scalars().all())
    if due:
        _deliver(due)
        await db.commit()
    return len(due)


async def cleanup_expired_notifications(db: AsyncSession) -> int:
    result = await db.execute(
        delete(Notification)
        .where(Notification.expires_at < utc_now())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0


# ============================================================================
# PREFERENCES
# ============================================================================


async def _get_preference_row(
    db: AsyncSession, user_id: str
) -> Optional[NotificationPreference]:
    result = await db.execute(
        select(NotificationPreference).where(NotificationPreference.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_preferences(db: AsyncSession, user_id: str) -> dict:
    """Stored preferences, or the defaults. Nothing is written."""
    prefs = await _get_preference_row(db, user_id)
    if not prefs:
        return {"user_id": user_id, **DEFAULT_PREFERENCES}
    return {
        "user_id": user_id,
        **{field: getattr(prefs, field) for field in DEFAULT_PREFERENCES},
    }


async def update_preferences(
    db: AsyncSession, user_id: str, changes: dict[str, bool]
) -> NotificationPreference:
    """Upsert: unspecified fields keep their stored (or default) value."""
    prefs = await _get_preference_row(db, user_id)
    if not prefs:
        prefs = NotificationPreference(
            user_id=user_id, **{**DEFAULT_PREFERENCES, **changes}
        )
        db.add(prefs)
    else:
        for field, value in changes.items():
            setattr(prefs, field, value)

    await db.commit()
    await db.refresh(prefs)
    return prefs
