"""
Notification inbox and admin send endpoints.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user, require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.communications_service.schemas import (
    NotificationListResponse,
    NotificationResponse,
    NotificationSendRequest,
    NotificationSendResponse,
    NotificationStatsResponse,
)
from services.communications_service.services import notifications as service
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/notifications", tags=["notifications"])
admin_router = APIRouter(prefix="/admin/notifications", tags=["admin-notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_my_notifications(
    limit: int = Query(service.DEFAULT_LIST_LIMIT, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unread_only: bool = Query(False, alias="unreadOnly"),
    category: Optional[str] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await service.list_notifications(
        db,
        current_user.user_id,
        limit=limit,
        offset=offset,
        unread_only=unread_only,
        category=category,
    )


@router.get("/stats", response_model=NotificationStatsResponse)
async def get_my_notification_stats(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await service.get_notification_stats(db, current_user.user_id)


@router.post("/read-all")
async def mark_all_notifications_read(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    updated = await service.mark_all_as_read(db, current_user.user_id)
    return {"success": True, "updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await service.mark_as_read(db, notification_id, current_user.user_id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_my_notification(
    notification_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await service.delete_notification(db, notification_id, current_user.user_id)


@admin_router.post(
    "", response_model=NotificationSendResponse, status_code=status.HTTP_201_CREATED
)
async def send_notification(
    payload: NotificationSendRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Send a notification to a user, a list of users, a role, a segment or everyone."""
    created = await service.send_notification(
        db, payload.payload, payload.target, payload.options
    )
    return NotificationSendResponse(
        notification_ids=[n.id for n in created],
        target_count=len(created),
    )


@admin_router.get("/stats", response_model=NotificationStatsResponse)
async def get_all_notification_stats(
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await service.get_notification_stats(db)
