"""
Notification preferences router for the Communications Service.
"""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.communications_service.schemas import (
    NotificationPreferenceResponse,
    NotificationPreferenceUpdate,
)
from services.communications_service.services.notifications import (
    get_preferences,
    update_preferences,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/notifications/preferences", tags=["preferences"])


@router.get("", response_model=NotificationPreferenceResponse)
async def get_my_preferences(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Get the current user's notification preferences.
    Falls back to the defaults when nothing has been saved yet.
    """
    return await get_preferences(db, current_user.user_id)


@router.put("", response_model=NotificationPreferenceResponse)
async def update_my_preferences(
    updates: NotificationPreferenceUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """
    Update the current user's notification preferences.
    """
    return await update_preferences(
        db, current_user.user_id, updates.model_dump(exclude_none=True)
    )
