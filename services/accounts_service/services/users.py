"""User profile lookups keyed by the auth subject."""

from typing import Optional

from fastapi import HTTPException
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from services.accounts_service.models import User
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def get_user_by_auth_id(db: AsyncSession, auth_id: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.auth_id == auth_id))
    return result.scalar_one_or_none()


async def ensure_user_profile(db: AsyncSession, auth_user: AuthUser) -> User:
    """Return the caller's profile, creating it from token claims on first use."""
    user = await get_user_by_auth_id(db, auth_user.user_id)
    if user:
        return user

    first_name, last_name = None, None
    if auth_user.name:
        first_name, _, last_name = auth_user.name.strip().partition(" ")
        last_name = last_name or None

    user = User(
        auth_id=auth_user.user_id,
        email=str(auth_user.email).lower() if auth_user.email else None,
        first_name=first_name,
        last_name=last_name,
        role=auth_user.role,
    )
    db.add(user)
    await db.commit()

    logger.info(
        "Created profile for %s",
        auth_user.user_id,
        extra={"extra_fields": {"auth_id": auth_user.user_id}},
    )
    return user


async def require_user(db: AsyncSession, auth_id: str) -> User:
    user = await get_user_by_auth_id(db, auth_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
