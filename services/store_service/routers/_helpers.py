"""Shared helper functions for store routers."""

import uuid

from fastapi import HTTPException
from libs.auth.models import AuthUser
from services.store_service.models import Order
from sqlalchemy.ext.asyncio import AsyncSession


async def get_owned_order(
    db: AsyncSession, order_id: uuid.UUID, current_user: AuthUser
) -> Order:
    """Fetch an order that belongs to the current user, or 404."""
    order = await db.get(Order, order_id)
    if not order or order.user_id != current_user.user_id:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


def page_count(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size if page_size else 0
