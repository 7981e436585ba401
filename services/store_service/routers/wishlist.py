"""Store wishlist router: products a customer saved for later."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Product, WishlistItem
from services.store_service.schemas import (
    WishlistAdd,
    WishlistItemResponse,
    WishlistResponse,
)
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["store"])


@router.get("/wishlist", response_model=WishlistResponse)
async def get_wishlist(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """The caller's saved products, most recent first."""
    result = await db.execute(
        select(WishlistItem)
        .where(WishlistItem.user_id == current_user.user_id)
        .options(selectinload(WishlistItem.product))
        .order_by(WishlistItem.created_at.desc())
    )
    items = result.scalars().all()
    return WishlistResponse(
        items=[WishlistItemResponse.model_validate(item) for item in items],
        total=len(items),
    )


@router.post(
    "/wishlist",
    response_model=WishlistItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_to_wishlist(
    payload: WishlistAdd,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    product = await db.get(Product, payload.product_id)
    if not product or not product.is_active:
        raise HTTPException(status_code=404, detail="Product not found")

    existing = await db.execute(
        select(WishlistItem.id).where(
            WishlistItem.user_id == current_user.user_id,
            WishlistItem.product_id == product.id,
        )
    )
    if existing.first():
        raise HTTPException(status_code=400, detail="Product already in wishlist")

    item = WishlistItem(user_id=current_user.user_id, product_id=product.id)
    item.product = product
    db.add(item)
    await db.commit()
    return item


@router.delete("/wishlist/{product_id}")
async def remove_from_wishlist(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        delete(WishlistItem).where(
            WishlistItem.user_id == current_user.user_id,
            WishlistItem.product_id == product_id,
        )
    )
    if not result.rowcount:
        raise HTTPException(status_code=404, detail="Item not found in wishlist")
    await db.commit()
    return {"success": True}
