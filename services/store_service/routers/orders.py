"""Store orders router: checkout, order history, reorder and returns."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.store_service.models import Order, OrderStatus, Product
from services.store_service.routers._helpers import get_owned_order
from services.store_service.routers.cart import add_cart_item, get_or_create_cart
from services.store_service.schemas import (
    OrderCreate,
    OrderCreateResponse,
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    ReorderResponse,
    ReturnCreate,
    ReturnResponse,
)
from services.store_service.services import aftersales, checkout, order_lifecycle
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["store"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post(
    "/orders",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
@api_limit
async def create_order(
    request: Request,
    payload: OrderCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order. Stock is reserved immediately; payment follows."""
    order = await checkout.create_order(db, user=current_user, payload=payload)
    return OrderCreateResponse(order_id=order.id, order_number=order.order_number)


# ============================================================================
# ORDER HISTORY
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_my_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the current user's orders, newest first."""
    query = select(Order).where(Order.user_id == current_user.user_id)
    if status_filter:
        query = query.where(Order.status == status_filter)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = (
        query.options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    orders = (await db.execute(query)).scalars().all()

    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/orders/{order_id}", response_model=OrderDetailResponse)
async def get_my_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get one of the current user's orders with its timeline."""
    await get_owned_order(db, order_id, current_user)
    return await order_lifecycle.get_order_details(db, order_id)


@router.post("/orders/{order_id}/reorder", response_model=ReorderResponse)
async def reorder(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Put the available items of a past order back into the cart."""
    cart_items, unavailable_items = await checkout.reorder(
        db, user_id=current_user.user_id, order_id=order_id
    )

    added = []
    if cart_items:
        cart = await get_or_create_cart(db, current_user.user_id)
        for entry in cart_items:
            product = await db.get(Product, entry["product_id"])
            try:
                await add_cart_item(db, cart, product, entry["quantity"])
            except HTTPException as exc:
                # Cart already holds as many as the stock allows
                unavailable_items.append(
                    {
                        "product_id": product.id,
                        "name": product.name,
                        "reason": exc.detail,
                    }
                )
                continue
            added.append(entry)
        await db.commit()

    return ReorderResponse(cart_items=added, unavailable_items=unavailable_items)


# ============================================================================
# RETURNS
# ============================================================================


@router.post(
    "/orders/{order_id}/returns",
    response_model=ReturnResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_return(
    order_id: uuid.UUID,
    payload: ReturnCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Request a return for items of a delivered order."""
    return await aftersales.create_return_request(
        db,
        order_id=order_id,
        user_id=current_user.user_id,
        items=payload.items,
        reason=payload.reason,
        description=payload.description,
        images=payload.images,
        actor_name=current_user.display_name,
    )


@router.get("/orders/{order_id}/returns", response_model=list[ReturnResponse])
async def list_my_returns(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List return requests for one of the current user's orders."""
    await get_owned_order(db, order_id, current_user)
    return await aftersales.list_returns(db, order_id)
