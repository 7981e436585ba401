"""Admin order router: order management, returns, refunds and export."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.db.session import get_async_db
from services.store_service.models import Order, OrderStatus
from services.store_service.schemas import (
    AdminOrderUpdate,
    OrderCancelRequest,
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    RefundCreate,
    RefundResponse,
    ReturnResponse,
    ReturnReview,
)
from services.store_service.services import aftersales, analytics, order_lifecycle
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["admin-store"])


# ============================================================================
# EXPORT
# ============================================================================


@router.get("/orders/export")
async def export_orders(
    format: Literal["csv", "pdf"] = "csv",
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Download an orders report as CSV or PDF."""
    orders = await analytics.get_orders_for_export(
        db, status=status_filter, start_date=start_date, end_date=end_date
    )
    stamp = utc_now().strftime("%Y%m%d")

    if format == "pdf":
        subtitle = f"Status: {status_filter.value}" if status_filter else None
        return Response(
            content=analytics.render_orders_pdf(orders, subtitle=subtitle),
            media_type="application/pdf",
            headers={
                "Content-Disposition": f"attachment; filename=orders_{stamp}.pdf"
            },
        )

    return Response(
        content=analytics.render_orders_csv(orders),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=orders_{stamp}.csv"},
    )


# ============================================================================
# ORDERS
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all orders (admin)."""
    query = select(Order)
    if status_filter:
        query = query.where(Order.status == status_filter)
    if search:
        search_term = f"%{search}%"
        query = query.where(
            Order.order_number.ilike(search_term)
            | Order.customer_email.ilike(search_term)
        )

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
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_lifecycle.get_order_details(db, order_id)


@router.put("/orders/{order_id}", response_model=OrderDetailResponse)
async def update_order(
    order_id: uuid.UUID,
    payload: AdminOrderUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update an order.

    A ``status`` in the body is applied through the lifecycle (with ``notes``
    as the timeline description); any other fields are saved as details.
    """
    changes = payload.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)

    if new_status is not None:
        await order_lifecycle.update_order_status(
            db,
            order_id,
            new_status,
            notes=changes.pop("notes", None),
            actor_id=current_user.user_id,
            actor_name=current_user.display_name,
        )
    if changes:
        await order_lifecycle.update_order_details(
            db,
            order_id,
            changes,
            actor_id=current_user.user_id,
            actor_name=current_user.display_name,
        )
    return await order_lifecycle.get_order_details(db, order_id)


@router.post("/orders/{order_id}/cancel", response_model=OrderDetailResponse)
async def cancel_order(
    order_id: uuid.UUID,
    payload: OrderCancelRequest,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel an order and restock its items."""
    await order_lifecycle.cancel_order(
        db,
        order_id,
        reason=payload.reason,
        notes=payload.notes,
        actor_id=current_user.user_id,
        actor_name=current_user.display_name,
    )
    return await order_lifecycle.get_order_details(db, order_id)


# ============================================================================
# RETURNS
# ============================================================================


@router.get("/orders/{order_id}/returns", response_model=list[ReturnResponse])
async def list_order_returns(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await aftersales.list_returns(db, order_id)


@router.post(
    "/orders/{order_id}/returns/{return_id}/review", response_model=ReturnResponse
)
async def review_return(
    order_id: uuid.UUID,
    return_id: uuid.UUID,
    payload: ReturnReview,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Approve or reject a return request."""
    return await aftersales.process_return_request(
        db,
        return_id=return_id,
        order_id=order_id,
        approved=payload.approved,
        reviewed_by=current_user.user_id,
        reviewer_name=current_user.display_name,
        review_notes=payload.review_notes,
    )


# ============================================================================
# REFUNDS
# ============================================================================


@router.post(
    "/orders/{order_id}/refunds",
    response_model=RefundResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_refund(
    order_id: uuid.UUID,
    payload: RefundCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Record a refund. Money is returned outside this system."""
    return await aftersales.create_refund(
        db,
        order_id=order_id,
        amount=payload.amount,
        refund_type=payload.type,
        reason=payload.reason,
        description=payload.description,
        return_id=payload.return_id,
        processed_by=current_user.user_id,
        processor_name=current_user.display_name,
    )


@router.get("/orders/{order_id}/refunds", response_model=list[RefundResponse])
async def list_order_refunds(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await aftersales.list_refunds(db, order_id)
