"""Returns and refunds for placed orders."""

import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from fastapi import HTTPException, status
from libs.common.config import get_settings
from libs.common.currency import to_money
from libs.common.datetime_utils import days_since, utc_now
from libs.common.logging import get_logger
from services.store_service.models import (
    ActorType,
    Order,
    OrderRefund,
    OrderReturn,
    OrderReturnItem,
    OrderStatus,
    RefundStatus,
    RefundType,
    ReturnStatus,
    TimelineEvent,
)
from services.store_service.services.order_lifecycle import add_timeline_event
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

RETURN_WINDOW_MESSAGE = (
    "Return window has expired. Returns must be requested within "
    "{days} days of order creation."
)

# Refunds in these states count against the order total.
OUTSTANDING_REFUND_STATUSES = (RefundStatus.PROCESSING, RefundStatus.COMPLETED)


# ---------------------------------------------------------------------------
# Returns
# ---------------------------------------------------------------------------


async def create_return_request(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    user_id: str,
    items: Iterable,
    reason: str,
    description: Optional[str] = None,
    images: Optional[list[str]] = None,
    actor_name: Optional[str] = None,
) -> OrderReturn:
    """Open a return request for items of a delivered order.

    ``items`` are objects with ``order_item_id``, ``quantity``, ``reason``
    and ``condition`` attributes.
    """
    settings = get_settings()
    result = await db.execute(
        select(Order).where(Order.id == order_id).options(selectinload(Order.items))
    )
    order = result.scalar_one_or_none()
    if not order or order.user_id != user_id:
        raise HTTPException(status_code=404, detail="Order not found")

    if days_since(order.created_at) > settings.RETURN_WINDOW_DAYS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=RETURN_WINDOW_MESSAGE.format(days=settings.RETURN_WINDOW_DAYS),
        )

    if order.status != OrderStatus.DELIVERED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only delivered orders can be returned",
        )

    items = list(items)
    order_items = {item.id: item for item in order.items}
    requested = defaultdict(int)
    for item in items:
        if item.order_item_id not in order_items:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Item {item.order_item_id} is not part of this order",
            )
        requested[item.order_item_id] += item.quantity

    for order_item_id, quantity in requested.items():
        if quantity > order_items[order_item_id].quantity:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=(
                    f"Return quantity for item {order_item_id} exceeds "
                    "the ordered quantity"
                ),
            )

    order_return = OrderReturn(
        return_number=OrderReturn.generate_return_number(),
        order_id=order.id,
        user_id=user_id,
        status=ReturnStatus.REQUESTED,
        reason=reason,
        description=description,
        images=images or [],
        items=[
            OrderReturnItem(
                order_item_id=item.order_item_id,
                quantity=item.quantity,
                reason=item.reason,
                condition=item.condition,
            )
            for item in items
        ],
    )
    db.add(order_return)

    await add_timeline_event(
        db,
        order.id,
        TimelineEvent.RETURN_REQUESTED,
        title="Return requested",
        description=reason,
        actor_type=ActorType.CUSTOMER,
        actor_id=user_id,
        actor_name=actor_name,
        metadata={
            "return_number": order_return.return_number,
            "items": len(items),
        },
    )
    await db.commit()

    logger.info(
        "Return %s requested for order %s (%d items)",
        order_return.return_number,
        order.order_number,
        len(items),
    )
    return order_return


async def process_return_request(
    db: AsyncSession,
    *,
    return_id: uuid.UUID,
    approved: bool,
    reviewed_by: str,
    reviewer_name: Optional[str] = None,
    review_notes: Optional[str] = None,
    order_id: Optional[uuid.UUID] = None,
) -> OrderReturn:
    """Approve or reject a pending return. Approval does not issue a refund."""
    query = (
        select(OrderReturn)
        .where(OrderReturn.id == return_id)
        .options(selectinload(OrderReturn.items))
    )
    if order_id is not None:
        query = query.where(OrderReturn.order_id == order_id)
    order_return = (await db.execute(query)).scalar_one_or_none()
    if not order_return:
        raise HTTPException(status_code=404, detail="Return request not found")

    if order_return.status != ReturnStatus.REQUESTED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Return request has already been processed",
        )

    order_return.status = ReturnStatus.APPROVED if approved else ReturnStatus.REJECTED
    order_return.reviewed_by = reviewed_by
    order_return.reviewed_at = utc_now()
    order_return.review_notes = review_notes

    await add_timeline_event(
        db,
        order_return.order_id,
        TimelineEvent.RETURN_APPROVED if approved else TimelineEvent.RETURN_REJECTED,
        title="Return approved" if approved else "Return rejected",
        description=review_notes,
        actor_type=ActorType.ADMIN,
        actor_id=reviewed_by,
        actor_name=reviewer_name,
        metadata={"return_number": order_return.return_number},
    )
    await db.commit()

    logger.info(
        "Return %s %s by %s",
        order_return.return_number,
        order_return.status.value,
        reviewed_by,
    )
    return order_return


async def list_returns(db: AsyncSession, order_id: uuid.UUID) -> list[OrderReturn]:
    result = await db.execute(
        select(OrderReturn)
        .where(OrderReturn.order_id == order_id)
        .options(selectinload(OrderReturn.items))
        .order_by(OrderReturn.created_at.desc())
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Refunds
# ---------------------------------------------------------------------------


async def create_refund(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    amount: Decimal,
    refund_type: RefundType,
    reason: str,
    processed_by: str,
    processor_name: Optional[str] = None,
    description: Optional[str] = None,
    return_id: Optional[uuid.UUID] = None,
) -> OrderRefund:
    """Record a refund against an order.

    The record is bookkeeping only: no money moves at the payment processor.
    Outstanding refunds may never add up to more than the order total.
    """
    order = await db.get(Order, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    if return_id is not None:
        order_return = await db.get(OrderReturn, return_id)
        if not order_return or order_return.order_id != order.id:
            raise HTTPException(status_code=404, detail="Return request not found")

    amount = to_money(amount)
    already_refunded = to_money(
        await db.scalar(
            select(func.coalesce(func.sum(OrderRefund.amount), 0)).where(
                OrderRefund.order_id == order.id,
                OrderRefund.status.in_(OUTSTANDING_REFUND_STATUSES),
            )
        )
        or 0
    )
    if already_refunded + amount > order.total:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Refund amount exceeds remaining refundable amount",
        )

    refund = OrderRefund(
        refund_number=OrderRefund.generate_refund_number(),
        order_id=order.id,
        return_id=return_id,
        amount=amount,
        type=refund_type,
        status=RefundStatus.PROCESSING,
        reason=reason,
        description=description,
        processed_by=processed_by,
        processed_at=utc_now(),
    )
    db.add(refund)

    await add_timeline_event(
        db,
        order.id,
        TimelineEvent.REFUND_INITIATED,
        title="Refund initiated",
        description=f"{refund_type.value.replace('_', ' ').title()} refund: {reason}",
        actor_type=ActorType.ADMIN,
        actor_id=processed_by,
        actor_name=processor_name,
        metadata={
            "refund_number": refund.refund_number,
            "amount": str(amount),
            "type": refund_type.value,
        },
    )
    await db.commit()

    logger.info(
        "Refund %s of %s (%s) initiated for order %s by %s",
        refund.refund_number,
        amount,
        refund_type.value,
        order.order_number,
        processed_by,
    )
    return refund


async def list_refunds(db: AsyncSession, order_id: uuid.UUID) -> list[OrderRefund]:
    result = await db.execute(
        select(OrderRefund)
        .where(OrderRefund.order_id == order_id)
        .order_by(OrderRefund.created_at.desc())
    )
    return list(result.scalars().all())
