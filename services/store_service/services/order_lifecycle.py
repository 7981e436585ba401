"""Order lifecycle: status changes, cancellation and the order timeline.

Every change to an order goes through this module so that the timeline
stays a complete, append-only history of the order.
"""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.communications_service.services.notifications import (
    send_templated_notification,
)
from services.store_service.models import (
    CANCELLABLE_STATUSES,
    ActorType,
    Order,
    OrderReturn,
    OrderStatus,
    OrderTimeline,
    Product,
    TimelineEvent,
)
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

STATUS_NOTIFICATIONS = {
    OrderStatus.CONFIRMED: "ORDER_CONFIRMED",
    OrderStatus.SHIPPED: "ORDER_SHIPPED",
    OrderStatus.DELIVERED: "ORDER_DELIVERED",
    OrderStatus.CANCELLED: "ORDER_CANCELLED",
}


def status_label(value: OrderStatus) -> str:
    return value.value.replace("_", " ").title()


async def add_timeline_event(
    db: AsyncSession,
    order_id: uuid.UUID,
    event: TimelineEvent,
    title: str,
    description: Optional[str] = None,
    actor_type: ActorType = ActorType.SYSTEM,
    actor_id: Optional[str] = None,
    actor_name: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> OrderTimeline:
    """Append a timeline entry. The caller owns the transaction."""
    entry = OrderTimeline(
        order_id=order_id,
        event=event,
        title=title,
        description=description,
        actor_type=actor_type,
        actor_id=actor_id,
        actor_name=actor_name,
        event_metadata=metadata,
    )
    db.add(entry)
    return entry


async def _get_order(
    db: AsyncSession, order_id: uuid.UUID, *, with_items: bool = False
) -> Order:
    query = select(Order).where(Order.id == order_id)
    if with_items:
        query = query.options(selectinload(Order.items))
    order = (await db.execute(query)).scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def notify_order_status(db: AsyncSession, order: Order) -> None:
    """Send the customer notification for the order's current status.

    Runs after the status change is committed; failures are only logged.
    """
    template_key = STATUS_NOTIFICATIONS.get(order.status)
    if not template_key:
        return
    try:
        await send_templated_notification(
            db,
            template_key,
            user_id=order.user_id,
            variables={"order_number": order.order_number},
            data={"order_id": str(order.id)},
        )
    except Exception:
        logger.exception(
            "Failed to send %s notification for order %s",
            template_key,
            order.order_number,
        )
        await db.rollback()
        # The rollback expires the already committed order callers still use
        await db.refresh(order)


async def update_order_status(
    db: AsyncSession,
    order_id: uuid.UUID,
    new_status: OrderStatus,
    *,
    notes: Optional[str] = None,
    actor_id: Optional[str] = None,
    actor_name: Optional[str] = None,
    actor_type: ActorType = ActorType.ADMIN,
) -> Order:
    """Move an order to ``new_status`` and record it on the timeline.

    Any transition is accepted as long as the status actually changes.
    """
    order = await _get_order(db, order_id, with_items=True)

    if order.status == new_status:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Order is already {new_status.value}",
        )

    previous_status = order.status
    order.status = new_status
    if new_status == OrderStatus.DELIVERED:
        order.actual_delivery = utc_now()
    if notes:
        order.notes = notes

    await add_timeline_event(
        db,
        order.id,
        TimelineEvent.STATUS_CHANGED,
        title=f"Status changed to {status_label(new_status)}",
        description=notes
        or (
            f"Order status changed from {status_label(previous_status)} "
            f"to {status_label(new_status)}"
        ),
        actor_type=actor_type,
        actor_id=actor_id,
        actor_name=actor_name,
        metadata={
            "previous_status": previous_status.value,
            "new_status": new_status.value,
        },
    )
    await db.commit()

    logger.info(
        "Order %s status %s -> %s by %s",
        order.order_number,
        previous_status.value,
        new_status.value,
        actor_id or actor_type.value,
    )

    await notify_order_status(db, order)
    return order


async def cancel_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    reason: str,
    notes: Optional[str] = None,
    actor_id: Optional[str] = None,
    actor_name: Optional[str] = None,
    actor_type: ActorType = ActorType.ADMIN,
) -> Order:
    """Cancel an order and put its items back in stock."""
    order = await _get_order(db, order_id, with_items=True)

    if order.status not in CANCELLABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Orders with status {order.status.value} cannot be cancelled",
        )

    previous_status = order.status
    order.status = OrderStatus.CANCELLED
    order.cancellation_reason = reason
    order.cancellation_notes = notes
    order.cancelled_at = utc_now()
    order.cancelled_by = actor_id or actor_type.value

    for item in order.items:
        await db.execute(
            update(Product)
            .where(Product.id == item.product_id)
            .values(stock=Product.stock + item.quantity)
        )

    await add_timeline_event(
        db,
        order.id,
        TimelineEvent.ORDER_CANCELLED,
        title="Order cancelled",
        description=reason,
        actor_type=actor_type,
        actor_id=actor_id,
        actor_name=actor_name,
        metadata={
            "previous_status": previous_status.value,
            "reason": reason,
            "restocked_items": len(order.items),
        },
    )
    await db.commit()

    logger.info(
        "Order %s cancelled (was %s), %d line items restocked",
        order.order_number,
        previous_status.value,
        len(order.items),
    )

    await notify_order_status(db, order)
    return order


async def get_order_details(db: AsyncSession, order_id: uuid.UUID) -> Order:
    """Load an order with everything the detail view shows."""
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(
            selectinload(Order.items),
            selectinload(Order.address),
            selectinload(Order.timeline),
            selectinload(Order.returns).selectinload(OrderReturn.items),
            selectinload(Order.refunds),
        )
        .execution_options(populate_existing=True)
    )
    order = (await db.execute(query)).scalar_one_or_none()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


UPDATABLE_DETAIL_FIELDS = (
    "notes",
    "tracking_number",
    "estimated_delivery",
    "customer_notes",
)


async def update_order_details(
    db: AsyncSession,
    order_id: uuid.UUID,
    changes: dict,
    *,
    actor_id: Optional[str] = None,
    actor_name: Optional[str] = None,
) -> Order:
    """Apply admin edits that do not touch the status."""
    order = await _get_order(db, order_id, with_items=True)

    applied = {}
    for field in UPDATABLE_DETAIL_FIELDS:
        if field in changes:
            setattr(order, field, changes[field])
            value = changes[field]
            applied[field] = value.isoformat() if hasattr(value, "isoformat") else value

    if not applied:
        return order

    await add_timeline_event(
        db,
        order.id,
        TimelineEvent.NOTE_ADDED,
        title="Order details updated",
        description=changes.get("notes")
        or "Updated " + ", ".join(field.replace("_", " ") for field in applied),
        actor_type=ActorType.ADMIN,
        actor_id=actor_id,
        actor_name=actor_name,
        metadata=applied,
    )
    await db.commit()
    return order
