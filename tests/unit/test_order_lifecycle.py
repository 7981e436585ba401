"""Unit tests for order status changes and cancellation."""

import uuid
from decimal import Decimal

import pytest
from fastapi import HTTPException
from services.communications_service.models import Notification
from services.communications_service.services.notifications import (
    update_preferences,
)
from services.store_service.models import (
    ActorType,
    OrderStatus,
    OrderTimeline,
    TimelineEvent,
)
from services.store_service.services import order_lifecycle
from services.store_service.services.order_lifecycle import (
    cancel_order,
    get_order_details,
    update_order_details,
    update_order_status,
)
from sqlalchemy import select
from tests.factories import CategoryFactory, OrderFactory, ProductFactory


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _make_order(db, status=OrderStatus.PENDING, stock=5, quantity=2):
    category = CategoryFactory.create()
    product = ProductFactory.create(category.id, price=Decimal("30.00"), stock=stock)
    db.add_all([category, product])
    order = OrderFactory.create(
        f"customer-{product.slug[-8:]}", items=[(product, quantity)], status=status
    )
    db.add(order)
    await db.commit()
    return order, product


async def _timeline(db, order_id):
    result = await db.execute(
        select(OrderTimeline)
        .where(OrderTimeline.order_id == order_id)
        .order_by(OrderTimeline.created_at)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# update_order_status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_status_change_is_recorded_on_timeline(db_session):
    order, _ = await _make_order(db_session)

    updated = await update_order_status(
        db_session,
        order.id,
        OrderStatus.SHIPPED,
        notes="Handed to Aramex",
        actor_id="admin-1",
        actor_name="Ops",
    )

    assert updated.status == OrderStatus.SHIPPED
    entries = await _timeline(db_session, order.id)
    assert len(entries) == 1
    entry = entries[0]
    assert entry.event == TimelineEvent.STATUS_CHANGED
    assert entry.actor_type == ActorType.ADMIN
    assert entry.description == "Handed to Aramex"
    assert entry.event_metadata == {
        "previous_status": "pending",
        "new_status": "shipped",
    }


@pytest.mark.asyncio
@pytest.mark.unit
async def test_any_transition_is_allowed_when_status_changes(db_session):
    """There is no transition table: delivered can go back to processing."""
    order, _ = await _make_order(db_session, status=OrderStatus.DELIVERED)

    updated = await update_order_status(
        db_session, order.id, OrderStatus.PROCESSING, actor_id="admin-1"
    )

    assert updated.status == OrderStatus.PROCESSING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_same_status_is_rejected(db_session):
    order, _ = await _make_order(db_session, status=OrderStatus.CONFIRMED)

    with pytest.raises(HTTPException) as exc_info:
        await update_order_status(db_session, order.id, OrderStatus.CONFIRMED)

    assert exc_info.value.status_code == 400
    assert await _timeline(db_session, order.id) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivered_sets_actual_delivery(db_session):
    order, _ = await _make_order(db_session, status=OrderStatus.SHIPPED)

    updated = await update_order_status(db_session, order.id, OrderStatus.DELIVERED)

    assert updated.actual_delivery is not None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_status_change_notifies_customer(db_session):
    order, _ = await _make_order(db_session)

    await update_order_status(db_session, order.id, OrderStatus.SHIPPED)

    notification = (
        await db_session.execute(
            select(Notification).where(Notification.user_id == order.user_id)
        )
    ).scalar_one()
    assert notification.title == "Order Shipped"
    assert order.order_number in notification.body
    assert notification.data["order_id"] == str(order.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_muted_order_updates_skip_notification(db_session):
    order, _ = await _make_order(db_session)
    await update_preferences(db_session, order.user_id, {"order_updates": False})

    await update_order_status(db_session, order.id, OrderStatus.CONFIRMED)

    result = await db_session.execute(
        select(Notification).where(Notification.user_id == order.user_id)
    )
    assert result.scalars().all() == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_notification_keeps_order_usable(db_session, monkeypatch):
    order, _ = await _make_order(db_session)

    async def broken_notification(*args, **kwargs):
        raise RuntimeError("notification store unavailable")

    monkeypatch.setattr(
        order_lifecycle, "send_templated_notification", broken_notification
    )

    updated = await update_order_status(db_session, order.id, OrderStatus.SHIPPED)

    assert updated.status == OrderStatus.SHIPPED
    assert updated.order_number == order.order_number
    events = await _timeline(db_session, order.id)
    assert [event.event for event in events] == [TimelineEvent.STATUS_CHANGED]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_order_is_not_found(db_session):
    with pytest.raises(HTTPException) as exc_info:
        await update_order_status(db_session, uuid.uuid4(), OrderStatus.SHIPPED)

    assert exc_info.value.status_code == 404


# ---------------------------------------------------------------------------
# cancel_order
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cancel_restocks_items(db_session):
    order, product = await _make_order(db_session, stock=3, quantity=2)

    cancelled = await cancel_order(
        db_session,
        order.id,
        reason="Customer changed mind",
        actor_id="admin-1",
    )

    assert cancelled.status == OrderStatus.CANCELLED
    assert cancelled.cancellation_reason == "Customer changed mind"
    assert cancelled.cancelled_at is not None
    assert cancelled.cancelled_by == "admin-1"

    await db_session.refresh(product)
    assert product.stock == 5

    entries = await _timeline(db_session, order.id)
    assert [entry.event for entry in entries] == [TimelineEvent.ORDER_CANCELLED]


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "status", [OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED]
)
async def test_cancel_rejected_after_fulfilment_starts(db_session, status):
    order, product = await _make_order(db_session, status=status, stock=3)

    with pytest.raises(HTTPException) as exc_info:
        await cancel_order(db_session, order.id, reason="Too late")

    assert exc_info.value.status_code == 400
    await db_session.refresh(product)
    assert product.stock == 3


# ---------------------------------------------------------------------------
# Details
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_update_details_adds_note_event(db_session):
    order, _ = await _make_order(db_session)

    await update_order_details(
        db_session,
        order.id,
        {"tracking_number": "ARX-123456"},
        actor_id="admin-1",
    )

    details = await get_order_details(db_session, order.id)
    assert details.tracking_number == "ARX-123456"
    assert [entry.event for entry in details.timeline] == [TimelineEvent.NOTE_ADDED]
    assert details.timeline[0].event_metadata == {"tracking_number": "ARX-123456"}
