"""Unit tests for checkout (order placement).

Tests call the checkout service directly with the db_session fixture.
"""

from decimal import Decimal

import pytest
from fastapi import HTTPException
from services.store_service.models import (
    Order,
    OrderStatus,
    OrderTimeline,
    PromotionUsage,
    TimelineEvent,
)
from services.store_service.schemas import OrderCreate
from services.store_service.services.checkout import create_order
from sqlalchemy import func, select
from sqlalchemy.orm import selectinload
from tests.conftest import make_customer_user
from tests.factories import (
    CategoryFactory,
    CouponFactory,
    ProductFactory,
    PromotionFactory,
)

SHIPPING_INFO = {
    "address": "Villa 12, Al Wasl Road",
    "city": "Dubai",
    "state": "Dubai",
    "zip_code": "00000",
    "country": "United Arab Emirates",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _make_products(db, *specs):
    """Insert one product per (price, stock) pair and return them."""
    category = CategoryFactory.create()
    db.add(category)
    products = [
        ProductFactory.create(category.id, price=Decimal(price), stock=stock)
        for price, stock in specs
    ]
    db.add_all(products)
    await db.commit()
    return products


def _payload(lines, total, **extra) -> OrderCreate:
    """``lines`` is a list of (product, quantity, price) triples."""
    return OrderCreate(
        items=[
            {"product_id": product.id, "quantity": quantity, "price": price}
            for product, quantity, price in lines
        ],
        shipping_info=SHIPPING_INFO,
        total=total,
        **extra,
    )


# ---------------------------------------------------------------------------
# create_order
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_records_items_and_reserves_stock(db_session):
    """A valid order stores its lines, reserves stock and starts the timeline."""
    lamp, mirror = await _make_products(db_session, ("120.00", 5), ("80.00", 3))
    user = make_customer_user()

    order = await create_order(
        db_session,
        user=user,
        payload=_payload(
            [(lamp, 1, "120.00"), (mirror, 1, "80.00")], Decimal("200.00")
        ),
    )

    assert order.order_number.startswith("NO")
    assert order.status == OrderStatus.PENDING
    assert order.subtotal == Decimal("200.00")
    assert order.total == Decimal("200.00")
    assert len(order.items) == 2

    await db_session.refresh(lamp)
    await db_session.refresh(mirror)
    assert lamp.stock == 4
    assert mirror.stock == 2

    events = (
        await db_session.execute(
            select(OrderTimeline.event).where(OrderTimeline.order_id == order.id)
        )
    ).scalars().all()
    assert events == [TimelineEvent.ORDER_PLACED]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_rejects_unknown_product(db_session):
    """Ordering a product that does not exist fails without creating an order."""
    (lamp,) = await _make_products(db_session, ("50.00", 5))
    bogus = ProductFactory.create(lamp.category_id)  # never persisted

    with pytest.raises(HTTPException) as exc_info:
        await create_order(
            db_session,
            user=make_customer_user(),
            payload=_payload(
                [(lamp, 1, "50.00"), (bogus, 1, "100.00")], Decimal("150.00")
            ),
        )

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "One or more products not found"
    assert await db_session.scalar(select(func.count(Order.id))) == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_rejects_insufficient_stock(db_session):
    (lamp,) = await _make_products(db_session, ("50.00", 1))

    with pytest.raises(HTTPException) as exc_info:
        await create_order(
            db_session,
            user=make_customer_user(),
            payload=_payload([(lamp, 2, "50.00")], Decimal("100.00")),
        )

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == f"Insufficient stock for {lamp.name}"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_decrements_stock_by_ordered_quantity(db_session):
    """One lamp at 100 and two mirrors at 50 for a total of 200."""
    lamp, mirror = await _make_products(db_session, ("100.00", 5), ("50.00", 5))

    order = await create_order(
        db_session,
        user=make_customer_user(),
        payload=_payload(
            [(lamp, 1, "100.00"), (mirror, 2, "50.00")], Decimal("200.00")
        ),
    )

    assert len(order.items) == 2
    assert {(item.product_id, item.quantity) for item in order.items} == {
        (lamp.id, 1),
        (mirror.id, 2),
    }
    await db_session.refresh(lamp)
    await db_session.refresh(mirror)
    assert lamp.stock == 4
    assert mirror.stock == 3


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_keeps_submitted_price_snapshot(db_session):
    """Line prices are stored as submitted, even after a catalog change."""
    (lamp,) = await _make_products(db_session, ("105.00", 5))

    order = await create_order(
        db_session,
        user=make_customer_user(),
        payload=_payload([(lamp, 1, "100.00")], Decimal("100.00")),
    )

    assert order.items[0].price == Decimal("100.00")
    assert order.total == Decimal("100.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_automatic_promotion_does_not_block_order(db_session):
    """The submitted total is kept; the live promotion is only recorded."""
    lamp, mirror = await _make_products(db_session, ("100.00", 5), ("50.00", 5))
    promotion = PromotionFactory.create(discount_value=Decimal("10"))
    db_session.add(promotion)
    await db_session.commit()

    order = await create_order(
        db_session,
        user=make_customer_user(),
        payload=_payload(
            [(lamp, 1, "100.00"), (mirror, 2, "50.00")], Decimal("200.00")
        ),
    )

    assert order.total == Decimal("200.00")
    assert order.discount_total == Decimal("20.00")
    await db_session.refresh(promotion)
    assert promotion.usage_count == 1



@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_applies_coupon_and_records_usage(db_session):
    """A coupon discount lowers the expected total and is counted once."""
    (lamp,) = await _make_products(db_session, ("100.00", 5))
    promotion = PromotionFactory.create(discount_value=Decimal("10"))
    db_session.add(promotion)
    coupon = CouponFactory.create(promotion.id, code="EID10")
    db_session.add(coupon)
    await db_session.commit()

    user = make_customer_user()
    order = await create_order(
        db_session,
        user=user,
        payload=_payload(
            [(lamp, 2, "100.00")], Decimal("180.00"), applied_coupons=["eid10"]
        ),
    )

    assert order.discount_total == Decimal("20.00")
    assert order.total == Decimal("180.00")
    assert order.applied_coupons == ["EID10"]

    usage = (
        await db_session.execute(
            select(PromotionUsage).where(PromotionUsage.order_id == order.id)
        )
    ).scalar_one()
    assert usage.user_id == user.user_id
    assert usage.coupon_id == coupon.id

    await db_session.refresh(promotion)
    await db_session.refresh(coupon)
    assert promotion.usage_count == 1
    assert coupon.usage_count == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_stores_shipping_address(db_session):
    (lamp,) = await _make_products(db_session, ("40.00", 5))
    user = make_customer_user()

    order = await create_order(
        db_session,
        user=user,
        payload=_payload([(lamp, 1, "40.00")], Decimal("40.00")),
    )

    stored = (
        await db_session.execute(
            select(Order)
            .where(Order.id == order.id)
            .options(selectinload(Order.address))
        )
    ).scalar_one()
    assert stored.address.city == "Dubai"
    assert stored.address.postal_code == "00000"
    assert stored.address.user_id == user.user_id
