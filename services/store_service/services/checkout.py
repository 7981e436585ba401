"""Order placement and reorder."""

import uuid
from collections import defaultdict

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.currency import to_money
from libs.common.logging import get_logger
from services.store_service.models import (
    ActorType,
    Address,
    AuditEntityType,
    Cart,
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    TimelineEvent,
)
from services.store_service.schemas import OrderCreate
from services.store_service.services.audit import log_audit
from services.store_service.services.order_lifecycle import add_timeline_event
from services.store_service.services.promotions import (
    CartLine,
    calculate_cart_promotions,
    record_promotion_usage,
)
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

async def create_order(
    db: AsyncSession, *, user: AuthUser, payload: OrderCreate
) -> Order:
    """Place an order for the current cart contents.

    Line prices and the total are stored as submitted: they are the snapshot
    the customer agreed to. Promotions are evaluated only to record the
    discount and usage.

    Address, order, line items, stock decrement, cart removal and promotion
    usage are written in one transaction.
    """
    requested = defaultdict(int)
    for item in payload.items:
        requested[item.product_id] += item.quantity

    result = await db.execute(select(Product).where(Product.id.in_(requested.keys())))
    products = {product.id: product for product in result.scalars().all()}
    if len(products) != len(requested):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="One or more products not found",
        )

    for product_id, quantity in requested.items():
        product = products[product_id]
        if product.stock < quantity:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Insufficient stock for {product.name}",
            )

    lines = [
        CartLine(
            product_id=item.product_id,
            quantity=item.quantity,
            price=to_money(item.price),
        )
        for item in payload.items
    ]
    pricing = await calculate_cart_promotions(
        db, lines, payload.applied_coupons, user.user_id
    )

    shipping = payload.shipping_info
    address = Address(
        user_id=user.user_id,
        street=shipping.address,
        city=shipping.city,
        state=shipping.state,
        postal_code=shipping.zip_code,
        country=shipping.country,
    )
    order = Order(
        order_number=Order.generate_order_number(),
        user_id=user.user_id,
        customer_email=user.email,
        address=address,
        subtotal=pricing.subtotal,
        discount_total=pricing.total_discount,
        total=to_money(payload.total),
        applied_coupons=[
            result.promotion_code
            for result in pricing.applied_promotions
            if result.coupon_id
        ]
        or None,
        status=OrderStatus.PENDING,
        customer_notes=payload.customer_notes,
        items=[
            OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price=to_money(item.price),
            )
            for item in payload.items
        ],
    )
    db.add(order)

    try:
        await db.flush()

        for product_id, quantity in requested.items():
            result = await db.execute(
                update(Product)
                .where(Product.id == product_id, Product.stock >= quantity)
                .values(stock=Product.stock - quantity)
            )
            if result.rowcount != 1:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Insufficient stock for {products[product_id].name}",
                )

        cart_ids = select(Cart.id).where(Cart.user_id == user.user_id)
        await db.execute(delete(CartItem).where(CartItem.cart_id.in_(cart_ids)))
        await db.execute(delete(Cart).where(Cart.user_id == user.user_id))

        for applied in pricing.applied_promotions:
            await record_promotion_usage(
                db,
                promotion_id=applied.promotion_id,
                coupon_id=applied.coupon_id,
                user_id=user.user_id,
                order_id=order.id,
                discount_amount=applied.discount_amount,
            )

        await log_audit(
            db,
            entity_type=AuditEntityType.ORDER,
            entity_id=order.id,
            action="order_created",
            performed_by=user.user_id,
            new_value={
                "order_number": order.order_number,
                "total": str(order.total),
                "items": len(order.items),
            },
        )
        await add_timeline_event(
            db,
            order.id,
            TimelineEvent.ORDER_PLACED,
            title="Order placed",
            description=f"Order {order.order_number} placed",
            actor_type=ActorType.CUSTOMER,
            actor_id=user.user_id,
            actor_name=user.display_name,
            metadata={"total": str(order.total), "items": len(order.items)},
        )
        await db.commit()
    except HTTPException:
        await db.rollback()
        raise

    logger.info(
        "Order %s placed by %s: %d items, total %s",
        order.order_number,
        user.user_id,
        len(order.items),
        order.total,
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "discount_total": str(order.discount_total),
            }
        },
    )
    return order


async def reorder(
    db: AsyncSession, *, user_id: str, order_id: uuid.UUID
) -> tuple[list[dict], list[dict]]:
    """Split a previous order into items that can be bought again and the rest."""
    result = await db.execute(
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.items).selectinload(OrderItem.product))
    )
    order = result.scalar_one_or_none()
    if not order or order.user_id != user_id:
        raise HTTPException(status_code=404, detail="Order not found")

    cart_items = []
    unavailable_items = []
    for item in order.items:
        product = item.product
        if product is None or not product.is_active:
            unavailable_items.append(
                {
                    "product_id": item.product_id,
                    "name": product.name if product else None,
                    "reason": "Product is no longer available",
                }
            )
            continue
        if product.stock < item.quantity:
            unavailable_items.append(
                {
                    "product_id": product.id,
                    "name": product.name,
                    "reason": f"Insufficient stock (only {product.stock} available)",
                }
            )
            continue
        cart_items.append(
            {
                "product_id": product.id,
                "name": product.name,
                "price": product.price,
                "quantity": item.quantity,
                "image": product.images[0] if product.images else None,
            }
        )
    return cart_items, unavailable_items
