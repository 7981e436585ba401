"""Stripe payments: payment intents, hosted checkout and the webhook."""

import json
import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import dirham_to_fils, to_money
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.rate_limit import payment_limit
from libs.db.session import get_async_db
from services.communications_service.templates.store import (
    send_store_order_confirmation_email,
)
from services.store_service.models import (
    CANCELLABLE_STATUSES,
    ActorType,
    Order,
    OrderStatus,
    Product,
    TimelineEvent,
)
from services.store_service.routers._helpers import get_owned_order
from services.store_service.schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PaymentIntentRequest,
    PaymentIntentResponse,
)
from services.store_service.services import order_lifecycle
from services.store_service.stripe_client import (
    StripeError,
    get_stripe_client,
    verify_webhook_signature,
)
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["store"])
settings = get_settings()
logger = get_logger(__name__)

PAYMENT_SUCCEEDED_EVENTS = ("checkout.session.completed", "payment_intent.succeeded")
PAYMENT_FAILED_EVENTS = (
    "checkout.session.expired",
    "checkout.session.async_payment_failed",
    "payment_intent.payment_failed",
)


def payment_breakdown(order: Order) -> tuple[Decimal, Decimal, Decimal]:
    """Return (shipping, tax, amount due) for an order in dirham."""
    shipping = to_money(settings.SHIPPING_FLAT_RATE)
    tax = to_money(order.total * settings.TAX_RATE)
    return shipping, tax, to_money(order.total + shipping + tax)


def _stripe_client():
    try:
        return get_stripe_client()
    except ValueError as e:
        logger.error("Stripe is not configured: %s", e)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment service unavailable",
        )


# ============================================================================
# PAYMENT INTENTS / CHECKOUT SESSIONS
# ============================================================================


@router.post("/payment", response_model=PaymentIntentResponse)
@payment_limit
async def create_payment_intent(
    request: Request,
    payload: PaymentIntentRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a Stripe payment intent for one of the caller's orders."""
    order = await get_owned_order(db, payload.order_id, current_user)

    if order.paid_at is not None:
        raise HTTPException(status_code=400, detail="Order has already been paid")
    if order.stripe_payment_id:
        raise HTTPException(
            status_code=400, detail="Payment already initiated for this order"
        )
    if order.status != OrderStatus.PENDING:
        raise HTTPException(
            status_code=400,
            detail=f"Orders with status {order.status.value} cannot be paid",
        )

    _, _, amount_due = payment_breakdown(order)
    client = _stripe_client()
    try:
        intent = await client.create_payment_intent(
            amount=dirham_to_fils(amount_due),
            currency=settings.STRIPE_CURRENCY,
            metadata={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "user_id": current_user.user_id,
            },
            idempotency_key=f"order-{order.id}",
        )
    except StripeError as e:
        logger.error(
            "Payment intent creation failed for order %s: %s",
            order.order_number,
            e.message,
        )
        raise HTTPException(status_code=502, detail="Payment provider error")

    order.stripe_payment_id = intent.id
    await db.commit()

    logger.info(
        "Payment intent %s created for order %s",
        intent.id,
        order.order_number,
        extra={"extra_fields": {"order_id": str(order.id), "amount": intent.amount}},
    )
    return PaymentIntentResponse(
        client_secret=intent.client_secret,
        payment_intent_id=intent.id,
        amount=intent.amount,
        currency=intent.currency,
    )


@router.post("/stripe/checkout", response_model=CheckoutSessionResponse)
@payment_limit
async def create_checkout_session(
    request: Request,
    payload: CheckoutSessionRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a hosted Stripe Checkout session for a pending order."""
    order = await get_owned_order(db, payload.order_id, current_user)
    if order.status != OrderStatus.PENDING or order.paid_at is not None:
        raise HTTPException(
            status_code=400, detail="Only pending, unpaid orders can be paid"
        )

    result = await db.execute(
        select(Order)
        .where(Order.id == order.id)
        .options(selectinload(Order.items))
        .execution_options(populate_existing=True)
    )
    order = result.scalar_one()
    products = await _load_products(db, order)

    shipping, tax, _ = payment_breakdown(order)
    line_items = [
        _line_item(products.get(item.product_id, "Item"), item.price, item.quantity)
        for item in order.items
    ]
    if order.discount_total:
        # Stripe line items cannot be negative; bill the discounted total
        # as a single line.
        line_items = [_line_item(f"Order {order.order_number}", order.total, 1)]
    line_items.append(_line_item("Shipping", shipping, 1))
    line_items.append(_line_item("Tax", tax, 1))

    client = _stripe_client()
    try:
        session = await client.create_checkout_session(
            line_items=line_items,
            success_url=f"{settings.FRONTEND_URL}/checkout/success?order={order.id}",
            cancel_url=f"{settings.FRONTEND_URL}/checkout?order={order.id}",
            customer_email=order.customer_email,
            metadata={"order_id": str(order.id), "order_number": order.order_number},
            client_reference_id=str(order.id),
        )
    except StripeError as e:
        logger.error(
            "Checkout session creation failed for order %s: %s",
            order.order_number,
            e.message,
        )
        raise HTTPException(status_code=502, detail="Payment provider error")

    order.stripe_session_id = session.id
    await db.commit()
    return CheckoutSessionResponse(session_id=session.id, url=session.url)


def _line_item(name: str, unit_amount: Decimal, quantity: int) -> dict:
    return {
        "price_data": {
            "currency": settings.STRIPE_CURRENCY,
            "product_data": {"name": name},
            "unit_amount": dirham_to_fils(unit_amount),
        },
        "quantity": quantity,
    }


async def _load_products(db: AsyncSession, order: Order) -> dict:
    """Map product id -> name for the order's items."""
    product_ids = [item.product_id for item in order.items]
    if not product_ids:
        return {}
    result = await db.execute(
        select(Product.id, Product.name).where(Product.id.in_(product_ids))
    )
    return {row.id: row.name for row in result.all()}


# ============================================================================
# WEBHOOK
# ============================================================================


async def _find_order(db: AsyncSession, obj: dict) -> Optional[Order]:
    """Match a Stripe object to an order by metadata or stored Stripe ids."""
    metadata = obj.get("metadata") or {}
    order_ref = metadata.get("order_id") or obj.get("client_reference_id")
    if order_ref:
        try:
            order_id = uuid.UUID(str(order_ref))
        except ValueError:
            order_id = None
        if order_id:
            result = await db.execute(
                select(Order)
                .where(Order.id == order_id)
                .options(selectinload(Order.items), selectinload(Order.address))
            )
            order = result.scalar_one_or_none()
            if order:
                return order

    stripe_ids = [obj.get("id"), obj.get("payment_intent")]
    stripe_ids = [value for value in stripe_ids if isinstance(value, str) and value]
    if not stripe_ids:
        return None
    result = await db.execute(
        select(Order)
        .where(
            or_(
                Order.stripe_payment_id.in_(stripe_ids),
                Order.stripe_session_id.in_(stripe_ids),
            )
        )
        .options(selectinload(Order.items), selectinload(Order.address))
    )
    return result.scalars().first()


async def _send_confirmation_email(db: AsyncSession, order: Order) -> None:
    if not order.customer_email:
        return
    products = await _load_products(db, order)
    shipping, tax, amount_due = payment_breakdown(order)
    address = order.address
    await send_store_order_confirmation_email(
        to_email=order.customer_email,
        order_number=order.order_number,
        items=[
            {
                "name": products.get(item.product_id, "Item"),
                "quantity": item.quantity,
                "price": item.line_total,
            }
            for item in order.items
        ],
        subtotal=order.subtotal,
        discount=order.discount_total or Decimal("0"),
        shipping=shipping,
        tax=tax,
        total=amount_due,
        shipping_address=(
            f"{address.street}, {address.city}, {address.country}" if address else None
        ),
    )


async def _handle_payment_succeeded(
    db: AsyncSession, order: Order, event_type: str, obj: dict
) -> None:
    if order.paid_at is not None:
        logger.info(
            "Webhook for order %s skipped - already paid",
            order.order_number,
            extra={"extra_fields": {"order_id": str(order.id), "event": event_type}},
        )
        return

    previous_status = order.status
    order.paid_at = utc_now()
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.CONFIRMED
    if event_type == "payment_intent.succeeded":
        order.stripe_payment_id = obj.get("id")
    elif isinstance(obj.get("payment_intent"), str):
        order.stripe_payment_id = obj["payment_intent"]

    await order_lifecycle.add_timeline_event(
        db,
        order.id,
        TimelineEvent.PAYMENT_RECEIVED,
        title="Payment received",
        description="Payment confirmed by Stripe",
        actor_type=ActorType.SYSTEM,
        metadata={
            "event": event_type,
            "stripe_object_id": obj.get("id"),
            "previous_status": previous_status.value,
            "new_status": order.status.value,
        },
    )
    await db.commit()
    logger.info("Order %s paid via %s", order.order_number, event_type)

    try:
        await _send_confirmation_email(db, order)
    except Exception as e:
        logger.warning(
            "Failed to send confirmation email for order %s: %s",
            order.order_number,
            e,
        )
    if order.status != previous_status:
        await order_lifecycle.notify_order_status(db, order)


async def _handle_payment_failed(
    db: AsyncSession, order: Order, event_type: str
) -> None:
    if order.paid_at is not None or order.status not in CANCELLABLE_STATUSES:
        logger.info(
            "Ignoring %s for order %s in status %s",
            event_type,
            order.order_number,
            order.status.value,
        )
        return

    await order_lifecycle.add_timeline_event(
        db,
        order.id,
        TimelineEvent.PAYMENT_FAILED,
        title="Payment failed",
        description=f"Stripe reported {event_type}",
        metadata={"event": event_type},
    )
    await order_lifecycle.cancel_order(
        db,
        order.id,
        reason="Payment failed or expired",
        actor_type=ActorType.SYSTEM,
    )


@router.post("/stripe/webhook")
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
):
    """
    Stripe webhook endpoint (no auth; verified by Stripe-Signature).
    """
    raw = await request.body()
    signature = request.headers.get("stripe-signature")
    if not signature:
        raise HTTPException(status_code=400, detail="No signature")
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("STRIPE_WEBHOOK_SECRET is not set; rejecting webhook")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Webhook secret not configured",
        )
    if not verify_webhook_signature(raw, signature):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature"
        )

    try:
        event = json.loads(raw.decode("utf-8") or "{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")

    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    if event_type not in PAYMENT_SUCCEEDED_EVENTS + PAYMENT_FAILED_EVENTS:
        logger.debug("Unhandled Stripe event %s", event_type)
        return {"received": True}

    order = await _find_order(db, obj)
    if not order:
        logger.warning(
            "Webhook received for unknown order",
            extra={"extra_fields": {"event": event_type, "object_id": obj.get("id")}},
        )
        return {"received": True}

    if event_type in PAYMENT_SUCCEEDED_EVENTS:
        await _handle_payment_succeeded(db, order, event_type, obj)
    else:
        await _handle_payment_failed(db, order, event_type)

    return {"received": True}
