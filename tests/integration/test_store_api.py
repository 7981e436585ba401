"""Integration tests for the storefront and admin store endpoints."""

import hashlib
import hmac
import json
import time
from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from services.communications_service.models import Notification
from services.gateway_service.app.main import app
from services.store_service.models import Banner, Order, OrderStatus
from sqlalchemy import select
from tests.conftest import make_admin_user, make_customer_user, override_auth
from tests.factories import (
    BannerFactory,
    CategoryFactory,
    CouponFactory,
    OrderFactory,
    ProductFactory,
    PromotionFactory,
    ReviewFactory,
)

SHIPPING = {
    "address": "12 Al Wasl Road",
    "city": "Dubai",
    "state": "Dubai",
    "zip_code": "00000",
    "country": "AE",
}


async def _products(db, *prices, stock=10):
    category = CategoryFactory.create()
    db.add(category)
    products = [
        ProductFactory.create(category.id, price=Decimal(price), stock=stock)
        for price in prices
    ]
    db.add_all(products)
    await db.commit()
    return products


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_and_read_it_back(client, db_session, customer_user):
    lamp, mirror = await _products(db_session, "100.00", "50.00", stock=5)
    # A live automatic promotion must not change what the customer submitted
    db_session.add(PromotionFactory.create(discount_value=Decimal("10")))
    await db_session.commit()

    response = await client.post(
        "/api/orders",
        json={
            "items": [
                {"product_id": str(lamp.id), "quantity": 1, "price": "100.00"},
                {"product_id": str(mirror.id), "quantity": 2, "price": "50.00"},
            ],
            "shipping_info": SHIPPING,
            "total": "200.00",
        },
    )

    assert response.status_code == 201, response.text
    created = response.json()
    assert created["order_number"].startswith("NO")

    response = await client.get(f"/api/orders/{created['order_id']}")
    assert response.status_code == 200
    order = response.json()
    assert order["user_id"] == customer_user.user_id
    assert order["status"] == "pending"
    assert Decimal(order["total"]) == Decimal("200.00")
    assert len(order["items"]) == 2
    assert order["address"]["city"] == "Dubai"
    assert [event["event"] for event in order["timeline"]] == ["order_placed"]

    await db_session.refresh(lamp)
    await db_session.refresh(mirror)
    assert lamp.stock == 4
    assert mirror.stock == 3


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_accepts_short_address_fields(client, db_session):
    (product,) = await _products(db_session, "80.00")

    response = await client.post(
        "/api/orders",
        json={
            "items": [{"product_id": str(product.id), "quantity": 1, "price": "75.00"}],
            "shipping_info": {
                "address": "1",
                "city": "X",
                "state": "D",
                "zip_code": "0",
                "country": "A",
            },
            "total": "75.00",
        },
    )

    assert response.status_code == 201, response.text


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_order_body_returns_details(client):
    response = await client.post("/api/orders", json={"items": []})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert {detail["field"] for detail in body["details"]} >= {
        "items",
        "shipping_info",
        "total",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_orders_require_authentication(anon_client):
    response = await anon_client.get("/api/orders")

    assert response.status_code == 401
    assert "error" in response.json()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_customers_order_is_hidden(client, db_session):
    (product,) = await _products(db_session, "50.00")
    order = OrderFactory.create("someone-else", items=[(product, 1)])
    db_session.add(order)
    await db_session.commit()

    response = await client.get(f"/api/orders/{order.id}")

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_return_request_and_admin_review(anon_client, db_session):
    customer = make_customer_user()
    (product,) = await _products(db_session, "50.00")
    order = OrderFactory.create(
        customer.user_id, items=[(product, 2)], status=OrderStatus.DELIVERED
    )
    db_session.add(order)
    await db_session.commit()

    with override_auth(app, customer):
        response = await anon_client.post(
            f"/api/orders/{order.id}/returns",
            json={
                "items": [
                    {
                        "order_item_id": str(order.items[0].id),
                        "quantity": 1,
                        "condition": "damaged",
                    }
                ],
                "reason": "Cracked glass shade",
            },
        )
    assert response.status_code == 201, response.text
    order_return = response.json()
    assert order_return["status"] == "requested"

    with override_auth(app, make_admin_user()):
        response = await anon_client.post(
            f"/api/admin/orders/{order.id}/returns/{order_return['id']}/review",
            json={"approved": True, "review_notes": "Courier pickup booked"},
        )
    assert response.status_code == 200
    assert response.json()["status"] == "approved"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_return_outside_window_is_rejected(client, db_session, customer_user):
    (product,) = await _products(db_session, "50.00")
    order = OrderFactory.create(
        customer_user.user_id,
        items=[(product, 1)],
        status=OrderStatus.DELIVERED,
        created_at=utc_now() - timedelta(days=45),
    )
    db_session.add(order)
    await db_session.commit()

    response = await client.post(
        f"/api/orders/{order.id}/returns",
        json={
            "items": [{"order_item_id": str(order.items[0].id), "quantity": 1}],
            "reason": "Changed my mind",
        },
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("Return window has expired")


# ---------------------------------------------------------------------------
# Admin orders
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customer_cannot_use_admin_endpoints(client):
    response = await client.get("/api/admin/orders")

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_ships_cancels_and_refunds(admin_client, db_session):
    products = await _products(db_session, "60.00", "40.00", stock=5)
    shipped = OrderFactory.create("customer-a", items=[(products[0], 1)])
    cancelled = OrderFactory.create("customer-b", items=[(products[1], 2)])
    db_session.add_all([shipped, cancelled])
    await db_session.commit()

    response = await admin_client.put(
        f"/api/admin/orders/{shipped.id}",
        json={
            "status": "shipped",
            "notes": "Aramex AWB 4411",
            "tracking_number": "4411",
        },
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "shipped"
    assert body["tracking_number"] == "4411"
    assert [event["event"] for event in body["timeline"]] == [
        "status_changed",
        "note_added",
    ]

    response = await admin_client.put(
        f"/api/admin/orders/{shipped.id}", json={"status": "shipped"}
    )
    assert response.status_code == 400

    response = await admin_client.post(
        f"/api/admin/orders/{cancelled.id}/cancel",
        json={"reason": "Out of delivery area"},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    await db_session.refresh(products[1])
    assert products[1].stock == 7

    response = await admin_client.post(
        f"/api/admin/orders/{shipped.id}/refunds",
        json={"amount": "60.00", "type": "full", "reason": "Lost in transit"},
    )
    assert response.status_code == 201
    assert response.json()["refund_number"].startswith("REF-")

    response = await admin_client.post(
        f"/api/admin/orders/{shipped.id}/refunds",
        json={"amount": "0.01", "type": "partial", "reason": "Goodwill"},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_order_list_filters_by_status(admin_client, db_session):
    (product,) = await _products(db_session, "25.00")
    db_session.add_all(
        [
            OrderFactory.create("c-1", items=[(product, 1)]),
            OrderFactory.create(
                "c-2", items=[(product, 1)], status=OrderStatus.DELIVERED
            ),
        ]
    )
    await db_session.commit()

    response = await admin_client.get("/api/admin/orders", params={"status": "delivered"})

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["user_id"] == "c-2"


# ---------------------------------------------------------------------------
# Banners
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_taken_display_order_moves_to_end(admin_client, db_session):
    db_session.add(BannerFactory.create(display_order=1))
    await db_session.commit()

    response = await admin_client.post(
        "/api/admin/banners",
        json={
            "title": "National Day",
            "image_url": "https://cdn.noor.ae/banners/national-day.jpg",
            "position": "hero",
            "display_order": 1,
        },
    )

    assert response.status_code == 201, response.text
    assert response.json()["display_order"] == 2

    response = await admin_client.get("/api/admin/banners")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert body["analytics"]["active_banners"] == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_inactive_banner_still_moves_off_taken_order(admin_client, db_session):
    db_session.add(BannerFactory.create(display_order=1))
    await db_session.commit()

    response = await admin_client.post(
        "/api/admin/banners",
        json={
            "title": "Eid Preview",
            "image_url": "https://cdn.noor.ae/banners/eid.jpg",
            "position": "hero",
            "display_order": 1,
            "is_active": False,
        },
    )

    assert response.status_code == 201, response.text
    assert response.json()["display_order"] == 2
    assert response.json()["is_active"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_taken_display_order_can_pass_one_hundred(admin_client, db_session):
    db_session.add_all(
        [
            BannerFactory.create(display_order=1),
            BannerFactory.create(display_order=100, title="Summer Sale"),
        ]
    )
    await db_session.commit()

    response = await admin_client.post(
        "/api/admin/banners",
        json={
            "title": "White Friday",
            "image_url": "https://cdn.noor.ae/banners/white-friday.jpg",
            "position": "hero",
            "display_order": 1,
        },
    )

    assert response.status_code == 201, response.text
    assert response.json()["display_order"] == 101


@pytest.mark.asyncio
@pytest.mark.integration
async def test_public_banners_count_impressions_and_clicks(anon_client, db_session):
    live = BannerFactory.create()
    expired = BannerFactory.create(
        display_order=2, end_date=utc_now() - timedelta(days=1)
    )
    hidden = BannerFactory.create(display_order=3, is_active=False)
    db_session.add_all([live, expired, hidden])
    await db_session.commit()

    response = await anon_client.get("/api/banners")
    assert response.status_code == 200
    assert [banner["id"] for banner in response.json()] == [str(live.id)]

    response = await anon_client.post(f"/api/banners/{live.id}/click")
    assert response.json() == {"success": True, "link_url": live.link_url}

    response = await anon_client.post(f"/api/banners/{hidden.id}/click")
    assert response.status_code == 404

    result = await db_session.execute(
        select(Banner.impressions, Banner.click_count).where(Banner.id == live.id)
    )
    assert result.one() == (1, 1)


# ---------------------------------------------------------------------------
# Promotions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expired_coupon_is_reported_not_raised(client, db_session):
    promotion = PromotionFactory.create()
    db_session.add(promotion)
    await db_session.commit()
    db_session.add(
        CouponFactory.create(
            promotion.id, code="SUMMER", end_date=utc_now() - timedelta(days=3)
        )
    )
    await db_session.commit()

    response = await client.post("/api/promotions/validate", json={"code": "SUMMER"})

    assert response.status_code == 200
    assert response.json() == {
        "valid": False,
        "message": "This coupon has expired",
        "promotion": None,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_calculate_applies_coupon(client, db_session):
    (product,) = await _products(db_session, "250.00")
    promotion = PromotionFactory.create(discount_value=Decimal("20"))
    db_session.add(promotion)
    await db_session.commit()
    db_session.add(CouponFactory.create(promotion.id, code="EID20"))
    await db_session.commit()

    response = await client.post(
        "/api/promotions/calculate",
        json={
            "items": [
                {"product_id": str(product.id), "quantity": 1, "price": "250.00"}
            ],
            "applied_coupons": ["EID20"],
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["total_discount"]) == Decimal("50.00")
    # Subtotal clears the free-shipping threshold; tax is on 200
    assert Decimal(body["shipping_cost"]) == Decimal("0.00")
    assert Decimal(body["total"]) == Decimal("220.00")


# ---------------------------------------------------------------------------
# Stripe webhook
# ---------------------------------------------------------------------------


def _signed_headers(payload: bytes) -> dict:
    timestamp = int(time.time())
    secret = get_settings().STRIPE_WEBHOOK_SECRET
    digest = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.".encode("utf-8") + payload,
        hashlib.sha256,
    ).hexdigest()
    return {
        "Stripe-Signature": f"t={timestamp},v1={digest}",
        "Content-Type": "application/json",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_rejects_bad_signature(anon_client):
    response = await anon_client.post(
        "/api/stripe/webhook",
        content=b"{}",
        headers={"Stripe-Signature": "t=1,v1=bad"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid signature"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_checkout_completed_confirms_order(anon_client, db_session):
    (product,) = await _products(db_session, "150.00")
    order = OrderFactory.create("customer-paid", items=[(product, 1)])
    db_session.add(order)
    await db_session.commit()

    payload = json.dumps(
        {
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_test_123",
                    "client_reference_id": str(order.id),
                    "payment_intent": "pi_test_123",
                }
            },
        }
    ).encode("utf-8")

    response = await anon_client.post(
        "/api/stripe/webhook", content=payload, headers=_signed_headers(payload)
    )
    assert response.status_code == 200
    assert response.json() == {"received": True}

    # A replay is acknowledged but changes nothing
    response = await anon_client.post(
        "/api/stripe/webhook", content=payload, headers=_signed_headers(payload)
    )
    assert response.status_code == 200

    refreshed = (
        await db_session.execute(
            select(Order)
            .where(Order.id == order.id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    assert refreshed.status == OrderStatus.CONFIRMED
    assert refreshed.paid_at is not None
    assert refreshed.stripe_payment_id == "pi_test_123"

    notifications = (
        await db_session.execute(
            select(Notification).where(Notification.user_id == "customer-paid")
        )
    ).scalars().all()
    assert [n.title for n in notifications] == ["Order Confirmed"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_expired_session_cancels_and_restocks(anon_client, db_session):
    (product,) = await _products(db_session, "30.00", stock=4)
    order = OrderFactory.create("customer-late", items=[(product, 2)])
    db_session.add(order)
    await db_session.commit()

    payload = json.dumps(
        {
            "type": "checkout.session.expired",
            "data": {"object": {"id": "cs_x", "metadata": {"order_id": str(order.id)}}},
        }
    ).encode("utf-8")

    response = await anon_client.post(
        "/api/stripe/webhook", content=payload, headers=_signed_headers(payload)
    )

    assert response.status_code == 200
    await db_session.refresh(order)
    await db_session.refresh(product)
    assert order.status == OrderStatus.CANCELLED
    assert product.stock == 6


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_fails_closed_without_secret(anon_client, monkeypatch):
    monkeypatch.setattr(get_settings(), "STRIPE_WEBHOOK_SECRET", None)
    payload = b'{"type": "payment_intent.succeeded"}'

    response = await anon_client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"Stripe-Signature": "t=1,v1=abc"},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Webhook secret not configured"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_webhook_requires_signature_header(anon_client):
    response = await anon_client.post("/api/stripe/webhook", content=b"{}")

    assert response.status_code == 400
    assert response.json() == {"error": "No signature"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_payment_unavailable_without_stripe_key(
    client, db_session, customer_user, monkeypatch
):
    monkeypatch.setattr(get_settings(), "STRIPE_SECRET_KEY", None)
    (product,) = await _products(db_session, "40.00")
    order = OrderFactory.create(customer_user.user_id, items=[(product, 1)])
    db_session.add(order)
    await db_session.commit()

    response = await client.post("/api/payment", json={"order_id": str(order.id)})

    assert response.status_code == 503
    assert response.json() == {"error": "Payment service unavailable"}
    await db_session.refresh(order)
    assert order.stripe_payment_id is None


# ---------------------------------------------------------------------------
# Reviews and wishlist
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_review_once_per_product(client, db_session, customer_user):
    (product,) = await _products(db_session, "120.00")
    db_session.add(ReviewFactory.create(product.id, rating=2))
    await db_session.commit()

    response = await client.post(
        f"/api/products/{product.id}/reviews",
        json={"rating": 5, "comment": "  Stunning brass work  "},
    )
    assert response.status_code == 201, response.text
    review = response.json()
    assert review["user_id"] == customer_user.user_id
    assert review["comment"] == "Stunning brass work"

    response = await client.post(
        f"/api/products/{product.id}/reviews", json={"rating": 4}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "You have already reviewed this product"}

    response = await client.get(f"/api/products/{product.id}/reviews")
    assert response.status_code == 200
    body = response.json()
    assert body["total_reviews"] == 2
    assert body["average_rating"] == 3.5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_review_rating_must_be_one_to_five(client, db_session):
    (product,) = await _products(db_session, "120.00")

    response = await client.post(
        f"/api/products/{product.id}/reviews", json={"rating": 6}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_wishlist_add_list_and_remove(client, db_session):
    lamp, mirror = await _products(db_session, "100.00", "50.00")

    for product in (lamp, mirror):
        response = await client.post(
            "/api/wishlist", json={"product_id": str(product.id)}
        )
        assert response.status_code == 201, response.text

    response = await client.post("/api/wishlist", json={"product_id": str(lamp.id)})
    assert response.status_code == 400
    assert response.json() == {"error": "Product already in wishlist"}

    response = await client.get("/api/wishlist")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert {item["product"]["id"] for item in body["items"]} == {
        str(lamp.id),
        str(mirror.id),
    }

    response = await client.delete(f"/api/wishlist/{lamp.id}")
    assert response.status_code == 200
    response = await client.delete(f"/api/wishlist/{lamp.id}")
    assert response.status_code == 404
    assert response.json() == {"error": "Item not found in wishlist"}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_wishlist_requires_authentication(anon_client):
    response = await anon_client.get("/api/wishlist")

    assert response.status_code == 401


# ---------------------------------------------------------------------------
# Filters and category analytics
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_filters_route(anon_client, db_session):
    await _products(db_session, "45.00", "320.00")

    response = await anon_client.get("/api/products/filters")

    assert response.status_code == 200, response.text
    body = response.json()
    assert [category["count"] for category in body["categories"]] == [2]
    assert Decimal(body["price_range"]["min"]) == Decimal("45.00")
    assert Decimal(body["price_range"]["max"]) == Decimal("320.00")
    assert body["availability"] == {"in_stock": 2, "out_of_stock": 0, "total": 2}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_category_analytics_is_admin_only(anon_client, db_session):
    (product,) = await _products(db_session, "60.00")
    db_session.add(
        OrderFactory.create(
            "customer-a", items=[(product, 3)], status=OrderStatus.DELIVERED
        )
    )
    await db_session.commit()

    with override_auth(app, make_customer_user()):
        response = await anon_client.get("/api/admin/analytics/categories")
    assert response.status_code == 403

    with override_auth(app, make_admin_user()):
        response = await anon_client.get("/api/admin/analytics/categories")
    assert response.status_code == 200
    (row,) = response.json()
    assert Decimal(row["revenue"]) == Decimal("180.00")
    assert row["units_sold"] == 3
    assert row["percentage"] == 100.0
