"""Integration tests for the notification inbox, preferences and admin sends."""

import pytest
from services.accounts_service.models import AccountType
from tests.factories import NotificationFactory, UserFactory


@pytest.mark.asyncio
@pytest.mark.integration
async def test_inbox_read_and_delete(client, db_session, customer_user):
    first = NotificationFactory.create(customer_user.user_id)
    second = NotificationFactory.create(
        customer_user.user_id, title="Price Drop Alert", category="price_drop"
    )
    foreign = NotificationFactory.create("someone-else")
    db_session.add_all([first, second, foreign])
    await db_session.commit()

    response = await client.get("/api/notifications", params={"unreadOnly": "true"})
    assert response.status_code == 200
    assert response.json()["total"] == 2

    response = await client.post(f"/api/notifications/{first.id}/read")
    assert response.status_code == 200
    assert response.json()["read_at"] is not None

    response = await client.get("/api/notifications/stats")
    assert response.json()["unread"] == 1
    assert response.json()["by_category"] == {"order_shipped": 1, "price_drop": 1}

    response = await client.post("/api/notifications/read-all")
    assert response.json() == {"success": True, "updated": 1}

    response = await client.post(f"/api/notifications/{foreign.id}/read")
    assert response.status_code == 404
    assert response.json() == {"error": "Notification not found"}

    response = await client.delete(f"/api/notifications/{second.id}")
    assert response.status_code == 204

    response = await client.get("/api/notifications")
    assert [n["id"] for n in response.json()["notifications"]] == [str(first.id)]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_preferences_default_then_update(client):
    response = await client.get("/api/notifications/preferences")
    assert response.status_code == 200
    assert response.json()["promotional_offers"] is True
    assert response.json()["sms_notifications"] is False

    response = await client.put(
        "/api/notifications/preferences", json={"promotional_offers": False}
    )
    assert response.status_code == 200
    assert response.json()["promotional_offers"] is False
    assert response.json()["order_updates"] is True

    response = await client.get("/api/notifications/preferences")
    assert response.json()["promotional_offers"] is False


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_sends_to_segment(admin_client, db_session):
    business = UserFactory.create(account_type=AccountType.BUSINESS)
    individual = UserFactory.create()
    db_session.add_all([business, individual])
    await db_session.commit()

    response = await admin_client.post(
        "/api/admin/notifications",
        json={
            "payload": {"title": "Trade pricing", "body": "New B2B price list"},
            "target": {"segment": "business"},
            "options": {"category": "promotions", "priority": "high"},
        },
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["target_count"] == 1
    assert body["success"] is True

    response = await admin_client.get("/api/admin/notifications/stats")
    assert response.json()["by_category"] == {"promotions": 1}


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_send_errors(admin_client):
    response = await admin_client.post(
        "/api/admin/notifications",
        json={
            "payload": {"title": "Hello", "body": "World"},
            "target": {"segment": "nobody"},
        },
    )
    assert response.status_code == 400
    assert response.json() == {"error": "No target users found"}

    response = await admin_client.post(
        "/api/admin/notifications",
        json={
            "payload": {"title": "Hello", "body": "World"},
            "target": {"user_id": "a", "all": True},
        },
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_customers_cannot_broadcast(client):
    response = await client.post(
        "/api/admin/notifications",
        json={
            "payload": {"title": "Hello", "body": "World"},
            "target": {"all": True},
        },
    )

    assert response.status_code == 403
