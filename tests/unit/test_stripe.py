"""Unit tests for Stripe webhook signatures and request encoding."""

import hashlib
import hmac
from decimal import Decimal
from types import SimpleNamespace

import pytest
from services.store_service import stripe_client
from services.store_service.routers.payments import payment_breakdown
from services.store_service.stripe_client import (
    _flatten_params,
    verify_webhook_signature,
)

SECRET = "whsec_test_secret"
PAYLOAD = b'{"type": "checkout.session.completed"}'
NOW = 1_760_000_000


def _sign(payload: bytes, timestamp: int, secret: str = SECRET) -> str:
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.mark.unit
def test_valid_signature():
    header = _sign(PAYLOAD, NOW)
    assert verify_webhook_signature(PAYLOAD, header, secret=SECRET, now=NOW)


@pytest.mark.unit
def test_tampered_payload_fails():
    header = _sign(PAYLOAD, NOW)
    assert not verify_webhook_signature(
        PAYLOAD + b" ", header, secret=SECRET, now=NOW
    )


@pytest.mark.unit
def test_wrong_secret_fails():
    header = _sign(PAYLOAD, NOW, secret="whsec_other")
    assert not verify_webhook_signature(PAYLOAD, header, secret=SECRET, now=NOW)


@pytest.mark.unit
def test_stale_timestamp_fails():
    header = _sign(PAYLOAD, NOW - 600)
    assert not verify_webhook_signature(
        PAYLOAD, header, secret=SECRET, tolerance=300, now=NOW
    )


@pytest.mark.unit
def test_any_matching_v1_signature_is_accepted():
    """Stripe sends several v1 entries while a secret is being rolled."""
    valid = _sign(PAYLOAD, NOW)
    header = f"t={NOW},v1=deadbeef,{valid.split(',')[1]}"
    assert verify_webhook_signature(PAYLOAD, header, secret=SECRET, now=NOW)


@pytest.mark.unit
@pytest.mark.parametrize("header", [None, "", "v1=abc", "t=notanumber,v1=abc"])
def test_malformed_headers_fail(header):
    assert not verify_webhook_signature(PAYLOAD, header, secret=SECRET, now=NOW)


@pytest.mark.unit
def test_missing_secret_fails(monkeypatch):
    monkeypatch.setattr(stripe_client.settings, "STRIPE_WEBHOOK_SECRET", None)
    header = _sign(PAYLOAD, NOW)
    assert not verify_webhook_signature(PAYLOAD, header, now=NOW)


@pytest.mark.unit
def test_flatten_params_uses_bracket_keys():
    flat = _flatten_params(
        {
            "mode": "payment",
            "metadata": {"order_id": "abc"},
            "line_items": [{"quantity": 2, "price_data": {"unit_amount": 5000}}],
            "automatic_payment_methods": {"enabled": True},
            "customer_email": None,
        }
    )

    assert flat == {
        "mode": "payment",
        "metadata[order_id]": "abc",
        "line_items[0][quantity]": 2,
        "line_items[0][price_data][unit_amount]": 5000,
        "automatic_payment_methods[enabled]": "true",
    }


@pytest.mark.unit
def test_payment_breakdown_adds_shipping_and_tax():
    """200 AED order: 10 AED flat shipping, 10% tax on the order total."""
    shipping, tax, due = payment_breakdown(SimpleNamespace(total=Decimal("200.00")))

    assert shipping == Decimal("10.00")
    assert tax == Decimal("20.00")
    assert due == Decimal("230.00")
