"""
Stripe API client for payment intents, checkout sessions and webhooks.

Provides async methods for:
- Creating payment intents
- Creating hosted checkout sessions

and a helper that verifies the ``Stripe-Signature`` header of webhooks.
"""

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

settings = get_settings()


@dataclass
class PaymentIntent:
    """Stripe payment intent."""

    id: str
    client_secret: str
    amount: int  # in fils
    currency: str
    status: str


@dataclass
class CheckoutSession:
    """Stripe hosted checkout session."""

    id: str
    url: Optional[str]
    payment_status: str
    payment_intent: Optional[str] = None


class StripeError(Exception):
    """Base exception for Stripe API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


def _flatten_params(data: dict, prefix: str = "") -> dict:
    """Flatten nested dicts/lists into Stripe's bracketed form keys."""
    flat = {}
    for key, value in data.items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if isinstance(value, dict):
            flat.update(_flatten_params(value, name))
        elif isinstance(value, (list, tuple)):
            for index, entry in enumerate(value):
                entry_name = f"{name}[{index}]"
                if isinstance(entry, dict):
                    flat.update(_flatten_params(entry, entry_name))
                else:
                    flat[entry_name] = entry
        elif isinstance(value, bool):
            flat[name] = "true" if value else "false"
        elif value is not None:
            flat[name] = value
    return flat


class StripeClient:
    """Async client for the Stripe REST API."""

    def __init__(self, secret_key: str = None, base_url: str = None):
        self.secret_key = secret_key or settings.STRIPE_SECRET_KEY
        if not self.secret_key:
            raise ValueError("STRIPE_SECRET_KEY is required")
        self.base_url = (base_url or settings.STRIPE_API_BASE).rstrip("/")
        self._headers = {"Authorization": f"Bearer {self.secret_key}"}

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: dict = None,
        idempotency_key: str = None,
    ) -> dict:
        """Make an async, form-encoded request to the Stripe API."""
        url = f"{self.base_url}{endpoint}"
        headers = dict(self._headers)
        if idempotency_key:
            headers["Idempotency-Key"] = idempotency_key

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.request(
                method=method,
                url=url,
                headers=headers,
                data=_flatten_params(data) if data else None,
            )

            body = response.json()

            if not response.is_success:
                error = body.get("error") or {}
                logger.error(
                    "Stripe API error: %s - %s", response.status_code, error
                )
                raise StripeError(
                    message=error.get("message", "Unknown Stripe error"),
                    status_code=response.status_code,
                    response_data=body,
                )

            return body

    # =========================================================================
    # Payment Intents
    # =========================================================================

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict = None,
        idempotency_key: str = None,
    ) -> PaymentIntent:
        """
        Create a payment intent.

        Args:
            amount: Amount in the smallest currency unit (fils for AED)
            currency: ISO currency code, lower-case
            metadata: Stored on the intent and echoed back in webhooks
        """
        data = await self._request(
            "POST",
            "/payment_intents",
            data={
                "amount": amount,
                "currency": currency,
                "automatic_payment_methods": {"enabled": True},
                "metadata": metadata or {},
            },
            idempotency_key=idempotency_key,
        )
        return PaymentIntent(
            id=data["id"],
            client_secret=data.get("client_secret", ""),
            amount=data.get("amount", amount),
            currency=data.get("currency", currency),
            status=data.get("status", ""),
        )

    # =========================================================================
    # Checkout Sessions
    # =========================================================================

    async def create_checkout_session(
        self,
        line_items: list[dict],
        success_url: str,
        cancel_url: str,
        customer_email: str = None,
        metadata: dict = None,
        client_reference_id: str = None,
    ) -> CheckoutSession:
        """
        Create a hosted checkout session.

        ``line_items`` use Stripe's ``price_data`` shape with amounts in fils.
        """
        data = await self._request(
            "POST",
            "/checkout/sessions",
            data={
                "mode": "payment",
                "line_items": line_items,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "customer_email": customer_email,
                "client_reference_id": client_reference_id,
                "metadata": metadata or {},
                "payment_intent_data": {"metadata": metadata or {}},
            },
        )
        return CheckoutSession(
            id=data["id"],
            url=data.get("url"),
            payment_status=data.get("payment_status", "unpaid"),
            payment_intent=data.get("payment_intent"),
        )


def verify_webhook_signature(
    payload: bytes,
    signature_header: Optional[str],
    secret: str = None,
    tolerance: int = None,
    now: Optional[int] = None,
) -> bool:
    """Check a ``Stripe-Signature`` header (``t=...,v1=...``) against the payload.

    The expected signature is HMAC-SHA256 of ``"{t}.{payload}"`` keyed with
    the endpoint secret; timestamps older than ``tolerance`` seconds fail.
    """
    secret = secret or settings.STRIPE_WEBHOOK_SECRET
    if not signature_header or not secret:
        return False
    tolerance = (
        settings.STRIPE_WEBHOOK_TOLERANCE_SECONDS if tolerance is None else tolerance
    )

    timestamp = None
    signatures = []
    for part in signature_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)
    if not timestamp or not signatures or not timestamp.isdigit():
        return False

    current = int(time.time()) if now is None else now
    if tolerance and abs(current - int(timestamp)) > tolerance:
        return False

    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    expected = hmac.new(
        secret.encode("utf-8"), signed_payload, hashlib.sha256
    ).hexdigest()
    return any(hmac.compare_digest(expected, candidate) for candidate in signatures)


def get_stripe_client() -> StripeClient:
    """Get a StripeClient instance."""
    return StripeClient()
