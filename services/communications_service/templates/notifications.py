"""
In-app notification templates.

Each template carries the push payload fields plus the preference switch
that gates it (``None`` means the notification is always delivered).
Titles and bodies use ``{name}`` placeholders filled by ``render_text``.
"""

import re
from typing import Any, Optional

TITLE_MAX_LENGTH = 100
BODY_MAX_LENGTH = 300

_PLACEHOLDER = re.compile(r"\{(\w+)\}")

NOTIFICATION_TEMPLATES: dict[str, dict[str, Any]] = {
    # Orders
    "ORDER_CONFIRMED": {
        "title": "Order Confirmed",
        "body": "Your order #{order_number} has been confirmed and is being processed.",
        "icon": "/icons/order-confirmed.png",
        "tag": "order-update",
        "data": {"type": "order", "action": "confirmed"},
        "preference": "order_updates",
    },
    "ORDER_SHIPPED": {
        "title": "Order Shipped",
        "body": "Your order #{order_number} has been shipped and is on its way!",
        "icon": "/icons/order-shipped.png",
        "tag": "order-update",
        "data": {"type": "order", "action": "shipped"},
        "preference": "order_updates",
    },
    "ORDER_DELIVERED": {
        "title": "Order Delivered",
        "body": (
            "Your order #{order_number} has been delivered. "
            "Thank you for shopping with us!"
        ),
        "icon": "/icons/order-delivered.png",
        "tag": "order-update",
        "data": {"type": "order", "action": "delivered"},
        "preference": "order_updates",
    },
    "ORDER_CANCELLED": {
        "title": "Order Cancelled",
        "body": (
            "Your order #{order_number} has been cancelled. "
            "Any payment will be refunded within 3-5 business days."
        ),
        "icon": "/icons/order-cancelled.png",
        "tag": "order-update",
        "data": {"type": "order", "action": "cancelled"},
        "preference": "order_updates",
    },
    # Account
    "ACCOUNT_VERIFIED": {
        "title": "Account Verified",
        "body": "Congratulations! Your account has been successfully verified.",
        "icon": "/icons/account-verified.png",
        "tag": "account-update",
        "data": {"type": "account", "action": "verified"},
        "preference": None,
    },
    "KYC_APPROVED": {
        "title": "Verification Approved",
        "body": (
            "Your identity verification has been approved. "
            "You now have full access to all features."
        ),
        "icon": "/icons/kyc-approved.png",
        "tag": "account-update",
        "data": {"type": "kyc", "action": "approved"},
        "preference": None,
    },
    "KYC_REJECTED": {
        "title": "Verification Requires Attention",
        "body": "Your identity verification needs additional information: {reason}",
        "icon": "/icons/kyc-rejected.png",
        "tag": "account-update",
        "require_interaction": True,
        "data": {"type": "kyc", "action": "rejected"},
        "preference": None,
    },
    # Promotions
    "SALE_ANNOUNCEMENT": {
        "title": "Special Sale Alert!",
        "body": (
            "Don't miss out on our limited-time sale with up to 50% off "
            "selected items."
        ),
        "icon": "/icons/sale.png",
        "image": "/images/sale-banner.jpg",
        "tag": "promotion",
        "actions": [
            {"action": "view-sale", "title": "Shop Now", "icon": "/icons/shop.png"},
            {"action": "dismiss", "title": "Dismiss"},
        ],
        "data": {"type": "promotion", "action": "sale"},
        "preference": "promotional_offers",
    },
    "NEW_PRODUCT": {
        "title": "New Products Available",
        "body": (
            "Check out our latest collection of premium lighting and "
            "bathroom fixtures."
        ),
        "icon": "/icons/new-product.png",
        "tag": "product-update",
        "data": {"type": "product", "action": "new-arrival"},
        "preference": "promotional_offers",
    },
    "PRICE_DROP": {
        "title": "Price Drop Alert",
        "body": "Great news! The price of {product_name} has dropped by {discount}%.",
        "icon": "/icons/price-drop.png",
        "tag": "price-alert",
        "data": {"type": "product", "action": "price-drop"},
        "preference": "price_alerts",
    },
    # Reminders
    "CART_ABANDONMENT": {
        "title": "Don't Forget Your Cart",
        "body": (
            "You have {item_count} item(s) waiting in your cart. "
            "Complete your purchase now!"
        ),
        "icon": "/icons/cart-reminder.png",
        "tag": "cart-reminder",
        "actions": [
            {"action": "view-cart", "title": "View Cart", "icon": "/icons/cart.png"},
            {"action": "dismiss", "title": "Dismiss"},
        ],
        "data": {"type": "reminder", "action": "cart-abandonment"},
        "preference": "promotional_offers",
    },
    "WISHLIST_REMINDER": {
        "title": "Wishlist Items on Sale",
        "body": "Some items in your wishlist are now on sale. Don't miss out!",
        "icon": "/icons/wishlist.png",
        "tag": "wishlist-reminder",
        "data": {"type": "reminder", "action": "wishlist-sale"},
        "preference": "promotional_offers",
    },
    # System
    "MAINTENANCE_NOTICE": {
        "title": "Scheduled Maintenance",
        "body": (
            "Our website will be under maintenance from {start_time} to "
            "{end_time}. We apologize for any inconvenience."
        ),
        "icon": "/icons/maintenance.png",
        "tag": "system-notice",
        "require_interaction": True,
        "data": {"type": "system", "action": "maintenance"},
        "preference": "system_notifications",
    },
    "SECURITY_ALERT": {
        "title": "Security Alert",
        "body": (
            "We detected a new login to your account. If this wasn't you, "
            "please secure your account immediately."
        ),
        "icon": "/icons/security-alert.png",
        "tag": "security-alert",
        "require_interaction": True,
        "actions": [
            {
                "action": "secure-account",
                "title": "Secure Account",
                "icon": "/icons/security.png",
            },
            {"action": "ignore", "title": "This was me"},
        ],
        "data": {"type": "security", "action": "login-alert"},
        "preference": "security_alerts",
    },
}


def render_text(text: str, variables: Optional[dict[str, Any]] = None) -> str:
    """Fill ``{name}`` placeholders. Unknown or empty values leave the placeholder."""
    variables = variables or {}

    def _replace(match: re.Match) -> str:
        value = variables.get(match.group(1))
        if value is None or value == "":
            return match.group(0)
        return str(value)

    return _PLACEHOLDER.sub(_replace, text)


def build_payload(
    template_key: str, variables: Optional[dict[str, Any]] = None
) -> dict[str, Any]:
    """Render a template into notification fields.

    Raises KeyError for an unknown template key.
    """
    template = NOTIFICATION_TEMPLATES[template_key]
    variables = variables or {}
    return {
        "title": render_text(template["title"], variables)[:TITLE_MAX_LENGTH],
        "body": render_text(template["body"], variables)[:BODY_MAX_LENGTH],
        "icon": template.get("icon"),
        "image": template.get("image"),
        "tag": template.get("tag"),
        "actions": list(template.get("actions", [])),
        "require_interaction": template.get("require_interaction", False),
        "data": {
            **template.get("data", {}),
            "template": template_key,
            "variables": variables,
        },
    }
