"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURN_REQUESTED = "return_requested"
    RETURN_APPROVED = "return_approved"
    RETURN_REJECTED = "return_rejected"
    RETURNED = "returned"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


CANCELLABLE_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
)


class TimelineEvent(str, enum.Enum):
    ORDER_PLACED = "order_placed"
    STATUS_CHANGED = "status_changed"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_FAILED = "payment_failed"
    ORDER_CANCELLED = "order_cancelled"
    RETURN_REQUESTED = "return_requested"
    RETURN_APPROVED = "return_approved"
    RETURN_REJECTED = "return_rejected"
    REFUND_INITIATED = "refund_initiated"
    NOTE_ADDED = "note_added"


class ActorType(str, enum.Enum):
    SYSTEM = "system"
    ADMIN = "admin"
    CUSTOMER = "customer"


class ReturnStatus(str, enum.Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"


class ItemCondition(str, enum.Enum):
    UNOPENED = "unopened"
    LIKE_NEW = "like_new"
    USED = "used"
    DAMAGED = "damaged"
    DEFECTIVE = "defective"


class RefundType(str, enum.Enum):
    FULL = "full"
    PARTIAL = "partial"
    SHIPPING_ONLY = "shipping_only"
    TAX_ONLY = "tax_only"


class RefundStatus(str, enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class BannerPosition(str, enum.Enum):
    HERO = "hero"
    SECONDARY = "secondary"
    SIDEBAR = "sidebar"
    FOOTER = "footer"


class PromotionType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    FREE_SHIPPING = "free_shipping"
    BUY_X_GET_Y = "buy_x_get_y"
    BULK_DISCOUNT = "bulk_discount"


class PromotionTargetType(str, enum.Enum):
    ALL_PRODUCTS = "all_products"
    SPECIFIC_PRODUCT = "specific_product"
    PRODUCT_CATEGORY = "product_category"
    FIRST_ORDER = "first_order"
    BULK_ORDER = "bulk_order"


class PromotionStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    EXPIRED = "expired"


class AuditEntityType(str, enum.Enum):
    PRODUCT = "product"
    ORDER = "order"
    CATEGORY = "category"
    BRAND = "brand"
    BANNER = "banner"
    PROMOTION = "promotion"
