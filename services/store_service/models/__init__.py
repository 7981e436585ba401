"""Store Service models package."""

from services.store_service.models.aftersales import (
    OrderRefund,
    OrderReturn,
    OrderReturnItem,
)
from services.store_service.models.catalog import Brand, Category, Product
from services.store_service.models.commerce import (
    Address,
    Cart,
    CartItem,
    Order,
    OrderItem,
    OrderTimeline,
    StoreAuditLog,
)
from services.store_service.models.content import Banner
from services.store_service.models.engagement import ProductReview, WishlistItem
from services.store_service.models.enums import (
    CANCELLABLE_STATUSES,
    ActorType,
    AuditEntityType,
    BannerPosition,
    ItemCondition,
    OrderStatus,
    PromotionStatus,
    PromotionTargetType,
    PromotionType,
    RefundStatus,
    RefundType,
    ReturnStatus,
    TimelineEvent,
)
from services.store_service.models.promotions import Coupon, Promotion, PromotionUsage

__all__ = [
    "ActorType",
    "Address",
    "AuditEntityType",
    "Banner",
    "BannerPosition",
    "Brand",
    "CANCELLABLE_STATUSES",
    "Cart",
    "CartItem",
    "Category",
    "Coupon",
    "ItemCondition",
    "Order",
    "OrderItem",
    "OrderRefund",
    "OrderReturn",
    "OrderReturnItem",
    "OrderStatus",
    "OrderTimeline",
    "Product",
    "ProductReview",
    "Promotion",
    "PromotionStatus",
    "PromotionTargetType",
    "PromotionType",
    "PromotionUsage",
    "RefundStatus",
    "RefundType",
    "ReturnStatus",
    "StoreAuditLog",
    "TimelineEvent",
    "WishlistItem",
]
