"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from services.store_service.models import (
    ActorType,
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

MAX_PRICE = Decimal("1000000")

# ============================================================================
# CATEGORY SCHEMAS
# ============================================================================


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=512)
    parent_id: Optional[uuid.UUID] = None
    sort_order: int = 0
    is_active: bool = True


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(
        None, min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$"
    )
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=512)
    parent_id: Optional[uuid.UUID] = None
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(CategoryBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class CategoryWithChildren(CategoryResponse):
    children: list["CategoryWithChildren"] = []


# ============================================================================
# BRAND SCHEMAS
# ============================================================================


class BrandBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=512)
    website: Optional[str] = Field(None, max_length=512)
    is_active: bool = True


class BrandCreate(BrandBase):
    pass


class BrandUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=512)
    website: Optional[str] = Field(None, max_length=512)
    is_active: Optional[bool] = None


class BrandResponse(BrandBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9-]+$")
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0, le=MAX_PRICE)
    compare_at_price: Optional[Decimal] = Field(None, gt=0, le=MAX_PRICE)
    stock: int = Field(0, ge=0)
    images: list[str] = Field(default_factory=list, max_length=10)
    category_id: uuid.UUID
    brand_id: Optional[uuid.UUID] = None
    is_active: bool = True
    is_featured: bool = False


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(
        None, min_length=1, max_length=255, pattern=r"^[a-z0-9-]+$"
    )
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0, le=MAX_PRICE)
    compare_at_price: Optional[Decimal] = Field(None, gt=0, le=MAX_PRICE)
    stock: Optional[int] = Field(None, ge=0)
    images: Optional[list[str]] = Field(None, max_length=10)
    category_id: Optional[uuid.UUID] = None
    brand_id: Optional[uuid.UUID] = None
    is_active: Optional[bool] = None
    is_featured: Optional[bool] = None


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    """Paginated product list."""

    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class CategoryFacet(BaseModel):
    id: uuid.UUID
    name: str
    count: int


class BrandFacet(BaseModel):
    id: uuid.UUID
    name: str
    count: int


class PriceRange(BaseModel):
    min: Decimal
    max: Decimal


class RatingFacet(BaseModel):
    stars: int
    count: int


class AvailabilityFacet(BaseModel):
    in_stock: int
    out_of_stock: int
    total: int


class ProductFiltersResponse(BaseModel):
    """Filter options for the product listing, with product counts."""

    categories: list[CategoryFacet]
    brands: list[BrandFacet]
    price_range: PriceRange
    ratings: list[RatingFacet]
    availability: AvailabilityFacet


# ============================================================================
# REVIEW SCHEMAS
# ============================================================================


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)

    @field_validator("comment")
    @classmethod
    def blank_comment_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    user_id: str
    reviewer_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    created_at: datetime


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]
    average_rating: float
    total_reviews: int


# ============================================================================
# WISHLIST SCHEMAS
# ============================================================================


class WishlistAdd(BaseModel):
    product_id: uuid.UUID


class WishlistItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    product: ProductResponse
    created_at: datetime


class WishlistResponse(BaseModel):
    items: list[WishlistItemResponse]
    total: int


# ============================================================================
# BANNER SCHEMAS
# ============================================================================


class BannerBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    image_url: str = Field(..., min_length=1, max_length=512)
    link_url: Optional[str] = Field(None, max_length=512)
    link_text: Optional[str] = Field(None, max_length=50)
    position: BannerPosition = BannerPosition.HERO
    display_order: int = Field(1, ge=1, le=100)
    is_active: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def check_date_window(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class BannerCreate(BannerBase):
    pass


class BannerUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    image_url: Optional[str] = Field(None, min_length=1, max_length=512)
    link_url: Optional[str] = Field(None, max_length=512)
    link_text: Optional[str] = Field(None, max_length=50)
    position: Optional[BannerPosition] = None
    display_order: Optional[int] = Field(None, ge=1, le=100)
    is_active: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class BannerResponse(BannerBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    # Collisions on create can push the order past the input range
    display_order: int
    click_count: int
    impressions: int
    click_through_rate: float
    created_by: Optional[str]
    created_at: datetime
    updated_at: datetime


class BannerAnalytics(BaseModel):
    total_banners: int
    active_banners: int
    total_clicks: int
    total_impressions: int
    average_ctr: float


class BannerListResponse(BaseModel):
    banners: list[BannerResponse]
    total: int
    page: int
    page_size: int
    analytics: BannerAnalytics


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemAdd(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1, le=999)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=999)


class CartItemResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    product_image: Optional[str] = None
    price: Decimal
    quantity: int
    line_total: Decimal
    in_stock: bool


class CartResponse(BaseModel):
    id: Optional[uuid.UUID] = None
    items: list[CartItemResponse] = []
    item_count: int = 0
    subtotal: Decimal = Decimal("0")


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class ShippingInfo(BaseModel):
    address: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    zip_code: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)


class OrderItemInput(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1, le=999)
    price: Decimal = Field(..., gt=0, le=MAX_PRICE)


class OrderCreate(BaseModel):
    """Place an order from the checkout page."""

    items: list[OrderItemInput] = Field(..., min_length=1, max_length=50)
    shipping_info: ShippingInfo
    total: Decimal = Field(..., gt=0, le=MAX_PRICE)
    applied_coupons: list[str] = Field(default_factory=list, max_length=5)
    customer_notes: Optional[str] = Field(None, max_length=1000)


class OrderCreateResponse(BaseModel):
    order_id: uuid.UUID
    order_number: str


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class AddressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    street: str
    city: str
    state: str
    postal_code: str
    country: str


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    price: Decimal
    line_total: Decimal


class TimelineEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    event: TimelineEvent
    title: str
    description: Optional[str]
    actor_type: ActorType
    actor_id: Optional[str]
    actor_name: Optional[str]
    metadata: Optional[dict] = Field(None, validation_alias="event_metadata")
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    user_id: str
    customer_email: Optional[str]
    status: OrderStatus

    subtotal: Decimal
    discount_total: Decimal
    total: Decimal
    applied_coupons: Optional[list] = None

    stripe_payment_id: Optional[str]
    tracking_number: Optional[str]
    estimated_delivery: Optional[datetime]
    actual_delivery: Optional[datetime]
    notes: Optional[str]
    customer_notes: Optional[str]

    cancellation_reason: Optional[str]
    cancelled_at: Optional[datetime]
    paid_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    items: list[OrderItemResponse] = []


class OrderListResponse(BaseModel):
    """Paginated order list."""

    items: list[OrderResponse]
    total: int
    page: int
    page_size: int


class AdminOrderUpdate(BaseModel):
    """Update an order (admin). A status change goes through the lifecycle."""

    status: Optional[OrderStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)
    tracking_number: Optional[str] = Field(None, max_length=100)
    estimated_delivery: Optional[datetime] = None
    customer_notes: Optional[str] = Field(None, max_length=1000)


class OrderCancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)


class ReorderItem(BaseModel):
    product_id: uuid.UUID
    name: str
    price: Decimal
    quantity: int
    image: Optional[str] = None


class UnavailableItem(BaseModel):
    product_id: uuid.UUID
    name: Optional[str] = None
    reason: str


class ReorderResponse(BaseModel):
    cart_items: list[ReorderItem]
    unavailable_items: list[UnavailableItem]


# ============================================================================
# RETURN / REFUND SCHEMAS
# ============================================================================


class ReturnItemInput(BaseModel):
    order_item_id: uuid.UUID
    quantity: int = Field(..., ge=1, le=999)
    reason: Optional[str] = Field(None, max_length=255)
    condition: ItemCondition = ItemCondition.UNOPENED


class ReturnCreate(BaseModel):
    items: list[ReturnItemInput] = Field(..., min_length=1, max_length=50)
    reason: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    images: list[str] = Field(default_factory=list, max_length=10)


class ReturnItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_item_id: uuid.UUID
    quantity: int
    reason: Optional[str]
    condition: ItemCondition


class ReturnResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    return_number: str
    order_id: uuid.UUID
    user_id: str
    status: ReturnStatus
    reason: str
    description: Optional[str]
    images: list[str] = []
    reviewed_by: Optional[str]
    reviewed_at: Optional[datetime]
    review_notes: Optional[str]
    created_at: datetime

    items: list[ReturnItemResponse] = []


class ReturnReview(BaseModel):
    approved: bool
    review_notes: Optional[str] = Field(None, max_length=2000)


class RefundCreate(BaseModel):
    amount: Decimal = Field(..., gt=0, le=MAX_PRICE)
    type: RefundType
    reason: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    return_id: Optional[uuid.UUID] = None


class RefundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    refund_number: str
    order_id: uuid.UUID
    return_id: Optional[uuid.UUID]
    amount: Decimal
    type: RefundType
    status: RefundStatus
    reason: str
    description: Optional[str]
    processed_by: str
    processed_at: datetime
    created_at: datetime


class OrderDetailResponse(OrderResponse):
    address: Optional[AddressResponse] = None
    timeline: list[TimelineEventResponse] = []
    returns: list[ReturnResponse] = []
    refunds: list[RefundResponse] = []


# ============================================================================
# PROMOTION SCHEMAS
# ============================================================================


class PromotionBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    code: Optional[str] = Field(None, max_length=50)
    type: PromotionType
    target_type: PromotionTargetType = PromotionTargetType.ALL_PRODUCTS
    status: PromotionStatus = PromotionStatus.DRAFT
    discount_value: Decimal = Field(Decimal("0"), ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, gt=0)
    minimum_order_value: Optional[Decimal] = Field(None, ge=0)
    maximum_order_value: Optional[Decimal] = Field(None, gt=0)
    minimum_quantity: Optional[int] = Field(None, ge=1)
    maximum_quantity: Optional[int] = Field(None, ge=1)
    buy_quantity: Optional[int] = Field(None, ge=1)
    get_quantity: Optional[int] = Field(None, ge=1)
    get_discount_percent: Optional[Decimal] = Field(None, gt=0, le=100)
    applicable_products: list[uuid.UUID] = Field(default_factory=list)
    applicable_categories: list[uuid.UUID] = Field(default_factory=list)
    exclude_products: list[uuid.UUID] = Field(default_factory=list)
    exclude_categories: list[uuid.UUID] = Field(default_factory=list)
    usage_limit: Optional[int] = Field(None, ge=1)
    usage_limit_per_customer: Optional[int] = Field(None, ge=1)
    stackable: bool = True
    priority: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def check_rules(self):
        if self.type in (PromotionType.PERCENTAGE, PromotionType.BULK_DISCOUNT):
            if self.discount_value > 100:
                raise ValueError("Percentage discounts cannot exceed 100")
        if self.type == PromotionType.BUY_X_GET_Y and not (
            self.buy_quantity and self.get_quantity
        ):
            raise ValueError("buy_x_get_y promotions need buy and get quantities")
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class PromotionCreate(PromotionBase):
    pass


class PromotionUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[PromotionStatus] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, gt=0)
    minimum_order_value: Optional[Decimal] = Field(None, ge=0)
    maximum_order_value: Optional[Decimal] = Field(None, gt=0)
    minimum_quantity: Optional[int] = Field(None, ge=1)
    maximum_quantity: Optional[int] = Field(None, ge=1)
    usage_limit: Optional[int] = Field(None, ge=1)
    usage_limit_per_customer: Optional[int] = Field(None, ge=1)
    stackable: Optional[bool] = None
    priority: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class PromotionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str]
    code: Optional[str]
    type: PromotionType
    target_type: PromotionTargetType
    status: PromotionStatus
    discount_value: Decimal
    max_discount_amount: Optional[Decimal]
    minimum_order_value: Optional[Decimal]
    maximum_order_value: Optional[Decimal]
    minimum_quantity: Optional[int]
    maximum_quantity: Optional[int]
    buy_quantity: Optional[int]
    get_quantity: Optional[int]
    get_discount_percent: Optional[Decimal]
    applicable_products: list = []
    applicable_categories: list = []
    exclude_products: list = []
    exclude_categories: list = []
    usage_limit: Optional[int]
    usage_count: int
    usage_limit_per_customer: Optional[int]
    stackable: bool
    priority: int
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime


class PromotionSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    description: Optional[str] = None
    type: PromotionType
    discount_value: Decimal


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=3, max_length=50)
    promotion_id: uuid.UUID
    active: bool = True
    assigned_to_user_id: Optional[str] = None
    usage_limit: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class CouponResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    promotion_id: uuid.UUID
    active: bool
    assigned_to_user_id: Optional[str]
    usage_limit: Optional[int]
    usage_count: int
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    created_at: datetime


class CartLineInput(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(..., ge=1, le=999)
    price: Decimal = Field(..., ge=0, le=MAX_PRICE)


class PromotionCalculateRequest(BaseModel):
    items: list[CartLineInput] = Field(default_factory=list, max_length=50)
    applied_coupons: list[str] = Field(default_factory=list, max_length=5)


class AppliedPromotionResponse(BaseModel):
    promotion_id: uuid.UUID
    promotion_name: str
    promotion_code: Optional[str] = None
    discount_amount: Decimal
    free_shipping: bool = False
    applicable_items: list[uuid.UUID] = []
    description: str


class PromotionCalculateResponse(BaseModel):
    subtotal: Decimal
    applied_promotions: list[AppliedPromotionResponse]
    total_discount: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    total: Decimal
    available_promotions: list[PromotionSummary] = []


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)


class CouponValidateResponse(BaseModel):
    valid: bool
    message: str
    promotion: Optional[PromotionSummary] = None


# ============================================================================
# PAYMENT SCHEMAS
# ============================================================================


class PaymentIntentRequest(BaseModel):
    order_id: uuid.UUID


class PaymentIntentResponse(BaseModel):
    client_secret: str
    payment_intent_id: str
    amount: int  # minor units (fils)
    currency: str


class CheckoutSessionRequest(BaseModel):
    order_id: uuid.UUID


class CheckoutSessionResponse(BaseModel):
    session_id: str
    url: Optional[str]


# ============================================================================
# ANALYTICS SCHEMAS
# ============================================================================


class SalesDataPoint(BaseModel):
    date: str
    revenue: Decimal
    orders: int


class SalesAnalyticsResponse(BaseModel):
    period_days: int
    total_revenue: Decimal
    total_orders: int
    data: list[SalesDataPoint]


class LowStockProduct(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    stock: int


class DashboardResponse(BaseModel):
    total_revenue: Decimal
    total_orders: int
    total_customers: int
    total_products: int
    pending_orders: int
    orders_by_status: dict[str, int]
    low_stock_products: list[LowStockProduct]
    recent_orders: list[OrderResponse]


class CategoryPerformance(BaseModel):
    category_id: uuid.UUID
    name: str
    revenue: Decimal
    product_count: int
    order_count: int
    units_sold: int
    percentage: float
