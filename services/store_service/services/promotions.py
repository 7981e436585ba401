"""Promotion calculator: cart discounts, coupon validation and usage tracking.

Automatic promotions are active promotions with no coupons attached; the
rest are unlocked by applying one of their coupon codes. Candidates are
evaluated by priority (highest first) and their discounts are summed. A
promotion with ``stackable=False`` ends the evaluation once it applies.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.config import get_settings
from libs.common.currency import to_money
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.store_service.models import (
    Coupon,
    Order,
    OrderStatus,
    Product,
    Promotion,
    PromotionStatus,
    PromotionTargetType,
    PromotionType,
    PromotionUsage,
)
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass
class CartLine:
    product_id: uuid.UUID
    quantity: int
    price: Decimal
    category_id: Optional[uuid.UUID] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class PromotionResult:
    promotion_id: uuid.UUID
    promotion_name: str
    discount_amount: Decimal
    description: str
    free_shipping: bool = False
    applicable_items: list[uuid.UUID] = field(default_factory=list)
    promotion_code: Optional[str] = None
    coupon_id: Optional[uuid.UUID] = None


@dataclass
class CartCalculation:
    subtotal: Decimal = ZERO
    applied_promotions: list[PromotionResult] = field(default_factory=list)
    total_discount: Decimal = ZERO
    shipping_cost: Decimal = ZERO
    tax_amount: Decimal = ZERO
    total: Decimal = ZERO
    available_promotions: list[Promotion] = field(default_factory=list)


@dataclass
class CouponValidation:
    valid: bool
    message: str
    promotion: Optional[Promotion] = None
    coupon: Optional[Coupon] = None


def _format_number(value: Decimal) -> str:
    value = Decimal(value)
    if value == value.to_integral_value():
        return str(value.quantize(Decimal("1")))
    return f"{value.normalize():f}"


def _is_within_dates(start, end, now) -> bool:
    if start is not None and ensure_utc(start) > now:
        return False
    if end is not None and ensure_utc(end) < now:
        return False
    return True


# ---------------------------------------------------------------------------
# Loading candidates
# ---------------------------------------------------------------------------


async def attach_categories(db: AsyncSession, lines: list[CartLine]) -> list[CartLine]:
    """Fill ``category_id`` on cart lines from the catalog."""
    product_ids = {line.product_id for line in lines}
    if not product_ids:
        return lines
    result = await db.execute(
        select(Product.id, Product.category_id).where(Product.id.in_(product_ids))
    )
    categories = {row.id: row.category_id for row in result}
    for line in lines:
        line.category_id = categories.get(line.product_id)
    return lines


def _targets_cart(promotion: Promotion, lines: list[CartLine]) -> bool:
    products = set(promotion.applicable_products or [])
    categories = set(promotion.applicable_categories or [])
    if not products and not categories:
        return True
    for line in lines:
        if str(line.product_id) in products:
            return True
        if line.category_id and str(line.category_id) in categories:
            return True
    return False


async def get_available_promotions(
    db: AsyncSession, lines: list[CartLine], now=None
) -> list[Promotion]:
    """Automatic promotions that are live and target something in the cart."""
    now = now or utc_now()
    result = await db.execute(
        select(Promotion)
        .where(
            Promotion.status == PromotionStatus.ACTIVE,
            ~Promotion.coupons.any(),
            or_(Promotion.start_date.is_(None), Promotion.start_date <= now),
            or_(Promotion.end_date.is_(None), Promotion.end_date >= now),
            or_(
                Promotion.usage_limit.is_(None),
                Promotion.usage_count < Promotion.usage_limit,
            ),
        )
        .order_by(Promotion.priority.desc())
    )
    return [p for p in result.scalars().all() if _targets_cart(p, lines)]


async def get_promotions_from_coupons(
    db: AsyncSession,
    codes: Iterable[str],
    user_id: Optional[str],
    now=None,
) -> list[tuple[Promotion, Coupon]]:
    """Promotions unlocked by the coupon codes the customer applied."""
    now = now or utc_now()
    normalized = {code.strip().upper() for code in codes if code and code.strip()}
    if not normalized:
        return []

    result = await db.execute(
        select(Coupon)
        .where(Coupon.code.in_(normalized), Coupon.active.is_(True))
        .options(selectinload(Coupon.promotion))
    )

    unlocked = []
    for coupon in result.scalars().all():
        if coupon.assigned_to_user_id and coupon.assigned_to_user_id != user_id:
            continue
        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            continue
        if not _is_within_dates(coupon.start_date, coupon.end_date, now):
            continue
        promotion = coupon.promotion
        if promotion is None or promotion.status != PromotionStatus.ACTIVE:
            continue
        if not _is_within_dates(promotion.start_date, promotion.end_date, now):
            continue
        if (
            promotion.usage_limit is not None
            and promotion.usage_count >= promotion.usage_limit
        ):
            continue
        unlocked.append((promotion, coupon))
    return unlocked


# ---------------------------------------------------------------------------
# Eligibility
# ---------------------------------------------------------------------------


def check_promotion_conditions(
    promotion: Promotion, lines: list[CartLine], subtotal: Decimal
) -> bool:
    """Cart-level conditions: order value and quantity bounds."""
    if promotion.minimum_order_value is not None and subtotal < promotion.minimum_order_value:
        return False
    if promotion.maximum_order_value is not None and subtotal > promotion.maximum_order_value:
        return False

    quantity = sum(line.quantity for line in lines)
    if promotion.minimum_quantity is not None and quantity < promotion.minimum_quantity:
        return False
    if promotion.maximum_quantity is not None and quantity > promotion.maximum_quantity:
        return False
    return True


async def check_user_conditions(
    db: AsyncSession, promotion: Promotion, user_id: Optional[str]
) -> bool:
    """Customer-level conditions: first order and per-customer limit."""
    if not user_id:
        return False

    if promotion.target_type == PromotionTargetType.FIRST_ORDER:
        previous_orders = await db.scalar(
            select(func.count(Order.id)).where(
                Order.user_id == user_id,
                Order.status != OrderStatus.CANCELLED,
            )
        )
        if previous_orders:
            return False

    if promotion.usage_limit_per_customer is not None:
        used = await db.scalar(
            select(func.count(PromotionUsage.id)).where(
                PromotionUsage.promotion_id == promotion.id,
                PromotionUsage.user_id == user_id,
            )
        )
        if used >= promotion.usage_limit_per_customer:
            return False
    return True


def get_applicable_items(promotion: Promotion, lines: list[CartLine]) -> list[CartLine]:
    """Lines the promotion's discount applies to."""
    products = set(promotion.applicable_products or [])
    categories = set(promotion.applicable_categories or [])
    excluded_products = set(promotion.exclude_products or [])
    excluded_categories = set(promotion.exclude_categories or [])

    restricted = bool(products or categories) or promotion.target_type in (
        PromotionTargetType.SPECIFIC_PRODUCT,
        PromotionTargetType.PRODUCT_CATEGORY,
    )

    applicable = []
    for line in lines:
        product_id = str(line.product_id)
        category_id = str(line.category_id) if line.category_id else None
        if product_id in excluded_products or category_id in excluded_categories:
            continue
        if restricted and not (product_id in products or category_id in categories):
            continue
        applicable.append(line)
    return applicable


# ---------------------------------------------------------------------------
# Discount rules
# ---------------------------------------------------------------------------


def _cap(promotion: Promotion, amount: Decimal) -> Decimal:
    if promotion.max_discount_amount is not None:
        return min(amount, promotion.max_discount_amount)
    return amount


def _buy_x_get_y_discount(promotion: Promotion, lines: list[CartLine]) -> Decimal:
    """Cheapest units go free (or at ``get_discount_percent`` off) per full set."""
    buy = promotion.buy_quantity or 0
    get = promotion.get_quantity or 0
    if buy <= 0 or get <= 0:
        return ZERO

    unit_prices = sorted(
        price for line in lines for price in [line.price] * line.quantity
    )
    sets = len(unit_prices) // (buy + get)
    free_units = unit_prices[: sets * get]
    percent = promotion.get_discount_percent or HUNDRED
    return sum(free_units, ZERO) * percent / HUNDRED


async def calculate_single_promotion(
    db: AsyncSession,
    promotion: Promotion,
    available_lines: list[CartLine],
    all_lines: list[CartLine],
    subtotal: Decimal,
    user_id: Optional[str],
) -> Optional[PromotionResult]:
    """Evaluate one promotion. ``None`` means it does not apply."""
    if not check_promotion_conditions(promotion, all_lines, subtotal):
        return None
    if not await check_user_conditions(db, promotion, user_id):
        return None

    items = get_applicable_items(promotion, available_lines)
    if not items:
        return None
    items_total = sum((line.line_total for line in items), ZERO)
    value = promotion.discount_value or ZERO

    free_shipping = False
    if promotion.type == PromotionType.PERCENTAGE:
        discount = _cap(promotion, items_total * value / HUNDRED)
        description = f"{_format_number(value)}% off"
    elif promotion.type == PromotionType.FIXED_AMOUNT:
        discount = min(value, items_total)
        description = f"AED {_format_number(value)} off"
    elif promotion.type == PromotionType.FREE_SHIPPING:
        discount = ZERO
        free_shipping = True
        description = "Free shipping"
    elif promotion.type == PromotionType.BUY_X_GET_Y:
        discount = _buy_x_get_y_discount(promotion, items)
        reward = "free"
        if promotion.get_discount_percent:
            reward = f"{_format_number(promotion.get_discount_percent)}% off"
        description = (
            f"Buy {promotion.buy_quantity} get {promotion.get_quantity} {reward}"
        )
    elif promotion.type == PromotionType.BULK_DISCOUNT:
        discount = _cap(promotion, items_total * value / HUNDRED)
        description = f"Bulk discount - {_format_number(value)}% off"
    else:
        return None

    return PromotionResult(
        promotion_id=promotion.id,
        promotion_name=promotion.name,
        promotion_code=promotion.code,
        discount_amount=to_money(discount),
        description=description,
        free_shipping=free_shipping,
        applicable_items=[line.product_id for line in items],
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def calculate_cart_promotions(
    db: AsyncSession,
    lines: list[CartLine],
    applied_coupons: Iterable[str] = (),
    user_id: Optional[str] = None,
) -> CartCalculation:
    """Price a cart: subtotal, promotions, shipping, tax and total."""
    settings = get_settings()
    if not lines:
        return CartCalculation()

    await attach_categories(db, lines)
    subtotal = to_money(sum((line.line_total for line in lines), ZERO))
    now = utc_now()

    automatic = await get_available_promotions(db, lines, now)
    candidates: list[tuple[Promotion, Optional[Coupon]]] = []
    if user_id:
        candidates = [(promotion, None) for promotion in automatic]
        candidates += await get_promotions_from_coupons(
            db, applied_coupons, user_id, now
        )

    seen = set()
    unique_candidates = []
    for promotion, coupon in candidates:
        if promotion.id in seen:
            continue
        seen.add(promotion.id)
        unique_candidates.append((promotion, coupon))
    unique_candidates.sort(key=lambda candidate: candidate[0].priority, reverse=True)

    applied: list[PromotionResult] = []
    remaining = list(lines)
    for promotion, coupon in unique_candidates:
        result = await calculate_single_promotion(
            db, promotion, remaining, lines, subtotal, user_id
        )
        if result is None:
            continue
        if result.discount_amount <= 0 and not result.free_shipping:
            continue
        if coupon is not None:
            result.coupon_id = coupon.id
            result.promotion_code = coupon.code
        applied.append(result)

        if not promotion.stackable:
            break
        if promotion.target_type == PromotionTargetType.SPECIFIC_PRODUCT:
            used = set(result.applicable_items)
            remaining = [line for line in remaining if line.product_id not in used]

    total_discount = min(
        to_money(sum((result.discount_amount for result in applied), ZERO)),
        subtotal,
    )
    free_shipping = any(result.free_shipping for result in applied)
    if free_shipping or subtotal >= settings.FREE_SHIPPING_THRESHOLD:
        shipping_cost = ZERO
    else:
        shipping_cost = to_money(settings.SHIPPING_FLAT_RATE)
    tax_amount = to_money((subtotal - total_discount) * settings.TAX_RATE)

    applied_ids = {result.promotion_id for result in applied}
    return CartCalculation(
        subtotal=subtotal,
        applied_promotions=applied,
        total_discount=total_discount,
        shipping_cost=to_money(shipping_cost),
        tax_amount=tax_amount,
        total=to_money(subtotal - total_discount + shipping_cost + tax_amount),
        available_promotions=[p for p in automatic if p.id not in applied_ids],
    )


async def validate_coupon_code(
    db: AsyncSession, code: str, user_id: Optional[str]
) -> CouponValidation:
    """Explain whether a coupon code can be used right now by this customer."""
    now = utc_now()
    result = await db.execute(
        select(Coupon)
        .where(Coupon.code == code.strip().upper())
        .options(selectinload(Coupon.promotion))
    )
    coupon = result.scalar_one_or_none()

    if not coupon:
        return CouponValidation(False, "Invalid coupon code")
    if not coupon.active:
        return CouponValidation(False, "This coupon is no longer active")
    if coupon.assigned_to_user_id and coupon.assigned_to_user_id != user_id:
        return CouponValidation(False, "This coupon is not assigned to your account")
    if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
        return CouponValidation(False, "This coupon has reached its usage limit")
    if coupon.start_date is not None and ensure_utc(coupon.start_date) > now:
        return CouponValidation(False, "This coupon is not yet active")
    if coupon.end_date is not None and ensure_utc(coupon.end_date) < now:
        return CouponValidation(False, "This coupon has expired")

    promotion = coupon.promotion
    if (
        promotion is None
        or promotion.status != PromotionStatus.ACTIVE
        or not _is_within_dates(promotion.start_date, promotion.end_date, now)
    ):
        return CouponValidation(False, "The associated promotion is not active")

    return CouponValidation(True, "Coupon is valid", promotion=promotion, coupon=coupon)


async def record_promotion_usage(
    db: AsyncSession,
    *,
    promotion_id: uuid.UUID,
    user_id: str,
    order_id: uuid.UUID,
    discount_amount: Decimal,
    coupon_id: Optional[uuid.UUID] = None,
) -> PromotionUsage:
    """Record an applied promotion. The caller owns the transaction."""
    usage = PromotionUsage(
        promotion_id=promotion_id,
        coupon_id=coupon_id,
        user_id=user_id,
        order_id=order_id,
        discount_amount=to_money(discount_amount),
    )
    db.add(usage)

    await db.execute(
        update(Promotion)
        .where(Promotion.id == promotion_id)
        .values(usage_count=Promotion.usage_count + 1)
    )
    if coupon_id is not None:
        await db.execute(
            update(Coupon)
            .where(Coupon.id == coupon_id)
            .values(usage_count=Coupon.usage_count + 1)
        )
    return usage
