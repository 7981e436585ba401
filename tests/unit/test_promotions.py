"""Unit tests for the promotion calculator and coupon validation."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import utc_now
from services.store_service.models import (
    PromotionStatus,
    PromotionTargetType,
    PromotionType,
)
from services.store_service.services.promotions import (
    CartLine,
    calculate_cart_promotions,
    get_applicable_items,
    validate_coupon_code,
)
from tests.factories import (
    CategoryFactory,
    CouponFactory,
    OrderFactory,
    ProductFactory,
    PromotionFactory,
)

USER_ID = "customer-promo"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _make_cart(db, *specs):
    """Insert products and return cart lines for (price, quantity) pairs."""
    category = CategoryFactory.create()
    db.add(category)
    lines = []
    for price, quantity in specs:
        product = ProductFactory.create(category.id, price=Decimal(price))
        db.add(product)
        lines.append(
            CartLine(product_id=product.id, quantity=quantity, price=Decimal(price))
        )
    await db.commit()
    return category, lines


async def _add(db, *objects):
    db.add_all(objects)
    await db.commit()


# ---------------------------------------------------------------------------
# calculate_cart_promotions
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_empty_cart_is_all_zero(db_session):
    result = await calculate_cart_promotions(db_session, [], user_id=USER_ID)

    assert result.subtotal == 0
    assert result.total == 0
    assert result.applied_promotions == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_no_promotions_charges_shipping_and_tax(db_session):
    """Below the free-shipping threshold: flat 10 AED shipping and 10% tax."""
    _, lines = await _make_cart(db_session, ("50.00", 2))

    result = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)

    assert result.subtotal == Decimal("100.00")
    assert result.total_discount == Decimal("0.00")
    assert result.shipping_cost == Decimal("10.00")
    assert result.tax_amount == Decimal("10.00")
    assert result.total == Decimal("120.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_automatic_percentage_promotion_applies(db_session):
    _, lines = await _make_cart(db_session, ("100.00", 1))
    await _add(db_session, PromotionFactory.create(discount_value=Decimal("15")))

    result = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)

    assert len(result.applied_promotions) == 1
    applied = result.applied_promotions[0]
    assert applied.discount_amount == Decimal("15.00")
    assert applied.description == "15% off"
    assert result.total_discount == Decimal("15.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_anonymous_cart_gets_no_promotions(db_session):
    _, lines = await _make_cart(db_session, ("100.00", 1))
    await _add(db_session, PromotionFactory.create())

    result = await calculate_cart_promotions(db_session, lines, user_id=None)

    assert result.applied_promotions == []
    assert result.total_discount == Decimal("0.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_percentage_discount_respects_cap(db_session):
    _, lines = await _make_cart(db_session, ("500.00", 1))
    await _add(
        db_session,
        PromotionFactory.create(
            discount_value=Decimal("50"), max_discount_amount=Decimal("40")
        ),
    )

    result = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)

    assert result.total_discount == Decimal("40.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_fixed_amount_never_exceeds_items_total(db_session):
    _, lines = await _make_cart(db_session, ("30.00", 1))
    await _add(
        db_session,
        PromotionFactory.create(
            type=PromotionType.FIXED_AMOUNT, discount_value=Decimal("50")
        ),
    )

    result = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)

    assert result.total_discount == Decimal("30.00")
    assert result.applied_promotions[0].description == "AED 50 off"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_free_shipping_promotion(db_session):
    _, lines = await _make_cart(db_session, ("40.00", 1))
    await _add(
        db_session,
        PromotionFactory.create(
            type=PromotionType.FREE_SHIPPING, discount_value=Decimal("0")
        ),
    )

    result = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)

    assert result.shipping_cost == Decimal("0.00")
    assert result.applied_promotions[0].free_shipping is True
    assert result.total_discount == Decimal("0.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buy_two_get_one_free(db_session):
    """The cheapest unit of each full set of three is free."""
    _, lines = await _make_cart(db_session, ("20.00", 2), ("35.00", 1))
    await _add(
        db_session,
        PromotionFactory.create(
            type=PromotionType.BUY_X_GET_Y,
            discount_value=Decimal("0"),
            buy_quantity=2,
            get_quantity=1,
        ),
    )

    result = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)

    assert result.total_discount == Decimal("20.00")
    assert result.applied_promotions[0].description == "Buy 2 get 1 free"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_minimum_order_value_blocks_promotion(db_session):
    _, lines = await _make_cart(db_session, ("50.00", 1))
    await _add(
        db_session,
        PromotionFactory.create(minimum_order_value=Decimal("100")),
    )

    result = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)

    assert result.applied_promotions == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_non_stackable_promotion_stops_evaluation(db_session):
    """The highest-priority non-stackable promotion is the only one applied."""
    _, lines = await _make_cart(db_session, ("100.00", 1))
    exclusive = PromotionFactory.create(
        name="Exclusive", discount_value=Decimal("20"), priority=10, stackable=False
    )
    other = PromotionFactory.create(name="Other", discount_value=Decimal("5"))
    await _add(db_session, exclusive, other)

    result = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)

    assert [p.promotion_name for p in result.applied_promotions] == ["Exclusive"]
    assert result.total_discount == Decimal("20.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_stackable_promotions_are_summed(db_session):
    _, lines = await _make_cart(db_session, ("100.00", 1))
    await _add(
        db_session,
        PromotionFactory.create(discount_value=Decimal("10"), priority=5),
        PromotionFactory.create(discount_value=Decimal("5"), priority=1),
    )

    result = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)

    assert len(result.applied_promotions) == 2
    assert result.total_discount == Decimal("15.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_first_order_promotion_only_for_new_customers(db_session):
    category, lines = await _make_cart(db_session, ("100.00", 1))
    await _add(
        db_session,
        PromotionFactory.create(target_type=PromotionTargetType.FIRST_ORDER),
    )

    first = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)
    assert len(first.applied_promotions) == 1

    product = ProductFactory.create(category.id)
    await _add(db_session, product, OrderFactory.create(USER_ID, items=[(product, 1)]))

    repeat = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)
    assert repeat.applied_promotions == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_coupon_unlocks_its_promotion(db_session):
    """Promotions with coupons are never automatic."""
    _, lines = await _make_cart(db_session, ("100.00", 1))
    promotion = PromotionFactory.create(discount_value=Decimal("25"))
    await _add(db_session, promotion)
    await _add(db_session, CouponFactory.create(promotion.id, code="WELCOME25"))

    without = await calculate_cart_promotions(db_session, lines, user_id=USER_ID)
    assert without.applied_promotions == []

    with_coupon = await calculate_cart_promotions(
        db_session, lines, ["welcome25"], user_id=USER_ID
    )
    assert with_coupon.applied_promotions[0].promotion_code == "WELCOME25"
    assert with_coupon.total_discount == Decimal("25.00")


@pytest.mark.unit
def test_category_promotion_only_applies_to_matching_lines():
    category_id = uuid.uuid4()
    promotion = PromotionFactory.create(
        target_type=PromotionTargetType.PRODUCT_CATEGORY,
        applicable_categories=[str(category_id)],
    )
    match = CartLine(uuid.uuid4(), 1, Decimal("10"), category_id=category_id)
    other = CartLine(uuid.uuid4(), 1, Decimal("10"), category_id=uuid.uuid4())

    assert get_applicable_items(promotion, [match, other]) == [match]


# ---------------------------------------------------------------------------
# validate_coupon_code
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_unknown_code(db_session):
    validation = await validate_coupon_code(db_session, "NOPE", USER_ID)

    assert validation.valid is False
    assert validation.message == "Invalid coupon code"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_expired_coupon(db_session):
    promotion = PromotionFactory.create()
    await _add(db_session, promotion)
    await _add(
        db_session,
        CouponFactory.create(
            promotion.id, code="OLD10", end_date=utc_now() - timedelta(days=1)
        ),
    )

    validation = await validate_coupon_code(db_session, "old10", USER_ID)

    assert validation.valid is False
    assert validation.message == "This coupon has expired"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_coupon_for_paused_promotion(db_session):
    promotion = PromotionFactory.create(status=PromotionStatus.PAUSED)
    await _add(db_session, promotion)
    await _add(db_session, CouponFactory.create(promotion.id, code="PAUSED"))

    validation = await validate_coupon_code(db_session, "PAUSED", USER_ID)

    assert validation.valid is False
    assert validation.message == "The associated promotion is not active"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_assigned_coupon_for_other_user(db_session):
    promotion = PromotionFactory.create()
    await _add(db_session, promotion)
    await _add(
        db_session,
        CouponFactory.create(
            promotion.id, code="VIPONLY", assigned_to_user_id="someone-else"
        ),
    )

    validation = await validate_coupon_code(db_session, "VIPONLY", USER_ID)

    assert validation.valid is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_validate_valid_coupon(db_session):
    promotion = PromotionFactory.create(name="Eid Sale")
    await _add(db_session, promotion)
    await _add(db_session, CouponFactory.create(promotion.id, code="EID"))

    validation = await validate_coupon_code(db_session, " eid ", USER_ID)

    assert validation.valid is True
    assert validation.promotion.name == "Eid Sale"
