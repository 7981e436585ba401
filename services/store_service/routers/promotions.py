"""Storefront promotions router: cart pricing and coupon checks."""

from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_optional_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.schemas import (
    AppliedPromotionResponse,
    CouponValidateRequest,
    CouponValidateResponse,
    PromotionCalculateRequest,
    PromotionCalculateResponse,
    PromotionSummary,
)
from services.store_service.services.promotions import (
    CartLine,
    calculate_cart_promotions,
    validate_coupon_code,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


@router.post("/promotions/calculate", response_model=PromotionCalculateResponse)
async def calculate_promotions(
    payload: PromotionCalculateRequest,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Price a cart with every promotion the caller qualifies for."""
    lines = [
        CartLine(product_id=item.product_id, quantity=item.quantity, price=item.price)
        for item in payload.items
    ]
    result = await calculate_cart_promotions(
        db,
        lines,
        payload.applied_coupons,
        current_user.user_id if current_user else None,
    )
    return PromotionCalculateResponse(
        subtotal=result.subtotal,
        applied_promotions=[
            AppliedPromotionResponse(
                promotion_id=applied.promotion_id,
                promotion_name=applied.promotion_name,
                promotion_code=applied.promotion_code,
                discount_amount=applied.discount_amount,
                free_shipping=applied.free_shipping,
                applicable_items=applied.applicable_items,
                description=applied.description,
            )
            for applied in result.applied_promotions
        ],
        total_discount=result.total_discount,
        shipping_cost=result.shipping_cost,
        tax_amount=result.tax_amount,
        total=result.total,
        available_promotions=[
            PromotionSummary.model_validate(p) for p in result.available_promotions
        ],
    )


@router.post("/promotions/validate", response_model=CouponValidateResponse)
async def validate_coupon(
    payload: CouponValidateRequest,
    current_user: Optional[AuthUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Check whether a coupon code can be applied. Always 200."""
    validation = await validate_coupon_code(
        db, payload.code, current_user.user_id if current_user else None
    )
    return CouponValidateResponse(
        valid=validation.valid,
        message=validation.message,
        promotion=(
            PromotionSummary.model_validate(validation.promotion)
            if validation.promotion
            else None
        ),
    )
