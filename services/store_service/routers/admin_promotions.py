"""Admin promotions router: promotions and coupons."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import (
    AuditEntityType,
    Coupon,
    Promotion,
    PromotionStatus,
)
from services.store_service.schemas import (
    CouponCreate,
    CouponResponse,
    PromotionCreate,
    PromotionResponse,
    PromotionUpdate,
)
from services.store_service.services.audit import log_audit
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


# ============================================================================
# PROMOTIONS
# ============================================================================


@router.get("/promotions", response_model=list[PromotionResponse])
async def list_promotions(
    status_filter: Optional[PromotionStatus] = Query(None, alias="status"),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Promotion)
    if status_filter:
        query = query.where(Promotion.status == status_filter)
    query = query.order_by(Promotion.priority.desc(), Promotion.created_at.desc())
    result = await db.execute(query)
    return result.scalars().all()


@router.post(
    "/promotions",
    response_model=PromotionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_promotion(
    promotion_in: PromotionCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a promotion. Targeting ids are stored as strings."""
    data = promotion_in.model_dump()
    if data.get("code"):
        data["code"] = data["code"].strip().upper()
        existing = await db.execute(
            select(Promotion.id).where(Promotion.code == data["code"])
        )
        if existing.first():
            raise HTTPException(
                status_code=400, detail="Promotion with this code already exists"
            )
    for field in (
        "applicable_products",
        "applicable_categories",
        "exclude_products",
        "exclude_categories",
    ):
        data[field] = [str(value) for value in data[field]]

    promotion = Promotion(**data, created_by=current_user.user_id)
    db.add(promotion)
    await db.flush()

    await log_audit(
        db,
        AuditEntityType.PROMOTION,
        promotion.id,
        "created",
        current_user.user_id,
        new_value=promotion_in.model_dump(mode="json"),
    )
    await db.commit()
    return promotion


@router.get("/promotions/{promotion_id}", response_model=PromotionResponse)
async def get_promotion(
    promotion_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    promotion = await db.get(Promotion, promotion_id)
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return promotion


@router.patch("/promotions/{promotion_id}", response_model=PromotionResponse)
async def update_promotion(
    promotion_id: uuid.UUID,
    promotion_in: PromotionUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    promotion = await db.get(Promotion, promotion_id)
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")

    old_values = {
        "status": promotion.status.value,
        "discount_value": str(promotion.discount_value),
        "priority": promotion.priority,
    }
    for field, value in promotion_in.model_dump(exclude_unset=True).items():
        setattr(promotion, field, value)

    await log_audit(
        db,
        AuditEntityType.PROMOTION,
        promotion.id,
        "updated",
        current_user.user_id,
        old_value=old_values,
        new_value=promotion_in.model_dump(mode="json", exclude_unset=True),
    )
    await db.commit()
    return promotion


@router.delete("/promotions/{promotion_id}", status_code=status.HTTP_204_NO_CONTENT)
async def expire_promotion(
    promotion_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Retire a promotion (status=expired). Usage history is kept."""
    promotion = await db.get(Promotion, promotion_id)
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")

    promotion.status = PromotionStatus.EXPIRED
    await log_audit(
        db, AuditEntityType.PROMOTION, promotion.id, "expired", current_user.user_id
    )
    await db.commit()
    return None


# ============================================================================
# COUPONS
# ============================================================================


@router.get("/promotions/{promotion_id}/coupons", response_model=list[CouponResponse])
async def list_coupons(
    promotion_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        select(Coupon)
        .where(Coupon.promotion_id == promotion_id)
        .order_by(Coupon.created_at.desc())
    )
    return result.scalars().all()


@router.post(
    "/coupons", response_model=CouponResponse, status_code=status.HTTP_201_CREATED
)
async def create_coupon(
    coupon_in: CouponCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a coupon code for a promotion. Codes are stored upper-case."""
    if not await db.get(Promotion, coupon_in.promotion_id):
        raise HTTPException(status_code=404, detail="Promotion not found")

    existing = await db.execute(select(Coupon.id).where(Coupon.code == coupon_in.code))
    if existing.first():
        raise HTTPException(
            status_code=400, detail="Coupon with this code already exists"
        )

    coupon = Coupon(**coupon_in.model_dump())
    db.add(coupon)
    await db.flush()

    await log_audit(
        db,
        AuditEntityType.PROMOTION,
        coupon_in.promotion_id,
        "coupon_created",
        current_user.user_id,
        new_value=coupon_in.model_dump(mode="json"),
    )
    await db.commit()
    return coupon


@router.post("/coupons/{coupon_id}/deactivate", response_model=CouponResponse)
async def deactivate_coupon(
    coupon_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    coupon = await db.get(Coupon, coupon_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")

    coupon.active = False
    await log_audit(
        db,
        AuditEntityType.PROMOTION,
        coupon.promotion_id,
        "coupon_deactivated",
        current_user.user_id,
        notes=coupon.code,
    )
    await db.commit()
    return coupon
