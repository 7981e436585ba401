"""Admin banner router: banner management and analytics."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.datetime_utils import ensure_utc
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import AuditEntityType, Banner, BannerPosition
from services.store_service.schemas import (
    BannerAnalytics,
    BannerCreate,
    BannerListResponse,
    BannerResponse,
    BannerUpdate,
)
from services.store_service.services.audit import log_audit
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])
logger = get_logger(__name__)


async def _order_taken(
    db: AsyncSession,
    position: BannerPosition,
    display_order: int,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    query = select(Banner.id).where(
        Banner.position == position,
        Banner.display_order == display_order,
        Banner.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.where(Banner.id != exclude_id)
    return (await db.execute(query)).first() is not None


async def _next_display_order(db: AsyncSession, position: BannerPosition) -> int:
    highest = await db.scalar(
        select(func.max(Banner.display_order)).where(Banner.position == position)
    )
    return (highest or 0) + 1


# ============================================================================
# BANNERS
# ============================================================================


@router.get("/banners", response_model=BannerListResponse)
async def list_banners(
    position: Optional[BannerPosition] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List banners with click/impression analytics."""
    query = select(Banner)
    if position:
        query = query.where(Banner.position == position)
    if is_active is not None:
        query = query.where(Banner.is_active == is_active)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Banner.position, Banner.display_order)
    query = query.offset((page - 1) * page_size).limit(page_size)
    banners = (await db.execute(query)).scalars().all()

    stats = (
        await db.execute(
            select(
                func.count(Banner.id),
                func.coalesce(func.sum(Banner.click_count), 0),
                func.coalesce(func.sum(Banner.impressions), 0),
            )
        )
    ).one()
    active_banners = await db.scalar(
        select(func.count(Banner.id)).where(Banner.is_active.is_(True))
    )
    total_banners, total_clicks, total_impressions = stats
    average_ctr = (
        round(total_clicks / total_impressions * 100, 2) if total_impressions else 0.0
    )

    return BannerListResponse(
        banners=[BannerResponse.model_validate(b) for b in banners],
        total=total,
        page=page,
        page_size=page_size,
        analytics=BannerAnalytics(
            total_banners=total_banners,
            active_banners=active_banners or 0,
            total_clicks=total_clicks,
            total_impressions=total_impressions,
            average_ctr=average_ctr,
        ),
    )


@router.post(
    "/banners", response_model=BannerResponse, status_code=status.HTTP_201_CREATED
)
async def create_banner(
    banner_in: BannerCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a banner.

    If an active banner already holds the requested slot, the new one is
    moved after the highest display order of its position, whether or not it
    is active itself.
    """
    data = banner_in.model_dump()
    if await _order_taken(db, banner_in.position, banner_in.display_order):
        next_order = await _next_display_order(db, banner_in.position)
        logger.info(
            "Banner display order %s taken for %s, using %s",
            banner_in.display_order,
            banner_in.position.value,
            next_order,
        )
        data["display_order"] = next_order

    banner = Banner(**data, created_by=current_user.user_id)
    db.add(banner)
    await db.flush()

    await log_audit(
        db,
        AuditEntityType.BANNER,
        banner.id,
        "created",
        current_user.user_id,
        new_value={
            **banner_in.model_dump(mode="json"),
            "display_order": banner.display_order,
        },
    )
    await db.commit()
    return banner


@router.get("/banners/{banner_id}", response_model=BannerResponse)
async def get_banner(
    banner_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    banner = await db.get(Banner, banner_id)
    if not banner:
        raise HTTPException(status_code=404, detail="Banner not found")
    return banner


@router.patch("/banners/{banner_id}", response_model=BannerResponse)
async def update_banner(
    banner_id: uuid.UUID,
    banner_in: BannerUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a banner. Taking an occupied slot is rejected."""
    banner = await db.get(Banner, banner_id)
    if not banner:
        raise HTTPException(status_code=404, detail="Banner not found")

    update_data = banner_in.model_dump(exclude_unset=True)
    position = update_data.get("position", banner.position)
    display_order = update_data.get("display_order", banner.display_order)
    is_active = update_data.get("is_active", banner.is_active)
    start_date = ensure_utc(update_data.get("start_date", banner.start_date))
    end_date = ensure_utc(update_data.get("end_date", banner.end_date))

    if start_date and end_date and end_date <= start_date:
        raise HTTPException(
            status_code=400, detail="end_date must be after start_date"
        )
    if is_active and await _order_taken(db, position, display_order, banner.id):
        raise HTTPException(
            status_code=400,
            detail=(
                f"Display order {display_order} is already used by another "
                f"{position.value} banner"
            ),
        )

    old_values = {
        "title": banner.title,
        "position": banner.position.value,
        "display_order": banner.display_order,
        "is_active": banner.is_active,
    }
    for field, value in update_data.items():
        setattr(banner, field, value)

    await log_audit(
        db,
        AuditEntityType.BANNER,
        banner.id,
        "updated",
        current_user.user_id,
        old_value=old_values,
        new_value=banner_in.model_dump(mode="json", exclude_unset=True),
    )
    await db.commit()
    return banner


@router.post("/banners/{banner_id}/toggle", response_model=BannerResponse)
async def toggle_banner(
    banner_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Flip a banner between active and inactive."""
    banner = await db.get(Banner, banner_id)
    if not banner:
        raise HTTPException(status_code=404, detail="Banner not found")

    if not banner.is_active and await _order_taken(
        db, banner.position, banner.display_order, banner.id
    ):
        raise HTTPException(
            status_code=400,
            detail=(
                f"Display order {banner.display_order} is already used by another "
                f"{banner.position.value} banner"
            ),
        )

    banner.is_active = not banner.is_active
    await log_audit(
        db,
        AuditEntityType.BANNER,
        banner.id,
        "activated" if banner.is_active else "deactivated",
        current_user.user_id,
    )
    await db.commit()
    return banner


@router.delete("/banners/{banner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_banner(
    banner_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    banner = await db.get(Banner, banner_id)
    if not banner:
        raise HTTPException(status_code=404, detail="Banner not found")

    await log_audit(
        db,
        AuditEntityType.BANNER,
        banner.id,
        "deleted",
        current_user.user_id,
        old_value={"title": banner.title, "position": banner.position.value},
    )
    await db.delete(banner)
    await db.commit()
    return None
