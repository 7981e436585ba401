"""Storefront banner router: active banners and click tracking."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from libs.common.datetime_utils import utc_now
from libs.db.session import get_async_db
from services.store_service.models import Banner, BannerPosition
from services.store_service.schemas import BannerResponse
from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


@router.get("/banners", response_model=list[BannerResponse])
async def list_active_banners(
    position: Optional[BannerPosition] = None,
    db: AsyncSession = Depends(get_async_db),
):
    """Active banners inside their date window, in display order.

    Each listing counts as one impression per banner returned.
    """
    now = utc_now()
    query = select(Banner).where(
        Banner.is_active.is_(True),
        or_(Banner.start_date.is_(None), Banner.start_date <= now),
        or_(Banner.end_date.is_(None), Banner.end_date >= now),
    )
    if position:
        query = query.where(Banner.position == position)
    query = query.order_by(Banner.position, Banner.display_order)

    banners = list((await db.execute(query)).scalars().all())
    if banners:
        await db.execute(
            update(Banner)
            .where(Banner.id.in_([banner.id for banner in banners]))
            .values(impressions=Banner.impressions + 1)
        )
        await db.commit()
    return banners


@router.post("/banners/{banner_id}/click")
async def record_banner_click(
    banner_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Count a click and hand back the link to follow."""
    banner = await db.get(Banner, banner_id)
    if not banner or not banner.is_active:
        raise HTTPException(status_code=404, detail="Banner not found")

    await db.execute(
        update(Banner)
        .where(Banner.id == banner_id)
        .values(click_count=Banner.click_count + 1)
    )
    await db.commit()
    return {"success": True, "link_url": banner.link_url}
