"""Admin analytics router: sales chart, category performance and dashboard."""

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.schemas import (
    CategoryPerformance,
    DashboardResponse,
    SalesAnalyticsResponse,
)
from services.store_service.services import analytics
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


@router.get("/analytics/sales", response_model=SalesAnalyticsResponse)
async def sales_analytics(
    days: int = Query(30, ge=1, le=365),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Daily revenue from delivered orders over the last ``days`` days."""
    return await analytics.get_sales_analytics(db, days=days)


@router.get("/analytics/categories", response_model=list[CategoryPerformance])
async def category_analytics(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Revenue, units and order counts per category from delivered orders."""
    return await analytics.get_category_performance(db)


@router.get("/analytics/dashboard", response_model=DashboardResponse)
async def dashboard(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await analytics.get_dashboard_summary(db)
