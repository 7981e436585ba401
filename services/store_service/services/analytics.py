"""Admin dashboard figures and order reports."""

import csv
import io
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import format_aed, to_money
from libs.common.datetime_utils import date_range, ensure_utc, utc_now
from libs.common.pdf import generate_table_report_pdf
from services.store_service.models import (
    Category,
    Order,
    OrderItem,
    OrderStatus,
    Product,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

# Orders that never turned into revenue
NON_REVENUE_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
)

EXPORT_HEADERS = [
    "Order Number",
    "Date",
    "Customer",
    "Status",
    "Items",
    "Subtotal",
    "Discount",
    "Total",
]


async def get_sales_analytics(db: AsyncSession, days: int = 30) -> dict:
    """Delivered order revenue per day, zero-filled."""
    today = utc_now().date()
    start = today - timedelta(days=days - 1)
    start_at = datetime.combine(start, datetime.min.time()).replace(
        tzinfo=utc_now().tzinfo
    )

    result = await db.execute(
        select(Order.created_at, Order.total).where(
            Order.status == OrderStatus.DELIVERED,
            Order.created_at >= start_at,
        )
    )

    revenue = defaultdict(Decimal)
    counts = defaultdict(int)
    for created_at, total in result.all():
        day = ensure_utc(created_at).date()
        revenue[day] += total
        counts[day] += 1

    data = [
        {
            "date": day.isoformat(),
            "revenue": to_money(revenue[day]),
            "orders": counts[day],
        }
        for day in date_range(start, today)
    ]
    return {
        "period_days": days,
        "total_revenue": to_money(sum(revenue.values(), Decimal("0"))),
        "total_orders": sum(counts.values()),
        "data": data,
    }


async def get_dashboard_summary(db: AsyncSession, *, recent_limit: int = 10) -> dict:
    settings = get_settings()

    total_revenue = await db.scalar(
        select(func.coalesce(func.sum(Order.total), 0)).where(
            Order.status.not_in(NON_REVENUE_STATUSES)
        )
    )
    total_orders = await db.scalar(select(func.count(Order.id)))
    total_customers = await db.scalar(select(func.count(func.distinct(Order.user_id))))
    total_products = await db.scalar(
        select(func.count(Product.id)).where(Product.is_active.is_(True))
    )

    status_rows = await db.execute(
        select(Order.status, func.count(Order.id)).group_by(Order.status)
    )
    orders_by_status = {row[0].value: row[1] for row in status_rows.all()}

    low_stock = await db.execute(
        select(Product)
        .where(
            Product.is_active.is_(True),
            Product.stock <= settings.LOW_STOCK_THRESHOLD,
        )
        .order_by(Product.stock.asc())
        .limit(20)
    )
    recent = await db.execute(
        select(Order)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
        .limit(recent_limit)
    )

    return {
        "total_revenue": to_money(total_revenue or 0),
        "total_orders": total_orders or 0,
        "total_customers": total_customers or 0,
        "total_products": total_products or 0,
        "pending_orders": orders_by_status.get(OrderStatus.PENDING.value, 0),
        "orders_by_status": orders_by_status,
        "low_stock_products": list(low_stock.scalars().all()),
        "recent_orders": list(recent.scalars().all()),
    }


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


async def get_orders_for_export(
    db: AsyncSession,
    *,
    status: Optional[OrderStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> list[Order]:
    query = select(Order).options(selectinload(Order.items))
    if status:
        query = query.where(Order.status == status)
    if start_date:
        query = query.where(Order.created_at >= start_date)
    if end_date:
        query = query.where(Order.created_at <= end_date)
    result = await db.execute(query.order_by(Order.created_at.desc()))
    return list(result.scalars().all())


def _export_row(order: Order) -> list[str]:
    return [
        order.order_number,
        ensure_utc(order.created_at).strftime("%Y-%m-%d %H:%M"),
        order.customer_email or order.user_id,
        order.status.value,
        str(sum(item.quantity for item in order.items)),
        str(to_money(order.subtotal)),
        str(to_money(order.discount_total or 0)),
        str(to_money(order.total)),
    ]


def render_orders_csv(orders: list[Order]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADERS)
    for order in orders:
        writer.writerow(_export_row(order))
    return buffer.getvalue()


def render_orders_pdf(orders: list[Order], subtitle: Optional[str] = None) -> bytes:
    revenue = sum((order.total for order in orders), Decimal("0"))
    return generate_table_report_pdf(
        title="Orders Report",
        headers=EXPORT_HEADERS,
        rows=[_export_row(order) for order in orders],
        summary=[
            ("Orders", str(len(orders))),
            ("Order value", format_aed(revenue)),
        ],
        subtitle=subtitle,
        generated_at=utc_now(),
    )


async def get_category_performance(db: AsyncSession) -> list[dict]:
    """Delivered revenue per category, highest first.

    ``order_count`` counts distinct delivered orders containing the category;
    ``percentage`` is the category's share of all delivered revenue.
    """
    categories = (
        await db.execute(select(Category.id, Category.name).order_by(Category.name))
    ).all()
    count_rows = await db.execute(
        select(Product.category_id, func.count(Product.id)).group_by(
            Product.category_id
        )
    )
    product_counts = dict(count_rows.all())

    sold = await db.execute(
        select(
            Product.category_id,
            OrderItem.order_id,
            OrderItem.price,
            OrderItem.quantity,
        )
        .select_from(OrderItem)
        .join(Product, Product.id == OrderItem.product_id)
        .join(Order, Order.id == OrderItem.order_id)
        .where(Order.status == OrderStatus.DELIVERED)
    )
    revenue = defaultdict(Decimal)
    units = defaultdict(int)
    orders = defaultdict(set)
    for category_id, order_id, price, quantity in sold.all():
        revenue[category_id] += price * quantity
        units[category_id] += quantity
        orders[category_id].add(order_id)

    total_revenue = sum(revenue.values(), Decimal("0"))
    rows = [
        {
            "category_id": category_id,
            "name": name,
            "revenue": to_money(revenue[category_id]),
            "product_count": product_counts.get(category_id, 0),
            "order_count": len(orders[category_id]),
            "units_sold": units[category_id],
            "percentage": (
                round(float(revenue[category_id] / total_revenue * 100), 2)
                if total_revenue
                else 0.0
            ),
        }
        for category_id, name in categories
    ]
    rows.sort(key=lambda row: row["revenue"], reverse=True)
    return rows
