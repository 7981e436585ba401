"""Product listing filter options."""

from collections import Counter
from decimal import ROUND_HALF_UP, Decimal

from libs.common.currency import to_money
from services.store_service.models import Brand, Category, Product, ProductReview
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

# Upper bound for the price slider when the catalog is empty
DEFAULT_MAX_PRICE = Decimal("5000")


def star_bucket(average) -> int:
    """Round an average rating half-up to whole stars (3.5 -> 4)."""
    return int(Decimal(str(average)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def get_filter_facets(db: AsyncSession) -> dict:
    """Categories, brands, price range, ratings and stock counts of active products.

    Every active category is listed (count may be zero); brands without an
    active product are left out and the rest are ordered by product count.
    Each reviewed product counts once, in the bucket of its average rating.
    """
    active = Product.is_active.is_(True)

    category_rows = await db.execute(
        select(Category.id, Category.name, func.count(Product.id))
        .outerjoin(Product, (Product.category_id == Category.id) & active)
        .where(Category.is_active.is_(True))
        .group_by(Category.id, Category.name)
        .order_by(Category.name)
    )
    categories = [
        {"id": row[0], "name": row[1], "count": row[2]} for row in category_rows.all()
    ]

    product_count = func.count(Product.id).label("product_count")
    brand_rows = await db.execute(
        select(Brand.id, Brand.name, product_count)
        .join(Product, Product.brand_id == Brand.id)
        .where(active, Brand.is_active.is_(True))
        .group_by(Brand.id, Brand.name)
        .order_by(product_count.desc(), Brand.name)
    )
    brands = [
        {"id": row[0], "name": row[1], "count": row[2]} for row in brand_rows.all()
    ]

    price_stats = await db.execute(
        select(func.min(Product.price), func.max(Product.price)).where(active)
    )
    lowest, highest = price_stats.one()

    averages = await db.execute(
        select(func.avg(ProductReview.rating))
        .select_from(ProductReview)
        .join(Product, Product.id == ProductReview.product_id)
        .where(active)
        .group_by(ProductReview.product_id)
    )
    buckets = Counter(star_bucket(average) for (average,) in averages.all())

    in_stock = await db.scalar(
        select(func.count(Product.id)).where(active, Product.stock > 0)
    )
    out_of_stock = await db.scalar(
        select(func.count(Product.id)).where(active, Product.stock <= 0)
    )

    return {
        "categories": categories,
        "brands": brands,
        "price_range": {
            "min": to_money(lowest if lowest is not None else 0),
            "max": to_money(highest if highest is not None else DEFAULT_MAX_PRICE),
        },
        "ratings": [
            {"stars": stars, "count": buckets.get(stars, 0)}
            for stars in range(5, 0, -1)
        ],
        "availability": {
            "in_stock": in_stock or 0,
            "out_of_stock": out_of_stock or 0,
            "total": (in_stock or 0) + (out_of_stock or 0),
        },
    }
