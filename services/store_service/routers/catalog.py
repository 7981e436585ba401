"""Store catalog router: categories, brands, products."""

import uuid
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from libs.db.session import get_async_db
from services.store_service.models import Brand, Category, Product
from services.store_service.routers._helpers import page_count
from services.store_service.schemas import (
    BrandResponse,
    CategoryResponse,
    CategoryWithChildren,
    ProductFiltersResponse,
    ProductListResponse,
    ProductResponse,
)
from services.store_service.services.catalog import get_filter_facets
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


# ============================================================================
# CATALOG - CATEGORIES
# ============================================================================


@router.get("/categories", response_model=list[CategoryWithChildren])
async def list_categories(
    db: AsyncSession = Depends(get_async_db),
):
    """List active categories as a tree of top-level categories."""
    query = (
        select(Category)
        .where(Category.is_active.is_(True))
        .order_by(Category.sort_order, Category.name)
    )
    result = await db.execute(query)
    categories = result.scalars().all()

    # children is filled below; validating the ORM row would lazy-load it
    nodes = {
        category.id: CategoryWithChildren(
            **CategoryResponse.model_validate(category).model_dump()
        )
        for category in categories
    }
    roots = []
    for category in categories:
        node = nodes[category.id]
        parent = nodes.get(category.parent_id) if category.parent_id else None
        if parent is not None:
            parent.children.append(node)
        else:
            roots.append(node)
    return roots


@router.get("/categories/{slug}", response_model=CategoryResponse)
async def get_category(
    slug: str,
    db: AsyncSession = Depends(get_async_db),
):
    """Get category by slug."""
    query = select(Category).where(Category.slug == slug, Category.is_active.is_(True))
    result = await db.execute(query)
    category = result.scalar_one_or_none()
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


# ============================================================================
# CATALOG - BRANDS
# ============================================================================


@router.get("/brands", response_model=list[BrandResponse])
async def list_brands(
    db: AsyncSession = Depends(get_async_db),
):
    """List active brands."""
    query = select(Brand).where(Brand.is_active.is_(True)).order_by(Brand.name)
    result = await db.execute(query)
    return result.scalars().all()


# ============================================================================
# CATALOG - PRODUCTS
# ============================================================================


@router.get("/products", response_model=ProductListResponse)
async def list_products(
    category_id: Optional[uuid.UUID] = None,
    category_slug: Optional[str] = None,
    brand_id: Optional[uuid.UUID] = None,
    search: Optional[str] = Query(None, max_length=100),
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    in_stock: Optional[bool] = None,
    featured: Optional[bool] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_db),
):
    """Browse products with filtering and pagination."""
    query = select(Product).where(Product.is_active.is_(True))

    if category_id:
        query = query.where(Product.category_id == category_id)
    if category_slug:
        query = query.join(Category).where(Category.slug == category_slug)
    if brand_id:
        query = query.where(Product.brand_id == brand_id)

    if search:
        search_term = f"%{search}%"
        query = query.where(
            Product.name.ilike(search_term) | Product.description.ilike(search_term)
        )

    if min_price is not None:
        query = query.where(Product.price >= min_price)
    if max_price is not None:
        query = query.where(Product.price <= max_price)
    if in_stock is True:
        query = query.where(Product.stock > 0)
    elif in_stock is False:
        query = query.where(Product.stock == 0)
    if featured is not None:
        query = query.where(Product.is_featured == featured)

    # Count total
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Product.is_featured.desc(), Product.name)
    query = query.offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)
    products = result.scalars().all()

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=page_count(total, page_size),
    )


@router.get("/products/filters", response_model=ProductFiltersResponse)
async def product_filters(
    db: AsyncSession = Depends(get_async_db),
):
    """Filter options with product counts for the catalog sidebar."""
    return await get_filter_facets(db)


@router.get("/products/{product_ref}", response_model=ProductResponse)
async def get_product(
    product_ref: str,
    db: AsyncSession = Depends(get_async_db),
):
    """Get an active product by id or slug."""
    try:
        condition = Product.id == uuid.UUID(product_ref)
    except ValueError:
        condition = Product.slug == product_ref

    query = select(Product).where(condition, Product.is_active.is_(True))
    product = (await db.execute(query)).scalar_one_or_none()
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
