"""Admin store catalog router: categories, brands, products."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.session import get_async_db
from services.store_service.models import AuditEntityType, Brand, Category, Product
from services.store_service.routers._helpers import page_count
from services.store_service.schemas import (
    BrandCreate,
    BrandResponse,
    BrandUpdate,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
)
from services.store_service.services.audit import log_audit, snapshot
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])


async def _ensure_category(db: AsyncSession, category_id: uuid.UUID) -> None:
    if not await db.get(Category, category_id):
        raise HTTPException(status_code=400, detail="Category not found")


async def _ensure_brand(db: AsyncSession, brand_id: Optional[uuid.UUID]) -> None:
    if brand_id and not await db.get(Brand, brand_id):
        raise HTTPException(status_code=400, detail="Brand not found")


# ============================================================================
# CATEGORIES
# ============================================================================


@router.get("/categories", response_model=list[CategoryResponse])
async def list_all_categories(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all categories (including inactive)."""
    query = select(Category).order_by(Category.sort_order, Category.name)
    result = await db.execute(query)
    return result.scalars().all()


@router.post(
    "/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED
)
async def create_category(
    category_in: CategoryCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a new category."""
    existing = await db.execute(
        select(Category).where(Category.slug == category_in.slug)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=400, detail="Category with this slug already exists"
        )
    if category_in.parent_id and not await db.get(Category, category_in.parent_id):
        raise HTTPException(status_code=400, detail="Parent category not found")

    category = Category(**category_in.model_dump())
    db.add(category)
    await db.flush()

    await log_audit(
        db,
        AuditEntityType.CATEGORY,
        category.id,
        "created",
        current_user.user_id,
        new_value=category_in.model_dump(mode="json"),
    )
    await db.commit()
    return category


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: uuid.UUID,
    category_in: CategoryUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a category."""
    category = await db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    update_data = category_in.model_dump(exclude_unset=True)
    if "slug" in update_data and update_data["slug"] != category.slug:
        clash = await db.execute(
            select(Category.id).where(Category.slug == update_data["slug"])
        )
        if clash.first():
            raise HTTPException(
                status_code=400, detail="Category with this slug already exists"
            )
    if update_data.get("parent_id") == category.id:
        raise HTTPException(
            status_code=400, detail="A category cannot be its own parent"
        )

    old_values = snapshot(category, *update_data)
    for field, value in update_data.items():
        setattr(category, field, value)

    await log_audit(
        db,
        AuditEntityType.CATEGORY,
        category.id,
        "updated",
        current_user.user_id,
        old_value=old_values,
        new_value=category_in.model_dump(mode="json", exclude_unset=True),
    )
    await db.commit()
    return category


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a category that has no products and no subcategories."""
    category = await db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")

    product_count = await db.scalar(
        select(func.count(Product.id)).where(Product.category_id == category_id)
    )
    if product_count:
        raise HTTPException(
            status_code=400, detail="Cannot delete a category that has products"
        )
    child_count = await db.scalar(
        select(func.count(Category.id)).where(Category.parent_id == category_id)
    )
    if child_count:
        raise HTTPException(
            status_code=400, detail="Cannot delete a category that has subcategories"
        )

    await log_audit(
        db,
        AuditEntityType.CATEGORY,
        category.id,
        "deleted",
        current_user.user_id,
        old_value=snapshot(category, "name", "slug"),
    )
    await db.delete(category)
    await db.commit()
    return None


# ============================================================================
# BRANDS
# ============================================================================


@router.get("/brands", response_model=list[BrandResponse])
async def list_all_brands(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(select(Brand).order_by(Brand.name))
    return result.scalars().all()


@router.post(
    "/brands", response_model=BrandResponse, status_code=status.HTTP_201_CREATED
)
async def create_brand(
    brand_in: BrandCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a brand. Names are unique (case-insensitive)."""
    existing = await db.execute(
        select(Brand.id).where(func.lower(Brand.name) == brand_in.name.lower())
    )
    if existing.first():
        raise HTTPException(
            status_code=400, detail="Brand with this name already exists"
        )

    brand = Brand(**brand_in.model_dump())
    db.add(brand)
    await db.flush()

    await log_audit(
        db,
        AuditEntityType.BRAND,
        brand.id,
        "created",
        current_user.user_id,
        new_value=brand_in.model_dump(mode="json"),
    )
    await db.commit()
    return brand


@router.patch("/brands/{brand_id}", response_model=BrandResponse)
async def update_brand(
    brand_id: uuid.UUID,
    brand_in: BrandUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    brand = await db.get(Brand, brand_id)
    if not brand:
        raise HTTPException(status_code=404, detail="Brand not found")

    update_data = brand_in.model_dump(exclude_unset=True)
    new_name = update_data.get("name")
    if new_name and new_name.lower() != brand.name.lower():
        clash = await db.execute(
            select(Brand.id).where(func.lower(Brand.name) == new_name.lower())
        )
        if clash.first():
            raise HTTPException(
                status_code=400, detail="Brand with this name already exists"
            )

    old_values = snapshot(brand, *update_data)
    for field, value in update_data.items():
        setattr(brand, field, value)

    await log_audit(
        db,
        AuditEntityType.BRAND,
        brand.id,
        "updated",
        current_user.user_id,
        old_value=old_values,
        new_value=brand_in.model_dump(mode="json", exclude_unset=True),
    )
    await db.commit()
    return brand


@router.delete("/brands/{brand_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_brand(
    brand_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete a brand that no product uses."""
    brand = await db.get(Brand, brand_id)
    if not brand:
        raise HTTPException(status_code=404, detail="Brand not found")

    product_count = await db.scalar(
        select(func.count(Product.id)).where(Product.brand_id == brand_id)
    )
    if product_count:
        raise HTTPException(
            status_code=400, detail="Cannot delete a brand that has products"
        )

    await log_audit(
        db,
        AuditEntityType.BRAND,
        brand.id,
        "deleted",
        current_user.user_id,
        old_value=snapshot(brand, "name"),
    )
    await db.delete(brand)
    await db.commit()
    return None


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("/products", response_model=ProductListResponse)
async def list_all_products(
    search: Optional[str] = Query(None, max_length=100),
    category_id: Optional[uuid.UUID] = None,
    is_active: Optional[bool] = None,
    low_stock: bool = False,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all products (including inactive)."""
    query = select(Product)

    if search:
        search_term = f"%{search}%"
        query = query.where(
            Product.name.ilike(search_term) | Product.slug.ilike(search_term)
        )
    if category_id:
        query = query.where(Product.category_id == category_id)
    if is_active is not None:
        query = query.where(Product.is_active == is_active)
    if low_stock:
        query = query.where(Product.stock <= get_settings().LOW_STOCK_THRESHOLD)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Product.created_at.desc())
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


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product_admin(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post(
    "/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a new product."""
    existing = await db.execute(select(Product.id).where(Product.slug == product_in.slug))
    if existing.first():
        raise HTTPException(
            status_code=400, detail="Product with this slug already exists"
        )
    await _ensure_category(db, product_in.category_id)
    await _ensure_brand(db, product_in.brand_id)

    product = Product(**product_in.model_dump())
    db.add(product)
    await db.flush()

    await log_audit(
        db,
        AuditEntityType.PRODUCT,
        product.id,
        "created",
        current_user.user_id,
        new_value=product_in.model_dump(mode="json"),
    )
    await db.commit()
    return product


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a product. Stock changes get their own audit entry."""
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    update_data = product_in.model_dump(exclude_unset=True)
    if "slug" in update_data and update_data["slug"] != product.slug:
        clash = await db.execute(
            select(Product.id).where(Product.slug == update_data["slug"])
        )
        if clash.first():
            raise HTTPException(
                status_code=400, detail="Product with this slug already exists"
            )
    if update_data.get("category_id"):
        await _ensure_category(db, update_data["category_id"])
    if update_data.get("brand_id"):
        await _ensure_brand(db, update_data["brand_id"])

    old_stock = product.stock
    old_values = snapshot(product, *update_data)
    for field, value in update_data.items():
        setattr(product, field, value)

    await log_audit(
        db,
        AuditEntityType.PRODUCT,
        product.id,
        "updated",
        current_user.user_id,
        old_value=old_values,
        new_value=product_in.model_dump(mode="json", exclude_unset=True),
    )
    if "stock" in update_data and update_data["stock"] != old_stock:
        await log_audit(
            db,
            AuditEntityType.PRODUCT,
            product.id,
            "stock_adjusted",
            current_user.user_id,
            old_value={"stock": old_stock},
            new_value={"stock": update_data["stock"]},
        )

    await db.commit()
    return product


@router.post(
    "/products/{product_id}/duplicate",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Copy a product as an inactive draft with no stock."""
    source = await db.get(Product, product_id)
    if not source:
        raise HTTPException(status_code=404, detail="Product not found")

    slug = f"{source.slug}-copy"
    suffix = 2
    while (await db.execute(select(Product.id).where(Product.slug == slug))).first():
        slug = f"{source.slug}-copy-{suffix}"
        suffix += 1

    product = Product(
        name=f"{source.name} (Copy)",
        slug=slug,
        description=source.description,
        price=source.price,
        compare_at_price=source.compare_at_price,
        stock=0,
        images=list(source.images or []),
        category_id=source.category_id,
        brand_id=source.brand_id,
        is_active=False,
        is_featured=False,
    )
    db.add(product)
    await db.flush()

    await log_audit(
        db,
        AuditEntityType.PRODUCT,
        product.id,
        "duplicated",
        current_user.user_id,
        new_value={"source_id": str(source.id), "slug": slug},
    )
    await db.commit()
    return product


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def archive_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Archive a product (soft delete by setting is_active=False)."""
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    product.is_active = False
    await log_audit(
        db, AuditEntityType.PRODUCT, product.id, "archived", current_user.user_id
    )
    await db.commit()
    return None
