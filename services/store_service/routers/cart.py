"""Store cart router: one server-side cart per signed-in customer."""

import uuid
from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Cart, CartItem, Product
from services.store_service.schemas import (
    CartItemAdd,
    CartItemResponse,
    CartItemUpdate,
    CartResponse,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["store"])


# ============================================================================
# CART HELPERS
# ============================================================================


async def get_or_create_cart(db: AsyncSession, user_id: str) -> Cart:
    """Get the user's cart (items and products loaded), creating it if needed."""
    query = (
        select(Cart)
        .where(Cart.user_id == user_id)
        .options(selectinload(Cart.items).selectinload(CartItem.product))
        .execution_options(populate_existing=True)
    )
    cart = (await db.execute(query)).scalar_one_or_none()
    if cart:
        return cart

    cart = Cart(user_id=user_id, items=[])
    db.add(cart)
    await db.commit()
    return cart


async def add_cart_item(
    db: AsyncSession, cart: Cart, product: Product, quantity: int
) -> CartItem:
    """Add ``quantity`` of a product, merging with an existing line."""
    existing = next(
        (item for item in cart.items if item.product_id == product.id), None
    )
    new_quantity = quantity + (existing.quantity if existing else 0)
    if product.stock < new_quantity:
        raise HTTPException(
            status_code=400, detail=f"Only {product.stock} available"
        )

    if existing:
        existing.quantity = new_quantity
        return existing

    item = CartItem(cart_id=cart.id, product_id=product.id, quantity=quantity)
    item.product = product
    cart.items.append(item)
    return item


def build_cart_response(cart: Cart) -> CartResponse:
    """Cart with current prices and stock."""
    items = []
    subtotal = Decimal("0")
    for item in cart.items:
        product = item.product
        line_total = product.price * item.quantity
        subtotal += line_total
        items.append(
            CartItemResponse(
                id=item.id,
                product_id=item.product_id,
                product_name=product.name,
                product_image=product.images[0] if product.images else None,
                price=product.price,
                quantity=item.quantity,
                line_total=line_total,
                in_stock=product.is_active and product.stock >= item.quantity,
            )
        )

    return CartResponse(
        id=cart.id,
        items=items,
        item_count=sum(item.quantity for item in cart.items),
        subtotal=subtotal,
    )


async def _get_active_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    product = await db.get(Product, product_id)
    if not product or not product.is_active:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# ============================================================================
# CART ENDPOINTS
# ============================================================================


@router.get("/cart", response_model=CartResponse)
async def get_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get current cart."""
    cart = await get_or_create_cart(db, current_user.user_id)
    return build_cart_response(cart)


@router.post("/cart/items", response_model=CartResponse)
async def add_to_cart(
    item_in: CartItemAdd,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add item to cart."""
    cart = await get_or_create_cart(db, current_user.user_id)
    product = await _get_active_product(db, item_in.product_id)
    await add_cart_item(db, cart, product, item_in.quantity)
    await db.commit()

    cart = await get_or_create_cart(db, current_user.user_id)
    return build_cart_response(cart)


@router.patch("/cart/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: uuid.UUID,
    item_in: CartItemUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update cart item quantity."""
    cart = await get_or_create_cart(db, current_user.user_id)
    cart_item = next((item for item in cart.items if item.id == item_id), None)
    if not cart_item:
        raise HTTPException(status_code=404, detail="Cart item not found")

    if cart_item.product.stock < item_in.quantity:
        raise HTTPException(
            status_code=400,
            detail=f"Only {cart_item.product.stock} available",
        )

    cart_item.quantity = item_in.quantity
    await db.commit()
    return build_cart_response(cart)


@router.delete("/cart/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    item_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Remove item from cart."""
    cart = await get_or_create_cart(db, current_user.user_id)
    cart_item = next((item for item in cart.items if item.id == item_id), None)
    if not cart_item:
        raise HTTPException(status_code=404, detail="Cart item not found")

    cart.items.remove(cart_item)
    await db.commit()
    return build_cart_response(cart)


@router.delete("/cart", response_model=CartResponse)
async def clear_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Remove every item from the cart."""
    cart = await get_or_create_cart(db, current_user.user_id)
    cart.items.clear()
    await db.commit()
    return build_cart_response(cart)
