"""Store reviews router: product star ratings."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.store_service.models import Product, ProductReview
from services.store_service.schemas import (
    ReviewCreate,
    ReviewListResponse,
    ReviewResponse,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])
logger = get_logger(__name__)


@router.get("/products/{product_id}/reviews", response_model=ReviewListResponse)
async def list_reviews(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Reviews of a product, newest first, with the average rating."""
    result = await db.execute(
        select(ProductReview)
        .where(ProductReview.product_id == product_id)
        .order_by(ProductReview.created_at.desc())
    )
    reviews = list(result.scalars().all())

    total = len(reviews)
    average = round(sum(r.rating for r in reviews) / total, 2) if total else 0.0
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews],
        average_rating=average,
        total_reviews=total,
    )


@router.post(
    "/products/{product_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
@api_limit
async def create_review(
    request: Request,
    product_id: uuid.UUID,
    payload: ReviewCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Rate a product. Each customer reviews a product once."""
    existing = await db.execute(
        select(ProductReview.id).where(
            ProductReview.user_id == current_user.user_id,
            ProductReview.product_id == product_id,
        )
    )
    if existing.first():
        raise HTTPException(
            status_code=400, detail="You have already reviewed this product"
        )

    product = await db.get(Product, product_id)
    if not product or not product.is_active:
        raise HTTPException(status_code=404, detail="Product not found")

    review = ProductReview(
        product_id=product.id,
        user_id=current_user.user_id,
        reviewer_name=current_user.name,
        rating=payload.rating,
        comment=payload.comment,
    )
    db.add(review)
    await db.commit()

    logger.info(
        "Review added for product %s",
        product.slug,
        extra={"extra_fields": {"rating": review.rating}},
    )
    return review
