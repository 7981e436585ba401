"""Store promotion models: promotions, coupons, usage records."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import (
    PromotionStatus,
    PromotionTargetType,
    PromotionType,
    enum_values,
)
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Promotion(Base):
    """Discount rules. Promotions without a code apply automatically."""

    __tablename__ = "store_promotions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    code: Mapped[Optional[str]] = mapped_column(
        String(50), unique=True, nullable=True
    )

    type: Mapped[PromotionType] = mapped_column(
        SAEnum(
            PromotionType,
            values_callable=enum_values,
            name="store_promotion_type_enum",
        ),
        nullable=False,
    )
    target_type: Mapped[PromotionTargetType] = mapped_column(
        SAEnum(
            PromotionTargetType,
            values_callable=enum_values,
            name="store_promotion_target_type_enum",
        ),
        default=PromotionTargetType.ALL_PRODUCTS,
        server_default="all_products",
    )
    status: Mapped[PromotionStatus] = mapped_column(
        SAEnum(
            PromotionStatus,
            values_callable=enum_values,
            name="store_promotion_status_enum",
        ),
        default=PromotionStatus.DRAFT,
        server_default="draft",
    )

    # Discount
    discount_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=0, server_default="0"
    )  # percent for percentage/bulk, AED for fixed_amount
    max_discount_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )

    # Conditions
    minimum_order_value: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    maximum_order_value: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    minimum_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    maximum_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Buy X get Y
    buy_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    get_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    get_discount_percent: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(5, 2), nullable=True
    )  # null = free

    # Targeting (lists of UUID strings)
    applicable_products: Mapped[list] = mapped_column(JSONType, default=list)
    applicable_categories: Mapped[list] = mapped_column(JSONType, default=list)
    exclude_products: Mapped[list] = mapped_column(JSONType, default=list)
    exclude_categories: Mapped[list] = mapped_column(JSONType, default=list)

    # Usage
    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    usage_limit_per_customer: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )

    # Stacking
    stackable: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    priority: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    coupons = relationship(
        "Coupon", back_populates="promotion", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Promotion {self.name} {self.type}>"


class Coupon(Base):
    """Redeemable codes pointing at a promotion."""

    __tablename__ = "store_coupons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    promotion_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_promotions.id", ondelete="CASCADE"), nullable=False
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    assigned_to_user_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )

    usage_limit: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    usage_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    promotion = relationship("Promotion", back_populates="coupons")

    def __repr__(self):
        return f"<Coupon {self.code}>"


class PromotionUsage(Base):
    """One row per promotion applied to a placed order."""

    __tablename__ = "store_promotion_usages"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    promotion_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_promotions.id", ondelete="CASCADE"), nullable=False
    )
    coupon_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("store_coupons.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_orders.id", ondelete="CASCADE"), nullable=False
    )
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        Index("ix_store_promotion_usages_promotion_user", "promotion_id", "user_id"),
    )

    def __repr__(self):
        return f"<PromotionUsage promotion={self.promotion_id} order={self.order_id}>"
