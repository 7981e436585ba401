"""Store after-sales models: returns and refunds."""

import random
import string
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import (
    ItemCondition,
    RefundStatus,
    RefundType,
    ReturnStatus,
    enum_values,
)
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


def _reference(prefix: str) -> str:
    date_part = utc_now().strftime("%y%m%d")
    random_part = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"{prefix}-{date_part}-{random_part}"


class OrderReturn(Base):
    """Customer return requests. Reviewed by an admin."""

    __tablename__ = "store_order_returns"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    return_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_orders.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    status: Mapped[ReturnStatus] = mapped_column(
        SAEnum(
            ReturnStatus,
            values_callable=enum_values,
            name="store_return_status_enum",
        ),
        default=ReturnStatus.REQUESTED,
        server_default="requested",
    )
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    images: Mapped[list] = mapped_column(JSONType, default=list)

    # Review
    reviewed_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    order = relationship("Order", back_populates="returns")
    items = relationship(
        "OrderReturnItem", back_populates="order_return", cascade="all, delete-orphan"
    )
    refunds = relationship("OrderRefund", back_populates="order_return")

    @staticmethod
    def generate_return_number() -> str:
        return _reference("RET")

    def __repr__(self):
        return f"<OrderReturn {self.return_number} status={self.status}>"


class OrderReturnItem(Base):
    """Line items of a return request."""

    __tablename__ = "store_order_return_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    return_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_order_returns.id", ondelete="CASCADE"), nullable=False
    )
    order_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_order_items.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    condition: Mapped[ItemCondition] = mapped_column(
        SAEnum(
            ItemCondition,
            values_callable=enum_values,
            name="store_item_condition_enum",
        ),
        default=ItemCondition.UNOPENED,
        server_default="unopened",
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="store_return_item_positive_quantity"),
    )

    order_return = relationship("OrderReturn", back_populates="items")
    order_item = relationship("OrderItem")

    def __repr__(self):
        return f"<OrderReturnItem item={self.order_item_id} qty={self.quantity}>"


class OrderRefund(Base):
    """Append-only refund records."""

    __tablename__ = "store_order_refunds"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    refund_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("store_orders.id", ondelete="CASCADE"), nullable=False
    )
    return_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("store_order_returns.id", ondelete="SET NULL"), nullable=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    type: Mapped[RefundType] = mapped_column(
        SAEnum(
            RefundType,
            values_callable=enum_values,
            name="store_refund_type_enum",
        ),
        nullable=False,
    )
    status: Mapped[RefundStatus] = mapped_column(
        SAEnum(
            RefundStatus,
            values_callable=enum_values,
            name="store_refund_status_enum",
        ),
        default=RefundStatus.PROCESSING,
        server_default="processing",
    )
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    processed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="store_refund_positive_amount"),
    )

    order = relationship("Order", back_populates="refunds")
    order_return = relationship("OrderReturn", back_populates="refunds")

    @staticmethod
    def generate_refund_number() -> str:
        return _reference("REF")

    def __repr__(self):
        return f"<OrderRefund {self.refund_number} {self.type} {self.amount}>"
