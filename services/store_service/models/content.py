"""Storefront content models: banners."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import BannerPosition, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Banner(Base):
    """Promotional banners shown on the storefront."""

    __tablename__ = "store_banners"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[str] = mapped_column(String(512), nullable=False)
    link_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    link_text: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    position: Mapped[BannerPosition] = mapped_column(
        SAEnum(
            BannerPosition,
            values_callable=enum_values,
            name="store_banner_position_enum",
        ),
        default=BannerPosition.HERO,
        server_default="hero",
    )
    display_order: Mapped[int] = mapped_column(Integer, default=1, server_default="1")
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Analytics
    click_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    impressions: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "display_order >= 1",
            name="store_banner_display_order_positive",
        ),
        Index("ix_store_banners_position_order", "position", "display_order"),
    )

    @property
    def click_through_rate(self) -> float:
        if not self.impressions:
            return 0.0
        return round(self.click_count / self.impressions * 100, 2)

    def __repr__(self):
        return f"<Banner {self.title} {self.position}:{self.display_order}>"
