"""Company models: companies, their settings and user invitations."""

import secrets
import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.accounts_service.models.enums import (
    CatalogMode,
    CompanyAccountType,
    CompanyRole,
    InvitationStatus,
    enum_values,
)
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from .user import User


class Company(Base):
    """Business customers. Members are Users with a ``company_id``."""

    __tablename__ = "accounts_companies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(100), unique=True, index=True, nullable=False
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    industry: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Address
    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # Registration
    tax_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    registration_number: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True
    )

    account_type: Mapped[CompanyAccountType] = mapped_column(
        SAEnum(
            CompanyAccountType,
            values_callable=enum_values,
            name="accounts_company_account_type_enum",
        ),
        default=CompanyAccountType.STANDARD,
        server_default="standard",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    owner_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    users: Mapped[list["User"]] = relationship("User", back_populates="company")
    settings: Mapped[Optional["CompanySettings"]] = relationship(
        "CompanySettings",
        back_populates="company",
        uselist=False,
        cascade="all, delete-orphan",
    )
    invitations: Mapped[list["UserInvitation"]] = relationship(
        "UserInvitation", back_populates="company", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Company {self.slug}>"


class CompanySettings(Base):
    """Per-company purchasing and membership rules (one row per company)."""

    __tablename__ = "accounts_company_settings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("accounts_companies.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # Ordering
    require_approval_for_orders: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    order_approval_limit: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )

    # Membership
    allow_user_invitations: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    max_users: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Catalog access
    restricted_categories: Mapped[list] = mapped_column(JSONType, default=list)
    allowed_categories: Mapped[list] = mapped_column(JSONType, default=list)
    catalog_mode: Mapped[CatalogMode] = mapped_column(
        SAEnum(
            CatalogMode,
            values_callable=enum_values,
            name="accounts_catalog_mode_enum",
        ),
        default=CatalogMode.FULL,
        server_default="full",
    )

    # Pricing
    custom_pricing_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )
    volume_discount_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )

    # Notifications
    notify_on_new_orders: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    notify_on_large_orders: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    large_order_threshold: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    company: Mapped["Company"] = relationship("Company", back_populates="settings")


def generate_invitation_token() -> str:
    return secrets.token_urlsafe(32)


class UserInvitation(Base):
    """Email invitations to join a company with a given role."""

    __tablename__ = "accounts_user_invitations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts_companies.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[CompanyRole] = mapped_column(
        SAEnum(
            CompanyRole,
            values_callable=enum_values,
            name="accounts_company_role_enum",
        ),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        index=True,
        nullable=False,
        default=generate_invitation_token,
    )
    status: Mapped[InvitationStatus] = mapped_column(
        SAEnum(
            InvitationStatus,
            values_callable=enum_values,
            name="accounts_invitation_status_enum",
        ),
        default=InvitationStatus.PENDING,
        server_default="pending",
    )
    invited_by: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    accepted_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    company: Mapped["Company"] = relationship("Company", back_populates="invitations")

    def __repr__(self):
        return f"<UserInvitation {self.email} {self.status.value}>"
