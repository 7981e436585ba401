"""Local user profiles keyed by the auth subject."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.accounts_service.models.enums import (
    AccountType,
    CompanyRole,
    KYCStatus,
    OnboardingStep,
    RiskLevel,
    VerificationLevel,
    enum_values,
)
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

if TYPE_CHECKING:
    from .company import Company


class User(Base):
    """Account profile, company membership and verification state.

    Other services reference users by ``auth_id`` (the token subject),
    never by this table's primary key.
    """

    __tablename__ = "accounts_users"

    # Identity
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    auth_id: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    role: Mapped[str] = mapped_column(
        String(50), default="customer", server_default="customer"
    )

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    email_verified: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )

    # Company membership
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(
            AccountType,
            values_callable=enum_values,
            name="accounts_account_type_enum",
        ),
        default=AccountType.INDIVIDUAL,
        server_default="individual",
    )
    company_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("accounts_companies.id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    company_role: Mapped[Optional[CompanyRole]] = mapped_column(
        SAEnum(
            CompanyRole,
            values_callable=enum_values,
            name="accounts_company_role_enum",
        ),
        nullable=True,
    )
    invited_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    invited_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Verification
    kyc_status: Mapped[KYCStatus] = mapped_column(
        SAEnum(
            KYCStatus,
            values_callable=enum_values,
            name="accounts_kyc_status_enum",
        ),
        default=KYCStatus.NOT_STARTED,
        server_default="not_started",
    )
    kyb_status: Mapped[KYCStatus] = mapped_column(
        SAEnum(
            KYCStatus,
            values_callable=enum_values,
            name="accounts_kyc_status_enum",
        ),
        default=KYCStatus.NOT_STARTED,
        server_default="not_started",
    )
    verification_level: Mapped[VerificationLevel] = mapped_column(
        SAEnum(
            VerificationLevel,
            values_callable=enum_values,
            name="accounts_verification_level_enum",
        ),
        default=VerificationLevel.BASIC,
        server_default="basic",
    )
    onboarding_step: Mapped[OnboardingStep] = mapped_column(
        SAEnum(
            OnboardingStep,
            values_callable=enum_values,
            name="accounts_onboarding_step_enum",
        ),
        default=OnboardingStep.REGISTRATION,
        server_default="registration",
    )

    # Risk
    risk_score: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    risk_level: Mapped[RiskLevel] = mapped_column(
        SAEnum(
            RiskLevel,
            values_callable=enum_values,
            name="accounts_risk_level_enum",
        ),
        default=RiskLevel.LOW,
        server_default="low",
    )
    last_risk_assessment: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    company: Mapped[Optional["Company"]] = relationship(
        "Company", back_populates="users"
    )

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.last_name]
        return " ".join(part for part in parts if part) or (self.email or "")

    def __repr__(self):
        return f"<User {self.auth_id} {self.account_type.value}>"
