"""KYC/KYB models: onboarding sessions and verification documents."""

import uuid
from datetime import date, datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.accounts_service.models.enums import (
    DocumentCategory,
    DocumentStatus,
    DocumentType,
    OnboardingStep,
    enum_values,
)
from sqlalchemy import Date, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class OnboardingSession(Base):
    """Wizard state for a user's verification journey (one per user)."""

    __tablename__ = "accounts_onboarding_sessions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    current_step: Mapped[OnboardingStep] = mapped_column(
        SAEnum(
            OnboardingStep,
            values_callable=enum_values,
            name="accounts_onboarding_step_enum",
        ),
        nullable=False,
    )
    # {"account_type": ..., "started_at": ..., "<step>": {...}}
    step_data: Mapped[dict] = mapped_column(JSONType, default=dict)
    completed_steps: Mapped[list] = mapped_column(JSONType, default=list)
    last_active_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    def __repr__(self):
        return f"<OnboardingSession {self.user_id} step={self.current_step.value}>"


class VerificationDocument(Base):
    """Uploaded identity/business documents awaiting or past review."""

    __tablename__ = "accounts_verification_documents"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[DocumentType] = mapped_column(
        SAEnum(
            DocumentType,
            values_callable=enum_values,
            name="accounts_document_type_enum",
        ),
        nullable=False,
    )
    category: Mapped[DocumentCategory] = mapped_column(
        SAEnum(
            DocumentCategory,
            values_callable=enum_values,
            name="accounts_document_category_enum",
        ),
        nullable=False,
    )

    # File
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    file_mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)

    # Document details
    document_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    issued_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    issuing_authority: Mapped[Optional[str]] = mapped_column(
        String(200), nullable=True
    )

    # Review
    status: Mapped[DocumentStatus] = mapped_column(
        SAEnum(
            DocumentStatus,
            values_callable=enum_values,
            name="accounts_document_status_enum",
        ),
        default=DocumentStatus.PENDING,
        server_default="pending",
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    verified_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    verification_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("ix_accounts_verification_documents_user_type", "user_id", "type"),
    )

    def __repr__(self):
        return f"<VerificationDocument {self.type.value} {self.status.value}>"
