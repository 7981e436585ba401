"""Pydantic schemas for accounts service."""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator
from services.accounts_service.models import (
    AccountType,
    CatalogMode,
    CompanyAccountType,
    CompanyRole,
    DocumentCategory,
    DocumentStatus,
    DocumentType,
    InvitationStatus,
    KYCStatus,
    OnboardingStep,
    RiskLevel,
    VerificationLevel,
)

PHONE_PATTERN = r"^\+?[1-9]\d{1,14}$"
SLUG_PATTERN = r"^[a-z0-9-]+$"


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


# ============================================================================
# USER SCHEMAS
# ============================================================================


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, pattern=PHONE_PATTERN)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    auth_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: str
    is_active: bool
    email_verified: bool
    account_type: AccountType
    company_id: Optional[uuid.UUID] = None
    company_role: Optional[CompanyRole] = None
    kyc_status: KYCStatus
    kyb_status: KYCStatus
    verification_level: VerificationLevel
    onboarding_step: OnboardingStep
    created_at: datetime


class CompanyMemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    auth_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_role: Optional[CompanyRole] = None
    is_active: bool
    invited_by: Optional[str] = None
    invited_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    created_at: datetime


# ============================================================================
# COMPANY SCHEMAS
# ============================================================================


class CompanyFields(BaseModel):
    description: Optional[str] = None
    industry: Optional[str] = Field(None, max_length=100)
    website: Optional[HttpUrl] = None
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    tax_id: Optional[str] = Field(None, max_length=100)
    registration_number: Optional[str] = Field(None, max_length=100)

    # Forms send "" for untouched optional fields
    @field_validator("website", "email", mode="before")
    @classmethod
    def empty_string_is_none(cls, v):
        return _blank_to_none(v)


class CompanyCreate(CompanyFields):
    name: str = Field(..., min_length=2, max_length=200)
    slug: str = Field(..., min_length=2, max_length=100, pattern=SLUG_PATTERN)
    account_type: CompanyAccountType = CompanyAccountType.STANDARD


class CompanyUpdate(CompanyFields):
    name: Optional[str] = Field(None, min_length=2, max_length=200)


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    tax_id: Optional[str] = None
    registration_number: Optional[str] = None
    account_type: CompanyAccountType
    is_active: bool
    owner_id: str
    created_at: datetime
    updated_at: datetime


class CompanySettingsUpdate(BaseModel):
    require_approval_for_orders: Optional[bool] = None
    order_approval_limit: Optional[Decimal] = Field(None, gt=0)
    allow_user_invitations: Optional[bool] = None
    max_users: Optional[int] = Field(None, gt=0)
    restricted_categories: Optional[list[str]] = None
    allowed_categories: Optional[list[str]] = None
    catalog_mode: Optional[CatalogMode] = None
    custom_pricing_enabled: Optional[bool] = None
    volume_discount_enabled: Optional[bool] = None
    notify_on_new_orders: Optional[bool] = None
    notify_on_large_orders: Optional[bool] = None
    large_order_threshold: Optional[Decimal] = Field(None, gt=0)


class CompanySettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    company_id: uuid.UUID
    require_approval_for_orders: bool
    order_approval_limit: Optional[Decimal] = None
    allow_user_invitations: bool
    max_users: Optional[int] = None
    restricted_categories: list[str] = []
    allowed_categories: list[str] = []
    catalog_mode: CatalogMode
    custom_pricing_enabled: bool
    volume_discount_enabled: bool
    notify_on_new_orders: bool
    notify_on_large_orders: bool
    large_order_threshold: Optional[Decimal] = None


# ============================================================================
# INVITATION SCHEMAS
# ============================================================================


class InvitationCreate(BaseModel):
    email: EmailStr
    role: CompanyRole
    message: Optional[str] = Field(None, max_length=1000)


class InvitationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    company_id: uuid.UUID
    role: CompanyRole
    status: InvitationStatus
    invited_by: str
    message: Optional[str] = None
    expires_at: datetime
    accepted_by: Optional[str] = None
    accepted_at: Optional[datetime] = None
    created_at: datetime


class InvitationCompanySummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    industry: Optional[str] = None


class InvitationDetailResponse(BaseModel):
    """What an invitee sees before accepting. The token is not echoed."""

    email: str
    role: CompanyRole
    status: InvitationStatus
    message: Optional[str] = None
    expires_at: datetime
    company: InvitationCompanySummary
    inviter_name: Optional[str] = None


class MemberRoleUpdate(BaseModel):
    role: CompanyRole


class CompanyDetailResponse(CompanyResponse):
    settings: Optional[CompanySettingsResponse] = None
    users: list[CompanyMemberResponse] = []
    pending_invitations: list[InvitationResponse] = []
    user_count: int = 0


class CompanyPermissionsResponse(BaseModel):
    role: Optional[CompanyRole] = None
    can_manage_users: bool
    can_invite_users: bool
    can_place_orders: bool
    can_view_orders: bool
    can_manage_company: bool


# ============================================================================
# ONBOARDING / KYC SCHEMAS
# ============================================================================


class OnboardingInitRequest(BaseModel):
    account_type: AccountType


class OnboardingSessionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    current_step: OnboardingStep
    step_data: dict
    completed_steps: list[str]
    last_active_at: datetime
    created_at: datetime


class DocumentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    type: DocumentType
    status: DocumentStatus
    created_at: datetime


class OnboardingProgressResponse(OnboardingSessionResponse):
    account_type: AccountType
    kyc_status: KYCStatus
    kyb_status: KYCStatus
    verification_level: VerificationLevel
    progress_percentage: int
    required_documents: list[DocumentType]
    pending_documents: list[DocumentType]
    documents: list[DocumentSummary]
    can_proceed: bool


class AddressInput(BaseModel):
    street: str = Field(..., min_length=5)
    city: str = Field(..., min_length=2)
    state: Optional[str] = None
    postal_code: str = Field(..., min_length=3)
    country: str = Field(..., min_length=2)


class PersonalInfoUpdate(BaseModel):
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    phone: str = Field(..., pattern=PHONE_PATTERN)
    date_of_birth: Optional[date] = None
    nationality: Optional[str] = None
    address: Optional[AddressInput] = None


class SignatoryInput(BaseModel):
    name: str = Field(..., min_length=2)
    title: str = Field(..., min_length=2)
    email: EmailStr
    phone: Optional[str] = None


class BusinessInfoUpdate(BaseModel):
    company_name: str = Field(..., min_length=2)
    business_type: Literal[
        "LLC", "CORPORATION", "PARTNERSHIP", "SOLE_PROPRIETORSHIP", "OTHER"
    ]
    registration_number: str = Field(..., min_length=3)
    tax_id: Optional[str] = None
    vat_number: Optional[str] = None
    website: Optional[HttpUrl] = None
    business_address: AddressInput
    authorized_signatories: list[SignatoryInput] = Field(..., min_length=1)

    @field_validator("website", mode="before")
    @classmethod
    def empty_website_is_none(cls, v):
        return _blank_to_none(v)


class DocumentUpload(BaseModel):
    type: DocumentType
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: HttpUrl
    file_mime_type: str = Field(..., min_length=1, max_length=100)
    file_size: int = Field(..., gt=0)
    document_number: Optional[str] = Field(None, max_length=100)
    issued_date: Optional[date] = None
    expiry_date: Optional[date] = None
    issuing_authority: Optional[str] = Field(None, max_length=200)


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: str
    type: DocumentType
    category: DocumentCategory
    file_name: str
    file_url: str
    file_mime_type: str
    file_size: int
    document_number: Optional[str] = None
    issued_date: Optional[date] = None
    expiry_date: Optional[date] = None
    issuing_authority: Optional[str] = None
    status: DocumentStatus
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    verification_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    created_at: datetime


class DocumentVerifyRequest(BaseModel):
    approved: bool
    notes: Optional[str] = Field(None, max_length=2000)


class RiskFactors(BaseModel):
    account_age_days: int
    has_verified_documents: bool
    order_count: int
    total_spent: Decimal
    is_business_account: bool
    has_company: bool


class RiskAssessmentResponse(BaseModel):
    user_id: str
    risk_score: int
    risk_level: RiskLevel
    factors: RiskFactors
    assessed_at: datetime
