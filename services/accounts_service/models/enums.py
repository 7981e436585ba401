"""Enum definitions for accounts service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class AccountType(str, enum.Enum):
    INDIVIDUAL = "individual"
    BUSINESS = "business"


class CompanyRole(str, enum.Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    PURCHASER = "purchaser"
    VIEWER = "viewer"


class CompanyAccountType(str, enum.Enum):
    STANDARD = "standard"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class CatalogMode(str, enum.Enum):
    FULL = "full"
    RESTRICTED = "restricted"
    CUSTOM = "custom"


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class KYCStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationLevel(str, enum.Enum):
    BASIC = "basic"
    STANDARD = "standard"
    ENHANCED = "enhanced"
    PREMIUM = "premium"


class RiskLevel(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class OnboardingStep(str, enum.Enum):
    REGISTRATION = "registration"
    EMAIL_VERIFICATION = "email_verification"
    PHONE_VERIFICATION = "phone_verification"
    PROFILE_COMPLETION = "profile_completion"
    BUSINESS_INFORMATION = "business_information"
    DOCUMENT_UPLOAD = "document_upload"
    IDENTITY_VERIFICATION = "identity_verification"
    BUSINESS_VERIFICATION = "business_verification"
    RISK_ASSESSMENT = "risk_assessment"
    COMPLETED = "completed"


class DocumentType(str, enum.Enum):
    NATIONAL_ID = "national_id"
    PASSPORT = "passport"
    DRIVING_LICENSE = "driving_license"
    UTILITY_BILL = "utility_bill"
    BANK_STATEMENT = "bank_statement"
    BUSINESS_LICENSE = "business_license"
    TAX_CERTIFICATE = "tax_certificate"
    VAT_CERTIFICATE = "vat_certificate"
    CERTIFICATE_OF_INCORPORATION = "certificate_of_incorporation"
    MEMORANDUM_OF_ASSOCIATION = "memorandum_of_association"
    BOARD_RESOLUTION = "board_resolution"
    AUTHORIZED_SIGNATORY_LIST = "authorized_signatory_list"
    PROOF_OF_ADDRESS = "proof_of_address"
    FINANCIAL_STATEMENT = "financial_statement"
    BANK_LETTER = "bank_letter"
    OTHER = "other"


class DocumentCategory(str, enum.Enum):
    IDENTITY = "identity"
    ADDRESS = "address"
    FINANCIAL = "financial"
    BUSINESS = "business"
    COMPLIANCE = "compliance"


class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
