"""Accounts Service models package.

Re-exports all models and enums so that Alembic and SQLAlchemy's mapper
registry see every model class on import.

Model definitions are split across:
  - models/user.py    -- User profiles
  - models/company.py -- Company, CompanySettings, UserInvitation
  - models/kyc.py     -- OnboardingSession, VerificationDocument
"""

from services.accounts_service.models.company import (  # noqa: F401
    Company,
    CompanySettings,
    UserInvitation,
    generate_invitation_token,
)
from services.accounts_service.models.enums import (  # noqa: F401
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
from services.accounts_service.models.kyc import (  # noqa: F401
    OnboardingSession,
    VerificationDocument,
)
from services.accounts_service.models.user import User  # noqa: F401

__all__ = [
    "AccountType",
    "CatalogMode",
    "Company",
    "CompanyAccountType",
    "CompanyRole",
    "CompanySettings",
    "DocumentCategory",
    "DocumentStatus",
    "DocumentType",
    "InvitationStatus",
    "KYCStatus",
    "OnboardingSession",
    "OnboardingStep",
    "RiskLevel",
    "User",
    "UserInvitation",
    "VerificationDocument",
    "VerificationLevel",
    "generate_invitation_token",
]
