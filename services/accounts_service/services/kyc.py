"""KYC/KYB onboarding, document review and risk assessment."""

import math
import uuid
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException, status
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.accounts_service.models import (
    AccountType,
    DocumentCategory,
    DocumentStatus,
    DocumentType,
    KYCStatus,
    OnboardingSession,
    OnboardingStep,
    RiskLevel,
    User,
    VerificationDocument,
    VerificationLevel,
)
from services.accounts_service.schemas import (
    BusinessInfoUpdate,
    DocumentUpload,
    PersonalInfoUpdate,
)
from services.accounts_service.services.users import require_user
from services.communications_service.services.notifications import (
    send_templated_notification,
)
from services.store_service.models import Order
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

TOTAL_STEPS = {AccountType.BUSINESS: 10, AccountType.INDIVIDUAL: 8}

IDENTITY_DOCUMENTS = (
    DocumentType.NATIONAL_ID,
    DocumentType.PASSPORT,
    DocumentType.DRIVING_LICENSE,
)
ADDRESS_DOCUMENTS = (DocumentType.UTILITY_BILL, DocumentType.BANK_STATEMENT)

DOCUMENT_CATEGORIES = {
    DocumentType.NATIONAL_ID: DocumentCategory.IDENTITY,
    DocumentType.PASSPORT: DocumentCategory.IDENTITY,
    DocumentType.DRIVING_LICENSE: DocumentCategory.IDENTITY,
    DocumentType.UTILITY_BILL: DocumentCategory.ADDRESS,
    DocumentType.PROOF_OF_ADDRESS: DocumentCategory.ADDRESS,
    DocumentType.BANK_STATEMENT: DocumentCategory.FINANCIAL,
    DocumentType.FINANCIAL_STATEMENT: DocumentCategory.FINANCIAL,
    DocumentType.BANK_LETTER: DocumentCategory.FINANCIAL,
    DocumentType.BUSINESS_LICENSE: DocumentCategory.BUSINESS,
    DocumentType.TAX_CERTIFICATE: DocumentCategory.BUSINESS,
    DocumentType.VAT_CERTIFICATE: DocumentCategory.BUSINESS,
    DocumentType.CERTIFICATE_OF_INCORPORATION: DocumentCategory.BUSINESS,
    DocumentType.MEMORANDUM_OF_ASSOCIATION: DocumentCategory.BUSINESS,
    DocumentType.BOARD_RESOLUTION: DocumentCategory.BUSINESS,
    DocumentType.AUTHORIZED_SIGNATORY_LIST: DocumentCategory.BUSINESS,
}

# Risk score contributions (at most 90 in total)
RISK_NEW_ACCOUNT = 20
RISK_NO_VERIFIED_DOCUMENTS = 30
RISK_NO_ORDERS = 15
RISK_BUSINESS_WITHOUT_COMPANY = 25
NEW_ACCOUNT_DAYS = 30


def document_category(document_type: DocumentType) -> DocumentCategory:
    return DOCUMENT_CATEGORIES.get(document_type, DocumentCategory.COMPLIANCE)


def required_documents(
    account_type: AccountType, step: OnboardingStep
) -> list[DocumentType]:
    """Documents that must be on file while the user is at ``step``."""
    if account_type == AccountType.INDIVIDUAL:
        if step in (
            OnboardingStep.DOCUMENT_UPLOAD,
            OnboardingStep.IDENTITY_VERIFICATION,
        ):
            return [DocumentType.NATIONAL_ID, DocumentType.UTILITY_BILL]
        return []

    if step in (OnboardingStep.DOCUMENT_UPLOAD, OnboardingStep.BUSINESS_VERIFICATION):
        return [
            DocumentType.BUSINESS_LICENSE,
            DocumentType.TAX_CERTIFICATE,
            DocumentType.CERTIFICATE_OF_INCORPORATION,
            DocumentType.AUTHORIZED_SIGNATORY_LIST,
        ]
    return []


def risk_level_for(score: int) -> RiskLevel:
    if score >= 70:
        return RiskLevel.CRITICAL
    if score >= 50:
        return RiskLevel.HIGH
    if score >= 25:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def can_proceed(
    step: OnboardingStep, user: User, documents: list[VerificationDocument]
) -> bool:
    if step == OnboardingStep.EMAIL_VERIFICATION:
        return user.email_verified
    if step == OnboardingStep.PHONE_VERIFICATION:
        return bool(user.phone)
    if step == OnboardingStep.PROFILE_COMPLETION:
        return bool(user.first_name and user.last_name)
    if step == OnboardingStep.DOCUMENT_UPLOAD:
        uploaded = {doc.type for doc in documents}
        return all(
            doc_type in uploaded
            for doc_type in required_documents(user.account_type, step)
        )
    return True


async def _get_session(db: AsyncSession, user_id: str) -> Optional[OnboardingSession]:
    result = await db.execute(
        select(OnboardingSession).where(OnboardingSession.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def _list_documents(
    db: AsyncSession, user_id: str
) -> list[VerificationDocument]:
    result = await db.execute(
        select(VerificationDocument)
        .where(VerificationDocument.user_id == user_id)
        .order_by(VerificationDocument.created_at.desc())
    )
    return list(result.scalars().all())


async def _advance_step(
    db: AsyncSession, user: User, step: OnboardingStep, step_data: dict
) -> OnboardingSession:
    """Record ``step_data`` under ``step``, mark it complete and make it current."""
    session = await _get_session(db, user.auth_id)
    if not session:
        raise HTTPException(status_code=404, detail="Onboarding session not found")

    # JSON columns only notice reassignment, not in-place mutation
    session.step_data = {**(session.step_data or {}), step.value: step_data}
    completed = list(session.completed_steps or [])
    if step.value not in completed:
        completed.append(step.value)
    session.completed_steps = completed
    session.current_step = step
    session.last_active_at = utc_now()

    user.onboarding_step = step
    return session


# ---------------------------------------------------------------------------
# Onboarding
# ---------------------------------------------------------------------------


async def initialize_onboarding(
    db: AsyncSession, user: User, account_type: AccountType
) -> OnboardingSession:
    """Start onboarding. Calling it again returns the existing session."""
    session = await _get_session(db, user.auth_id)
    if session:
        return session

    session = OnboardingSession(
        user_id=user.auth_id,
        current_step=OnboardingStep.EMAIL_VERIFICATION,
        step_data={
            "account_type": account_type.value,
            "started_at": utc_now().isoformat(),
        },
        completed_steps=[OnboardingStep.REGISTRATION.value],
        last_active_at=utc_now(),
    )
    db.add(session)
    user.onboarding_step = OnboardingStep.EMAIL_VERIFICATION
    if not user.company_id:
        user.account_type = account_type
    await db.commit()

    logger.info(
        "Onboarding started for %s (%s)", user.auth_id, account_type.value
    )
    return session


async def get_onboarding_progress(db: AsyncSession, user: User) -> dict:
    session = await _get_session(db, user.auth_id)
    if not session:
        raise HTTPException(status_code=404, detail="Onboarding session not found")

    documents = await _list_documents(db, user.auth_id)
    total_steps = TOTAL_STEPS[user.account_type]
    completed = len(session.completed_steps or [])
    progress = min(100, round(completed / total_steps * 100))

    required = required_documents(user.account_type, session.current_step)
    uploaded = {doc.type for doc in documents}

    return {
        "id": session.id,
        "user_id": session.user_id,
        "current_step": session.current_step,
        "step_data": session.step_data or {},
        "completed_steps": session.completed_steps or [],
        "last_active_at": session.last_active_at,
        "created_at": session.created_at,
        "account_type": user.account_type,
        "kyc_status": user.kyc_status,
        "kyb_status": user.kyb_status,
        "verification_level": user.verification_level,
        "progress_percentage": progress,
        "required_documents": required,
        "pending_documents": [doc for doc in required if doc not in uploaded],
        "documents": documents,
        "can_proceed": can_proceed(session.current_step, user, documents),
    }


async def update_personal_info(
    db: AsyncSession, user: User, data: PersonalInfoUpdate
) -> OnboardingSession:
    user.first_name = data.first_name
    user.last_name = data.last_name
    user.phone = data.phone

    session = await _advance_step(
        db,
        user,
        OnboardingStep.DOCUMENT_UPLOAD,
        {
            "personal_info": data.model_dump(mode="json"),
            "completed_at": utc_now().isoformat(),
        },
    )
    await db.commit()
    return session


async def update_business_info(
    db: AsyncSession, user: User, data: BusinessInfoUpdate
) -> OnboardingSession:
    session = await _advance_step(
        db,
        user,
        OnboardingStep.DOCUMENT_UPLOAD,
        {
            "business_info": data.model_dump(mode="json"),
            "completed_at": utc_now().isoformat(),
        },
    )
    await db.commit()
    return session


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


async def upload_document(
    db: AsyncSession, user: User, data: DocumentUpload
) -> VerificationDocument:
    """Register an uploaded document. One live document per type."""
    existing = await db.execute(
        select(VerificationDocument.id).where(
            VerificationDocument.user_id == user.auth_id,
            VerificationDocument.type == data.type,
            VerificationDocument.status != DocumentStatus.REJECTED,
        )
    )
    if existing.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Document of type {data.type.value} already uploaded",
        )

    fields = data.model_dump()
    fields["file_url"] = str(data.file_url)
    document = VerificationDocument(
        **fields,
        user_id=user.auth_id,
        category=document_category(data.type),
        status=DocumentStatus.PENDING,
    )
    db.add(document)
    await db.commit()

    await _check_documents_complete(db, user)
    return document


async def list_documents(db: AsyncSession, user_id: str) -> list[VerificationDocument]:
    return await _list_documents(db, user_id)


async def _check_documents_complete(db: AsyncSession, user: User) -> None:
    """Move past document upload once every required document is approved."""
    if user.onboarding_step != OnboardingStep.DOCUMENT_UPLOAD:
        return
    documents = await _list_documents(db, user.auth_id)
    approved = {doc.type for doc in documents if doc.status == DocumentStatus.APPROVED}
    required = required_documents(user.account_type, user.onboarding_step)
    if all(doc_type in approved for doc_type in required):
        next_step = (
            OnboardingStep.BUSINESS_VERIFICATION
            if user.account_type == AccountType.BUSINESS
            else OnboardingStep.IDENTITY_VERIFICATION
        )
        await _advance_step(
            db,
            user,
            next_step,
            {"documents_completed": True, "completed_at": utc_now().isoformat()},
        )
        await db.commit()


def compute_verification_status(
    user: User, documents: list[VerificationDocument]
) -> tuple[KYCStatus, KYCStatus, VerificationLevel]:
    """(kyc_status, kyb_status, verification_level) implied by approved documents."""
    approved = {doc.type for doc in documents if doc.status == DocumentStatus.APPROVED}
    kyc_status, kyb_status = user.kyc_status, user.kyb_status
    level = user.verification_level

    if user.account_type == AccountType.INDIVIDUAL:
        has_identity = any(doc in approved for doc in IDENTITY_DOCUMENTS)
        has_address = any(doc in approved for doc in ADDRESS_DOCUMENTS)
        if has_identity and has_address:
            kyc_status, level = KYCStatus.APPROVED, VerificationLevel.ENHANCED
        elif has_identity:
            kyc_status, level = KYCStatus.IN_PROGRESS, VerificationLevel.STANDARD
    else:
        business_set = {
            DocumentType.BUSINESS_LICENSE,
            DocumentType.TAX_CERTIFICATE,
            DocumentType.CERTIFICATE_OF_INCORPORATION,
        }
        if business_set <= approved:
            kyb_status, level = KYCStatus.APPROVED, VerificationLevel.PREMIUM
        elif DocumentType.BUSINESS_LICENSE in approved:
            kyb_status, level = KYCStatus.IN_PROGRESS, VerificationLevel.ENHANCED

    return kyc_status, kyb_status, level


async def verify_document(
    db: AsyncSession,
    *,
    document_id: uuid.UUID,
    admin_id: str,
    approved: bool,
    notes: Optional[str] = None,
) -> VerificationDocument:
    """Approve or reject a document and recompute the owner's verification."""
    document = await db.get(VerificationDocument, document_id)
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    document.status = DocumentStatus.APPROVED if approved else DocumentStatus.REJECTED
    document.verified_at = utc_now() if approved else None
    document.verified_by = admin_id
    document.verification_notes = notes
    document.rejection_reason = None if approved else notes

    user = await require_user(db, document.user_id)
    documents = await _list_documents(db, user.auth_id)
    previous = (user.kyc_status, user.kyb_status)
    user.kyc_status, user.kyb_status, user.verification_level = (
        compute_verification_status(user, documents)
    )
    await db.commit()

    logger.info(
        "Document %s %s by %s",
        document.id,
        document.status.value,
        admin_id,
        extra={
            "extra_fields": {
                "user_id": user.auth_id,
                "kyc_status": user.kyc_status.value,
                "kyb_status": user.kyb_status.value,
            }
        },
    )

    await _check_documents_complete(db, user)

    newly_approved = KYCStatus.APPROVED in (user.kyc_status, user.kyb_status) and (
        KYCStatus.APPROVED not in previous
    )
    if newly_approved or not approved:
        template_key = "KYC_APPROVED" if approved else "KYC_REJECTED"
        try:
            await send_templated_notification(
                db,
                template_key,
                user_id=user.auth_id,
                variables={"reason": notes or "Please upload a clearer copy"},
                data={"document_id": str(document.id)},
            )
        except Exception:
            logger.exception("Failed to send %s notification", template_key)
            await db.rollback()

    return document


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------


async def perform_risk_assessment(db: AsyncSession, user_id: str) -> dict:
    """Score a user 0..100 from account age, documents, orders and company."""
    user = await require_user(db, user_id)
    now = utc_now()

    account_age_days = math.ceil(
        abs(now - ensure_utc(user.created_at)) / timedelta(days=1)
    )
    verified_documents = await db.scalar(
        select(func.count(VerificationDocument.id)).where(
            VerificationDocument.user_id == user.auth_id,
            VerificationDocument.status == DocumentStatus.APPROVED,
        )
    )
    order_count, total_spent = (
        await db.execute(
            select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0)).where(
                Order.user_id == user.auth_id
            )
        )
    ).one()

    factors = {
        "account_age_days": account_age_days,
        "has_verified_documents": bool(verified_documents),
        "order_count": order_count or 0,
        "total_spent": Decimal(str(total_spent or 0)),
        "is_business_account": user.account_type == AccountType.BUSINESS,
        "has_company": user.company_id is not None,
    }

    score = 0
    if factors["account_age_days"] < NEW_ACCOUNT_DAYS:
        score += RISK_NEW_ACCOUNT
    if not factors["has_verified_documents"]:
        score += RISK_NO_VERIFIED_DOCUMENTS
    if factors["order_count"] == 0:
        score += RISK_NO_ORDERS
    if factors["is_business_account"] and not factors["has_company"]:
        score += RISK_BUSINESS_WITHOUT_COMPANY

    user.risk_score = score
    user.risk_level = risk_level_for(score)
    user.last_risk_assessment = now
    await db.commit()

    logger.info(
        "Risk assessment for %s: %s (%s)", user.auth_id, score, user.risk_level.value
    )
    return {
        "user_id": user.auth_id,
        "risk_score": score,
        "risk_level": user.risk_level,
        "factors": factors,
        "assessed_at": now,
    }
