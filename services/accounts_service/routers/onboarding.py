"""KYC/KYB onboarding wizard for the signed-in user."""

from fastapi import APIRouter, Depends, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.accounts_service.schemas import (
    BusinessInfoUpdate,
    DocumentResponse,
    DocumentUpload,
    OnboardingInitRequest,
    OnboardingProgressResponse,
    OnboardingSessionResponse,
    PersonalInfoUpdate,
)
from services.accounts_service.services import kyc
from services.accounts_service.services.users import ensure_user_profile
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


@router.post("", response_model=OnboardingSessionResponse)
async def start_onboarding(
    payload: OnboardingInitRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Start onboarding. Safe to call again; the existing session is returned."""
    user = await ensure_user_profile(db, current_user)
    return await kyc.initialize_onboarding(db, user, payload.account_type)


@router.get("", response_model=OnboardingProgressResponse)
async def get_onboarding_progress(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await ensure_user_profile(db, current_user)
    return await kyc.get_onboarding_progress(db, user)


@router.put("/personal-info", response_model=OnboardingSessionResponse)
async def update_personal_info(
    payload: PersonalInfoUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await ensure_user_profile(db, current_user)
    return await kyc.update_personal_info(db, user, payload)


@router.put("/business-info", response_model=OnboardingSessionResponse)
async def update_business_info(
    payload: BusinessInfoUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    user = await ensure_user_profile(db, current_user)
    return await kyc.update_business_info(db, user, payload)


@router.get("/documents", response_model=list[DocumentResponse])
async def list_my_documents(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await kyc.list_documents(db, current_user.user_id)


@router.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
@api_limit
async def upload_document(
    request: Request,
    payload: DocumentUpload,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Register a document already uploaded to storage (the URL is kept, not the file)."""
    user = await ensure_user_profile(db, current_user)
    return await kyc.upload_document(db, user, payload)
