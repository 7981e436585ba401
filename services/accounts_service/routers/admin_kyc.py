"""Admin review of verification documents and customer risk."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.accounts_service.models import DocumentStatus, VerificationDocument
from services.accounts_service.schemas import (
    DocumentResponse,
    DocumentVerifyRequest,
    RiskAssessmentResponse,
)
from services.accounts_service.services import kyc
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/kyc", tags=["admin-kyc"])


@router.get("/documents", response_model=list[DocumentResponse])
async def list_documents_for_review(
    status_filter: Optional[DocumentStatus] = Query(
        DocumentStatus.PENDING, alias="status"
    ),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Review queue, oldest first."""
    query = select(VerificationDocument)
    if status_filter:
        query = query.where(VerificationDocument.status == status_filter)
    result = await db.execute(
        query.order_by(VerificationDocument.created_at.asc())
        .offset(offset)
        .limit(limit)
    )
    return result.scalars().all()


@router.post("/documents/{document_id}/verify", response_model=DocumentResponse)
async def verify_document(
    document_id: uuid.UUID,
    payload: DocumentVerifyRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await kyc.verify_document(
        db,
        document_id=document_id,
        admin_id=admin.user_id,
        approved=payload.approved,
        notes=payload.notes,
    )


@router.post("/users/{auth_id}/risk-assessment", response_model=RiskAssessmentResponse)
async def assess_user_risk(
    auth_id: str,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return await kyc.perform_risk_assessment(db, auth_id)
