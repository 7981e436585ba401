"""Invitation links: view, accept and decline by token."""

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.accounts_service.schemas import (
    InvitationCompanySummary,
    InvitationDetailResponse,
    UserResponse,
)
from services.accounts_service.services import companies as service
from services.accounts_service.services.users import get_user_by_auth_id
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.get("/{token}", response_model=InvitationDetailResponse)
async def get_invitation(token: str, db: AsyncSession = Depends(get_async_db)):
    """Public: what the invitee sees before signing in to accept."""
    invitation = await service.get_invitation_by_token(db, token)
    service.check_invitation_usable(invitation)

    inviter = await get_user_by_auth_id(db, invitation.invited_by)
    return InvitationDetailResponse(
        email=invitation.email,
        role=invitation.role,
        status=invitation.status,
        message=invitation.message,
        expires_at=invitation.expires_at,
        company=InvitationCompanySummary.model_validate(invitation.company),
        inviter_name=inviter.full_name if inviter else None,
    )


@router.post("/{token}/accept", response_model=UserResponse)
async def accept_invitation(
    token: str,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await service.accept_invitation(db, token=token, auth_user=current_user)


@router.delete("/{token}")
async def decline_invitation(token: str, db: AsyncSession = Depends(get_async_db)):
    await service.decline_invitation(db, token=token)
    return {"message": "Invitation declined"}
