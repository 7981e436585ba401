"""Company accounts: creation, profile, members, invitations and settings."""

import uuid

from fastapi import APIRouter, Depends, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.rate_limit import api_limit
from libs.db.session import get_async_db
from services.accounts_service.schemas import (
    CompanyCreate,
    CompanyDetailResponse,
    CompanyMemberResponse,
    CompanyPermissionsResponse,
    CompanyResponse,
    CompanySettingsResponse,
    CompanySettingsUpdate,
    CompanyUpdate,
    InvitationCreate,
    InvitationResponse,
    MemberRoleUpdate,
)
from services.accounts_service.services import companies as service
from services.accounts_service.services.users import ensure_user_profile
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/companies", tags=["companies"])


async def _require_access(
    db: AsyncSession, company_id: uuid.UUID, current_user: AuthUser
) -> None:
    """Members of the company (and platform admins) may read it."""
    if current_user.role in get_settings().ADMIN_ROLES:
        return
    await service.require_company_member(db, company_id, current_user.user_id)


@router.post(
    "", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED
)
@api_limit
async def create_company(
    request: Request,
    payload: CompanyCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a company; the caller becomes its owner."""
    owner = await ensure_user_profile(db, current_user)
    return await service.create_company(db, owner=owner, data=payload)


@router.get("/{company_id}", response_model=CompanyDetailResponse)
async def get_company(
    company_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await _require_access(db, company_id, current_user)
    return await service.get_company_details(db, company_id)


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: uuid.UUID,
    payload: CompanyUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await service.update_company(
        db,
        company_id=company_id,
        actor_auth_id=current_user.user_id,
        changes=payload.model_dump(mode="json", exclude_unset=True),
    )


# ============================================================================
# MEMBERS
# ============================================================================


@router.get("/{company_id}/users", response_model=list[CompanyMemberResponse])
async def list_company_users(
    company_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await _require_access(db, company_id, current_user)
    return await service.list_company_users(db, company_id)


@router.get(
    "/{company_id}/permissions", response_model=CompanyPermissionsResponse
)
async def get_my_permissions(
    company_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """The caller's role in the company and what it allows."""
    return await service.get_member_permissions(db, company_id, current_user.user_id)


@router.post(
    "/{company_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
@api_limit
async def invite_user(
    request: Request,
    company_id: uuid.UUID,
    payload: InvitationCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Invite someone by email. They receive a link valid for 7 days."""
    return await service.invite_user(
        db,
        company_id=company_id,
        inviter_auth_id=current_user.user_id,
        data=payload,
    )


@router.patch(
    "/{company_id}/users/{auth_id}", response_model=CompanyMemberResponse
)
async def update_member_role(
    company_id: uuid.UUID,
    auth_id: str,
    payload: MemberRoleUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await service.update_member_role(
        db,
        company_id=company_id,
        member_auth_id=auth_id,
        new_role=payload.role,
        actor_auth_id=current_user.user_id,
    )


@router.delete("/{company_id}/users/{auth_id}")
async def remove_member(
    company_id: uuid.UUID,
    auth_id: str,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await service.remove_member(
        db,
        company_id=company_id,
        member_auth_id=auth_id,
        actor_auth_id=current_user.user_id,
    )
    return {"message": "User removed successfully"}


# ============================================================================
# SETTINGS
# ============================================================================


@router.get("/{company_id}/settings", response_model=CompanySettingsResponse)
async def get_company_settings(
    company_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await _require_access(db, company_id, current_user)
    return await service.get_company_settings(db, company_id)


@router.patch("/{company_id}/settings", response_model=CompanySettingsResponse)
async def update_company_settings(
    company_id: uuid.UUID,
    payload: CompanySettingsUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await service.update_company_settings(
        db,
        company_id=company_id,
        actor_auth_id=current_user.user_id,
        data=payload,
    )
