"""Company management: creation, membership, invitations and settings.

Permission rules:
- owner/admin/manager may invite, change roles and remove members
- owner/admin may edit the company and its settings
- only an owner may hand out the owner role; the owner can't be removed
"""

import uuid
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.accounts_service.models import (
    AccountType,
    Company,
    CompanyRole,
    CompanySettings,
    InvitationStatus,
    User,
    UserInvitation,
)
from services.accounts_service.schemas import (
    CompanyCreate,
    CompanySettingsUpdate,
    InvitationCreate,
)
from services.accounts_service.services.users import ensure_user_profile
from services.communications_service.templates.accounts import (
    send_company_invitation_email,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

USER_MANAGER_ROLES = (CompanyRole.OWNER, CompanyRole.ADMIN, CompanyRole.MANAGER)
COMPANY_MANAGER_ROLES = (CompanyRole.OWNER, CompanyRole.ADMIN)
PURCHASER_ROLES = USER_MANAGER_ROLES + (CompanyRole.PURCHASER,)


# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------


def can_manage_users(role: Optional[CompanyRole]) -> bool:
    return role in USER_MANAGER_ROLES


def can_invite_users(role: Optional[CompanyRole]) -> bool:
    return role in USER_MANAGER_ROLES


def can_place_orders(role: Optional[CompanyRole]) -> bool:
    return role in PURCHASER_ROLES


def can_manage_company(role: Optional[CompanyRole]) -> bool:
    return role in COMPANY_MANAGER_ROLES


def permissions_for(role: Optional[CompanyRole]) -> dict:
    """What a member with ``role`` may do inside their company."""
    return {
        "role": role,
        "can_manage_users": can_manage_users(role),
        "can_invite_users": can_invite_users(role),
        "can_place_orders": can_place_orders(role),
        "can_view_orders": role is not None,
        "can_manage_company": can_manage_company(role),
    }


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


async def require_company_member(
    db: AsyncSession, company_id: uuid.UUID, auth_id: str
) -> User:
    """The caller's profile if they are an active member of the company."""
    result = await db.execute(
        select(User).where(
            User.auth_id == auth_id,
            User.company_id == company_id,
            User.is_active.is_(True),
        )
    )
    user = result.scalar_one_or_none()
    if not user or not user.company_role:
        raise _forbidden("Access denied")
    return user


async def _get_company(db: AsyncSession, company_id: uuid.UUID) -> Company:
    company = await db.get(Company, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company


async def _get_member(db: AsyncSession, company_id: uuid.UUID, auth_id: str) -> User:
    result = await db.execute(
        select(User).where(User.auth_id == auth_id, User.company_id == company_id)
    )
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found in company")
    return user


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


async def create_company(
    db: AsyncSession, *, owner: User, data: CompanyCreate
) -> Company:
    """Create a company with default settings; the creator becomes its owner."""
    existing = await db.execute(select(Company.id).where(Company.slug == data.slug))
    if existing.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Company slug already exists",
        )
    if owner.company_id:
        raise HTTPException(
            status_code=400, detail="User already belongs to a company"
        )

    fields = data.model_dump(mode="json")
    fields["account_type"] = data.account_type
    company = Company(
        **fields,
        owner_id=owner.auth_id,
        settings=CompanySettings(),
    )
    db.add(company)
    await db.flush()

    owner.account_type = AccountType.BUSINESS
    owner.company_id = company.id
    owner.company_role = CompanyRole.OWNER
    await db.commit()

    logger.info(
        "Company %s created by %s",
        company.slug,
        owner.auth_id,
        extra={"extra_fields": {"company_id": str(company.id)}},
    )
    return company


async def get_company_details(db: AsyncSession, company_id: uuid.UUID) -> dict:
    """Company with settings, active members and live pending invitations."""
    result = await db.execute(
        select(Company)
        .where(Company.id == company_id)
        .options(selectinload(Company.settings))
    )
    company = result.scalar_one_or_none()
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")

    users = await list_company_users(db, company_id)
    invitations = await db.execute(
        select(UserInvitation)
        .where(
            UserInvitation.company_id == company_id,
            UserInvitation.status == InvitationStatus.PENDING,
            UserInvitation.expires_at > utc_now(),
        )
        .order_by(UserInvitation.created_at.desc())
    )

    return {
        **{
            column.name: getattr(company, column.name)
            for column in Company.__table__.columns
        },
        "settings": company.settings,
        "users": users,
        "pending_invitations": list(invitations.scalars().all()),
        "user_count": len(users),
    }


async def update_company(
    db: AsyncSession, *, company_id: uuid.UUID, actor_auth_id: str, changes: dict
) -> Company:
    actor = await require_company_member(db, company_id, actor_auth_id)
    if not can_manage_company(actor.company_role):
        raise _forbidden("Insufficient permissions")

    company = await _get_company(db, company_id)
    for field, value in changes.items():
        setattr(company, field, value)
    await db.commit()
    return company


async def list_company_users(db: AsyncSession, company_id: uuid.UUID) -> list[User]:
    result = await db.execute(
        select(User)
        .where(User.company_id == company_id, User.is_active.is_(True))
        .order_by(User.created_at.asc())
    )
    return list(result.scalars().all())


async def get_member_permissions(
    db: AsyncSession, company_id: uuid.UUID, auth_id: str
) -> dict:
    member = await require_company_member(db, company_id, auth_id)
    return permissions_for(member.company_role)


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


async def invite_user(
    db: AsyncSession,
    *,
    company_id: uuid.UUID,
    inviter_auth_id: str,
    data: InvitationCreate,
) -> UserInvitation:
    """Create a 7-day invitation and email it to the invitee."""
    inviter = await require_company_member(db, company_id, inviter_auth_id)
    if not can_invite_users(inviter.company_role):
        raise _forbidden("Insufficient permissions to invite users")

    result = await db.execute(
        select(Company)
        .where(Company.id == company_id)
        .options(selectinload(Company.settings))
    )
    company = result.scalar_one()
    settings = company.settings

    if settings and not settings.allow_user_invitations:
        raise HTTPException(
            status_code=400, detail="User invitations are disabled for this company"
        )

    if settings and settings.max_users:
        user_count = await db.scalar(
            select(func.count(User.id)).where(
                User.company_id == company_id, User.is_active.is_(True)
            )
        )
        if user_count >= settings.max_users:
            raise HTTPException(
                status_code=400, detail="Company has reached maximum user limit"
            )

    email = str(data.email).lower()
    existing_member = await db.execute(
        select(User.id).where(
            func.lower(User.email) == email, User.company_id == company_id
        )
    )
    if existing_member.first():
        raise HTTPException(
            status_code=400, detail="User is already part of this company"
        )

    existing_invitation = await db.execute(
        select(UserInvitation.id).where(
            func.lower(UserInvitation.email) == email,
            UserInvitation.company_id == company_id,
            UserInvitation.status == InvitationStatus.PENDING,
            UserInvitation.expires_at > utc_now(),
        )
    )
    if existing_invitation.first():
        raise HTTPException(
            status_code=400, detail="Pending invitation already exists for this email"
        )

    expiry_days = get_settings().INVITATION_EXPIRY_DAYS
    invitation = UserInvitation(
        email=email,
        company_id=company_id,
        role=data.role,
        invited_by=inviter.auth_id,
        message=data.message,
        expires_at=utc_now() + timedelta(days=expiry_days),
    )
    db.add(invitation)
    await db.commit()

    logger.info(
        "Invitation to %s sent for company %s by %s",
        email,
        company.slug,
        inviter.auth_id,
    )

    try:
        await send_company_invitation_email(
            to_email=email,
            company_name=company.name,
            inviter_name=inviter.full_name,
            role=data.role.value,
            token=invitation.token,
            message=data.message,
            expires_in_days=expiry_days,
        )
    except Exception as e:
        logger.warning("Failed to send invitation email to %s: %s", email, e)

    return invitation


async def get_invitation_by_token(db: AsyncSession, token: str) -> UserInvitation:
    result = await db.execute(
        select(UserInvitation)
        .where(UserInvitation.token == token)
        .options(selectinload(UserInvitation.company))
    )
    invitation = result.scalar_one_or_none()
    if not invitation:
        raise HTTPException(status_code=404, detail="Invitation not found")
    return invitation


def check_invitation_usable(invitation: UserInvitation) -> None:
    if invitation.status != InvitationStatus.PENDING:
        raise HTTPException(status_code=400, detail="Invitation is no longer valid")
    if ensure_utc(invitation.expires_at) < utc_now():
        raise HTTPException(status_code=400, detail="Invitation has expired")


async def accept_invitation(
    db: AsyncSession, *, token: str, auth_user: AuthUser
) -> User:
    """Join the inviting company with the invited role."""
    invitation = await get_invitation_by_token(db, token)
    check_invitation_usable(invitation)

    user = await ensure_user_profile(db, auth_user)
    if (user.email or "").lower() != invitation.email.lower():
        raise HTTPException(
            status_code=400, detail="Invitation email does not match user email"
        )

    now = utc_now()
    invitation.status = InvitationStatus.ACCEPTED
    invitation.accepted_by = user.auth_id
    invitation.accepted_at = now

    user.account_type = AccountType.BUSINESS
    user.company_id = invitation.company_id
    user.company_role = invitation.role
    user.invited_by = invitation.invited_by
    user.invited_at = invitation.created_at
    user.accepted_at = now
    await db.commit()

    logger.info(
        "User %s joined company %s as %s",
        user.auth_id,
        invitation.company_id,
        invitation.role.value,
    )
    return user


async def decline_invitation(db: AsyncSession, *, token: str) -> UserInvitation:
    invitation = await get_invitation_by_token(db, token)
    if invitation.status != InvitationStatus.PENDING:
        raise HTTPException(status_code=400, detail="Invitation is no longer valid")
    invitation.status = InvitationStatus.DECLINED
    await db.commit()
    return invitation


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


async def update_member_role(
    db: AsyncSession,
    *,
    company_id: uuid.UUID,
    member_auth_id: str,
    new_role: CompanyRole,
    actor_auth_id: str,
) -> User:
    actor = await require_company_member(db, company_id, actor_auth_id)
    if not can_manage_users(actor.company_role):
        raise _forbidden("Insufficient permissions to update user roles")

    member = await _get_member(db, company_id, member_auth_id)
    if member.company_role == CompanyRole.OWNER:
        raise HTTPException(status_code=400, detail="Cannot change owner role")
    if new_role == CompanyRole.OWNER and actor.company_role != CompanyRole.OWNER:
        raise _forbidden("Only company owner can assign owner role")

    member.company_role = new_role
    await db.commit()
    return member


async def remove_member(
    db: AsyncSession,
    *,
    company_id: uuid.UUID,
    member_auth_id: str,
    actor_auth_id: str,
) -> User:
    actor = await require_company_member(db, company_id, actor_auth_id)
    if not can_manage_users(actor.company_role):
        raise _forbidden("Insufficient permissions to remove users")

    member = await _get_member(db, company_id, member_auth_id)
    if member.company_role == CompanyRole.OWNER:
        raise HTTPException(status_code=400, detail="Cannot remove company owner")
    if member.auth_id == actor.auth_id:
        raise HTTPException(
            status_code=400, detail="Cannot remove yourself from company"
        )

    member.account_type = AccountType.INDIVIDUAL
    member.company_id = None
    member.company_role = None
    await db.commit()

    logger.info("User %s removed from company %s", member.auth_id, company_id)
    return member


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


async def get_company_settings(
    db: AsyncSession, company_id: uuid.UUID
) -> CompanySettings:
    result = await db.execute(
        select(CompanySettings).where(CompanySettings.company_id == company_id)
    )
    settings = result.scalar_one_or_none()
    if settings is None:
        await _get_company(db, company_id)
        settings = CompanySettings(company_id=company_id)
        db.add(settings)
        await db.commit()
    return settings


async def update_company_settings(
    db: AsyncSession,
    *,
    company_id: uuid.UUID,
    actor_auth_id: str,
    data: CompanySettingsUpdate,
) -> CompanySettings:
    actor = await require_company_member(db, company_id, actor_auth_id)
    if not can_manage_company(actor.company_role):
        raise _forbidden("Insufficient permissions to update company settings")

    settings = await get_company_settings(db, company_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(settings, field, value)
    await db.commit()
    return settings
