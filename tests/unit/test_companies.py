"""Unit tests for company membership and invitations."""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from libs.common.datetime_utils import utc_now
from services.accounts_service.models import (
    AccountType,
    CompanyRole,
    InvitationStatus,
)
from services.accounts_service.schemas import CompanyCreate, InvitationCreate
from services.accounts_service.services.companies import (
    accept_invitation,
    can_invite_users,
    can_place_orders,
    check_invitation_usable,
    create_company,
    decline_invitation,
    invite_user,
    remove_member,
    update_member_role,
)
from tests.conftest import make_customer_user
from tests.factories import CompanyFactory, InvitationFactory, UserFactory


async def _company_with_owner(db):
    owner = UserFactory.create()
    db.add(owner)
    await db.commit()
    company = await create_company(
        db,
        owner=owner,
        data=CompanyCreate(name="Desert Interiors", slug="desert-interiors"),
    )
    return company, owner


async def _add_member(db, company, role):
    member = UserFactory.create(
        account_type=AccountType.BUSINESS,
        company_id=company.id,
        company_role=role,
    )
    db.add(member)
    await db.commit()
    return member


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_creator_becomes_owner(db_session):
    company, owner = await _company_with_owner(db_session)

    assert company.owner_id == owner.auth_id
    assert company.settings is not None
    assert company.settings.allow_user_invitations is True
    assert owner.company_id == company.id
    assert owner.company_role == CompanyRole.OWNER
    assert owner.account_type == AccountType.BUSINESS


@pytest.mark.asyncio
@pytest.mark.unit
async def test_duplicate_slug_conflicts(db_session):
    existing = CompanyFactory.create("someone", slug="falcon-trading")
    other = UserFactory.create()
    db_session.add_all([existing, other])
    await db_session.commit()

    with pytest.raises(HTTPException) as exc_info:
        await create_company(
            db_session,
            owner=other,
            data=CompanyCreate(name="Falcon Trading", slug="falcon-trading"),
        )

    assert exc_info.value.status_code == 409


@pytest.mark.unit
def test_role_permissions():
    assert can_invite_users(CompanyRole.MANAGER) is True
    assert can_invite_users(CompanyRole.PURCHASER) is False
    assert can_place_orders(CompanyRole.PURCHASER) is True
    assert can_place_orders(CompanyRole.VIEWER) is False
    assert can_invite_users(None) is False


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_owner_invites_with_seven_day_expiry(db_session):
    company, owner = await _company_with_owner(db_session)

    invitation = await invite_user(
        db_session,
        company_id=company.id,
        inviter_auth_id=owner.auth_id,
        data=InvitationCreate(email="Buyer@Example.com", role=CompanyRole.PURCHASER),
    )

    assert invitation.email == "buyer@example.com"
    assert invitation.status == InvitationStatus.PENDING
    assert invitation.token
    remaining = invitation.expires_at - utc_now()
    assert timedelta(days=6) < remaining <= timedelta(days=7)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_purchaser_cannot_invite(db_session):
    company, _ = await _company_with_owner(db_session)
    purchaser = await _add_member(db_session, company, CompanyRole.PURCHASER)

    with pytest.raises(HTTPException) as exc_info:
        await invite_user(
            db_session,
            company_id=company.id,
            inviter_auth_id=purchaser.auth_id,
            data=InvitationCreate(email="new@example.com", role=CompanyRole.VIEWER),
        )

    assert exc_info.value.status_code == 403


@pytest.mark.asyncio
@pytest.mark.unit
async def test_second_pending_invitation_is_rejected(db_session):
    company, owner = await _company_with_owner(db_session)
    data = InvitationCreate(email="twice@example.com", role=CompanyRole.VIEWER)
    await invite_user(
        db_session, company_id=company.id, inviter_auth_id=owner.auth_id, data=data
    )

    with pytest.raises(HTTPException) as exc_info:
        await invite_user(
            db_session, company_id=company.id, inviter_auth_id=owner.auth_id, data=data
        )

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
@pytest.mark.unit
async def test_accept_invitation_joins_company(db_session):
    company, owner = await _company_with_owner(db_session)
    invitation = InvitationFactory.create(
        company.id, owner.auth_id, email="joiner@example.com", role=CompanyRole.MANAGER
    )
    db_session.add(invitation)
    await db_session.commit()

    user = await accept_invitation(
        db_session,
        token=invitation.token,
        auth_user=make_customer_user(email="joiner@example.com"),
    )

    assert user.company_id == company.id
    assert user.company_role == CompanyRole.MANAGER
    assert user.invited_by == owner.auth_id
    assert invitation.status == InvitationStatus.ACCEPTED
    assert invitation.accepted_by == user.auth_id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_accept_requires_matching_email(db_session):
    company, owner = await _company_with_owner(db_session)
    invitation = InvitationFactory.create(
        company.id, owner.auth_id, email="invited@example.com"
    )
    db_session.add(invitation)
    await db_session.commit()

    with pytest.raises(HTTPException) as exc_info:
        await accept_invitation(
            db_session,
            token=invitation.token,
            auth_user=make_customer_user(email="intruder@example.com"),
        )

    assert exc_info.value.status_code == 400
    assert invitation.status == InvitationStatus.PENDING


@pytest.mark.unit
def test_expired_invitation_is_unusable():
    invitation = InvitationFactory.create(
        None, "owner-1", expires_at=utc_now() - timedelta(minutes=1)
    )

    with pytest.raises(HTTPException) as exc_info:
        check_invitation_usable(invitation)

    assert exc_info.value.detail == "Invitation has expired"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_declined_invitation_cannot_be_accepted(db_session):
    company, owner = await _company_with_owner(db_session)
    invitation = InvitationFactory.create(
        company.id, owner.auth_id, email="maybe@example.com"
    )
    db_session.add(invitation)
    await db_session.commit()

    declined = await decline_invitation(db_session, token=invitation.token)
    assert declined.status == InvitationStatus.DECLINED

    with pytest.raises(HTTPException) as exc_info:
        await accept_invitation(
            db_session,
            token=invitation.token,
            auth_user=make_customer_user(email="maybe@example.com"),
        )
    assert exc_info.value.detail == "Invitation is no longer valid"


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_owner_cannot_be_removed(db_session):
    company, owner = await _company_with_owner(db_session)
    admin = await _add_member(db_session, company, CompanyRole.ADMIN)

    with pytest.raises(HTTPException) as exc_info:
        await remove_member(
            db_session,
            company_id=company.id,
            member_auth_id=owner.auth_id,
            actor_auth_id=admin.auth_id,
        )

    assert exc_info.value.detail == "Cannot remove company owner"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_remove_member_detaches_profile(db_session):
    company, owner = await _company_with_owner(db_session)
    viewer = await _add_member(db_session, company, CompanyRole.VIEWER)

    removed = await remove_member(
        db_session,
        company_id=company.id,
        member_auth_id=viewer.auth_id,
        actor_auth_id=owner.auth_id,
    )

    assert removed.company_id is None
    assert removed.company_role is None
    assert removed.account_type == AccountType.INDIVIDUAL


@pytest.mark.asyncio
@pytest.mark.unit
async def test_only_owner_can_grant_owner_role(db_session):
    company, _ = await _company_with_owner(db_session)
    manager = await _add_member(db_session, company, CompanyRole.MANAGER)
    viewer = await _add_member(db_session, company, CompanyRole.VIEWER)

    with pytest.raises(HTTPException) as exc_info:
        await update_member_role(
            db_session,
            company_id=company.id,
            member_auth_id=viewer.auth_id,
            new_role=CompanyRole.OWNER,
            actor_auth_id=manager.auth_id,
        )
    assert exc_info.value.status_code == 403

    updated = await update_member_role(
        db_session,
        company_id=company.id,
        member_auth_id=viewer.auth_id,
        new_role=CompanyRole.PURCHASER,
        actor_auth_id=manager.auth_id,
    )
    assert updated.company_role == CompanyRole.PURCHASER
