"""Integration tests for profiles, companies, invitations and KYC endpoints."""

import pytest
from services.accounts_service.models import CompanyRole, DocumentStatus, DocumentType
from services.gateway_service.app.main import app
from tests.conftest import make_admin_user, make_customer_user, override_auth
from tests.factories import (
    CompanyFactory,
    DocumentFactory,
    InvitationFactory,
    UserFactory,
)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_profile_is_created_on_first_read(client, customer_user):
    response = await client.get("/api/users/me")

    assert response.status_code == 200
    body = response.json()
    assert body["auth_id"] == customer_user.user_id
    assert body["first_name"] == "Test"
    assert body["last_name"] == "Customer"
    assert body["account_type"] == "individual"
    assert body["kyc_status"] == "not_started"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_company_creation_and_invitation(anon_client):
    owner = make_customer_user(name="Huda Mansour")
    outsider = make_customer_user()

    with override_auth(app, owner):
        response = await anon_client.post(
            "/api/companies",
            json={"name": "Desert Interiors", "slug": "desert-interiors"},
        )
        assert response.status_code == 201, response.text
        company_id = response.json()["id"]

        response = await anon_client.post(
            "/api/companies",
            json={"name": "Desert Interiors Again", "slug": "desert-interiors"},
        )
        assert response.status_code == 409

        response = await anon_client.post(
            f"/api/companies/{company_id}/invitations",
            json={"email": "buyer@desert.ae", "role": "purchaser"},
        )
        assert response.status_code == 201, response.text
        assert response.json()["status"] == "pending"

        response = await anon_client.get(f"/api/companies/{company_id}")
        body = response.json()
        assert body["user_count"] == 1
        assert [inv["email"] for inv in body["pending_invitations"]] == [
            "buyer@desert.ae"
        ]

    with override_auth(app, outsider):
        response = await anon_client.get(f"/api/companies/{company_id}")
        assert response.status_code == 403
        assert response.json() == {"error": "Access denied"}

        response = await anon_client.post(
            f"/api/companies/{company_id}/invitations",
            json={"email": "friend@desert.ae", "role": "viewer"},
        )
        assert response.status_code == 403

    with override_auth(app, make_admin_user()):
        response = await anon_client.get(f"/api/companies/{company_id}/users")
        assert response.status_code == 200
        assert [member["company_role"] for member in response.json()] == ["owner"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_accept_invitation_by_token(anon_client, db_session):
    owner = UserFactory.create(first_name="Huda", last_name="Mansour")
    company = CompanyFactory.create(owner.auth_id)
    db_session.add_all([owner, company])
    await db_session.commit()
    invitation = InvitationFactory.create(
        company.id, owner.auth_id, email="buyer@desert.ae"
    )
    db_session.add(invitation)
    await db_session.commit()

    response = await anon_client.get(f"/api/invitations/{invitation.token}")
    assert response.status_code == 200
    body = response.json()
    assert body["company"]["slug"] == company.slug
    assert body["inviter_name"] == "Huda Mansour"

    with override_auth(app, make_customer_user(email="someone@else.ae")):
        response = await anon_client.post(
            f"/api/invitations/{invitation.token}/accept"
        )
    assert response.status_code == 400

    with override_auth(app, make_customer_user(email="buyer@desert.ae")):
        response = await anon_client.post(
            f"/api/invitations/{invitation.token}/accept"
        )
    assert response.status_code == 200, response.text
    assert response.json()["company_role"] == "purchaser"
    assert response.json()["company_id"] == str(company.id)

    response = await anon_client.get(f"/api/invitations/{invitation.token}")
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_member_reads_own_permissions(anon_client, db_session):
    owner = UserFactory.create()
    company = CompanyFactory.create(owner.auth_id)
    db_session.add_all([owner, company])
    await db_session.commit()
    buyer = make_customer_user()
    db_session.add(
        UserFactory.create(
            auth_id=buyer.user_id,
            company_id=company.id,
            company_role=CompanyRole.PURCHASER,
        )
    )
    await db_session.commit()

    with override_auth(app, buyer):
        response = await anon_client.get(f"/api/companies/{company.id}/permissions")
    assert response.status_code == 200, response.text
    assert response.json() == {
        "role": "purchaser",
        "can_manage_users": False,
        "can_invite_users": False,
        "can_place_orders": True,
        "can_view_orders": True,
        "can_manage_company": False,
    }

    with override_auth(app, make_customer_user()):
        response = await anon_client.get(f"/api/companies/{company.id}/permissions")
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_onboarding_and_document_review(anon_client):
    customer = make_customer_user()

    with override_auth(app, customer):
        response = await anon_client.post(
            "/api/onboarding", json={"account_type": "individual"}
        )
        assert response.status_code == 200, response.text
        assert response.json()["current_step"] == "email_verification"

        response = await anon_client.put(
            "/api/onboarding/personal-info",
            json={
                "first_name": "Omar",
                "last_name": "Saeed",
                "phone": "+971501234567",
            },
        )
        assert response.status_code == 200
        assert response.json()["current_step"] == "document_upload"

        document_ids = []
        for doc_type in ("national_id", "utility_bill"):
            response = await anon_client.post(
                "/api/onboarding/documents",
                json={
                    "type": doc_type,
                    "file_name": f"{doc_type}.pdf",
                    "file_url": f"https://files.noor.ae/kyc/{doc_type}.pdf",
                    "file_mime_type": "application/pdf",
                    "file_size": 2048,
                },
            )
            assert response.status_code == 201, response.text
            document_ids.append(response.json()["id"])

        response = await anon_client.get("/api/onboarding")
        assert response.json()["can_proceed"] is True

    with override_auth(app, make_admin_user()):
        response = await anon_client.get("/api/admin/kyc/documents")
        assert [doc["id"] for doc in response.json()] == document_ids

        for document_id in document_ids:
            response = await anon_client.post(
                f"/api/admin/kyc/documents/{document_id}/verify",
                json={"approved": True},
            )
            assert response.status_code == 200
            assert response.json()["status"] == "approved"

    with override_auth(app, customer):
        response = await anon_client.get("/api/users/me")
        assert response.json()["kyc_status"] == "approved"
        assert response.json()["verification_level"] == "enhanced"

        response = await anon_client.get("/api/notifications")
        titles = [n["title"] for n in response.json()["notifications"]]
        assert titles == ["Verification Approved"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_review_queue_is_admin_only(client, db_session):
    user = UserFactory.create()
    db_session.add_all(
        [user, DocumentFactory.create(user.auth_id, status=DocumentStatus.PENDING)]
    )
    await db_session.commit()

    response = await client.get("/api/admin/kyc/documents")

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_risk_assessment_endpoint(admin_client, db_session):
    user = UserFactory.create()
    db_session.add_all(
        [
            user,
            DocumentFactory.create(user.auth_id, status=DocumentStatus.APPROVED),
            DocumentFactory.create(
                user.auth_id,
                type=DocumentType.UTILITY_BILL,
                status=DocumentStatus.APPROVED,
            ),
        ]
    )
    await db_session.commit()

    response = await admin_client.post(
        f"/api/admin/kyc/users/{user.auth_id}/risk-assessment"
    )

    assert response.status_code == 200
    body = response.json()
    # New account (20) + no orders (15)
    assert body["risk_score"] == 35
    assert body["risk_level"] == "medium"
