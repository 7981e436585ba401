"""Accounts service routers package."""

from services.accounts_service.routers.admin_kyc import router as admin_kyc_router
from services.accounts_service.routers.companies import router as companies_router
from services.accounts_service.routers.invitations import (
    router as invitations_router,
)
from services.accounts_service.routers.onboarding import router as onboarding_router
from services.accounts_service.routers.users import router as users_router

PUBLIC_ROUTERS = [
    users_router,
    companies_router,
    invitations_router,
    onboarding_router,
]
ADMIN_ROUTERS = [admin_kyc_router]

__all__ = [
    "ADMIN_ROUTERS",
    "PUBLIC_ROUTERS",
    "admin_kyc_router",
    "companies_router",
    "invitations_router",
    "onboarding_router",
    "users_router",
]
