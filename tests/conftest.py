import contextlib
import uuid
from typing import AsyncGenerator, Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from libs.auth.dependencies import get_current_user, get_optional_user
from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.db.base import Base
from libs.db.session import get_async_db
from services.gateway_service.app.main import app

# Import all models so metadata includes every table
from services.accounts_service import models as _accounts_models  # noqa: F401
from services.communications_service import models as _communications_models  # noqa: F401
from services.store_service import models as _store_models  # noqa: F401

settings = get_settings()


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------


def make_customer_user(
    user_id: Optional[str] = None,
    email: Optional[str] = None,
    name: str = "Test Customer",
) -> AuthUser:
    user_id = user_id or f"customer-{uuid.uuid4().hex[:8]}"
    return AuthUser(
        user_id=user_id,
        email=email or f"{user_id}@test.com",
        role="authenticated",
        name=name,
    )


def make_admin_user(user_id: Optional[str] = None) -> AuthUser:
    user_id = user_id or f"admin-{uuid.uuid4().hex[:8]}"
    return AuthUser(
        user_id=user_id, email=f"{user_id}@noor.ae", role="admin", name="Test Admin"
    )


@contextlib.contextmanager
def override_auth(target_app, user: AuthUser):
    """Temporarily authenticate every request to ``target_app`` as ``user``."""
    dependencies = (get_current_user, get_optional_user)
    previous = {dep: target_app.dependency_overrides.get(dep) for dep in dependencies}
    for dep in dependencies:
        target_app.dependency_overrides[dep] = lambda: user
    try:
        yield user
    finally:
        for dep, override in previous.items():
            if override is None:
                target_app.dependency_overrides.pop(dep, None)
            else:
                target_app.dependency_overrides[dep] = override


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def test_engine():
    """
    A fresh schema per test.

    The default in-memory SQLite database lives on one shared connection
    (StaticPool) so every session in the test sees the same data.
    """
    if settings.DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            settings.DATABASE_URL,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_async_engine(settings.DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Session configured like the application's (no expiry on commit)."""
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def customer_user() -> AuthUser:
    return make_customer_user()


@pytest_asyncio.fixture
async def admin_user() -> AuthUser:
    return make_admin_user()


@pytest_asyncio.fixture
async def anon_client(db_session) -> AsyncGenerator[AsyncClient, None]:
    """Gateway client with the test database and no credentials."""

    async def _get_test_db():
        yield db_session

    app.dependency_overrides[get_async_db] = _get_test_db
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(anon_client, customer_user) -> AsyncGenerator[AsyncClient, None]:
    """Gateway client authenticated as a storefront customer."""
    with override_auth(app, customer_user):
        yield anon_client


@pytest_asyncio.fixture
async def admin_client(anon_client, admin_user) -> AsyncGenerator[AsyncClient, None]:
    """Gateway client authenticated as an administrator."""
    with override_auth(app, admin_user):
        yield anon_client
