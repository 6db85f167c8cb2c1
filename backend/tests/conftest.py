# Shared pytest configuration and fixtures for all test types
import uuid
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from slowapi import Limiter
from slowapi.util import get_remote_address
from unittest.mock import patch
from datetime import datetime, timezone, timedelta

# Disabled test limiter with in-memory storage
test_limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri="memory://",
    enabled=False,
)

# Patch the limiter before importing the app so decorators use test limiter
with patch("common.providers.rate_limiter.limiter.limiter", test_limiter):
    from api.main import app

from common.db.session import get_db
from common.db.base import Base
from packages.auth.dependencies import get_current_active_user
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.billing.models.domain.enums import (
    BillingInterval,
    PlanTier,
    SubscriptionStatus,
)
from packages.factories.models.database.factory_account import FactoryAccountEntity
from packages.factories.models.domain.factory_account import FactoryAccount
from packages.users.models.database.user import ProfileEntity, UserRoleEntity
from packages.users.models.domain.user import UserRole

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OWNER_EMAIL = "owner@sunrise-garments.test"


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine and initialize schema."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_connection(test_engine):
    """Create test connection with outer transaction for rollback isolation."""
    async with test_engine.connect() as connection:
        trans = await connection.begin()
        yield connection
        await trans.rollback()


@pytest_asyncio.fixture(scope="function")
async def test_session_factory(test_connection):
    """Create session factory bound to test connection.

    Using join_transaction_mode="create_savepoint" so commits inside
    get_session() only release savepoints.
    """
    return async_sessionmaker(
        bind=test_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest_asyncio.fixture(scope="function")
async def test_db(test_session_factory):
    """Create a test database session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function", autouse=True)
async def patch_lazy_sessions(test_session_factory, monkeypatch):
    """
    Patch the session factory used by lazy repository sessions.

    Repositories then run real get_session() commit and
    rollback semantics against the test database.
    """
    monkeypatch.setattr("common.db.scoped.AsyncSessionLocal", test_session_factory)


@pytest_asyncio.fixture(scope="function")
async def client(test_db: AsyncSession, test_user):
    """Create a test client authenticated as the factory owner."""

    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    def override_get_current_active_user():
        return test_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_active_user] = override_get_current_active_user

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def anonymous_client():
    """Create a test client without auth overrides."""
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


# ============================================================================
# Factory & User Fixtures
# ============================================================================


@pytest_asyncio.fixture(scope="function")
async def sample_factory(test_db: AsyncSession) -> FactoryAccount:
    """An active Starter/monthly factory linked to Stripe."""
    factory = FactoryAccountEntity(
        id=str(uuid.uuid4()),
        name="Sunrise Garments",
        stripe_customer_id="cus_current",
        stripe_subscription_id="sub_current",
        subscription_status=SubscriptionStatus.ACTIVE.value,
        subscription_tier=PlanTier.STARTER.value,
        billing_interval=BillingInterval.MONTH.value,
        max_lines=30,
    )
    test_db.add(factory)
    await test_db.commit()
    await test_db.refresh(factory)
    return FactoryAccount.model_validate(factory)


@pytest_asyncio.fixture(scope="function")
async def trial_factory(test_db: AsyncSession) -> FactoryAccount:
    """A factory still in its product trial, without Stripe references."""
    factory = FactoryAccountEntity(
        id=str(uuid.uuid4()),
        name="Harbor Knitwear",
        subscription_status=SubscriptionStatus.TRIAL.value,
        trial_end_date=datetime.now(timezone.utc) + timedelta(days=5),
    )
    test_db.add(factory)
    await test_db.commit()
    await test_db.refresh(factory)
    return FactoryAccount.model_validate(factory)


async def _add_profile(
    test_db: AsyncSession, factory_id: str, email: str, role: UserRole
) -> ProfileEntity:
    profile = ProfileEntity(
        id=str(uuid.uuid4()),
        email=email,
        full_name=email.split("@")[0].title(),
        factory_id=factory_id,
    )
    test_db.add(profile)
    await test_db.flush()
    test_db.add(
        UserRoleEntity(
            id=str(uuid.uuid4()),
            user_id=profile.id,
            factory_id=factory_id,
            role=role.value,
        )
    )
    await test_db.commit()
    await test_db.refresh(profile)
    return profile


@pytest_asyncio.fixture(scope="function")
async def owner_profile(test_db: AsyncSession, sample_factory) -> ProfileEntity:
    return await _add_profile(test_db, sample_factory.id, OWNER_EMAIL, UserRole.OWNER)


@pytest_asyncio.fixture(scope="function")
async def admin_profile(test_db: AsyncSession, sample_factory) -> ProfileEntity:
    return await _add_profile(
        test_db, sample_factory.id, "admin@sunrise-garments.test", UserRole.ADMIN
    )


@pytest_asyncio.fixture(scope="function")
async def worker_profile(test_db: AsyncSession, sample_factory) -> ProfileEntity:
    return await _add_profile(
        test_db, sample_factory.id, "worker@sunrise-garments.test", UserRole.WORKER
    )


@pytest_asyncio.fixture(scope="function")
async def test_user(sample_factory, owner_profile) -> AuthenticatedUser:
    """The factory owner as seen by authenticated routes."""
    return AuthenticatedUser(
        user_id=owner_profile.id,
        email=owner_profile.email,
        factory_id=sample_factory.id,
    )
