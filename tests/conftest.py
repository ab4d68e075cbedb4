"""
tests/conftest.py

Test fixtures for API integration and unit tests.
Includes async clients, fake users, an in-memory database, schema factories
and dependency overrides.
"""

import os
import sys
from pathlib import Path

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("IDENTITY_TOKEN_SECRET", "test-identity-secret")

project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

# --- Imports ---
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import datetime, timezone
from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from servicewala.category.models import Category
from servicewala.auth.services import IdentityBridge
from servicewala.core.dependencies import get_current_user, get_identity_bridge, get_optional_user
from servicewala.core.limiter import limiter
from servicewala.database.base import Base
from servicewala.database.enums import PriceType, UserRole
from servicewala.database.models import User
from servicewala.database.session import get_db
from servicewala.service.schemas import ServiceRead
from servicewala.user.schemas import ProviderSummary, UserRead

limiter.enabled = False


# --- Core Test Fixtures ---


@pytest.fixture(scope="session")
def transport() -> ASGITransport:
    """Fixture for ASGI transport."""
    return ASGITransport(app=app)


@pytest_asyncio.fixture(scope="function")
async def async_client(transport: ASGITransport) -> AsyncGenerator[AsyncClient, None]:
    """Fixture for HTTP async client."""
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


# --- Database Fixtures ---


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database with every table created."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def stored_provider(db: AsyncSession) -> User:
    """A provider user stored in the test database."""
    user = User(
        auth_uid="ext-provider-1",
        name="Ravi Kumar",
        email="ravi@example.com",
        role=UserRole.PROVIDER,
        registered=True,
        verified=True,
        location="Andheri, Mumbai",
        city="Mumbai",
        state="Maharashtra",
        bio="Plumber with ten years of experience",
        experience_years=10,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def stored_client(db: AsyncSession) -> User:
    """A client user stored in the test database."""
    user = User(
        auth_uid="ext-client-1",
        name="Asha Patel",
        email="asha@example.com",
        role=UserRole.CLIENT,
        registered=True,
        verified=True,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def stored_category(db: AsyncSession) -> Category:
    category = Category(name="Plumbing", icon="🔧", description="Pipes and leaks")
    db.add(category)
    await db.commit()
    await db.refresh(category)
    return category


# --- Fake User Fixtures ---


@pytest.fixture
def fake_client_user() -> UserRead:
    """Fixture for a fake client user."""
    return UserRead(
        id=uuid4(),
        auth_uid="ext-client-fake",
        name="Client Test",
        email="client.test@example.com",
        role=UserRole.CLIENT,
        verified=True,
        joined_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def fake_provider_user() -> UserRead:
    """Fixture for a fake provider user."""
    return UserRead(
        id=uuid4(),
        auth_uid="ext-provider-fake",
        name="Provider Test",
        email="provider.test@example.com",
        role=UserRole.PROVIDER,
        verified=True,
        completed_jobs=12,
        rating=4.6,
        joined_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def fake_fallback_user() -> UserRead:
    """A user synthesized from an identity without a stored record."""
    return UserRead(
        id=None,
        auth_uid="ext-new",
        name="New Person",
        email="new@example.com",
        role=UserRole.CLIENT,
        is_fallback=True,
    )


# --- Dependency Override Fixtures ---


@pytest_asyncio.fixture
async def override_get_db() -> AsyncGenerator[None, None]:
    """Override for the database dependency."""

    async def _override() -> AsyncGenerator[AsyncMock, None]:
        yield AsyncMock()

    app.dependency_overrides[get_db] = _override
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest_asyncio.fixture
async def live_identity_bridge(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[IdentityBridge, None]:
    """Real identity bridge and database sessions on the in-memory database."""
    bridge = IdentityBridge(session_factory)

    async def _override_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_identity_bridge] = lambda: bridge
    app.dependency_overrides[get_db] = _override_db
    yield bridge
    await bridge.drain()
    app.dependency_overrides.pop(get_identity_bridge, None)
    app.dependency_overrides.pop(get_db, None)


def _override_user(user: UserRead | None) -> Generator[UserRead | None, None, None]:
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[get_optional_user] = lambda: user
    yield user
    app.dependency_overrides.pop(get_current_user, None)
    app.dependency_overrides.pop(get_optional_user, None)


@pytest.fixture
def mock_current_client_user(fake_client_user: UserRead) -> Generator[UserRead, None, None]:
    """Mock the current user as a client."""
    yield from _override_user(fake_client_user)


@pytest.fixture
def mock_current_provider_user(fake_provider_user: UserRead) -> Generator[UserRead, None, None]:
    """Mock the current user as a provider."""
    yield from _override_user(fake_provider_user)


@pytest.fixture
def mock_current_fallback_user(fake_fallback_user: UserRead) -> Generator[UserRead, None, None]:
    """Mock the current user as an identity without a stored record."""
    yield from _override_user(fake_fallback_user)


# --- Fake Data Fixtures (Schema Instances) ---


@pytest.fixture
def make_service_read() -> Callable[..., ServiceRead]:
    """Factory for ServiceRead instances with overridable fields."""

    def _make(**overrides: Any) -> ServiceRead:
        provider_id: UUID = overrides.pop("provider_id", uuid4())
        fields: dict[str, Any] = {
            "id": uuid4(),
            "provider_id": provider_id,
            "category_id": uuid4(),
            "title": "Kitchen Sink Repair",
            "description": "Fixing leaks and blockages",
            "price": 150.0,
            "price_type": PriceType.FIXED,
            "duration": "2 hours",
            "images": [],
            "availability": ["Monday", "Tuesday"],
            "location": "Andheri West",
            "city": "Mumbai",
            "state": "Maharashtra",
            "tags": ["plumbing", "leak"],
            "rating": 4.0,
            "review_count": 10,
            "is_active": True,
            "category": "Plumbing",
            "provider": ProviderSummary(id=provider_id, name="Ravi Kumar"),
        }
        fields.update(overrides)
        return ServiceRead(**fields)

    return _make


@pytest.fixture
def fake_service_read(
    make_service_read: Callable[..., ServiceRead], fake_provider_user: UserRead
) -> ServiceRead:
    """Fixture for a fake ServiceRead owned by the fake provider."""
    return make_service_read(provider_id=fake_provider_user.id)
