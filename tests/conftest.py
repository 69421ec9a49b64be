"""Pytest configuration and fixtures."""

import os

# Settings are read once at import time, so the test environment must be set
# before anything under src is imported.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["DISABLE_AUTH"] = "false"

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.main import app
from src.core.database import Base, get_db_session
from src.middleware.auth import create_access_token
from src.models import (
    Catalog,
    CatalogEvent,
    CatalogSubscription,
    CatalogType,
    EventSubscription,
    OrganizationEvent,
    Tenant,
    User,
    UserRole,
)

# Test database URL (using SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


def at(year: int, month: int, day: int, hour: int = 0) -> datetime:
    """UTC instant helper for test data."""
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


class Factory:
    """Creates persisted test rows on one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _save(self, obj):
        self.session.add(obj)
        await self.session.commit()
        return obj

    async def tenant(self, name: str = "Acme", **kwargs) -> Tenant:
        slug = kwargs.pop("slug", f"{name.lower()}-{uuid.uuid4().hex[:8]}")
        return await self._save(Tenant(name=name, slug=slug, **kwargs))

    async def user(
        self,
        tenant: Optional[Tenant] = None,
        role: UserRole = UserRole.USER,
        **kwargs,
    ) -> User:
        defaults = {
            "email": f"user-{uuid.uuid4().hex[:8]}@example.com",
            "first_name": "Ada",
            "last_name": "Lovelace",
        }
        defaults.update(kwargs)
        return await self._save(
            User(tenant_id=tenant.id if tenant else None, role=role.value, **defaults)
        )

    async def catalog(
        self,
        name: str = "World Days",
        catalog_type: CatalogType = CatalogType.WORLD_SPECIAL_DAYS,
        is_active: bool = True,
    ) -> Catalog:
        return await self._save(Catalog(name=name, type=catalog_type.value, is_active=is_active))

    async def catalog_event(
        self,
        catalog: Catalog,
        title: str = "Catalog Event",
        start_date: Optional[datetime] = None,
        **kwargs,
    ) -> CatalogEvent:
        start_date = start_date or at(2024, 3, 8)
        kwargs.setdefault("end_date", start_date + timedelta(hours=23))
        kwargs.setdefault("tags", [])
        kwargs.setdefault("industries", [])
        return await self._save(
            CatalogEvent(catalog_id=catalog.id, title=title, start_date=start_date, **kwargs)
        )

    async def organization_event(
        self,
        tenant: Tenant,
        title: str = "Org Event",
        start_date: Optional[datetime] = None,
        created_by: Optional[User] = None,
        **kwargs,
    ) -> OrganizationEvent:
        start_date = start_date or at(2024, 3, 8)
        kwargs.setdefault("end_date", start_date + timedelta(hours=2))
        kwargs.setdefault("tags", [])
        return await self._save(
            OrganizationEvent(
                tenant_id=tenant.id,
                title=title,
                start_date=start_date,
                created_by_id=created_by.id if created_by else None,
                **kwargs,
            )
        )

    async def subscribe_catalog(
        self,
        tenant: Tenant,
        catalog: Catalog,
        is_active: bool = True,
    ) -> CatalogSubscription:
        return await self._save(
            CatalogSubscription(tenant_id=tenant.id, catalog_id=catalog.id, is_active=is_active)
        )

    async def subscribe_event(
        self,
        tenant: Tenant,
        event: CatalogEvent,
        is_visible: bool = True,
    ) -> EventSubscription:
        return await self._save(
            EventSubscription(tenant_id=tenant.id, catalog_event_id=event.id, is_visible=is_visible)
        )


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database per test."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a test database session."""
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def factory(db_session) -> Factory:
    return Factory(db_session)


@pytest_asyncio.fixture
async def client(db_session):
    """Create a test client with database dependency override."""

    async def get_test_db():
        yield db_session

    app.dependency_overrides[get_db_session] = get_test_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://localhost") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a role and tenant."""

    def build(
        role: UserRole = UserRole.USER,
        tenant_id: Optional[uuid.UUID] = None,
        user_id: Optional[uuid.UUID] = None,
    ) -> dict:
        claims = {"sub": str(user_id or uuid.uuid4()), "role": role.value}
        if tenant_id is not None:
            claims["tenant_id"] = str(tenant_id)
        return {"Authorization": f"Bearer {create_access_token(claims)}"}

    return build
