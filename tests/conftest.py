"""
Test configuration and fixtures.

Provides:
- In-memory SQLite engine (aiosqlite) with working SAVEPOINTs
- Service-level fixtures: a session, two organizations and their users
- HTTPX AsyncClient over ASGITransport with committed seed data
"""

import os
from dataclasses import dataclass
from typing import AsyncGenerator
from uuid import UUID, uuid4

# Must be set before caseflow builds its engine at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from caseflow.core.database import build_session_factory, get_session
from caseflow.main import app
from caseflow.models import Base, Case
from caseflow.services.access import AccessPolicy
from caseflow.services.cases import CaseService, CreateCaseInput
from caseflow.services.draft_engine import DraftEngine
from caseflow.services.templates import TemplateService
from caseflow.services.tenant_directory import TenantDirectory


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself so SAVEPOINT works
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
async def session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = build_session_factory(db_engine)
    async with factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Tenant Fixtures
# =============================================================================


@pytest.fixture
def directory(session: AsyncSession) -> TenantDirectory:
    return TenantDirectory(session)


@pytest.fixture
async def org_id(directory: TenantDirectory) -> UUID:
    organization = await directory.create_organization("Hale & Partners")
    return organization.id


@pytest.fixture
async def other_org_id(directory: TenantDirectory) -> UUID:
    organization = await directory.create_organization("Brightline Legal")
    return organization.id


@pytest.fixture
async def user_id(directory: TenantDirectory, org_id: UUID) -> UUID:
    """Case creator."""
    uid = uuid4()
    await directory.register_user(uid, org_id, "Alice Hale", "alice@hale.test")
    return uid


@pytest.fixture
async def colleague_id(directory: TenantDirectory, org_id: UUID) -> UUID:
    """Same organization as the creator, not a case member."""
    uid = uuid4()
    await directory.register_user(uid, org_id, "Ben Ortiz", "ben@hale.test")
    return uid


@pytest.fixture
async def second_colleague_id(directory: TenantDirectory, org_id: UUID) -> UUID:
    uid = uuid4()
    await directory.register_user(uid, org_id, "Cara Singh", "cara@hale.test")
    return uid


@pytest.fixture
async def outsider_id(directory: TenantDirectory, other_org_id: UUID) -> UUID:
    """Belongs to a different organization."""
    uid = uuid4()
    await directory.register_user(uid, other_org_id, "Dana Wu", "dana@brightline.test")
    return uid


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def access(session: AsyncSession, directory: TenantDirectory) -> AccessPolicy:
    return AccessPolicy(session, directory)


@pytest.fixture
def cases(session: AsyncSession, access: AccessPolicy) -> CaseService:
    return CaseService(session, access)


@pytest.fixture
def templates(session: AsyncSession, access: AccessPolicy) -> TemplateService:
    return TemplateService(session, access)


@pytest.fixture
def drafts(session: AsyncSession, access: AccessPolicy) -> DraftEngine:
    return DraftEngine(session, access)


@pytest.fixture
async def case(cases: CaseService, user_id: UUID) -> Case:
    return await cases.create_case(
        user_id,
        CreateCaseInput(
            title="Unpaid invoice - Northwind",
            contact_info={"yourName": "Alice Hale", "recipientName": "Northwind Traders"},
        ),
    )


# =============================================================================
# API Fixtures
# =============================================================================


@dataclass
class Tenants:
    """Committed seed data for API tests."""
    org_id: UUID
    other_org_id: UUID
    user_id: UUID
    colleague_id: UUID
    outsider_id: UUID
    unregistered_id: UUID


@pytest.fixture
async def tenants(db_engine: AsyncEngine) -> Tenants:
    factory = build_session_factory(db_engine)
    async with factory() as seed_session:
        directory = TenantDirectory(seed_session)
        org = await directory.create_organization("Hale & Partners")
        other_org = await directory.create_organization("Brightline Legal")

        user_id, colleague_id, outsider_id = uuid4(), uuid4(), uuid4()
        await directory.register_user(user_id, org.id, "Alice Hale")
        await directory.register_user(colleague_id, org.id, "Ben Ortiz")
        await directory.register_user(outsider_id, other_org.id, "Dana Wu")
        await seed_session.commit()

    return Tenants(
        org_id=org.id,
        other_org_id=other_org.id,
        user_id=user_id,
        colleague_id=colleague_id,
        outsider_id=outsider_id,
        unregistered_id=uuid4(),
    )


@pytest.fixture
async def client(db_engine: AsyncEngine) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient whose requests each get their own session on the test database."""
    factory = build_session_factory(db_engine)

    async def override_get_session() -> AsyncGenerator[AsyncSession, None]:
        async with factory() as request_session:
            try:
                yield request_session
                await request_session.commit()
            except Exception:
                await request_session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
