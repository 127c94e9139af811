"""Shared test fixtures — async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from backend.auth.schemas import Actor
from backend.common.constants import LeaveStatus, LeaveType, UserRole, WorkArrangement
from backend.config import settings
from backend.database import Base, get_db
from backend.leave.calendar import inclusive_day_span
from backend.main import create_app

# Import model modules so their tables are registered on Base.metadata
import backend.common.audit  # noqa: F401
import backend.leave.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT/CHAR ───────────

from sqlalchemy.dialects.postgresql import JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


# ── Actors ──────────────────────────────────────────────────────────

@pytest.fixture
def employee() -> Actor:
    return Actor(id=uuid.uuid4(), role=UserRole.employee)


@pytest.fixture
def other_employee() -> Actor:
    return Actor(id=uuid.uuid4(), role=UserRole.employee)


@pytest.fixture
def hr_admin() -> Actor:
    return Actor(id=uuid.uuid4(), role=UserRole.hr_admin)


# ── Model factories ─────────────────────────────────────────────────

def _make_leave_request(
    *,
    requester_id: uuid.UUID,
    start_date: date = date(2024, 3, 1),
    end_date: date = date(2024, 3, 3),
    leave_type: LeaveType = LeaveType.annual,
    status: LeaveStatus = LeaveStatus.pending,
    reason: str = "Family trip to the hills",
    applied_at: Optional[datetime] = None,
) -> dict:
    now = datetime.now(timezone.utc)
    return dict(
        id=uuid.uuid4(),
        requester_id=requester_id,
        leave_type=leave_type,
        start_date=start_date,
        end_date=end_date,
        total_days=inclusive_day_span(start_date, end_date),
        reason=reason,
        status=status,
        applied_at=applied_at or now,
        work_arrangement=WorkArrangement.no_coverage,
        created_at=now,
        updated_at=now,
    )


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    actor_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {
        "sub": str(actor_id),
        "role": role.value,
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers_for(actor: Actor) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(actor.id, actor.role)}"}


@pytest.fixture
def employee_headers(employee) -> dict[str, str]:
    return auth_headers_for(employee)


@pytest.fixture
def other_headers(other_employee) -> dict[str, str]:
    return auth_headers_for(other_employee)


@pytest.fixture
def admin_headers(hr_admin) -> dict[str, str]:
    return auth_headers_for(hr_admin)
