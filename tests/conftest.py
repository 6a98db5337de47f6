"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (leave, performance, loans, documents,
preboarding, training, notifications, audit).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hris.auth.context import RequestContext
from hris.common.constants import TenantRole
from hris.config import settings
from hris.database import Base, get_db
from hris.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
# (e.g. Employee → LeaveApplication, User → Notification, etc.)
import hris.auth.models  # noqa: F401
import hris.common.audit  # noqa: F401
import hris.core_hr.models  # noqa: F401
import hris.documents.models  # noqa: F401
import hris.leave.models  # noqa: F401
import hris.loans.models  # noqa: F401
import hris.notifications.models  # noqa: F401
import hris.performance.models  # noqa: F401
import hris.preboarding.models  # noqa: F401
import hris.training.models  # noqa: F401

# ── SQLite compat: compile PG-specific types to TEXT/BLOB ───────────

from sqlalchemy.dialects.postgresql import INET, JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
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


# Register PG-compatible functions for SQLite
@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() and uuid_generate_v4() as SQLite custom functions."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )
    dbapi_conn.create_function(
        "uuid_generate_v4", 0, lambda: str(uuid.uuid4()),
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


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    from hris.common.rate_limit import limiter
    limiter.reset()
    yield


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


# ── Model factories ─────────────────────────────────────────────────

def _make_tenant(*, slug: Optional[str] = None, name: str = "Acme Corp") -> dict:
    return dict(
        id=uuid.uuid4(),
        slug=slug or f"acme-{uuid.uuid4().hex[:6]}",
        name=name,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_user(*, email: Optional[str] = None, name: str = "Test User") -> dict:
    return dict(
        id=uuid.uuid4(),
        email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
        name=name,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_department(
    tenant_id: uuid.UUID,
    *,
    name: str = "Engineering",
    code: str = "ENG",
) -> dict:
    return dict(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        name=name,
        code=code,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


def _make_employee(
    tenant_id: uuid.UUID,
    *,
    email: Optional[str] = None,
    first_name: str = "Test",
    last_name: str = "Employee",
    user_id: Optional[uuid.UUID] = None,
    department_id: Optional[uuid.UUID] = None,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        tenant_id=tenant_id,
        user_id=user_id,
        employee_number=f"T-{uuid.uuid4().hex[:8].upper()}",
        first_name=first_name,
        last_name=last_name,
        email=email or f"emp-{uuid.uuid4().hex[:8]}@example.com",
        department_id=department_id,
        hire_date=date(2024, 1, 15),
        employment_status="active",
        employment_type="regular",
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


async def seed_tenant(db: AsyncSession, **kwargs):
    from hris.auth.models import Tenant

    tenant = Tenant(**_make_tenant(**kwargs))
    db.add(tenant)
    await db.flush()
    return tenant


async def seed_user(db: AsyncSession, **kwargs):
    from hris.auth.models import User

    user = User(**_make_user(**kwargs))
    db.add(user)
    await db.flush()
    return user


async def seed_department(db: AsyncSession, tenant_id: uuid.UUID, **kwargs):
    from hris.core_hr.models import Department

    dept = Department(**_make_department(tenant_id, **kwargs))
    db.add(dept)
    await db.flush()
    return dept


async def seed_employee(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    *,
    with_user: bool = True,
    **kwargs,
):
    """Insert an employee, by default linked to a fresh User."""
    from hris.core_hr.models import Employee

    if with_user and "user_id" not in kwargs:
        user = await seed_user(db)
        kwargs["user_id"] = user.id
    emp = Employee(**_make_employee(tenant_id, **kwargs))
    db.add(emp)
    await db.flush()
    return emp


async def make_ctx(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    role: TenantRole = TenantRole.employee,
    *,
    employee=None,
    user=None,
    password_confirmed_at: Optional[datetime] = None,
) -> RequestContext:
    """RequestContext for calling services directly.

    With an *employee*, the context acts as that employee's user.
    """
    from hris.auth.models import User

    if user is None:
        if employee is not None and employee.user_id is not None:
            user = await db.get(User, employee.user_id)
        else:
            user = await seed_user(db)
    return RequestContext(
        tenant_id=tenant_id,
        user=user,
        role=role,
        employee=employee,
        password_confirmed_at=password_confirmed_at,
    )


@pytest.fixture
async def tenant(db):
    return await seed_tenant(db)


@pytest.fixture
async def hr_ctx(db, tenant) -> RequestContext:
    """HR manager acting within ``tenant`` (has an employee record)."""
    emp = await seed_employee(db, tenant.id, first_name="Hana", last_name="Reyes")
    return await make_ctx(db, tenant.id, TenantRole.hr_manager, employee=emp)


@pytest.fixture
async def employee_ctx(db, tenant) -> RequestContext:
    """Plain employee acting within ``tenant``."""
    emp = await seed_employee(db, tenant.id, first_name="Eli", last_name="Santos")
    return await make_ctx(db, tenant.id, TenantRole.employee, employee=emp)


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    tenant_id: uuid.UUID,
    role: TenantRole = TenantRole.employee,
    *,
    password_confirmed_at: Optional[datetime] = None,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token the way the identity service issues them."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {
        "sub": str(user_id),
        "tid": str(tenant_id),
        "role": role.value,
        "type": token_type,
        "exp": exp,
    }
    if password_confirmed_at is not None:
        payload["pwc"] = int(password_confirmed_at.timestamp())
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def auth_headers_for(ctx: RequestContext, **kwargs) -> dict[str, str]:
    """Bearer headers matching an existing RequestContext."""
    token = create_access_token(ctx.user_id, ctx.tenant_id, ctx.role, **kwargs)
    return {"Authorization": f"Bearer {token}"}
