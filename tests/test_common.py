"""Tests for common utilities — pagination, RFC 7807 error handlers,
and the health endpoint."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris.common.exceptions import (
    ConflictError,
    InvalidStateException,
    NotFoundException,
    register_exception_handlers,
)
from hris.common.pagination import PaginationParams, paginate
from hris.core_hr.models import Employee
from tests.conftest import seed_employee


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed_many(db: AsyncSession, tenant_id, prefix: str, count: int = 5) -> None:
    for i in range(count):
        await seed_employee(
            db, tenant_id, with_user=False,
            first_name=f"{prefix}{i}", email=f"{prefix.lower()}{i}@example.com",
        )


class _Body(BaseModel):
    quantity: int = Field(..., ge=1)


def _problem_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    async def missing():
        raise NotFoundException("Widget", "w-1")

    @app.get("/duplicate")
    async def duplicate():
        raise ConflictError("code", "ENG")

    @app.get("/stuck")
    async def stuck():
        raise InvalidStateException("loan application", "approved", "cancel")

    @app.post("/validate")
    async def validate(body: _Body):
        return body

    return app


# ═════════════════════════════════════════════════════════════════════
# 1. Pagination
# ═════════════════════════════════════════════════════════════════════


class TestPagination:
    """Tests for pagination helper."""

    async def test_paginate_with_sort(self, db: AsyncSession, tenant):
        """paginate() with sort parameter applies ORDER BY."""
        await _seed_many(db, tenant.id, "P")

        query = select(Employee)
        params = PaginationParams(page=1, page_size=3, sort="-first_name")
        result = await paginate(db, query, params, model=Employee)

        assert [e.first_name for e in result.data] == ["P4", "P3", "P2"]
        assert result.meta.total == 5
        assert result.meta.has_next is True

    async def test_paginate_page_2(self, db: AsyncSession, tenant):
        """paginate() page 2 returns remaining items."""
        await _seed_many(db, tenant.id, "Q")

        query = select(Employee)
        params = PaginationParams(page=2, page_size=3, sort=None)
        result = await paginate(db, query, params, model=Employee)
        assert len(result.data) == 2  # 5 total, page 2 at size 3 = 2
        assert result.meta.has_prev is True
        assert result.meta.has_next is False

    async def test_unknown_sort_column_ignored(self, db: AsyncSession, tenant):
        await _seed_many(db, tenant.id, "R", count=2)

        params = PaginationParams(page=1, page_size=10, sort="no_such_column")
        result = await paginate(db, select(Employee), params, model=Employee)
        assert result.meta.total == 2

    @pytest.mark.parametrize("sort", ["metadata", "-registry", "department", "__table__"])
    async def test_non_column_sort_names_ignored(self, db: AsyncSession, tenant, sort):
        await _seed_many(db, tenant.id, "S", count=3)

        params = PaginationParams(page=1, page_size=2, sort=sort)
        result = await paginate(db, select(Employee), params, model=Employee)
        assert len(result.data) == 2
        assert result.meta.total == 3
        assert result.meta.total_pages == 2

    async def test_paginate_empty_result(self, db: AsyncSession):
        """paginate() with no matching rows returns empty data."""
        query = select(Employee).where(Employee.first_name == "ZZZ_NONEXISTENT")
        params = PaginationParams(page=1, page_size=10, sort=None)
        result = await paginate(db, query, params, model=Employee)
        assert len(result.data) == 0
        assert result.meta.total == 0
        assert result.meta.total_pages == 0


# ═════════════════════════════════════════════════════════════════════
# 2. Problem details
# ═════════════════════════════════════════════════════════════════════


class TestProblemDetails:

    @pytest.fixture
    async def problem_client(self):
        async with AsyncClient(
            transport=ASGITransport(app=_problem_app()), base_url="http://test",
        ) as ac:
            yield ac

    async def test_not_found(self, problem_client):
        resp = await problem_client.get("/missing")
        assert resp.status_code == 404
        assert resp.headers["content-type"].startswith("application/problem+json")
        body = resp.json()
        assert body["type"].endswith("/not-found")
        assert body["instance"] == "/missing"
        assert "errors" not in body

    async def test_conflict_carries_field_errors(self, problem_client):
        resp = await problem_client.get("/duplicate")
        assert resp.status_code == 409
        assert resp.json()["errors"] == {"code": ["'ENG' is already in use."]}

    async def test_invalid_state(self, problem_client):
        resp = await problem_client.get("/stuck")
        assert resp.status_code == 422
        assert resp.json()["detail"] == (
            "Cannot cancel a loan application with status 'approved'."
        )

    async def test_request_validation_flattens_locations(self, problem_client):
        resp = await problem_client.post("/validate", json={"quantity": 0})
        assert resp.status_code == 422
        body = resp.json()
        assert body["type"].endswith("/validation-error")
        assert list(body["errors"]) == ["quantity"]


async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
