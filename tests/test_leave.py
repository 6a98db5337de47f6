"""Leave calendar test suite — month bounds, overlap filter, status and
scope filters, ordering, tenant isolation, and the API endpoint.

Tests run against SQLite via the shared conftest.py fixtures.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from hris.common.constants import LeaveStatus, TenantRole
from hris.common.exceptions import ValidationException
from hris.leave.models import LeaveApplication, LeaveType
from hris.leave.service import LeaveCalendarService, month_bounds
from tests.conftest import (
    auth_headers_for,
    make_ctx,
    seed_department,
    seed_employee,
    seed_tenant,
)


# ═════════════════════════════════════════════════════════════════════
# Helpers: seed data for leave tests
# ═════════════════════════════════════════════════════════════════════


async def _seed_leave_type(
    db: AsyncSession, tenant_id: uuid.UUID, *, code: str = "VL", name: str = "Vacation Leave",
) -> LeaveType:
    lt = LeaveType(tenant_id=tenant_id, code=code, name=name, color="#22AA66")
    db.add(lt)
    await db.flush()
    return lt


async def _seed_leave(
    db: AsyncSession,
    tenant_id: uuid.UUID,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID,
    start: date,
    end: date,
    *,
    status: LeaveStatus = LeaveStatus.approved,
) -> LeaveApplication:
    app = LeaveApplication(
        tenant_id=tenant_id,
        employee_id=employee_id,
        leave_type_id=leave_type_id,
        start_date=start,
        end_date=end,
        total_days=Decimal((end - start).days + 1),
        status=status,
    )
    db.add(app)
    await db.flush()
    return app


# ═════════════════════════════════════════════════════════════════════
# 1. month_bounds, pure logic (no DB)
# ═════════════════════════════════════════════════════════════════════


class TestMonthBounds:

    def test_december(self):
        assert month_bounds(2026, 12) == (date(2026, 12, 1), date(2026, 12, 31))

    def test_leap_february(self):
        assert month_bounds(2028, 2) == (date(2028, 2, 1), date(2028, 2, 29))

    def test_common_february(self):
        assert month_bounds(2026, 2)[1] == date(2026, 2, 28)

    @pytest.mark.parametrize("month", [0, 13, -1])
    def test_out_of_range_month(self, month):
        with pytest.raises(ValidationException) as exc:
            month_bounds(2026, month)
        assert "month" in exc.value.errors


# ═════════════════════════════════════════════════════════════════════
# 2. Calendar query
# ═════════════════════════════════════════════════════════════════════


class TestLeaveCalendar:

    async def test_overlap_filter_includes_spanning_leaves(self, db, tenant, hr_ctx):
        emp = await seed_employee(db, tenant.id)
        lt = await _seed_leave_type(db, tenant.id)

        starts_before = await _seed_leave(
            db, tenant.id, emp.id, lt.id, date(2026, 2, 25), date(2026, 3, 2),
        )
        inside = await _seed_leave(
            db, tenant.id, emp.id, lt.id, date(2026, 3, 10), date(2026, 3, 12),
        )
        runs_past = await _seed_leave(
            db, tenant.id, emp.id, lt.id, date(2026, 3, 30), date(2026, 4, 3),
        )
        covers_month = await _seed_leave(
            db, tenant.id, emp.id, lt.id, date(2026, 2, 20), date(2026, 4, 10),
        )
        # Entirely outside March
        await _seed_leave(db, tenant.id, emp.id, lt.id, date(2026, 2, 1), date(2026, 2, 28))
        await _seed_leave(db, tenant.id, emp.id, lt.id, date(2026, 4, 1), date(2026, 4, 2))

        result = await LeaveCalendarService.get_calendar(db, hr_ctx, 2026, 3)

        ids = [e.id for e in result.entries]
        assert set(ids) == {starts_before.id, inside.id, runs_past.id, covers_month.id}
        assert result.total_entries == 4
        assert result.month_start == date(2026, 3, 1)
        assert result.month_end == date(2026, 3, 31)

    async def test_ordered_by_start_date(self, db, tenant, hr_ctx):
        emp = await seed_employee(db, tenant.id)
        lt = await _seed_leave_type(db, tenant.id)
        late = await _seed_leave(db, tenant.id, emp.id, lt.id, date(2026, 5, 20), date(2026, 5, 21))
        early = await _seed_leave(db, tenant.id, emp.id, lt.id, date(2026, 5, 3), date(2026, 5, 4))
        middle = await _seed_leave(db, tenant.id, emp.id, lt.id, date(2026, 5, 11), date(2026, 5, 11))

        result = await LeaveCalendarService.get_calendar(db, hr_ctx, 2026, 5)

        assert [e.id for e in result.entries] == [early.id, middle.id, late.id]

    async def test_show_pending_toggle(self, db, tenant, hr_ctx):
        emp = await seed_employee(db, tenant.id)
        lt = await _seed_leave_type(db, tenant.id)
        approved = await _seed_leave(
            db, tenant.id, emp.id, lt.id, date(2026, 6, 1), date(2026, 6, 2),
        )
        pending = await _seed_leave(
            db, tenant.id, emp.id, lt.id, date(2026, 6, 8), date(2026, 6, 9),
            status=LeaveStatus.pending,
        )
        await _seed_leave(
            db, tenant.id, emp.id, lt.id, date(2026, 6, 15), date(2026, 6, 16),
            status=LeaveStatus.rejected,
        )
        await _seed_leave(
            db, tenant.id, emp.id, lt.id, date(2026, 6, 22), date(2026, 6, 23),
            status=LeaveStatus.cancelled,
        )

        with_pending = await LeaveCalendarService.get_calendar(db, hr_ctx, 2026, 6)
        approved_only = await LeaveCalendarService.get_calendar(
            db, hr_ctx, 2026, 6, show_pending=False,
        )

        assert {e.id for e in with_pending.entries} == {approved.id, pending.id}
        assert [e.id for e in approved_only.entries] == [approved.id]

    async def test_filter_by_employee(self, db, tenant, hr_ctx):
        alice = await seed_employee(db, tenant.id, first_name="Alice")
        bob = await seed_employee(db, tenant.id, first_name="Bob")
        lt = await _seed_leave_type(db, tenant.id)
        mine = await _seed_leave(db, tenant.id, alice.id, lt.id, date(2026, 7, 1), date(2026, 7, 3))
        await _seed_leave(db, tenant.id, bob.id, lt.id, date(2026, 7, 1), date(2026, 7, 3))

        result = await LeaveCalendarService.get_calendar(
            db, hr_ctx, 2026, 7, employee_id=alice.id,
        )

        assert [e.id for e in result.entries] == [mine.id]
        assert result.entries[0].employee.full_name == "Alice Employee"

    async def test_filter_by_department(self, db, tenant, hr_ctx):
        eng = await seed_department(db, tenant.id, name="Engineering", code="ENG")
        ops = await seed_department(db, tenant.id, name="Operations", code="OPS")
        dev = await seed_employee(db, tenant.id, department_id=eng.id)
        clerk = await seed_employee(db, tenant.id, department_id=ops.id)
        lt = await _seed_leave_type(db, tenant.id)
        dev_leave = await _seed_leave(db, tenant.id, dev.id, lt.id, date(2026, 8, 3), date(2026, 8, 4))
        await _seed_leave(db, tenant.id, clerk.id, lt.id, date(2026, 8, 3), date(2026, 8, 4))

        result = await LeaveCalendarService.get_calendar(
            db, hr_ctx, 2026, 8, department_id=eng.id,
        )

        assert [e.id for e in result.entries] == [dev_leave.id]

    async def test_december_includes_new_year_spillover(self, db, tenant, hr_ctx):
        emp = await seed_employee(db, tenant.id)
        lt = await _seed_leave_type(db, tenant.id)
        holiday = await _seed_leave(
            db, tenant.id, emp.id, lt.id, date(2026, 12, 28), date(2027, 1, 4),
        )

        december = await LeaveCalendarService.get_calendar(db, hr_ctx, 2026, 12)
        january = await LeaveCalendarService.get_calendar(db, hr_ctx, 2027, 1)

        assert [e.id for e in december.entries] == [holiday.id]
        assert [e.id for e in january.entries] == [holiday.id]

    async def test_other_tenant_leaves_invisible(self, db, tenant, hr_ctx):
        other = await seed_tenant(db)
        outsider = await seed_employee(db, other.id)
        lt = await _seed_leave_type(db, other.id)
        await _seed_leave(db, other.id, outsider.id, lt.id, date(2026, 9, 1), date(2026, 9, 2))

        result = await LeaveCalendarService.get_calendar(db, hr_ctx, 2026, 9)

        assert result.entries == []

    async def test_invalid_month_raises(self, db, hr_ctx):
        with pytest.raises(ValidationException):
            await LeaveCalendarService.get_calendar(db, hr_ctx, 2026, 13)


# ═════════════════════════════════════════════════════════════════════
# 3. API endpoint
# ═════════════════════════════════════════════════════════════════════


class TestLeaveCalendarAPI:

    async def test_calendar_endpoint(self, client, db, tenant, hr_ctx):
        emp = await seed_employee(db, tenant.id, first_name="Maya", last_name="Cruz")
        lt = await _seed_leave_type(db, tenant.id, code="SL", name="Sick Leave")
        await _seed_leave(db, tenant.id, emp.id, lt.id, date(2026, 3, 30), date(2026, 4, 2))
        await db.commit()

        resp = await client.get(
            "/api/v1/leave/calendar",
            params={"year": 2026, "month": 4},
            headers=auth_headers_for(hr_ctx),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["total_entries"] == 1
        entry = body["entries"][0]
        assert entry["employee"]["full_name"] == "Maya Cruz"
        assert entry["employee"]["initials"] == "MC"
        assert entry["leave_type"]["code"] == "SL"
        assert entry["start_date"] == "2026-03-30"

    async def test_month_13_is_422(self, client, db, hr_ctx):
        await db.commit()
        resp = await client.get(
            "/api/v1/leave/calendar",
            params={"year": 2026, "month": 13},
            headers=auth_headers_for(hr_ctx),
        )
        assert resp.status_code == 422
        assert "month" in resp.json()["errors"]

    async def test_supervisor_can_view(self, client, db, tenant):
        emp = await seed_employee(db, tenant.id)
        ctx = await make_ctx(db, tenant.id, TenantRole.supervisor, employee=emp)
        await db.commit()
        resp = await client.get(
            "/api/v1/leave/calendar",
            params={"year": 2026, "month": 1},
            headers=auth_headers_for(ctx),
        )
        assert resp.status_code == 200
