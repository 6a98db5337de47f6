"""KPI test suite — achievement math, weighted summaries, progress
recording, completion, and the participant endpoint."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris.common.audit import AuditTrail
from hris.common.constants import KpiAssignmentStatus, TenantRole
from hris.common.exceptions import InvalidStateException, NotFoundException
from hris.performance.models import KpiAssignment, PerformanceCycleParticipant
from hris.performance.schemas import KpiAssignmentCreate
from hris.performance.service import KpiService, calculate_achievement, summarize_kpis
from tests.conftest import auth_headers_for, make_ctx, seed_employee, seed_tenant


# ── Helpers ─────────────────────────────────────────────────────────


def _kpi(weight: str, achievement: str | None, status=KpiAssignmentStatus.in_progress):
    return KpiAssignment(
        name="kpi",
        target_value=Decimal("100"),
        weight=Decimal(weight),
        achievement_percentage=Decimal(achievement) if achievement is not None else None,
        status=status,
    )


async def _seed_participant(
    db: AsyncSession, tenant_id: uuid.UUID, *, cycle_name: str = "FY2026 H1",
) -> PerformanceCycleParticipant:
    emp = await seed_employee(db, tenant_id)
    participant = PerformanceCycleParticipant(
        tenant_id=tenant_id, employee_id=emp.id, cycle_name=cycle_name,
    )
    db.add(participant)
    await db.flush()
    return participant


# ═════════════════════════════════════════════════════════════════════
# 1. Pure calculations
# ═════════════════════════════════════════════════════════════════════


class TestCalculateAchievement:

    def test_rounds_half_up_to_two_places(self):
        assert calculate_achievement(Decimal("260"), Decimal("300")) == Decimal("86.67")

    def test_over_target(self):
        assert calculate_achievement(Decimal("150"), Decimal("100")) == Decimal("150.00")

    def test_zero_target_is_null(self):
        assert calculate_achievement(Decimal("5"), Decimal("0")) is None

    def test_no_actual_is_null(self):
        assert calculate_achievement(None, Decimal("10")) is None


class TestSummarizeKpis:

    def test_weighted_average(self):
        summary = summarize_kpis([_kpi("2", "80"), _kpi("3", "100")])
        assert summary.total_weight == 5.0
        assert summary.weighted_average_achievement == 92.0
        assert summary.total_kpis == 2
        assert summary.in_progress_kpis == 2

    def test_kpis_without_achievement_excluded_from_average(self):
        summary = summarize_kpis([
            _kpi("2", "80"),
            _kpi("3", "100", status=KpiAssignmentStatus.completed),
            _kpi("1", None, status=KpiAssignmentStatus.pending),
        ])
        assert summary.weighted_average_achievement == 92.0
        # Weight is still counted
        assert summary.total_weight == 6.0
        assert summary.total_kpis == 3
        assert summary.completed_kpis == 1
        assert summary.pending_kpis == 1
        assert summary.in_progress_kpis == 1

    def test_empty(self):
        summary = summarize_kpis([])
        assert summary.total_kpis == 0
        assert summary.total_weight == 0.0
        assert summary.weighted_average_achievement == 0.0

    def test_nothing_achieved_yet(self):
        summary = summarize_kpis([_kpi("1", None, status=KpiAssignmentStatus.pending)])
        assert summary.weighted_average_achievement == 0.0


# ═════════════════════════════════════════════════════════════════════
# 2. Service
# ═════════════════════════════════════════════════════════════════════


class TestKpiService:

    async def test_create_assignment(self, db, tenant, hr_ctx):
        participant = await _seed_participant(db, tenant.id)
        kpi = await KpiService.create_assignment(
            db, hr_ctx,
            KpiAssignmentCreate(
                participant_id=participant.id,
                name="Tickets closed",
                target_value=Decimal("300"),
                weight=Decimal("2"),
            ),
        )
        assert kpi.status == KpiAssignmentStatus.pending
        assert kpi.tenant_id == tenant.id
        assert kpi.achievement_percentage is None

    async def test_create_for_unknown_participant(self, db, hr_ctx):
        with pytest.raises(NotFoundException):
            await KpiService.create_assignment(
                db, hr_ctx,
                KpiAssignmentCreate(
                    participant_id=uuid.uuid4(), name="x", target_value=Decimal("1"),
                ),
            )

    async def test_record_progress_updates_achievement(self, db, tenant, hr_ctx):
        participant = await _seed_participant(db, tenant.id)
        kpi = await KpiService.create_assignment(
            db, hr_ctx,
            KpiAssignmentCreate(
                participant_id=participant.id, name="Revenue", target_value=Decimal("300"),
            ),
        )

        entry = await KpiService.record_progress(db, hr_ctx, kpi.id, Decimal("260"), "Q1")

        assert entry.value == Decimal("260")
        assert entry.recorded_by == hr_ctx.user_id
        assert kpi.actual_value == Decimal("260")
        assert kpi.achievement_percentage == Decimal("86.67")
        assert kpi.status == KpiAssignmentStatus.in_progress

        audit = (
            await db.execute(
                select(AuditTrail).where(
                    AuditTrail.entity_id == kpi.id,
                    AuditTrail.action == "record_progress",
                )
            )
        ).scalars().one()
        assert audit.new_values["achievement_percentage"] == "86.67"

    async def test_progress_history_newest_first(self, db, tenant, hr_ctx):
        participant = await _seed_participant(db, tenant.id)
        kpi = await KpiService.create_assignment(
            db, hr_ctx,
            KpiAssignmentCreate(
                participant_id=participant.id, name="Calls", target_value=Decimal("50"),
            ),
        )
        await KpiService.record_progress(db, hr_ctx, kpi.id, Decimal("10"))
        await KpiService.record_progress(db, hr_ctx, kpi.id, Decimal("25"))

        history = await KpiService.get_progress_history(db, hr_ctx, kpi.id)

        assert [h.value for h in history] == [Decimal("25"), Decimal("10")]
        assert kpi.achievement_percentage == Decimal("50.00")

    async def test_completed_kpi_rejects_progress(self, db, tenant, hr_ctx):
        participant = await _seed_participant(db, tenant.id)
        kpi = await KpiService.create_assignment(
            db, hr_ctx,
            KpiAssignmentCreate(
                participant_id=participant.id, name="NPS", target_value=Decimal("70"),
            ),
        )
        await KpiService.mark_completed(db, hr_ctx, kpi.id)
        assert kpi.completed_at is not None

        with pytest.raises(InvalidStateException):
            await KpiService.record_progress(db, hr_ctx, kpi.id, Decimal("80"))
        with pytest.raises(InvalidStateException):
            await KpiService.mark_completed(db, hr_ctx, kpi.id)

    async def test_participant_summary(self, db, tenant, hr_ctx):
        participant = await _seed_participant(db, tenant.id)
        first = await KpiService.create_assignment(
            db, hr_ctx,
            KpiAssignmentCreate(
                participant_id=participant.id, name="A",
                target_value=Decimal("100"), weight=Decimal("2"),
            ),
        )
        second = await KpiService.create_assignment(
            db, hr_ctx,
            KpiAssignmentCreate(
                participant_id=participant.id, name="B",
                target_value=Decimal("50"), weight=Decimal("3"),
            ),
        )
        await KpiService.record_progress(db, hr_ctx, first.id, Decimal("80"))
        await KpiService.record_progress(db, hr_ctx, second.id, Decimal("50"))

        out = await KpiService.get_participant_summary(db, hr_ctx, participant.id)

        assert out.summary.total_kpis == 2
        assert out.summary.total_weight == 5.0
        assert out.summary.weighted_average_achievement == 92.0
        assert {k.name for k in out.kpis} == {"A", "B"}

    async def test_other_tenant_participant_not_found(self, db, hr_ctx):
        other = await seed_tenant(db)
        participant = await _seed_participant(db, other.id)
        with pytest.raises(NotFoundException):
            await KpiService.get_participant_summary(db, hr_ctx, participant.id)


# ═════════════════════════════════════════════════════════════════════
# 3. API
# ═════════════════════════════════════════════════════════════════════


class TestPerformanceAPI:

    async def test_record_progress_and_read_summary(self, client, db, tenant, hr_ctx):
        participant = await _seed_participant(db, tenant.id)
        await db.commit()
        headers = auth_headers_for(hr_ctx)

        resp = await client.post(
            "/api/v1/performance/kpi-assignments",
            json={
                "participant_id": str(participant.id),
                "name": "Deals closed",
                "target_value": "300",
                "weight": "2",
            },
            headers=headers,
        )
        assert resp.status_code == 201
        kpi_id = resp.json()["id"]

        resp = await client.post(
            f"/api/v1/performance/kpi-assignments/{kpi_id}/progress",
            json={"value": "260"},
            headers=headers,
        )
        assert resp.status_code == 201

        resp = await client.get(
            f"/api/v1/performance/participants/{participant.id}/kpis", headers=headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"]["weighted_average_achievement"] == 86.67
        assert body["kpis"][0]["status"] == "in_progress"

        resp = await client.put(
            f"/api/v1/performance/kpi-assignments/{kpi_id}/complete", headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "completed"

        resp = await client.post(
            f"/api/v1/performance/kpi-assignments/{kpi_id}/progress",
            json={"value": "300"},
            headers=headers,
        )
        assert resp.status_code == 422

    async def test_requires_organization_manage(self, client, db, tenant):
        participant = await _seed_participant(db, tenant.id)
        emp = await seed_employee(db, tenant.id)
        ctx = await make_ctx(db, tenant.id, TenantRole.hr_staff, employee=emp)
        await db.commit()

        resp = await client.get(
            f"/api/v1/performance/participants/{participant.id}/kpis",
            headers=auth_headers_for(ctx),
        )
        assert resp.status_code == 403
