"""KPI service — participant summaries, progress recording, completion.

Achievement is ``actual / target * 100`` rounded to two places; it stays
null while the target is zero. A participant's weighted average only
counts KPIs that have an achievement recorded.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hris.auth.context import RequestContext
from hris.common.audit import create_audit_entry
from hris.common.constants import KpiAssignmentStatus
from hris.common.exceptions import InvalidStateException, NotFoundException
from hris.performance.models import (
    KpiAssignment,
    KpiProgressEntry,
    PerformanceCycleParticipant,
)
from hris.performance.schemas import (
    KpiAssignmentCreate,
    KpiAssignmentOut,
    KpiSummary,
    ParticipantKpiOut,
)

logger = logging.getLogger(__name__)

_TWO_PLACES = Decimal("0.01")


def calculate_achievement(
    actual: Optional[Decimal], target: Decimal,
) -> Optional[Decimal]:
    """Percentage of *target* reached, or None if it cannot be computed."""
    if actual is None or not target:
        return None
    pct = Decimal(actual) / Decimal(target) * 100
    return pct.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def summarize_kpis(assignments: Iterable[KpiAssignment]) -> KpiSummary:
    """Aggregate counts and the weighted mean achievement of *assignments*."""
    total = completed = pending = in_progress = 0
    total_weight = 0.0
    weighted_sum = 0.0
    achieved_weight = 0.0

    for kpi in assignments:
        total += 1
        weight = float(kpi.weight)
        total_weight += weight

        if kpi.status == KpiAssignmentStatus.completed:
            completed += 1
        elif kpi.status == KpiAssignmentStatus.pending:
            pending += 1
        elif kpi.status == KpiAssignmentStatus.in_progress:
            in_progress += 1

        if kpi.achievement_percentage is not None:
            weighted_sum += weight * float(kpi.achievement_percentage)
            achieved_weight += weight

    average = round(weighted_sum / achieved_weight, 2) if achieved_weight else 0.0

    return KpiSummary(
        total_kpis=total,
        completed_kpis=completed,
        pending_kpis=pending,
        in_progress_kpis=in_progress,
        total_weight=round(total_weight, 2),
        weighted_average_achievement=average,
    )


class KpiService:
    """Async KPI operations scoped to the caller's tenant."""

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _get_participant(
        db: AsyncSession, ctx: RequestContext, participant_id: uuid.UUID,
    ) -> PerformanceCycleParticipant:
        participant = (
            await db.execute(
                select(PerformanceCycleParticipant)
                .where(
                    PerformanceCycleParticipant.id == participant_id,
                    PerformanceCycleParticipant.tenant_id == ctx.tenant_id,
                )
                .options(selectinload(PerformanceCycleParticipant.kpi_assignments))
                .execution_options(populate_existing=True)
            )
        ).scalars().first()
        if participant is None:
            raise NotFoundException("PerformanceCycleParticipant", participant_id)
        return participant

    @staticmethod
    async def _get_assignment(
        db: AsyncSession, ctx: RequestContext, assignment_id: uuid.UUID,
    ) -> KpiAssignment:
        assignment = (
            await db.execute(
                select(KpiAssignment)
                .where(
                    KpiAssignment.id == assignment_id,
                    KpiAssignment.tenant_id == ctx.tenant_id,
                )
                .with_for_update()
            )
        ).scalars().first()
        if assignment is None:
            raise NotFoundException("KpiAssignment", assignment_id)
        return assignment

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def get_participant_summary(
        db: AsyncSession, ctx: RequestContext, participant_id: uuid.UUID,
    ) -> ParticipantKpiOut:
        participant = await KpiService._get_participant(db, ctx, participant_id)
        kpis = list(participant.kpi_assignments)
        return ParticipantKpiOut(
            participant_id=participant.id,
            employee_id=participant.employee_id,
            cycle_name=participant.cycle_name,
            summary=summarize_kpis(kpis),
            kpis=[KpiAssignmentOut.model_validate(k) for k in kpis],
        )

    @staticmethod
    async def get_progress_history(
        db: AsyncSession, ctx: RequestContext, assignment_id: uuid.UUID,
    ) -> list[KpiProgressEntry]:
        await KpiService._get_assignment(db, ctx, assignment_id)
        result = await db.execute(
            select(KpiProgressEntry)
            .where(
                KpiProgressEntry.kpi_assignment_id == assignment_id,
                KpiProgressEntry.tenant_id == ctx.tenant_id,
            )
            .order_by(KpiProgressEntry.recorded_at.desc())
        )
        return list(result.scalars().all())

    # ── Mutations ───────────────────────────────────────────────────

    @staticmethod
    async def create_assignment(
        db: AsyncSession, ctx: RequestContext, data: KpiAssignmentCreate,
    ) -> KpiAssignment:
        participant = await KpiService._get_participant(db, ctx, data.participant_id)
        assignment = KpiAssignment(
            tenant_id=ctx.tenant_id,
            participant_id=participant.id,
            name=data.name,
            target_value=data.target_value,
            weight=data.weight,
            notes=data.notes,
            status=KpiAssignmentStatus.pending,
        )
        db.add(assignment)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="create",
            entity_type="kpi_assignment",
            entity_id=assignment.id,
            actor_id=ctx.user_id,
            new_values={
                "participant_id": str(participant.id),
                "name": data.name,
                "target_value": str(data.target_value),
                "weight": str(data.weight),
            },
        )
        return assignment

    @staticmethod
    async def record_progress(
        db: AsyncSession,
        ctx: RequestContext,
        assignment_id: uuid.UUID,
        value: Decimal,
        notes: Optional[str] = None,
    ) -> KpiProgressEntry:
        """Append a progress entry and recompute the assignment's achievement."""
        assignment = await KpiService._get_assignment(db, ctx, assignment_id)
        if assignment.status == KpiAssignmentStatus.completed:
            raise InvalidStateException(
                "KPI assignment", assignment.status, "record progress on",
            )

        entry = KpiProgressEntry(
            tenant_id=ctx.tenant_id,
            kpi_assignment_id=assignment.id,
            value=value,
            notes=notes,
            recorded_by=ctx.user_id,
        )
        db.add(entry)

        old_status = assignment.status
        assignment.actual_value = value
        assignment.achievement_percentage = calculate_achievement(
            value, assignment.target_value,
        )
        if assignment.status == KpiAssignmentStatus.pending:
            assignment.status = KpiAssignmentStatus.in_progress
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="record_progress",
            entity_type="kpi_assignment",
            entity_id=assignment.id,
            actor_id=ctx.user_id,
            old_values={"status": old_status.value},
            new_values={
                "status": assignment.status.value,
                "actual_value": str(value),
                "achievement_percentage": (
                    str(assignment.achievement_percentage)
                    if assignment.achievement_percentage is not None else None
                ),
            },
        )
        logger.info(
            "KPI %s progress recorded: %s (achievement %s)",
            assignment.id, value, assignment.achievement_percentage,
        )
        return entry

    @staticmethod
    async def mark_completed(
        db: AsyncSession, ctx: RequestContext, assignment_id: uuid.UUID,
    ) -> KpiAssignment:
        assignment = await KpiService._get_assignment(db, ctx, assignment_id)
        if assignment.status == KpiAssignmentStatus.completed:
            raise InvalidStateException("KPI assignment", assignment.status, "complete")

        old_status = assignment.status
        assignment.status = KpiAssignmentStatus.completed
        assignment.completed_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="complete",
            entity_type="kpi_assignment",
            entity_id=assignment.id,
            actor_id=ctx.user_id,
            old_values={"status": old_status.value},
            new_values={"status": assignment.status.value},
        )
        return assignment
