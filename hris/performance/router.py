"""Performance router — KPI assignments and participant summaries.

Every endpoint requires the ``organization.manage`` permission.
"""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hris.auth.context import RequestContext
from hris.auth.gate import require_permission
from hris.common.constants import Permission
from hris.database import get_db
from hris.performance.schemas import (
    KpiAssignmentCreate,
    KpiAssignmentOut,
    KpiProgressCreate,
    KpiProgressEntryOut,
    ParticipantKpiOut,
)
from hris.performance.service import KpiService

router = APIRouter(prefix="", tags=["performance"])

_manage = require_permission(Permission.organization_manage)


# ── GET /participants/{participant_id}/kpis ─────────────────────────

@router.get("/participants/{participant_id}/kpis", response_model=ParticipantKpiOut)
async def participant_kpis(
    participant_id: uuid.UUID,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    """KPI list plus completion and weighted-achievement summary."""
    return await KpiService.get_participant_summary(db, ctx, participant_id)


# ── POST /kpi-assignments ───────────────────────────────────────────

@router.post("/kpi-assignments", response_model=KpiAssignmentOut, status_code=201)
async def create_kpi_assignment(
    body: KpiAssignmentCreate,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    return await KpiService.create_assignment(db, ctx, body)


# ── POST /kpi-assignments/{assignment_id}/progress ──────────────────

@router.post(
    "/kpi-assignments/{assignment_id}/progress",
    response_model=KpiProgressEntryOut,
    status_code=201,
)
async def record_kpi_progress(
    assignment_id: uuid.UUID,
    body: KpiProgressCreate,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    """Record a new actual value and recompute achievement."""
    return await KpiService.record_progress(
        db, ctx, assignment_id, body.value, body.notes,
    )


# ── GET /kpi-assignments/{assignment_id}/progress ───────────────────

@router.get(
    "/kpi-assignments/{assignment_id}/progress",
    response_model=list[KpiProgressEntryOut],
)
async def kpi_progress_history(
    assignment_id: uuid.UUID,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    return await KpiService.get_progress_history(db, ctx, assignment_id)


# ── PUT /kpi-assignments/{assignment_id}/complete ───────────────────

@router.put("/kpi-assignments/{assignment_id}/complete", response_model=KpiAssignmentOut)
async def complete_kpi(
    assignment_id: uuid.UUID,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    return await KpiService.mark_completed(db, ctx, assignment_id)
