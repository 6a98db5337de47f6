"""Leave router — team calendar."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hris.auth.context import RequestContext
from hris.auth.gate import require_permission
from hris.common.constants import Permission
from hris.database import get_db
from hris.leave.schemas import LeaveCalendarOut
from hris.leave.service import LeaveCalendarService

router = APIRouter(prefix="", tags=["leave"])


# ── GET /calendar ───────────────────────────────────────────────────

@router.get("/calendar", response_model=LeaveCalendarOut)
async def leave_calendar(
    year: int = Query(..., ge=1900, le=2200),
    month: int = Query(..., ge=1, le=12),
    employee_id: Optional[uuid.UUID] = Query(None),
    department_id: Optional[uuid.UUID] = Query(None),
    show_pending: bool = Query(True),
    ctx: RequestContext = Depends(require_permission(Permission.leaves_view)),
    db: AsyncSession = Depends(get_db),
):
    """Approved (and optionally pending) leaves overlapping the month."""
    return await LeaveCalendarService.get_calendar(
        db,
        ctx,
        year,
        month,
        employee_id=employee_id,
        department_id=department_id,
        show_pending=show_pending,
    )
