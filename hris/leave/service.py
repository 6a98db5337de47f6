"""Leave calendar service.

Selects leave applications whose [start_date, end_date] range overlaps a
calendar month:

    start_date <= month_end AND end_date >= month_start

so a leave that begins before the month or runs past it still shows up.
"""

from __future__ import annotations

import calendar
import logging
import uuid
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hris.auth.context import RequestContext
from hris.common.constants import LeaveStatus
from hris.common.exceptions import ValidationException
from hris.core_hr.models import Employee
from hris.leave.models import LeaveApplication
from hris.leave.schemas import LeaveCalendarEntry, LeaveCalendarOut

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of *month* in *year*."""
    if not 1 <= month <= 12:
        raise ValidationException({"month": ["Month must be between 1 and 12."]})
    _, last_day = calendar.monthrange(year, month)
    return date(year, month, 1), date(year, month, last_day)


class LeaveCalendarService:
    """Team leave calendar queries."""

    @staticmethod
    async def get_calendar(
        db: AsyncSession,
        ctx: RequestContext,
        year: int,
        month: int,
        *,
        employee_id: Optional[uuid.UUID] = None,
        department_id: Optional[uuid.UUID] = None,
        show_pending: bool = True,
    ) -> LeaveCalendarOut:
        """Leave applications overlapping the month, ordered by start date."""
        month_start, month_end = month_bounds(year, month)

        statuses = [LeaveStatus.approved]
        if show_pending:
            statuses.append(LeaveStatus.pending)

        query = (
            select(LeaveApplication)
            .where(
                LeaveApplication.tenant_id == ctx.tenant_id,
                LeaveApplication.status.in_(statuses),
                LeaveApplication.start_date <= month_end,
                LeaveApplication.end_date >= month_start,
            )
            .options(
                selectinload(LeaveApplication.employee),
                selectinload(LeaveApplication.leave_type),
            )
            .order_by(LeaveApplication.start_date.asc())
        )

        if employee_id is not None:
            query = query.where(LeaveApplication.employee_id == employee_id)
        if department_id is not None:
            query = query.where(
                LeaveApplication.employee.has(Employee.department_id == department_id)
            )

        rows = (await db.execute(query)).scalars().all()
        entries = [LeaveCalendarEntry.model_validate(r) for r in rows]

        logger.debug(
            "Leave calendar %04d-%02d for tenant %s: %d entries",
            year, month, ctx.tenant_id, len(entries),
        )
        return LeaveCalendarOut(
            month=month,
            year=year,
            month_start=month_start,
            month_end=month_end,
            entries=entries,
            total_entries=len(entries),
        )
