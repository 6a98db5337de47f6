"""Leave calendar Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from hris.common.constants import LeaveStatus
from hris.core_hr.schemas import EmployeeBrief


class LeaveTypeBrief(BaseModel):
    """Minimal leave type info embedded in calendar entries."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    code: str
    name: str
    color: Optional[str] = None


class LeaveCalendarEntry(BaseModel):
    """Single entry in the team leave calendar."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee: EmployeeBrief
    leave_type: LeaveTypeBrief
    start_date: date
    end_date: date
    total_days: Decimal
    status: LeaveStatus
    reason: Optional[str] = None


class LeaveCalendarOut(BaseModel):
    """Team leave calendar view for a given month."""

    month: int
    year: int
    month_start: date
    month_end: date
    entries: list[LeaveCalendarEntry]
    total_entries: int = 0
