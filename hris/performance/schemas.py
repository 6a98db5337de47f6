"""Performance Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from hris.common.constants import KpiAssignmentStatus


# ── Requests ────────────────────────────────────────────────────────

class KpiAssignmentCreate(BaseModel):
    participant_id: uuid.UUID
    name: str = Field(..., min_length=1, max_length=200)
    target_value: Decimal = Field(..., ge=0)
    weight: Decimal = Field(default=Decimal("1.00"), gt=0, le=100)
    notes: Optional[str] = None


class KpiProgressCreate(BaseModel):
    value: Decimal = Field(..., ge=0)
    notes: Optional[str] = Field(default=None, max_length=2000)


# ── Responses ───────────────────────────────────────────────────────

class KpiProgressEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    kpi_assignment_id: uuid.UUID
    value: Decimal
    notes: Optional[str] = None
    recorded_by: Optional[uuid.UUID] = None
    recorded_at: datetime


class KpiAssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    participant_id: uuid.UUID
    name: str
    target_value: Decimal
    actual_value: Optional[Decimal] = None
    weight: Decimal
    achievement_percentage: Optional[Decimal] = None
    status: KpiAssignmentStatus
    notes: Optional[str] = None
    completed_at: Optional[datetime] = None


class KpiSummary(BaseModel):
    """Completion and weighted-achievement figures for one participant."""

    total_kpis: int = 0
    completed_kpis: int = 0
    pending_kpis: int = 0
    in_progress_kpis: int = 0
    total_weight: float = 0.0
    weighted_average_achievement: float = 0.0


class ParticipantKpiOut(BaseModel):
    participant_id: uuid.UUID
    employee_id: uuid.UUID
    cycle_name: str
    summary: KpiSummary
    kpis: list[KpiAssignmentOut]
