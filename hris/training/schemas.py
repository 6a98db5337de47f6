"""Training Pydantic v2 schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from hris.common.constants import (
    EnrollmentStatus,
    TrainingSessionStatus,
    WaitlistStatus,
)
from hris.core_hr.schemas import EmployeeBrief


# ── Requests ────────────────────────────────────────────────────────

class TrainingSessionCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=200)
    starts_at: datetime
    ends_at: Optional[datetime] = None
    capacity: int = Field(..., ge=1, le=10000)


class EnrollRequest(BaseModel):
    """Omit ``employee_id`` to enroll yourself."""

    employee_id: Optional[uuid.UUID] = None


class CancelEnrollmentRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class CancelSessionRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


# ── Responses ───────────────────────────────────────────────────────

class TrainingSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    starts_at: datetime
    ends_at: Optional[datetime] = None
    capacity: int
    status: TrainingSessionStatus


class EnrollmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    session_id: uuid.UUID
    employee_id: uuid.UUID
    status: EnrollmentStatus
    enrolled_at: datetime
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    attended_at: Optional[datetime] = None


class WaitlistEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    session_id: uuid.UUID
    employee_id: uuid.UUID
    position: int
    joined_at: datetime
    status: WaitlistStatus
    promoted_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class WaitlistEntryDetail(WaitlistEntryOut):
    employee: EmployeeBrief


class EnrollmentResult(BaseModel):
    """Outcome of an enroll call: a confirmed seat or a waitlist entry."""

    outcome: Literal["enrolled", "waitlisted"]
    enrollment: Optional[EnrollmentOut] = None
    waitlist_entry: Optional[WaitlistEntryOut] = None


class CancelEnrollmentResult(BaseModel):
    enrollment: EnrollmentOut
    promoted: Optional[EnrollmentOut] = None
