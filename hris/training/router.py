"""Training router — sessions, enrollment, waitlist."""


import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from hris.auth.context import RequestContext
from hris.auth.gate import require_permission
from hris.common.constants import Permission
from hris.common.exceptions import ValidationException
from hris.database import get_db
from hris.training.schemas import (
    CancelEnrollmentRequest,
    CancelEnrollmentResult,
    CancelSessionRequest,
    EnrollmentOut,
    EnrollmentResult,
    EnrollRequest,
    TrainingSessionCreate,
    TrainingSessionOut,
    WaitlistEntryDetail,
    WaitlistEntryOut,
)
from hris.training.service import TrainingService

router = APIRouter(prefix="", tags=["training"])

_view = require_permission(Permission.training_view)
_manage = require_permission(Permission.training_manage)


# ── POST /sessions ──────────────────────────────────────────────────

@router.post("/sessions", response_model=TrainingSessionOut, status_code=201)
async def create_session(
    body: TrainingSessionCreate,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    return await TrainingService.create_session(db, ctx, body)


# ── GET /sessions/{session_id} ──────────────────────────────────────

@router.get("/sessions/{session_id}", response_model=TrainingSessionOut)
async def get_session(
    session_id: uuid.UUID,
    ctx: RequestContext = Depends(_view),
    db: AsyncSession = Depends(get_db),
):
    return await TrainingService.get_session(db, ctx, session_id)


# ── POST /sessions/{session_id}/cancel ──────────────────────────────

@router.post("/sessions/{session_id}/cancel", response_model=TrainingSessionOut)
async def cancel_session(
    session_id: uuid.UUID,
    body: CancelSessionRequest,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    """Cancel the session, its enrollments, and its waitlist."""
    return await TrainingService.cancel_session(db, ctx, session_id, body.reason)


# ── POST /sessions/{session_id}/complete ────────────────────────────

@router.post("/sessions/{session_id}/complete", response_model=TrainingSessionOut)
async def complete_session(
    session_id: uuid.UUID,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    return await TrainingService.complete_session(db, ctx, session_id)


# ── POST /sessions/{session_id}/enroll ──────────────────────────────

@router.post("/sessions/{session_id}/enroll", response_model=EnrollmentResult, status_code=201)
async def enroll(
    session_id: uuid.UUID,
    body: EnrollRequest,
    ctx: RequestContext = Depends(_view),
    db: AsyncSession = Depends(get_db),
):
    """Enroll yourself (or, with training.manage, someone else)."""
    employee_id = body.employee_id or ctx.employee_id
    if employee_id is None:
        raise ValidationException({"employee_id": ["No employee record to enroll."]})
    return await TrainingService.enroll(db, ctx, session_id, employee_id)


# ── GET /sessions/{session_id}/waitlist ─────────────────────────────

@router.get("/sessions/{session_id}/waitlist", response_model=list[WaitlistEntryDetail])
async def session_waitlist(
    session_id: uuid.UUID,
    ctx: RequestContext = Depends(_view),
    db: AsyncSession = Depends(get_db),
):
    """Waiting entries in the order seats will be offered."""
    return await TrainingService.ordered_waitlist(db, ctx, session_id)


# ── POST /enrollments/{enrollment_id}/cancel ────────────────────────

@router.post("/enrollments/{enrollment_id}/cancel", response_model=CancelEnrollmentResult)
async def cancel_enrollment(
    enrollment_id: uuid.UUID,
    body: CancelEnrollmentRequest,
    ctx: RequestContext = Depends(_view),
    db: AsyncSession = Depends(get_db),
):
    enrollment, promoted = await TrainingService.cancel_enrollment(
        db, ctx, enrollment_id, body.reason,
    )
    return CancelEnrollmentResult(
        enrollment=EnrollmentOut.model_validate(enrollment),
        promoted=EnrollmentOut.model_validate(promoted) if promoted else None,
    )


# ── POST /enrollments/{enrollment_id}/attended ──────────────────────

@router.post("/enrollments/{enrollment_id}/attended", response_model=EnrollmentOut)
async def mark_attended(
    enrollment_id: uuid.UUID,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    return await TrainingService.mark_attended(db, ctx, enrollment_id)


# ── POST /enrollments/{enrollment_id}/no-show ───────────────────────

@router.post("/enrollments/{enrollment_id}/no-show", response_model=EnrollmentOut)
async def mark_no_show(
    enrollment_id: uuid.UUID,
    ctx: RequestContext = Depends(_manage),
    db: AsyncSession = Depends(get_db),
):
    return await TrainingService.mark_no_show(db, ctx, enrollment_id)


# ── DELETE /waitlist/{entry_id} ─────────────────────────────────────

@router.delete("/waitlist/{entry_id}", response_model=WaitlistEntryOut)
async def cancel_waitlist_entry(
    entry_id: uuid.UUID,
    ctx: RequestContext = Depends(_view),
    db: AsyncSession = Depends(get_db),
):
    """Leave a waitlist (own entry, or any entry with training.manage)."""
    return await TrainingService.cancel_waitlist(db, ctx, entry_id)
