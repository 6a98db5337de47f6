"""Loan router — apply, edit drafts, submit, cancel, and HR review.

Review endpoints require ``loans.approve``; the rest are open to any
authenticated employee acting on their own applications.
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hris.auth.context import RequestContext
from hris.auth.dependencies import get_request_context
from hris.auth.gate import require_permission
from hris.common.constants import LoanApplicationStatus, LoanType, Permission
from hris.common.pagination import PaginatedResponse, PaginationParams
from hris.database import get_db
from hris.loans.schemas import (
    LoanApplicationCreate,
    LoanApplicationDetail,
    LoanApplicationOut,
    LoanApplicationUpdate,
    LoanApproveRequest,
    LoanCancelRequest,
    LoanRejectRequest,
)
from hris.loans.service import LoanApplicationService

router = APIRouter(prefix="", tags=["loans"])

_reviewer = require_permission(Permission.loans_approve)


# ── GET / (reviewer list) ───────────────────────────────────────────

@router.get("", response_model=PaginatedResponse[LoanApplicationOut])
async def list_loan_applications(
    status: Optional[LoanApplicationStatus] = Query(None),
    loan_type: Optional[LoanType] = Query(None),
    employee_id: Optional[uuid.UUID] = Query(None),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    return await LoanApplicationService.list_applications(
        db,
        ctx,
        pagination,
        status=status,
        loan_type=loan_type,
        employee_id=employee_id,
    )


# ── GET /mine ───────────────────────────────────────────────────────

@router.get("/mine", response_model=list[LoanApplicationOut])
async def my_loan_applications(
    status: Optional[LoanApplicationStatus] = Query(None),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """The caller's own applications, newest first."""
    return await LoanApplicationService.my_applications(db, ctx, status)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=LoanApplicationOut, status_code=201)
async def create_loan_application(
    body: LoanApplicationCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Create a draft application."""
    return await LoanApplicationService.create(db, ctx, body)


# ── GET /{application_id} ───────────────────────────────────────────

@router.get("/{application_id}", response_model=LoanApplicationDetail)
async def get_loan_application(
    application_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    return await LoanApplicationService.get_application(db, ctx, application_id)


# ── PATCH /{application_id} ─────────────────────────────────────────

@router.patch("/{application_id}", response_model=LoanApplicationOut)
async def update_loan_application(
    application_id: uuid.UUID,
    body: LoanApplicationUpdate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Edit your own draft."""
    return await LoanApplicationService.update(db, ctx, application_id, body)


# ── DELETE /{application_id} ────────────────────────────────────────

@router.delete("/{application_id}", status_code=204)
async def delete_loan_application(
    application_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Delete your own draft."""
    await LoanApplicationService.delete(db, ctx, application_id)


# ── POST /{application_id}/submit ───────────────────────────────────

@router.post("/{application_id}/submit", response_model=LoanApplicationOut)
async def submit_loan_application(
    application_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    return await LoanApplicationService.submit(db, ctx, application_id)


# ── POST /{application_id}/cancel ───────────────────────────────────

@router.post("/{application_id}/cancel", response_model=LoanApplicationOut)
async def cancel_loan_application(
    application_id: uuid.UUID,
    body: LoanCancelRequest,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    return await LoanApplicationService.cancel(db, ctx, application_id, body.reason)


# ── PUT /{application_id}/approve ───────────────────────────────────

@router.put("/{application_id}/approve", response_model=LoanApplicationOut)
async def approve_loan_application(
    application_id: uuid.UUID,
    body: LoanApproveRequest,
    ctx: RequestContext = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Approve a pending application."""
    return await LoanApplicationService.approve(db, ctx, application_id, body)


# ── PUT /{application_id}/reject ────────────────────────────────────

@router.put("/{application_id}/reject", response_model=LoanApplicationOut)
async def reject_loan_application(
    application_id: uuid.UUID,
    body: LoanRejectRequest,
    ctx: RequestContext = Depends(_reviewer),
    db: AsyncSession = Depends(get_db),
):
    """Reject a pending application. Remarks are required."""
    return await LoanApplicationService.reject(db, ctx, application_id, body.remarks)
