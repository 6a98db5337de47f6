"""Preboarding router — checklists, item review, conversion to employee."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from hris.auth.confirmation import require_password_confirmation
from hris.auth.context import RequestContext
from hris.auth.gate import require_permission
from hris.common.constants import Permission, PreboardingStatus
from hris.common.rate_limit import limiter
from hris.core_hr.schemas import EmployeeOut
from hris.database import get_db
from hris.preboarding.schemas import (
    ItemRejectRequest,
    ItemSubmitRequest,
    PreboardingChecklistCreate,
    PreboardingChecklistOut,
    PreboardingItemOut,
)
from hris.preboarding.service import PreboardingService

router = APIRouter(prefix="", tags=["preboarding"])

_view = require_permission(Permission.employees_view)
_edit = require_permission(Permission.employees_edit)
_create = require_permission(Permission.employees_create)


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=list[PreboardingChecklistOut])
async def list_checklists(
    status: Optional[PreboardingStatus] = Query(None),
    ctx: RequestContext = Depends(_view),
    db: AsyncSession = Depends(get_db),
):
    return await PreboardingService.list_checklists(db, ctx, status)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=PreboardingChecklistOut, status_code=201)
async def create_checklist(
    body: PreboardingChecklistCreate,
    ctx: RequestContext = Depends(_create),
    db: AsyncSession = Depends(get_db),
):
    return await PreboardingService.create_checklist(db, ctx, body)


# ── GET /{checklist_id} ─────────────────────────────────────────────

@router.get("/{checklist_id}", response_model=PreboardingChecklistOut)
async def get_checklist(
    checklist_id: uuid.UUID,
    ctx: RequestContext = Depends(_view),
    db: AsyncSession = Depends(get_db),
):
    """Checklist with items, derived status and progress."""
    return await PreboardingService.get_checklist(db, ctx, checklist_id)


# ── POST /items/{item_id}/submit ────────────────────────────────────

@router.post("/items/{item_id}/submit", response_model=PreboardingItemOut)
async def submit_item(
    item_id: uuid.UUID,
    body: ItemSubmitRequest,
    ctx: RequestContext = Depends(_edit),
    db: AsyncSession = Depends(get_db),
):
    return await PreboardingService.submit_item(db, ctx, item_id, body.form_value)


# ── PUT /items/{item_id}/approve ────────────────────────────────────

@router.put("/items/{item_id}/approve", response_model=PreboardingItemOut)
async def approve_item(
    item_id: uuid.UUID,
    ctx: RequestContext = Depends(_edit),
    db: AsyncSession = Depends(get_db),
):
    return await PreboardingService.approve_item(db, ctx, item_id)


# ── PUT /items/{item_id}/reject ─────────────────────────────────────

@router.put("/items/{item_id}/reject", response_model=PreboardingItemOut)
async def reject_item(
    item_id: uuid.UUID,
    body: ItemRejectRequest,
    ctx: RequestContext = Depends(_edit),
    db: AsyncSession = Depends(get_db),
):
    return await PreboardingService.reject_item(db, ctx, item_id, body.reason)


# ── POST /{checklist_id}/convert ────────────────────────────────────
# Sensitive: creates an employee record. Requires a recent password
# confirmation on top of employees.create.

@router.post("/{checklist_id}/convert", response_model=EmployeeOut, status_code=201)
@limiter.limit("10/minute")
async def convert_to_employee(
    request: Request,
    checklist_id: uuid.UUID,
    ctx: RequestContext = Depends(_create),
    _confirmed: RequestContext = Depends(require_password_confirmation),
    db: AsyncSession = Depends(get_db),
):
    """Convert a completed checklist into an Employee (once)."""
    return await PreboardingService.convert_to_employee(db, ctx, checklist_id)
