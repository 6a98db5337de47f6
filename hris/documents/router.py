"""Document request router — employee self-service and HR processing."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hris.auth.context import RequestContext
from hris.auth.dependencies import get_request_context
from hris.auth.gate import require_permission
from hris.common.constants import DocumentRequestStatus, Permission
from hris.database import get_db
from hris.documents.schemas import (
    DocumentRequestCreate,
    DocumentRequestListOut,
    DocumentRequestOut,
    DocumentStatusUpdate,
)
from hris.documents.service import DocumentRequestService

router = APIRouter(prefix="", tags=["documents"])

_hr = require_permission(Permission.employees_edit)


# ── GET / (HR) ──────────────────────────────────────────────────────

@router.get("", response_model=DocumentRequestListOut)
async def list_document_requests(
    status: Optional[DocumentRequestStatus] = Query(None),
    ctx: RequestContext = Depends(_hr),
    db: AsyncSession = Depends(get_db),
):
    """All requests in the tenant with a per-status summary."""
    return await DocumentRequestService.list_requests(db, ctx, status=status)


# ── GET /mine ───────────────────────────────────────────────────────

@router.get("/mine", response_model=list[DocumentRequestOut])
async def my_document_requests(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    return await DocumentRequestService.my_requests(db, ctx)


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=DocumentRequestOut, status_code=201)
async def create_document_request(
    body: DocumentRequestCreate,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    return await DocumentRequestService.create(db, ctx, body)


# ── PATCH /{request_id} (HR) ────────────────────────────────────────

@router.patch("/{request_id}", response_model=DocumentRequestOut)
async def update_document_request(
    request_id: uuid.UUID,
    body: DocumentStatusUpdate,
    ctx: RequestContext = Depends(_hr),
    db: AsyncSession = Depends(get_db),
):
    """Change status; the requesting employee is notified."""
    return await DocumentRequestService.update_status(
        db, ctx, request_id, body.status, body.admin_notes,
    )
