"""Audit-log router — paginated, filterable view of the audit trail."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris.audit.schemas import AuditTrailOut
from hris.auth.context import RequestContext
from hris.auth.gate import require_permission
from hris.common.audit import AuditTrail
from hris.common.constants import Permission
from hris.common.pagination import PaginatedResponse, PaginationParams, paginate
from hris.database import get_db

router = APIRouter(prefix="", tags=["audit"])


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=PaginatedResponse[AuditTrailOut])
async def list_audit_logs(
    entity_type: Optional[str] = Query(None, max_length=50),
    entity_id: Optional[uuid.UUID] = Query(None),
    action: Optional[str] = Query(None, max_length=50),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(require_permission(Permission.audit_logs_view)),
    db: AsyncSession = Depends(get_db),
):
    """Newest first. Filter by entity and/or action."""
    query = (
        select(AuditTrail)
        .where(AuditTrail.tenant_id == ctx.tenant_id)
        .order_by(AuditTrail.created_at.desc())
    )
    if entity_type:
        query = query.where(AuditTrail.entity_type == entity_type)
    if entity_id:
        query = query.where(AuditTrail.entity_id == entity_id)
    if action:
        query = query.where(AuditTrail.action == action)

    return await paginate(db, query, pagination, model=AuditTrail, schema=AuditTrailOut)
