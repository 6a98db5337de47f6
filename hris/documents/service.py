"""Document request workflow.

HR moves a request through pending → processing → ready → collected (or
rejected). Entering ``processing`` stamps ``processed_at`` every time it
happens; entering ``collected`` stamps ``collected_at``. The owning
employee's user is notified after each change, best-effort.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hris.auth.context import RequestContext
from hris.common.audit import create_audit_entry
from hris.common.constants import DocumentRequestStatus
from hris.common.exceptions import ForbiddenException, NotFoundException
from hris.core_hr.models import Employee
from hris.documents.models import DocumentRequest
from hris.documents.schemas import (
    DocumentRequestCreate,
    DocumentRequestDetail,
    DocumentRequestListOut,
    DocumentRequestOut,
)
from hris.notifications.service import notify_document_request_updated

logger = logging.getLogger(__name__)


class DocumentRequestService:
    """Async document-request operations scoped to the caller's tenant."""

    @staticmethod
    async def create(
        db: AsyncSession, ctx: RequestContext, data: DocumentRequestCreate,
    ) -> DocumentRequest:
        """File a request for the caller's own employee record."""
        if ctx.employee is None:
            raise ForbiddenException("Only employees can request documents.")

        document_request = DocumentRequest(
            tenant_id=ctx.tenant_id,
            employee_id=ctx.employee.id,
            document_type=data.document_type,
            purpose=data.purpose,
            status=DocumentRequestStatus.pending,
        )
        db.add(document_request)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="create",
            entity_type="document_request",
            entity_id=document_request.id,
            actor_id=ctx.user_id,
            new_values={"document_type": data.document_type},
        )
        return document_request

    @staticmethod
    async def list_requests(
        db: AsyncSession,
        ctx: RequestContext,
        *,
        status: Optional[DocumentRequestStatus] = None,
    ) -> DocumentRequestListOut:
        """Requests (optionally filtered by status) plus per-status totals."""
        query = (
            select(DocumentRequest)
            .where(DocumentRequest.tenant_id == ctx.tenant_id)
            .options(selectinload(DocumentRequest.employee))
            .order_by(DocumentRequest.created_at.desc())
        )
        if status is not None:
            query = query.where(DocumentRequest.status == status)
        rows = (await db.execute(query)).scalars().all()

        counts = await db.execute(
            select(DocumentRequest.status, func.count())
            .where(DocumentRequest.tenant_id == ctx.tenant_id)
            .group_by(DocumentRequest.status)
        )
        summary = {s: 0 for s in DocumentRequestStatus}
        for row_status, count in counts.all():
            summary[row_status] = count

        return DocumentRequestListOut(
            data=[DocumentRequestDetail.model_validate(r) for r in rows],
            summary=summary,
        )

    @staticmethod
    async def my_requests(
        db: AsyncSession, ctx: RequestContext,
    ) -> list[DocumentRequest]:
        if ctx.employee is None:
            return []
        result = await db.execute(
            select(DocumentRequest)
            .where(
                DocumentRequest.tenant_id == ctx.tenant_id,
                DocumentRequest.employee_id == ctx.employee.id,
            )
            .order_by(DocumentRequest.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def update_status(
        db: AsyncSession,
        ctx: RequestContext,
        request_id: uuid.UUID,
        status: DocumentRequestStatus,
        admin_notes: Optional[str] = None,
    ) -> DocumentRequest:
        document_request = (
            await db.execute(
                select(DocumentRequest)
                .where(
                    DocumentRequest.id == request_id,
                    DocumentRequest.tenant_id == ctx.tenant_id,
                )
                .with_for_update()
            )
        ).scalars().first()
        if document_request is None:
            raise NotFoundException("DocumentRequest", request_id)

        employee = (
            await db.execute(
                select(Employee).where(
                    Employee.id == document_request.employee_id,
                    Employee.tenant_id == ctx.tenant_id,
                )
            )
        ).scalars().first()
        if employee is None:
            raise NotFoundException("Employee", document_request.employee_id)

        old_status = document_request.status
        now = datetime.now(timezone.utc)

        document_request.status = status
        if status == DocumentRequestStatus.processing:
            document_request.processed_at = now
        elif status == DocumentRequestStatus.collected:
            document_request.collected_at = now
        if admin_notes is not None:
            document_request.admin_notes = admin_notes
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="update_status",
            entity_type="document_request",
            entity_id=document_request.id,
            actor_id=ctx.user_id,
            old_values={"status": old_status.value},
            new_values={"status": status.value, "admin_notes": document_request.admin_notes},
        )
        logger.info(
            "Document request %s: %s -> %s",
            document_request.id, old_status.value, status.value,
        )

        if employee.user_id is not None:
            payload = DocumentRequestOut.model_validate(document_request).model_dump(mode="json")
            await notify_document_request_updated(
                db, document_request, employee.user_id, payload,
            )
        return document_request
