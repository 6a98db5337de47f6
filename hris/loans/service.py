"""Loan application workflow.

    draft ──submit──▶ pending ──approve──▶ approved
      │                  │
      │                  └────reject───▶ rejected
      └──cancel──┬───────┘
                 ▼
             cancelled

Approved, rejected and cancelled are terminal.
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
from hris.auth.gate import authorize
from hris.common.audit import create_audit_entry
from hris.common.constants import LoanApplicationStatus, LoanType, Permission
from hris.common.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from hris.common.pagination import PaginatedResponse, PaginationParams, paginate
from hris.config import settings
from hris.core_hr.models import Employee
from hris.loans.models import LoanApplication
from hris.loans.schemas import (
    LoanApplicationCreate,
    LoanApplicationOut,
    LoanApplicationUpdate,
    LoanApproveRequest,
)
from hris.notifications.service import notify_loan_reviewed

logger = logging.getLogger(__name__)

_ENTITY = "loan application"


class LoanApplicationService:
    """Async loan-application operations scoped to the caller's tenant."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _next_reference_number(
        db: AsyncSession, tenant_id: uuid.UUID, year: int,
    ) -> str:
        """Next ``LA-<year>-NNNNN`` for the tenant; widens past 99999."""
        prefix = f"{settings.LOAN_REFERENCE_PREFIX}-{year}-"
        last = (
            await db.execute(
                select(LoanApplication.reference_number)
                .where(
                    LoanApplication.tenant_id == tenant_id,
                    LoanApplication.reference_number.like(f"{prefix}%"),
                )
                .order_by(
                    func.length(LoanApplication.reference_number).desc(),
                    LoanApplication.reference_number.desc(),
                )
                .limit(1)
            )
        ).scalar()
        seq = int(last.rsplit("-", 1)[1]) + 1 if last else 1
        return f"{prefix}{seq:05d}"

    @staticmethod
    async def _get_application(
        db: AsyncSession,
        ctx: RequestContext,
        application_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> LoanApplication:
        query = select(LoanApplication).where(
            LoanApplication.id == application_id,
            LoanApplication.tenant_id == ctx.tenant_id,
        )
        if for_update:
            query = query.with_for_update()
        application = (await db.execute(query)).scalars().first()
        if application is None:
            raise NotFoundException("LoanApplication", application_id)
        return application

    @staticmethod
    def _is_reviewer(ctx: RequestContext) -> bool:
        return authorize(ctx, Permission.loans_approve)

    @staticmethod
    def _ensure_owner(ctx: RequestContext, application: LoanApplication) -> None:
        if ctx.employee_id != application.employee_id:
            raise ForbiddenException("You can only act on your own loan applications.")

    @staticmethod
    def _ensure_pending(application: LoanApplication, action: str) -> None:
        if application.status != LoanApplicationStatus.pending:
            raise InvalidStateException(_ENTITY, application.status, action)

    @staticmethod
    async def _applicant_user_id(
        db: AsyncSession, application: LoanApplication,
    ) -> Optional[uuid.UUID]:
        return (
            await db.execute(
                select(Employee.user_id).where(Employee.id == application.employee_id)
            )
        ).scalar()

    # ─────────────────────────────────────────────────────────────────
    # Applicant actions
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create(
        db: AsyncSession, ctx: RequestContext, data: LoanApplicationCreate,
    ) -> LoanApplication:
        """Create a draft application for the caller's own employee record."""
        if ctx.employee is None:
            raise ForbiddenException("Only employees can apply for loans.")

        now = datetime.now(timezone.utc)
        reference = await LoanApplicationService._next_reference_number(
            db, ctx.tenant_id, now.year,
        )
        application = LoanApplication(
            tenant_id=ctx.tenant_id,
            employee_id=ctx.employee.id,
            reference_number=reference,
            loan_type=data.loan_type,
            amount_requested=data.amount_requested,
            term_months=data.term_months,
            purpose=data.purpose,
            status=LoanApplicationStatus.draft,
            created_by=ctx.user_id,
        )
        db.add(application)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="create",
            entity_type="loan_application",
            entity_id=application.id,
            actor_id=ctx.user_id,
            new_values={
                "reference_number": reference,
                "loan_type": data.loan_type.value,
                "amount_requested": str(data.amount_requested),
                "term_months": data.term_months,
            },
        )
        logger.info("Loan application %s created (draft)", reference)
        return application

    @staticmethod
    async def update(
        db: AsyncSession,
        ctx: RequestContext,
        application_id: uuid.UUID,
        data: LoanApplicationUpdate,
    ) -> LoanApplication:
        """Edit a draft. Only fields present in the payload change."""
        application = await LoanApplicationService._get_application(
            db, ctx, application_id, for_update=True,
        )
        LoanApplicationService._ensure_owner(ctx, application)
        if not application.status.can_be_edited:
            raise InvalidStateException(_ENTITY, application.status, "edit")

        changes = data.model_dump(exclude_unset=True)
        old_values = LoanApplicationUpdate.model_validate(
            {k: getattr(application, k) for k in changes}
        ).model_dump(mode="json", exclude_unset=True)
        for key, value in changes.items():
            setattr(application, key, value)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="update",
            entity_type="loan_application",
            entity_id=application.id,
            actor_id=ctx.user_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        logger.info("Loan application %s updated (draft)", application.reference_number)
        return application

    @staticmethod
    async def delete(
        db: AsyncSession, ctx: RequestContext, application_id: uuid.UUID,
    ) -> None:
        """Delete a draft outright. Submitted applications can only be cancelled."""
        application = await LoanApplicationService._get_application(
            db, ctx, application_id, for_update=True,
        )
        LoanApplicationService._ensure_owner(ctx, application)
        if not application.status.can_be_edited:
            raise InvalidStateException(_ENTITY, application.status, "delete")

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="delete",
            entity_type="loan_application",
            entity_id=application.id,
            actor_id=ctx.user_id,
            old_values={
                "reference_number": application.reference_number,
                "status": application.status.value,
            },
        )
        await db.delete(application)
        await db.flush()
        logger.info("Loan application %s deleted (draft)", application.reference_number)

    @staticmethod
    async def submit(
        db: AsyncSession, ctx: RequestContext, application_id: uuid.UUID,
    ) -> LoanApplication:
        application = await LoanApplicationService._get_application(
            db, ctx, application_id, for_update=True,
        )
        LoanApplicationService._ensure_owner(ctx, application)
        if not application.status.can_be_edited:
            raise InvalidStateException(_ENTITY, application.status, "submit")

        application.status = LoanApplicationStatus.pending
        application.submitted_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="submit",
            entity_type="loan_application",
            entity_id=application.id,
            actor_id=ctx.user_id,
            old_values={"status": LoanApplicationStatus.draft.value},
            new_values={"status": application.status.value},
        )
        logger.info("Loan application %s submitted", application.reference_number)
        return application

    @staticmethod
    async def cancel(
        db: AsyncSession,
        ctx: RequestContext,
        application_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> LoanApplication:
        """Cancel a draft or pending application (applicant or reviewer)."""
        application = await LoanApplicationService._get_application(
            db, ctx, application_id, for_update=True,
        )
        if not LoanApplicationService._is_reviewer(ctx):
            LoanApplicationService._ensure_owner(ctx, application)
        if not application.status.can_be_cancelled:
            raise InvalidStateException(_ENTITY, application.status, "cancel")

        old_status = application.status
        application.status = LoanApplicationStatus.cancelled
        application.cancellation_reason = reason
        application.cancelled_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="cancel",
            entity_type="loan_application",
            entity_id=application.id,
            actor_id=ctx.user_id,
            old_values={"status": old_status.value},
            new_values={"status": application.status.value, "reason": reason},
        )
        return application

    # ─────────────────────────────────────────────────────────────────
    # Review
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def approve(
        db: AsyncSession,
        ctx: RequestContext,
        application_id: uuid.UUID,
        data: LoanApproveRequest,
    ) -> LoanApplication:
        """Approve a pending application. Amount and term default to the request."""
        application = await LoanApplicationService._get_application(
            db, ctx, application_id, for_update=True,
        )
        LoanApplicationService._ensure_pending(application, "approve")

        application.status = LoanApplicationStatus.approved
        application.reviewer_id = ctx.employee_id
        application.reviewed_at = datetime.now(timezone.utc)
        application.amount_approved = (
            data.amount_approved
            if data.amount_approved is not None
            else application.amount_requested
        )
        application.approved_term_months = (
            data.approved_term_months
            if data.approved_term_months is not None
            else application.term_months
        )
        application.interest_rate = data.interest_rate
        application.remarks = data.remarks
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="approve",
            entity_type="loan_application",
            entity_id=application.id,
            actor_id=ctx.user_id,
            old_values={"status": LoanApplicationStatus.pending.value},
            new_values={
                "status": application.status.value,
                "amount_approved": str(application.amount_approved),
                "approved_term_months": application.approved_term_months,
            },
        )
        logger.info(
            "Loan application %s approved by user %s",
            application.reference_number, ctx.user_id,
        )

        user_id = await LoanApplicationService._applicant_user_id(db, application)
        if user_id is not None:
            await notify_loan_reviewed(db, application, user_id)
        return application

    @staticmethod
    async def reject(
        db: AsyncSession,
        ctx: RequestContext,
        application_id: uuid.UUID,
        remarks: str,
    ) -> LoanApplication:
        if not remarks or not remarks.strip():
            raise ValidationException(
                {"remarks": ["Remarks are required when rejecting an application."]}
            )

        application = await LoanApplicationService._get_application(
            db, ctx, application_id, for_update=True,
        )
        LoanApplicationService._ensure_pending(application, "reject")

        application.status = LoanApplicationStatus.rejected
        application.reviewer_id = ctx.employee_id
        application.reviewed_at = datetime.now(timezone.utc)
        application.remarks = remarks.strip()
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="reject",
            entity_type="loan_application",
            entity_id=application.id,
            actor_id=ctx.user_id,
            old_values={"status": LoanApplicationStatus.pending.value},
            new_values={"status": application.status.value, "remarks": application.remarks},
        )
        logger.info(
            "Loan application %s rejected by user %s",
            application.reference_number, ctx.user_id,
        )

        user_id = await LoanApplicationService._applicant_user_id(db, application)
        if user_id is not None:
            await notify_loan_reviewed(db, application, user_id)
        return application

    # ─────────────────────────────────────────────────────────────────
    # Queries
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_application(
        db: AsyncSession, ctx: RequestContext, application_id: uuid.UUID,
    ) -> LoanApplication:
        application = (
            await db.execute(
                select(LoanApplication)
                .where(
                    LoanApplication.id == application_id,
                    LoanApplication.tenant_id == ctx.tenant_id,
                )
                .options(
                    selectinload(LoanApplication.employee),
                    selectinload(LoanApplication.reviewer),
                )
            )
        ).scalars().first()
        if application is None:
            raise NotFoundException("LoanApplication", application_id)
        if not LoanApplicationService._is_reviewer(ctx):
            LoanApplicationService._ensure_owner(ctx, application)
        return application

    @staticmethod
    async def list_applications(
        db: AsyncSession,
        ctx: RequestContext,
        pagination: PaginationParams,
        *,
        status: Optional[LoanApplicationStatus] = None,
        loan_type: Optional[LoanType] = None,
        employee_id: Optional[uuid.UUID] = None,
    ) -> PaginatedResponse:
        """All applications in the tenant (reviewer view), newest first."""
        query = (
            select(LoanApplication)
            .where(LoanApplication.tenant_id == ctx.tenant_id)
            .order_by(LoanApplication.created_at.desc())
        )
        if status is not None:
            query = query.where(LoanApplication.status == status)
        if loan_type is not None:
            query = query.where(LoanApplication.loan_type == loan_type)
        if employee_id is not None:
            query = query.where(LoanApplication.employee_id == employee_id)

        return await paginate(
            db, query, pagination, model=LoanApplication, schema=LoanApplicationOut,
        )

    @staticmethod
    async def my_applications(
        db: AsyncSession,
        ctx: RequestContext,
        status: Optional[LoanApplicationStatus] = None,
    ) -> list[LoanApplication]:
        if ctx.employee is None:
            return []
        query = (
            select(LoanApplication)
            .where(
                LoanApplication.tenant_id == ctx.tenant_id,
                LoanApplication.employee_id == ctx.employee.id,
            )
            .order_by(LoanApplication.created_at.desc())
        )
        if status is not None:
            query = query.where(LoanApplication.status == status)
        return list((await db.execute(query)).scalars().all())
