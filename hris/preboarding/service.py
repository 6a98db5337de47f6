"""Preboarding service — item review and conversion to an Employee.

Item lifecycle::

    pending ──submit──▶ submitted ──approve──▶ approved (terminal)
                           │  ▲
                    reject │  │ submit
                           ▼  │
                         rejected

The checklist is complete once every item is approved. Only a complete
checklist converts, and it converts at most once.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hris.auth.context import RequestContext
from hris.auth.models import User
from hris.common.audit import create_audit_entry
from hris.common.constants import (
    EmploymentStatus,
    EmploymentType,
    PreboardingItemStatus,
    PreboardingItemType,
    PreboardingStatus,
)
from hris.common.exceptions import (
    ConflictError,
    InvalidStateException,
    NotFoundException,
    PreconditionFailedException,
    ValidationException,
)
from hris.config import settings
from hris.core_hr.models import Department, Employee
from hris.notifications.service import (
    notify_preboarding_completed,
    notify_preboarding_item_rejected,
)
from hris.preboarding.models import (
    PreboardingChecklist,
    PreboardingChecklistItem,
    derive_checklist_status,
)
from hris.preboarding.schemas import PreboardingChecklistCreate

logger = logging.getLogger(__name__)

_ITEM = "preboarding item"

# Offer wording → EmploymentType. Anything unrecognised is probationary.
_EMPLOYMENT_TYPE_ALIASES: dict[str, EmploymentType] = {
    "regular": EmploymentType.regular,
    "full_time": EmploymentType.regular,
    "full-time": EmploymentType.regular,
    "fulltime": EmploymentType.regular,
    "permanent": EmploymentType.regular,
    "probationary": EmploymentType.probationary,
    "probation": EmploymentType.probationary,
    "contractual": EmploymentType.contractual,
    "contract": EmploymentType.contractual,
    "contractor": EmploymentType.contractual,
    "consultant": EmploymentType.consultant,
    "consulting": EmploymentType.consultant,
    "intern": EmploymentType.intern,
    "internship": EmploymentType.intern,
    "project_based": EmploymentType.project_based,
    "project-based": EmploymentType.project_based,
    "projectbased": EmploymentType.project_based,
}

# form_field keys that may override checklist data on conversion
_PERSONAL_FIELD_KEYS = ("first_name", "last_name", "phone", "date_of_birth")
_ADDRESS_FIELD_KEYS = ("street", "city", "state", "zip_code", "country")


def map_employment_type(value: Optional[str]) -> EmploymentType:
    if not value:
        return EmploymentType.probationary
    return _EMPLOYMENT_TYPE_ALIASES.get(value.strip().lower(), EmploymentType.probationary)


def collect_employee_fields(
    checklist: PreboardingChecklist,
    items: list[PreboardingChecklistItem],
) -> dict[str, Any]:
    """Personal data for the new employee: checklist values overlaid by
    approved form-field submissions keyed by ``field_key``."""
    submitted = {
        i.field_key: i.form_value
        for i in items
        if i.item_type == PreboardingItemType.form_field
        and i.field_key
        and i.form_value not in (None, "")
    }

    fields: dict[str, Any] = {
        "first_name": checklist.first_name,
        "last_name": checklist.last_name,
        "phone": checklist.phone,
        "date_of_birth": checklist.date_of_birth,
    }
    for key in _PERSONAL_FIELD_KEYS:
        if key in submitted:
            fields[key] = submitted[key]

    if isinstance(fields["date_of_birth"], str):
        try:
            fields["date_of_birth"] = date.fromisoformat(fields["date_of_birth"])
        except ValueError:
            raise ValidationException(
                {"date_of_birth": ["Submitted date of birth is not a valid ISO date."]}
            )

    address = dict(checklist.address or {})
    for key in _ADDRESS_FIELD_KEYS:
        if key in submitted:
            address[key] = submitted[key]
    fields["address"] = address or None
    return fields


class PreboardingService:
    """Async preboarding operations scoped to the caller's tenant."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def _load_checklist(
        db: AsyncSession,
        ctx: RequestContext,
        checklist_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> PreboardingChecklist:
        query = (
            select(PreboardingChecklist)
            .where(
                PreboardingChecklist.id == checklist_id,
                PreboardingChecklist.tenant_id == ctx.tenant_id,
            )
            .options(selectinload(PreboardingChecklist.items))
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=PreboardingChecklist)
        checklist = (await db.execute(query)).scalars().first()
        if checklist is None:
            raise NotFoundException("PreboardingChecklist", checklist_id)
        return checklist

    @staticmethod
    async def _lock_item(
        db: AsyncSession, ctx: RequestContext, item_id: uuid.UUID,
    ) -> PreboardingChecklistItem:
        item = (
            await db.execute(
                select(PreboardingChecklistItem)
                .where(
                    PreboardingChecklistItem.id == item_id,
                    PreboardingChecklistItem.tenant_id == ctx.tenant_id,
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            )
        ).scalars().first()
        if item is None:
            raise NotFoundException("PreboardingChecklistItem", item_id)
        return item

    @staticmethod
    async def _lock_for_review(
        db: AsyncSession, ctx: RequestContext, item_id: uuid.UUID,
    ) -> tuple[PreboardingChecklist, PreboardingChecklistItem]:
        """Lock the parent checklist, then the item.

        Every item write takes the checklist lock first, so reviews of
        sibling items serialize and the last approval sees all the others.
        """
        checklist_id = (
            await db.execute(
                select(PreboardingChecklistItem.checklist_id).where(
                    PreboardingChecklistItem.id == item_id,
                    PreboardingChecklistItem.tenant_id == ctx.tenant_id,
                )
            )
        ).scalar()
        if checklist_id is None:
            raise NotFoundException("PreboardingChecklistItem", item_id)
        checklist = await PreboardingService._load_checklist(
            db, ctx, checklist_id, for_update=True,
        )
        item = await PreboardingService._lock_item(db, ctx, item_id)
        return checklist, item

    @staticmethod
    def _ensure_transition(
        item: PreboardingChecklistItem, target: PreboardingItemStatus, action: str,
    ) -> None:
        if not item.status.can_transition_to(target):
            raise InvalidStateException(_ITEM, item.status, action)

    @staticmethod
    async def _audit_item(
        db: AsyncSession,
        ctx: RequestContext,
        item: PreboardingChecklistItem,
        action: str,
        old_status: PreboardingItemStatus,
        **extra: Any,
    ) -> None:
        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action=action,
            entity_type="preboarding_item",
            entity_id=item.id,
            actor_id=ctx.user_id,
            old_values={"status": old_status.value},
            new_values={"status": item.status.value, **extra},
        )

    @staticmethod
    async def _next_employee_number(
        db: AsyncSession, tenant_id: uuid.UUID, year: int,
    ) -> str:
        """Next ``EMP-<year>-NNNN`` for the tenant.

        Numbers widen past 9999, so the highest is the longest one first.
        """
        prefix = f"{settings.EMPLOYEE_NUMBER_PREFIX}-{year}-"
        last = (
            await db.execute(
                select(Employee.employee_number)
                .where(
                    Employee.tenant_id == tenant_id,
                    Employee.employee_number.like(f"{prefix}%"),
                )
                .order_by(
                    func.length(Employee.employee_number).desc(),
                    Employee.employee_number.desc(),
                )
                .limit(1)
            )
        ).scalar()
        seq = int(last[len(prefix):]) + 1 if last else 1
        return f"{prefix}{seq:04d}"

    @staticmethod
    async def _find_department_id(
        db: AsyncSession, tenant_id: uuid.UUID, name: Optional[str],
    ) -> Optional[uuid.UUID]:
        if not name:
            return None
        return (
            await db.execute(
                select(Department.id)
                .where(
                    Department.tenant_id == tenant_id,
                    Department.name.ilike(f"%{name.strip()}%"),
                )
                .order_by(Department.name)
                .limit(1)
            )
        ).scalar()

    # ─────────────────────────────────────────────────────────────────
    # Checklists
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_checklist(
        db: AsyncSession, ctx: RequestContext, data: PreboardingChecklistCreate,
    ) -> PreboardingChecklist:
        checklist = PreboardingChecklist(
            tenant_id=ctx.tenant_id,
            created_by=ctx.user_id,
            **data.model_dump(exclude={"items"}),
        )
        checklist.items = [
            PreboardingChecklistItem(tenant_id=ctx.tenant_id, **item.model_dump())
            for item in data.items
        ]
        db.add(checklist)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="create",
            entity_type="preboarding_checklist",
            entity_id=checklist.id,
            actor_id=ctx.user_id,
            new_values={"email": checklist.email, "items": len(data.items)},
        )
        return await PreboardingService._load_checklist(db, ctx, checklist.id)

    @staticmethod
    async def get_checklist(
        db: AsyncSession, ctx: RequestContext, checklist_id: uuid.UUID,
    ) -> PreboardingChecklist:
        return await PreboardingService._load_checklist(db, ctx, checklist_id)

    @staticmethod
    async def list_checklists(
        db: AsyncSession,
        ctx: RequestContext,
        status: Optional[PreboardingStatus] = None,
    ) -> list[PreboardingChecklist]:
        result = await db.execute(
            select(PreboardingChecklist)
            .where(PreboardingChecklist.tenant_id == ctx.tenant_id)
            .options(selectinload(PreboardingChecklist.items))
            .order_by(PreboardingChecklist.created_at.desc())
        )
        checklists = list(result.scalars().all())
        if status is not None:
            checklists = [c for c in checklists if c.status == status]
        return checklists

    # ─────────────────────────────────────────────────────────────────
    # Item review
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def submit_item(
        db: AsyncSession,
        ctx: RequestContext,
        item_id: uuid.UUID,
        form_value: Optional[str] = None,
    ) -> PreboardingChecklistItem:
        _, item = await PreboardingService._lock_for_review(db, ctx, item_id)
        PreboardingService._ensure_transition(item, PreboardingItemStatus.submitted, "submit")

        if item.item_type == PreboardingItemType.form_field:
            if form_value is None or not form_value.strip():
                raise ValidationException({"form_value": ["A value is required for this item."]})
            item.form_value = form_value.strip()

        old_status = item.status
        item.status = PreboardingItemStatus.submitted
        item.submitted_at = datetime.now(timezone.utc)
        item.rejection_reason = None
        await db.flush()

        await PreboardingService._audit_item(db, ctx, item, "submit", old_status)
        return item

    @staticmethod
    async def approve_item(
        db: AsyncSession, ctx: RequestContext, item_id: uuid.UUID,
    ) -> PreboardingChecklistItem:
        """Approve a submitted item; completes the checklist if it was the last one."""
        checklist, item = await PreboardingService._lock_for_review(db, ctx, item_id)
        PreboardingService._ensure_transition(item, PreboardingItemStatus.approved, "approve")

        old_status = item.status
        item.status = PreboardingItemStatus.approved
        item.reviewed_at = datetime.now(timezone.utc)
        item.reviewed_by = ctx.user_id
        await db.flush()

        await PreboardingService._audit_item(db, ctx, item, "approve", old_status)

        if (
            derive_checklist_status(checklist.items) == PreboardingStatus.completed
            and checklist.completed_at is None
        ):
            checklist.completed_at = datetime.now(timezone.utc)
            await db.flush()
            logger.info("Preboarding checklist %s completed", checklist.id)
            await notify_preboarding_completed(db, checklist)
        return item

    @staticmethod
    async def reject_item(
        db: AsyncSession,
        ctx: RequestContext,
        item_id: uuid.UUID,
        reason: str,
    ) -> PreboardingChecklistItem:
        if not reason or not reason.strip():
            raise ValidationException({"reason": ["A rejection reason is required."]})

        checklist, item = await PreboardingService._lock_for_review(db, ctx, item_id)
        PreboardingService._ensure_transition(item, PreboardingItemStatus.rejected, "reject")

        old_status = item.status
        item.status = PreboardingItemStatus.rejected
        item.reviewed_at = datetime.now(timezone.utc)
        item.reviewed_by = ctx.user_id
        item.rejection_reason = reason.strip()
        await db.flush()

        await PreboardingService._audit_item(
            db, ctx, item, "reject", old_status, reason=item.rejection_reason,
        )

        await notify_preboarding_item_rejected(db, item, checklist)
        return item

    # ─────────────────────────────────────────────────────────────────
    # Conversion
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def convert_to_employee(
        db: AsyncSession, ctx: RequestContext, checklist_id: uuid.UUID,
    ) -> Employee:
        """Create the Employee for a completed checklist, exactly once."""
        checklist = await PreboardingService._load_checklist(
            db, ctx, checklist_id, for_update=True,
        )
        items = list(checklist.items)

        if derive_checklist_status(items) != PreboardingStatus.completed:
            outstanding = [
                i.name for i in items if i.status != PreboardingItemStatus.approved
            ]
            raise PreconditionFailedException(
                "Preboarding checklist is not completed.",
                errors={"items": outstanding or ["Checklist has no items."]},
            )

        already = (
            await db.execute(
                select(Employee.id).where(
                    Employee.tenant_id == ctx.tenant_id,
                    Employee.preboarding_checklist_id == checklist.id,
                )
            )
        ).scalar()
        if already is not None:
            raise ConflictError(
                "preboarding_checklist_id",
                checklist.id,
                detail="This checklist has already been converted to an employee.",
            )

        email = checklist.email.strip().lower()
        duplicate = (
            await db.execute(
                select(Employee.id).where(
                    Employee.tenant_id == ctx.tenant_id,
                    func.lower(Employee.email) == email,
                )
            )
        ).scalar()
        if duplicate is not None:
            raise ConflictError(
                "email", email, detail="An employee with this email already exists.",
            )

        fields = collect_employee_fields(checklist, items)
        user_id = (
            await db.execute(select(User.id).where(func.lower(User.email) == email))
        ).scalar()
        department_id = await PreboardingService._find_department_id(
            db, ctx.tenant_id, checklist.department_name,
        )
        hire_date = checklist.start_date or date.today()

        employee = Employee(
            tenant_id=ctx.tenant_id,
            user_id=user_id,
            employee_number=await PreboardingService._next_employee_number(
                db, ctx.tenant_id, hire_date.year,
            ),
            email=email,
            department_id=department_id,
            position_title=checklist.position_title,
            employment_type=map_employment_type(checklist.employment_type),
            employment_status=EmploymentStatus.active,
            hire_date=hire_date,
            basic_salary=checklist.salary,
            pay_frequency=checklist.salary_frequency,
            preboarding_checklist_id=checklist.id,
            **fields,
        )
        db.add(employee)
        try:
            await db.flush()
        except IntegrityError as exc:
            err = str(exc.orig)
            if "preboarding_checklist" in err:
                raise ConflictError(
                    "preboarding_checklist_id",
                    checklist.id,
                    detail="This checklist has already been converted to an employee.",
                ) from exc
            if "employee_number" in err:
                raise ConflictError(
                    "employee_number",
                    employee.employee_number,
                    detail="Employee number was taken by a concurrent conversion; retry.",
                ) from exc
            if "email" in err:
                raise ConflictError(
                    "email", email, detail="An employee with this email already exists.",
                ) from exc
            raise

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="convert",
            entity_type="preboarding_checklist",
            entity_id=checklist.id,
            actor_id=ctx.user_id,
            new_values={
                "employee_id": str(employee.id),
                "employee_number": employee.employee_number,
            },
        )
        logger.info(
            "Preboarding checklist %s converted to employee %s",
            checklist.id, employee.employee_number,
        )
        return employee
