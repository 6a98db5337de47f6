"""Training enrollment and waitlist service.

A session holds ``capacity`` confirmed seats. Anyone enrolling once it is
full joins the waitlist at ``max(position) + 1``. The queue is served in
order of ``joined_at`` then ``position``; each freed seat promotes the head
of the queue.
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
from hris.common.constants import (
    EnrollmentStatus,
    Permission,
    TrainingSessionStatus,
    WaitlistStatus,
)
from hris.common.exceptions import (
    ConflictError,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from hris.core_hr.models import Employee
from hris.notifications.service import (
    notify_training_session_cancelled,
    notify_waitlist_joined,
    notify_waitlist_promoted,
)
from hris.training.models import TrainingEnrollment, TrainingSession, TrainingWaitlist
from hris.training.schemas import (
    EnrollmentOut,
    EnrollmentResult,
    TrainingSessionCreate,
    WaitlistEntryOut,
)

logger = logging.getLogger(__name__)

_SEAT_HOLDING = (EnrollmentStatus.confirmed, EnrollmentStatus.attended)


class TrainingService:
    """Async training operations scoped to the caller's tenant."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _can_manage(ctx: RequestContext) -> bool:
        return authorize(ctx, Permission.training_manage)

    @staticmethod
    def _ensure_self_or_manager(ctx: RequestContext, employee_id: uuid.UUID) -> None:
        if ctx.employee_id != employee_id and not TrainingService._can_manage(ctx):
            raise ForbiddenException(
                "You can only manage your own training enrollments."
            )

    @staticmethod
    async def _get_session(
        db: AsyncSession,
        ctx: RequestContext,
        session_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> TrainingSession:
        query = select(TrainingSession).where(
            TrainingSession.id == session_id,
            TrainingSession.tenant_id == ctx.tenant_id,
        )
        if for_update:
            query = query.with_for_update()
        session = (await db.execute(query)).scalars().first()
        if session is None:
            raise NotFoundException("TrainingSession", session_id)
        return session

    @staticmethod
    async def _confirmed_count(db: AsyncSession, session_id: uuid.UUID) -> int:
        return (
            await db.execute(
                select(func.count())
                .select_from(TrainingEnrollment)
                .where(
                    TrainingEnrollment.session_id == session_id,
                    TrainingEnrollment.status.in_(_SEAT_HOLDING),
                )
            )
        ).scalar_one()

    @staticmethod
    async def _user_id_for(db: AsyncSession, employee_id: uuid.UUID) -> Optional[uuid.UUID]:
        return (
            await db.execute(select(Employee.user_id).where(Employee.id == employee_id))
        ).scalar()

    @staticmethod
    def _queue_order():
        return (TrainingWaitlist.joined_at.asc(), TrainingWaitlist.position.asc())

    # ─────────────────────────────────────────────────────────────────
    # Sessions
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_session(
        db: AsyncSession, ctx: RequestContext, data: TrainingSessionCreate,
    ) -> TrainingSession:
        if data.ends_at is not None and data.ends_at < data.starts_at:
            raise ValidationException({"ends_at": ["End time must be after start time."]})
        session = TrainingSession(
            tenant_id=ctx.tenant_id,
            status=TrainingSessionStatus.scheduled,
            **data.model_dump(),
        )
        db.add(session)
        await db.flush()
        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="create",
            entity_type="training_session",
            entity_id=session.id,
            actor_id=ctx.user_id,
            new_values={"title": session.title, "capacity": session.capacity},
        )
        return session

    @staticmethod
    async def get_session(
        db: AsyncSession, ctx: RequestContext, session_id: uuid.UUID,
    ) -> TrainingSession:
        return await TrainingService._get_session(db, ctx, session_id)

    @staticmethod
    async def cancel_session(
        db: AsyncSession,
        ctx: RequestContext,
        session_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> TrainingSession:
        """Cancel a scheduled session.

        Every confirmed enrollment is cancelled and its employee notified;
        every waiting waitlist entry is cancelled. Nobody is promoted.
        """
        session = await TrainingService._get_session(db, ctx, session_id, for_update=True)
        if session.status != TrainingSessionStatus.scheduled:
            raise InvalidStateException("training session", session.status, "cancel")

        now = datetime.now(timezone.utc)
        session.status = TrainingSessionStatus.cancelled

        enrollments = (
            await db.execute(
                select(TrainingEnrollment)
                .where(
                    TrainingEnrollment.session_id == session.id,
                    TrainingEnrollment.status == EnrollmentStatus.confirmed,
                )
                .with_for_update()
            )
        ).scalars().all()
        for enrollment in enrollments:
            enrollment.status = EnrollmentStatus.cancelled
            enrollment.cancelled_at = now
            enrollment.cancellation_reason = (
                f"Session cancelled: {reason or 'No reason provided'}"
            )

        entries = (
            await db.execute(
                select(TrainingWaitlist)
                .where(
                    TrainingWaitlist.session_id == session.id,
                    TrainingWaitlist.status == WaitlistStatus.waiting,
                )
                .with_for_update()
            )
        ).scalars().all()
        for entry in entries:
            entry.status = WaitlistStatus.cancelled
            entry.cancelled_at = now
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="cancel",
            entity_type="training_session",
            entity_id=session.id,
            actor_id=ctx.user_id,
            old_values={"status": TrainingSessionStatus.scheduled.value},
            new_values={
                "status": session.status.value,
                "reason": reason,
                "enrollments_cancelled": len(enrollments),
                "waitlist_cancelled": len(entries),
            },
        )
        logger.info(
            "Training session %s cancelled (%d enrollments, %d waiting)",
            session.id, len(enrollments), len(entries),
        )

        for enrollment in enrollments:
            user_id = await TrainingService._user_id_for(db, enrollment.employee_id)
            if user_id is not None:
                await notify_training_session_cancelled(db, session, user_id, reason)
        return session

    @staticmethod
    async def complete_session(
        db: AsyncSession, ctx: RequestContext, session_id: uuid.UUID,
    ) -> TrainingSession:
        session = await TrainingService._get_session(db, ctx, session_id, for_update=True)
        if session.status != TrainingSessionStatus.scheduled:
            raise InvalidStateException("training session", session.status, "complete")

        session.status = TrainingSessionStatus.completed
        await db.flush()
        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="complete",
            entity_type="training_session",
            entity_id=session.id,
            actor_id=ctx.user_id,
            old_values={"status": TrainingSessionStatus.scheduled.value},
            new_values={"status": session.status.value},
        )
        return session

    # ─────────────────────────────────────────────────────────────────
    # Enrollment
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def enroll(
        db: AsyncSession,
        ctx: RequestContext,
        session_id: uuid.UUID,
        employee_id: uuid.UUID,
    ) -> EnrollmentResult:
        """Confirm a seat, or join the waitlist when the session is full."""
        TrainingService._ensure_self_or_manager(ctx, employee_id)

        session = await TrainingService._get_session(db, ctx, session_id, for_update=True)
        if session.status != TrainingSessionStatus.scheduled:
            raise InvalidStateException("training session", session.status, "enroll in")

        employee = (
            await db.execute(
                select(Employee.id).where(
                    Employee.id == employee_id,
                    Employee.tenant_id == ctx.tenant_id,
                )
            )
        ).scalar()
        if employee is None:
            raise NotFoundException("Employee", employee_id)

        enrolled = (
            await db.execute(
                select(TrainingEnrollment.id).where(
                    TrainingEnrollment.session_id == session.id,
                    TrainingEnrollment.employee_id == employee_id,
                    TrainingEnrollment.status.in_(_SEAT_HOLDING),
                )
            )
        ).scalar()
        if enrolled is not None:
            raise ConflictError(
                "employee_id", employee_id,
                detail="This employee is already enrolled in this session.",
            )

        waiting = (
            await db.execute(
                select(TrainingWaitlist.id).where(
                    TrainingWaitlist.session_id == session.id,
                    TrainingWaitlist.employee_id == employee_id,
                    TrainingWaitlist.status == WaitlistStatus.waiting,
                )
            )
        ).scalar()
        if waiting is not None:
            raise ConflictError(
                "employee_id", employee_id,
                detail="This employee is already on the waitlist for this session.",
            )

        if await TrainingService._confirmed_count(db, session.id) < session.capacity:
            enrollment = TrainingEnrollment(
                tenant_id=ctx.tenant_id,
                session_id=session.id,
                employee_id=employee_id,
                status=EnrollmentStatus.confirmed,
                enrolled_by=ctx.user_id,
            )
            db.add(enrollment)
            await db.flush()
            await create_audit_entry(
                db,
                tenant_id=ctx.tenant_id,
                action="enroll",
                entity_type="training_enrollment",
                entity_id=enrollment.id,
                actor_id=ctx.user_id,
                new_values={"session_id": str(session.id), "employee_id": str(employee_id)},
            )
            return EnrollmentResult(
                outcome="enrolled",
                enrollment=EnrollmentOut.model_validate(enrollment),
            )

        last_position = (
            await db.execute(
                select(func.max(TrainingWaitlist.position)).where(
                    TrainingWaitlist.session_id == session.id,
                )
            )
        ).scalar()
        entry = TrainingWaitlist(
            tenant_id=ctx.tenant_id,
            session_id=session.id,
            employee_id=employee_id,
            position=(last_position or 0) + 1,
            status=WaitlistStatus.waiting,
        )
        db.add(entry)
        await db.flush()
        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="waitlist",
            entity_type="training_waitlist",
            entity_id=entry.id,
            actor_id=ctx.user_id,
            new_values={"session_id": str(session.id), "position": entry.position},
        )
        logger.info(
            "Session %s full; employee %s waitlisted at position %d",
            session.id, employee_id, entry.position,
        )
        user_id = await TrainingService._user_id_for(db, employee_id)
        if user_id is not None:
            await notify_waitlist_joined(db, session, entry, user_id)
        return EnrollmentResult(
            outcome="waitlisted",
            waitlist_entry=WaitlistEntryOut.model_validate(entry),
        )

    @staticmethod
    async def cancel_enrollment(
        db: AsyncSession,
        ctx: RequestContext,
        enrollment_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> tuple[TrainingEnrollment, Optional[TrainingEnrollment]]:
        """Cancel a confirmed enrollment and promote the head of the waitlist."""
        enrollment = (
            await db.execute(
                select(TrainingEnrollment)
                .where(
                    TrainingEnrollment.id == enrollment_id,
                    TrainingEnrollment.tenant_id == ctx.tenant_id,
                )
                .with_for_update()
            )
        ).scalars().first()
        if enrollment is None:
            raise NotFoundException("TrainingEnrollment", enrollment_id)
        TrainingService._ensure_self_or_manager(ctx, enrollment.employee_id)
        if enrollment.status != EnrollmentStatus.confirmed:
            raise InvalidStateException("enrollment", enrollment.status, "cancel")

        enrollment.status = EnrollmentStatus.cancelled
        enrollment.cancelled_at = datetime.now(timezone.utc)
        enrollment.cancellation_reason = reason
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="cancel",
            entity_type="training_enrollment",
            entity_id=enrollment.id,
            actor_id=ctx.user_id,
            old_values={"status": EnrollmentStatus.confirmed.value},
            new_values={"status": enrollment.status.value, "reason": reason},
        )

        promoted = await TrainingService.promote_from_waitlist(
            db, ctx, enrollment.session_id,
        )
        return enrollment, promoted

    @staticmethod
    async def _mark_attendance(
        db: AsyncSession,
        ctx: RequestContext,
        enrollment_id: uuid.UUID,
        status: EnrollmentStatus,
    ) -> TrainingEnrollment:
        enrollment = (
            await db.execute(
                select(TrainingEnrollment)
                .where(
                    TrainingEnrollment.id == enrollment_id,
                    TrainingEnrollment.tenant_id == ctx.tenant_id,
                )
                .with_for_update()
            )
        ).scalars().first()
        if enrollment is None:
            raise NotFoundException("TrainingEnrollment", enrollment_id)
        # Attendance is only recorded against a held seat
        if enrollment.status != EnrollmentStatus.confirmed:
            raise InvalidStateException("enrollment", enrollment.status, "record attendance for")

        enrollment.status = status
        if status == EnrollmentStatus.attended:
            enrollment.attended_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action=status.value,
            entity_type="training_enrollment",
            entity_id=enrollment.id,
            actor_id=ctx.user_id,
            old_values={"status": EnrollmentStatus.confirmed.value},
            new_values={"status": enrollment.status.value},
        )
        return enrollment

    @staticmethod
    async def mark_attended(
        db: AsyncSession, ctx: RequestContext, enrollment_id: uuid.UUID,
    ) -> TrainingEnrollment:
        return await TrainingService._mark_attendance(
            db, ctx, enrollment_id, EnrollmentStatus.attended,
        )

    @staticmethod
    async def mark_no_show(
        db: AsyncSession, ctx: RequestContext, enrollment_id: uuid.UUID,
    ) -> TrainingEnrollment:
        return await TrainingService._mark_attendance(
            db, ctx, enrollment_id, EnrollmentStatus.no_show,
        )

    @staticmethod
    async def promote_from_waitlist(
        db: AsyncSession, ctx: RequestContext, session_id: uuid.UUID,
    ) -> Optional[TrainingEnrollment]:
        """Give a free seat to the first waiting entry, if any."""
        session = await TrainingService._get_session(db, ctx, session_id, for_update=True)
        if session.status != TrainingSessionStatus.scheduled:
            return None
        if await TrainingService._confirmed_count(db, session.id) >= session.capacity:
            return None

        head = (
            await db.execute(
                select(TrainingWaitlist)
                .where(
                    TrainingWaitlist.session_id == session.id,
                    TrainingWaitlist.status == WaitlistStatus.waiting,
                )
                .order_by(*TrainingService._queue_order())
                .limit(1)
                .with_for_update()
            )
        ).scalars().first()
        if head is None:
            return None

        now = datetime.now(timezone.utc)
        head.status = WaitlistStatus.promoted
        head.promoted_at = now
        enrollment = TrainingEnrollment(
            tenant_id=ctx.tenant_id,
            session_id=session.id,
            employee_id=head.employee_id,
            status=EnrollmentStatus.confirmed,
            enrolled_at=now,
            notes="Promoted from waitlist",
        )
        db.add(enrollment)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="promote",
            entity_type="training_waitlist",
            entity_id=head.id,
            actor_id=ctx.user_id,
            old_values={"status": WaitlistStatus.waiting.value, "position": head.position},
            new_values={"status": head.status.value, "enrollment_id": str(enrollment.id)},
        )
        logger.info(
            "Employee %s promoted from waitlist of session %s",
            head.employee_id, session.id,
        )

        user_id = await TrainingService._user_id_for(db, head.employee_id)
        if user_id is not None:
            await notify_waitlist_promoted(db, session, user_id)
        return enrollment

    # ─────────────────────────────────────────────────────────────────
    # Waitlist
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def ordered_waitlist(
        db: AsyncSession, ctx: RequestContext, session_id: uuid.UUID,
    ) -> list[TrainingWaitlist]:
        """Waiting entries in service order."""
        await TrainingService._get_session(db, ctx, session_id)
        result = await db.execute(
            select(TrainingWaitlist)
            .where(
                TrainingWaitlist.session_id == session_id,
                TrainingWaitlist.tenant_id == ctx.tenant_id,
                TrainingWaitlist.status == WaitlistStatus.waiting,
            )
            .options(selectinload(TrainingWaitlist.employee))
            .order_by(*TrainingService._queue_order())
        )
        return list(result.scalars().all())

    @staticmethod
    async def cancel_waitlist(
        db: AsyncSession, ctx: RequestContext, entry_id: uuid.UUID,
    ) -> TrainingWaitlist:
        """Leave the queue. Only the entry's employee or a training manager may."""
        entry = (
            await db.execute(
                select(TrainingWaitlist)
                .where(
                    TrainingWaitlist.id == entry_id,
                    TrainingWaitlist.tenant_id == ctx.tenant_id,
                )
                .with_for_update()
            )
        ).scalars().first()
        if entry is None:
            raise NotFoundException("TrainingWaitlist", entry_id)
        TrainingService._ensure_self_or_manager(ctx, entry.employee_id)
        if entry.status != WaitlistStatus.waiting:
            raise InvalidStateException("waitlist entry", entry.status, "cancel")

        entry.status = WaitlistStatus.cancelled
        entry.cancelled_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            tenant_id=ctx.tenant_id,
            action="cancel",
            entity_type="training_waitlist",
            entity_id=entry.id,
            actor_id=ctx.user_id,
            old_values={"status": WaitlistStatus.waiting.value, "position": entry.position},
            new_values={"status": entry.status.value},
        )
        return entry
