"""Notification service — CRUD operations and cross-module helper dispatchers."""

from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hris.auth.context import RequestContext
from hris.common.constants import NotificationType
from hris.common.exceptions import ForbiddenException, NotFoundException
from hris.common.pagination import PaginationParams
from hris.notifications.models import Notification
from hris.notifications.schemas import (
    NotificationListMeta,
    NotificationListResponse,
    NotificationResponse,
)

logger = logging.getLogger(__name__)


# ── Core service ────────────────────────────────────────────────────


class NotificationService:
    """Async notification operations."""

    @staticmethod
    async def create_notification(
        db: AsyncSession,
        *,
        tenant_id: uuid.UUID,
        recipient_id: uuid.UUID,
        type: NotificationType = NotificationType.info,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> Notification:
        """Create a new notification and flush to DB."""
        notification = Notification(
            tenant_id=tenant_id,
            recipient_id=recipient_id,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
            entity_type=entity_type,
            entity_id=entity_id,
            payload=payload,
        )
        db.add(notification)
        await db.flush()
        return notification

    @staticmethod
    async def dispatch_best_effort(
        db: AsyncSession, **kwargs: Any,
    ) -> Optional[Notification]:
        """Create a notification inside a SAVEPOINT.

        A failure rolls back only the savepoint, is logged, and returns None;
        the caller's own writes are untouched.
        """
        try:
            async with db.begin_nested():
                return await NotificationService.create_notification(db, **kwargs)
        except Exception:
            logger.warning(
                "Notification dispatch failed (recipient=%s, entity=%s/%s)",
                kwargs.get("recipient_id"),
                kwargs.get("entity_type"),
                kwargs.get("entity_id"),
                exc_info=True,
            )
            return None

    @staticmethod
    async def get_notifications(
        db: AsyncSession,
        ctx: RequestContext,
        pagination: PaginationParams,
        *,
        is_read: Optional[bool] = None,
        notification_type: Optional[NotificationType] = None,
    ) -> NotificationListResponse:
        """Return paginated notifications for the caller, newest first."""
        query = (
            select(Notification)
            .where(
                Notification.tenant_id == ctx.tenant_id,
                Notification.recipient_id == ctx.user_id,
            )
            .order_by(Notification.created_at.desc())
        )

        if is_read is not None:
            query = query.where(Notification.is_read == is_read)
        if notification_type is not None:
            query = query.where(Notification.type == notification_type)

        # Total count (with filters applied)
        count_q = query.with_only_columns(func.count()).order_by(None)
        total: int = (await db.execute(count_q)).scalar_one()

        rows = (
            await db.execute(
                query.offset(pagination.offset).limit(pagination.page_size)
            )
        ).scalars().all()

        total_pages = math.ceil(total / pagination.page_size) if total else 0

        # Unread count (always unfiltered, for the badge)
        unread = await NotificationService.get_unread_count(db, ctx)

        return NotificationListResponse(
            data=[NotificationResponse.model_validate(n) for n in rows],
            meta=NotificationListMeta(
                page=pagination.page,
                page_size=pagination.page_size,
                total=total,
                total_pages=total_pages,
                has_next=pagination.page < total_pages,
                has_prev=pagination.page > 1,
                unread=unread,
            ),
        )

    @staticmethod
    async def mark_read(
        db: AsyncSession,
        ctx: RequestContext,
        notification_id: uuid.UUID,
    ) -> Notification:
        """Mark a single notification as read. Verifies ownership."""
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.tenant_id == ctx.tenant_id,
            )
        )
        notification = result.scalars().first()

        if notification is None:
            raise NotFoundException("Notification", notification_id)

        if notification.recipient_id != ctx.user_id:
            raise ForbiddenException("You can only mark your own notifications as read.")

        notification.is_read = True
        notification.read_at = datetime.now(timezone.utc)
        await db.flush()
        return notification

    @staticmethod
    async def mark_all_read(db: AsyncSession, ctx: RequestContext) -> int:
        """Bulk-mark all unread notifications as read. Returns count updated."""
        now = datetime.now(timezone.utc)
        result = await db.execute(
            update(Notification)
            .where(
                Notification.tenant_id == ctx.tenant_id,
                Notification.recipient_id == ctx.user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, read_at=now)
        )
        await db.flush()
        return result.rowcount  # type: ignore[return-value]

    @staticmethod
    async def get_unread_count(db: AsyncSession, ctx: RequestContext) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.tenant_id == ctx.tenant_id,
                Notification.recipient_id == ctx.user_id,
                Notification.is_read.is_(False),
            )
        )
        return result.scalar_one()


# ── Cross-module helper dispatchers ─────────────────────────────────
# Imported by the workflow services. All go through dispatch_best_effort,
# so they return None instead of raising.


async def notify_loan_reviewed(
    db: AsyncSession,
    application,  # hris.loans.models.LoanApplication
    recipient_id: uuid.UUID,
) -> Optional[Notification]:
    """Tell the applicant their loan application was approved or rejected."""
    approved = application.status.value == "approved"
    return await NotificationService.dispatch_best_effort(
        db,
        tenant_id=application.tenant_id,
        recipient_id=recipient_id,
        type=NotificationType.approval if approved else NotificationType.alert,
        title="Loan Application Approved" if approved else "Loan Application Rejected",
        message=(
            f"Your loan application {application.reference_number} "
            f"was {application.status.value}."
            + (f" Remarks: {application.remarks}" if application.remarks else "")
        ),
        action_url=f"/loans/{application.id}",
        entity_type="loan_application",
        entity_id=application.id,
    )


async def notify_document_request_updated(
    db: AsyncSession,
    document_request,  # hris.documents.models.DocumentRequest
    recipient_id: uuid.UUID,
    payload: dict[str, Any],
) -> Optional[Notification]:
    """Tell the employee their document request changed status."""
    status = document_request.status.value
    return await NotificationService.dispatch_best_effort(
        db,
        tenant_id=document_request.tenant_id,
        recipient_id=recipient_id,
        type=NotificationType.alert if status == "rejected" else NotificationType.info,
        title="Document Request Updated",
        message=(
            f"Your {document_request.document_type} request is now {status}."
        ),
        action_url=f"/documents/{document_request.id}",
        entity_type="document_request",
        entity_id=document_request.id,
        payload=payload,
    )


async def notify_preboarding_item_rejected(
    db: AsyncSession,
    item,  # hris.preboarding.models.PreboardingChecklistItem
    checklist,  # hris.preboarding.models.PreboardingChecklist
) -> Optional[Notification]:
    if checklist.created_by is None:
        return None
    return await NotificationService.dispatch_best_effort(
        db,
        tenant_id=checklist.tenant_id,
        recipient_id=checklist.created_by,
        type=NotificationType.action_required,
        title="Preboarding Item Rejected",
        message=(
            f"'{item.name}' for {checklist.first_name} {checklist.last_name} "
            f"was rejected. Reason: {item.rejection_reason}"
        ),
        action_url=f"/preboarding/{checklist.id}",
        entity_type="preboarding_checklist",
        entity_id=checklist.id,
    )


async def notify_preboarding_completed(
    db: AsyncSession,
    checklist,  # hris.preboarding.models.PreboardingChecklist
) -> Optional[Notification]:
    if checklist.created_by is None:
        return None
    return await NotificationService.dispatch_best_effort(
        db,
        tenant_id=checklist.tenant_id,
        recipient_id=checklist.created_by,
        type=NotificationType.action_required,
        title="Preboarding Completed",
        message=(
            f"All preboarding items for {checklist.first_name} "
            f"{checklist.last_name} are approved and ready for conversion."
        ),
        action_url=f"/preboarding/{checklist.id}",
        entity_type="preboarding_checklist",
        entity_id=checklist.id,
    )


async def notify_waitlist_promoted(
    db: AsyncSession,
    session,  # hris.training.models.TrainingSession
    recipient_id: uuid.UUID,
) -> Optional[Notification]:
    """Tell an employee a seat opened up and they were enrolled."""
    return await NotificationService.dispatch_best_effort(
        db,
        tenant_id=session.tenant_id,
        recipient_id=recipient_id,
        type=NotificationType.info,
        title="Training Seat Confirmed",
        message=(
            f"A seat opened up in '{session.title}' and you have been "
            f"enrolled from the waitlist."
        ),
        action_url=f"/training/sessions/{session.id}",
        entity_type="training_session",
        entity_id=session.id,
    )


async def notify_waitlist_joined(
    db: AsyncSession,
    session,  # hris.training.models.TrainingSession
    entry,  # hris.training.models.TrainingWaitlist
    recipient_id: uuid.UUID,
) -> Optional[Notification]:
    return await NotificationService.dispatch_best_effort(
        db,
        tenant_id=session.tenant_id,
        recipient_id=recipient_id,
        type=NotificationType.info,
        title="Added to Training Waitlist",
        message=(
            f"'{session.title}' is full. You are number {entry.position} "
            f"on the waitlist and will be enrolled if a seat opens up."
        ),
        action_url=f"/training/sessions/{session.id}",
        entity_type="training_session",
        entity_id=session.id,
    )


async def notify_training_session_cancelled(
    db: AsyncSession,
    session,  # hris.training.models.TrainingSession
    recipient_id: uuid.UUID,
    reason: Optional[str] = None,
) -> Optional[Notification]:
    """Tell an enrolled employee the session will not take place."""
    return await NotificationService.dispatch_best_effort(
        db,
        tenant_id=session.tenant_id,
        recipient_id=recipient_id,
        type=NotificationType.alert,
        title="Training Session Cancelled",
        message=(
            f"'{session.title}' has been cancelled."
            + (f" Reason: {reason}" if reason else "")
        ),
        action_url=f"/training/sessions/{session.id}",
        entity_type="training_session",
        entity_id=session.id,
    )
