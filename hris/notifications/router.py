"""Notification endpoints — list, mark read, unread count."""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from hris.auth.context import RequestContext
from hris.auth.dependencies import get_request_context
from hris.common.constants import NotificationType
from hris.common.pagination import PaginationParams
from hris.database import get_db
from hris.notifications.schemas import (
    NotificationListResponse,
    NotificationResponse,
)
from hris.notifications.service import NotificationService

router = APIRouter(prefix="", tags=["notifications"])


# ── GET / ── list current user's notifications ───────────────────────

@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    is_read: Optional[bool] = Query(default=None, description="Filter by read status"),
    type: Optional[NotificationType] = Query(
        default=None, alias="type", description="Filter by notification type"
    ),
    pagination: PaginationParams = Depends(),
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """List notifications for the authenticated user (paginated)."""
    return await NotificationService.get_notifications(
        db,
        ctx,
        pagination,
        is_read=is_read,
        notification_type=type,
    )


# ── GET /unread-count ── badge count ─────────────────────────────────
# Registered before /{notification_id}/read so "unread-count" is not
# parsed as a UUID path parameter.

@router.get("/unread-count")
async def unread_count(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    count = await NotificationService.get_unread_count(db, ctx)
    return {"data": {"count": count}}


# ── PUT /read-all ── bulk mark all as read ───────────────────────────

@router.put("/read-all")
async def mark_all_read(
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    """Mark all unread notifications as read for the authenticated user."""
    count = await NotificationService.mark_all_read(db, ctx)
    return {"message": "All notifications marked as read", "data": {"count": count}}


# ── PUT /{notification_id}/read ── mark single as read ───────────────

@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: uuid.UUID,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
):
    notification = await NotificationService.mark_read(db, ctx, notification_id)
    return {
        "message": "Notification marked as read",
        "data": NotificationResponse.model_validate(notification),
    }
