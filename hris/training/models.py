"""Training ORM models: TrainingSession, TrainingEnrollment, TrainingWaitlist."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris.common.constants import (
    EnrollmentStatus,
    TrainingSessionStatus,
    WaitlistStatus,
)
from hris.common.models import TenantScopedMixin, TimestampMixin, utcnow
from hris.database import Base

if TYPE_CHECKING:
    from hris.core_hr.models import Employee


class TrainingSession(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "training_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    location: Mapped[Optional[str]] = mapped_column(sa.String(200))
    starts_at: Mapped[datetime] = mapped_column(sa.DateTime(timezone=True), nullable=False)
    ends_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    capacity: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    status: Mapped[TrainingSessionStatus] = mapped_column(
        sa.Enum(TrainingSessionStatus, name="training_session_status", create_type=False),
        default=TrainingSessionStatus.scheduled,
        server_default="scheduled",
    )

    # Relationships
    enrollments: Mapped[list[TrainingEnrollment]] = relationship(back_populates="session")
    waitlist: Mapped[list[TrainingWaitlist]] = relationship(
        back_populates="session",
        order_by="TrainingWaitlist.position",
    )


class TrainingEnrollment(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "training_enrollments"
    __table_args__ = (
        sa.Index("ix_training_enrollments_session", "session_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    status: Mapped[EnrollmentStatus] = mapped_column(
        sa.Enum(EnrollmentStatus, name="enrollment_status", create_type=False),
        default=EnrollmentStatus.confirmed,
        server_default="confirmed",
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(),
    )
    enrolled_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL")
    )
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    attended_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    cancellation_reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    session: Mapped[TrainingSession] = relationship(back_populates="enrollments")
    employee: Mapped["Employee"] = relationship()


class TrainingWaitlist(TenantScopedMixin, TimestampMixin, Base):
    """One employee's place in a session's queue."""

    __tablename__ = "training_waitlist"
    __table_args__ = (
        sa.Index("ix_training_waitlist_queue", "session_id", "status", "joined_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("training_sessions.id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    position: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(),
    )
    status: Mapped[WaitlistStatus] = mapped_column(
        sa.Enum(WaitlistStatus, name="waitlist_status", create_type=False),
        default=WaitlistStatus.waiting,
        server_default="waiting",
    )
    promoted_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    session: Mapped[TrainingSession] = relationship(back_populates="waitlist")
    employee: Mapped["Employee"] = relationship()
