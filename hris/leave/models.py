"""Leave ORM models: LeaveType, LeaveApplication."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris.common.constants import LeaveStatus
from hris.common.models import TenantScopedMixin, TimestampMixin
from hris.database import Base

if TYPE_CHECKING:
    from hris.core_hr.models import Employee


class LeaveType(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "leave_types"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "code", name="uq_leave_type_code"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    code: Mapped[str] = mapped_column(sa.String(10), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(sa.String(7))
    is_paid: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.text("TRUE"),
    )

    # Relationships
    applications: Mapped[list[LeaveApplication]] = relationship(
        back_populates="leave_type",
    )


class LeaveApplication(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "leave_applications"
    __table_args__ = (
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_date_range"),
        sa.Index("ix_leave_applications_range", "tenant_id", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    leave_type_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("leave_types.id"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    end_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    total_days: Mapped[Decimal] = mapped_column(sa.Numeric(5, 1), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[LeaveStatus] = mapped_column(
        sa.Enum(LeaveStatus, name="leave_status", create_type=False),
        default=LeaveStatus.pending,
        server_default="pending",
    )
    reviewer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(
        sa.DateTime(timezone=True)
    )

    # Relationships
    employee: Mapped["Employee"] = relationship(
        back_populates="leave_applications", foreign_keys=[employee_id]
    )
    reviewer: Mapped[Optional["Employee"]] = relationship(
        foreign_keys=[reviewer_id]
    )
    leave_type: Mapped[LeaveType] = relationship(back_populates="applications")
