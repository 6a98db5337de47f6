"""Performance ORM models: PerformanceCycleParticipant, KpiAssignment, KpiProgressEntry."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris.common.constants import KpiAssignmentStatus
from hris.common.models import TenantScopedMixin, TimestampMixin, utcnow
from hris.database import Base

if TYPE_CHECKING:
    from hris.core_hr.models import Employee


class PerformanceCycleParticipant(TenantScopedMixin, TimestampMixin, Base):
    """An employee's enrolment in one performance cycle."""

    __tablename__ = "performance_cycle_participants"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "cycle_name", name="uq_participant_cycle"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    cycle_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)

    # Relationships
    employee: Mapped["Employee"] = relationship()
    kpi_assignments: Mapped[list[KpiAssignment]] = relationship(
        back_populates="participant",
        order_by="KpiAssignment.created_at",
    )


class KpiAssignment(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "kpi_assignments"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    participant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("performance_cycle_participants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    target_value: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False)
    actual_value: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(14, 2))
    weight: Mapped[Decimal] = mapped_column(
        sa.Numeric(5, 2), default=Decimal("1.00"), server_default=sa.text("1.00"),
    )
    achievement_percentage: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(7, 2))
    status: Mapped[KpiAssignmentStatus] = mapped_column(
        sa.Enum(KpiAssignmentStatus, name="kpi_assignment_status", create_type=False),
        default=KpiAssignmentStatus.pending,
        server_default="pending",
    )
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    completed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    # Relationships
    participant: Mapped[PerformanceCycleParticipant] = relationship(
        back_populates="kpi_assignments",
    )
    progress_entries: Mapped[list[KpiProgressEntry]] = relationship(
        back_populates="assignment",
        cascade="all, delete-orphan",
        order_by="KpiProgressEntry.recorded_at.desc()",
    )


class KpiProgressEntry(TenantScopedMixin, Base):
    """Append-only history of recorded KPI values."""

    __tablename__ = "kpi_progress_entries"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    kpi_assignment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("kpi_assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    value: Mapped[Decimal] = mapped_column(sa.Numeric(14, 2), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(sa.Text)
    recorded_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL")
    )
    recorded_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, server_default=sa.func.now(),
    )

    assignment: Mapped[KpiAssignment] = relationship(back_populates="progress_entries")
