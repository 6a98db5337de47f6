"""Loan ORM models: LoanApplication."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris.common.constants import LoanApplicationStatus, LoanType
from hris.common.models import TenantScopedMixin, TimestampMixin
from hris.database import Base

if TYPE_CHECKING:
    from hris.core_hr.models import Employee


class LoanApplication(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "loan_applications"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "reference_number", name="uq_loan_reference"),
        sa.Index("ix_loan_applications_status", "tenant_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id"), nullable=False
    )
    reference_number: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    loan_type: Mapped[LoanType] = mapped_column(
        sa.Enum(LoanType, name="loan_type", create_type=False), nullable=False,
    )
    amount_requested: Mapped[Decimal] = mapped_column(sa.Numeric(12, 2), nullable=False)
    term_months: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    purpose: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[LoanApplicationStatus] = mapped_column(
        sa.Enum(LoanApplicationStatus, name="loan_application_status", create_type=False),
        default=LoanApplicationStatus.draft,
        server_default="draft",
    )
    submitted_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    # ── Review ──────────────────────────────────────────────────────
    reviewer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("employees.id")
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    amount_approved: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    approved_term_months: Mapped[Optional[int]] = mapped_column(sa.Integer)
    interest_rate: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(5, 2))
    remarks: Mapped[Optional[str]] = mapped_column(sa.Text)

    # ── Cancellation ────────────────────────────────────────────────
    cancellation_reason: Mapped[Optional[str]] = mapped_column(sa.Text)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL")
    )

    # Relationships
    employee: Mapped["Employee"] = relationship(foreign_keys=[employee_id])
    reviewer: Mapped[Optional["Employee"]] = relationship(foreign_keys=[reviewer_id])
