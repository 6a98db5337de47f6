"""Core HR ORM models: Department, Employee.

SQLAlchemy 2.0 async-compatible models with Mapped[] annotations.
Column names match the PostgreSQL schema defined in 001_initial_schema.
"""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris.common.constants import EmploymentStatus, EmploymentType
from hris.common.models import TenantScopedMixin, TimestampMixin
from hris.database import Base

if TYPE_CHECKING:
    from hris.auth.models import User
    from hris.leave.models import LeaveApplication


# ═════════════════════════════════════════════════════════════════════
# Department
# ═════════════════════════════════════════════════════════════════════


class Department(TenantScopedMixin, TimestampMixin, Base):
    """Organisational department."""

    __tablename__ = "departments"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "name", name="uq_dept_tenant_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(150), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(sa.String(20))
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.text("TRUE"),
    )

    # ── Relationships ───────────────────────────────────────────────
    employees: Mapped[list[Employee]] = relationship(
        back_populates="department", foreign_keys="Employee.department_id",
    )

    def __repr__(self) -> str:
        return f"<Department {self.name!r} ({self.code})>"


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class Employee(TenantScopedMixin, TimestampMixin, Base):
    """Core employee record — central entity for the HR platform."""

    __tablename__ = "employees"
    __table_args__ = (
        sa.UniqueConstraint("tenant_id", "employee_number", name="uq_employee_number"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_employee_email"),
        sa.UniqueConstraint(
            "preboarding_checklist_id", name="uq_employee_preboarding_checklist",
        ),
    )

    # ── Primary key ─────────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Identifiers ─────────────────────────────────────────────────
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL"),
    )
    employee_number: Mapped[str] = mapped_column(sa.String(20), nullable=False)

    # ── Name / Contact ──────────────────────────────────────────────
    first_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(sa.String(30))
    date_of_birth: Mapped[Optional[date]] = mapped_column(sa.Date)
    address: Mapped[Optional[dict]] = mapped_column(JSONB)

    # ── Org placement ───────────────────────────────────────────────
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("departments.id"),
    )
    position_title: Mapped[Optional[str]] = mapped_column(sa.String(200))

    # ── Employment lifecycle ────────────────────────────────────────
    employment_type: Mapped[EmploymentType] = mapped_column(
        sa.Enum(EmploymentType, name="employment_type", create_type=False),
        default=EmploymentType.probationary,
    )
    employment_status: Mapped[EmploymentStatus] = mapped_column(
        sa.Enum(EmploymentStatus, name="employment_status", create_type=False),
        default=EmploymentStatus.active,
    )
    hire_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    basic_salary: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    pay_frequency: Mapped[Optional[str]] = mapped_column(sa.String(20))

    # ── Provenance ──────────────────────────────────────────────────
    # Unique: a preboarding checklist converts into at most one employee.
    preboarding_checklist_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("preboarding_checklists.id", name="fk_employee_preboarding"),
    )

    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.text("TRUE"),
    )

    # ── Relationships ───────────────────────────────────────────────
    user: Mapped[Optional["User"]] = relationship(back_populates="employees")
    department: Mapped[Optional[Department]] = relationship(
        back_populates="employees", foreign_keys=[department_id],
    )
    leave_applications: Mapped[list["LeaveApplication"]] = relationship(
        back_populates="employee",
        foreign_keys="LeaveApplication.employee_id",
    )

    # ── Helpers ─────────────────────────────────────────────────────

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def initials(self) -> str:
        parts = [self.first_name, self.last_name]
        return "".join(p[0].upper() for p in parts if p)

    def __repr__(self) -> str:
        return (
            f"<Employee {self.employee_number} "
            f"{self.first_name} {self.last_name}>"
        )
