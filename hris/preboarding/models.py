"""Preboarding ORM models: PreboardingChecklist, PreboardingChecklistItem.

A checklist's status is never stored; it is derived from its items on
read (see ``derive_checklist_status``).
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris.common.constants import (
    PreboardingItemStatus,
    PreboardingItemType,
    PreboardingStatus,
)
from hris.common.models import TenantScopedMixin, TimestampMixin
from hris.database import Base


def derive_checklist_status(
    items: Iterable[PreboardingChecklistItem],
) -> PreboardingStatus:
    """Completed iff there is at least one item and every item is approved."""
    items = list(items)
    if items and all(i.status == PreboardingItemStatus.approved for i in items):
        return PreboardingStatus.completed
    return PreboardingStatus.in_progress


def checklist_progress(items: Iterable[PreboardingChecklistItem]) -> int:
    """Approved items as a whole-number percentage of all items."""
    items = list(items)
    if not items:
        return 0
    approved = sum(1 for i in items if i.status == PreboardingItemStatus.approved)
    return int(approved * 100 / len(items))


class PreboardingChecklist(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "preboarding_checklists"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # ── Candidate ───────────────────────────────────────────────────
    first_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    email: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(sa.String(30))
    date_of_birth: Mapped[Optional[date]] = mapped_column(sa.Date)
    address: Mapped[Optional[dict]] = mapped_column(JSONB)

    # ── Offer ───────────────────────────────────────────────────────
    position_title: Mapped[Optional[str]] = mapped_column(sa.String(200))
    department_name: Mapped[Optional[str]] = mapped_column(sa.String(150))
    employment_type: Mapped[Optional[str]] = mapped_column(sa.String(50))
    start_date: Mapped[Optional[date]] = mapped_column(sa.Date)
    salary: Mapped[Optional[Decimal]] = mapped_column(sa.Numeric(12, 2))
    salary_frequency: Mapped[Optional[str]] = mapped_column(sa.String(20))

    deadline: Mapped[Optional[date]] = mapped_column(sa.Date)
    completed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL")
    )

    # Relationships
    items: Mapped[list[PreboardingChecklistItem]] = relationship(
        back_populates="checklist",
        cascade="all, delete-orphan",
        order_by="PreboardingChecklistItem.sort_order",
    )

    @property
    def status(self) -> PreboardingStatus:
        return derive_checklist_status(self.items)

    @property
    def progress_percentage(self) -> int:
        return checklist_progress(self.items)

    def __repr__(self) -> str:
        return f"<PreboardingChecklist {self.first_name} {self.last_name} ({self.email})>"


class PreboardingChecklistItem(TenantScopedMixin, TimestampMixin, Base):
    __tablename__ = "preboarding_checklist_items"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    checklist_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("preboarding_checklists.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.Text)
    item_type: Mapped[PreboardingItemType] = mapped_column(
        sa.Enum(PreboardingItemType, name="preboarding_item_type", create_type=False),
        nullable=False,
    )
    # For form_field items: the employee attribute this value fills in.
    field_key: Mapped[Optional[str]] = mapped_column(sa.String(50))
    sort_order: Mapped[int] = mapped_column(
        sa.Integer, default=0, server_default=sa.text("0"),
    )
    status: Mapped[PreboardingItemStatus] = mapped_column(
        sa.Enum(PreboardingItemStatus, name="preboarding_item_status", create_type=False),
        default=PreboardingItemStatus.pending,
        server_default="pending",
    )
    form_value: Mapped[Optional[str]] = mapped_column(sa.Text)
    submitted_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True), sa.ForeignKey("users.id", ondelete="SET NULL")
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(sa.Text)

    checklist: Mapped[PreboardingChecklist] = relationship(back_populates="items")
