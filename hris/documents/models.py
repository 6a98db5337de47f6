"""Document request ORM model."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris.common.constants import DocumentRequestStatus
from hris.common.models import TenantScopedMixin, TimestampMixin
from hris.database import Base

if TYPE_CHECKING:
    from hris.core_hr.models import Employee


class DocumentRequest(TenantScopedMixin, TimestampMixin, Base):
    """An employee's request for an HR-issued document (COE, payslip copy, ...)."""

    __tablename__ = "document_requests"
    __table_args__ = (
        sa.Index("ix_document_requests_status", "tenant_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        sa.ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )
    document_type: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    purpose: Mapped[Optional[str]] = mapped_column(sa.Text)
    status: Mapped[DocumentRequestStatus] = mapped_column(
        sa.Enum(DocumentRequestStatus, name="document_request_status", create_type=False),
        default=DocumentRequestStatus.pending,
        server_default="pending",
    )
    processed_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    collected_at: Mapped[Optional[datetime]] = mapped_column(sa.DateTime(timezone=True))
    admin_notes: Mapped[Optional[str]] = mapped_column(sa.Text)

    # Relationships
    employee: Mapped["Employee"] = relationship()
