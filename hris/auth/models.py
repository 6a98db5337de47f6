"""Identity ORM models: Tenant, User."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Optional

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris.common.models import TimestampMixin
from hris.database import Base

if TYPE_CHECKING:
    from hris.core_hr.models import Employee
    from hris.notifications.models import Notification


class Tenant(TimestampMixin, Base):
    """An isolated organisation; every domain row belongs to exactly one."""

    __tablename__ = "tenants"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    slug: Mapped[str] = mapped_column(sa.String(63), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.text("TRUE"),
    )

    def __repr__(self) -> str:
        return f"<Tenant {self.slug!r}>"


class User(TimestampMixin, Base):
    """Login identity. An employee may or may not have one."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(sa.String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(sa.String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, default=True, server_default=sa.text("TRUE"),
    )

    # Relationships
    employees: Mapped[list["Employee"]] = relationship(back_populates="user")
    notifications: Mapped[list["Notification"]] = relationship(
        back_populates="recipient",
    )

    def __repr__(self) -> str:
        return f"<User {self.email!r}>"
