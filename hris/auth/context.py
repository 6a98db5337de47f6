"""Per-request caller context threaded explicitly through every service call."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from hris.common.constants import TenantRole

if TYPE_CHECKING:
    from hris.auth.models import User
    from hris.core_hr.models import Employee


@dataclass(frozen=True)
class RequestContext:
    """Who is calling, on behalf of which tenant.

    ``employee`` is the caller's employee record within the tenant, if any.
    """

    tenant_id: uuid.UUID
    user: "User"
    role: TenantRole
    employee: Optional["Employee"] = None
    password_confirmed_at: Optional[datetime] = None

    @property
    def user_id(self) -> uuid.UUID:
        return self.user.id

    @property
    def employee_id(self) -> Optional[uuid.UUID]:
        return self.employee.id if self.employee is not None else None
