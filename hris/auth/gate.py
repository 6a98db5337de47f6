"""Permission gate — the single place authorization decisions are made."""

from __future__ import annotations

from typing import Callable

from fastapi import Depends

from hris.auth.context import RequestContext
from hris.auth.dependencies import get_request_context
from hris.common.constants import ROLE_PERMISSIONS, Permission
from hris.common.exceptions import ForbiddenException


def authorize(ctx: RequestContext, permission: Permission) -> bool:
    """Return True if the caller's tenant role grants *permission*."""
    return permission in ROLE_PERMISSIONS.get(ctx.role, frozenset())


def ensure(ctx: RequestContext, permission: Permission) -> None:
    """Raise ForbiddenException unless *permission* is granted."""
    if not authorize(ctx, permission):
        raise ForbiddenException(
            detail=f"Permission '{permission.value}' is not granted to role '{ctx.role.value}'.",
        )


def require_permission(permission: Permission) -> Callable:
    """Return a FastAPI dependency that enforces a specific permission."""

    async def _check(
        ctx: RequestContext = Depends(get_request_context),
    ) -> RequestContext:
        ensure(ctx, permission)
        return ctx

    return _check
