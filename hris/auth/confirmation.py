"""Password-confirmation window for sensitive actions.

The identity service stamps the time of the caller's last password
confirmation into the access token; here we only compare elapsed time
against the configured timeout, rereading both on every check.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends

from hris.auth.context import RequestContext
from hris.auth.dependencies import get_request_context
from hris.common.exceptions import ForbiddenException
from hris.config import settings


def password_confirmation_expired(
    confirmed_at: Optional[datetime],
    *,
    now: Optional[datetime] = None,
    timeout: Optional[int] = None,
) -> bool:
    """True if the caller never confirmed, or confirmed more than *timeout* seconds ago."""
    if confirmed_at is None:
        return True
    if timeout is None:
        timeout = settings.PASSWORD_CONFIRM_TIMEOUT_SECONDS
    now = now or datetime.now(timezone.utc)
    elapsed = (now - confirmed_at).total_seconds()
    return elapsed > timeout


async def require_password_confirmation(
    ctx: RequestContext = Depends(get_request_context),
) -> RequestContext:
    """FastAPI dependency: reject callers outside the confirmation window."""
    if password_confirmation_expired(ctx.password_confirmed_at):
        raise ForbiddenException("Password confirmation required.")
    return ctx
