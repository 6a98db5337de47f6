"""Auth dependencies — JWT validation and request-context construction."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris.auth.context import RequestContext
from hris.auth.models import Tenant, User
from hris.common.constants import TenantRole
from hris.config import settings
from hris.core_hr.models import Employee
from hris.database import get_db


def _extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]


def _parse_uuid_claim(payload: dict, claim: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(payload[claim]))
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail=f"Invalid token claim '{claim}'.")


# ── Core dependency ─────────────────────────────────────────────────

async def get_request_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    """Validate the JWT and build the caller's RequestContext."""
    token = _extract_bearer(request)

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token has expired.")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Invalid token type.")

    user_id = _parse_uuid_claim(payload, "sub")
    tenant_id = _parse_uuid_claim(payload, "tid")

    user = (
        await db.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
    ).scalars().first()
    if user is None:
        raise HTTPException(status_code=401, detail="User account is inactive or not found.")

    tenant = (
        await db.execute(
            select(Tenant).where(Tenant.id == tenant_id, Tenant.is_active.is_(True))
        )
    ).scalars().first()
    if tenant is None:
        raise HTTPException(status_code=401, detail="Tenant is inactive or not found.")

    employee = (
        await db.execute(
            select(Employee).where(
                Employee.tenant_id == tenant_id,
                Employee.user_id == user_id,
            )
        )
    ).scalars().first()

    try:
        role = TenantRole(payload.get("role", TenantRole.employee.value))
    except ValueError:
        role = TenantRole.employee

    confirmed_at = None
    if payload.get("pwc") is not None:
        try:
            confirmed_at = datetime.fromtimestamp(int(payload["pwc"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError):
            raise HTTPException(status_code=401, detail="Invalid token claim 'pwc'.")

    return RequestContext(
        tenant_id=tenant_id,
        user=user,
        role=role,
        employee=employee,
        password_confirmed_at=confirmed_at,
    )
