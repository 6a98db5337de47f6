"""Common module — shared utilities for the HRIS workflow backend."""

from hris.common.audit import AuditTrail, create_audit_entry
from hris.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    ROLE_PERMISSIONS,
    Permission,
    TenantRole,
)
from hris.common.exceptions import (
    AppException,
    ConflictError,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    PreconditionFailedException,
    ValidationException,
    register_exception_handlers,
)
from hris.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "Permission",
    "ROLE_PERMISSIONS",
    "TenantRole",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "InvalidStateException",
    "NotFoundException",
    "PreconditionFailedException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
