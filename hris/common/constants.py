"""Enums and constants for the HRIS — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Tenancy / Roles ─────────────────────────────────────────────────

class TenantRole(str, enum.Enum):
    admin = "admin"
    hr_manager = "hr_manager"
    hr_staff = "hr_staff"
    supervisor = "supervisor"
    employee = "employee"


# ── Employee / Core HR ──────────────────────────────────────────────

class EmploymentStatus(str, enum.Enum):
    active = "active"
    resigned = "resigned"
    terminated = "terminated"
    retired = "retired"


class EmploymentType(str, enum.Enum):
    regular = "regular"
    probationary = "probationary"
    contractual = "contractual"
    consultant = "consultant"
    intern = "intern"
    project_based = "project_based"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# ── Performance ─────────────────────────────────────────────────────

class KpiAssignmentStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"


# ── Loans ───────────────────────────────────────────────────────────

class LoanType(str, enum.Enum):
    salary = "salary"
    emergency = "emergency"
    housing = "housing"
    educational = "educational"
    calamity = "calamity"


class LoanApplicationStatus(str, enum.Enum):
    draft = "draft"
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"

    @property
    def can_be_edited(self) -> bool:
        return self is LoanApplicationStatus.draft

    @property
    def can_be_cancelled(self) -> bool:
        return self in (LoanApplicationStatus.draft, LoanApplicationStatus.pending)


# ── Document requests ───────────────────────────────────────────────

class DocumentRequestStatus(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    ready = "ready"
    collected = "collected"
    rejected = "rejected"


# ── Preboarding ─────────────────────────────────────────────────────

class PreboardingStatus(str, enum.Enum):
    in_progress = "in_progress"
    completed = "completed"


class PreboardingItemType(str, enum.Enum):
    document_upload = "document_upload"
    form_field = "form_field"
    acknowledgment = "acknowledgment"


class PreboardingItemStatus(str, enum.Enum):
    pending = "pending"
    submitted = "submitted"
    approved = "approved"
    rejected = "rejected"

    def can_transition_to(self, target: PreboardingItemStatus) -> bool:
        return target in _PREBOARDING_ITEM_TRANSITIONS[self]


_PREBOARDING_ITEM_TRANSITIONS: dict[PreboardingItemStatus, tuple[PreboardingItemStatus, ...]] = {
    PreboardingItemStatus.pending: (PreboardingItemStatus.submitted,),
    PreboardingItemStatus.submitted: (
        PreboardingItemStatus.approved,
        PreboardingItemStatus.rejected,
    ),
    PreboardingItemStatus.approved: (),
    PreboardingItemStatus.rejected: (PreboardingItemStatus.submitted,),
}


# ── Training ────────────────────────────────────────────────────────

class TrainingSessionStatus(str, enum.Enum):
    scheduled = "scheduled"
    cancelled = "cancelled"
    completed = "completed"


class EnrollmentStatus(str, enum.Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"
    attended = "attended"
    no_show = "no_show"


class WaitlistStatus(str, enum.Enum):
    waiting = "waiting"
    promoted = "promoted"
    cancelled = "cancelled"


# ── Notifications ───────────────────────────────────────────────────

class NotificationType(str, enum.Enum):
    info = "info"
    action_required = "action_required"
    approval = "approval"
    reminder = "reminder"
    alert = "alert"


# ── Permissions ─────────────────────────────────────────────────────

class Permission(str, enum.Enum):
    employees_view = "employees.view"
    employees_create = "employees.create"
    employees_edit = "employees.edit"
    leaves_view = "leaves.view"
    loans_approve = "loans.approve"
    organization_manage = "organization.manage"
    training_view = "training.view"
    training_manage = "training.manage"
    audit_logs_view = "audit_logs.view"


_ALL_PERMISSIONS = frozenset(Permission)

ROLE_PERMISSIONS: dict[TenantRole, frozenset[Permission]] = {
    TenantRole.admin: _ALL_PERMISSIONS,
    TenantRole.hr_manager: _ALL_PERMISSIONS - {Permission.audit_logs_view},
    TenantRole.hr_staff: frozenset({
        Permission.employees_view,
        Permission.employees_edit,
        Permission.leaves_view,
        Permission.training_view,
        Permission.training_manage,
    }),
    TenantRole.supervisor: frozenset({
        Permission.employees_view,
        Permission.leaves_view,
        Permission.training_view,
    }),
    TenantRole.employee: frozenset({
        Permission.training_view,
    }),
}

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50
