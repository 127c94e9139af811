"""Enums and constants for the leave engine — matching PostgreSQL ENUM types."""

from __future__ import annotations

import enum


# ── Auth / Roles ────────────────────────────────────────────────────

class UserRole(str, enum.Enum):
    employee = "employee"
    hr_admin = "hr_admin"
    system_admin = "system_admin"


# ── Leave ───────────────────────────────────────────────────────────

class LeaveType(str, enum.Enum):
    annual = "annual"
    sick = "sick"
    maternity = "maternity"
    paternity = "paternity"
    emergency = "emergency"
    other = "other"


class LeaveStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class LeaveDecision(str, enum.Enum):
    """Subset of LeaveStatus a decision-maker may choose."""

    approved = "approved"
    rejected = "rejected"


class WorkArrangement(str, enum.Enum):
    no_coverage = "no_coverage"
    colleague_coverage = "colleague_coverage"
    postponed = "postponed"


class LeaveAction(str, enum.Enum):
    """Mutations guarded by the leave policy."""

    read = "read"
    edit = "edit"
    decide = "decide"
    cancel = "cancel"
    delete = "delete"


# Statuses that occupy calendar days for overlap purposes
ACTIVE_LEAVE_STATUSES: frozenset[LeaveStatus] = frozenset(
    {LeaveStatus.pending, LeaveStatus.approved}
)


# ── Role-based permissions ──────────────────────────────────────────

PERMISSIONS: dict[UserRole, list[str]] = {
    UserRole.employee: [
        "leave:request",
        "leave:read_own",
        "leave:manage_own",
        "leave:stats_own",
    ],
    UserRole.hr_admin: [
        "leave:request",
        "leave:read_own",
        "leave:manage_own",
        "leave:stats_own",
        "leave:read_all",
        "leave:manage_all",
        "leave:decide",
        "leave:stats_all",
    ],
    UserRole.system_admin: [
        "leave:request",
        "leave:read_own",
        "leave:manage_own",
        "leave:stats_own",
        "leave:read_all",
        "leave:manage_all",
        "leave:decide",
        "leave:stats_all",
        "audit:read",
    ],
}

# ── Validation limits ───────────────────────────────────────────────

REASON_MIN_LENGTH = 10
REASON_MAX_LENGTH = 500
REJECTION_REASON_MAX_LENGTH = 500
NOTES_MAX_LENGTH = 1000

# ── Misc constants ──────────────────────────────────────────────────

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10
