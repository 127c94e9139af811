"""Common module — shared utilities for the leave engine."""

from backend.common.audit import AuditTrail, create_audit_entry, get_audit_entries
from backend.common.constants import (
    ACTIVE_LEAVE_STATUSES,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    PERMISSIONS,
    LeaveAction,
    LeaveDecision,
    LeaveStatus,
    LeaveType,
    UserRole,
    WorkArrangement,
)
from backend.common.exceptions import (
    AppException,
    ForbiddenException,
    NotFoundException,
    OverlapConflictException,
    StateConflictException,
    ValidationException,
    register_exception_handlers,
)
from backend.common.filters import apply_filters
from backend.common.pagination import (
    PaginatedResponse,
    PaginationMeta,
    PaginationParams,
    paginate,
)

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    "get_audit_entries",
    # Constants / Enums
    "ACTIVE_LEAVE_STATUSES",
    "LeaveAction",
    "LeaveDecision",
    "LeaveStatus",
    "LeaveType",
    "UserRole",
    "WorkArrangement",
    "PERMISSIONS",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AppException",
    "ForbiddenException",
    "NotFoundException",
    "OverlapConflictException",
    "StateConflictException",
    "ValidationException",
    "register_exception_handlers",
    # Filters
    "apply_filters",
    # Pagination
    "PaginatedResponse",
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
