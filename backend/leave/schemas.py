"""Leave Pydantic v2 schemas — request / response shapes.

Naming conventions:
  - *Create / *Update / *Request  → request bodies (write)
  - *Out                          → response bodies (read)

Request schemas only coerce types (enums, UUIDs, dates). Range and
cross-field rules live in ``backend.leave.validation`` so they apply to
every caller of the service, not just HTTP clients.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.common.constants import (
    LeaveDecision,
    LeaveStatus,
    LeaveType,
    WorkArrangement,
)


def _strip_time(value: Any) -> Any:
    """Accept ISO datetimes for date fields; the time-of-day is ignored."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
        except ValueError:
            return value
    return value


# ═════════════════════════════════════════════════════════════════════
# Embedded / shared
# ═════════════════════════════════════════════════════════════════════


class EmergencyContact(BaseModel):
    """Who to reach while the employee is away."""

    model_config = ConfigDict(from_attributes=True)

    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    relationship: Optional[str] = Field(None, max_length=50)


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Create / Update
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestCreate(BaseModel):
    """Payload for applying a leave request.

    ``total_days`` is always derived from the dates; a client-supplied value
    is ignored.
    """

    leave_type: LeaveType
    start_date: date = Field(..., description="Leave start date (inclusive)")
    end_date: date = Field(..., description="Leave end date (inclusive)")
    reason: str = Field(..., description="Reason for leave (10–500 characters)")
    emergency_contact: Optional[EmergencyContact] = None
    work_arrangement: WorkArrangement = WorkArrangement.no_coverage
    covering_employee_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def ignore_time_of_day(cls, v: Any) -> Any:
        return _strip_time(v)


class LeaveRequestUpdate(BaseModel):
    """Partial edit of a pending leave request. Unset fields are left alone."""

    leave_type: Optional[LeaveType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    emergency_contact: Optional[EmergencyContact] = None
    work_arrangement: Optional[WorkArrangement] = None
    covering_employee_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def ignore_time_of_day(cls, v: Any) -> Any:
        return _strip_time(v)

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually sent, with nested models as dicts."""
        return self.model_dump(exclude_unset=True)


# ═════════════════════════════════════════════════════════════════════
# Leave Decide / Cancel
# ═════════════════════════════════════════════════════════════════════


class LeaveDecisionRequest(BaseModel):
    """Payload for approving or rejecting a pending leave request."""

    status: LeaveDecision
    rejection_reason: Optional[str] = None


class LeaveCancelRequest(BaseModel):
    """Payload for withdrawing a pending leave request."""

    reason: Optional[str] = None


# ═════════════════════════════════════════════════════════════════════
# Leave Request — Response
# ═════════════════════════════════════════════════════════════════════


class LeaveRequestOut(BaseModel):
    """Full leave request response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    requester_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    total_days: int
    reason: str
    status: LeaveStatus
    applied_at: datetime
    decided_at: Optional[datetime] = None
    decided_by: Optional[uuid.UUID] = None
    rejection_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by: Optional[uuid.UUID] = None
    cancellation_reason: Optional[str] = None
    work_arrangement: WorkArrangement = WorkArrangement.no_coverage
    covering_employee_id: Optional[uuid.UUID] = None
    emergency_contact: Optional[EmergencyContact] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ═════════════════════════════════════════════════════════════════════
# Leave Statistics
# ═════════════════════════════════════════════════════════════════════


class LeaveStatsOut(BaseModel):
    """Summary counts and day totals. All zeros when nothing matches."""

    total_requests: int = 0
    approved: int = 0
    pending: int = 0
    rejected: int = 0
    cancelled: int = 0
    total_days: int = 0
    approved_days: int = 0
    pending_days: int = 0


# ═════════════════════════════════════════════════════════════════════
# Audit history
# ═════════════════════════════════════════════════════════════════════


class LeaveAuditEntryOut(BaseModel):
    """One lifecycle event of a leave request."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    actor_id: Optional[uuid.UUID] = None
    action: str
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    created_at: datetime
