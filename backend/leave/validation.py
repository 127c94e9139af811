"""Per-operation validation for leave requests.

Each ``validate_*`` function returns a list of field-level violations and
never raises; ``raise_for_violations`` turns a non-empty list into a single
``ValidationException`` carrying every problem at once.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Optional

from backend.common.constants import (
    NOTES_MAX_LENGTH,
    REASON_MAX_LENGTH,
    REASON_MIN_LENGTH,
    REJECTION_REASON_MAX_LENGTH,
    LeaveDecision,
    WorkArrangement,
)
from backend.common.exceptions import ValidationException
from backend.leave.models import LeaveRequest
from backend.leave.schemas import (
    LeaveCancelRequest,
    LeaveDecisionRequest,
    LeaveRequestCreate,
)


@dataclass(frozen=True)
class FieldViolation:
    field: str
    message: str


def raise_for_violations(violations: Iterable[FieldViolation]) -> None:
    errors: dict[str, list[str]] = {}
    for v in violations:
        errors.setdefault(v.field, []).append(v.message)
    if errors:
        raise ValidationException(errors)


# ── Field rules ─────────────────────────────────────────────────────

def _check_reason(reason: Optional[str]) -> list[FieldViolation]:
    text = (reason or "").strip()
    if not (REASON_MIN_LENGTH <= len(text) <= REASON_MAX_LENGTH):
        return [FieldViolation(
            "reason",
            f"Reason is required and must be between "
            f"{REASON_MIN_LENGTH}-{REASON_MAX_LENGTH} characters.",
        )]
    return []


def _check_dates(start: date, end: date) -> list[FieldViolation]:
    if end < start:
        return [FieldViolation("end_date", "end_date must be on or after start_date.")]
    return []


def _check_coverage(
    arrangement: WorkArrangement,
    covering_employee_id: Optional[uuid.UUID],
    requester_id: uuid.UUID,
) -> list[FieldViolation]:
    if covering_employee_id is None:
        return []
    if arrangement != WorkArrangement.colleague_coverage:
        return [FieldViolation(
            "covering_employee_id",
            "A covering employee can only be set with colleague_coverage.",
        )]
    if covering_employee_id == requester_id:
        return [FieldViolation(
            "covering_employee_id",
            "You cannot cover your own leave.",
        )]
    return []


def _check_notes(notes: Optional[str]) -> list[FieldViolation]:
    if notes is not None and len(notes.strip()) > NOTES_MAX_LENGTH:
        return [FieldViolation(
            "notes", f"Notes cannot exceed {NOTES_MAX_LENGTH} characters.",
        )]
    return []


# ── Operation validators ────────────────────────────────────────────

def validate_create(
    data: LeaveRequestCreate,
    requester_id: uuid.UUID,
) -> list[FieldViolation]:
    return [
        *_check_reason(data.reason),
        *_check_dates(data.start_date, data.end_date),
        *_check_coverage(data.work_arrangement, data.covering_employee_id, requester_id),
        *_check_notes(data.notes),
    ]


def validate_update(
    record: LeaveRequest,
    changes: dict[str, Any],
) -> list[FieldViolation]:
    """Validate *changes* against the record they would produce.

    Explicit nulls are rejected for required fields; everything else is
    checked on the merged values so a lone ``end_date`` is still compared
    against the stored ``start_date``.
    """
    violations: list[FieldViolation] = []
    for required in ("leave_type", "start_date", "end_date", "reason", "work_arrangement"):
        if required in changes and changes[required] is None:
            violations.append(FieldViolation(required, f"{required} cannot be null."))
    if violations:
        return violations

    if "reason" in changes:
        violations += _check_reason(changes["reason"])
    if "start_date" in changes or "end_date" in changes:
        violations += _check_dates(
            changes.get("start_date", record.start_date),
            changes.get("end_date", record.end_date),
        )
    if "work_arrangement" in changes or "covering_employee_id" in changes:
        violations += _check_coverage(
            changes.get("work_arrangement", record.work_arrangement),
            changes.get("covering_employee_id", record.covering_employee_id),
            record.requester_id,
        )
    if "notes" in changes:
        violations += _check_notes(changes["notes"])
    return violations


def validate_decision(data: LeaveDecisionRequest) -> list[FieldViolation]:
    reason = (data.rejection_reason or "").strip()
    if data.status == LeaveDecision.rejected and not reason:
        return [FieldViolation(
            "rejection_reason", "A rejection reason is required when rejecting.",
        )]
    if len(reason) > REJECTION_REASON_MAX_LENGTH:
        return [FieldViolation(
            "rejection_reason",
            f"Rejection reason must be less than {REJECTION_REASON_MAX_LENGTH} characters.",
        )]
    return []


def validate_cancellation(data: LeaveCancelRequest) -> list[FieldViolation]:
    if data.reason is not None and len(data.reason.strip()) > REASON_MAX_LENGTH:
        return [FieldViolation(
            "reason", f"Reason must be less than {REASON_MAX_LENGTH} characters.",
        )]
    return []
