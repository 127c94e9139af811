"""Leave request state machine.

    pending ──approve──▶ approved
       │ ────reject───▶ rejected
       └─────cancel───▶ cancelled

Only ``pending`` has outgoing transitions; the other three states are
terminal. Nothing transitions on its own (no expiry).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from backend.common.constants import LeaveAction, LeaveStatus
from backend.common.exceptions import StateConflictException
from backend.leave.models import LeaveRequest

TRANSITIONS: dict[LeaveStatus, frozenset[LeaveStatus]] = {
    LeaveStatus.pending: frozenset(
        {LeaveStatus.approved, LeaveStatus.rejected, LeaveStatus.cancelled}
    ),
    LeaveStatus.approved: frozenset(),
    LeaveStatus.rejected: frozenset(),
    LeaveStatus.cancelled: frozenset(),
}

_ACTION_VERBS: dict[LeaveAction, str] = {
    LeaveAction.edit: "update",
    LeaveAction.decide: "decide",
    LeaveAction.cancel: "cancel",
    LeaveAction.delete: "delete",
}


def can_transition(current: LeaveStatus, target: LeaveStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_mutable(record: LeaveRequest, action: LeaveAction) -> None:
    """Edits, decisions, cancellations and deletes all require ``pending``."""
    if record.status != LeaveStatus.pending:
        raise StateConflictException(
            "leave request", record.status.value, _ACTION_VERBS.get(action, action.value),
        )


def transition(
    record: LeaveRequest,
    target: LeaveStatus,
    actor_id: uuid.UUID,
    *,
    reason: Optional[str] = None,
    now: Optional[datetime] = None,
) -> LeaveStatus:
    """Move *record* to *target* and stamp the attribution fields.

    Returns the previous status. Raises ``StateConflictException`` without
    touching the record if the move is not allowed.
    """
    previous = record.status
    if not can_transition(previous, target):
        raise StateConflictException("leave request", previous.value, f"move to {target.value}")

    now = now or datetime.now(timezone.utc)
    if target in (LeaveStatus.approved, LeaveStatus.rejected):
        record.decided_at = now
        record.decided_by = actor_id
        if target == LeaveStatus.rejected:
            record.rejection_reason = reason
    elif target == LeaveStatus.cancelled:
        record.cancelled_at = now
        record.cancelled_by = actor_id
        record.cancellation_reason = reason

    record.status = target
    record.updated_at = now
    return previous
