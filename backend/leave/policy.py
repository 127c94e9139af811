"""Who may do what to a leave request, and when.

``can_mutate`` is the single ownership-or-admin predicate used by every
write path; ``guard`` combines it with the lifecycle check in the order the
API reports errors.
"""

from __future__ import annotations

from backend.auth.schemas import Actor
from backend.common.constants import LeaveAction
from backend.common.exceptions import ForbiddenException
from backend.leave import lifecycle
from backend.leave.models import LeaveRequest

_FORBIDDEN_MESSAGES: dict[LeaveAction, str] = {
    LeaveAction.read: "Not authorized to view this leave request.",
    LeaveAction.edit: "Not authorized to update this leave request.",
    LeaveAction.decide: "Only an administrator can approve or reject leave requests.",
    LeaveAction.cancel: "Not authorized to cancel this leave request.",
    LeaveAction.delete: "Not authorized to delete this leave request.",
}


def can_mutate(actor: Actor, record: LeaveRequest, action: LeaveAction) -> bool:
    """Ownership-or-admin rule for one action on one record (status not considered)."""
    if action == LeaveAction.decide:
        return actor.has_permission("leave:decide")

    is_owner = record.requester_id == actor.id
    if action == LeaveAction.read:
        return is_owner or actor.has_permission("leave:read_all")

    # edit / cancel / delete
    return (
        (is_owner and actor.has_permission("leave:manage_own"))
        or actor.has_permission("leave:manage_all")
    )


def guard(actor: Actor, record: LeaveRequest, action: LeaveAction) -> None:
    """Raise ``ForbiddenException`` / ``StateConflictException`` if *action* is not allowed.

    Decisions are role-gated before anything else. Owner actions report a
    processed request as a state conflict before checking ownership.
    """
    if action == LeaveAction.read:
        if not can_mutate(actor, record, action):
            raise ForbiddenException(_FORBIDDEN_MESSAGES[action])
        return

    if action == LeaveAction.decide:
        if not can_mutate(actor, record, action):
            raise ForbiddenException(_FORBIDDEN_MESSAGES[action])
        lifecycle.ensure_mutable(record, action)
        return

    lifecycle.ensure_mutable(record, action)
    if not can_mutate(actor, record, action):
        raise ForbiddenException(_FORBIDDEN_MESSAGES[action])
