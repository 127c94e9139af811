"""Leave service layer — the leave request lifecycle engine.

Business logic:
  - Apply for leave with inclusive day counting and overlap detection
  - Edit pending requests (dates re-checked against the requester's other leaves)
  - Approve / reject by administrators, withdraw by the requester
  - Listing and summary statistics
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Optional

from pydantic import TypeAdapter
from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.schemas import Actor
from backend.common.audit import create_audit_entry, get_audit_entries
from backend.common.constants import (
    LeaveAction,
    LeaveStatus,
    LeaveType,
    WorkArrangement,
)
from backend.common.exceptions import NotFoundException, OverlapConflictException
from backend.common.filters import apply_filters
from backend.common.pagination import PaginatedResponse, PaginationParams
from backend.leave import lifecycle
from backend.leave.calendar import inclusive_day_span
from backend.leave.models import LeaveRequest
from backend.leave.overlap import find_overlap
from backend.leave.policy import guard
from backend.leave.repository import LeaveStore
from backend.leave.schemas import (
    LeaveAuditEntryOut,
    LeaveCancelRequest,
    LeaveDecisionRequest,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveRequestUpdate,
    LeaveStatsOut,
)
from backend.leave.validation import (
    raise_for_violations,
    validate_cancellation,
    validate_create,
    validate_decision,
    validate_update,
)

logger = logging.getLogger(__name__)

_json_values = TypeAdapter(dict[str, Any])

# Columns captured in the audit trail for create / update / delete
_AUDITED_FIELDS = (
    "leave_type", "start_date", "end_date", "total_days", "reason", "status",
    "work_arrangement", "covering_employee_id", "emergency_contact", "notes",
)


def _snapshot(values: dict[str, Any]) -> dict[str, Any]:
    """JSON-safe copy of *values* for the audit trail."""
    return _json_values.dump_python(values, mode="json")


def _record_snapshot(record: LeaveRequest) -> dict[str, Any]:
    return _snapshot({name: getattr(record, name) for name in _AUDITED_FIELDS})


# ═════════════════════════════════════════════════════════════════════
# LeaveService
# ═════════════════════════════════════════════════════════════════════


class LeaveService:
    """Async leave operations: apply, edit, decide, cancel, delete, report."""

    # ─────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    def _scope_requester(
        actor: Actor,
        requester_id: Optional[uuid.UUID],
        permission: str,
    ) -> Optional[uuid.UUID]:
        """Actors without *permission* only ever see their own requests."""
        if actor.has_permission(permission):
            return requester_id
        return actor.id

    @staticmethod
    async def _ensure_no_overlap(
        store: LeaveStore,
        requester_id: uuid.UUID,
        start: date,
        end: date,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        existing = await find_overlap(store, requester_id, start, end, exclude_id)
        if existing is not None:
            logger.warning(
                "Rejected leave dates %s..%s for requester %s: overlaps %s",
                start, end, requester_id, existing.id,
            )
            raise OverlapConflictException(existing.id)

    # ─────────────────────────────────────────────────────────────────
    # Apply
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def create_leave(
        db: AsyncSession,
        actor: Actor,
        data: LeaveRequestCreate,
    ) -> LeaveRequestOut:
        """Apply for leave on behalf of *actor*.

        The overlap check, insert and commit run under the requester's
        write lock so two concurrent applications cannot both succeed.
        """
        raise_for_violations(validate_create(data, actor.id))
        total_days = inclusive_day_span(data.start_date, data.end_date)

        store = LeaveStore(db)
        async with store.serialize_requester(actor.id):
            await LeaveService._ensure_no_overlap(
                store, actor.id, data.start_date, data.end_date,
            )

            leave_req = LeaveRequest(
                requester_id=actor.id,
                leave_type=data.leave_type,
                start_date=data.start_date,
                end_date=data.end_date,
                total_days=total_days,
                reason=data.reason.strip(),
                status=LeaveStatus.pending,
                work_arrangement=data.work_arrangement,
                covering_employee_id=data.covering_employee_id,
                emergency_contact=(
                    data.emergency_contact.model_dump()
                    if data.emergency_contact else None
                ),
                notes=data.notes.strip() if data.notes else None,
            )
            await store.insert(leave_req)

            await create_audit_entry(
                db,
                action="create",
                entity_type="leave_request",
                entity_id=leave_req.id,
                actor_id=actor.id,
                new_values=_record_snapshot(leave_req),
            )
            await store.commit()

        logger.info(
            "Leave request %s applied by %s (%s to %s, %d days)",
            leave_req.id, actor.id, leave_req.start_date, leave_req.end_date, total_days,
        )
        return LeaveRequestOut.model_validate(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Read
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Actor,
    ) -> LeaveRequestOut:
        leave_req = await LeaveStore(db).get_or_404(request_id)
        guard(actor, leave_req, LeaveAction.read)
        return LeaveRequestOut.model_validate(leave_req)

    @staticmethod
    async def get_history(
        db: AsyncSession,
        request_id: uuid.UUID,
    ) -> list[LeaveAuditEntryOut]:
        """Audit events of one request, oldest first. Survives deletion."""
        entries = await get_audit_entries(db, "leave_request", request_id)
        if not entries:
            raise NotFoundException("LeaveRequest", str(request_id))
        return [LeaveAuditEntryOut.model_validate(e) for e in entries]

    @staticmethod
    async def list_leaves(
        db: AsyncSession,
        actor: Actor,
        *,
        params: PaginationParams,
        requester_id: Optional[uuid.UUID] = None,
        status: Optional[LeaveStatus] = None,
        leave_type: Optional[LeaveType] = None,
    ) -> PaginatedResponse:
        """Paginated listing, newest applications first."""
        filters = {
            "requester_id": LeaveService._scope_requester(
                actor, requester_id, "leave:read_all",
            ),
            "status": status,
            "leave_type": leave_type,
        }
        return await LeaveStore(db).find_all(
            filters, params, transform=LeaveRequestOut.model_validate,
        )

    # ─────────────────────────────────────────────────────────────────
    # Edit
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def update_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Actor,
        data: LeaveRequestUpdate,
    ) -> LeaveRequestOut:
        """Partially edit a pending request.

        Every rule is checked before the record is touched, so a rejected
        edit leaves it exactly as it was.
        """
        store = LeaveStore(db)
        leave_req = await store.get_or_404(request_id)
        guard(actor, leave_req, LeaveAction.edit)

        changes = data.changes()
        if (
            changes.get("work_arrangement") not in (None, WorkArrangement.colleague_coverage)
            and "covering_employee_id" not in changes
        ):
            changes["covering_employee_id"] = None
        raise_for_violations(validate_update(leave_req, changes))

        if isinstance(changes.get("reason"), str):
            changes["reason"] = changes["reason"].strip()
        if isinstance(changes.get("notes"), str):
            changes["notes"] = changes["notes"].strip()

        old_values = _snapshot({name: getattr(leave_req, name) for name in changes})
        dates_changed = "start_date" in changes or "end_date" in changes

        if dates_changed:
            start = changes.get("start_date", leave_req.start_date)
            end = changes.get("end_date", leave_req.end_date)
            changes["total_days"] = inclusive_day_span(start, end)

            async with store.serialize_requester(leave_req.requester_id):
                await LeaveService._ensure_no_overlap(
                    store, leave_req.requester_id, start, end, exclude_id=leave_req.id,
                )
                leave_req = await store.update(leave_req.id, changes)
                await LeaveService._audit_update(db, leave_req, actor, old_values, changes)
                await store.commit()
        else:
            leave_req = await store.update(leave_req.id, changes)
            await LeaveService._audit_update(db, leave_req, actor, old_values, changes)

        logger.info(
            "Leave request %s updated by %s (%s)",
            leave_req.id, actor.id, ", ".join(sorted(changes)),
        )
        return LeaveRequestOut.model_validate(leave_req)

    @staticmethod
    async def _audit_update(
        db: AsyncSession,
        leave_req: LeaveRequest,
        actor: Actor,
        old_values: dict[str, Any],
        changes: dict[str, Any],
    ) -> None:
        await create_audit_entry(
            db,
            action="update",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor.id,
            old_values=old_values,
            new_values=_snapshot(changes),
        )

    # ─────────────────────────────────────────────────────────────────
    # Approve / Reject
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def decide_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Actor,
        data: LeaveDecisionRequest,
    ) -> LeaveRequestOut:
        """Approve or reject a pending request. Administrators only."""
        store = LeaveStore(db)
        leave_req = await store.get_or_404(request_id)
        guard(actor, leave_req, LeaveAction.decide)
        raise_for_violations(validate_decision(data))

        target = LeaveStatus(data.status.value)
        reason = (data.rejection_reason or "").strip() or None
        old_status = lifecycle.transition(
            leave_req,
            target,
            actor.id,
            reason=reason if target == LeaveStatus.rejected else None,
        )
        await db.flush()

        new_values: dict[str, Any] = {"status": target.value}
        if target == LeaveStatus.rejected:
            new_values["rejection_reason"] = reason
        await create_audit_entry(
            db,
            action="approve" if target == LeaveStatus.approved else "reject",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor.id,
            old_values={"status": old_status.value},
            new_values=new_values,
        )

        logger.info("Leave request %s %s by %s", leave_req.id, target.value, actor.id)
        return LeaveRequestOut.model_validate(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Cancel
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def cancel_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Actor,
        data: LeaveCancelRequest,
    ) -> LeaveRequestOut:
        """Withdraw a pending request. Its days stop blocking new applications."""
        store = LeaveStore(db)
        leave_req = await store.get_or_404(request_id)
        guard(actor, leave_req, LeaveAction.cancel)
        raise_for_violations(validate_cancellation(data))

        reason = (data.reason or "").strip() or None
        old_status = lifecycle.transition(
            leave_req, LeaveStatus.cancelled, actor.id, reason=reason,
        )
        await db.flush()

        await create_audit_entry(
            db,
            action="cancel",
            entity_type="leave_request",
            entity_id=leave_req.id,
            actor_id=actor.id,
            old_values={"status": old_status.value},
            new_values={"status": LeaveStatus.cancelled.value, "reason": reason},
        )

        logger.info("Leave request %s cancelled by %s", leave_req.id, actor.id)
        return LeaveRequestOut.model_validate(leave_req)

    # ─────────────────────────────────────────────────────────────────
    # Delete
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def delete_leave(
        db: AsyncSession,
        request_id: uuid.UUID,
        actor: Actor,
    ) -> None:
        store = LeaveStore(db)
        leave_req = await store.get_or_404(request_id)
        guard(actor, leave_req, LeaveAction.delete)

        old_values = _record_snapshot(leave_req)
        await store.delete(leave_req.id)

        await create_audit_entry(
            db,
            action="delete",
            entity_type="leave_request",
            entity_id=request_id,
            actor_id=actor.id,
            old_values=old_values,
        )

        logger.info("Leave request %s deleted by %s", request_id, actor.id)

    # ─────────────────────────────────────────────────────────────────
    # Statistics
    # ─────────────────────────────────────────────────────────────────

    @staticmethod
    async def get_stats(
        db: AsyncSession,
        *,
        actor: Optional[Actor] = None,
        requester_id: Optional[uuid.UUID] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> LeaveStatsOut:
        """Counts and day totals by status.

        The date window applies only when both bounds are given and keeps
        requests lying entirely inside it. When *actor* is given, actors
        without ``leave:stats_all`` are limited to their own requests.
        """
        if actor is not None:
            requester_id = LeaveService._scope_requester(
                actor, requester_id, "leave:stats_all",
            )

        def _count(status: LeaveStatus):
            return func.count(case((LeaveRequest.status == status, 1)))

        def _days(status: LeaveStatus):
            return func.coalesce(
                func.sum(case((LeaveRequest.status == status, LeaveRequest.total_days), else_=0)),
                0,
            )

        query = select(
            func.count(LeaveRequest.id).label("total_requests"),
            _count(LeaveStatus.approved).label("approved"),
            _count(LeaveStatus.pending).label("pending"),
            _count(LeaveStatus.rejected).label("rejected"),
            _count(LeaveStatus.cancelled).label("cancelled"),
            func.coalesce(func.sum(LeaveRequest.total_days), 0).label("total_days"),
            _days(LeaveStatus.approved).label("approved_days"),
            _days(LeaveStatus.pending).label("pending_days"),
        )

        filters: dict[str, Any] = {"requester_id": requester_id}
        if start_date is not None and end_date is not None:
            filters["start_date__from"] = start_date
            filters["end_date__to"] = end_date
        query = apply_filters(query, LeaveRequest, filters)

        row = (await db.execute(query)).one()
        return LeaveStatsOut(**{key: int(value or 0) for key, value in row._mapping.items()})
