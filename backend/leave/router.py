"""Leave router — apply, list, edit, decide, cancel, delete, statistics.

All endpoints require a bearer token. Ownership and the ``leave:decide``
permission are checked by the service once the request has been loaded.
"""


import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth.dependencies import get_current_actor, require_permission
from backend.auth.schemas import Actor
from backend.common.constants import LeaveStatus, LeaveType
from backend.common.pagination import PaginatedResponse, PaginationParams
from backend.database import get_db
from backend.leave.schemas import (
    LeaveAuditEntryOut,
    LeaveCancelRequest,
    LeaveDecisionRequest,
    LeaveRequestCreate,
    LeaveRequestOut,
    LeaveRequestUpdate,
    LeaveStatsOut,
)
from backend.leave.service import LeaveService

router = APIRouter(prefix="", tags=["leave"])


# ── POST / ──────────────────────────────────────────────────────────

@router.post("", response_model=LeaveRequestOut, status_code=201)
async def apply_leave(
    body: LeaveRequestCreate,
    actor: Actor = Depends(require_permission("leave:request")),
    db: AsyncSession = Depends(get_db),
):
    """Apply for leave. Validates the reason, the dates and overlaps."""
    return await LeaveService.create_leave(db, actor, body)


# ── GET / ───────────────────────────────────────────────────────────

@router.get("", response_model=PaginatedResponse[LeaveRequestOut])
async def list_leaves(
    requester_id: Optional[uuid.UUID] = Query(None),
    status: Optional[LeaveStatus] = Query(None),
    leave_type: Optional[LeaveType] = Query(None),
    pagination: PaginationParams = Depends(),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """List leave requests. Employees only ever see their own."""
    return await LeaveService.list_leaves(
        db,
        actor,
        params=pagination,
        requester_id=requester_id,
        status=status,
        leave_type=leave_type,
    )


# ── GET /stats ──────────────────────────────────────────────────────

@router.get("/stats", response_model=LeaveStatsOut)
async def leave_stats(
    requester_id: Optional[uuid.UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Summary counts and day totals. The window applies only when both bounds are set."""
    return await LeaveService.get_stats(
        db,
        actor=actor,
        requester_id=requester_id,
        start_date=start_date,
        end_date=end_date,
    )


# ── GET /{id} ───────────────────────────────────────────────────────

@router.get("/{request_id}", response_model=LeaveRequestOut)
async def get_leave(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    return await LeaveService.get_leave(db, request_id, actor)


# ── GET /{id}/history ───────────────────────────────────────────────

@router.get("/{request_id}/history", response_model=list[LeaveAuditEntryOut])
async def leave_history(
    request_id: uuid.UUID,
    actor: Actor = Depends(require_permission("audit:read")),
    db: AsyncSession = Depends(get_db),
):
    """Audit trail of a leave request (system administrators)."""
    return await LeaveService.get_history(db, request_id)


# ── PUT /{id} ───────────────────────────────────────────────────────

@router.put("/{request_id}", response_model=LeaveRequestOut)
async def update_leave(
    request_id: uuid.UUID,
    body: LeaveRequestUpdate,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Edit a pending leave request (owner or administrator)."""
    return await LeaveService.update_leave(db, request_id, actor, body)


# ── PUT /{id}/status ────────────────────────────────────────────────

@router.put("/{request_id}/status", response_model=LeaveRequestOut)
async def decide_leave(
    request_id: uuid.UUID,
    body: LeaveDecisionRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Approve or reject a pending leave request."""
    return await LeaveService.decide_leave(db, request_id, actor, body)


# ── POST /{id}/cancel ───────────────────────────────────────────────

@router.post("/{request_id}/cancel", response_model=LeaveRequestOut)
async def cancel_leave(
    request_id: uuid.UUID,
    body: Optional[LeaveCancelRequest] = None,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw a pending leave request."""
    return await LeaveService.cancel_leave(
        db, request_id, actor, body or LeaveCancelRequest(),
    )


# ── DELETE /{id} ────────────────────────────────────────────────────

@router.delete("/{request_id}", status_code=204)
async def delete_leave(
    request_id: uuid.UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Delete a pending leave request."""
    await LeaveService.delete_leave(db, request_id, actor)
    return Response(status_code=204)
