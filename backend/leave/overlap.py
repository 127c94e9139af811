"""Overlap detection between a candidate range and a requester's active leaves."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Optional

from backend.common.constants import ACTIVE_LEAVE_STATUSES
from backend.leave.calendar import intervals_overlap
from backend.leave.models import LeaveRequest
from backend.leave.repository import LeaveStore


async def find_overlap(
    store: LeaveStore,
    requester_id: uuid.UUID,
    start: date,
    end: date,
    exclude_id: Optional[uuid.UUID] = None,
) -> Optional[LeaveRequest]:
    """Return the first pending/approved request of *requester_id* sharing a day
    with ``[start, end]``, ignoring *exclude_id* (the record being edited).

    Rejected and cancelled requests have released their days and never match.
    """
    candidates = await store.find_by_requester(
        requester_id, ACTIVE_LEAVE_STATUSES, exclude_id=exclude_id,
    )
    for existing in candidates:
        if intervals_overlap(existing.start_date, existing.end_date, start, end):
            return existing
    return None


async def has_overlap(
    store: LeaveStore,
    requester_id: uuid.UUID,
    start: date,
    end: date,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    return await find_overlap(store, requester_id, start, end, exclude_id) is not None
