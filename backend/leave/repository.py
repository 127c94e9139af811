"""Leave record store — the only module that talks to the database for leaves."""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Iterable, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import LeaveStatus
from backend.common.exceptions import NotFoundException, OverlapConflictException
from backend.common.filters import apply_filters
from backend.common.pagination import PaginatedResponse, PaginationParams, paginate
from backend.leave.models import LeaveRequest

logger = logging.getLogger(__name__)

# Name of the PostgreSQL exclusion constraint created by the 001 migration
OVERLAP_CONSTRAINT = "ex_leave_requests_no_overlap"

# One lock per requester for check-then-write sequences in this process.
# Entries disappear once no coroutine holds a reference to the lock.
_requester_locks: "weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock]" = (
    weakref.WeakValueDictionary()
)


def _advisory_key(requester_id: uuid.UUID) -> int:
    """Map a UUID onto PostgreSQL's signed 64-bit advisory lock key space."""
    return int.from_bytes(requester_id.bytes[:8], "big", signed=True)


def _is_overlap_violation(exc: IntegrityError) -> bool:
    return OVERLAP_CONSTRAINT in str(exc.orig)


class LeaveStore:
    """Async persistence for ``LeaveRequest`` bound to one session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ── Reads ───────────────────────────────────────────────────────

    async def find_by_id(self, request_id: uuid.UUID) -> Optional[LeaveRequest]:
        return await self.db.get(LeaveRequest, request_id)

    async def get_or_404(self, request_id: uuid.UUID) -> LeaveRequest:
        record = await self.find_by_id(request_id)
        if record is None:
            raise NotFoundException("LeaveRequest", str(request_id))
        return record

    async def find_by_requester(
        self,
        requester_id: uuid.UUID,
        statuses: Optional[Iterable[LeaveStatus]] = None,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> list[LeaveRequest]:
        query = apply_filters(
            select(LeaveRequest),
            LeaveRequest,
            {
                "requester_id": requester_id,
                "status__in": statuses,
                "id__ne": exclude_id,
            },
        ).order_by(LeaveRequest.start_date)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_all(
        self,
        filters: dict[str, Any],
        params: PaginationParams,
        *,
        transform: Optional[Callable[[LeaveRequest], Any]] = None,
    ) -> PaginatedResponse:
        """Filtered, paginated listing. Newest applications first by default."""
        query = apply_filters(select(LeaveRequest), LeaveRequest, filters)
        return await paginate(
            self.db,
            query,
            params,
            model=LeaveRequest,
            default_sort="-applied_at",
            transform=transform,
        )

    # ── Writes ──────────────────────────────────────────────────────

    async def insert(self, record: LeaveRequest) -> uuid.UUID:
        self.db.add(record)
        await self._flush()
        return record.id

    async def update(self, request_id: uuid.UUID, fields: dict[str, Any]) -> LeaveRequest:
        record = await self.get_or_404(request_id)
        for name, value in fields.items():
            setattr(record, name, value)
        record.updated_at = datetime.now(timezone.utc)
        await self._flush()
        return record

    async def delete(self, request_id: uuid.UUID) -> None:
        record = await self.get_or_404(request_id)
        await self.db.delete(record)
        await self._flush()

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            if _is_overlap_violation(exc):
                raise OverlapConflictException() from exc
            raise

    async def _flush(self) -> None:
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            if _is_overlap_violation(exc):
                raise OverlapConflictException() from exc
            raise

    # ── Serialisation ───────────────────────────────────────────────

    @asynccontextmanager
    async def serialize_requester(self, requester_id: uuid.UUID) -> AsyncIterator[None]:
        """Hold the requester's write lock for an overlap check and its commit.

        In-process callers queue on an ``asyncio.Lock``. On PostgreSQL the
        transaction also takes ``pg_advisory_xact_lock`` so other workers
        queue too; that lock is released by the commit or rollback.
        """
        lock = _requester_locks.get(requester_id)
        if lock is None:
            lock = asyncio.Lock()
            _requester_locks[requester_id] = lock

        async with lock:
            if self.db.get_bind().dialect.name == "postgresql":
                await self.db.execute(
                    text("SELECT pg_advisory_xact_lock(:key)"),
                    {"key": _advisory_key(requester_id)},
                )
            logger.debug("Acquired leave write lock for requester %s", requester_id)
            yield
