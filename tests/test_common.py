"""Tests for common utilities — filters, pagination, exceptions, logging."""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.common.constants import LeaveStatus
from backend.common.exceptions import (
    NotFoundException,
    OverlapConflictException,
    StateConflictException,
    register_exception_handlers,
)
from backend.common.filters import _get_column, apply_filters
from backend.common.logging_config import LOG_FORMAT, setup_logging
from backend.common.pagination import PaginationParams, paginate
from backend.leave.models import LeaveRequest
from tests.conftest import _make_leave_request


# ── Helpers ─────────────────────────────────────────────────────────


async def _seed(db: AsyncSession, requester_id: uuid.UUID, count: int) -> list[LeaveRequest]:
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    rows = []
    for i in range(count):
        row = LeaveRequest(**_make_leave_request(
            requester_id=requester_id,
            start_date=date(2024, 3, 1) + timedelta(days=5 * i),
            end_date=date(2024, 3, 2) + timedelta(days=5 * i),
            status=LeaveStatus.approved if i % 2 else LeaveStatus.pending,
            applied_at=base + timedelta(hours=i),
        ))
        db.add(row)
        rows.append(row)
    await db.flush()
    return rows


def _params(page: int = 1, page_size: int = 10, sort: str | None = None) -> PaginationParams:
    return PaginationParams(page=page, page_size=page_size, sort=sort)


# ═════════════════════════════════════════════════════════════════════
# FILTER TESTS
# ═════════════════════════════════════════════════════════════════════


class TestApplyFilters:
    """Tests for apply_filters utility."""

    async def test_filter_by_equality(self, db: AsyncSession):
        requester = uuid.uuid4()
        await _seed(db, requester, 2)
        await _seed(db, uuid.uuid4(), 1)

        q = apply_filters(select(LeaveRequest), LeaveRequest, {"requester_id": requester})
        rows = (await db.execute(q)).scalars().all()
        assert len(rows) == 2

    async def test_filter_none_values_skipped(self, db: AsyncSession):
        await _seed(db, uuid.uuid4(), 3)

        q = apply_filters(select(LeaveRequest), LeaveRequest, {"status": None})
        rows = (await db.execute(q)).scalars().all()
        assert len(rows) == 3

    async def test_filter_by_from_to_range(self, db: AsyncSession):
        await _seed(db, uuid.uuid4(), 4)

        q = apply_filters(
            select(LeaveRequest),
            LeaveRequest,
            {"start_date__from": date(2024, 3, 6), "end_date__to": date(2024, 3, 12)},
        )
        rows = (await db.execute(q)).scalars().all()
        assert sorted(r.start_date for r in rows) == [date(2024, 3, 6), date(2024, 3, 11)]

    async def test_filter_by_in_and_ne(self, db: AsyncSession):
        rows = await _seed(db, uuid.uuid4(), 4)

        q = apply_filters(
            select(LeaveRequest),
            LeaveRequest,
            {"status__in": [LeaveStatus.pending], "id__ne": rows[0].id},
        )
        found = (await db.execute(q)).scalars().all()
        assert [r.id for r in found] == [rows[2].id]

    async def test_filter_nonexistent_column_ignored(self, db: AsyncSession):
        await _seed(db, uuid.uuid4(), 2)

        q = apply_filters(select(LeaveRequest), LeaveRequest, {"no_such_column": "x"})
        rows = (await db.execute(q)).scalars().all()
        assert len(rows) == 2


class TestGetColumn:

    def test_existing_and_missing(self):
        assert _get_column(LeaveRequest, "start_date") is LeaveRequest.start_date
        assert _get_column(LeaveRequest, "bogus") is None


# ═════════════════════════════════════════════════════════════════════
# PAGINATION TESTS
# ═════════════════════════════════════════════════════════════════════


class TestPagination:

    async def test_paginate_with_sort(self, db: AsyncSession):
        await _seed(db, uuid.uuid4(), 3)

        result = await paginate(
            db, select(LeaveRequest), _params(sort="-start_date"), model=LeaveRequest,
        )
        assert [r.start_date for r in result.data] == [
            date(2024, 3, 11), date(2024, 3, 6), date(2024, 3, 1),
        ]

    async def test_unknown_sort_falls_back_to_default(self, db: AsyncSession):
        rows = await _seed(db, uuid.uuid4(), 3)

        result = await paginate(
            db, select(LeaveRequest), _params(sort="password"),
            model=LeaveRequest, default_sort="-applied_at",
        )
        assert [r.id for r in result.data] == [r.id for r in reversed(rows)]

    async def test_paginate_page_2_with_transform(self, db: AsyncSession):
        await _seed(db, uuid.uuid4(), 5)

        result = await paginate(
            db, select(LeaveRequest), _params(page=2, page_size=2, sort="start_date"),
            model=LeaveRequest, transform=lambda r: r.start_date.isoformat(),
        )
        assert result.data == ["2024-03-11", "2024-03-16"]
        assert result.meta.total == 5
        assert result.meta.total_pages == 3
        assert result.meta.has_next is True
        assert result.meta.has_prev is True

    async def test_paginate_empty_result(self, db: AsyncSession):
        result = await paginate(db, select(LeaveRequest), _params(), model=LeaveRequest)
        assert result.data == []
        assert result.meta.total == 0
        assert result.meta.total_pages == 0
        assert result.meta.has_next is False


# ═════════════════════════════════════════════════════════════════════
# EXCEPTION HANDLERS
# ═════════════════════════════════════════════════════════════════════


def _error_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    async def missing():
        raise NotFoundException("LeaveRequest", "abc")

    @app.get("/state")
    async def state():
        raise StateConflictException("leave request", "approved", "delete")

    @app.get("/storage")
    async def storage():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    @app.get("/constraint")
    async def constraint():
        raise IntegrityError(
            "INSERT INTO leave_requests", {}, Exception("ck_leave_total_days_positive"),
        )

    return app


class TestProblemDetails:

    async def _get(self, path: str):
        async with AsyncClient(
            transport=ASGITransport(app=_error_app()), base_url="http://test",
        ) as ac:
            return await ac.get(path)

    async def test_not_found(self):
        resp = await self._get("/missing")
        body = resp.json()
        assert resp.status_code == 404
        assert body["type"].endswith("/not-found")
        assert body["instance"] == "/missing"
        assert "errors" not in body

    async def test_state_conflict(self):
        resp = await self._get("/state")
        body = resp.json()
        assert resp.status_code == 409
        assert body["detail"] == "Cannot delete a leave request with status 'approved'."
        assert body["errors"]["status"]

    async def test_storage_failure_is_503(self):
        resp = await self._get("/storage")
        assert resp.status_code == 503
        assert resp.json()["type"].endswith("/storage-unavailable")

    async def test_constraint_violation_is_409_not_retryable(self):
        resp = await self._get("/constraint")
        assert resp.status_code == 409
        assert resp.json()["type"].endswith("/integrity-conflict")

    def test_overlap_conflict_without_id_has_no_errors(self):
        exc = OverlapConflictException()
        assert exc.status_code == 409
        assert exc.errors is None


# ═════════════════════════════════════════════════════════════════════
# LOGGING
# ═════════════════════════════════════════════════════════════════════


class TestLoggingSetup:

    def test_format_and_level(self, monkeypatch):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))

        setup_logging("warning")

        assert calls["level"] == logging.WARNING
        assert calls["format"] == LOG_FORMAT
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    @pytest.mark.parametrize("level", ["nonsense", "INFO"])
    def test_unknown_level_falls_back_to_info(self, monkeypatch, level):
        calls = {}
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: calls.update(kw))
        setup_logging(level)
        assert calls["level"] == logging.INFO
