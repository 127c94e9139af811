"""State machine, mutation guard and validators — pure logic tests (no DB)."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

import pytest

from backend.auth.schemas import Actor
from backend.common.constants import (
    LeaveAction,
    LeaveDecision,
    LeaveStatus,
    UserRole,
    WorkArrangement,
)
from backend.common.exceptions import (
    ForbiddenException,
    StateConflictException,
    ValidationException,
)
from backend.leave import lifecycle
from backend.leave.models import LeaveRequest
from backend.leave.policy import can_mutate, guard
from backend.leave.schemas import (
    LeaveCancelRequest,
    LeaveDecisionRequest,
    LeaveRequestCreate,
)
from backend.leave.validation import (
    FieldViolation,
    raise_for_violations,
    validate_cancellation,
    validate_create,
    validate_decision,
    validate_update,
)
from tests.conftest import _make_leave_request

OWNER = Actor(id=uuid.uuid4(), role=UserRole.employee)
STRANGER = Actor(id=uuid.uuid4(), role=UserRole.employee)
HR = Actor(id=uuid.uuid4(), role=UserRole.hr_admin)


def _record(status: LeaveStatus = LeaveStatus.pending) -> LeaveRequest:
    return LeaveRequest(**_make_leave_request(requester_id=OWNER.id, status=status))


# ═════════════════════════════════════════════════════════════════════
# Lifecycle
# ═════════════════════════════════════════════════════════════════════


class TestTransitions:

    def test_only_pending_has_exits(self):
        for status in LeaveStatus:
            for target in LeaveStatus:
                expected = status == LeaveStatus.pending and target != LeaveStatus.pending
                assert lifecycle.can_transition(status, target) is expected

    def test_approve_stamps_decision(self):
        record = _record()
        now = datetime(2024, 3, 1, 9, tzinfo=timezone.utc)

        previous = lifecycle.transition(record, LeaveStatus.approved, HR.id, now=now)

        assert previous == LeaveStatus.pending
        assert record.status == LeaveStatus.approved
        assert record.decided_at == now
        assert record.decided_by == HR.id
        assert record.rejection_reason is None

    def test_reject_keeps_reason(self):
        record = _record()
        lifecycle.transition(record, LeaveStatus.rejected, HR.id, reason="Audit week")
        assert record.rejection_reason == "Audit week"

    def test_cancel_stamps_withdrawal(self):
        record = _record()
        lifecycle.transition(record, LeaveStatus.cancelled, OWNER.id, reason="Plans changed")
        assert record.cancelled_by == OWNER.id
        assert record.cancellation_reason == "Plans changed"
        assert record.decided_at is None

    def test_illegal_transition_leaves_record_untouched(self):
        record = _record(LeaveStatus.rejected)
        with pytest.raises(StateConflictException):
            lifecycle.transition(record, LeaveStatus.approved, HR.id)
        assert record.status == LeaveStatus.rejected
        assert record.decided_by is None


# ═════════════════════════════════════════════════════════════════════
# Mutation guard
# ═════════════════════════════════════════════════════════════════════


class TestMutationGuard:

    @pytest.mark.parametrize(
        "action", [LeaveAction.read, LeaveAction.edit, LeaveAction.cancel, LeaveAction.delete],
    )
    def test_owner_and_admin_allowed(self, action):
        record = _record()
        assert can_mutate(OWNER, record, action)
        assert can_mutate(HR, record, action)
        assert not can_mutate(STRANGER, record, action)

    def test_only_admin_decides(self):
        record = _record()
        assert can_mutate(HR, record, LeaveAction.decide)
        assert not can_mutate(OWNER, record, LeaveAction.decide)

    def test_decide_checks_role_before_state(self):
        with pytest.raises(ForbiddenException):
            guard(OWNER, _record(LeaveStatus.approved), LeaveAction.decide)
        with pytest.raises(StateConflictException):
            guard(HR, _record(LeaveStatus.approved), LeaveAction.decide)

    def test_owner_actions_check_state_before_ownership(self):
        with pytest.raises(StateConflictException):
            guard(STRANGER, _record(LeaveStatus.approved), LeaveAction.delete)
        with pytest.raises(ForbiddenException):
            guard(STRANGER, _record(), LeaveAction.delete)

    def test_read_ignores_state(self):
        guard(OWNER, _record(LeaveStatus.cancelled), LeaveAction.read)


# ═════════════════════════════════════════════════════════════════════
# Validators
# ═════════════════════════════════════════════════════════════════════


class TestValidators:

    def test_valid_create_has_no_violations(self):
        data = LeaveRequestCreate(
            leave_type="annual",
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 3),
            reason="family trip",
        )
        assert validate_create(data, OWNER.id) == []

    def test_reason_is_trimmed_before_length_check(self):
        data = LeaveRequestCreate(
            leave_type="annual",
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 3),
            reason="    vacation    ",
        )
        assert [v.field for v in validate_create(data, OWNER.id)] == ["reason"]

    def test_update_merges_with_stored_dates(self):
        record = _record()
        violations = validate_update(record, {"start_date": date(2024, 3, 5)})
        assert [v.field for v in violations] == ["end_date"]

    def test_update_checks_coverage_against_stored_arrangement(self):
        record = _record()
        violations = validate_update(record, {"covering_employee_id": STRANGER.id})
        assert [v.field for v in violations] == ["covering_employee_id"]

        ok = validate_update(record, {
            "work_arrangement": WorkArrangement.colleague_coverage,
            "covering_employee_id": STRANGER.id,
        })
        assert ok == []

    def test_decision_rules(self):
        assert validate_decision(LeaveDecisionRequest(status=LeaveDecision.approved)) == []
        blank = LeaveDecisionRequest(status=LeaveDecision.rejected, rejection_reason="   ")
        assert [v.field for v in validate_decision(blank)] == ["rejection_reason"]

    def test_cancellation_reason_limit(self):
        assert validate_cancellation(LeaveCancelRequest()) == []
        assert validate_cancellation(LeaveCancelRequest(reason="x" * 501))

    def test_raise_for_violations_groups_by_field(self):
        with pytest.raises(ValidationException) as exc_info:
            raise_for_violations([
                FieldViolation("reason", "too short"),
                FieldViolation("reason", "too dull"),
                FieldViolation("end_date", "before start"),
            ])
        assert exc_info.value.errors == {
            "reason": ["too short", "too dull"],
            "end_date": ["before start"],
        }

    def test_raise_for_violations_noop_when_empty(self):
        raise_for_violations([])
