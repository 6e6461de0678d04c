"""Tests for the assessment engine."""
import threading
import uuid
from datetime import date
from decimal import Decimal

import pytest

from clubdues.core.errors import NoTargetMembers, PlanNotFound, ValidationError
from clubdues.models import AssignedDue, DuesAssessment, DueStatus, MemberStatus, TargetType
from clubdues.services import assessment as assessment_service
from clubdues.services.assessment import (
    SKIP_ALREADY_ASSESSED,
    SKIP_CANCELLED,
    SKIP_NOT_FOUND,
    AssessmentTarget,
    MemberSnapshot,
    PlanSnapshot,
    assess,
    plan_assignments,
)
from clubdues.services.member import eligible_statuses
from clubdues.services.periods import parse_period


def category_target(name="Silver"):
    return AssessmentTarget(type=TargetType.CATEGORY, category_name=name)


class TestPlanAssignments:
    """The pure core, no database."""

    plan = PlanSnapshot(uuid.uuid4(), "SILVER_QUARTERLY", Decimal("90.00"), "GHS")
    period = parse_period("2024-Q4")

    def snapshot(self, status=MemberStatus.ACTIVE):
        return MemberSnapshot(uuid.uuid4(), None, status)

    def test_drafts_for_eligible_members(self):
        members = [self.snapshot(), self.snapshot()]
        result = plan_assignments(self.plan, self.period, members, eligible_statuses(False))
        assert [d.member_id for d in result.drafts] == [m.id for m in members]
        assert all(d.amount == Decimal("90.00") for d in result.drafts)
        assert all(d.due_date == date(2024, 12, 31) for d in result.drafts)
        assert result.drafts[0].reference == f"SILVER_QUARTERLY-2024-Q4-{members[0].id}"
        assert result.skipped == []

    def test_existing_members_are_skipped(self):
        members = [self.snapshot(), self.snapshot()]
        result = plan_assignments(
            self.plan, self.period, members, eligible_statuses(False),
            existing_member_ids={members[0].id},
        )
        assert [d.member_id for d in result.drafts] == [members[1].id]
        assert result.skipped[0].member_id == members[0].id
        assert result.skipped[0].reason == SKIP_ALREADY_ASSESSED

    def test_ineligible_members_are_reported(self):
        active = self.snapshot()
        suspended = self.snapshot(MemberStatus.SUSPENDED)
        result = plan_assignments(self.plan, self.period, [active, suspended], eligible_statuses(True))
        assert [d.member_id for d in result.drafts] == [active.id]
        assert result.skipped[0].reason == "ineligible_status:suspended"

    def test_pending_members_follow_the_flag(self):
        pending = self.snapshot(MemberStatus.PENDING)
        included = plan_assignments(self.plan, self.period, [pending], eligible_statuses(True))
        assert len(included.drafts) == 1
        with pytest.raises(NoTargetMembers):
            plan_assignments(self.plan, self.period, [pending], eligible_statuses(False))

    def test_no_members_raises(self):
        with pytest.raises(NoTargetMembers):
            plan_assignments(self.plan, self.period, [], eligible_statuses(True))

    def test_unknown_requested_ids_are_reported(self):
        known = self.snapshot()
        missing = uuid.uuid4()
        result = plan_assignments(
            self.plan, self.period, [known], eligible_statuses(True),
            requested_ids=[known.id, missing, known.id],
        )
        assert len(result.drafts) == 1
        assert result.skipped[0].member_id == missing
        assert result.skipped[0].reason == SKIP_NOT_FOUND

    def test_explicit_due_date(self):
        result = plan_assignments(
            self.plan, self.period, [self.snapshot()], eligible_statuses(True),
            due_date=date(2024, 10, 31),
        )
        assert result.drafts[0].due_date == date(2024, 10, 31)


class TestAssess:
    def test_category_assessment(self, db, silver_setup):
        silver, members, plan = silver_setup
        result = assess(db, plan.id, "2024-Q4", category_target())

        assert result.assigned_count == 2
        assert result.skipped == []
        dues = db.query(AssignedDue).all()
        assert len(dues) == 2
        for due in dues:
            assert due.amount == Decimal("90.00")
            assert due.currency == "GHS"
            assert due.status == DueStatus.PENDING
            assert due.period == "2024-Q4"
            assert due.category_id == silver.id
            assert due.assessment_id == result.assessment_id

        record = db.get(DuesAssessment, result.assessment_id)
        assert record.assigned_count == 2
        assert record.skipped_count == 0

    def test_category_name_is_case_insensitive(self, db, silver_setup):
        _, _, plan = silver_setup
        assert assess(db, plan.id, "2024-Q4", category_target("silver")).assigned_count == 2

    def test_rerun_is_idempotent(self, db, silver_setup):
        _, members, plan = silver_setup
        assess(db, plan.id, "2024-Q4", category_target())
        second = assess(db, plan.id, "2024-Q4", category_target())

        assert second.assigned_count == 0
        assert {s.member_id for s in second.skipped} == {m.id for m in members}
        assert all(s.reason == SKIP_ALREADY_ASSESSED for s in second.skipped)
        assert db.query(AssignedDue).count() == 2

    def test_new_period_is_a_new_due(self, db, silver_setup):
        _, _, plan = silver_setup
        assess(db, plan.id, "2024-Q4", category_target())
        assert assess(db, plan.id, "2025-Q1", category_target()).assigned_count == 2
        assert db.query(AssignedDue).count() == 4

    def test_empty_category_writes_nothing(self, db, category_factory, plan_factory):
        category_factory("Gold")
        plan = plan_factory("GOLD_YEARLY", "1200.00")
        with pytest.raises(NoTargetMembers):
            assess(db, plan.id, "2025", category_target("Gold"))
        assert db.query(AssignedDue).count() == 0
        assert db.query(DuesAssessment).count() == 0

    def test_unknown_category_is_no_target(self, db, plan_factory):
        plan = plan_factory()
        with pytest.raises(NoTargetMembers):
            assess(db, plan.id, "2025", category_target("Platinum"))

    def test_suspended_members_are_never_assessed(self, db, category_factory, member_factory, plan_factory):
        silver = category_factory("Silver")
        active = member_factory(category=silver)
        suspended = member_factory(category=silver, status=MemberStatus.SUSPENDED)
        plan = plan_factory()

        result = assess(db, plan.id, "2024-Q4", category_target())
        assert result.assigned_count == 1
        assert db.query(AssignedDue).one().member_id == active.id
        assert [s.member_id for s in result.skipped] == [suspended.id]

    def test_include_pending_override(self, db, category_factory, member_factory, plan_factory):
        silver = category_factory("Silver")
        member_factory(category=silver)
        member_factory(category=silver, status=MemberStatus.PENDING)
        plan = plan_factory()

        assert assess(db, plan.id, "2024-Q4", category_target(), include_pending=False).assigned_count == 1
        assert assess(db, plan.id, "2024-Q4", category_target(), include_pending=True).assigned_count == 1
        assert db.query(AssignedDue).count() == 2

    def test_individual_target(self, db, silver_setup):
        _, members, plan = silver_setup
        missing = uuid.uuid4()
        target = AssessmentTarget(type=TargetType.INDIVIDUAL, member_ids=[members[0].id, missing])

        result = assess(db, plan.id, "2024-10", target)
        assert result.assigned_count == 1
        assert result.skipped[0].member_id == missing
        assert result.skipped[0].reason == SKIP_NOT_FOUND
        record = db.get(DuesAssessment, result.assessment_id)
        assert str(members[0].id) in record.requested_member_ids

    def test_validation_happens_before_writes(self, db, silver_setup, plan_factory):
        _, _, plan = silver_setup
        with pytest.raises(ValidationError) as exc:
            assess(db, plan.id, "next quarter", category_target())
        assert exc.value.field == "period"

        with pytest.raises(PlanNotFound):
            assess(db, uuid.uuid4(), "2024-Q4", category_target())

        inactive = plan_factory("OLD_PLAN", active=False)
        with pytest.raises(ValidationError) as exc:
            assess(db, inactive.id, "2024-Q4", category_target())
        assert exc.value.field == "plan_id"

        with pytest.raises(ValidationError) as exc:
            assess(db, plan.id, "2024-Q4", AssessmentTarget(type=TargetType.INDIVIDUAL))
        assert exc.value.field == "member_ids"

        assert db.query(AssignedDue).count() == 0
        assert db.query(DuesAssessment).count() == 0

    def test_cancel_before_start(self, db, silver_setup):
        _, members, plan = silver_setup
        cancel = threading.Event()
        cancel.set()

        result = assess(db, plan.id, "2024-Q4", category_target(), cancel=cancel)
        assert result.assigned_count == 0
        assert all(s.reason == SKIP_CANCELLED for s in result.skipped)
        assert db.query(AssignedDue).count() == 0

    def test_cancel_between_members(self, db, silver_setup):
        _, members, plan = silver_setup

        class CancelAfterFirst(threading.Event):
            checks = 0

            def is_set(self):
                self.checks += 1
                return self.checks > 1

        result = assess(db, plan.id, "2024-Q4", category_target(), cancel=CancelAfterFirst())
        assert result.assigned_count == 1
        assert db.query(AssignedDue).count() == 1
        assert [s.reason for s in result.skipped] == [SKIP_CANCELLED]

    def test_one_failed_insert_does_not_undo_the_others(self, db, category_factory, member_factory, plan_factory, monkeypatch):
        silver = category_factory("Silver")
        for _ in range(3):
            member_factory(category=silver)
        plan = plan_factory()
        # Every due gets the same reference, so only the first insert can succeed
        monkeypatch.setattr(assessment_service, "due_reference", lambda code, period, member_id: "DUPLICATE")

        result = assess(db, plan.id, "2024-Q4", category_target())
        assert result.assigned_count == 1
        assert len(result.skipped) == 2
        assert db.query(AssignedDue).count() == 1
        assert db.get(DuesAssessment, result.assessment_id).assigned_count == 1

    def test_assessment_never_touches_payments_or_balances(self, db, silver_setup):
        _, members, plan = silver_setup
        assess(db, plan.id, "2024-Q4", category_target())
        for member in members:
            db.refresh(member)
            assert member.outstanding_balance == Decimal("0.00")
