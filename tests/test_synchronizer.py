"""Tests for status synchronization, the reconciliation sweep and waivers."""
import uuid
from datetime import date
from decimal import Decimal

import pytest

from clubdues.core import email
from clubdues.core.errors import AssignedDueNotFound, ValidationError
from clubdues.models import DueStatus, Payment
from clubdues.services import scheduler as scheduler_service
from clubdues.services.payments import record_payment
from clubdues.services.synchronizer import (
    reinstate_due,
    run_reconciliation_sweep,
    sync_due_status,
    sync_member_balance,
    waive_due,
    waive_dues,
)


@pytest.fixture
def due(silver_setup, due_factory):
    _, members, plan = silver_setup
    return due_factory(members[0], plan, "2024-Q4")


def insert_raw_payment(db, due, amount):
    """A payment that bypasses the recorder, as a migration or manual edit would."""
    payment = Payment(
        member_id=due.member_id,
        plan_id=due.plan_id,
        assigned_due_id=due.id,
        amount=Decimal(amount),
        currency=due.currency,
        paid_at=date(2024, 11, 1),
    )
    db.add(payment)
    db.commit()
    return payment


class TestSyncDueStatus:
    def test_reports_whether_anything_changed(self, db, due):
        assert sync_due_status(db, due.id) is False
        insert_raw_payment(db, due, "45.00")
        assert sync_due_status(db, due.id) is True
        assert due.status == DueStatus.PARTIAL
        assert sync_due_status(db, due.id) is False

    def test_unknown_due(self, db):
        with pytest.raises(AssignedDueNotFound):
            sync_due_status(db, uuid.uuid4())

    def test_member_balance(self, db, due, silver_setup, due_factory, plan_factory):
        member = due.member
        second = due_factory(member, plan_factory("EVENT_LEVY", "30.00"), "2024-11")
        insert_raw_payment(db, due, "40.00")
        assert sync_member_balance(db, member.id) == Decimal("80.00")
        db.commit()
        db.refresh(member)
        assert member.outstanding_balance == Decimal("80.00")
        assert second.status == DueStatus.PENDING


class TestSweep:
    def test_sweep_repairs_drift(self, db, due):
        insert_raw_payment(db, due, "90.00")
        report = run_reconciliation_sweep(db)

        assert report.dues_checked == 1
        assert report.dues_changed == 1
        assert report.balances_changed == 0
        assert report.changed_dues[0]["from_status"] == "PENDING"
        assert report.changed_dues[0]["to_status"] == "PAID"
        db.refresh(due)
        assert due.status == DueStatus.PAID

    def test_sweep_is_idempotent(self, db, due):
        insert_raw_payment(db, due, "45.00")
        run_reconciliation_sweep(db)
        again = run_reconciliation_sweep(db)
        assert again.dues_changed == 0
        assert again.balances_changed == 0

    def test_sweep_fixes_a_tampered_balance(self, db, due):
        member = due.member
        member.outstanding_balance = Decimal("999.00")
        db.commit()
        report = run_reconciliation_sweep(db)
        assert report.balances_changed == 1
        db.refresh(member)
        assert member.outstanding_balance == Decimal("90.00")

    def test_scheduled_sweep_emails_treasurers_on_changes(self, db, due, treasurer, monkeypatch):
        sent = []
        treasurer_email = treasurer.email
        monkeypatch.setattr(
            "clubdues.core.email.send_reconciliation_report",
            lambda to_emails, report: sent.append((to_emails, report)),
        )
        insert_raw_payment(db, due, "90.00")

        result = scheduler_service.run_scheduled_sweep(session_factory=lambda: db)
        assert result["dues_changed"] == 1
        assert sent[0][0] == [treasurer_email]

        sent.clear()
        scheduler_service.run_scheduled_sweep(session_factory=lambda: db)
        assert sent == []


class TestWaiver:
    def test_waived_due_leaves_the_balance(self, db, due, treasurer):
        member = due.member
        sync_member_balance(db, member.id)
        db.commit()
        db.refresh(member)
        assert member.outstanding_balance == Decimal("90.00")

        waived = waive_due(db, due.id, "Hardship", waived_by=treasurer)
        assert waived.status == DueStatus.WAIVED
        assert waived.waived_by == treasurer.id
        db.refresh(member)
        assert member.outstanding_balance == Decimal("0.00")

        # Neither a sync nor the sweep undoes a waiver
        assert sync_due_status(db, due.id) is False
        assert run_reconciliation_sweep(db).dues_changed == 0

    def test_waiver_rules(self, db, due):
        with pytest.raises(ValidationError):
            waive_due(db, due.id, "")
        record_payment(db, due.member_id, "90.00", date(2024, 11, 1), assigned_due_id=due.id)
        with pytest.raises(ValidationError):
            waive_due(db, due.id, "Too late")

    def test_reinstate(self, db, due):
        insert_raw_payment(db, due, "30.00")
        waive_due(db, due.id, "Board decision")
        with pytest.raises(ValidationError):
            waive_due(db, due.id, "Twice")

        reinstated = reinstate_due(db, due.id)
        assert reinstated.status == DueStatus.PARTIAL
        assert reinstated.waiver_reason is None
        db.refresh(reinstated.member)
        assert reinstated.member.outstanding_balance == Decimal("60.00")

        with pytest.raises(ValidationError):
            reinstate_due(db, due.id)

    def test_bulk_waiver_reports_failures(self, db, due, silver_setup, due_factory, treasurer):
        _, members, plan = silver_setup
        paid = due_factory(members[1], plan, "2024-Q4")
        record_payment(db, members[1].id, "90.00", date(2024, 11, 1), assigned_due_id=paid.id)
        missing = uuid.uuid4()

        waived, failures = waive_dues(db, [due.id, paid.id, missing, due.id], "Club anniversary", waived_by=treasurer)
        assert [d.id for d in waived] == [due.id]
        assert waived[0].status == DueStatus.WAIVED
        assert {f.assigned_due_id for f in failures} == {paid.id, missing}
        db.refresh(paid)
        assert paid.status == DueStatus.PAID

        with pytest.raises(ValidationError):
            waive_dues(db, [paid.id], " ")
        with pytest.raises(ValidationError):
            waive_dues(db, [], "Club anniversary")


class TestSweepEmail:
    def test_report_escapes_member_data(self, monkeypatch):
        sent = []
        monkeypatch.setattr(email, "_send_email", lambda to, subject, plain, html_text: sent.append(html_text))
        email.send_reconciliation_report(["treasurer@example.com"], {
            "dues_checked": 1,
            "dues_changed": 1,
            "members_checked": 1,
            "balances_changed": 0,
            "changed_dues": [{
                "reference": "LEVY-<2024>",
                "member_name": "<script>alert(1)</script>",
                "from_status": "PENDING",
                "to_status": "PAID",
            }],
        })
        assert "<script>" not in sent[0]
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in sent[0]
        assert "LEVY-&lt;2024&gt;" in sent[0]
