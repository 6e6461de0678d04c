"""Tests for the payment recorder."""
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from clubdues.core.config import settings
from clubdues.core.errors import (
    AssignedDueNotFound,
    InvalidAmount,
    MemberNotFound,
    MismatchedAssignedDue,
    PlanNotFound,
    ValidationError,
)
from clubdues.models import BillingCycle, DueStatus, Payment, PaymentMethod
from clubdues.services import payments as payment_service
from clubdues.services.payments import (
    list_payments,
    record_payment,
    reverse_payment,
    validate_payment_amount,
)


@pytest.fixture
def member_with_due(silver_setup, due_factory):
    _, members, plan = silver_setup
    due = due_factory(members[0], plan, "2024-Q4")
    return members[0], due


class TestValidatePaymentAmount:
    @pytest.mark.parametrize("amount", [0, "0", -5, "-0.01", None, "abc", "NaN", "Infinity", True, "45.001"])
    def test_rejects(self, amount):
        with pytest.raises(InvalidAmount) as exc:
            validate_payment_amount(amount)
        assert exc.value.field == "amount"

    @pytest.mark.parametrize("amount, expected", [
        ("45", Decimal("45.00")),
        (Decimal("45.5"), Decimal("45.50")),
        ("45.000", Decimal("45.00")),
        (0.01, Decimal("0.01")),
    ])
    def test_accepts(self, amount, expected):
        assert validate_payment_amount(amount) == expected


class TestRecordPayment:
    def test_two_halves_settle_the_due(self, db, member_with_due):
        member, due = member_with_due

        record_payment(db, member.id, "45.00", date(2024, 11, 1), assigned_due_id=due.id)
        db.refresh(due)
        db.refresh(member)
        assert due.status == DueStatus.PARTIAL
        assert member.outstanding_balance == Decimal("45.00")

        record_payment(db, member.id, "45.00", date(2024, 11, 20), assigned_due_id=due.id)
        db.refresh(due)
        db.refresh(member)
        assert due.status == DueStatus.PAID
        assert member.outstanding_balance == Decimal("0.00")

    def test_defaults_come_from_the_due(self, db, member_with_due, treasurer):
        member, due = member_with_due
        payment = record_payment(
            db, member.id, Decimal("90.00"), date(2024, 11, 1),
            method="mobile_money", assigned_due_id=due.id, recorded_by=treasurer,
        )
        assert payment.plan_id == due.plan_id
        assert payment.currency == "GHS"
        assert payment.method == PaymentMethod.MOBILE_MONEY
        assert payment.description == f"Payment for {due.reference}"
        assert payment.recorded_by == treasurer.id
        assert payment.cross_posted is False

    def test_unlinked_payment_leaves_status_alone(self, db, member_with_due):
        member, due = member_with_due
        payment = record_payment(db, member.id, "500.00", date(2024, 11, 1))
        assert payment.assigned_due_id is None
        assert payment.description == "General payment"
        db.refresh(due)
        db.refresh(member)
        assert due.status == DueStatus.PENDING

    def test_invalid_amount_writes_nothing(self, db, member_with_due):
        member, due = member_with_due
        with pytest.raises(InvalidAmount):
            record_payment(db, member.id, "0", date(2024, 11, 1), assigned_due_id=due.id)
        assert db.query(Payment).count() == 0

    def test_unknown_references(self, db, member_with_due):
        member, _ = member_with_due
        with pytest.raises(MemberNotFound):
            record_payment(db, uuid.uuid4(), "10.00", date(2024, 11, 1))
        with pytest.raises(PlanNotFound):
            record_payment(db, member.id, "10.00", date(2024, 11, 1), plan_id=uuid.uuid4())
        with pytest.raises(AssignedDueNotFound):
            record_payment(db, member.id, "10.00", date(2024, 11, 1), assigned_due_id=uuid.uuid4())
        assert db.query(Payment).count() == 0

    def test_invalid_method(self, db, member_with_due):
        member, _ = member_with_due
        with pytest.raises(ValidationError) as exc:
            record_payment(db, member.id, "10.00", date(2024, 11, 1), method="CHEQUE")
        assert exc.value.field == "method"

    def test_currency_mismatch_is_rejected(self, db, member_with_due):
        member, due = member_with_due
        with pytest.raises(ValidationError) as exc:
            record_payment(db, member.id, "10.00", date(2024, 11, 1), assigned_due_id=due.id, currency="USD")
        assert exc.value.field == "currency"

    def test_mismatched_due_is_rejected_by_default(self, db, silver_setup, member_with_due):
        _, members, _ = silver_setup
        _, due = member_with_due
        with pytest.raises(MismatchedAssignedDue) as exc:
            record_payment(db, members[1].id, "45.00", date(2024, 11, 1), assigned_due_id=due.id)
        assert exc.value.field == "assigned_due_id"
        assert db.query(Payment).count() == 0

    def test_mismatched_due_can_be_cross_posted(self, db, silver_setup, member_with_due, monkeypatch):
        _, members, _ = silver_setup
        owner, due = member_with_due
        monkeypatch.setattr(settings, "REJECT_MISMATCHED_ASSIGNED_DUE", False)

        payment = record_payment(db, members[1].id, "45.00", date(2024, 11, 1), assigned_due_id=due.id)
        assert payment.cross_posted is True
        db.refresh(due)
        db.refresh(owner)
        assert due.status == DueStatus.PARTIAL
        assert owner.outstanding_balance == Decimal("45.00")

    def test_plan_must_match_the_due(self, db, member_with_due, plan_factory):
        member, due = member_with_due
        gold = plan_factory("GOLD_YEARLY", "1200.00", billing_cycle=BillingCycle.YEARLY)
        with pytest.raises(ValidationError) as exc:
            record_payment(db, member.id, "45.00", date(2024, 11, 1), plan_id=gold.id, assigned_due_id=due.id)
        assert exc.value.field == "plan_id"
        assert db.query(Payment).count() == 0

        payment = record_payment(db, member.id, "45.00", date(2024, 11, 1), plan_id=due.plan_id, assigned_due_id=due.id)
        assert payment.plan_id == due.plan_id

    def test_waived_due_rejects_payments(self, db, member_with_due):
        member, due = member_with_due
        due.status = DueStatus.WAIVED
        db.commit()
        with pytest.raises(ValidationError):
            record_payment(db, member.id, "45.00", date(2024, 11, 1), assigned_due_id=due.id)

    def test_sync_failure_keeps_the_payment(self, db, member_with_due, monkeypatch):
        member, due = member_with_due

        def broken_sync(session, assigned_due_id):
            raise OperationalError("UPDATE assigned_due", {}, Exception("database is locked"))

        monkeypatch.setattr(payment_service, "sync_due_status", broken_sync)

        payment = record_payment(db, member.id, "90.00", date(2024, 11, 1), assigned_due_id=due.id)
        assert db.query(Payment).filter(Payment.id == payment.id).count() == 1
        db.refresh(due)
        # Stale until the sweep repairs it
        assert due.status == DueStatus.PENDING


class TestReversal:
    def test_reversal_reopens_the_due(self, db, member_with_due, treasurer):
        member, due = member_with_due
        payment = record_payment(db, member.id, "90.00", date(2024, 11, 1), assigned_due_id=due.id)
        db.refresh(due)
        assert due.status == DueStatus.PAID

        reversed_payment = reverse_payment(db, payment.id, "Bounced transfer", reversed_by=treasurer)
        assert reversed_payment.reversed_at is not None
        assert reversed_payment.reversed_by == treasurer.id
        db.refresh(due)
        db.refresh(member)
        assert due.status == DueStatus.PENDING
        assert member.outstanding_balance == Decimal("90.00")

    def test_reversal_requires_reason_and_happens_once(self, db, member_with_due):
        member, due = member_with_due
        payment = record_payment(db, member.id, "10.00", date(2024, 11, 1), assigned_due_id=due.id)
        with pytest.raises(ValidationError):
            reverse_payment(db, payment.id, "  ")
        reverse_payment(db, payment.id, "Duplicate entry")
        with pytest.raises(ValidationError):
            reverse_payment(db, payment.id, "Again")


class TestListPayments:
    def test_filters(self, db, silver_setup, member_with_due):
        _, members, plan = silver_setup
        member, due = member_with_due
        first = record_payment(db, member.id, "10.00", date(2024, 10, 5), assigned_due_id=due.id)
        second = record_payment(db, member.id, "20.00", date(2024, 11, 5), plan_id=plan.id)
        other = record_payment(db, members[1].id, "30.00", date(2024, 11, 6))
        reverse_payment(db, first.id, "Entered twice")

        assert {p.id for p in list_payments(db, member_id=member.id)} == {second.id}
        assert {p.id for p in list_payments(db, member_id=member.id, include_reversed=True)} == {first.id, second.id}
        assert {p.id for p in list_payments(db, date_from=date(2024, 11, 1))} == {second.id, other.id}
        assert {p.id for p in list_payments(db, plan_id=plan.id)} == {second.id}
        assert [p.id for p in list_payments(db)] == [other.id, second.id]
