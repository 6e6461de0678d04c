"""Tests for outstanding, statement and dashboard reports."""
from datetime import date
from decimal import Decimal

import pytest

from clubdues.core.errors import MemberNotFound, ValidationError
from clubdues.models import TargetType
from clubdues.services.assessment import AssessmentTarget, assess
from clubdues.services.payments import record_payment, reverse_payment
from clubdues.services.reports import dashboard_totals, member_statement, outstanding_report
from clubdues.services.synchronizer import waive_due


@pytest.fixture
def ledger(silver_setup, due_factory, plan_factory):
    """Ama owes 90 + 30 with 40 paid; Kofi owes 90 fully paid."""
    silver, members, plan = silver_setup
    ama, kofi = members
    levy = plan_factory("EVENT_LEVY", "30.00")
    return {
        "ama": ama,
        "kofi": kofi,
        "ama_q4": due_factory(ama, plan, "2024-Q4"),
        "ama_levy": due_factory(ama, levy, "2024-11"),
        "kofi_q4": due_factory(kofi, plan, "2024-Q4"),
    }


class TestOutstandingReport:
    def test_groups_remaining_amounts_by_member(self, db, ledger):
        record_payment(db, ledger["ama"].id, "40.00", date(2024, 11, 2), assigned_due_id=ledger["ama_q4"].id)
        record_payment(db, ledger["kofi"].id, "90.00", date(2024, 11, 2), assigned_due_id=ledger["kofi_q4"].id)

        report = outstanding_report(db)
        assert [m.member_name for m in report.members] == ["Ama Mensah"]
        ama = report.members[0]
        assert ama.count == 2
        assert ama.total == Decimal("80.00")
        assert report.grand_total == Decimal("80.00")
        remaining = {item.reference: item.remaining for item in ama.items}
        assert remaining[ledger["ama_q4"].reference] == Decimal("50.00")

    def test_sorted_by_member_name(self, db, ledger):
        report = outstanding_report(db)
        assert [m.member_name for m in report.members] == ["Ama Mensah", "Kofi Asante"]
        assert report.grand_total == Decimal("210.00")

    def test_filters(self, db, ledger):
        by_period = outstanding_report(db, period="2024-q4")
        assert by_period.period == "2024-Q4"
        assert by_period.grand_total == Decimal("180.00")

        assert outstanding_report(db, category_name="silver").grand_total == Decimal("210.00")
        unknown = outstanding_report(db, category_name="Platinum")
        assert unknown.members == []
        assert unknown.grand_total == Decimal("0.00")

    def test_waived_dues_are_not_outstanding(self, db, ledger):
        waive_due(db, ledger["ama_levy"].id, "Committee member")
        assert outstanding_report(db).grand_total == Decimal("180.00")


class TestMemberStatement:
    def test_statement(self, db, ledger):
        ama = ledger["ama"]
        record_payment(db, ama.id, "40.00", date(2024, 11, 2), assigned_due_id=ledger["ama_q4"].id)
        record_payment(db, ama.id, "500.00", date(2024, 11, 3))

        statement = member_statement(db, ama.id)
        assert statement.member.id == ama.id
        assert len(statement.dues) == 2
        assert len(statement.payments) == 2
        assert statement.payments[0].paid_at == date(2024, 11, 3)
        assert statement.balance.total_assessed == Decimal("120.00")
        assert statement.balance.total_paid == Decimal("540.00")
        assert statement.balance.outstanding_balance == Decimal("80.00")
        assert statement.balance.currency == "GHS"

    def test_unknown_member(self, db):
        import uuid
        with pytest.raises(MemberNotFound):
            member_statement(db, uuid.uuid4())


class TestDashboard:
    def test_totals_in_range(self, db, ledger):
        payment = record_payment(db, ledger["ama"].id, "40.00", date(2024, 11, 2), assigned_due_id=ledger["ama_q4"].id)
        record_payment(db, ledger["kofi"].id, "90.00", date(2024, 11, 20), assigned_due_id=ledger["kofi_q4"].id)
        record_payment(db, ledger["kofi"].id, "15.00", date(2024, 12, 5))
        reverse_payment(db, payment.id, "Wrong member")

        totals = dashboard_totals(db, date(2024, 11, 1), date(2024, 11, 30))
        assert totals.payments_count == 1
        assert totals.payments_total == Decimal("90.00")

        everything = dashboard_totals(db, date(2000, 1, 1), date(2100, 12, 31))
        assert everything.dues_assessed_count == 3
        assert everything.dues_assessed_total == Decimal("210.00")
        assert everything.payments_total == Decimal("105.00")
        assert everything.outstanding_total == Decimal("120.00")

    def test_invalid_range(self, db):
        with pytest.raises(ValidationError):
            dashboard_totals(db, date(2024, 12, 1), date(2024, 11, 1))

    def test_outstanding_total_matches_the_report_right_after_assessment(self, db, silver_setup):
        _, members, plan = silver_setup
        assess(db, plan.id, "2024-Q4", AssessmentTarget(type=TargetType.CATEGORY, category_name="Silver"))
        # Assessment leaves the cached balances untouched
        for member in members:
            db.refresh(member)
            assert member.outstanding_balance == Decimal("0.00")

        totals = dashboard_totals(db, date(2000, 1, 1), date(2100, 12, 31))
        assert totals.outstanding_total == Decimal("180.00")
        assert totals.outstanding_total == outstanding_report(db).grand_total
