"""Read-side reports over synchronized ledger state."""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from clubdues.core.config import settings
from clubdues.core.errors import ValidationError
from clubdues.models.dues import AssignedDue, DueStatus
from clubdues.models.member import Member
from clubdues.models.payment import Payment
from clubdues.services.member import get_member, resolve_category_id
from clubdues.services.periods import parse_period
from clubdues.services.reconciliation import (
    OPEN_STATUSES,
    ZERO,
    MemberBalance,
    due_paid_amount,
    due_remaining,
    member_balance,
    to_money,
)
from clubdues.services.synchronizer import load_member_ledger, outstanding_by_member

logger = logging.getLogger(__name__)


@dataclass
class OutstandingItem:
    assigned_due_id: UUID
    reference: str
    period: str
    due_date: date
    status: DueStatus
    amount: Decimal
    paid: Decimal
    remaining: Decimal


@dataclass
class MemberOutstanding:
    member_id: UUID
    member_name: str
    member_number: Optional[str]
    items: List[OutstandingItem] = field(default_factory=list)
    total: Decimal = ZERO

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass
class OutstandingReport:
    members: List[MemberOutstanding]
    grand_total: Decimal
    period: Optional[str] = None
    category: Optional[str] = None


@dataclass
class StatementLine:
    due: AssignedDue
    paid: Decimal
    remaining: Decimal


@dataclass
class MemberStatement:
    member: Member
    dues: List[StatementLine]
    payments: List[Payment]
    balance: MemberBalance


@dataclass
class DashboardTotals:
    date_from: date
    date_to: date
    dues_assessed_count: int
    dues_assessed_total: Decimal
    payments_count: int
    payments_total: Decimal
    outstanding_total: Decimal


def outstanding_report(db: Session, period: Optional[str] = None, category_name: Optional[str] = None) -> OutstandingReport:
    """Remaining amounts on open dues, grouped per member and sorted by name.

    An unknown category yields an empty report rather than an error.
    """
    query = db.query(AssignedDue).filter(AssignedDue.status.in_(OPEN_STATUSES))
    period_token = None
    if period:
        period_token = parse_period(period).token
        query = query.filter(AssignedDue.period == period_token)
    if category_name:
        category_id = resolve_category_id(db, category_name)
        if category_id is None:
            return OutstandingReport(members=[], grand_total=ZERO, period=period_token, category=category_name)
        query = query.filter(AssignedDue.category_id == category_id)

    dues = query.all()
    payments_by_due: Dict[UUID, List[Payment]] = defaultdict(list)
    due_ids = [d.id for d in dues]
    if due_ids:
        for payment in db.query(Payment).filter(Payment.assigned_due_id.in_(due_ids)).all():
            payments_by_due[payment.assigned_due_id].append(payment)

    grouped: Dict[UUID, MemberOutstanding] = {}
    for due in dues:
        payments = payments_by_due.get(due.id, [])
        remaining = due_remaining(due, payments)
        if remaining <= ZERO:
            continue
        entry = grouped.get(due.member_id)
        if entry is None:
            member = due.member
            entry = grouped[due.member_id] = MemberOutstanding(
                member_id=member.id,
                member_name=member.full_name,
                member_number=member.member_number,
            )
        entry.items.append(OutstandingItem(
            assigned_due_id=due.id,
            reference=due.reference,
            period=due.period,
            due_date=due.due_date,
            status=due.status,
            amount=to_money(due.amount),
            paid=due_paid_amount(due, payments),
            remaining=remaining,
        ))
        entry.total = to_money(entry.total + remaining)

    members = sorted(grouped.values(), key=lambda m: (m.member_name.lower(), str(m.member_id)))
    for entry in members:
        entry.items.sort(key=lambda i: (i.due_date, i.reference))
    grand_total = to_money(sum((m.total for m in members), ZERO))
    logger.debug("Outstanding report: %d members owing %s (period=%s category=%s)", len(members), grand_total, period_token, category_name)
    return OutstandingReport(members=members, grand_total=grand_total, period=period_token, category=category_name)


def member_statement(db: Session, member_id: UUID) -> MemberStatement:
    """Dues with paid/remaining amounts, payments and balance totals for one member."""
    member = get_member(db, member_id)
    dues, own_payments, linked = load_member_ledger(db, member.id)

    lines = [
        StatementLine(due=d, paid=due_paid_amount(d, linked), remaining=due_remaining(d, linked))
        for d in sorted(dues, key=lambda d: (d.period_start, d.reference))
    ]
    payments = sorted(own_payments, key=lambda p: (p.paid_at, p.created_at or datetime.min), reverse=True)
    balance = member_balance(dues, own_payments, default_currency=settings.DEFAULT_CURRENCY, due_payments=linked)
    return MemberStatement(member=member, dues=lines, payments=payments, balance=balance)


def get_member_balance(db: Session, member_id: UUID) -> MemberBalance:
    member = get_member(db, member_id)
    dues, own_payments, linked = load_member_ledger(db, member.id)
    return member_balance(dues, own_payments, default_currency=settings.DEFAULT_CURRENCY, due_payments=linked)


def dashboard_totals(db: Session, start: date, end: date) -> DashboardTotals:
    """Dues assessed and payments received between ``start`` and ``end`` inclusive.

    The outstanding total is derived from the ledger, so it agrees with the
    outstanding report even before the balance cache has been refreshed.
    """
    if start is None or end is None:
        raise ValidationError("date_from", "date_from and date_to are required")
    if start > end:
        raise ValidationError("date_from", "date_from must be on or before date_to")

    created_from = datetime.combine(start, time.min)
    created_to = datetime.combine(end, time.max)
    dues = db.query(AssignedDue).filter(
        AssignedDue.created_at >= created_from,
        AssignedDue.created_at <= created_to,
        AssignedDue.status != DueStatus.WAIVED,
    ).all()
    payments = db.query(Payment).filter(
        Payment.paid_at >= start,
        Payment.paid_at <= end,
        Payment.reversed_at.is_(None),
    ).all()
    outstanding = outstanding_by_member(db)

    return DashboardTotals(
        date_from=start,
        date_to=end,
        dues_assessed_count=len(dues),
        dues_assessed_total=to_money(sum((to_money(d.amount) for d in dues), ZERO)),
        payments_count=len(payments),
        payments_total=to_money(sum((to_money(p.amount) for p in payments), ZERO)),
        outstanding_total=to_money(sum(outstanding.values(), ZERO)),
    )
