"""Reconciliation calculator.

Pure functions that derive paid amounts, statuses and balances from assigned
dues and the payment ledger. They never touch the session and accept ORM rows
or any objects exposing the same attributes, so calling them repeatedly, in
any order, with the same inputs always yields the same answer.

Two policies are encoded here:

- Only payments explicitly linked to a due (``assigned_due_id``) count against
  it. Unlinked payments (donations, prepayments) raise the member's total paid
  figure but never reduce an outstanding balance.
- Balances are clamped at zero. Overpayment is absorbed, not carried as credit.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from clubdues.models.dues import DueStatus

ZERO = Decimal("0.00")
CENT = Decimal("0.01")

# Amounts are exact decimals, so a paid total must reach the due amount exactly.
PAID_TOLERANCE = Decimal("0.00")

OPEN_STATUSES = (DueStatus.PENDING, DueStatus.PARTIAL)


def to_money(value) -> Decimal:
    """Coerce a numeric value to a Decimal quantized to cents."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _counts(payment) -> bool:
    return getattr(payment, "reversed_at", None) is None


def linked_payments(due, payments: Iterable) -> List:
    """Non-reversed payments linked to ``due``."""
    return [p for p in payments if p.assigned_due_id == due.id and _counts(p)]


def due_paid_amount(due, payments: Iterable) -> Decimal:
    """Sum of non-reversed payments whose assigned_due_id is ``due.id``."""
    return to_money(sum((to_money(p.amount) for p in linked_payments(due, payments)), ZERO))


def due_status(due, payments: Iterable) -> DueStatus:
    """Derive the status of ``due`` from the payments linked to it.

    A WAIVED due is an administrative override and is returned unchanged.
    """
    if due.status == DueStatus.WAIVED:
        return DueStatus.WAIVED
    paid = due_paid_amount(due, payments)
    if paid + PAID_TOLERANCE >= to_money(due.amount):
        return DueStatus.PAID
    if paid > ZERO:
        return DueStatus.PARTIAL
    return DueStatus.PENDING


def due_remaining(due, payments: Iterable) -> Decimal:
    """Amount still owed on ``due``; zero once paid or waived."""
    if due.status == DueStatus.WAIVED:
        return ZERO
    return max(ZERO, to_money(due.amount) - due_paid_amount(due, payments))


def member_outstanding_balance(dues: Iterable, payments: Iterable) -> Decimal:
    """Open dues minus the payments linked to them, clamped at zero.

    ``dues`` and ``payments`` are one member's rows. Dues whose derived status
    is PAID or WAIVED are excluded along with their payments.
    """
    payments = list(payments)
    open_dues = [d for d in dues if due_status(d, payments) in OPEN_STATUSES]
    open_ids = {d.id for d in open_dues}

    total_open = sum((to_money(d.amount) for d in open_dues), ZERO)
    total_applied = sum(
        (to_money(p.amount) for p in payments if p.assigned_due_id in open_ids and _counts(p)),
        ZERO,
    )
    return to_money(max(ZERO, total_open - total_applied))


@dataclass(frozen=True)
class MemberBalance:
    total_assessed: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal
    currency: Optional[str]


def member_balance(
    dues: Iterable,
    payments: Iterable,
    default_currency: Optional[str] = None,
    due_payments: Optional[Iterable] = None,
) -> MemberBalance:
    """Statement totals for one member.

    total_assessed excludes waived dues; total_paid counts every non-reversed
    payment the member made, linked or not. When ``due_payments`` is given it
    holds the payments linked to the member's dues (which includes payments
    cross-posted by other members) and drives the outstanding balance.
    """
    dues = list(dues)
    payments = list(payments)
    applied = list(due_payments) if due_payments is not None else payments
    assessed = [d for d in dues if d.status != DueStatus.WAIVED]

    currency = default_currency
    if assessed:
        currency = assessed[0].currency
    elif payments:
        currency = payments[0].currency

    return MemberBalance(
        total_assessed=to_money(sum((to_money(d.amount) for d in assessed), ZERO)),
        total_paid=to_money(sum((to_money(p.amount) for p in payments if _counts(p)), ZERO)),
        outstanding_balance=member_outstanding_balance(dues, applied),
        currency=currency,
    )
