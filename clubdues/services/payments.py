"""Payment recorder.

Payments are immutable facts. Recording one validates everything up front,
inserts the row, and re-syncs the linked due inside a SAVEPOINT of the same
transaction: when the sync succeeds both commit together, when it fails only
the savepoint is rolled back and the payment still commits. A stale status is
repaired by the reconciliation sweep; a lost payment could not be.
"""
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clubdues.core.audit import audit_action
from clubdues.core.config import settings
from clubdues.core.errors import (
    InvalidAmount,
    MismatchedAssignedDue,
    PaymentNotFound,
    PersistenceError,
    ValidationError,
)
from clubdues.models.dues import DueStatus
from clubdues.models.payment import Payment, PaymentMethod
from clubdues.services.member import get_member
from clubdues.services.plans import get_plan
from clubdues.services.synchronizer import get_assigned_due, sync_due_status, sync_member_balance

logger = logging.getLogger(__name__)


def validate_payment_amount(amount) -> Decimal:
    """Return ``amount`` as a Decimal or raise InvalidAmount.

    The amount must be finite, greater than zero and carry at most two
    decimal places.
    """
    if amount is None or isinstance(amount, bool):
        raise InvalidAmount("Amount is required")
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmount("Amount must be a decimal number")
    if not value.is_finite() or value <= 0:
        raise InvalidAmount("Amount must be > 0")
    cents = value.quantize(Decimal("0.01"))
    if cents != value:
        raise InvalidAmount("Amount cannot have more than two decimal places")
    return cents


def _payment_method(method) -> PaymentMethod:
    if isinstance(method, PaymentMethod):
        return method
    try:
        return PaymentMethod(str(method).upper())
    except ValueError:
        allowed = ", ".join(m.value for m in PaymentMethod)
        raise ValidationError("method", f"method must be one of: {allowed}")


def _sync_after_payment(db: Session, payment: Payment) -> bool:
    """Re-sync the due a payment is linked to. Returns False if the sync failed."""
    if payment.assigned_due_id is None:
        return True
    try:
        with db.begin_nested():
            sync_due_status(db, payment.assigned_due_id)
            due = get_assigned_due(db, payment.assigned_due_id)
            sync_member_balance(db, due.member_id)
    except SQLAlchemyError:
        logger.exception(
            "Status sync failed for assigned due %s after payment %s; "
            "payment kept, run the reconciliation sweep to repair",
            payment.assigned_due_id, payment.id,
        )
        return False
    return True


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to commit %s: %s", what, e)
        raise PersistenceError(f"Failed to save {what}")


def record_payment(
    db: Session,
    member_id: UUID,
    amount,
    paid_at: date,
    method=PaymentMethod.CASH,
    plan_id: Optional[UUID] = None,
    assigned_due_id: Optional[UUID] = None,
    reference: Optional[str] = None,
    currency: Optional[str] = None,
    description: Optional[str] = None,
    recorded_by=None,
) -> Payment:
    """Record a settled payment for a member, optionally against one due."""
    value = validate_payment_amount(amount)
    if paid_at is None:
        raise ValidationError("paid_at", "paid_at is required")
    if isinstance(paid_at, datetime):
        paid_at = paid_at.date()
    payment_method = _payment_method(method)

    member = get_member(db, member_id)
    plan = get_plan(db, plan_id) if plan_id else None
    due = get_assigned_due(db, assigned_due_id) if assigned_due_id else None

    cross_posted = False
    if due is not None:
        if due.member_id != member.id:
            if settings.REJECT_MISMATCHED_ASSIGNED_DUE:
                raise MismatchedAssignedDue(due.id, member.id)
            cross_posted = True
            logger.warning(
                "Payment for member %s cross-posted to assigned due %s of member %s",
                member.id, due.id, due.member_id,
            )
        if due.status == DueStatus.WAIVED:
            raise ValidationError("assigned_due_id", "Cannot record a payment against a waived due")
        if plan is None:
            plan = due.plan
        elif plan.id != due.plan_id:
            raise ValidationError(
                "plan_id",
                f"Plan {plan.code} does not match the plan of assigned due {due.reference}",
            )

    resolved_currency = (currency or (plan.currency if plan else None) or (due.currency if due else None)
                         or settings.DEFAULT_CURRENCY).upper()
    if due is not None and resolved_currency != due.currency:
        raise ValidationError(
            "currency",
            f"Payment currency {resolved_currency} does not match assigned due currency {due.currency}",
        )

    if not description:
        if due is not None:
            description = f"Payment for {due.reference}"
        elif plan is not None:
            description = f"Payment for {plan.name}"
        else:
            description = "General payment"

    payment = Payment(
        member_id=member.id,
        plan_id=plan.id if plan else None,
        assigned_due_id=due.id if due else None,
        amount=value,
        currency=resolved_currency,
        method=payment_method,
        paid_at=paid_at,
        reference=reference.strip() if reference and reference.strip() else None,
        description=description,
        cross_posted=cross_posted,
        recorded_by=recorded_by.id if recorded_by is not None else None,
    )
    db.add(payment)
    try:
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to insert payment for member %s: %s", member.id, e)
        raise PersistenceError("Failed to save payment")

    _sync_after_payment(db, payment)
    _commit(db, "payment")
    db.refresh(payment)

    logger.info(
        "Recorded payment %s of %s %s for member %s (due=%s)",
        payment.id, payment.amount, payment.currency, payment.member_id, payment.assigned_due_id,
    )
    audit_action(
        recorded_by,
        "Record payment",
        f"payment={payment.id} member={payment.member_id} amount={payment.amount} {payment.currency} "
        f"due={payment.assigned_due_id or '-'} method={payment.method.value}",
    )
    return payment


def get_payment(db: Session, payment_id: UUID) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise PaymentNotFound(payment_id)
    return payment


def reverse_payment(db: Session, payment_id: UUID, reason: str, reversed_by=None) -> Payment:
    """Void a payment without editing it, then re-sync the affected due."""
    if not reason or not reason.strip():
        raise ValidationError("reason", "A reason is required to reverse a payment")

    payment = get_payment(db, payment_id)
    if payment.reversed_at is not None:
        raise ValidationError("payment_id", "This payment has already been reversed")

    payment.reversed_at = datetime.utcnow()
    payment.reversed_by = reversed_by.id if reversed_by is not None else None
    payment.reversal_reason = reason.strip()
    db.flush()

    _sync_after_payment(db, payment)
    _commit(db, "payment reversal")
    db.refresh(payment)

    logger.info("Reversed payment %s (due=%s)", payment.id, payment.assigned_due_id)
    audit_action(reversed_by, "Reverse payment", f"payment={payment.id} reason={payment.reversal_reason}")
    return payment


def list_payments(
    db: Session,
    member_id: Optional[UUID] = None,
    plan_id: Optional[UUID] = None,
    assigned_due_id: Optional[UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    include_reversed: bool = False,
) -> List[Payment]:
    query = db.query(Payment)
    if member_id:
        query = query.filter(Payment.member_id == member_id)
    if plan_id:
        query = query.filter(Payment.plan_id == plan_id)
    if assigned_due_id:
        query = query.filter(Payment.assigned_due_id == assigned_due_id)
    if date_from:
        query = query.filter(Payment.paid_at >= date_from)
    if date_to:
        query = query.filter(Payment.paid_at <= date_to)
    if not include_reversed:
        query = query.filter(Payment.reversed_at.is_(None))
    return query.order_by(Payment.paid_at.desc(), Payment.created_at.desc()).all()
