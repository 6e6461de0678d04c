"""Status synchronizer.

AssignedDue.status and Member.outstanding_balance are caches over the payment
ledger. Everything here recomputes them from the full payment set with the
reconciliation calculator and writes back only what differs; nothing is ever
incremented in place.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, asdict, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from clubdues.core.audit import audit_action
from clubdues.core.errors import AssignedDueNotFound, LedgerError, ValidationError
from clubdues.models.dues import AssignedDue, DueStatus
from clubdues.models.member import Member
from clubdues.models.payment import Payment
from clubdues.services.member import get_member
from clubdues.services.reconciliation import due_status, member_outstanding_balance, to_money

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    dues_checked: int = 0
    dues_changed: int = 0
    members_checked: int = 0
    balances_changed: int = 0
    changed_dues: List[dict] = field(default_factory=list)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class WaiveFailure:
    assigned_due_id: UUID
    error: str


def get_assigned_due(db: Session, assigned_due_id: UUID) -> AssignedDue:
    due = db.query(AssignedDue).filter(AssignedDue.id == assigned_due_id).first()
    if not due:
        raise AssignedDueNotFound(assigned_due_id)
    return due


def due_payments(db: Session, assigned_due_id: UUID) -> List[Payment]:
    """Every payment row linked to a due, reversed ones included."""
    return db.query(Payment).filter(Payment.assigned_due_id == assigned_due_id).all()


def load_member_ledger(db: Session, member_id: UUID) -> Tuple[List[AssignedDue], List[Payment], List[Payment]]:
    """Return (dues, own payments, payments linked to those dues) for a member.

    Payments linked to a member's dues normally are the member's own; they
    differ only for cross-posted payments.
    """
    dues = db.query(AssignedDue).filter(AssignedDue.member_id == member_id).all()
    own_payments = db.query(Payment).filter(Payment.member_id == member_id).all()
    due_ids = [d.id for d in dues]
    linked = []
    if due_ids:
        linked = db.query(Payment).filter(Payment.assigned_due_id.in_(due_ids)).all()
    return dues, own_payments, linked


def linked_payments_by_due(db: Session) -> Dict[UUID, List[Payment]]:
    """Every payment linked to some due, grouped by due id."""
    payments_by_due: Dict[UUID, List[Payment]] = defaultdict(list)
    for payment in db.query(Payment).filter(Payment.assigned_due_id.isnot(None)).all():
        payments_by_due[payment.assigned_due_id].append(payment)
    return payments_by_due


def outstanding_by_member(db: Session) -> Dict[UUID, Decimal]:
    """Outstanding balance per member, derived from the ledger rather than the cache."""
    payments_by_due = linked_payments_by_due(db)
    dues_by_member: Dict[UUID, List[AssignedDue]] = defaultdict(list)
    for due in db.query(AssignedDue).all():
        dues_by_member[due.member_id].append(due)

    balances = {}
    for member_id, dues in dues_by_member.items():
        linked = [p for d in dues for p in payments_by_due.get(d.id, [])]
        balances[member_id] = member_outstanding_balance(dues, linked)
    return balances


def sync_due_status(db: Session, assigned_due_id: UUID) -> bool:
    """Recompute a due's status and persist it if it differs.

    Returns True when the stored status changed. Flushes only; the caller
    owns the transaction.
    """
    due = get_assigned_due(db, assigned_due_id)
    derived = due_status(due, due_payments(db, due.id))
    if derived == due.status:
        return False

    logger.info("Assigned due %s status %s -> %s", due.id, due.status.value, derived.value)
    due.status = derived
    db.flush()
    return True


def sync_member_balance(db: Session, member_id: UUID) -> Decimal:
    """Refresh a member's cached outstanding balance and return it."""
    member = get_member(db, member_id)
    dues, _, linked = load_member_ledger(db, member.id)
    balance = member_outstanding_balance(dues, linked)
    if to_money(member.outstanding_balance) != balance:
        member.outstanding_balance = balance
        db.flush()
    return balance


def run_reconciliation_sweep(db: Session, actor=None) -> SweepReport:
    """Re-sync every due status and every member balance, then commit.

    Used on demand and by the scheduler to repair drift from manual edits,
    migrations, or a status write that failed after its payment committed.
    """
    report = SweepReport()
    payments_by_due = linked_payments_by_due(db)

    dues_by_member: Dict[UUID, List[AssignedDue]] = defaultdict(list)
    for due in db.query(AssignedDue).all():
        report.dues_checked += 1
        derived = due_status(due, payments_by_due.get(due.id, []))
        if derived != due.status:
            logger.info("Sweep: assigned due %s status %s -> %s", due.id, due.status.value, derived.value)
            report.changed_dues.append({
                "reference": due.reference,
                "member_name": due.member.full_name if due.member else "Unknown",
                "from_status": due.status.value,
                "to_status": derived.value,
            })
            due.status = derived
            report.dues_changed += 1
        dues_by_member[due.member_id].append(due)

    for member in db.query(Member).all():
        report.members_checked += 1
        dues = dues_by_member.get(member.id, [])
        linked = [p for d in dues for p in payments_by_due.get(d.id, [])]
        balance = member_outstanding_balance(dues, linked)
        if to_money(member.outstanding_balance) != balance:
            member.outstanding_balance = balance
            report.balances_changed += 1

    db.commit()
    logger.info(
        "Reconciliation sweep checked %d dues (%d changed) and %d members (%d balances changed)",
        report.dues_checked, report.dues_changed, report.members_checked, report.balances_changed,
    )
    audit_action(
        actor,
        "Reconciliation sweep",
        f"dues_checked={report.dues_checked} dues_changed={report.dues_changed} "
        f"balances_changed={report.balances_changed}",
    )
    return report


def waive_due(db: Session, assigned_due_id: UUID, reason: str, waived_by=None) -> AssignedDue:
    """Administratively waive a due.

    WAIVED is terminal for recomputation and excluded from balances. Paid dues
    cannot be waived.
    """
    if not reason or not reason.strip():
        raise ValidationError("reason", "A reason is required to waive a due")

    due = get_assigned_due(db, assigned_due_id)
    if due.status == DueStatus.WAIVED:
        raise ValidationError("status", "Assigned due is already waived")
    if due_status(due, due_payments(db, due.id)) == DueStatus.PAID:
        raise ValidationError("status", "A paid due cannot be waived")

    due.status = DueStatus.WAIVED
    due.waived_at = datetime.utcnow()
    due.waived_by = waived_by.id if waived_by is not None else None
    due.waiver_reason = reason.strip()
    db.flush()
    sync_member_balance(db, due.member_id)
    db.commit()
    db.refresh(due)

    audit_action(waived_by, "Waive due", f"assigned_due={due.id} reference={due.reference} reason={due.waiver_reason}")
    return due


def waive_dues(
    db: Session, assigned_due_ids: List[UUID], reason: str, waived_by=None
) -> Tuple[List[AssignedDue], List[WaiveFailure]]:
    """Waive several dues with one reason. Each due is waived on its own.

    A due that cannot be waived is reported and does not stop the rest.
    """
    if not reason or not reason.strip():
        raise ValidationError("reason", "A reason is required to waive a due")
    if not assigned_due_ids:
        raise ValidationError("assigned_due_ids", "At least one assigned due is required")

    waived: List[AssignedDue] = []
    failures: List[WaiveFailure] = []
    for assigned_due_id in dict.fromkeys(assigned_due_ids):
        try:
            waived.append(waive_due(db, assigned_due_id, reason, waived_by=waived_by))
        except LedgerError as e:
            db.rollback()
            failures.append(WaiveFailure(assigned_due_id=assigned_due_id, error=e.message))

    logger.info("Bulk waiver: %d waived, %d failed", len(waived), len(failures))
    return waived, failures


def reinstate_due(db: Session, assigned_due_id: UUID, reinstated_by=None) -> AssignedDue:
    """Clear a waiver and let the payment ledger drive the status again."""
    due = get_assigned_due(db, assigned_due_id)
    if due.status != DueStatus.WAIVED:
        raise ValidationError("status", "Only waived dues can be reinstated")

    due.waived_at = None
    due.waived_by = None
    due.waiver_reason = None
    due.status = DueStatus.PENDING
    db.flush()
    sync_due_status(db, due.id)
    sync_member_balance(db, due.member_id)
    db.commit()
    db.refresh(due)

    audit_action(reinstated_by, "Reinstate due", f"assigned_due={due.id} reference={due.reference}")
    return due
