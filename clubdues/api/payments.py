from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from clubdues.db.base import get_db
from clubdues.core.dependencies import get_current_active_user, require_ledger_writer, is_ledger_operator
from clubdues.core.errors import LedgerError, http_error
from clubdues.models.user import User
from clubdues.schemas.payment import PaymentCreate, PaymentResponse, PaymentReversal
from clubdues.services.member import get_member_by_user_id
from clubdues.services.payments import record_payment, reverse_payment, list_payments
from typing import List, Optional
from uuid import UUID
from datetime import date

router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
def create_payment(
    payment_data: PaymentCreate,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Record a settled payment, optionally against an assigned due."""
    try:
        return record_payment(
            db,
            member_id=payment_data.member_id,
            amount=payment_data.amount,
            paid_at=payment_data.paid_at,
            method=payment_data.method,
            plan_id=payment_data.plan_id,
            assigned_due_id=payment_data.assigned_due_id,
            reference=payment_data.reference,
            currency=payment_data.currency,
            description=payment_data.description,
            recorded_by=current_user,
        )
    except LedgerError as e:
        raise http_error(e)


@router.get("", response_model=List[PaymentResponse])
def get_payments(
    member_id: Optional[UUID] = None,
    plan_id: Optional[UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    include_reversed: bool = False,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """List payments, newest first. Members only ever see their own."""
    if not is_ledger_operator(current_user):
        own = get_member_by_user_id(db, current_user.id)
        if not own or (member_id and member_id != own.id):
            raise HTTPException(status_code=403, detail="Not allowed to view another member's records")
        member_id = own.id
    if date_from and date_to and date_from > date_to:
        raise HTTPException(status_code=400, detail={"field": "date_from", "message": "date_from must be on or before date_to"})
    return list_payments(
        db,
        member_id=member_id,
        plan_id=plan_id,
        date_from=date_from,
        date_to=date_to,
        include_reversed=include_reversed,
    )


@router.post("/{payment_id}/reverse", response_model=PaymentResponse)
def reverse_payment_endpoint(
    payment_id: UUID,
    reversal: PaymentReversal,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Reverse a payment posted in error. The row is kept and flagged."""
    try:
        return reverse_payment(db, payment_id, reversal.reason, reversed_by=current_user)
    except LedgerError as e:
        raise http_error(e)
