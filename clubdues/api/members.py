from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from clubdues.db.base import get_db
from clubdues.core.dependencies import get_current_active_user, ensure_member_access
from clubdues.core.errors import LedgerError, http_error
from clubdues.models.user import User
from clubdues.schemas.member import MemberBalanceResponse, StatementResponse
from clubdues.schemas.payment import PaymentResponse
from clubdues.services.member import get_member
from clubdues.services.reports import get_member_balance, member_statement
from clubdues.services.reconciliation import MemberBalance
from clubdues.api.dues import assigned_due_response
from uuid import UUID

router = APIRouter(prefix="/api/members", tags=["members"])


def _balance_response(member_id: UUID, balance: MemberBalance) -> MemberBalanceResponse:
    return MemberBalanceResponse(
        member_id=member_id,
        total_assessed=balance.total_assessed,
        total_paid=balance.total_paid,
        outstanding_balance=balance.outstanding_balance,
        currency=balance.currency,
    )


@router.get("/{member_id}/balance", response_model=MemberBalanceResponse)
def get_balance(
    member_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Total assessed, total paid and outstanding balance for a member."""
    try:
        member = get_member(db, member_id)
        ensure_member_access(current_user, member)
        balance = get_member_balance(db, member.id)
    except LedgerError as e:
        raise http_error(e)
    return _balance_response(member.id, balance)


@router.get("/{member_id}/statement", response_model=StatementResponse)
def get_statement(
    member_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Member statement: dues with paid/remaining amounts, payments and totals."""
    try:
        member = get_member(db, member_id)
        ensure_member_access(current_user, member)
        statement = member_statement(db, member.id)
    except LedgerError as e:
        raise http_error(e)

    return StatementResponse(
        member_id=member.id,
        member_name=member.full_name,
        member_number=member.member_number,
        category=member.category.name if member.category else None,
        status=member.status,
        dues=[
            assigned_due_response(line.due, [p for p in line.due.payments])
            for line in statement.dues
        ],
        payments=[PaymentResponse.model_validate(p) for p in statement.payments],
        balance=_balance_response(member.id, statement.balance),
    )
