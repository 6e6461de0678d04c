from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from clubdues.db.base import get_db
from clubdues.core.dependencies import get_current_active_user, require_ledger_writer, is_ledger_operator
from clubdues.core.errors import LedgerError, http_error
from clubdues.models.user import User
from clubdues.models.dues import AssignedDue, DueStatus
from clubdues.models.payment import Payment
from clubdues.schemas.dues import (
    PlanCreate, PlanUpdate, PlanResponse,
    AssessmentRequest, AssessmentResponse, AssessmentRecordResponse, SkippedMemberResponse,
    AssignedDueResponse, WaiveRequest, BulkWaiveRequest, BulkWaiveResponse, WaiveFailureResponse,
    SweepReportResponse,
)
from clubdues.services.assessment import AssessmentTarget, assess, list_assessments
from clubdues.services.member import get_member_by_user_id, resolve_category_id
from clubdues.services.periods import parse_period
from clubdues.services.plans import create_plan, list_plans, update_plan
from clubdues.services.reconciliation import due_paid_amount, due_remaining
from clubdues.services.synchronizer import (
    get_assigned_due, due_payments, sync_due_status, sync_member_balance,
    run_reconciliation_sweep, waive_due, waive_dues, reinstate_due,
)
from typing import Dict, List, Optional
from uuid import UUID
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dues", tags=["dues"])


def assigned_due_response(due: AssignedDue, payments: List[Payment]) -> AssignedDueResponse:
    """Serialize a due with paid/remaining amounts computed from its payments."""
    return AssignedDueResponse(
        id=due.id,
        member_id=due.member_id,
        member_name=due.member.full_name if due.member else None,
        plan_id=due.plan_id,
        plan_code=due.plan.code if due.plan else None,
        category_id=due.category_id,
        assessment_id=due.assessment_id,
        amount=due.amount,
        currency=due.currency,
        period=due.period,
        period_start=due.period_start,
        period_end=due.period_end,
        due_date=due.due_date,
        status=due.status,
        reference=due.reference,
        notes=due.notes,
        paid_amount=due_paid_amount(due, payments),
        remaining_amount=due_remaining(due, payments),
        waived_at=due.waived_at,
        waiver_reason=due.waiver_reason,
        created_at=due.created_at,
    )


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------

@router.get("/plans", response_model=List[PlanResponse])
def get_plans(
    include_inactive: bool = False,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """List dues plans (active only unless include_inactive)."""
    return list_plans(db, include_inactive=include_inactive)


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
def create_plan_endpoint(
    plan_data: PlanCreate,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Create a dues plan."""
    try:
        return create_plan(
            db,
            code=plan_data.code,
            name=plan_data.name,
            amount=plan_data.amount,
            currency=plan_data.currency,
            billing_cycle=plan_data.billing_cycle,
            target_category=plan_data.target_category,
            description=plan_data.description,
            active=plan_data.active,
        )
    except LedgerError as e:
        raise http_error(e)


@router.patch("/plans/{plan_id}", response_model=PlanResponse)
def update_plan_endpoint(
    plan_id: UUID,
    plan_data: PlanUpdate,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Update a plan's name, description, amount or active flag."""
    try:
        return update_plan(
            db,
            plan_id,
            name=plan_data.name,
            description=plan_data.description,
            amount=plan_data.amount,
            active=plan_data.active,
        )
    except LedgerError as e:
        raise http_error(e)


# ---------------------------------------------------------------------------
# Assessments
# ---------------------------------------------------------------------------

@router.post("/assessments", response_model=AssessmentResponse, status_code=status.HTTP_201_CREATED)
def create_assessment(
    request: AssessmentRequest,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Assign a plan to every eligible member of a category or to listed members."""
    target = AssessmentTarget(
        type=request.target_type,
        category_name=request.target_category,
        member_ids=list(request.member_ids),
    )
    try:
        result = assess(
            db,
            plan_id=request.plan_id,
            period=request.period,
            target=target,
            actor=current_user,
            include_pending=request.include_pending,
            due_date=request.due_date,
        )
    except LedgerError as e:
        raise http_error(e)

    return AssessmentResponse(
        assessment_id=result.assessment_id,
        assigned_dues_count=result.assigned_count,
        skipped=[SkippedMemberResponse(member_id=s.member_id, reason=s.reason) for s in result.skipped],
    )


@router.get("/assessments", response_model=List[AssessmentRecordResponse])
def get_assessments(
    limit: int = 50,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Recent assessment runs, newest first."""
    return list_assessments(db, limit=limit)


# ---------------------------------------------------------------------------
# Assigned dues
# ---------------------------------------------------------------------------

@router.get("/assigned", response_model=List[AssignedDueResponse])
def get_assigned_dues(
    member_id: Optional[UUID] = None,
    status: Optional[DueStatus] = None,
    period: Optional[str] = None,
    category: Optional[str] = None,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """List assigned dues. Members only ever see their own."""
    if not is_ledger_operator(current_user):
        own = get_member_by_user_id(db, current_user.id)
        if not own or (member_id and member_id != own.id):
            raise HTTPException(status_code=403, detail="Not allowed to view another member's records")
        member_id = own.id

    query = db.query(AssignedDue)
    if member_id:
        query = query.filter(AssignedDue.member_id == member_id)
    if status:
        query = query.filter(AssignedDue.status == status)
    try:
        if period:
            query = query.filter(AssignedDue.period == parse_period(period).token)
    except LedgerError as e:
        raise http_error(e)
    if category:
        category_id = resolve_category_id(db, category)
        if category_id is None:
            return []
        query = query.filter(AssignedDue.category_id == category_id)

    dues = query.order_by(AssignedDue.due_date.desc(), AssignedDue.reference).all()
    payments_by_due: Dict[UUID, List[Payment]] = {d.id: [] for d in dues}
    if dues:
        for payment in db.query(Payment).filter(Payment.assigned_due_id.in_(list(payments_by_due))).all():
            payments_by_due[payment.assigned_due_id].append(payment)
    return [assigned_due_response(d, payments_by_due[d.id]) for d in dues]


@router.get("/assigned/{assigned_due_id}", response_model=AssignedDueResponse)
def get_assigned_due_endpoint(
    assigned_due_id: UUID,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Get one assigned due with paid and remaining amounts."""
    try:
        due = get_assigned_due(db, assigned_due_id)
    except LedgerError as e:
        raise http_error(e)
    if not is_ledger_operator(current_user) and (not due.member or due.member.user_id != current_user.id):
        raise HTTPException(status_code=403, detail="Not allowed to view another member's records")
    return assigned_due_response(due, due_payments(db, due.id))


@router.post("/assigned/{assigned_due_id}/sync", response_model=AssignedDueResponse)
def sync_assigned_due(
    assigned_due_id: UUID,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Recompute one due's status and its member's balance from the payment ledger."""
    try:
        due = get_assigned_due(db, assigned_due_id)
        changed = sync_due_status(db, due.id)
        sync_member_balance(db, due.member_id)
        db.commit()
    except LedgerError as e:
        raise http_error(e)
    if changed:
        logger.info("Manual sync changed status of assigned due %s to %s", due.id, due.status.value)
    db.refresh(due)
    return assigned_due_response(due, due_payments(db, due.id))


@router.post("/assigned/waive", response_model=BulkWaiveResponse)
def waive_assigned_dues(
    request: BulkWaiveRequest,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Waive several dues at once. Dues that cannot be waived are reported, not fatal."""
    try:
        waived, failures = waive_dues(db, request.assigned_due_ids, request.reason, waived_by=current_user)
    except LedgerError as e:
        raise http_error(e)
    return BulkWaiveResponse(
        waived=[assigned_due_response(d, due_payments(db, d.id)) for d in waived],
        failed=[WaiveFailureResponse(assigned_due_id=f.assigned_due_id, error=f.error) for f in failures],
    )


@router.post("/assigned/{assigned_due_id}/waive", response_model=AssignedDueResponse)
def waive_assigned_due(
    assigned_due_id: UUID,
    request: WaiveRequest,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Waive a due. Waived dues no longer count toward the member's balance."""
    try:
        due = waive_due(db, assigned_due_id, request.reason, waived_by=current_user)
    except LedgerError as e:
        raise http_error(e)
    return assigned_due_response(due, due_payments(db, due.id))


@router.post("/assigned/{assigned_due_id}/reinstate", response_model=AssignedDueResponse)
def reinstate_assigned_due(
    assigned_due_id: UUID,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Undo a waiver."""
    try:
        due = reinstate_due(db, assigned_due_id, reinstated_by=current_user)
    except LedgerError as e:
        raise http_error(e)
    return assigned_due_response(due, due_payments(db, due.id))


@router.post("/reconcile", response_model=SweepReportResponse)
def reconcile(
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Re-sync every due status and member balance now."""
    report = run_reconciliation_sweep(db, actor=current_user)
    return SweepReportResponse(**report.as_dict())
