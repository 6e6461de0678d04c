"""Plan catalog: dues plans are reference data, snapshotted on assignment."""
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clubdues.core.config import settings
from clubdues.core.errors import PlanNotFound, ValidationError
from clubdues.models.dues import BillingCycle, DuesPlan
from clubdues.services.member import resolve_category_id
from clubdues.services.reconciliation import to_money

logger = logging.getLogger(__name__)


def _plan_amount(amount) -> Decimal:
    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError("amount", "Amount must be a decimal number")
    if not value.is_finite() or value < 0:
        raise ValidationError("amount", "Amount must be >= 0")
    return to_money(value)


def get_plan(db: Session, plan_id: UUID) -> DuesPlan:
    """Get a plan or raise PlanNotFound."""
    plan = db.query(DuesPlan).filter(DuesPlan.id == plan_id).first()
    if not plan:
        raise PlanNotFound(plan_id)
    return plan


def list_plans(db: Session, include_inactive: bool = False) -> List[DuesPlan]:
    query = db.query(DuesPlan)
    if not include_inactive:
        query = query.filter(DuesPlan.active.is_(True))
    return query.order_by(DuesPlan.created_at.desc(), DuesPlan.code).all()


def create_plan(
    db: Session,
    code: str,
    name: str,
    amount,
    currency: Optional[str] = None,
    billing_cycle: BillingCycle = BillingCycle.ONE_TIME,
    target_category: Optional[str] = None,
    description: Optional[str] = None,
    active: bool = True,
) -> DuesPlan:
    """Create a dues plan. Codes are unique."""
    if not code or not code.strip():
        raise ValidationError("code", "code is required")
    if not name or not name.strip():
        raise ValidationError("name", "name is required")

    target_category_id = None
    if target_category:
        target_category_id = resolve_category_id(db, target_category)
        if target_category_id is None:
            raise ValidationError("target_category", f"Unknown category '{target_category}'")

    plan = DuesPlan(
        code=code.strip(),
        name=name.strip(),
        description=description,
        amount=_plan_amount(amount),
        currency=(currency or settings.DEFAULT_CURRENCY).upper(),
        billing_cycle=billing_cycle,
        target_category_id=target_category_id,
        active=active,
    )
    db.add(plan)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("code", f"A plan with code '{code}' already exists")
    db.refresh(plan)
    logger.info("Created dues plan %s (%s %s)", plan.code, plan.amount, plan.currency)
    return plan


def update_plan(
    db: Session,
    plan_id: UUID,
    name: Optional[str] = None,
    description: Optional[str] = None,
    amount=None,
    active: Optional[bool] = None,
) -> DuesPlan:
    """Update a plan. Already-assigned dues keep their snapshotted amount."""
    plan = get_plan(db, plan_id)
    if name is not None:
        if not name.strip():
            raise ValidationError("name", "name cannot be blank")
        plan.name = name.strip()
    if description is not None:
        plan.description = description
    if amount is not None:
        plan.amount = _plan_amount(amount)
    if active is not None:
        plan.active = active
    db.commit()
    db.refresh(plan)
    return plan
