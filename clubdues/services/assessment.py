"""Assessment engine: bulk assignment of dues to members.

The decision of who gets charged is a pure function of (plan, period, member
snapshot, already-assessed ids) in ``plan_assignments``. ``assess`` resolves
the target against the database once, then writes each assigned due in its
own transaction so that one member's failure never rolls back another's.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Collection, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from clubdues.core.audit import audit_action
from clubdues.core.config import settings
from clubdues.core.errors import NoTargetMembers, ValidationError
from clubdues.models.dues import AssignedDue, DueStatus, DuesAssessment, TargetType
from clubdues.models.member import MemberStatus
from clubdues.services.member import eligible_statuses, members_by_ids, members_in_category, resolve_category_id
from clubdues.services.periods import Period, parse_period
from clubdues.services.plans import get_plan
from clubdues.services.reconciliation import to_money

logger = logging.getLogger(__name__)

SKIP_NOT_FOUND = "not_found"
SKIP_INELIGIBLE = "ineligible_status"
SKIP_ALREADY_ASSESSED = "already_assessed"
SKIP_WRITE_FAILED = "write_failed"
SKIP_CANCELLED = "cancelled"


@dataclass
class AssessmentTarget:
    """Who to assess: a category (by name) or an explicit member list."""
    type: TargetType
    category_name: Optional[str] = None
    member_ids: List[UUID] = field(default_factory=list)

    def validate(self) -> None:
        if self.type == TargetType.CATEGORY and not (self.category_name and self.category_name.strip()):
            raise ValidationError("target_category", "target_category is required when target_type is CATEGORY")
        if self.type == TargetType.INDIVIDUAL and not self.member_ids:
            raise ValidationError("member_ids", "member_ids is required when target_type is INDIVIDUAL")


@dataclass(frozen=True)
class MemberSnapshot:
    id: UUID
    category_id: Optional[UUID]
    status: MemberStatus


@dataclass(frozen=True)
class PlanSnapshot:
    id: UUID
    code: str
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class SkippedMember:
    member_id: UUID
    reason: str


@dataclass(frozen=True)
class DueDraft:
    member_id: UUID
    category_id: Optional[UUID]
    amount: Decimal
    currency: str
    period: Period
    due_date: date
    reference: str


@dataclass
class AssignmentPlan:
    drafts: List[DueDraft] = field(default_factory=list)
    skipped: List[SkippedMember] = field(default_factory=list)


@dataclass
class AssessmentResult:
    assessment_id: UUID
    assigned_count: int
    skipped: List[SkippedMember]
    assigned_due_ids: List[UUID]


def due_reference(plan_code: str, period: Period, member_id: UUID) -> str:
    return f"{plan_code}-{period.token}-{member_id}"


def plan_assignments(
    plan: PlanSnapshot,
    period: Period,
    members: Sequence[MemberSnapshot],
    eligible: Collection[MemberStatus],
    existing_member_ids: Collection[UUID] = (),
    requested_ids: Optional[Sequence[UUID]] = None,
    due_date: Optional[date] = None,
) -> AssignmentPlan:
    """Decide which members get an assigned due.

    ``requested_ids`` is the explicit list of an INDIVIDUAL target; ids absent
    from ``members`` are reported as not found. Raises NoTargetMembers when no
    eligible member remains. Members already assessed for this plan and period
    are skipped, which makes re-running an assessment harmless.
    """
    result = AssignmentPlan()
    by_id: Dict[UUID, MemberSnapshot] = {m.id: m for m in members}

    if requested_ids is not None:
        ordered = []
        for member_id in dict.fromkeys(requested_ids):
            if member_id in by_id:
                ordered.append(by_id[member_id])
            else:
                result.skipped.append(SkippedMember(member_id, SKIP_NOT_FOUND))
    else:
        ordered = list(members)

    targets = []
    for member in ordered:
        if member.status in eligible:
            targets.append(member)
        else:
            result.skipped.append(SkippedMember(member.id, f"{SKIP_INELIGIBLE}:{member.status.value}"))

    if not targets:
        raise NoTargetMembers()

    amount = to_money(plan.amount)
    for member in targets:
        if member.id in existing_member_ids:
            result.skipped.append(SkippedMember(member.id, SKIP_ALREADY_ASSESSED))
            continue
        result.drafts.append(DueDraft(
            member_id=member.id,
            category_id=member.category_id,
            amount=amount,
            currency=plan.currency,
            period=period,
            due_date=due_date or period.end,
            reference=due_reference(plan.code, period, member.id),
        ))
    return result


def _already_assessed(db: Session, plan_id: UUID, period: Period, member_ids: Sequence[UUID]) -> set:
    if not member_ids:
        return set()
    rows = db.query(AssignedDue.member_id).filter(
        AssignedDue.plan_id == plan_id,
        AssignedDue.period == period.token,
        AssignedDue.member_id.in_(list(member_ids)),
    ).all()
    return {row[0] for row in rows}


def assess(
    db: Session,
    plan_id: UUID,
    period: str,
    target: AssessmentTarget,
    actor=None,
    include_pending: Optional[bool] = None,
    due_date: Optional[date] = None,
    cancel: Optional[threading.Event] = None,
) -> AssessmentResult:
    """Create one assigned due per eligible target member.

    Validation and target resolution happen before any write. Each due is
    committed on its own; setting ``cancel`` stops between members and the
    rest are reported as cancelled.
    """
    plan = get_plan(db, plan_id)
    if not plan.active:
        raise ValidationError("plan_id", f"Plan {plan.code} is inactive")
    if to_money(plan.amount) <= 0:
        raise ValidationError("plan_id", f"Plan {plan.code} has no amount to assess")
    parsed = parse_period(period)
    target.validate()

    if include_pending is None:
        include_pending = settings.ASSESSMENT_INCLUDE_PENDING_MEMBERS

    category_id = None
    requested_ids = None
    if target.type == TargetType.CATEGORY:
        category_id = resolve_category_id(db, target.category_name)
        members = members_in_category(db, category_id) if category_id else []
    else:
        requested_ids = list(target.member_ids)
        members = members_by_ids(db, requested_ids)

    snapshots = [MemberSnapshot(m.id, m.category_id, m.status) for m in members]
    existing = _already_assessed(db, plan.id, parsed, [m.id for m in snapshots])
    plan_snapshot = PlanSnapshot(plan.id, plan.code, to_money(plan.amount), plan.currency)

    try:
        assignment = plan_assignments(
            plan_snapshot,
            parsed,
            snapshots,
            eligible_statuses(include_pending),
            existing_member_ids=existing,
            requested_ids=requested_ids,
            due_date=due_date,
        )
    except NoTargetMembers:
        logger.warning(
            "No target members for plan %s period %s (%s %s)",
            plan.code, parsed.token, target.type.value, target.category_name or target.member_ids,
        )
        raise

    assessment = DuesAssessment(
        plan_id=plan.id,
        period=parsed.token,
        target_type=target.type,
        target_category_id=category_id,
        requested_member_ids=",".join(str(i) for i in requested_ids) if requested_ids else None,
        created_by=actor.id if actor is not None else None,
    )
    db.add(assessment)
    db.commit()
    assessment_id = assessment.id

    skipped = list(assignment.skipped)
    created: List[UUID] = []
    for index, draft in enumerate(assignment.drafts):
        if cancel is not None and cancel.is_set():
            skipped.extend(SkippedMember(d.member_id, SKIP_CANCELLED) for d in assignment.drafts[index:])
            logger.info("Assessment %s cancelled after %d of %d members", assessment_id, index, len(assignment.drafts))
            break

        due = AssignedDue(
            member_id=draft.member_id,
            plan_id=plan_snapshot.id,
            category_id=draft.category_id,
            assessment_id=assessment_id,
            amount=draft.amount,
            currency=draft.currency,
            period=draft.period.token,
            period_start=draft.period.start,
            period_end=draft.period.end,
            due_date=draft.due_date,
            status=DueStatus.PENDING,
            reference=draft.reference,
            notes=f"Assessment for {draft.period.token}",
        )
        db.add(due)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            skipped.append(SkippedMember(draft.member_id, SKIP_ALREADY_ASSESSED))
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Could not assign %s to member %s: %s", plan_snapshot.code, draft.member_id, e)
            skipped.append(SkippedMember(draft.member_id, SKIP_WRITE_FAILED))
            continue
        created.append(due.id)

    assessment = db.get(DuesAssessment, assessment_id)
    assessment.assigned_count = len(created)
    assessment.skipped_count = len(skipped)
    db.commit()

    logger.info(
        "Assessment %s: plan %s period %s assigned %d, skipped %d",
        assessment_id, plan_snapshot.code, parsed.token, len(created), len(skipped),
    )
    audit_action(
        actor,
        "Assess dues",
        f"assessment={assessment_id} plan={plan_snapshot.code} period={parsed.token} "
        f"target={target.type.value} assigned={len(created)} skipped={len(skipped)}",
    )
    return AssessmentResult(
        assessment_id=assessment_id,
        assigned_count=len(created),
        skipped=skipped,
        assigned_due_ids=created,
    )


def list_assessments(db: Session, limit: int = 50) -> List[DuesAssessment]:
    return db.query(DuesAssessment).order_by(DuesAssessment.created_at.desc()).limit(limit).all()
