"""Member directory lookups used by the dues ledger."""
from sqlalchemy import func
from sqlalchemy.orm import Session
from clubdues.models.member import Member, MemberCategory, MemberStatus
from clubdues.core.errors import MemberNotFound
from uuid import UUID
from typing import Iterable, List, Optional, Tuple


def eligible_statuses(include_pending: bool) -> Tuple[MemberStatus, ...]:
    """Member statuses that can be assessed.

    ACTIVE members are always eligible; PENDING and PROSPECT members only when
    the policy flag is on. SUSPENDED members never are.
    """
    if include_pending:
        return (MemberStatus.ACTIVE, MemberStatus.PENDING, MemberStatus.PROSPECT)
    return (MemberStatus.ACTIVE,)


def get_member(db: Session, member_id: UUID) -> Member:
    """Get a member or raise MemberNotFound."""
    member = db.query(Member).filter(Member.id == member_id).first()
    if not member:
        raise MemberNotFound(member_id)
    return member


def get_member_by_user_id(db: Session, user_id: UUID) -> Optional[Member]:
    """Get the member linked to a login account."""
    return db.query(Member).filter(Member.user_id == user_id).first()


def resolve_category_id(db: Session, category_name: str) -> Optional[UUID]:
    """Resolve a category name (case-insensitive) to its id."""
    if not category_name or not category_name.strip():
        return None
    category = db.query(MemberCategory).filter(
        func.lower(MemberCategory.name) == category_name.strip().lower()
    ).first()
    return category.id if category else None


def members_in_category(db: Session, category_id: UUID) -> List[Member]:
    """Every member of a category regardless of status, ordered by name."""
    return db.query(Member).filter(
        Member.category_id == category_id
    ).order_by(Member.last_name, Member.first_name).all()


def members_by_ids(db: Session, member_ids: Iterable[UUID]) -> List[Member]:
    """Members whose id is in ``member_ids``; unknown ids are simply absent."""
    ids = list(member_ids)
    if not ids:
        return []
    return db.query(Member).filter(Member.id.in_(ids)).all()
