from clubdues.db.base import Base

# Import all models so Alembic can detect them
from clubdues.models.user import User, UserRoleEnum
from clubdues.models.member import Member, MemberCategory, MemberStatus
from clubdues.models.dues import (
    AssignedDue,
    BillingCycle,
    DueStatus,
    DuesAssessment,
    DuesPlan,
    TargetType,
)
from clubdues.models.payment import Payment, PaymentMethod

__all__ = [
    "Base",
    "User",
    "UserRoleEnum",
    "Member",
    "MemberCategory",
    "MemberStatus",
    "AssignedDue",
    "BillingCycle",
    "DueStatus",
    "DuesAssessment",
    "DuesPlan",
    "TargetType",
    "Payment",
    "PaymentMethod",
]
