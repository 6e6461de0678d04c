from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Numeric, Integer, Boolean, Enum as SQLEnum, Text, UniqueConstraint, Index, Uuid, text, func
from sqlalchemy.orm import relationship
import uuid
from clubdues.db.base import Base
import enum


class BillingCycle(str, enum.Enum):
    """Dues plan billing cycle."""
    ONE_TIME = "ONE_TIME"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class DueStatus(str, enum.Enum):
    """Assigned due status.

    PENDING, PARTIAL and PAID are derived from payments. WAIVED is an
    administrative override and is never produced by recomputation.
    """
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    WAIVED = "WAIVED"


class TargetType(str, enum.Enum):
    """Assessment target selector."""
    CATEGORY = "CATEGORY"
    INDIVIDUAL = "INDIVIDUAL"


def _enum_column(enum_cls):
    return SQLEnum(enum_cls, native_enum=False, values_callable=lambda obj: [e.value for e in obj])


class DuesPlan(Base):
    """Billing template: amount, currency and cycle for a kind of dues."""
    __tablename__ = "dues_plan"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(150), nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    billing_cycle = Column(_enum_column(BillingCycle), default=BillingCycle.ONE_TIME, nullable=False)
    target_category_id = Column(Uuid(as_uuid=True), ForeignKey("member_category.id"), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    # Relationships
    target_category = relationship("MemberCategory")
    assigned_dues = relationship("AssignedDue", back_populates="plan", passive_deletes="all")


class DuesAssessment(Base):
    """Audit record of one bulk assignment run."""
    __tablename__ = "dues_assessment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("dues_plan.id", ondelete="RESTRICT"), nullable=False, index=True)
    period = Column(String(20), nullable=False)
    target_type = Column(_enum_column(TargetType), nullable=False)
    target_category_id = Column(Uuid(as_uuid=True), ForeignKey("member_category.id"), nullable=True)
    requested_member_ids = Column(Text, nullable=True)  # Comma separated, INDIVIDUAL targets only
    assigned_count = Column(Integer, nullable=False, default=0)
    skipped_count = Column(Integer, nullable=False, default=0)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("user.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    plan = relationship("DuesPlan")
    assigned_dues = relationship("AssignedDue", back_populates="assessment")


class AssignedDue(Base):
    """One member's obligation for one plan in one period."""
    __tablename__ = "assigned_due"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member.id", ondelete="RESTRICT"), nullable=False, index=True)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("dues_plan.id", ondelete="RESTRICT"), nullable=False, index=True)
    category_id = Column(Uuid(as_uuid=True), ForeignKey("member_category.id"), nullable=True, index=True)  # Snapshot at assessment time
    assessment_id = Column(Uuid(as_uuid=True), ForeignKey("dues_assessment.id"), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)  # Snapshot of plan amount
    currency = Column(String(3), nullable=False)
    period = Column(String(20), nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    status = Column(_enum_column(DueStatus), default=DueStatus.PENDING, nullable=False, index=True)
    reference = Column(String(200), nullable=False, unique=True)
    notes = Column(Text, nullable=True)
    waived_at = Column(DateTime, nullable=True)
    waived_by = Column(Uuid(as_uuid=True), ForeignKey("user.id"), nullable=True)
    waiver_reason = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime, nullable=True, onupdate=func.now())

    # Relationships
    member = relationship("Member", back_populates="assigned_dues")
    plan = relationship("DuesPlan", back_populates="assigned_dues")
    category = relationship("MemberCategory")
    assessment = relationship("DuesAssessment", back_populates="assigned_dues")
    payments = relationship("Payment", back_populates="assigned_due", passive_deletes="all")

    __table_args__ = (
        UniqueConstraint("member_id", "plan_id", "period", name="uq_assigned_due_member_plan_period"),
        Index("idx_assigned_due_member_status", "member_id", "status"),
    )
