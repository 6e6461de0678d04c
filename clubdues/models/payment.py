from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Numeric, Boolean, Enum as SQLEnum, Text, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from clubdues.db.base import Base
import enum


class PaymentMethod(str, enum.Enum):
    """How a payment was settled."""
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    MOBILE_MONEY = "MOBILE_MONEY"
    CARD = "CARD"


class Payment(Base):
    """Settled payment. Append-only: corrections are reversals, never edits."""
    __tablename__ = "payment"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("member.id", ondelete="RESTRICT"), nullable=False, index=True)
    plan_id = Column(Uuid(as_uuid=True), ForeignKey("dues_plan.id", ondelete="RESTRICT"), nullable=True, index=True)
    assigned_due_id = Column(Uuid(as_uuid=True), ForeignKey("assigned_due.id", ondelete="RESTRICT"), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    method = Column(SQLEnum(PaymentMethod, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=PaymentMethod.CASH, nullable=False)
    paid_at = Column(Date, nullable=False, index=True)
    reference = Column(String(100), nullable=True)
    description = Column(String(255), nullable=True)
    cross_posted = Column(Boolean, default=False, nullable=False)  # Linked due belongs to another member
    recorded_by = Column(Uuid(as_uuid=True), ForeignKey("user.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    reversed_at = Column(DateTime, nullable=True)
    reversed_by = Column(Uuid(as_uuid=True), ForeignKey("user.id"), nullable=True)
    reversal_reason = Column(Text, nullable=True)

    # Relationships
    member = relationship("Member", back_populates="payments")
    plan = relationship("DuesPlan")
    assigned_due = relationship("AssignedDue", back_populates="payments")

    @property
    def is_reversed(self) -> bool:
        return self.reversed_at is not None
