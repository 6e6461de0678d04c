from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Integer, Boolean, Enum as SQLEnum, Text, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from clubdues.db.base import Base
import enum
from decimal import Decimal


class MemberStatus(str, enum.Enum):
    """Member status enum."""
    PROSPECT = "prospect"
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class MemberCategory(Base):
    """Membership category (Gold, Silver, ...). Closed reference table."""
    __tablename__ = "member_category"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String(30), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=True)
    rank = Column(Integer, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    members = relationship("Member", back_populates="category")


class Member(Base):
    """Club member as seen by the dues ledger."""
    __tablename__ = "member"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_number = Column(String(30), nullable=True, unique=True, index=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("user.id"), nullable=True, unique=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True)
    category_id = Column(Uuid(as_uuid=True), ForeignKey("member_category.id"), nullable=True, index=True)
    status = Column(SQLEnum(MemberStatus, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=MemberStatus.PENDING, nullable=False)
    outstanding_balance = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))  # Cached; refreshed by the status synchronizer
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    category = relationship("MemberCategory", back_populates="members")
    user = relationship("User", back_populates="member", foreign_keys=[user_id])
    assigned_dues = relationship("AssignedDue", back_populates="member", passive_deletes="all")
    payments = relationship("Payment", back_populates="member", passive_deletes="all")

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
