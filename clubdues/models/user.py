from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from clubdues.db.base import Base
import enum


class UserRoleEnum(str, enum.Enum):
    """Operator role."""
    ADMIN = "admin"
    TREASURER = "treasurer"
    MEMBER = "member"


class User(Base):
    """Login account for operators and members."""
    __tablename__ = "user"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRoleEnum, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), default=UserRoleEnum.MEMBER)
    approved = Column(Boolean, nullable=True, default=None)
    date_joined = Column(DateTime, nullable=True, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    member = relationship("Member", back_populates="user", uselist=False, foreign_keys="[Member.user_id]")

    @property
    def display_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip() or self.email
