from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from uuid import UUID
from clubdues.models.member import MemberStatus
from clubdues.schemas.dues import AssignedDueResponse
from clubdues.schemas.payment import PaymentResponse


class MemberBalanceResponse(BaseModel):
    member_id: UUID
    total_assessed: Decimal
    total_paid: Decimal
    outstanding_balance: Decimal
    currency: Optional[str] = None


class StatementResponse(BaseModel):
    member_id: UUID
    member_name: str
    member_number: Optional[str] = None
    category: Optional[str] = None
    status: MemberStatus
    dues: List[AssignedDueResponse] = Field(default_factory=list)
    payments: List[PaymentResponse] = Field(default_factory=list)
    balance: MemberBalanceResponse
