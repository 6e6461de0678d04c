from pydantic import BaseModel, Field
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from clubdues.models.payment import PaymentMethod


class PaymentCreate(BaseModel):
    """Schema for recording a settled payment."""
    member_id: UUID
    amount: Decimal = Field(..., description="Amount paid; must be > 0 with at most two decimals")
    paid_at: date
    method: PaymentMethod = PaymentMethod.CASH
    plan_id: Optional[UUID] = None
    assigned_due_id: Optional[UUID] = Field(None, description="Due this payment settles; unlinked payments never reduce a balance")
    reference: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    description: Optional[str] = Field(None, max_length=255)


class PaymentResponse(BaseModel):
    id: UUID
    member_id: UUID
    plan_id: Optional[UUID] = None
    assigned_due_id: Optional[UUID] = None
    amount: Decimal
    currency: str
    method: PaymentMethod
    paid_at: date
    reference: Optional[str] = None
    description: Optional[str] = None
    cross_posted: bool = False
    recorded_by: Optional[UUID] = None
    created_at: Optional[datetime] = None
    reversed_at: Optional[datetime] = None
    reversal_reason: Optional[str] = None

    class Config:
        from_attributes = True


class PaymentReversal(BaseModel):
    reason: str = Field(..., min_length=1)
