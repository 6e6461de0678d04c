from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date
from decimal import Decimal
from uuid import UUID
from clubdues.models.dues import DueStatus


class OutstandingItemResponse(BaseModel):
    assigned_due_id: UUID
    reference: str
    period: str
    due_date: date
    status: DueStatus
    amount: Decimal
    paid: Decimal
    remaining: Decimal

    class Config:
        from_attributes = True


class MemberOutstandingResponse(BaseModel):
    member_id: UUID
    member_name: str
    member_number: Optional[str] = None
    count: int
    total: Decimal
    items: List[OutstandingItemResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class OutstandingReportResponse(BaseModel):
    period: Optional[str] = None
    category: Optional[str] = None
    members: List[MemberOutstandingResponse] = Field(default_factory=list)
    grand_total: Decimal

    class Config:
        from_attributes = True


class DashboardResponse(BaseModel):
    date_from: date
    date_to: date
    dues_assessed_count: int
    dues_assessed_total: Decimal
    payments_count: int
    payments_total: Decimal
    outstanding_total: Decimal

    class Config:
        from_attributes = True
