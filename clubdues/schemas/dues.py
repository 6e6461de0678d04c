from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from clubdues.models.dues import BillingCycle, DueStatus, TargetType


class PlanCreate(BaseModel):
    """Schema for creating a dues plan."""
    code: str = Field(..., min_length=1, max_length=50, description="Unique plan code (e.g., 'SILVER_QUARTERLY')")
    name: str = Field(..., min_length=1, max_length=150)
    amount: Decimal = Field(..., ge=0, description="Amount per period")
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="ISO currency code; defaults to the configured currency")
    billing_cycle: BillingCycle = BillingCycle.ONE_TIME
    target_category: Optional[str] = Field(None, description="Category name this plan is normally assessed against")
    description: Optional[str] = None
    active: bool = True


class PlanUpdate(BaseModel):
    """Schema for updating a dues plan. Assigned dues keep their amounts."""
    name: Optional[str] = Field(None, max_length=150)
    description: Optional[str] = None
    amount: Optional[Decimal] = Field(None, ge=0)
    active: Optional[bool] = None


class PlanResponse(BaseModel):
    id: UUID
    code: str
    name: str
    description: Optional[str] = None
    amount: Decimal
    currency: str
    billing_cycle: BillingCycle
    target_category_id: Optional[UUID] = None
    active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssessmentRequest(BaseModel):
    """Schema for assessing a plan against a category or a list of members."""
    plan_id: UUID
    period: str = Field(..., description="YYYY, YYYY-MM, YYYY-Qn or YYYY-MM-DD")
    target_type: TargetType = TargetType.CATEGORY
    target_category: Optional[str] = Field(None, description="Category name when target_type is CATEGORY")
    member_ids: List[UUID] = Field(default_factory=list, description="Member ids when target_type is INDIVIDUAL")
    include_pending: Optional[bool] = Field(None, description="Override for assessing PENDING/PROSPECT members")
    due_date: Optional[date] = Field(None, description="Defaults to the end of the period")


class SkippedMemberResponse(BaseModel):
    member_id: UUID
    reason: str

    class Config:
        from_attributes = True


class AssessmentResponse(BaseModel):
    assessment_id: UUID
    assigned_dues_count: int
    skipped: List[SkippedMemberResponse] = Field(default_factory=list)


class AssessmentRecordResponse(BaseModel):
    id: UUID
    plan_id: UUID
    period: str
    target_type: TargetType
    target_category_id: Optional[UUID] = None
    assigned_count: int
    skipped_count: int
    created_by: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AssignedDueResponse(BaseModel):
    id: UUID
    member_id: UUID
    member_name: Optional[str] = None
    plan_id: UUID
    plan_code: Optional[str] = None
    category_id: Optional[UUID] = None
    assessment_id: Optional[UUID] = None
    amount: Decimal
    currency: str
    period: str
    period_start: date
    period_end: date
    due_date: date
    status: DueStatus
    reference: str
    notes: Optional[str] = None
    paid_amount: Decimal
    remaining_amount: Decimal
    waived_at: Optional[datetime] = None
    waiver_reason: Optional[str] = None
    created_at: Optional[datetime] = None


class WaiveRequest(BaseModel):
    reason: str = Field(..., min_length=1, description="Why the due is being waived")


class BulkWaiveRequest(BaseModel):
    assigned_due_ids: List[UUID] = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, description="Why the dues are being waived")


class WaiveFailureResponse(BaseModel):
    assigned_due_id: UUID
    error: str


class BulkWaiveResponse(BaseModel):
    waived: List[AssignedDueResponse] = Field(default_factory=list)
    failed: List[WaiveFailureResponse] = Field(default_factory=list)


class SweepReportResponse(BaseModel):
    dues_checked: int
    dues_changed: int
    members_checked: int
    balances_changed: int
    changed_dues: List[dict] = Field(default_factory=list)
