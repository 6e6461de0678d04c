from fastapi import APIRouter, Depends, HTTPException
from clubdues.core.dependencies import require_admin
from clubdues.models.user import User
from clubdues.services.scheduler import get_scheduler_status, reschedule_sweep
from pydantic import BaseModel, Field
from typing import List, Optional

router = APIRouter(prefix="/api/admin", tags=["admin"])


class SchedulerJob(BaseModel):
    id: str
    name: str
    next_run_time: Optional[str] = None


class SchedulerStatusResponse(BaseModel):
    running: bool
    interval_minutes: Optional[int] = None
    jobs: List[SchedulerJob] = Field(default_factory=list)


class SchedulerIntervalUpdate(BaseModel):
    interval_minutes: int = Field(..., ge=1, le=24 * 60)


@router.get("/scheduler", response_model=SchedulerStatusResponse)
def get_scheduler(current_user: User = Depends(require_admin)):
    """Reconciliation sweep scheduler state (Admin only)."""
    return get_scheduler_status()


@router.put("/scheduler", response_model=SchedulerStatusResponse)
def update_scheduler(
    update: SchedulerIntervalUpdate,
    current_user: User = Depends(require_admin)
):
    """Change the sweep interval until the next restart (Admin only)."""
    try:
        reschedule_sweep(update.interval_minutes)
    except RuntimeError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return get_scheduler_status()
