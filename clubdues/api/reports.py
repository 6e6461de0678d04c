from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from clubdues.db.base import get_db
from clubdues.core.dependencies import require_ledger_writer
from clubdues.core.errors import LedgerError, http_error
from clubdues.models.user import User
from clubdues.schemas.reports import OutstandingReportResponse, DashboardResponse
from clubdues.services.reports import outstanding_report, dashboard_totals
from typing import Optional
from datetime import date

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/outstanding", response_model=OutstandingReportResponse)
def get_outstanding_report(
    period: Optional[str] = None,
    category: Optional[str] = None,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Who still owes what, per member, with a grand total."""
    try:
        report = outstanding_report(db, period=period, category_name=category)
    except LedgerError as e:
        raise http_error(e)
    return OutstandingReportResponse.model_validate(report)


@router.get("/dashboard", response_model=DashboardResponse)
def get_dashboard(
    date_from: date,
    date_to: date,
    current_user: User = Depends(require_ledger_writer),
    db: Session = Depends(get_db)
):
    """Dues assessed and payments received in a date range."""
    try:
        totals = dashboard_totals(db, date_from, date_to)
    except LedgerError as e:
        raise http_error(e)
    return DashboardResponse.model_validate(totals)
