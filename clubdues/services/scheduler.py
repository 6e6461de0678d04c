"""Background scheduler for the periodic reconciliation sweep."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError

from clubdues.core.config import settings
from clubdues.db.base import SessionLocal
from clubdues.models.user import User, UserRoleEnum
from clubdues.services.synchronizer import run_reconciliation_sweep

logger = logging.getLogger(__name__)

JOB_ID = "reconciliation_sweep"

scheduler: AsyncIOScheduler | None = None


def run_scheduled_sweep(session_factory=SessionLocal) -> dict | None:
    """Run one sweep and notify treasurers when it repaired anything."""
    db = session_factory()
    try:
        report = run_reconciliation_sweep(db)
        if not report.dues_changed and not report.balances_changed:
            return report.as_dict()

        treasurers = db.query(User).filter(
            User.role == UserRoleEnum.TREASURER,
        ).all()
        treasurer_emails = [t.email for t in treasurers if t.email]
        if treasurer_emails:
            from clubdues.core.email import send_reconciliation_report
            send_reconciliation_report(to_emails=treasurer_emails, report=report.as_dict())
        return report.as_dict()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error in scheduled reconciliation sweep")
        return None
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Scheduler lifecycle helpers
# ---------------------------------------------------------------------------

def start_scheduler() -> None:
    """Create and start the background scheduler."""
    global scheduler
    interval = settings.RECONCILIATION_SWEEP_INTERVAL_MINUTES

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_scheduled_sweep,
        trigger=IntervalTrigger(minutes=interval),
        id=JOB_ID,
        name="Reconcile assigned due statuses and member balances",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Background scheduler started with interval=%d minutes", interval)


def stop_scheduler() -> None:
    """Shut down the background scheduler gracefully."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
    scheduler = None


def reschedule_sweep(new_interval: int) -> None:
    """Change the sweep interval at runtime."""
    if not scheduler or not scheduler.running:
        raise RuntimeError("Scheduler is not running")

    scheduler.reschedule_job(JOB_ID, trigger=IntervalTrigger(minutes=new_interval))
    logger.info("Reconciliation sweep rescheduled to interval=%d minutes", new_interval)


def get_scheduler_status() -> dict:
    """Return current scheduler state for the health endpoint."""
    if not scheduler or not scheduler.running:
        return {"running": False, "interval_minutes": None, "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        })

    current_interval = settings.RECONCILIATION_SWEEP_INTERVAL_MINUTES
    job = scheduler.get_job(JOB_ID)
    if job and hasattr(job.trigger, "interval"):
        current_interval = int(job.trigger.interval.total_seconds() / 60)

    return {
        "running": True,
        "interval_minutes": current_interval,
        "jobs": jobs,
    }
