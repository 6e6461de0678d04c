from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from clubdues.api import auth, admin, dues, payments, members, reports
from clubdues.core.config import settings
from clubdues.services.scheduler import start_scheduler, stop_scheduler
import logging

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

# Get logger for this module
logger = logging.getLogger(__name__)
logger.info("Starting Club Dues Ledger API")

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.RECONCILIATION_SWEEP_ENABLED:
        start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Club Dues Ledger API",
    description="Dues assessment and payment reconciliation for membership clubs",
    version=VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed requests are client errors: 400 with the offending fields."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": errors})


# Include routers
app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(dues.router)
app.include_router(payments.router)
app.include_router(members.router)
app.include_router(reports.router)


@app.get("/")
def root():
    """Root endpoint."""
    return {"message": "Club Dues Ledger API", "version": VERSION}


@app.get("/api/health")
def health_check():
    """Health check endpoint; checks API and database connectivity."""
    from clubdues.db.base import SessionLocal
    from clubdues.services.scheduler import get_scheduler_status
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from datetime import datetime, timezone

    db_status = "unreachable"
    db_error = None
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_status = "connected"
    except SQLAlchemyError as e:
        db_error = str(e)
    finally:
        db.close()

    status = "healthy" if db_status == "connected" else "degraded"

    return {
        "status": status,
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {
            "api": "ok",
            "database": db_status,
            "scheduler": "running" if get_scheduler_status()["running"] else "stopped",
        },
        **({"database_error": db_error} if db_error else {})
    }
