from pydantic_settings import BaseSettings
from typing import Optional
from pathlib import Path

# Find .env file - check clubdues/ directory first, then project root
BASE_DIR = Path(__file__).resolve().parent.parent.parent
APP_ENV = BASE_DIR / "clubdues" / ".env"
ROOT_ENV = BASE_DIR / ".env"

# Use clubdues/.env if it exists, otherwise try root .env
env_file = str(APP_ENV) if APP_ENV.exists() else (str(ROOT_ENV) if ROOT_ENV.exists() else ".env")


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # SMTP
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: Optional[int] = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    FROM_EMAIL: Optional[str] = None
    REPLY_TO_EMAIL: Optional[str] = None

    # Dues ledger policy
    DEFAULT_CURRENCY: str = "GHS"
    ASSESSMENT_INCLUDE_PENDING_MEMBERS: bool = True  # PENDING/PROSPECT members are assessed alongside ACTIVE
    REJECT_MISMATCHED_ASSIGNED_DUE: bool = True  # False = accept and flag cross-posted payments

    # Reconciliation sweep
    RECONCILIATION_SWEEP_ENABLED: bool = True
    RECONCILIATION_SWEEP_INTERVAL_MINUTES: int = 60

    # Application
    AUDIT_LOG_DIR: Optional[str] = None
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = env_file
        case_sensitive = True


settings = Settings()

# Derived paths
LOGS_DIR = Path(settings.AUDIT_LOG_DIR) if settings.AUDIT_LOG_DIR else BASE_DIR / "logs"
