from datetime import datetime
from typing import Optional

from clubdues.core.config import LOGS_DIR


def write_audit_log(user_name: str, user_role: str, action: str, details: str = ""):
    LOGS_DIR.mkdir(parents=True, exist_ok=True)
    month_str = datetime.now().strftime("%Y_%m")
    log_file = LOGS_DIR / f"audit_{month_str}.log"
    ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    with open(log_file, "a", encoding="utf-8") as f:
        f.write(f"{ts} | {user_role} | {user_name} | {action} | {details}\n")


def audit_action(actor, action: str, details: str = ""):
    """Audit an action on behalf of a User (or the system when actor is None)."""
    user_name: Optional[str] = actor.display_name if actor is not None else "system"
    user_role = actor.role.value if actor is not None and actor.role else "system"
    write_audit_log(user_name=user_name, user_role=user_role, action=action, details=details)
