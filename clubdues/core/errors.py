"""Ledger exception taxonomy and its mapping to HTTP errors."""
from typing import Any, Optional

from fastapi import HTTPException, status


class LedgerError(Exception):
    """Base class for dues ledger failures."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def detail(self) -> Any:
        return self.message


class ValidationError(LedgerError):
    """Bad input; always carries the offending field."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def detail(self) -> Any:
        return {"field": self.field, "message": self.message}


class InvalidAmount(ValidationError):
    def __init__(self, message: str = "Amount must be > 0"):
        super().__init__("amount", message)


class NotFoundError(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND
    entity = "Record"

    def __init__(self, entity_id: Optional[Any] = None):
        super().__init__(f"{self.entity} not found")
        self.entity_id = entity_id


class MemberNotFound(NotFoundError):
    entity = "Member"


class PlanNotFound(NotFoundError):
    entity = "Plan"


class AssignedDueNotFound(NotFoundError):
    entity = "Assigned due"


class PaymentNotFound(NotFoundError):
    entity = "Payment"


class NoTargetMembers(LedgerError):
    """Business rule failure: the target selector resolved to nobody."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "No target members found"):
        super().__init__(message)


class MismatchedAssignedDue(ValidationError):
    def __init__(self, assigned_due_id: Any, member_id: Any):
        super().__init__(
            "assigned_due_id",
            f"Assigned due {assigned_due_id} does not belong to member {member_id}",
        )


class PersistenceError(LedgerError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def http_error(exc: LedgerError) -> HTTPException:
    """Translate a ledger error into the HTTPException the routes raise."""
    return HTTPException(status_code=exc.status_code, detail=exc.detail())
