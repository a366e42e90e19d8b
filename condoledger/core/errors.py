"""Typed exceptions raised by the reconciliation services.

Every exception carries a static ``code`` and the structured context a caller
needs to build an actionable message (offending invoice, requested vs.
available amount). Routers translate them to HTTP responses through the
handlers registered in ``condoledger.main``.

    CondoLedgerError
    +-- ValidationError          400
    +-- NotFoundError            404
    +-- OverpaymentError         409
    +-- AllocationMismatchError  409
    +-- InvalidStateError        409
    +-- StorageError             503
"""

from decimal import Decimal
from typing import Any
from uuid import UUID


class CondoLedgerError(Exception):
    """Base exception for all reconciliation errors."""

    code: str = "CONDO_LEDGER_ERROR"
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        """Structured context for API responses and logs."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.details()}


class ValidationError(CondoLedgerError):
    """Malformed input: non-positive amount, bad period format, empty reason."""

    code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {"field": self.field} if self.field else {}


class NotFoundError(CondoLedgerError):
    """Referenced unit, building, invoice or payment does not exist."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource_type: str, resource_id: UUID | str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type.capitalize()} {resource_id} not found")

    def details(self) -> dict[str, Any]:
        return {"resource_type": self.resource_type, "resource_id": str(self.resource_id)}


class OverpaymentError(CondoLedgerError):
    """Applying an amount would push an invoice's paid amount above its total."""

    code = "OVERPAYMENT"
    status_code = 409

    def __init__(self, invoice_id: UUID, requested: Decimal, available: Decimal):
        self.invoice_id = invoice_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Cannot apply {requested} to invoice {invoice_id}: only {available} outstanding"
        )

    def details(self) -> dict[str, Any]:
        return {
            "invoice_id": str(self.invoice_id),
            "requested": str(self.requested),
            "available": str(self.available),
        }


class AllocationMismatchError(CondoLedgerError):
    """An explicit allocation request violates an allocation invariant.

    The whole request is rejected; nothing is applied.
    """

    code = "ALLOCATION_MISMATCH"
    status_code = 409

    def __init__(
        self,
        message: str,
        invoice_id: UUID | None = None,
        requested: Decimal | None = None,
        available: Decimal | None = None,
    ):
        self.invoice_id = invoice_id
        self.requested = requested
        self.available = available
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.invoice_id is not None:
            data["invoice_id"] = str(self.invoice_id)
        if self.requested is not None:
            data["requested"] = str(self.requested)
        if self.available is not None:
            data["available"] = str(self.available)
        return data


class InvalidStateError(CondoLedgerError):
    """A state-machine precondition was violated (e.g. double approval)."""

    code = "INVALID_STATE"
    status_code = 409

    def __init__(
        self,
        resource_type: str,
        resource_id: UUID,
        current_status: str,
        attempted: str,
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.current_status = current_status
        self.attempted = attempted
        super().__init__(
            f"Cannot {attempted} {resource_type} {resource_id} in status '{current_status}'"
        )

    def details(self) -> dict[str, Any]:
        return {
            "resource_type": self.resource_type,
            "resource_id": str(self.resource_id),
            "current_status": self.current_status,
            "attempted": self.attempted,
        }


class StorageError(CondoLedgerError):
    """Transient persistence failure that survived the retry budget."""

    code = "STORAGE_ERROR"
    status_code = 503

    def __init__(self, operation: str, attempts: int, cause: Exception | None = None):
        self.operation = operation
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Storage failure during {operation} after {attempts} attempt(s)")

    def details(self) -> dict[str, Any]:
        return {"operation": self.operation, "attempts": self.attempts, "retryable": True}
