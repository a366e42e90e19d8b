from condoledger.models.audit_log import AuditLog, AuditResource
from condoledger.models.building import Building
from condoledger.models.idempotency_record import IdempotencyRecord
from condoledger.models.invoice import OUTSTANDING_STATUSES, Invoice, InvoiceStatus
from condoledger.models.payment import Payment, PaymentMethod, PaymentStatus
from condoledger.models.payment_allocation import AllocationStatus, PaymentAllocation
from condoledger.models.unit import Unit

__all__ = [
    "AllocationStatus",
    "AuditLog",
    "AuditResource",
    "Building",
    "IdempotencyRecord",
    "Invoice",
    "InvoiceStatus",
    "OUTSTANDING_STATUSES",
    "Payment",
    "PaymentAllocation",
    "PaymentMethod",
    "PaymentStatus",
    "Unit",
]
