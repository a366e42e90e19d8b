from condoledger.schemas.audit_log import AuditLogResponse
from condoledger.schemas.balance import InvoiceBalanceLine, UnitBalanceResponse
from condoledger.schemas.building import (
    BuildingCreate,
    BuildingResponse,
    BuildingSummaryResponse,
    UnitBatchCreate,
    UnitCreate,
    UnitResponse,
)
from condoledger.schemas.invoice import (
    InvoiceBatchCreate,
    InvoiceCreate,
    InvoicePaymentResponse,
    InvoiceResponse,
)
from condoledger.schemas.payment import (
    AllocationRequest,
    AllocationResponse,
    PaymentApprove,
    PaymentCreate,
    PaymentReallocate,
    PaymentReject,
    PaymentResponse,
    PaymentStatusUpdate,
    normalize_legacy_periods,
)

__all__ = [
    "AllocationRequest",
    "AllocationResponse",
    "AuditLogResponse",
    "BuildingCreate",
    "BuildingResponse",
    "BuildingSummaryResponse",
    "InvoiceBalanceLine",
    "InvoiceBatchCreate",
    "InvoiceCreate",
    "InvoicePaymentResponse",
    "InvoiceResponse",
    "PaymentApprove",
    "PaymentCreate",
    "PaymentReallocate",
    "PaymentReject",
    "PaymentResponse",
    "PaymentStatusUpdate",
    "UnitBalanceResponse",
    "UnitBatchCreate",
    "UnitCreate",
    "UnitResponse",
    "normalize_legacy_periods",
]
