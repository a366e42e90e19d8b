from condoledger.repositories.audit_log_repository import AuditLogRepository
from condoledger.repositories.building_repository import BuildingRepository
from condoledger.repositories.idempotency_repository import IdempotencyRepository
from condoledger.repositories.invoice_repository import InvoiceRepository
from condoledger.repositories.payment_allocation_repository import PaymentAllocationRepository
from condoledger.repositories.payment_repository import PaymentRepository
from condoledger.repositories.unit_repository import UnitRepository

__all__ = [
    "AuditLogRepository",
    "BuildingRepository",
    "IdempotencyRepository",
    "InvoiceRepository",
    "PaymentAllocationRepository",
    "PaymentRepository",
    "UnitRepository",
]
