"""Invoice ledger: debt loading, outstanding queries and payment application."""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from condoledger.core.errors import (
    InvalidStateError,
    NotFoundError,
    OverpaymentError,
    StorageError,
    ValidationError,
)
from condoledger.core.retry import run_in_transaction
from condoledger.models.invoice import OUTSTANDING_STATUSES, Invoice, InvoiceStatus
from condoledger.models.payment import Payment
from condoledger.models.payment_allocation import PaymentAllocation
from condoledger.models.shared import as_decimal
from condoledger.models.unit import Unit
from condoledger.repositories.invoice_repository import InvoiceRepository
from condoledger.repositories.payment_allocation_repository import PaymentAllocationRepository
from condoledger.repositories.unit_repository import UnitRepository
from condoledger.services.audit_service import AuditService
from condoledger.services.periods import period_from_parts, positive_money, validate_period

logger = logging.getLogger(__name__)

# Compare-and-set attempts when another transaction moves the paid amount under us
APPLY_CAS_ATTEMPTS = 3


@dataclass
class DebtItem:
    """Validated input for one invoice of a debt load."""

    unit: Unit
    amount: Decimal
    period: str
    description: str
    due_date: datetime | None


class InvoiceLedger:
    """Owns invoices: creation, outstanding queries and paid-amount updates."""

    def __init__(self, db: Session):
        self.db = db
        self.invoice_repo = InvoiceRepository(db)
        self.unit_repo = UnitRepository(db)
        self.allocation_repo = PaymentAllocationRepository(db)
        self.audit = AuditService(db)

    def _validate_item(
        self,
        unit_id: UUID,
        amount: Decimal,
        period: str,
        description: str,
        due_date: datetime | None,
    ) -> DebtItem:
        value = positive_money(amount)
        period = validate_period(period)
        unit = self.unit_repo.get_by_id(unit_id)
        if unit is None:
            raise NotFoundError("unit", unit_id)
        return DebtItem(
            unit=unit,
            amount=value,
            period=period,
            description=(description or "").strip(),
            due_date=due_date,
        )

    def _insert(self, item: DebtItem, acting_user: str | None) -> Invoice:
        invoice = self.invoice_repo.create(
            unit_id=item.unit.id,  # type: ignore[arg-type]
            building_id=item.unit.building_id,  # type: ignore[arg-type]
            amount=item.amount,
            period=item.period,
            description=item.description,
            due_date=item.due_date,
        )
        self.audit.log_create(
            "invoice",
            invoice.id,  # type: ignore[arg-type]
            actor_id=acting_user,
            data={
                "number": invoice.number,
                "unit_id": str(invoice.unit_id),
                "period": item.period,
                "amount": str(item.amount),
            },
        )
        return invoice

    def create_invoice(
        self,
        unit_id: UUID,
        amount: Decimal,
        period: str,
        description: str = "",
        due_date: datetime | None = None,
        acting_user: str | None = None,
    ) -> Invoice:
        """Load a debt for one unit and period.

        Raises:
            ValidationError: amount is not positive or period is not YYYY-MM.
            NotFoundError: the unit does not exist.
        """
        item = self._validate_item(unit_id, amount, period, description, due_date)
        invoice = run_in_transaction(
            self.db, "create_invoice", lambda: self._insert(item, acting_user)
        )
        logger.info(
            "Created invoice %s for unit %s period %s amount %s",
            invoice.number,
            unit_id,
            item.period,
            item.amount,
        )
        return invoice

    def create_invoices_batch(
        self,
        items: list[tuple[UUID, Decimal, str, str, datetime | None]],
        acting_user: str | None = None,
    ) -> list[Invoice]:
        """Load many debts at once. Every item is validated before anything is written."""
        validated = [self._validate_item(*item) for item in items]

        def _insert_all() -> list[Invoice]:
            return [self._insert(item, acting_user) for item in validated]

        invoices = run_in_transaction(self.db, "create_invoices_batch", _insert_all)
        logger.info("Loaded %d invoice(s) in batch", len(invoices))
        return invoices

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        invoice = self.invoice_repo.get_by_id(invoice_id)
        if invoice is None:
            raise NotFoundError("invoice", invoice_id)
        return invoice

    def list_invoices(
        self,
        skip: int = 0,
        limit: int = 100,
        building_id: UUID | None = None,
        unit_id: UUID | None = None,
        status: InvoiceStatus | None = None,
        period: str | None = None,
        year: int | None = None,
        month: int | None = None,
    ) -> list[Invoice]:
        if month is not None and year is None:
            raise ValidationError("month requires year", field="month")
        if year and month:
            period = period_from_parts(year, month)
            year = None
        if period:
            period = validate_period(period)
        return self.invoice_repo.get_all(
            skip=skip,
            limit=limit,
            building_id=building_id,
            unit_id=unit_id,
            status=status,
            period=period,
            year=year,
        )

    def list_outstanding(self, unit_id: UUID) -> list[Invoice]:
        """PENDING and PARTIAL invoices of the unit, oldest period first."""
        if self.unit_repo.get_by_id(unit_id) is None:
            raise NotFoundError("unit", unit_id)
        return self.invoice_repo.get_outstanding(unit_id)

    def get_invoice_payments(self, invoice_id: UUID) -> list[tuple[PaymentAllocation, Payment]]:
        """Committed allocations against an invoice, with the payments behind them."""
        self.get_invoice(invoice_id)
        return self.allocation_repo.get_committed_by_invoice_id(invoice_id)

    def apply_payment(self, invoice_id: UUID, amount: Decimal) -> Invoice:
        """Increase an invoice's paid amount, bounded by its total.

        Only flushes; the caller owns the transaction. The write is a
        compare-and-set on the paid amount read under a row lock, so two
        transactions can never both push the same invoice past its total.

        Raises:
            NotFoundError: the invoice does not exist.
            OverpaymentError: ``amount`` exceeds the remaining balance, or the
                invoice can no longer receive payments.
        """
        amount = positive_money(amount)

        for _ in range(APPLY_CAS_ATTEMPTS):
            invoice = self.invoice_repo.get_by_id(invoice_id, for_update=True)
            if invoice is None:
                raise NotFoundError("invoice", invoice_id)

            total = as_decimal(invoice.amount)
            paid = as_decimal(invoice.paid_amount)
            available = total - paid if invoice.status in OUTSTANDING_STATUSES else Decimal("0")
            if amount > available:
                logger.warning(
                    "Rejected overpayment of %s on invoice %s (%s available)",
                    amount,
                    invoice_id,
                    available,
                )
                raise OverpaymentError(invoice_id, amount, available)

            if self.invoice_repo.compare_and_set_paid(invoice, paid, paid + amount):
                logger.info(
                    "Applied %s to invoice %s: paid %s/%s, status %s",
                    amount,
                    invoice.number,
                    invoice.paid_amount,
                    invoice.amount,
                    invoice.status,
                )
                return invoice
            self.db.expire(invoice)

        raise StorageError("apply_payment", APPLY_CAS_ATTEMPTS)

    def cancel_invoice(self, invoice_id: UUID, acting_user: str | None = None) -> Invoice:
        """Soft-cancel an invoice that has received no money and has no pending claims."""

        def _cancel() -> Invoice:
            invoice = self.invoice_repo.get_by_id(invoice_id, for_update=True)
            if invoice is None:
                raise NotFoundError("invoice", invoice_id)
            old_status = str(invoice.status)
            if old_status != InvoiceStatus.PENDING.value or as_decimal(invoice.paid_amount) > 0:
                raise InvalidStateError("invoice", invoice_id, old_status, "cancel")
            if self.allocation_repo.count_proposed_for_invoice(invoice_id):
                raise InvalidStateError(
                    "invoice", invoice_id, "awaiting payment approval", "cancel"
                )
            if not self.invoice_repo.cancel(invoice):
                raise InvalidStateError("invoice", invoice_id, old_status, "cancel")
            self.audit.log_status_change(
                "invoice",
                invoice_id,
                old_status,
                InvoiceStatus.CANCELLED.value,
                actor_id=acting_user,
            )
            return invoice

        invoice = run_in_transaction(self.db, "cancel_invoice", _cancel)
        logger.info("Cancelled invoice %s", invoice.number)
        return invoice
