"""Balance aggregation for units and buildings."""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from condoledger.core.errors import NotFoundError
from condoledger.models.payment import Payment
from condoledger.models.shared import as_decimal
from condoledger.repositories.building_repository import BuildingRepository
from condoledger.repositories.invoice_repository import InvoiceRepository
from condoledger.repositories.payment_repository import PaymentRepository
from condoledger.repositories.unit_repository import UnitRepository

logger = logging.getLogger(__name__)


@dataclass
class InvoiceBalance:
    invoice_id: UUID
    number: str
    period: str
    amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: str


@dataclass
class UnitBalance:
    """Outstanding debt of a unit.

    ``total_debt`` always equals the sum of ``breakdown`` balances.
    """

    unit_id: UUID
    total_debt: Decimal = Decimal("0")
    outstanding_count: int = 0
    pending_payments_amount: Decimal = Decimal("0")
    breakdown: list[InvoiceBalance] = field(default_factory=list)


@dataclass
class BuildingSummary:
    building_id: UUID
    total_units: int
    units_with_debt: int
    total_debt: Decimal
    pending_payments: int
    pending_payments_amount: Decimal
    approved_payments: int
    total_revenue: Decimal
    solvency_rate: Decimal


class BalanceService:
    """Read-only aggregation over the invoice ledger and payment store."""

    def __init__(self, db: Session):
        self.db = db
        self.building_repo = BuildingRepository(db)
        self.unit_repo = UnitRepository(db)
        self.invoice_repo = InvoiceRepository(db)
        self.payment_repo = PaymentRepository(db)

    def _require_unit(self, unit_id: UUID) -> None:
        if self.unit_repo.get_by_id(unit_id) is None:
            raise NotFoundError("unit", unit_id)

    def get_unit_balance(self, unit_id: UUID) -> UnitBalance:
        """Total outstanding debt and per-invoice breakdown, oldest period first.

        Debt comes from a single read of the outstanding invoices so the total
        and the breakdown always agree. Pending payments are reported
        separately and never reduce the debt.
        """
        self._require_unit(unit_id)

        result = UnitBalance(unit_id=unit_id)
        for invoice in self.invoice_repo.get_outstanding(unit_id):
            amount = as_decimal(invoice.amount)
            paid = as_decimal(invoice.paid_amount)
            line = InvoiceBalance(
                invoice_id=invoice.id,  # type: ignore[arg-type]
                number=str(invoice.number),
                period=str(invoice.period),
                amount=amount,
                paid_amount=paid,
                balance=amount - paid,
                status=str(invoice.status),
            )
            result.breakdown.append(line)
            result.total_debt += line.balance
        result.outstanding_count = len(result.breakdown)

        _, result.pending_payments_amount = self.payment_repo.pending_totals(unit_id=unit_id)
        return result

    def get_payment_history(self, unit_id: UUID) -> list[Payment]:
        """Every payment of the unit in any status, newest first."""
        self._require_unit(unit_id)
        return self.payment_repo.get_history(unit_id)

    def get_building_summary(self, building_id: UUID) -> BuildingSummary:
        if self.building_repo.get_by_id(building_id) is None:
            raise NotFoundError("building", building_id)

        total_units = self.building_repo.count_units(building_id)
        debt = self.invoice_repo.debt_by_unit(building_id)
        pending_count, pending_amount = self.payment_repo.pending_totals(building_id=building_id)
        approved_count, revenue = self.payment_repo.approved_totals(building_id)

        if total_units:
            solvent = total_units - len(debt)
            solvency_rate = (Decimal(solvent) * 100 / Decimal(total_units)).quantize(
                Decimal("0.01")
            )
        else:
            solvency_rate = Decimal("0")

        logger.debug(
            "Building %s summary: %d unit(s), %d with debt", building_id, total_units, len(debt)
        )
        return BuildingSummary(
            building_id=building_id,
            total_units=total_units,
            units_with_debt=len(debt),
            total_debt=sum(debt.values(), Decimal("0")),
            pending_payments=pending_count,
            pending_payments_amount=pending_amount,
            approved_payments=approved_count,
            total_revenue=revenue,
            solvency_rate=solvency_rate,
        )
