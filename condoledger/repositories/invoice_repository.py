from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from condoledger.core.database import supports_row_locks
from condoledger.models.invoice import OUTSTANDING_STATUSES, Invoice, InvoiceStatus
from condoledger.models.shared import as_decimal


def status_for(amount: Decimal, paid_amount: Decimal) -> InvoiceStatus:
    """Derive the settlement status from the paid amount."""
    if paid_amount <= 0:
        return InvoiceStatus.PENDING
    if paid_amount >= amount:
        return InvoiceStatus.PAID
    return InvoiceStatus.PARTIAL


class InvoiceRepository:
    def __init__(self, db: Session):
        self.db = db

    def _generate_invoice_number(self, period: str) -> str:
        """Generate a unique invoice number for the period, e.g. ``INV-202401-0007``."""
        prefix = f"INV-{period.replace('-', '')}-"

        result = (
            self.db.query(Invoice.number)
            .filter(Invoice.number.like(f"{prefix}%"))
            .order_by(Invoice.number.desc())
            .first()
        )

        if result:
            try:
                new_num = int(result[0].split("-")[-1]) + 1
            except (ValueError, IndexError):
                new_num = 1
        else:
            new_num = 1

        return f"{prefix}{new_num:04d}"

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        building_id: UUID | None = None,
        unit_id: UUID | None = None,
        status: InvoiceStatus | None = None,
        period: str | None = None,
        year: int | None = None,
    ) -> list[Invoice]:
        query = self.db.query(Invoice)

        if building_id:
            query = query.filter(Invoice.building_id == building_id)
        if unit_id:
            query = query.filter(Invoice.unit_id == unit_id)
        if status:
            query = query.filter(Invoice.status == status.value)
        if period:
            query = query.filter(Invoice.period == period)
        if year:
            query = query.filter(Invoice.period.like(f"{int(year):04d}-%"))

        return (
            query.order_by(Invoice.period.desc(), Invoice.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_by_id(self, invoice_id: UUID, for_update: bool = False) -> Invoice | None:
        query = self.db.query(Invoice).filter(Invoice.id == invoice_id)
        if for_update and supports_row_locks(self.db):
            query = query.with_for_update()
        return query.first()

    def get_outstanding(self, unit_id: UUID) -> list[Invoice]:
        """PENDING and PARTIAL invoices of a unit, oldest period first.

        Invoices sharing a period fall back to creation order, then number.
        """
        return (
            self.db.query(Invoice)
            .filter(Invoice.unit_id == unit_id, Invoice.status.in_(OUTSTANDING_STATUSES))
            .order_by(Invoice.period.asc(), Invoice.created_at.asc(), Invoice.number.asc())
            .all()
        )

    def create(
        self,
        unit_id: UUID,
        building_id: UUID,
        amount: Decimal,
        period: str,
        description: str = "",
        due_date: datetime | None = None,
    ) -> Invoice:
        invoice = Invoice(
            number=self._generate_invoice_number(period),
            unit_id=unit_id,
            building_id=building_id,
            amount=amount,
            paid_amount=Decimal("0"),
            status=InvoiceStatus.PENDING.value,
            period=period,
            description=description,
            issue_date=datetime.now(UTC),
            due_date=due_date,
        )
        self.db.add(invoice)
        self.db.flush()
        return invoice

    def compare_and_set_paid(
        self,
        invoice: Invoice,
        expected_paid: Decimal,
        new_paid: Decimal,
    ) -> bool:
        """Write ``new_paid`` only if the stored paid amount is still ``expected_paid``.

        Returns False when another transaction changed the invoice in between.
        """
        new_status = status_for(as_decimal(invoice.amount), new_paid)
        updated = (
            self.db.query(Invoice)
            .filter(
                Invoice.id == invoice.id,
                Invoice.paid_amount == expected_paid,
                Invoice.status.in_(OUTSTANDING_STATUSES),
            )
            .update(
                {
                    Invoice.paid_amount: new_paid,
                    Invoice.status: new_status.value,
                    Invoice.updated_at: datetime.now(UTC),
                },
                synchronize_session=False,
            )
        )
        self.db.flush()
        if updated:
            self.db.refresh(invoice)
        return bool(updated)

    def cancel(self, invoice: Invoice) -> bool:
        """Soft-cancel an unpaid invoice. Returns False if it was paid in the meantime."""
        updated = (
            self.db.query(Invoice)
            .filter(
                Invoice.id == invoice.id,
                Invoice.status == InvoiceStatus.PENDING.value,
                Invoice.paid_amount == 0,
            )
            .update(
                {
                    Invoice.status: InvoiceStatus.CANCELLED.value,
                    Invoice.cancelled_at: datetime.now(UTC),
                },
                synchronize_session=False,
            )
        )
        self.db.flush()
        if updated:
            self.db.refresh(invoice)
        return bool(updated)

    def debt_by_unit(self, building_id: UUID) -> dict[UUID, Decimal]:
        """Outstanding balance per unit of a building; units without debt are omitted."""
        rows = (
            self.db.query(Invoice.unit_id, Invoice.amount, Invoice.paid_amount)
            .filter(
                Invoice.building_id == building_id,
                Invoice.status.in_(OUTSTANDING_STATUSES),
            )
            .all()
        )
        debt: dict[UUID, Decimal] = {}
        for unit_id, amount, paid in rows:
            balance = as_decimal(amount) - as_decimal(paid)
            if balance > 0:
                debt[unit_id] = debt.get(unit_id, Decimal("0")) + balance
        return debt
