"""Payment allocation repository for data access."""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from condoledger.models.payment import Payment
from condoledger.models.payment_allocation import AllocationStatus, PaymentAllocation


class PaymentAllocationRepository:
    """Repository for PaymentAllocation model."""

    def __init__(self, db: Session):
        self.db = db

    def create_proposed(
        self,
        payment_id: UUID,
        lines: list[tuple[UUID, str, Decimal]],
    ) -> list[PaymentAllocation]:
        """Store ``(invoice_id, period, amount)`` lines as PROPOSED allocations."""
        allocations = [
            PaymentAllocation(
                payment_id=payment_id,
                invoice_id=invoice_id,
                period=period,
                amount=amount,
                status=AllocationStatus.PROPOSED.value,
            )
            for invoice_id, period, amount in lines
        ]
        self.db.add_all(allocations)
        self.db.flush()
        return allocations

    def get_by_payment_id(self, payment_id: UUID) -> list[PaymentAllocation]:
        """Get all allocations of a payment, oldest period first."""
        return (
            self.db.query(PaymentAllocation)
            .filter(PaymentAllocation.payment_id == payment_id)
            .order_by(PaymentAllocation.period.asc(), PaymentAllocation.created_at.asc())
            .all()
        )

    def get_by_payment_ids(self, payment_ids: list[UUID]) -> dict[UUID, list[PaymentAllocation]]:
        """Allocations grouped by payment, for list endpoints."""
        grouped: dict[UUID, list[PaymentAllocation]] = {pid: [] for pid in payment_ids}
        if not payment_ids:
            return grouped
        rows = (
            self.db.query(PaymentAllocation)
            .filter(PaymentAllocation.payment_id.in_(payment_ids))
            .order_by(PaymentAllocation.period.asc(), PaymentAllocation.created_at.asc())
            .all()
        )
        for row in rows:
            grouped.setdefault(row.payment_id, []).append(row)  # type: ignore[arg-type]
        return grouped

    def get_committed_by_invoice_id(
        self, invoice_id: UUID
    ) -> list[tuple[PaymentAllocation, Payment]]:
        """Committed allocations against an invoice together with their payments."""
        return (
            self.db.query(PaymentAllocation, Payment)
            .join(Payment, Payment.id == PaymentAllocation.payment_id)
            .filter(
                PaymentAllocation.invoice_id == invoice_id,
                PaymentAllocation.status == AllocationStatus.COMMITTED.value,
            )
            .order_by(PaymentAllocation.allocated_at.asc())
            .all()
        )  # type: ignore[return-value]

    def count_proposed_for_invoice(self, invoice_id: UUID) -> int:
        result = (
            self.db.query(sa_func.count(PaymentAllocation.id))
            .filter(
                PaymentAllocation.invoice_id == invoice_id,
                PaymentAllocation.status == AllocationStatus.PROPOSED.value,
            )
            .scalar()
        )
        return int(result or 0)

    def mark_committed(self, allocations: list[PaymentAllocation]) -> None:
        now = datetime.now(UTC)
        for allocation in allocations:
            allocation.status = AllocationStatus.COMMITTED.value  # type: ignore[assignment]
            allocation.allocated_at = now  # type: ignore[assignment]
        self.db.flush()

    def delete(self, allocations: list[PaymentAllocation]) -> int:
        for allocation in allocations:
            self.db.delete(allocation)
        self.db.flush()
        return len(allocations)
