"""Payment repository for data access."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func as sa_func
from sqlalchemy import select
from sqlalchemy.orm import Session

from condoledger.models.payment import Payment, PaymentMethod, PaymentStatus
from condoledger.models.payment_allocation import PaymentAllocation
from condoledger.models.shared import as_decimal


class PaymentRepository:
    """Repository for Payment model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        building_id: UUID | None = None,
        unit_id: UUID | None = None,
        status: PaymentStatus | None = None,
        submitted_by: str | None = None,
        period: str | None = None,
        year: int | None = None,
    ) -> list[Payment]:
        """Get all payments with optional filters, newest first.

        ``period`` and ``year`` match payments with an allocation to an invoice of
        that period or year.
        """
        query = self.db.query(Payment)

        if building_id:
            query = query.filter(Payment.building_id == building_id)
        if unit_id:
            query = query.filter(Payment.unit_id == unit_id)
        if status:
            query = query.filter(Payment.status == status.value)
        if submitted_by:
            query = query.filter(Payment.submitted_by == submitted_by)
        if period or year:
            allocated = select(PaymentAllocation.payment_id)
            if period:
                allocated = allocated.where(PaymentAllocation.period == period)
            if year:
                allocated = allocated.where(PaymentAllocation.period.like(f"{int(year):04d}-%"))
            query = query.filter(Payment.id.in_(allocated))

        return (
            query.order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_by_id(self, payment_id: UUID) -> Payment | None:
        """Get a payment by ID."""
        return self.db.query(Payment).filter(Payment.id == payment_id).first()

    def get_history(self, unit_id: UUID) -> list[Payment]:
        """Every payment ever submitted for a unit, newest first, regardless of status."""
        return (
            self.db.query(Payment)
            .filter(Payment.unit_id == unit_id)
            .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
            .all()
        )

    def create(
        self,
        unit_id: UUID,
        building_id: UUID,
        amount: Decimal,
        submitted_by: str,
        payment_date: datetime | None = None,
        method: PaymentMethod = PaymentMethod.TRANSFER,
        reference: str = "",
        bank: str | None = None,
        proof_url: str | None = None,
        notes: str | None = None,
        requested_periods: list[str] | None = None,
    ) -> Payment:
        """Create a new pending payment."""
        payment = Payment(
            unit_id=unit_id,
            building_id=building_id,
            amount=amount,
            payment_date=payment_date or datetime.now(UTC),
            method=method.value,
            reference=reference,
            bank=bank,
            proof_url=proof_url,
            notes=notes,
            status=PaymentStatus.PENDING.value,
            version=1,
            requested_periods=requested_periods or [],
            submitted_by=submitted_by,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def transition_status(
        self,
        payment: Payment,
        expected_version: int,
        new_status: PaymentStatus,
        reviewed_by: str,
        rejection_reason: str | None = None,
        notes: str | None = None,
    ) -> bool:
        """Move a PENDING payment to ``new_status`` if nobody else got there first.

        The UPDATE only matches while the row is still PENDING at
        ``expected_version``, so of two concurrent reviewers exactly one wins.
        """
        values: dict[Any, Any] = {
            Payment.status: new_status.value,
            Payment.version: Payment.version + 1,
            Payment.reviewed_by: reviewed_by,
            Payment.reviewed_at: datetime.now(UTC),
            Payment.updated_at: datetime.now(UTC),
        }
        if rejection_reason is not None:
            values[Payment.rejection_reason] = rejection_reason
        if notes is not None:
            values[Payment.notes] = notes

        updated = (
            self.db.query(Payment)
            .filter(
                Payment.id == payment.id,
                Payment.status == PaymentStatus.PENDING.value,
                Payment.version == expected_version,
            )
            .update(values, synchronize_session=False)
        )
        self.db.flush()
        if updated:
            self.db.refresh(payment)
        return bool(updated)

    def pending_totals(
        self,
        unit_id: UUID | None = None,
        building_id: UUID | None = None,
    ) -> tuple[int, Decimal]:
        """Count and sum of PENDING payments for a unit or building."""
        query = self.db.query(sa_func.count(Payment.id), sa_func.sum(Payment.amount)).filter(
            Payment.status == PaymentStatus.PENDING.value
        )
        if unit_id:
            query = query.filter(Payment.unit_id == unit_id)
        if building_id:
            query = query.filter(Payment.building_id == building_id)
        count, total = query.one()
        return int(count or 0), as_decimal(total) if total else Decimal("0")

    def approved_totals(self, building_id: UUID) -> tuple[int, Decimal]:
        """Count and sum of APPROVED payments for a building."""
        count, total = (
            self.db.query(sa_func.count(Payment.id), sa_func.sum(Payment.amount))
            .filter(
                Payment.building_id == building_id,
                Payment.status == PaymentStatus.APPROVED.value,
            )
            .one()
        )
        return int(count or 0), as_decimal(total) if total else Decimal("0")
