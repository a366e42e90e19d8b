"""Allocation engine: turn a payment amount into per-invoice allocations.

Computation is pure. ``allocate_explicit`` and ``allocate_oldest_first`` take
a snapshot of the unit's outstanding invoices and return an
``AllocationProposal`` without touching storage. ``commit_allocations`` is the
only writer and runs inside the approval transaction.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from condoledger.core.errors import AllocationMismatchError
from condoledger.models.invoice import Invoice
from condoledger.models.payment_allocation import PaymentAllocation
from condoledger.models.shared import as_decimal
from condoledger.repositories.payment_allocation_repository import PaymentAllocationRepository
from condoledger.services.periods import to_money

if TYPE_CHECKING:
    from condoledger.services.invoice_ledger import InvoiceLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutstandingInvoice:
    """Point-in-time view of an invoice that can still receive money."""

    invoice_id: UUID
    unit_id: UUID
    period: str
    balance: Decimal
    created_at: datetime | None = None

    @property
    def sort_key(self) -> tuple[str, float]:
        created = self.created_at.timestamp() if self.created_at else 0.0
        return (self.period, created)


@dataclass(frozen=True)
class AllocationLine:
    invoice_id: UUID
    period: str
    amount: Decimal


@dataclass
class AllocationProposal:
    """Result of an allocation computation.

    ``residual`` is the part of the payment not assigned to any invoice
    (overpayment, or money attributable to excluded periods).
    """

    payment_amount: Decimal
    lines: list[AllocationLine] = field(default_factory=list)

    @property
    def allocated_total(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal("0"))

    @property
    def residual(self) -> Decimal:
        return self.payment_amount - self.allocated_total

    @property
    def periods(self) -> list[str]:
        seen: list[str] = []
        for line in self.lines:
            if line.period not in seen:
                seen.append(line.period)
        return seen


def snapshot(invoices: Iterable[Invoice]) -> list[OutstandingInvoice]:
    """Freeze ORM invoices into ``OutstandingInvoice`` values."""
    return [
        OutstandingInvoice(
            invoice_id=invoice.id,  # type: ignore[arg-type]
            unit_id=invoice.unit_id,  # type: ignore[arg-type]
            period=str(invoice.period),
            balance=as_decimal(invoice.amount) - as_decimal(invoice.paid_amount),
            created_at=invoice.created_at,  # type: ignore[arg-type]
        )
        for invoice in invoices
    ]


def allocate_explicit(
    payment_amount: Decimal,
    unit_id: UUID,
    requests: Sequence[tuple[UUID, Decimal]],
    outstanding: Sequence[OutstandingInvoice],
) -> AllocationProposal:
    """Validate caller-supplied ``(invoice_id, amount)`` pairs.

    Every invoice must be outstanding and belong to ``unit_id``, every amount
    must be positive and within the invoice's remaining balance, and the total
    must not exceed the payment. The first violation rejects the whole
    request.
    """
    if not requests:
        raise AllocationMismatchError("At least one allocation is required")

    by_id = {inv.invoice_id: inv for inv in outstanding if inv.unit_id == unit_id}
    seen: set[UUID] = set()
    lines: list[AllocationLine] = []

    for invoice_id, raw_amount in requests:
        amount = to_money(raw_amount)
        if invoice_id in seen:
            raise AllocationMismatchError(
                f"Invoice {invoice_id} appears more than once", invoice_id=invoice_id
            )
        seen.add(invoice_id)

        invoice = by_id.get(invoice_id)
        if invoice is None:
            raise AllocationMismatchError(
                f"Invoice {invoice_id} is not an outstanding invoice of unit {unit_id}",
                invoice_id=invoice_id,
                requested=amount,
                available=Decimal("0"),
            )
        if amount <= 0:
            raise AllocationMismatchError(
                f"Allocation to invoice {invoice_id} must be positive",
                invoice_id=invoice_id,
                requested=amount,
                available=invoice.balance,
            )
        if amount > invoice.balance:
            raise AllocationMismatchError(
                f"Allocation of {amount} exceeds the {invoice.balance} outstanding "
                f"on invoice {invoice_id}",
                invoice_id=invoice_id,
                requested=amount,
                available=invoice.balance,
            )
        lines.append(AllocationLine(invoice_id=invoice_id, period=invoice.period, amount=amount))

    proposal = AllocationProposal(payment_amount=payment_amount, lines=lines)
    if proposal.allocated_total > payment_amount:
        raise AllocationMismatchError(
            f"Allocations total {proposal.allocated_total} exceeds payment amount "
            f"{payment_amount}",
            requested=proposal.allocated_total,
            available=payment_amount,
        )
    return proposal


def allocate_oldest_first(
    payment_amount: Decimal,
    outstanding: Sequence[OutstandingInvoice],
) -> AllocationProposal:
    """Greedily settle the oldest debt first.

    Invoices are consumed in (period, created_at) order, each receiving
    ``min(remaining payment, invoice balance)``. Whatever is left once every
    invoice is covered stays as the proposal's residual.
    """
    remaining = payment_amount
    lines: list[AllocationLine] = []

    for invoice in sorted(outstanding, key=lambda inv: inv.sort_key):
        if remaining <= 0:
            break
        if invoice.balance <= 0:
            continue
        amount = min(remaining, invoice.balance)
        lines.append(
            AllocationLine(invoice_id=invoice.invoice_id, period=invoice.period, amount=amount)
        )
        remaining -= amount

    return AllocationProposal(payment_amount=payment_amount, lines=lines)


def select_periods(
    allocations: Sequence[PaymentAllocation],
    selected_periods: Iterable[str] | None,
) -> tuple[list[PaymentAllocation], list[PaymentAllocation]]:
    """Split proposed allocations into (kept, discarded) by invoice period.

    ``None`` keeps everything.
    """
    if selected_periods is None:
        return list(allocations), []
    wanted = set(selected_periods)
    kept = [a for a in allocations if a.period in wanted]
    discarded = [a for a in allocations if a.period not in wanted]
    return kept, discarded


def commit_allocations(
    ledger: "InvoiceLedger",
    allocation_repo: PaymentAllocationRepository,
    allocations: Sequence[PaymentAllocation],
) -> Decimal:
    """Apply proposed allocations to their invoices and mark them committed.

    Must run inside a transaction owned by the caller: any ``OverpaymentError``
    propagates and the caller rolls every invoice update back.
    """
    total = Decimal("0")
    for allocation in allocations:
        amount = as_decimal(allocation.amount)
        ledger.apply_payment(allocation.invoice_id, amount)  # type: ignore[arg-type]
        total += amount
    allocation_repo.mark_committed(list(allocations))
    logger.debug("Committed %d allocation(s) totalling %s", len(allocations), total)
    return total
