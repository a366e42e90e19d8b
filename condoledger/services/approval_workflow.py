"""Approval workflow: the PENDING -> APPROVED | REJECTED state machine for payments.

Approving commits the payment's proposed allocations to the invoice ledger in
the same transaction as the status change. Either the payment becomes
APPROVED and every selected invoice is updated, or nothing changes and the
payment stays PENDING.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from condoledger.core.errors import (
    AllocationMismatchError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from condoledger.core.retry import run_in_transaction
from condoledger.models.payment import Payment, PaymentStatus
from condoledger.models.payment_allocation import AllocationStatus
from condoledger.models.shared import as_decimal
from condoledger.repositories.payment_allocation_repository import PaymentAllocationRepository
from condoledger.repositories.payment_repository import PaymentRepository
from condoledger.services.allocation_engine import commit_allocations, select_periods
from condoledger.services.audit_service import AuditService
from condoledger.services.invoice_ledger import InvoiceLedger
from condoledger.services.periods import validate_period

logger = logging.getLogger(__name__)


@dataclass
class ApprovalResult:
    """Outcome of an approval."""

    payment: Payment
    committed_amount: Decimal
    unallocated_amount: Decimal
    committed_invoice_ids: list[UUID] = field(default_factory=list)
    discarded_periods: list[str] = field(default_factory=list)


class ApprovalWorkflow:
    """Service for reviewing pending payments."""

    def __init__(self, db: Session):
        self.db = db
        self.payment_repo = PaymentRepository(db)
        self.allocation_repo = PaymentAllocationRepository(db)
        self.ledger = InvoiceLedger(db)
        self.audit = AuditService(db)

    def _load_pending(self, payment_id: UUID, attempted: str) -> Payment:
        payment = self.payment_repo.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError("payment", payment_id)
        if payment.status != PaymentStatus.PENDING.value:
            logger.warning(
                "Refused to %s payment %s in status %s", attempted, payment_id, payment.status
            )
            raise InvalidStateError("payment", payment_id, str(payment.status), attempted)
        return payment

    def _claim(
        self,
        payment: Payment,
        new_status: PaymentStatus,
        acting_user: str,
        rejection_reason: str | None = None,
        notes: str | None = None,
    ) -> None:
        """Win the single-writer check-and-set or raise ``InvalidStateError``."""
        version = int(payment.version)
        if not self.payment_repo.transition_status(
            payment,
            expected_version=version,
            new_status=new_status,
            reviewed_by=acting_user,
            rejection_reason=rejection_reason,
            notes=notes,
        ):
            self.db.expire(payment)
            current = self.payment_repo.get_by_id(payment.id)  # type: ignore[arg-type]
            current_status = str(current.status) if current else "unknown"
            attempted = "approve" if new_status == PaymentStatus.APPROVED else "reject"
            raise InvalidStateError(
                "payment",
                payment.id,  # type: ignore[arg-type]
                current_status,
                attempted,
            )

    def approve(
        self,
        payment_id: UUID,
        acting_user: str,
        selected_periods: Sequence[str] | None = None,
        notes: str | None = None,
    ) -> ApprovalResult:
        """Approve a PENDING payment and commit its allocations.

        With ``selected_periods`` omitted every proposed allocation commits.
        With a subset, only allocations for those invoice periods commit; the
        rest are discarded and their amount stays unallocated on the payment,
        which is still APPROVED.

        Raises:
            NotFoundError: the payment does not exist.
            InvalidStateError: the payment is not PENDING (including a second
                approval, or losing a concurrent approval race).
            ValidationError: a selected period is malformed, empty, or matches
                no proposed allocation.
            OverpaymentError: an invoice no longer has room for its allocation;
                nothing is committed.
        """
        selected: list[str] | None = None
        if selected_periods is not None:
            selected = [validate_period(p) for p in selected_periods]
            if not selected:
                raise ValidationError(
                    "selected_periods must name at least one period; reject the payment instead",
                    field="selected_periods",
                )

        def _approve() -> ApprovalResult:
            payment = self._load_pending(payment_id, "approve")
            proposed = [
                a
                for a in self.allocation_repo.get_by_payment_id(payment_id)
                if a.status == AllocationStatus.PROPOSED.value
            ]

            if selected is not None:
                known = {str(a.period) for a in proposed}
                unknown = [p for p in selected if p not in known]
                if unknown:
                    raise ValidationError(
                        f"Payment {payment_id} has no allocation for period(s) "
                        f"{', '.join(unknown)}",
                        field="selected_periods",
                    )
            kept, discarded = select_periods(proposed, selected)

            self._claim(payment, PaymentStatus.APPROVED, acting_user, notes=notes)

            amount = as_decimal(payment.amount)
            committed = commit_allocations(self.ledger, self.allocation_repo, kept)
            if committed > amount:
                raise AllocationMismatchError(
                    f"Allocations total {committed} exceeds payment amount {amount}",
                    requested=committed,
                    available=amount,
                )
            discarded_periods = sorted({str(a.period) for a in discarded})
            self.allocation_repo.delete(discarded)

            self.audit.log_status_change(
                "payment",
                payment_id,
                PaymentStatus.PENDING.value,
                PaymentStatus.APPROVED.value,
                actor_id=acting_user,
                extra={
                    "committed": {str(a.invoice_id): str(a.amount) for a in kept},
                    "discarded_periods": discarded_periods,
                },
            )
            return ApprovalResult(
                payment=payment,
                committed_amount=committed,
                unallocated_amount=amount - committed,
                committed_invoice_ids=[a.invoice_id for a in kept],  # type: ignore[misc]
                discarded_periods=discarded_periods,
            )

        result = run_in_transaction(self.db, "approve_payment", _approve)
        logger.info(
            "Payment %s approved by %s: committed %s, unallocated %s",
            payment_id,
            acting_user,
            result.committed_amount,
            result.unallocated_amount,
        )
        return result

    def reject(self, payment_id: UUID, reason: str, acting_user: str) -> Payment:
        """Reject a PENDING payment. No invoice is touched.

        Raises:
            NotFoundError: the payment does not exist.
            InvalidStateError: the payment is not PENDING.
            ValidationError: ``reason`` is blank.
        """
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required", field="reason")

        def _reject() -> Payment:
            payment = self._load_pending(payment_id, "reject")
            self._claim(payment, PaymentStatus.REJECTED, acting_user, rejection_reason=reason)
            discarded = self.allocation_repo.delete(
                self.allocation_repo.get_by_payment_id(payment_id)
            )
            self.audit.log_status_change(
                "payment",
                payment_id,
                PaymentStatus.PENDING.value,
                PaymentStatus.REJECTED.value,
                actor_id=acting_user,
                extra={"reason": reason, "discarded_allocations": discarded},
            )
            return payment

        payment = run_in_transaction(self.db, "reject_payment", _reject)
        logger.info("Payment %s rejected by %s: %s", payment_id, acting_user, reason)
        return payment
