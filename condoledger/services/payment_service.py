"""Payment record store: submission, proposed allocations and lookups."""

import logging
from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from condoledger.core.errors import InvalidStateError, NotFoundError
from condoledger.core.retry import run_in_transaction
from condoledger.models.payment import Payment, PaymentStatus
from condoledger.models.payment_allocation import AllocationStatus, PaymentAllocation
from condoledger.models.shared import as_decimal
from condoledger.repositories.payment_allocation_repository import PaymentAllocationRepository
from condoledger.repositories.payment_repository import PaymentRepository
from condoledger.repositories.unit_repository import UnitRepository
from condoledger.schemas.payment import (
    AllocationRequest,
    AllocationResponse,
    PaymentCreate,
    PaymentResponse,
)
from condoledger.services.allocation_engine import (
    AllocationProposal,
    allocate_explicit,
    allocate_oldest_first,
    snapshot,
)
from condoledger.services.audit_service import AuditService
from condoledger.services.invoice_ledger import InvoiceLedger
from condoledger.services.periods import positive_money, validate_period

logger = logging.getLogger(__name__)


class PaymentService:
    """Service for submitting payments and reading them back."""

    def __init__(self, db: Session):
        self.db = db
        self.payment_repo = PaymentRepository(db)
        self.allocation_repo = PaymentAllocationRepository(db)
        self.unit_repo = UnitRepository(db)
        self.ledger = InvoiceLedger(db)
        self.audit = AuditService(db)

    def propose(
        self,
        unit_id: UUID,
        amount: Decimal,
        allocations: Sequence[AllocationRequest] | None = None,
        periods: Sequence[str] | None = None,
    ) -> AllocationProposal:
        """Compute the allocation a payment would receive right now.

        Explicit ``allocations`` win. Otherwise ``periods`` limits oldest-first
        allocation to the unit's invoices for those periods; with neither, all
        outstanding invoices of the unit are eligible.
        """
        outstanding = snapshot(self.ledger.list_outstanding(unit_id))

        if allocations is not None:
            requests = [(a.invoice_id, a.amount) for a in allocations]
            return allocate_explicit(amount, unit_id, requests, outstanding)

        if periods:
            wanted = {validate_period(p) for p in periods}
            outstanding = [inv for inv in outstanding if inv.period in wanted]
        return allocate_oldest_first(amount, outstanding)

    def submit_payment(self, data: PaymentCreate, acting_user: str) -> Payment:
        """Record a PENDING payment together with its proposed allocations.

        Raises:
            ValidationError: non-positive amount or malformed period.
            NotFoundError: the unit does not exist.
            AllocationMismatchError: explicit allocations are invalid.
        """
        amount = positive_money(data.amount)
        periods = [validate_period(p) for p in data.periods or []]
        unit = self.unit_repo.get_by_id(data.unit_id)
        if unit is None:
            raise NotFoundError("unit", data.unit_id)

        def _submit() -> Payment:
            unit_id: UUID = unit.id  # type: ignore[assignment]
            proposal = self.propose(unit_id, amount, data.allocations, periods)
            payment = self.payment_repo.create(
                unit_id=unit.id,  # type: ignore[arg-type]
                building_id=unit.building_id,  # type: ignore[arg-type]
                amount=amount,
                submitted_by=acting_user,
                payment_date=data.payment_date,
                method=data.method,
                reference=data.reference.strip(),
                bank=data.bank,
                proof_url=data.proof_url,
                notes=data.notes,
                requested_periods=periods or proposal.periods,
            )
            self.allocation_repo.create_proposed(
                payment.id,  # type: ignore[arg-type]
                [(line.invoice_id, line.period, line.amount) for line in proposal.lines],
            )
            self.audit.log_create(
                "payment",
                payment.id,  # type: ignore[arg-type]
                actor_id=acting_user,
                data={
                    "unit_id": str(unit.id),
                    "amount": str(amount),
                    "method": data.method.value,
                    "proposed": {
                        str(line.invoice_id): str(line.amount) for line in proposal.lines
                    },
                },
            )
            logger.info(
                "Payment %s submitted for unit %s: %s, %d proposed allocation(s), residual %s",
                payment.id,
                unit.id,
                amount,
                len(proposal.lines),
                proposal.residual,
            )
            return payment

        return run_in_transaction(self.db, "submit_payment", _submit)

    def reallocate(
        self,
        payment_id: UUID,
        acting_user: str,
        allocations: Sequence[AllocationRequest] | None = None,
        periods: Sequence[str] | None = None,
    ) -> Payment:
        """Replace the proposed allocations of a PENDING payment.

        Used after an approval failed because the outstanding balances changed
        since submission.
        """

        def _reallocate() -> Payment:
            payment = self.get_payment(payment_id)
            if payment.status != PaymentStatus.PENDING.value:
                raise InvalidStateError(
                    "payment", payment_id, str(payment.status), "reallocate"
                )
            amount = as_decimal(payment.amount)
            unit_id: UUID = payment.unit_id  # type: ignore[assignment]
            proposal = self.propose(unit_id, amount, allocations, periods)
            self.allocation_repo.delete(self.allocation_repo.get_by_payment_id(payment_id))
            self.allocation_repo.create_proposed(
                payment_id,
                [(line.invoice_id, line.period, line.amount) for line in proposal.lines],
            )
            self.audit.log_action(
                "payment",
                payment_id,
                "reallocated",
                actor_id=acting_user,
                changes={str(line.invoice_id): str(line.amount) for line in proposal.lines},
            )
            return payment

        payment = run_in_transaction(self.db, "reallocate_payment", _reallocate)
        logger.info("Payment %s reallocated by %s", payment_id, acting_user)
        return payment

    def get_payment(self, payment_id: UUID) -> Payment:
        payment = self.payment_repo.get_by_id(payment_id)
        if payment is None:
            raise NotFoundError("payment", payment_id)
        return payment

    def list_payments(
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
        if period:
            period = validate_period(period)
        return self.payment_repo.get_all(
            skip=skip,
            limit=limit,
            building_id=building_id,
            unit_id=unit_id,
            status=status,
            submitted_by=submitted_by,
            period=period,
            year=year,
        )

    def get_allocations(self, payment_id: UUID) -> list[PaymentAllocation]:
        self.get_payment(payment_id)
        return self.allocation_repo.get_by_payment_id(payment_id)

    def to_response(
        self,
        payment: Payment,
        allocations: Sequence[PaymentAllocation] | None = None,
    ) -> PaymentResponse:
        """Build the API view, deriving allocated/unallocated amounts and display periods."""
        if allocations is None:
            payment_id: UUID = payment.id  # type: ignore[assignment]
            allocations = self.allocation_repo.get_by_payment_id(payment_id)
        return build_payment_response(payment, allocations)

    def to_responses(self, payments: Sequence[Payment]) -> list[PaymentResponse]:
        ids: list[UUID] = [p.id for p in payments]  # type: ignore[misc]
        grouped = self.allocation_repo.get_by_payment_ids(ids)
        return [
            build_payment_response(p, grouped.get(p.id, []))  # type: ignore[arg-type]
            for p in payments
        ]


def build_payment_response(
    payment: Payment,
    allocations: Sequence[PaymentAllocation],
) -> PaymentResponse:
    amount = as_decimal(payment.amount)
    committed = sum(
        (
            as_decimal(a.amount)
            for a in allocations
            if a.status == AllocationStatus.COMMITTED.value
        ),
        Decimal("0"),
    )
    if allocations:
        periods: list[str] = []
        for allocation in allocations:
            if allocation.period not in periods:
                periods.append(str(allocation.period))
    else:
        periods = list(payment.requested_periods or [])

    response = PaymentResponse.model_validate(payment)
    response.allocations = [AllocationResponse.model_validate(a) for a in allocations]
    response.allocated_amount = committed
    response.unallocated_amount = amount - committed
    response.periods = periods
    response.period = periods[0] if len(periods) == 1 else None
    return response
