"""Tests for the pure allocation functions."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from condoledger.core.errors import AllocationMismatchError, ValidationError
from condoledger.models.payment_allocation import PaymentAllocation
from condoledger.services.allocation_engine import (
    OutstandingInvoice,
    allocate_explicit,
    allocate_oldest_first,
    select_periods,
)

UNIT_ID = uuid4()
T0 = datetime(2024, 1, 1, tzinfo=UTC)


def _invoice(period: str, balance: str, unit_id=UNIT_ID, offset: int = 0) -> OutstandingInvoice:
    return OutstandingInvoice(
        invoice_id=uuid4(),
        unit_id=unit_id,
        period=period,
        balance=Decimal(balance),
        created_at=T0 + timedelta(seconds=offset),
    )


class TestAllocateOldestFirst:
    def test_consumes_oldest_period_first(self):
        jan = _invoice("2024-01", "50")
        feb = _invoice("2024-02", "30")
        mar = _invoice("2024-03", "100")

        proposal = allocate_oldest_first(Decimal("70"), [mar, jan, feb])

        assert [(line.invoice_id, line.amount) for line in proposal.lines] == [
            (jan.invoice_id, Decimal("50")),
            (feb.invoice_id, Decimal("20")),
        ]
        assert mar.invoice_id not in {line.invoice_id for line in proposal.lines}
        assert proposal.residual == Decimal("0")
        assert proposal.allocated_total == Decimal("70")

    def test_overpayment_stays_as_residual(self):
        jan = _invoice("2024-01", "40")
        feb = _invoice("2024-02", "50")

        proposal = allocate_oldest_first(Decimal("100"), [jan, feb])

        assert proposal.allocated_total == Decimal("90")
        assert proposal.residual == Decimal("10")
        assert len(proposal.lines) == 2

    def test_same_period_tie_breaks_on_creation_time(self):
        later = _invoice("2024-05", "20", offset=60)
        earlier = _invoice("2024-05", "20", offset=0)

        proposal = allocate_oldest_first(Decimal("25"), [later, earlier])

        assert proposal.lines[0].invoice_id == earlier.invoice_id
        assert proposal.lines[0].amount == Decimal("20")
        assert proposal.lines[1].invoice_id == later.invoice_id
        assert proposal.lines[1].amount == Decimal("5")

    def test_no_outstanding_debt_leaves_whole_payment_unallocated(self):
        proposal = allocate_oldest_first(Decimal("35.50"), [])

        assert proposal.lines == []
        assert proposal.residual == Decimal("35.50")
        assert proposal.periods == []

    def test_skips_settled_invoices(self):
        settled = _invoice("2024-01", "0")
        feb = _invoice("2024-02", "30")

        proposal = allocate_oldest_first(Decimal("10"), [settled, feb])

        assert [line.invoice_id for line in proposal.lines] == [feb.invoice_id]

    def test_periods_follow_allocation_order(self):
        proposal = allocate_oldest_first(
            Decimal("200"),
            [_invoice("2024-03", "10"), _invoice("2024-01", "10"), _invoice("2024-01", "10")],
        )
        assert proposal.periods == ["2024-01", "2024-03"]


class TestAllocateExplicit:
    def test_valid_request(self):
        jan = _invoice("2024-01", "40")
        feb = _invoice("2024-02", "60")

        proposal = allocate_explicit(
            Decimal("100"),
            UNIT_ID,
            [(feb.invoice_id, Decimal("60")), (jan.invoice_id, Decimal("25"))],
            [jan, feb],
        )

        assert [line.period for line in proposal.lines] == ["2024-02", "2024-01"]
        assert proposal.allocated_total == Decimal("85")
        assert proposal.residual == Decimal("15")

    def test_sub_cent_amounts_are_rejected(self):
        jan = _invoice("2024-01", "40")

        with pytest.raises(ValidationError) as exc_info:
            allocate_explicit(
                Decimal("40"), UNIT_ID, [(jan.invoice_id, Decimal("10.005"))], [jan]
            )

        assert exc_info.value.field == "amount"

    def test_trailing_zero_places_are_accepted(self):
        jan = _invoice("2024-01", "40")

        proposal = allocate_explicit(
            Decimal("40"), UNIT_ID, [(jan.invoice_id, Decimal("10.5000"))], [jan]
        )

        assert proposal.lines[0].amount == Decimal("10.50")

    def test_empty_request_is_rejected(self):
        with pytest.raises(AllocationMismatchError):
            allocate_explicit(Decimal("10"), UNIT_ID, [], [_invoice("2024-01", "10")])

    def test_duplicate_invoice_is_rejected(self):
        jan = _invoice("2024-01", "40")
        with pytest.raises(AllocationMismatchError) as exc_info:
            allocate_explicit(
                Decimal("40"),
                UNIT_ID,
                [(jan.invoice_id, Decimal("10")), (jan.invoice_id, Decimal("10"))],
                [jan],
            )
        assert exc_info.value.invoice_id == jan.invoice_id

    def test_invoice_of_another_unit_is_rejected(self):
        foreign = _invoice("2024-01", "40", unit_id=uuid4())
        with pytest.raises(AllocationMismatchError) as exc_info:
            allocate_explicit(
                Decimal("40"), UNIT_ID, [(foreign.invoice_id, Decimal("10"))], [foreign]
            )
        assert exc_info.value.invoice_id == foreign.invoice_id
        assert exc_info.value.available == Decimal("0")

    def test_unknown_invoice_is_rejected(self):
        missing = uuid4()
        with pytest.raises(AllocationMismatchError) as exc_info:
            allocate_explicit(
                Decimal("40"), UNIT_ID, [(missing, Decimal("10"))], [_invoice("2024-01", "40")]
            )
        assert exc_info.value.invoice_id == missing

    def test_non_positive_amount_is_rejected(self):
        jan = _invoice("2024-01", "40")
        with pytest.raises(AllocationMismatchError):
            allocate_explicit(Decimal("40"), UNIT_ID, [(jan.invoice_id, Decimal("0"))], [jan])

    def test_amount_above_balance_reports_requested_and_available(self):
        jan = _invoice("2024-01", "40")
        feb = _invoice("2024-02", "30")

        with pytest.raises(AllocationMismatchError) as exc_info:
            allocate_explicit(
                Decimal("100"),
                UNIT_ID,
                [(jan.invoice_id, Decimal("40")), (feb.invoice_id, Decimal("35"))],
                [jan, feb],
            )

        error = exc_info.value
        assert error.invoice_id == feb.invoice_id
        assert error.requested == Decimal("35.00")
        assert error.available == Decimal("30")
        assert error.to_dict()["code"] == "ALLOCATION_MISMATCH"

    def test_total_above_payment_is_rejected(self):
        jan = _invoice("2024-01", "40")
        feb = _invoice("2024-02", "60")
        with pytest.raises(AllocationMismatchError) as exc_info:
            allocate_explicit(
                Decimal("50"),
                UNIT_ID,
                [(jan.invoice_id, Decimal("40")), (feb.invoice_id, Decimal("20"))],
                [jan, feb],
            )
        assert exc_info.value.requested == Decimal("60.00")
        assert exc_info.value.available == Decimal("50")


class TestSelectPeriods:
    def _allocations(self):
        return [
            PaymentAllocation(period="2024-01", amount=Decimal("40")),
            PaymentAllocation(period="2024-02", amount=Decimal("60")),
        ]

    def test_none_keeps_everything(self):
        allocations = self._allocations()
        kept, discarded = select_periods(allocations, None)
        assert kept == allocations
        assert discarded == []

    def test_subset_splits_by_period(self):
        allocations = self._allocations()
        kept, discarded = select_periods(allocations, ["2024-01"])
        assert [a.period for a in kept] == ["2024-01"]
        assert [a.period for a in discarded] == ["2024-02"]
