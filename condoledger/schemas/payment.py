"""Payment schemas."""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from condoledger.models.payment import PaymentMethod, PaymentStatus


class AllocationRequest(BaseModel):
    """One explicit (invoice, amount) pair. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    invoice_id: UUID
    amount: Decimal


def normalize_legacy_periods(period: str | None, periods: Iterable[str] | None) -> list[str]:
    """Merge the legacy single ``period`` and the ``periods`` array.

    Order is preserved and duplicates are dropped. Blank entries are ignored.
    """
    merged: list[str] = []
    candidates = list(periods or [])
    if period:
        candidates.insert(0, period)
    for value in candidates:
        value = value.strip()
        if value and value not in merged:
            merged.append(value)
    return merged


class PaymentCreate(BaseModel):
    """Schema for submitting a payment.

    ``allocations`` is authoritative. When it is absent, ``periods`` (or the
    legacy ``period``) restricts oldest-first allocation to those periods; when
    both are absent the whole outstanding debt of the unit is eligible.
    """

    model_config = ConfigDict(extra="forbid")

    unit_id: UUID
    amount: Decimal
    payment_date: datetime | None = None
    method: PaymentMethod = PaymentMethod.TRANSFER
    reference: str = Field(default="", max_length=255)
    bank: str | None = Field(default=None, max_length=100)
    proof_url: str | None = Field(default=None, max_length=2000)
    notes: str | None = Field(default=None, max_length=2000)
    allocations: list[AllocationRequest] | None = None
    periods: list[str] | None = None
    period: str | None = Field(default=None, description="Legacy single period")

    @model_validator(mode="after")
    def _merge_periods(self) -> "PaymentCreate":
        merged = normalize_legacy_periods(self.period, self.periods)
        self.periods = merged or None
        self.period = None
        return self


class PaymentApprove(BaseModel):
    model_config = ConfigDict(extra="forbid")

    selected_periods: list[str] | None = Field(
        default=None,
        description="Approve only allocations for these periods; omit to approve all",
    )
    notes: str | None = Field(default=None, max_length=2000)


class PaymentReject(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str = Field(..., max_length=2000)


class PaymentStatusUpdate(BaseModel):
    """Legacy review payload: ``{status, notes, approved_periods}``."""

    status: PaymentStatus
    notes: str | None = Field(default=None, max_length=2000)
    approved_periods: list[str] | None = None


class AllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payment_id: UUID
    invoice_id: UUID
    period: str
    amount: Decimal
    status: str
    allocated_at: datetime | None = None


class PaymentResponse(BaseModel):
    """Schema for payment response.

    ``allocations`` is authoritative. ``periods`` and ``period`` are display
    fields kept for clients written before allocation tracking existed.
    """

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    unit_id: UUID
    building_id: UUID
    amount: Decimal
    payment_date: datetime
    method: str
    reference: str
    bank: str | None = None
    proof_url: str | None = None
    notes: str | None = None
    status: str
    submitted_by: str
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None
    allocations: list[AllocationResponse] = Field(default_factory=list)
    allocated_amount: Decimal = Decimal("0")
    unallocated_amount: Decimal = Decimal("0")
    periods: list[str] = Field(default_factory=list)
    period: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class PaymentReallocate(BaseModel):
    """Replace the proposed allocations of a pending payment.

    Same precedence as submission: explicit ``allocations``, else ``periods``,
    else every outstanding invoice oldest first.
    """

    model_config = ConfigDict(extra="forbid")

    allocations: list[AllocationRequest] | None = None
    periods: list[str] | None = None
