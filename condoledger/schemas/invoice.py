"""Invoice schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field


class InvoiceCreate(BaseModel):
    """Debt load for one unit and one billing period."""

    unit_id: UUID
    amount: Decimal
    period: str = Field(..., max_length=7, description="Billing period as YYYY-MM")
    description: str = Field(default="", max_length=500)
    due_date: datetime | None = None


class InvoiceBatchCreate(BaseModel):
    items: list[InvoiceCreate] = Field(..., min_length=1, max_length=1000)


class InvoiceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    number: str
    unit_id: UUID
    building_id: UUID
    period: str
    description: str
    amount: Decimal
    paid_amount: Decimal
    status: str
    issue_date: datetime
    due_date: datetime | None = None
    cancelled_at: datetime | None = None
    created_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def balance(self) -> Decimal:
        return self.amount - self.paid_amount


class InvoicePaymentResponse(BaseModel):
    """A committed allocation against an invoice, with its payment's details."""

    allocation_id: UUID
    payment_id: UUID
    allocated_amount: Decimal
    allocated_at: datetime | None = None
    payment_amount: Decimal
    payment_date: datetime
    method: str
    reference: str
    status: str
