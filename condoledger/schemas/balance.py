"""Unit balance schemas."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class InvoiceBalanceLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    invoice_id: UUID
    number: str
    period: str
    amount: Decimal
    paid_amount: Decimal
    balance: Decimal
    status: str


class UnitBalanceResponse(BaseModel):
    """Outstanding debt of a unit; keys follow the admin panel's camelCase contract."""

    model_config = ConfigDict(populate_by_name=True)

    unit_id: UUID = Field(serialization_alias="unitId")
    total_debt: Decimal = Field(serialization_alias="totalDebt")
    outstanding_count: int = Field(serialization_alias="outstandingCount")
    pending_payments_amount: Decimal = Field(serialization_alias="pendingPaymentsAmount")
    invoice_breakdown: list[InvoiceBalanceLine] = Field(serialization_alias="invoiceBreakdown")
