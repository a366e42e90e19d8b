"""PaymentAllocation model linking a payment to the invoices it settles."""

from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)

from condoledger.core.database import Base
from condoledger.models.shared import UUIDType, generate_uuid, money_column_type, utc_now


class AllocationStatus(str, Enum):
    """PROPOSED rows exist while the payment is pending; COMMITTED rows are final."""

    PROPOSED = "PROPOSED"
    COMMITTED = "COMMITTED"


class PaymentAllocation(Base):
    """PaymentAllocation model - the portion of a payment applied to one invoice.

    Proposed allocations belong to the payment and disappear if it is rejected.
    Once committed, their effect lives in the invoice's paid amount.
    """

    __tablename__ = "payment_allocations"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_allocations_amount_positive"),
        UniqueConstraint("payment_id", "invoice_id", name="uq_payment_allocation_invoice"),
        Index("ix_payment_allocations_invoice_status", "invoice_id", "status"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    payment_id = Column(
        UUIDType, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice_id = Column(UUIDType, ForeignKey("invoices.id", ondelete="RESTRICT"), nullable=False)
    # Copied from the invoice so partial-period approval can filter without a join
    period = Column(String(7), nullable=False)
    amount = Column(money_column_type(), nullable=False)
    status = Column(String(20), nullable=False, default=AllocationStatus.PROPOSED.value)

    allocated_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
