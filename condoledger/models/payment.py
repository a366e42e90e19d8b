"""Payment model for resident payments awaiting reconciliation."""

from enum import Enum

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)

from condoledger.core.database import Base
from condoledger.models.shared import UUIDType, generate_uuid, money_column_type, utc_now


class PaymentStatus(str, Enum):
    """Payment status enum. APPROVED and REJECTED are terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PaymentMethod(str, Enum):
    """Accepted payment channels."""

    TRANSFER = "TRANSFER"
    PAGO_MOVIL = "PAGO_MOVIL"
    CASH = "CASH"
    DEPOSIT = "DEPOSIT"
    OTHER = "OTHER"


class Payment(Base):
    """Payment model - a single amount received for a unit.

    The payment record is the audit trail of how much was received; its
    allocations say where the money went.
    """

    __tablename__ = "payments"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_payments_amount_positive"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    unit_id = Column(
        UUIDType, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    building_id = Column(
        UUIDType, ForeignKey("buildings.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    amount = Column(money_column_type(), nullable=False)
    payment_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    method = Column(String(20), nullable=False, default=PaymentMethod.TRANSFER.value)
    reference = Column(String(255), nullable=False, default="")
    bank = Column(String(100), nullable=True)
    proof_url = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    # Bumped on every status transition; guards the single-writer check-and-set
    version = Column(Integer, nullable=False, default=1)

    # Periods as typed by the resident; display hint only, never used for money
    requested_periods = Column(JSON, nullable=False, default=list)

    submitted_by = Column(String(255), nullable=False)
    reviewed_by = Column(String(255), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
