from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, func

from condoledger.core.database import Base
from condoledger.models.shared import UUIDType, generate_uuid, money_column_type, utc_now


class InvoiceStatus(str, Enum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


OUTSTANDING_STATUSES = (InvoiceStatus.PENDING.value, InvoiceStatus.PARTIAL.value)


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_invoices_amount_positive"),
        CheckConstraint(
            "paid_amount >= 0 AND paid_amount <= amount", name="ck_invoices_paid_amount_bounds"
        ),
        Index("ix_invoices_unit_status_period", "unit_id", "status", "period"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    number = Column(String(50), unique=True, index=True, nullable=False)
    unit_id = Column(UUIDType, ForeignKey("units.id", ondelete="RESTRICT"), nullable=False)
    building_id = Column(
        UUIDType, ForeignKey("buildings.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    status = Column(String(20), nullable=False, default=InvoiceStatus.PENDING.value)

    # Billing period as YYYY-MM
    period = Column(String(7), nullable=False)
    description = Column(String(500), nullable=False, default="")

    amount = Column(money_column_type(), nullable=False)
    paid_amount = Column(money_column_type(), nullable=False, default=0)

    issue_date = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    due_date = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Python-side default keeps sub-second precision for the oldest-first tie-break
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
