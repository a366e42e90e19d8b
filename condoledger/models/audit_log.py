"""AuditLog model for tracking state changes to invoices and payments."""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, String, func

from condoledger.core.database import Base
from condoledger.models.shared import UUIDType, generate_uuid


class AuditResource(str, Enum):
    BUILDING = "building"
    UNIT = "unit"
    INVOICE = "invoice"
    PAYMENT = "payment"


class AuditLog(Base):
    """Who changed what. Rows are written in the same transaction as the change."""

    __tablename__ = "audit_logs"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    resource_type = Column(String(50), nullable=False, index=True)
    resource_id = Column(UUIDType, nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)
    changes = Column(JSON, nullable=False, default=dict)
    actor_id = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
