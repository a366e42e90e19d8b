"""Cached results of payment review requests sent with an Idempotency-Key."""

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint, func

from condoledger.core.database import Base
from condoledger.models.shared import UUIDType, generate_uuid


class IdempotencyRecord(Base):
    """One review request as first answered.

    Keys are chosen by the client, so they are only unique per acting user.
    ``response_status`` stays NULL until the request has completed.
    """

    __tablename__ = "idempotency_records"
    __table_args__ = (
        UniqueConstraint("actor_id", "idempotency_key", name="uq_idempotency_actor_key"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    actor_id = Column(String(255), nullable=False, index=True)
    idempotency_key = Column(String(255), nullable=False)
    request_method = Column(String(10), nullable=False)
    request_path = Column(String(500), nullable=False)
    response_status = Column(Integer, nullable=True)
    response_body = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
