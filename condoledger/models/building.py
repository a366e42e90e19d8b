from sqlalchemy import Column, DateTime, String, func

from condoledger.core.database import Base
from condoledger.models.shared import UUIDType, generate_uuid, money_column_type


class Building(Base):
    __tablename__ = "buildings"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=False)
    rif = Column(String(50), nullable=True)
    monthly_fee = Column(money_column_type(), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
