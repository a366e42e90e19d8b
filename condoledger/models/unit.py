from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint, func

from condoledger.core.database import Base
from condoledger.models.shared import UUIDType, generate_uuid


class Unit(Base):
    """Apartment or premises inside a building; the debtor of invoices."""

    __tablename__ = "units"
    __table_args__ = (UniqueConstraint("building_id", "name", name="uq_unit_building_name"),)

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    building_id = Column(
        UUIDType, ForeignKey("buildings.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    name = Column(String(50), nullable=False)
    floor = Column(String(20), nullable=False, default="")
    # Share of the building's common expenses, as a percentage
    aliquot = Column(Numeric(8, 4), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
