from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from condoledger.models.unit import Unit
from condoledger.schemas.building import UnitCreate


class UnitRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(self, building_id: UUID | None = None) -> list[Unit]:
        query = self.db.query(Unit)
        if building_id:
            query = query.filter(Unit.building_id == building_id)
        return query.order_by(Unit.floor.asc(), Unit.name.asc()).all()

    def get_by_id(self, unit_id: UUID) -> Unit | None:
        return self.db.query(Unit).filter(Unit.id == unit_id).first()

    def get_names(self, building_id: UUID) -> set[str]:
        rows = self.db.query(Unit.name).filter(Unit.building_id == building_id).all()
        return {row[0] for row in rows}

    def create(self, building_id: UUID, data: UnitCreate) -> Unit:
        unit = Unit(
            building_id=building_id,
            name=data.name,
            floor=data.floor,
            aliquot=data.aliquot,
        )
        self.db.add(unit)
        self.db.flush()
        return unit

    def create_many(self, building_id: UUID, names_by_floor: list[tuple[str, str]]) -> list[Unit]:
        """Create units from ``(floor, name)`` pairs in a single flush."""
        units = [
            Unit(building_id=building_id, name=name, floor=floor, aliquot=Decimal("0"))
            for floor, name in names_by_floor
        ]
        self.db.add_all(units)
        self.db.flush()
        return units
