from uuid import UUID

from sqlalchemy import func as sa_func
from sqlalchemy.orm import Session

from condoledger.models.building import Building
from condoledger.models.unit import Unit
from condoledger.schemas.building import BuildingCreate


class BuildingRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(self, skip: int = 0, limit: int = 100) -> list[Building]:
        return (
            self.db.query(Building).order_by(Building.name.asc()).offset(skip).limit(limit).all()
        )

    def get_by_id(self, building_id: UUID) -> Building | None:
        return self.db.query(Building).filter(Building.id == building_id).first()

    def create(self, data: BuildingCreate) -> Building:
        building = Building(
            name=data.name,
            address=data.address,
            rif=data.rif,
            monthly_fee=data.monthly_fee,
        )
        self.db.add(building)
        self.db.flush()
        return building

    def count_units(self, building_id: UUID) -> int:
        result = (
            self.db.query(sa_func.count(Unit.id)).filter(Unit.building_id == building_id).scalar()
        )
        return int(result or 0)
