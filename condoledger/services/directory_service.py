"""Building and unit directory."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from condoledger.core.errors import NotFoundError, ValidationError
from condoledger.core.retry import run_in_transaction
from condoledger.models.building import Building
from condoledger.models.unit import Unit
from condoledger.repositories.building_repository import BuildingRepository
from condoledger.repositories.unit_repository import UnitRepository
from condoledger.schemas.building import BuildingCreate, UnitBatchCreate, UnitCreate
from condoledger.services.audit_service import AuditService
from condoledger.services.periods import positive_money

logger = logging.getLogger(__name__)


class DirectoryService:
    def __init__(self, db: Session):
        self.db = db
        self.building_repo = BuildingRepository(db)
        self.unit_repo = UnitRepository(db)
        self.audit = AuditService(db)

    def create_building(self, data: BuildingCreate, acting_user: str | None = None) -> Building:
        if data.monthly_fee is not None:
            fee = positive_money(data.monthly_fee, field="monthly_fee")
            data = data.model_copy(update={"monthly_fee": fee})

        def _create() -> Building:
            building = self.building_repo.create(data)
            self.audit.log_create(
                "building",
                building.id,  # type: ignore[arg-type]
                actor_id=acting_user,
                data={"name": data.name},
            )
            return building

        building = run_in_transaction(self.db, "create_building", _create)
        logger.info("Created building %s (%s)", building.id, building.name)
        return building

    def list_buildings(self, skip: int = 0, limit: int = 100) -> list[Building]:
        return self.building_repo.get_all(skip=skip, limit=limit)

    def get_building(self, building_id: UUID) -> Building:
        building = self.building_repo.get_by_id(building_id)
        if building is None:
            raise NotFoundError("building", building_id)
        return building

    def count_units(self, building_id: UUID) -> int:
        return self.building_repo.count_units(building_id)

    def create_unit(
        self, building_id: UUID, data: UnitCreate, acting_user: str | None = None
    ) -> Unit:
        """Add a unit to a building. Unit names are unique per building."""
        self.get_building(building_id)
        name = data.name.strip()
        if name in self.unit_repo.get_names(building_id):
            raise ValidationError(f"Unit '{name}' already exists in this building", field="name")

        def _create() -> Unit:
            unit = self.unit_repo.create(building_id, data.model_copy(update={"name": name}))
            self.audit.log_create(
                "unit",
                unit.id,  # type: ignore[arg-type]
                actor_id=acting_user,
                data={"building_id": str(building_id), "name": name},
            )
            return unit

        return run_in_transaction(self.db, "create_unit", _create)

    def create_units_batch(
        self, building_id: UUID, data: UnitBatchCreate, acting_user: str | None = None
    ) -> list[Unit]:
        """Create one unit per (floor, suffix) pair, e.g. floors 1-2 x A-B -> 1A 1B 2A 2B.

        Names that already exist are skipped.
        """
        self.get_building(building_id)
        existing = self.unit_repo.get_names(building_id)

        pairs: list[tuple[str, str]] = []
        for floor in (f.strip() for f in data.floors):
            for suffix in (s.strip() for s in data.units_per_floor):
                name = f"{floor}{suffix}"
                if not name or name in existing:
                    continue
                existing.add(name)
                pairs.append((floor, name))

        def _create_all() -> list[Unit]:
            units = self.unit_repo.create_many(building_id, pairs)
            self.audit.log_action(
                "building",
                building_id,
                "units_created",
                actor_id=acting_user,
                changes={"units": [name for _, name in pairs]},
            )
            return units

        units = run_in_transaction(self.db, "create_units_batch", _create_all)
        logger.info("Created %d unit(s) in building %s", len(units), building_id)
        return units

    def list_units(self, building_id: UUID) -> list[Unit]:
        self.get_building(building_id)
        return self.unit_repo.get_all(building_id)

    def get_unit(self, unit_id: UUID) -> Unit:
        unit = self.unit_repo.get_by_id(unit_id)
        if unit is None:
            raise NotFoundError("unit", unit_id)
        return unit
