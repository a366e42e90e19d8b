"""Building and unit directory API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from condoledger.core.auth import get_acting_user
from condoledger.core.database import get_db
from condoledger.models.unit import Unit
from condoledger.schemas.building import (
    BuildingCreate,
    BuildingResponse,
    BuildingSummaryResponse,
    UnitBatchCreate,
    UnitCreate,
    UnitResponse,
)
from condoledger.services.balance_service import BalanceService
from condoledger.services.directory_service import DirectoryService

router = APIRouter()


@router.post(
    "/",
    response_model=BuildingResponse,
    status_code=201,
    summary="Create building",
    responses={401: {"description": "Missing X-Acting-User header"}},
)
async def create_building(
    data: BuildingCreate,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> BuildingResponse:
    """Register a building."""
    building = DirectoryService(db).create_building(data, acting_user)
    return BuildingResponse.model_validate(building)


@router.get("/", response_model=list[BuildingResponse], summary="List buildings")
async def list_buildings(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[BuildingResponse]:
    """List buildings by name."""
    service = DirectoryService(db)
    responses = []
    for building in service.list_buildings(skip=skip, limit=limit):
        response = BuildingResponse.model_validate(building)
        response.total_units = service.count_units(building.id)  # type: ignore[arg-type]
        responses.append(response)
    return responses


@router.get(
    "/{building_id}",
    response_model=BuildingResponse,
    summary="Get building",
    responses={404: {"description": "Building not found"}},
)
async def get_building(building_id: UUID, db: Session = Depends(get_db)) -> BuildingResponse:
    service = DirectoryService(db)
    response = BuildingResponse.model_validate(service.get_building(building_id))
    response.total_units = service.count_units(building_id)
    return response


@router.post(
    "/{building_id}/units",
    response_model=UnitResponse,
    status_code=201,
    summary="Create unit",
    responses={
        400: {"description": "Unit name already used in this building"},
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "Building not found"},
    },
)
async def create_unit(
    building_id: UUID,
    data: UnitCreate,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> Unit:
    return DirectoryService(db).create_unit(building_id, data, acting_user)


@router.post(
    "/{building_id}/units/batch",
    response_model=list[UnitResponse],
    status_code=201,
    summary="Create units for every floor and suffix",
    responses={
        401: {"description": "Missing X-Acting-User header"},
        404: {"description": "Building not found"},
    },
)
async def create_units_batch(
    building_id: UUID,
    data: UnitBatchCreate,
    db: Session = Depends(get_db),
    acting_user: str = Depends(get_acting_user),
) -> list[Unit]:
    """Create units named floor + suffix; names that already exist are skipped."""
    return DirectoryService(db).create_units_batch(building_id, data, acting_user)


@router.get(
    "/{building_id}/units",
    response_model=list[UnitResponse],
    summary="List units",
    responses={404: {"description": "Building not found"}},
)
async def list_units(building_id: UUID, db: Session = Depends(get_db)) -> list[Unit]:
    return DirectoryService(db).list_units(building_id)


@router.get(
    "/{building_id}/summary",
    response_model=BuildingSummaryResponse,
    summary="Building debt and collection summary",
    responses={404: {"description": "Building not found"}},
)
async def get_building_summary(
    building_id: UUID,
    db: Session = Depends(get_db),
) -> BuildingSummaryResponse:
    summary = BalanceService(db).get_building_summary(building_id)
    return BuildingSummaryResponse.model_validate(summary)
