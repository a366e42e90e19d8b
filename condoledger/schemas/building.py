"""Building and unit directory schemas."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BuildingCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=500)
    rif: str | None = Field(default=None, max_length=50)
    monthly_fee: Decimal | None = Field(default=None, gt=0)


class BuildingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    address: str
    rif: str | None = None
    monthly_fee: Decimal | None = None
    total_units: int = 0
    created_at: datetime | None = None


class UnitCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    floor: str = Field(default="", max_length=20)
    aliquot: Decimal = Field(default=Decimal("0"), ge=0, le=100)


class UnitBatchCreate(BaseModel):
    """Generate units as the cartesian product of floors and per-floor suffixes.

    ``floors=["1", "2"]`` and ``units_per_floor=["A", "B"]`` creates units
    1A, 1B, 2A and 2B.
    """

    model_config = ConfigDict(populate_by_name=True)

    floors: list[str] = Field(..., min_length=1)
    units_per_floor: list[str] = Field(..., min_length=1, alias="unitsPerFloor")


class UnitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    building_id: UUID
    name: str
    floor: str
    aliquot: Decimal
    created_at: datetime | None = None


class BuildingSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    building_id: UUID
    total_units: int
    units_with_debt: int
    total_debt: Decimal
    pending_payments: int
    pending_payments_amount: Decimal
    approved_payments: int
    total_revenue: Decimal
    solvency_rate: Decimal
