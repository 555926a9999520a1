# app/schemas/zone.py
from typing import Optional

from pydantic import Field, PositiveInt

from app.schemas.base import CamelModel


class ZoneCoordinates(CamelModel):
    x: int
    y: int
    width: int
    height: int


class LibraryZoneCreate(CamelModel):
    name: str
    capacity: PositiveInt
    resources: list[str] = Field(default_factory=list)
    coordinates: ZoneCoordinates
    current_occupancy: int = Field(0, ge=0)


class LibraryZone(LibraryZoneCreate):
    id: int


class ZoneSummary(CamelModel):
    id: int
    name: str
    current: int
    capacity: int
    percentage: int


class OccupancySummary(CamelModel):
    current: int
    total: int
    percentage: int
    zones: list[ZoneSummary]


class CapacityUpdate(CamelModel):
    total_capacity: Optional[PositiveInt] = None
    zone_capacities: dict[int, PositiveInt] = Field(default_factory=dict)


class CapacitySnapshot(CamelModel):
    zones: list[ZoneSummary]
    total_capacity: int
