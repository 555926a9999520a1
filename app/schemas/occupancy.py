# app/schemas/occupancy.py
from typing import Annotated, Literal, Optional

from pydantic import Field, PositiveInt

from app.schemas.base import CamelModel, UtcDatetime

EventType = Literal["entry", "exit"]


class EntryExitEventCreate(CamelModel):
    student_id: str = Field(min_length=1)
    event_type: EventType
    timestamp: Optional[UtcDatetime] = None    # defaults to now
    device_id: Optional[str] = None
    location: Optional[str] = None


class EntryExitEvent(CamelModel):
    id: int
    student_id: str
    event_type: EventType
    timestamp: UtcDatetime
    device_id: Optional[str] = None
    location: Optional[str] = None


class OccupancyRecordCreate(CamelModel):
    timestamp: Optional[UtcDatetime] = None
    current_occupancy: int = Field(ge=0)
    capacity: PositiveInt
    zone_occupancy: dict[str, Annotated[int, Field(ge=0)]] = Field(default_factory=dict)


class OccupancyRecord(CamelModel):
    id: int
    timestamp: UtcDatetime
    current_occupancy: int
    capacity: int
    zone_occupancy: dict[str, int] = Field(default_factory=dict)
