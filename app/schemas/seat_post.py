# app/schemas/seat_post.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import Field, PositiveInt, StrictBool

from app.schemas.base import CamelModel, UtcDatetime

SeatStatus = Literal["active", "expired", "removed"]


class SeatCoordinates(CamelModel):
    x: float
    y: float


class SeatLocation(CamelModel):
    zone: str = Field(min_length=1)
    seat_id: Optional[str] = None
    coordinates: Optional[SeatCoordinates] = None


class Verifications(CamelModel):
    positive: int = 0
    negative: int = 0


class SeatPostCreate(CamelModel):
    user_id: int
    location: SeatLocation
    image_url: Optional[str] = None
    duration: PositiveInt                   # minutes
    group_size: int = Field(1, ge=1)
    message: Optional[str] = None
    is_anonymous: bool = False


class SeatPost(CamelModel):
    id: int
    user_id: int
    location: SeatLocation
    image_url: Optional[str] = None
    duration: int
    end_time: UtcDatetime
    group_size: int = 1
    message: Optional[str] = None
    is_anonymous: bool = False
    verifications: Verifications = Field(default_factory=Verifications)
    status: SeatStatus = "active"
    created_at: UtcDatetime

    def is_live(self, now: datetime) -> bool:
        """Active and not past its end time. Stored status may lag behind."""
        return self.status == "active" and self.end_time > now


class SeatPostStatusUpdate(CamelModel):
    status: SeatStatus


class SeatPostVerify(CamelModel):
    is_positive: StrictBool
