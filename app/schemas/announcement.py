# app/schemas/announcement.py
from datetime import datetime
from typing import Optional

from pydantic import Field

from app.schemas.base import CamelModel, UtcDatetime


class AnnouncementCreate(CamelModel):
    message: str = Field(min_length=1)
    expiry: Optional[UtcDatetime] = None
    created_by: int
    is_active: bool = True


class Announcement(CamelModel):
    id: int
    message: str
    expiry: Optional[UtcDatetime] = None
    created_by: int
    created_at: UtcDatetime
    is_active: bool = True

    def is_live(self, now: datetime) -> bool:
        return self.is_active and (self.expiry is None or self.expiry > now)
