# app/schemas/messages.py
"""WebSocket envelope `{type, data}` and the message kinds it carries."""

from enum import Enum
from typing import Any

from pydantic import BaseModel

from app.schemas.announcement import Announcement
from app.schemas.base import CamelModel
from app.schemas.seat_post import SeatPost
from app.schemas.zone import OccupancySummary


class MessageType(str, Enum):
    """Server → client."""
    OCCUPANCY_UPDATE = "occupancyUpdate"
    INITIAL_DATA = "initialData"
    NEW_SEAT_POST = "newSeatPost"
    SEAT_POST_UPDATE = "seatPostUpdate"
    NEW_ANNOUNCEMENT = "newAnnouncement"
    ANNOUNCEMENT_UPDATE = "announcementUpdate"
    CAPACITY_UPDATE = "capacityUpdate"


class CommandType(str, Enum):
    """Client → server."""
    GET_OCCUPANCY = "getOccupancy"
    GET_ADMIN_DATA = "getAdminData"
    GET_SEAT_POSTS = "getSeatPosts"
    UPDATE_CAPACITY = "updateCapacity"


class WsMessage(BaseModel):
    type: str
    data: Any = None


class InitialData(CamelModel):
    occupancy: OccupancySummary
    announcements: list[Announcement]
    seat_posts: list[SeatPost]
