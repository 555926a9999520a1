# app/client/occupancy_sync.py
"""
Local mirror of the server's live state, fed by the shared socket.

Each known message replaces the sub-tree it carries (occupancy, zones, one
seat post, one announcement, capacities); nothing is field-patched. A pull
(`getOccupancy`) goes out on mount and then every poll interval in case a push
was missed.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from pydantic import TypeAdapter

from app.client.socket import SharedSocket, get_shared_socket
from app.config import settings
from app.schemas.base import UtcDatetime
from app.utils.clock import utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)

_timestamp = TypeAdapter(Optional[UtcDatetime])


@dataclass
class LiveState:
    occupancy: Optional[dict] = None          # {current, total, percentage}
    zones: list = field(default_factory=list)
    announcements: list = field(default_factory=list)
    seat_posts: list = field(default_factory=list)
    total_capacity: Optional[int] = None
    last_updated: Optional[datetime] = None

    @property
    def loading(self) -> bool:
        return self.occupancy is None


def _upsert(items: list, item: dict, keep: bool) -> list:
    """Drop any entry with the same id, then put `item` first if it should stay."""
    rest = [i for i in items if i.get("id") != item.get("id")]
    return [item] + rest if keep else rest


class OccupancySync:
    def __init__(self, url: str = None, poll_interval: float = None, socket: SharedSocket = None,
                 clock: Callable[[], datetime] = utcnow):
        if socket is None:
            socket = get_shared_socket(url)
        self.socket = socket
        self.poll_interval = settings.CLIENT_POLL_SECONDS if poll_interval is None else poll_interval
        self.clock = clock
        self.state = LiveState()
        self._unsubscribe = None
        self._poller: Optional[asyncio.Task] = None

    async def start(self):
        """Mount: subscribe, hold the shared socket, request occupancy, start polling."""
        self._unsubscribe = self.socket.subscribe(self.apply)
        self.socket.acquire()
        await self.refresh()
        self._poller = asyncio.create_task(self._poll(), name="occupancy-poll")

    async def stop(self):
        if self._poller:
            self._poller.cancel()
            try:
                await self._poller
            except asyncio.CancelledError:
                pass
            self._poller = None
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        await self.socket.release()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc):
        await self.stop()

    async def refresh(self):
        await self.socket.send("getOccupancy")

    async def _poll(self):
        while True:
            await asyncio.sleep(self.poll_interval)
            await self.refresh()

    def apply(self, message: dict) -> bool:
        """Merge one server message into the mirror. False for unknown types."""
        kind, data = message.get("type"), message.get("data") or {}
        state = self.state

        if kind == "occupancyUpdate":
            self._set_occupancy(data)
        elif kind == "initialData":
            if "occupancy" in data:
                self._set_occupancy(data["occupancy"])
            state.announcements = list(data.get("announcements", []))
            state.seat_posts = list(data.get("seatPosts", []))
        elif kind in ("newSeatPost", "seatPostUpdate"):
            state.seat_posts = _upsert(state.seat_posts, data, keep=self._post_is_live(data))
        elif kind in ("newAnnouncement", "announcementUpdate"):
            state.announcements = _upsert(state.announcements, data, keep=self._announcement_is_live(data))
        elif kind == "capacityUpdate":
            state.zones = list(data.get("zones", []))
            state.total_capacity = data.get("totalCapacity")
        else:
            logger.debug(f"Ignoring message type '{kind}'")
            return False

        state.last_updated = self.clock()
        return True

    def _post_is_live(self, post: dict) -> bool:
        """Same rule the server reads with: active and not past endTime."""
        end_time = _timestamp.validate_python(post.get("endTime"))
        return post.get("status") == "active" and (end_time is None or end_time > self.clock())

    def _announcement_is_live(self, announcement: dict) -> bool:
        expiry = _timestamp.validate_python(announcement.get("expiry"))
        return bool(announcement.get("isActive")) and (expiry is None or expiry > self.clock())

    def _set_occupancy(self, data: dict):
        self.state.occupancy = {k: data.get(k) for k in ("current", "total", "percentage")}
        self.state.zones = list(data.get("zones", []))
        if data.get("total") is not None:
            self.state.total_capacity = data["total"]
