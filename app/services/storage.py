# app/services/storage.py
"""
State Store contract.

Every operation is synchronous and never suspends, so handlers running on the
event loop can read-modify-write without locks. Reads return None for unknown
ids; mutations on unknown ids raise NotFoundError.

Backends: MemStorage (default, process memory) and SqlStorage (SQLAlchemy).
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional

from app.schemas.announcement import Announcement, AnnouncementCreate
from app.schemas.occupancy import (
    EntryExitEvent, EntryExitEventCreate, OccupancyRecord, OccupancyRecordCreate,
)
from app.schemas.seat_post import SeatPost, SeatPostCreate, SeatStatus
from app.schemas.user import User, UserCreate, UserPreferences
from app.schemas.zone import LibraryZone, LibraryZoneCreate
from app.utils.clock import utcnow

Clock = Callable[[], datetime]


class Storage(ABC):
    def __init__(self, total_capacity: int = 400, clock: Clock = utcnow):
        self.clock = clock
        self._total_capacity = total_capacity

    # ── Users ─────────────────────────────────────────────────────────────
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_student_id(self, student_id: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_external_id(self, external_id: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, data: UserCreate) -> User: ...

    @abstractmethod
    def touch_login(self, user_id: int) -> User: ...

    @abstractmethod
    def update_user_preferences(self, user_id: int, preferences: UserPreferences) -> User: ...

    # ── Occupancy ─────────────────────────────────────────────────────────
    @abstractmethod
    def record_entry_exit(self, data: EntryExitEventCreate) -> EntryExitEvent:
        """Append the event and snapshot the new aggregate into history."""

    @abstractmethod
    def get_current_occupancy(self) -> int:
        """max(0, entries - exits) over the whole event log."""

    @abstractmethod
    def save_occupancy_record(self, data: OccupancyRecordCreate) -> OccupancyRecord: ...

    @abstractmethod
    def get_occupancy_history(self, start: datetime, end: datetime) -> list[OccupancyRecord]:
        """Records with start <= timestamp <= end, oldest first."""

    def get_zone_occupancy(self, zone_id: int) -> int:
        zone = self.get_library_zone(zone_id)
        return zone.current_occupancy if zone else 0

    def get_all_zone_occupancy(self) -> dict[str, int]:
        return {str(z.id): z.current_occupancy for z in self.get_library_zones()}

    def get_total_capacity(self) -> int:
        return self._total_capacity

    def set_total_capacity(self, value: int) -> int:
        self._total_capacity = value
        return value

    # ── Zones ─────────────────────────────────────────────────────────────
    @abstractmethod
    def get_library_zones(self) -> list[LibraryZone]: ...

    @abstractmethod
    def get_library_zone(self, zone_id: int) -> Optional[LibraryZone]: ...

    @abstractmethod
    def create_library_zone(self, data: LibraryZoneCreate) -> LibraryZone: ...

    @abstractmethod
    def update_zone_occupancy(self, zone_id: int, current_occupancy: int) -> LibraryZone: ...

    @abstractmethod
    def update_zone_capacity(self, zone_id: int, capacity: int) -> LibraryZone: ...

    # ── Seat posts ────────────────────────────────────────────────────────
    @abstractmethod
    def create_seat_post(self, data: SeatPostCreate) -> SeatPost: ...

    @abstractmethod
    def get_seat_posts(self) -> list[SeatPost]: ...

    @abstractmethod
    def get_seat_post(self, post_id: int) -> Optional[SeatPost]: ...

    def get_active_seat_posts(self) -> list[SeatPost]:
        """Read-time filter; expired posts keep status "active" in storage."""
        now = self.clock()
        live = [p for p in self.get_seat_posts() if p.is_live(now)]
        return sorted(live, key=lambda p: (p.created_at, p.id), reverse=True)

    def get_seat_posts_by_zone(self, zone: str) -> list[SeatPost]:
        return [p for p in self.get_active_seat_posts() if p.location.zone == zone]

    @abstractmethod
    def update_seat_post(self, post_id: int, status: SeatStatus) -> SeatPost: ...

    @abstractmethod
    def verify_seat_post(self, post_id: int, is_positive: bool) -> SeatPost:
        """Bump exactly one counter. Repeat votes by one user all count."""

    # ── Announcements ─────────────────────────────────────────────────────
    @abstractmethod
    def create_announcement(self, data: AnnouncementCreate) -> Announcement: ...

    @abstractmethod
    def get_announcements(self) -> list[Announcement]: ...

    @abstractmethod
    def get_announcement(self, announcement_id: int) -> Optional[Announcement]: ...

    def get_active_announcements(self) -> list[Announcement]:
        now = self.clock()
        return [a for a in self.get_announcements() if a.is_live(now)]

    @abstractmethod
    def deactivate_announcement(self, announcement_id: int) -> Announcement: ...

    # ── Hygiene ───────────────────────────────────────────────────────────
    def expire_stale_entries(self, now: Optional[datetime] = None) -> tuple[list[SeatPost], list[Announcement]]:
        """
        Flip stored status of posts/announcements whose time has passed.
        Reads never depend on this having run.
        """
        now = now or self.clock()
        posts = [
            self.update_seat_post(p.id, "expired")
            for p in self.get_seat_posts()
            if p.status == "active" and p.end_time <= now
        ]
        announcements = [
            self.deactivate_announcement(a.id)
            for a in self.get_announcements()
            if a.is_active and a.expiry is not None and a.expiry <= now
        ]
        return posts, announcements


def create_storage(backend: str, total_capacity: int, database_url: Optional[str] = None) -> Storage:
    """Build the configured backend. Imports are local so memory mode never touches SQLAlchemy."""
    if backend == "memory":
        from app.services.memory_storage import MemStorage
        return MemStorage(total_capacity=total_capacity)
    if backend == "sql":
        from app.database import make_engine, create_tables
        from app.services.sql_storage import SqlStorage
        engine = make_engine(database_url)
        create_tables(engine)
        return SqlStorage(engine, total_capacity=total_capacity)
    raise ValueError(f"Unknown STORAGE_BACKEND '{backend}' (expected memory | sql)")
