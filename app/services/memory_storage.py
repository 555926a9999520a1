# app/services/memory_storage.py
"""
In-memory State Store. Default backend; everything is lost on restart.

Updates store a fresh model_copy instead of mutating in place, so a model
already handed to a caller never changes underneath it.
"""

from datetime import datetime, timedelta
from itertools import count
from typing import Optional

from app.schemas.announcement import Announcement, AnnouncementCreate
from app.schemas.occupancy import (
    EntryExitEvent, EntryExitEventCreate, OccupancyRecord, OccupancyRecordCreate,
)
from app.schemas.seat_post import SeatPost, SeatPostCreate, SeatStatus, Verifications
from app.schemas.user import User, UserCreate, UserPreferences
from app.schemas.zone import LibraryZone, LibraryZoneCreate
from app.services.errors import NotFoundError
from app.services.storage import Clock, Storage
from app.utils.clock import utcnow


class MemStorage(Storage):
    def __init__(self, total_capacity: int = 400, clock: Clock = utcnow):
        super().__init__(total_capacity=total_capacity, clock=clock)
        self._users: dict[int, User] = {}
        self._events: dict[int, EntryExitEvent] = {}
        self._records: dict[int, OccupancyRecord] = {}
        self._zones: dict[int, LibraryZone] = {}
        self._seat_posts: dict[int, SeatPost] = {}
        self._announcements: dict[int, Announcement] = {}

        self._user_ids = count(1)
        self._event_ids = count(1)
        self._record_ids = count(1)
        self._zone_ids = count(1)
        self._seat_post_ids = count(1)
        self._announcement_ids = count(1)

    # ── Users ─────────────────────────────────────────────────────────────
    def get_user(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def _find_user(self, **match) -> Optional[User]:
        (field, value), = match.items()
        return next((u for u in self._users.values() if getattr(u, field) == value), None)

    def get_user_by_student_id(self, student_id: str) -> Optional[User]:
        return self._find_user(student_id=student_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._find_user(email=email)

    def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        return self._find_user(external_id=external_id)

    def create_user(self, data: UserCreate) -> User:
        now = self.clock()
        user = User(id=next(self._user_ids), created_at=now, last_login=now, **data.model_dump())
        self._users[user.id] = user
        return user

    def _require_user(self, user_id: int) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def touch_login(self, user_id: int) -> User:
        user = self._require_user(user_id).model_copy(update={"last_login": self.clock()})
        self._users[user_id] = user
        return user

    def update_user_preferences(self, user_id: int, preferences: UserPreferences) -> User:
        user = self._require_user(user_id).model_copy(update={"preferences": preferences})
        self._users[user_id] = user
        return user

    # ── Occupancy ─────────────────────────────────────────────────────────
    def record_entry_exit(self, data: EntryExitEventCreate) -> EntryExitEvent:
        fields = data.model_dump()
        fields["timestamp"] = data.timestamp or self.clock()
        event = EntryExitEvent(id=next(self._event_ids), **fields)
        self._events[event.id] = event

        self.save_occupancy_record(OccupancyRecordCreate(
            timestamp=self.clock(),
            current_occupancy=self.get_current_occupancy(),
            capacity=self.get_total_capacity(),
            zone_occupancy=self.get_all_zone_occupancy(),
        ))
        return event

    def get_current_occupancy(self) -> int:
        # TODO: keep a running counter once the event log is only an audit trail
        entries = sum(1 for e in self._events.values() if e.event_type == "entry")
        exits = sum(1 for e in self._events.values() if e.event_type == "exit")
        return max(0, entries - exits)

    def save_occupancy_record(self, data: OccupancyRecordCreate) -> OccupancyRecord:
        fields = data.model_dump()
        fields["timestamp"] = data.timestamp or self.clock()
        record = OccupancyRecord(id=next(self._record_ids), **fields)
        self._records[record.id] = record
        return record

    def get_occupancy_history(self, start: datetime, end: datetime) -> list[OccupancyRecord]:
        records = [r for r in self._records.values() if start <= r.timestamp <= end]
        return sorted(records, key=lambda r: (r.timestamp, r.id))

    # ── Zones ─────────────────────────────────────────────────────────────
    def get_library_zones(self) -> list[LibraryZone]:
        return list(self._zones.values())

    def get_library_zone(self, zone_id: int) -> Optional[LibraryZone]:
        return self._zones.get(zone_id)

    def create_library_zone(self, data: LibraryZoneCreate) -> LibraryZone:
        zone = LibraryZone(id=next(self._zone_ids), **data.model_dump())
        self._zones[zone.id] = zone
        return zone

    def _replace_zone(self, zone_id: int, **changes) -> LibraryZone:
        zone = self._zones.get(zone_id)
        if zone is None:
            raise NotFoundError("Zone", zone_id)
        updated = zone.model_copy(update=changes)
        self._zones[zone_id] = updated
        return updated

    def update_zone_occupancy(self, zone_id: int, current_occupancy: int) -> LibraryZone:
        return self._replace_zone(zone_id, current_occupancy=current_occupancy)

    def update_zone_capacity(self, zone_id: int, capacity: int) -> LibraryZone:
        return self._replace_zone(zone_id, capacity=capacity)

    # ── Seat posts ────────────────────────────────────────────────────────
    def create_seat_post(self, data: SeatPostCreate) -> SeatPost:
        now = self.clock()
        post = SeatPost(
            id=next(self._seat_post_ids),
            end_time=now + timedelta(minutes=data.duration),
            verifications=Verifications(),
            status="active",
            created_at=now,
            **data.model_dump(),
        )
        self._seat_posts[post.id] = post
        return post

    def get_seat_posts(self) -> list[SeatPost]:
        return list(self._seat_posts.values())

    def get_seat_post(self, post_id: int) -> Optional[SeatPost]:
        return self._seat_posts.get(post_id)

    def _require_seat_post(self, post_id: int) -> SeatPost:
        post = self._seat_posts.get(post_id)
        if post is None:
            raise NotFoundError("Seat post", post_id)
        return post

    def update_seat_post(self, post_id: int, status: SeatStatus) -> SeatPost:
        post = self._require_seat_post(post_id).model_copy(update={"status": status})
        self._seat_posts[post_id] = post
        return post

    def verify_seat_post(self, post_id: int, is_positive: bool) -> SeatPost:
        post = self._require_seat_post(post_id)
        votes = post.verifications
        if is_positive:
            votes = votes.model_copy(update={"positive": votes.positive + 1})
        else:
            votes = votes.model_copy(update={"negative": votes.negative + 1})
        post = post.model_copy(update={"verifications": votes})
        self._seat_posts[post_id] = post
        return post

    # ── Announcements ─────────────────────────────────────────────────────
    def create_announcement(self, data: AnnouncementCreate) -> Announcement:
        announcement = Announcement(
            id=next(self._announcement_ids), created_at=self.clock(), **data.model_dump()
        )
        self._announcements[announcement.id] = announcement
        return announcement

    def get_announcements(self) -> list[Announcement]:
        return list(self._announcements.values())

    def get_announcement(self, announcement_id: int) -> Optional[Announcement]:
        return self._announcements.get(announcement_id)

    def deactivate_announcement(self, announcement_id: int) -> Announcement:
        announcement = self._announcements.get(announcement_id)
        if announcement is None:
            raise NotFoundError("Announcement", announcement_id)
        announcement = announcement.model_copy(update={"is_active": False})
        self._announcements[announcement_id] = announcement
        return announcement
