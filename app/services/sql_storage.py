# app/services/sql_storage.py
"""
SQLAlchemy-backed State Store. Same contract as MemStorage, so callers never
know which one they hold. Each operation runs in its own short session and
commits before returning.
"""

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from app.database import make_session_factory
from app.models.announcement import AnnouncementRow
from app.models.entry_exit_event import EntryExitEventRow
from app.models.occupancy_record import OccupancyRecordRow
from app.models.seat_post import SeatPostRow
from app.models.user import UserRow
from app.models.zone import ZoneRow
from app.schemas.announcement import Announcement, AnnouncementCreate
from app.schemas.occupancy import (
    EntryExitEvent, EntryExitEventCreate, OccupancyRecord, OccupancyRecordCreate,
)
from app.schemas.seat_post import SeatPost, SeatPostCreate, SeatStatus
from app.schemas.user import User, UserCreate, UserPreferences
from app.schemas.zone import LibraryZone, LibraryZoneCreate
from app.services.errors import NotFoundError
from app.services.storage import Clock, Storage
from app.utils.clock import ensure_utc, utcnow
from app.utils.logger import get_logger

logger = get_logger(__name__)


class SqlStorage(Storage):
    def __init__(self, engine: Engine, total_capacity: int = 400, clock: Clock = utcnow):
        super().__init__(total_capacity=total_capacity, clock=clock)
        self._session_factory = make_session_factory(engine)
        logger.info(f"SQL storage bound to {engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def _session(self):
        db: Session = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    @staticmethod
    def _require(db: Session, model, row_id: int, entity: str):
        row = db.get(model, row_id)
        if row is None:
            raise NotFoundError(entity, row_id)
        return row

    # ── Users ─────────────────────────────────────────────────────────────
    def get_user(self, user_id: int) -> Optional[User]:
        with self._session() as db:
            row = db.get(UserRow, user_id)
            return User.model_validate(row) if row else None

    def _user_where(self, column, value) -> Optional[User]:
        with self._session() as db:
            row = db.query(UserRow).filter(column == value).first()
            return User.model_validate(row) if row else None

    def get_user_by_student_id(self, student_id: str) -> Optional[User]:
        return self._user_where(UserRow.student_id, student_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._user_where(UserRow.email, email)

    def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        return self._user_where(UserRow.external_id, external_id)

    def create_user(self, data: UserCreate) -> User:
        now = self.clock()
        with self._session() as db:
            row = UserRow(created_at=now, last_login=now, **data.model_dump())
            db.add(row)
            db.flush()
            return User.model_validate(row)

    def touch_login(self, user_id: int) -> User:
        with self._session() as db:
            row = self._require(db, UserRow, user_id, "User")
            row.last_login = self.clock()
            db.flush()
            return User.model_validate(row)

    def update_user_preferences(self, user_id: int, preferences: UserPreferences) -> User:
        with self._session() as db:
            row = self._require(db, UserRow, user_id, "User")
            row.preferences = preferences.model_dump()
            db.flush()
            return User.model_validate(row)

    # ── Occupancy ─────────────────────────────────────────────────────────
    def record_entry_exit(self, data: EntryExitEventCreate) -> EntryExitEvent:
        fields = data.model_dump()
        fields["timestamp"] = data.timestamp or self.clock()
        # Event and its snapshot commit together or not at all
        with self._session() as db:
            row = EntryExitEventRow(**fields)
            db.add(row)
            db.flush()
            db.add(OccupancyRecordRow(
                timestamp=self.clock(),
                current_occupancy=self._aggregate(db),
                capacity=self.get_total_capacity(),
                zone_occupancy={str(z.id): z.current_occupancy for z in db.query(ZoneRow).order_by(ZoneRow.id).all()},
            ))
            db.flush()
            return EntryExitEvent.model_validate(row)

    @staticmethod
    def _aggregate(db: Session) -> int:
        counts = dict(
            db.query(EntryExitEventRow.event_type, func.count(EntryExitEventRow.id))
            .group_by(EntryExitEventRow.event_type)
            .all()
        )
        return max(0, counts.get("entry", 0) - counts.get("exit", 0))

    def get_current_occupancy(self) -> int:
        with self._session() as db:
            return self._aggregate(db)

    def save_occupancy_record(self, data: OccupancyRecordCreate) -> OccupancyRecord:
        fields = data.model_dump()
        fields["timestamp"] = data.timestamp or self.clock()
        with self._session() as db:
            row = OccupancyRecordRow(**fields)
            db.add(row)
            db.flush()
            return OccupancyRecord.model_validate(row)

    def get_occupancy_history(self, start: datetime, end: datetime) -> list[OccupancyRecord]:
        with self._session() as db:
            rows = (
                db.query(OccupancyRecordRow)
                .filter(
                    OccupancyRecordRow.timestamp >= ensure_utc(start),
                    OccupancyRecordRow.timestamp <= ensure_utc(end),
                )
                .order_by(OccupancyRecordRow.timestamp.asc(), OccupancyRecordRow.id.asc())
                .all()
            )
            return [OccupancyRecord.model_validate(r) for r in rows]

    # ── Zones ─────────────────────────────────────────────────────────────
    def get_library_zones(self) -> list[LibraryZone]:
        with self._session() as db:
            rows = db.query(ZoneRow).order_by(ZoneRow.id.asc()).all()
            return [LibraryZone.model_validate(r) for r in rows]

    def get_library_zone(self, zone_id: int) -> Optional[LibraryZone]:
        with self._session() as db:
            row = db.get(ZoneRow, zone_id)
            return LibraryZone.model_validate(row) if row else None

    def create_library_zone(self, data: LibraryZoneCreate) -> LibraryZone:
        with self._session() as db:
            row = ZoneRow(**data.model_dump())
            db.add(row)
            db.flush()
            return LibraryZone.model_validate(row)

    def update_zone_occupancy(self, zone_id: int, current_occupancy: int) -> LibraryZone:
        with self._session() as db:
            row = self._require(db, ZoneRow, zone_id, "Zone")
            row.current_occupancy = current_occupancy
            db.flush()
            return LibraryZone.model_validate(row)

    def update_zone_capacity(self, zone_id: int, capacity: int) -> LibraryZone:
        with self._session() as db:
            row = self._require(db, ZoneRow, zone_id, "Zone")
            row.capacity = capacity
            db.flush()
            return LibraryZone.model_validate(row)

    # ── Seat posts ────────────────────────────────────────────────────────
    def create_seat_post(self, data: SeatPostCreate) -> SeatPost:
        now = self.clock()
        with self._session() as db:
            row = SeatPostRow(
                end_time=now + timedelta(minutes=data.duration),
                verifications={"positive": 0, "negative": 0},
                status="active",
                created_at=now,
                **data.model_dump(),
            )
            db.add(row)
            db.flush()
            return SeatPost.model_validate(row)

    def get_seat_posts(self) -> list[SeatPost]:
        with self._session() as db:
            rows = db.query(SeatPostRow).order_by(SeatPostRow.id.asc()).all()
            return [SeatPost.model_validate(r) for r in rows]

    def get_seat_post(self, post_id: int) -> Optional[SeatPost]:
        with self._session() as db:
            row = db.get(SeatPostRow, post_id)
            return SeatPost.model_validate(row) if row else None

    def update_seat_post(self, post_id: int, status: SeatStatus) -> SeatPost:
        with self._session() as db:
            row = self._require(db, SeatPostRow, post_id, "Seat post")
            row.status = status
            db.flush()
            return SeatPost.model_validate(row)

    def verify_seat_post(self, post_id: int, is_positive: bool) -> SeatPost:
        key = "positive" if is_positive else "negative"
        with self._session() as db:
            row = self._require(db, SeatPostRow, post_id, "Seat post")
            # Reassign so the JSON column is flagged dirty
            votes = dict(row.verifications or {"positive": 0, "negative": 0})
            votes[key] = votes.get(key, 0) + 1
            row.verifications = votes
            db.flush()
            return SeatPost.model_validate(row)

    # ── Announcements ─────────────────────────────────────────────────────
    def create_announcement(self, data: AnnouncementCreate) -> Announcement:
        with self._session() as db:
            row = AnnouncementRow(created_at=self.clock(), **data.model_dump())
            db.add(row)
            db.flush()
            return Announcement.model_validate(row)

    def get_announcements(self) -> list[Announcement]:
        with self._session() as db:
            rows = db.query(AnnouncementRow).order_by(AnnouncementRow.id.asc()).all()
            return [Announcement.model_validate(r) for r in rows]

    def get_announcement(self, announcement_id: int) -> Optional[Announcement]:
        with self._session() as db:
            row = db.get(AnnouncementRow, announcement_id)
            return Announcement.model_validate(row) if row else None

    def deactivate_announcement(self, announcement_id: int) -> Announcement:
        with self._session() as db:
            row = self._require(db, AnnouncementRow, announcement_id, "Announcement")
            row.is_active = False
            db.flush()
            return Announcement.model_validate(row)
