# app/services/ingest.py
"""
Event Ingest — the only write path into the store.

Every public method validates its input, applies one mutation, and triggers
exactly one broadcast (reconcile_expired() sends one per entity it changed).
Inputs may be validated pydantic models (REST bodies) or raw mappings
(WebSocket commands); raw mappings are validated here.
"""

from typing import Any, Mapping, TypeVar, Union

from pydantic import BaseModel, ValidationError

from app.schemas.announcement import Announcement, AnnouncementCreate
from app.schemas.messages import MessageType
from app.schemas.occupancy import (
    EntryExitEvent, EntryExitEventCreate, OccupancyRecord, OccupancyRecordCreate,
)
from app.schemas.seat_post import SeatPost, SeatPostCreate, SeatPostStatusUpdate, SeatPostVerify
from app.schemas.zone import CapacitySnapshot, CapacityUpdate
from app.services.broadcast import ConnectionRegistry
from app.services.errors import InvalidInputError, NotFoundError
from app.services.occupancy import capacity_snapshot, occupancy_summary
from app.services.storage import Storage
from app.utils.logger import get_logger

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


def validate_input(schema: type[M], data: Union[M, Mapping[str, Any], None]) -> M:
    """Coerce raw input into `schema`, raising InvalidInputError on failure."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data if data is not None else {})
    except ValidationError as e:
        raise InvalidInputError(format_errors(e.errors())) from e


def format_errors(errors) -> str:
    """Flatten pydantic/FastAPI error dicts into one readable line."""
    parts = []
    for err in errors:
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{where}: {err['msg']}" if where else err["msg"])
    return "; ".join(parts)


class IngestService:
    def __init__(self, storage: Storage, registry: ConnectionRegistry):
        self.storage = storage
        self.registry = registry

    # ── Occupancy ─────────────────────────────────────────────────────────
    def record_scan(self, data) -> EntryExitEvent:
        event_in = validate_input(EntryExitEventCreate, data)
        event = self.storage.record_entry_exit(event_in)
        summary = occupancy_summary(self.storage)
        logger.info(
            f"[SCAN] {event.event_type} student={event.student_id} "
            f"→ {summary.current}/{summary.total} ({summary.percentage}%)"
        )
        self.registry.broadcast(MessageType.OCCUPANCY_UPDATE, summary)
        return event

    def record_snapshot(self, data) -> OccupancyRecord:
        record_in = validate_input(OccupancyRecordCreate, data)

        # Resolve every zone id before touching anything
        updates: dict[int, int] = {}
        for raw_id, value in record_in.zone_occupancy.items():
            try:
                zone_id = int(raw_id)
            except ValueError:
                raise InvalidInputError(f"zoneOccupancy: invalid zone id '{raw_id}'")
            if self.storage.get_library_zone(zone_id) is None:
                raise NotFoundError("Zone", zone_id)
            updates[zone_id] = value

        for zone_id, value in updates.items():
            self.storage.update_zone_occupancy(zone_id, value)

        # Record carries the full per-zone picture so zones mirror the latest record
        record = self.storage.save_occupancy_record(
            record_in.model_copy(update={"zone_occupancy": self.storage.get_all_zone_occupancy()})
        )
        logger.info(f"[SNAPSHOT] {record.current_occupancy}/{record.capacity} zones={record.zone_occupancy}")
        self.registry.broadcast(
            MessageType.OCCUPANCY_UPDATE,
            occupancy_summary(self.storage, current=record.current_occupancy, total=record.capacity),
        )
        return record

    def update_capacity(self, data) -> CapacitySnapshot:
        update = validate_input(CapacityUpdate, data)
        for zone_id in update.zone_capacities:
            if self.storage.get_library_zone(zone_id) is None:
                raise NotFoundError("Zone", zone_id)

        for zone_id, capacity in update.zone_capacities.items():
            self.storage.update_zone_capacity(zone_id, capacity)
        if update.total_capacity is not None:
            self.storage.set_total_capacity(update.total_capacity)

        snapshot = capacity_snapshot(self.storage)
        logger.info(f"[CAPACITY] total={snapshot.total_capacity} zones={update.zone_capacities}")
        self.registry.broadcast(MessageType.CAPACITY_UPDATE, snapshot)
        return snapshot

    # ── Seat posts ────────────────────────────────────────────────────────
    def submit_seat_post(self, data) -> SeatPost:
        post = self.storage.create_seat_post(validate_input(SeatPostCreate, data))
        logger.info(f"[SEAT] #{post.id} zone={post.location.zone} for {post.duration} min")
        self.registry.broadcast(MessageType.NEW_SEAT_POST, post)
        return post

    def set_seat_post_status(self, post_id: int, data) -> SeatPost:
        change = validate_input(SeatPostStatusUpdate, data)
        post = self.storage.update_seat_post(post_id, change.status)
        logger.info(f"[SEAT] #{post.id} status → {post.status}")
        self.registry.broadcast(MessageType.SEAT_POST_UPDATE, post)
        return post

    def verify_seat_post(self, post_id: int, data) -> SeatPost:
        vote = validate_input(SeatPostVerify, data)
        post = self.storage.verify_seat_post(post_id, vote.is_positive)
        logger.debug(f"[SEAT] #{post.id} votes +{post.verifications.positive}/-{post.verifications.negative}")
        self.registry.broadcast(MessageType.SEAT_POST_UPDATE, post)
        return post

    # ── Announcements ─────────────────────────────────────────────────────
    def publish_announcement(self, data) -> Announcement:
        announcement = self.storage.create_announcement(validate_input(AnnouncementCreate, data))
        logger.info(f"[ANNOUNCEMENT] #{announcement.id} published (expiry={announcement.expiry})")
        self.registry.broadcast(MessageType.NEW_ANNOUNCEMENT, announcement)
        return announcement

    def deactivate_announcement(self, announcement_id: int) -> Announcement:
        announcement = self.storage.deactivate_announcement(announcement_id)
        logger.info(f"[ANNOUNCEMENT] #{announcement.id} deactivated")
        self.registry.broadcast(MessageType.ANNOUNCEMENT_UPDATE, announcement)
        return announcement

    # ── Hygiene ───────────────────────────────────────────────────────────
    def reconcile_expired(self) -> int:
        posts, announcements = self.storage.expire_stale_entries()
        for post in posts:
            self.registry.broadcast(MessageType.SEAT_POST_UPDATE, post)
        for announcement in announcements:
            self.registry.broadcast(MessageType.ANNOUNCEMENT_UPDATE, announcement)
        if posts or announcements:
            logger.info(f"[HYGIENE] expired {len(posts)} seat post(s), {len(announcements)} announcement(s)")
        return len(posts) + len(announcements)
