# app/routers/seats.py
"""Social seating — seat availability posts and community verification."""

from fastapi import APIRouter, Depends
from app.dependencies import get_ingest, get_storage
from app.schemas.seat_post import SeatPost, SeatPostCreate, SeatPostStatusUpdate, SeatPostVerify
from app.services.ingest import IngestService
from app.services.storage import Storage

router = APIRouter()


@router.get("/seats", response_model=list[SeatPost], summary="Active seat posts, newest first")
async def list_active_seats(storage: Storage = Depends(get_storage)):
    return storage.get_active_seat_posts()


@router.get("/seats/zone/{zone}", response_model=list[SeatPost])
async def list_seats_in_zone(zone: str, storage: Storage = Depends(get_storage)):
    return storage.get_seat_posts_by_zone(zone)


@router.post("/seats", response_model=SeatPost, summary="Post a seat")
async def create_seat_post(body: SeatPostCreate, ingest: IngestService = Depends(get_ingest)):
    """endTime is derived from duration; broadcasts newSeatPost."""
    return ingest.submit_seat_post(body)


@router.put("/seats/{post_id}", response_model=SeatPost, summary="Change post status")
async def update_seat_post(post_id: int, body: SeatPostStatusUpdate,
                           ingest: IngestService = Depends(get_ingest)):
    return ingest.set_seat_post_status(post_id, body)


@router.post("/seats/{post_id}/verify", response_model=SeatPost, summary="Vote a post up or down")
async def verify_seat_post(post_id: int, body: SeatPostVerify,
                           ingest: IngestService = Depends(get_ingest)):
    """Every call counts, including repeat votes from the same user."""
    return ingest.verify_seat_post(post_id, body)
