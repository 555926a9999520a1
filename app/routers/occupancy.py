# app/routers/occupancy.py
"""Live occupancy, history, and the two occupancy write paths (scan + manual snapshot)."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from app.dependencies import get_ingest, get_storage
from app.schemas.occupancy import (
    EntryExitEvent, EntryExitEventCreate, OccupancyRecord, OccupancyRecordCreate,
)
from app.schemas.zone import OccupancySummary
from app.services.ingest import IngestService
from app.services.occupancy import occupancy_summary
from app.services.storage import Storage
from app.utils.clock import ensure_utc, start_of_day

router = APIRouter()


@router.get("/occupancy/current", response_model=OccupancySummary)
async def get_current_occupancy(storage: Storage = Depends(get_storage)):
    """Library-wide count plus every zone, with derived percentages."""
    return occupancy_summary(storage)


@router.get("/occupancy/history", response_model=list[OccupancyRecord])
async def get_occupancy_history(start: Optional[datetime] = None, end: Optional[datetime] = None,
                                storage: Storage = Depends(get_storage)):
    """Snapshots between start and end (inclusive), oldest first. Defaults to today so far."""
    end = ensure_utc(end) if end else storage.clock()
    start = ensure_utc(start) if start else start_of_day(storage.clock())
    return storage.get_occupancy_history(start, end)


@router.post("/occupancy/scan", response_model=EntryExitEvent, summary="Record a gate entry/exit scan")
async def scan(body: EntryExitEventCreate, ingest: IngestService = Depends(get_ingest)):
    """Appends the event and broadcasts occupancyUpdate to every dashboard."""
    return ingest.record_scan(body)


@router.post("/occupancy/update", response_model=OccupancyRecord, summary="Manual occupancy snapshot")
async def update_occupancy(body: OccupancyRecordCreate, ingest: IngestService = Depends(get_ingest)):
    """
    Stores a snapshot and applies its per-zone counts.
    Unknown zone ids fail with 404 before anything is written.
    """
    return ingest.record_snapshot(body)
