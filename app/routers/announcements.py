# app/routers/announcements.py
from fastapi import APIRouter, Depends
from app.dependencies import get_ingest, get_storage
from app.schemas.announcement import Announcement, AnnouncementCreate
from app.services.ingest import IngestService
from app.services.storage import Storage

router = APIRouter()


@router.get("/announcements", response_model=list[Announcement])
async def list_active_announcements(storage: Storage = Depends(get_storage)):
    """Active and not past expiry."""
    return storage.get_active_announcements()


@router.post("/announcements", response_model=Announcement, summary="Publish a banner announcement")
async def create_announcement(body: AnnouncementCreate, ingest: IngestService = Depends(get_ingest)):
    return ingest.publish_announcement(body)


@router.put("/announcements/{announcement_id}/deactivate", response_model=Announcement)
async def deactivate_announcement(announcement_id: int, ingest: IngestService = Depends(get_ingest)):
    """Idempotent; deactivating twice is not an error."""
    return ingest.deactivate_announcement(announcement_id)
