# app/routers/zones.py
from fastapi import APIRouter, Depends
from app.dependencies import get_storage
from app.schemas.zone import LibraryZone
from app.services.errors import NotFoundError
from app.services.storage import Storage

router = APIRouter()


@router.get("/zones", response_model=list[LibraryZone])
async def list_zones(storage: Storage = Depends(get_storage)):
    return storage.get_library_zones()


@router.get("/zones/{zone_id}", response_model=LibraryZone)
async def get_zone(zone_id: int, storage: Storage = Depends(get_storage)):
    zone = storage.get_library_zone(zone_id)
    if not zone:
        raise NotFoundError("Zone", zone_id)
    return zone
