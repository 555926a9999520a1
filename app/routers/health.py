# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + storage + live dashboard connections.
"""

from fastapi import APIRouter, Depends
from app.config import settings
from app.dependencies import get_registry, get_storage
from app.services.broadcast import ConnectionRegistry
from app.services.storage import Storage
from app.utils.clock import utcnow

router = APIRouter()


@router.get("/health", summary="System health check")
async def health_check(storage: Storage = Depends(get_storage),
                       registry: ConnectionRegistry = Depends(get_registry)):
    """
    Returns:
    - Backend status
    - Storage reachability (one zone read)
    - Number of live WebSocket connections
    """
    result = {
        "status": "ok",
        "timestamp": utcnow().isoformat(),
        "storage": settings.STORAGE_BACKEND,
        "storageStatus": "unknown",
        "connections": len(registry),
    }

    try:
        storage.get_library_zones()
        result["storageStatus"] = "ok"
    except Exception as e:
        result["storageStatus"] = f"error: {str(e)}"
        result["status"] = "degraded"

    return result
