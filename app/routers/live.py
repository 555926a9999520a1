# app/routers/live.py
"""
Dashboard WebSocket. On open the client gets `initialData`, then every
broadcast; it may also send commands (see command_handler).
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from app.config import settings
from app.dependencies import get_ingest, get_registry
from app.services.broadcast import ConnectionRegistry
from app.services.command_handler import handle_command
from app.services.ingest import IngestService

router = APIRouter()


@router.websocket(settings.WS_PATH)
async def live_updates(websocket: WebSocket,
                       registry: ConnectionRegistry = Depends(get_registry),
                       ingest: IngestService = Depends(get_ingest)):
    conn = await registry.open(websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            handle_command(raw, conn, registry, ingest)
    except WebSocketDisconnect:
        pass
    finally:
        await registry.close(conn)
