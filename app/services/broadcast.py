# app/services/broadcast.py
"""
Broadcast Hub — fans state changes out to every live dashboard socket.

One ConnectionRegistry per server process, built in the app factory and handed
to routes through FastAPI dependencies.

Each connection owns an outbound FIFO queue drained by its own writer task:
  - broadcast() only enqueues, so it is synchronous and never waits on a socket
  - messages on one socket keep the order broadcast() was called in
  - a stalled socket fills its own queue and gets dropped; the rest carry on

Delivery is best-effort, at most once per connection. Nothing is requeued
after a close.
"""

import asyncio
import json
from enum import Enum
from itertools import count
from typing import Any, Callable, Optional

from fastapi import WebSocket
from pydantic import BaseModel

from app.schemas.messages import MessageType
from app.utils.logger import get_logger

logger = get_logger(__name__)


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


def encode_message(message_type, data: Any) -> str:
    """Serialise a `{type, data}` frame. Pydantic payloads go out camelCased."""
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json", by_alias=True)
    elif isinstance(data, list):
        data = [d.model_dump(mode="json", by_alias=True) if isinstance(d, BaseModel) else d for d in data]
    kind = message_type.value if isinstance(message_type, Enum) else message_type
    return json.dumps({"type": kind, "data": data})


class Connection:
    _ids = count(1)

    def __init__(self, websocket: WebSocket, max_queue: int):
        self.id = next(self._ids)
        self.websocket = websocket
        self.state = ConnectionState.CONNECTING
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self.writer: Optional[asyncio.Task] = None

    @property
    def peer(self) -> str:
        client = getattr(self.websocket, "client", None)
        return f"{client.host}:{client.port}" if client else "unknown"

    def enqueue(self, frame: str) -> bool:
        if self.state is ConnectionState.CLOSED:
            return False
        try:
            self.queue.put_nowait(frame)
            return True
        except asyncio.QueueFull:
            return False

    async def pump(self):
        while True:
            frame = await self.queue.get()
            await self.websocket.send_text(frame)

    def __repr__(self):
        return f"<Connection {self.id} {self.state.value} peer={self.peer}>"


class ConnectionRegistry:
    def __init__(self, snapshot: Callable[[], BaseModel], max_queue: int = 256):
        self._snapshot = snapshot
        self._max_queue = max_queue
        self._connections: dict[int, Connection] = {}
        self._closing: set[asyncio.Task] = set()   # close-after-drop tasks still running

    def __len__(self):
        return len(self._connections)

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    async def open(self, websocket: WebSocket) -> Connection:
        """
        Accept the socket and queue `initialData` as its first frame.
        Snapshot and registration happen with no await in between, so no
        broadcast can slip in ahead of the snapshot or be missed by it.
        """
        conn = Connection(websocket, self._max_queue)
        await websocket.accept()

        conn.enqueue(encode_message(MessageType.INITIAL_DATA, self._snapshot()))
        self._connections[conn.id] = conn
        conn.state = ConnectionState.OPEN
        conn.writer = asyncio.create_task(self._drain(conn), name=f"ws-writer-{conn.id}")

        logger.info(f"🔌 Dashboard connected: {conn.peer} (#{conn.id}, {len(self)} live)")
        return conn

    async def close(self, conn: Connection):
        """Stop delivery to this socket now. Safe to call more than once."""
        if conn.state is ConnectionState.CLOSED:
            return
        self._discard(conn)
        if conn.writer and conn.writer is not asyncio.current_task():
            conn.writer.cancel()
            try:
                await conn.writer
            except asyncio.CancelledError:
                pass
        logger.info(f"🔌 Dashboard disconnected: {conn.peer} (#{conn.id}, {len(self)} live)")

    def broadcast(self, message_type: MessageType, data: Any) -> int:
        """Queue one frame for every open connection. Returns how many got it."""
        frame = encode_message(message_type, data)
        delivered = 0
        for conn in self.connections:
            if conn.enqueue(frame):
                delivered += 1
            else:
                logger.warning(f"Send queue full for #{conn.id} ({conn.peer}) — dropping connection")
                self._drop(conn)
        logger.debug(f"📣 {message_type.value} → {delivered} connection(s)")
        return delivered

    def send(self, conn: Connection, message_type: MessageType, data: Any) -> bool:
        """Reply to a single connection only."""
        if conn.enqueue(encode_message(message_type, data)):
            return True
        if conn.state is not ConnectionState.CLOSED:
            logger.warning(f"Send queue full for #{conn.id} ({conn.peer}) — dropping connection")
            self._drop(conn)
        return False

    def _discard(self, conn: Connection):
        conn.state = ConnectionState.CLOSED
        self._connections.pop(conn.id, None)

    def _drop(self, conn: Connection):
        self._discard(conn)
        if conn.writer:
            conn.writer.cancel()
        task = asyncio.create_task(self._close_socket(conn), name=f"ws-drop-{conn.id}")
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)

    async def _drain(self, conn: Connection):
        try:
            await conn.pump()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            # Dead peer. Only this connection goes away.
            logger.warning(f"Send to #{conn.id} ({conn.peer}) failed: {e!r}")
            self._discard(conn)

    @staticmethod
    async def _close_socket(conn: Connection):
        if conn.writer:
            try:
                await conn.writer
            except asyncio.CancelledError:
                pass
        try:
            await conn.websocket.close(code=1013)   # try again later
        except Exception as e:
            logger.debug(f"Close of #{conn.id} after drop failed: {e!r}")
